"""
Request signing for the OVHcloud API.

Every authenticated call carries a signature computed over the
application secret, the consumer key, the HTTP method, the full URL,
the body and a timestamp. The server computes the same value and
rejects the call if they differ.
"""

import hashlib
import logging
from typing import NamedTuple, Optional

from ovhctl.constants import (
    SIGNATURE_PREFIX,
    X_OVH_APPLICATION,
    X_OVH_CONSUMER,
    X_OVH_SIGNATURE,
    X_OVH_TIMESTAMP,
)
from ovhctl.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Credentials(NamedTuple):
    """Application credentials and, once granted, the consumer key."""

    application_key: str
    application_secret: str
    consumer_key: Optional[str] = None

    @property
    def can_sign(self) -> bool:
        """True when all three values needed for a signature are set."""
        return bool(self.application_key and self.application_secret and self.consumer_key)


class SignedRequest(NamedTuple):
    """A request ready to be sent, derived per call and never stored."""

    application_key: str
    consumer_key: str
    method: str
    url: str
    body: str
    timestamp: int
    signature: str

    def headers(self) -> dict[str, str]:
        """
        Build the authentication headers for this request.

        Returns:
            Mapping of header name to value
        """
        return {
            X_OVH_APPLICATION: self.application_key,
            X_OVH_CONSUMER: self.consumer_key,
            X_OVH_TIMESTAMP: str(self.timestamp),
            X_OVH_SIGNATURE: self.signature,
        }


def compute_signature(
    application_secret: str,
    consumer_key: str,
    method: str,
    full_url: str,
    body: str,
    timestamp: int,
) -> str:
    """
    Compute the signature of a request.

    Parameters:
        application_secret: Application secret
        consumer_key: Consumer key
        method: HTTP verb, as sent on the wire
        full_url: Complete request URL, query string included
        body: Exact body sent, empty string if none
        timestamp: Unix epoch in seconds

    Returns:
        "$1$" followed by the hex SHA-1 digest of the "+" joined fields
    """
    payload = "+".join([
        application_secret,
        consumer_key,
        method,
        full_url,
        body,
        str(timestamp),
    ])
    return SIGNATURE_PREFIX + hashlib.sha1(payload.encode("utf-8")).hexdigest()


def sign_request(
    credentials: Credentials,
    method: str,
    full_url: str,
    body: str,
    timestamp: int,
) -> SignedRequest:
    """
    Sign a request with the given credentials.

    Parameters:
        credentials: Credentials holding application and consumer keys
        method: HTTP verb
        full_url: Complete request URL, query string included
        body: Exact body sent, empty string if none
        timestamp: Unix epoch in seconds

    Returns:
        The signed request

    Raises:
        ConfigurationError: If the consumer key (or an application value) is missing
    """
    if not credentials.can_sign:
        raise ConfigurationError(
            "could not sign request, application key, application secret "
            "and consumer key are all required"
        )

    method = method.upper()
    signature = compute_signature(
        credentials.application_secret,
        credentials.consumer_key,
        method,
        full_url,
        body,
        timestamp,
    )
    logger.debug("Signed %s %s at %d", method, full_url, timestamp)

    return SignedRequest(
        application_key=credentials.application_key,
        consumer_key=credentials.consumer_key,
        method=method,
        url=full_url,
        body=body,
        timestamp=timestamp,
        signature=signature,
    )
