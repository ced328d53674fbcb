"""
Delegated-authentication handshake.

Getting a consumer key takes two separate invocations:

1. request_consumer_key() asks the API for a new consumer key, scoped
   by access rules. The key stays inactive until the user visits the
   returned validation URL and logs in.
2. confirm_consumer_key() checks, with a signed call, that the key has
   been validated. The caller then persists it.

Neither step writes anything locally, and neither retries on failure.
"""

import logging
from typing import Iterable, NamedTuple, Optional

from ovhctl.client import OvhClient
from ovhctl.constants import (
    AUTH_CREDENTIAL_PATH,
    AUTH_CURRENT_CREDENTIAL_PATH,
    DEFAULT_ACCESS_RULES,
)
from ovhctl.exceptions import (
    ApiError,
    AuthenticationHandshakeError,
    ConfigurationError,
    NetworkError,
)
from ovhctl.validation import mask_key, validate_access_rule

logger = logging.getLogger(__name__)


class AccessRule(NamedTuple):
    """An HTTP method and path pattern a consumer key may call."""

    method: str
    path: str


class ConsumerKeyRequest(NamedTuple):
    """Body of a consumer key request."""

    access_rules: list[AccessRule]
    redirection: Optional[str] = None

    def to_payload(self) -> dict:
        """
        Build the JSON body expected by the credential endpoint.

        Returns:
            Request payload
        """
        payload: dict = {
            "accessRules": [
                {"method": rule.method, "path": rule.path}
                for rule in self.access_rules
            ],
        }
        if self.redirection:
            payload["redirection"] = self.redirection
        return payload


class ConsumerKeyResponse(NamedTuple):
    """A pending consumer key and the URL where the user validates it."""

    consumer_key: str
    validation_url: str
    state: Optional[str] = None


def default_access_rules() -> list[AccessRule]:
    """Full read/write access to the whole API."""
    return [AccessRule(method, path) for method, path in DEFAULT_ACCESS_RULES]


def request_consumer_key(
    client: OvhClient,
    access_rules: Iterable[AccessRule],
    redirection: Optional[str] = None,
) -> ConsumerKeyResponse:
    """
    Ask the API for a new consumer key.

    The request is authenticated by the application key only. The key
    returned is not usable until the user visits the validation URL.

    Parameters:
        client: API client
        access_rules: Ordered (method, path) pairs granted to the key
        redirection: URL the user is sent to after validation

    Returns:
        The pending consumer key and its validation URL

    Raises:
        AuthenticationHandshakeError: If the rules are invalid, the API cannot
            be reached, or it rejects the request
    """
    rules = [AccessRule(*rule) for rule in access_rules]
    if not rules:
        raise AuthenticationHandshakeError("could not request consumer key, no access rules given")

    for rule in rules:
        is_valid, error_msg = validate_access_rule(rule.method, rule.path)
        if not is_valid:
            raise AuthenticationHandshakeError(f"could not request consumer key, {error_msg}")

    request = ConsumerKeyRequest(access_rules=rules, redirection=redirection)
    logger.debug("Requesting consumer key for %d access rule(s)", len(rules))

    try:
        result = client.post(AUTH_CREDENTIAL_PATH, request.to_payload(), need_auth=False)
    except (NetworkError, ApiError) as e:
        raise AuthenticationHandshakeError(f"could not request consumer key, {e}") from e

    try:
        response = ConsumerKeyResponse(
            consumer_key=result["consumerKey"],
            validation_url=result["validationUrl"],
            state=result.get("state"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise AuthenticationHandshakeError(
            f"could not request consumer key, unexpected response {result!r}"
        ) from e

    logger.info(
        "Consumer key %s requested (state: %s)",
        mask_key(response.consumer_key),
        response.state or "unknown",
    )
    return response


def confirm_consumer_key(client: OvhClient, consumer_key: str) -> dict:
    """
    Check that a consumer key has been validated by the user.

    Parameters:
        client: API client whose configuration holds the application credentials
        consumer_key: The consumer key to confirm

    Returns:
        The credential description returned by the API

    Raises:
        AuthenticationHandshakeError: If the key cannot be checked or is not validated
    """
    candidate = client.with_consumer_key(consumer_key)

    try:
        credential = candidate.get(AUTH_CURRENT_CREDENTIAL_PATH)
    except (NetworkError, ApiError, ConfigurationError) as e:
        raise AuthenticationHandshakeError(f"could not confirm consumer key, {e}") from e

    status = credential.get("status") if isinstance(credential, dict) else None
    if status != "validated":
        raise AuthenticationHandshakeError(
            f"could not confirm consumer key, its status is '{status}', "
            "please visit the validation URL first"
        )

    logger.info(
        "Consumer key %s confirmed (credential ID: %s)",
        mask_key(consumer_key),
        credential.get("credentialId", "unknown"),
    )
    return credential
