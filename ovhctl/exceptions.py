"""
Exceptions raised by ovhctl.

Library code raises these; only the command line entry point catches
them, reports which step failed and exits non-zero.
"""

from typing import Optional


class OvhctlError(Exception):
    """Base class for every error raised by ovhctl."""


class ConfigurationError(OvhctlError):
    """The credential file is missing, unreadable or incomplete."""


class AuthenticationHandshakeError(OvhctlError):
    """Requesting or confirming a consumer key failed."""


class NetworkError(OvhctlError):
    """The OVHcloud API could not be reached."""


class ApiError(OvhctlError):
    """
    The OVHcloud API answered with a non-success status.

    The remote message is kept verbatim, since failures such as a
    signature mismatch are only ever detected on the server side.

    Parameters:
        status_code: HTTP status of the response
        message: Message reported by the API, or the raw body
        error_code: OVHcloud error code (e.g. "INVALID_SIGNATURE"), if any
        body: Raw response body
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: Optional[str] = None,
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.error_code = error_code
        self.body = body
        super().__init__(self.__str__())

    def __str__(self) -> str:
        if self.error_code:
            return f"{self.status_code} {self.error_code}: {self.message}"
        return f"{self.status_code}: {self.message}"
