"""
Signed HTTP transport for the OVHcloud API.

The client builds the exact URL and body it sends, has them signed,
and attaches the authentication headers. The server clock offset is
fetched once per client so that timestamps stay within the accepted
skew window.
"""

import json
import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ovhctl.config import Configuration
from ovhctl.constants import (
    AUTH_TIME_PATH,
    DEFAULT_TIMEOUT,
    USER_AGENT,
    X_OVH_APPLICATION,
)
from ovhctl.exceptions import ApiError, NetworkError
from ovhctl.signer import sign_request

logger = logging.getLogger(__name__)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((
        requests.ConnectionError,
        requests.Timeout,
    )),
    reraise=True,
)
def _fetch_server_time(session: requests.Session, url: str, timeout: float) -> int:
    """
    Fetch the server's current epoch.

    Retries up to 3 times with exponential backoff on network errors.

    Parameters:
        session: HTTP session
        url: Full URL of the time endpoint
        timeout: Request timeout in seconds

    Returns:
        Server time as a Unix epoch

    Raises:
        requests.RequestException: On persistent network failures
    """
    response = session.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    response.raise_for_status()
    return int(response.json())


def _encode_params(params: dict) -> str:
    """
    Encode query parameters the way the API expects booleans.

    Parameters:
        params: Query parameters

    Returns:
        URL-encoded query string
    """
    encoded = {}
    for key, value in params.items():
        if isinstance(value, bool):
            value = str(value).lower()
        encoded[key] = value
    return urlencode(encoded)


class OvhClient:
    """
    Minimal OVHcloud API client with request signing.

    Parameters:
        config: Loaded configuration, passed explicitly by the caller
        session: HTTP session to use, a new one by default
        timeout: Request timeout in seconds
        sync_time: Use the server clock offset rather than the local clock
    """

    def __init__(
        self,
        config: Configuration,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        sync_time: bool = True,
    ) -> None:
        self.config = config
        self._session = session or requests.Session()
        self._timeout = timeout
        self._sync_time = sync_time
        self._time_delta: Optional[int] = None

    def with_consumer_key(self, consumer_key: str) -> "OvhClient":
        """
        Derive a client signing with another consumer key.

        The session and a known clock offset are shared.

        Parameters:
            consumer_key: Consumer key to sign with

        Returns:
            A new client
        """
        credentials = self.config.credentials._replace(consumer_key=consumer_key)
        client = OvhClient(
            self.config._replace(credentials=credentials),
            session=self._session,
            timeout=self._timeout,
            sync_time=self._sync_time,
        )
        client._time_delta = self._time_delta
        return client

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> "OvhClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def url(self, path: str, params: Optional[dict] = None) -> str:
        """
        Build the full URL of an API path.

        Parameters:
            path: API path, e.g. "/me"
            params: Optional query parameters

        Returns:
            Full URL, query string included
        """
        if not path.startswith("/"):
            path = "/" + path
        url = self.config.endpoint + path
        if params:
            url += "?" + _encode_params(params)
        return url

    @property
    def time_delta(self) -> int:
        """Seconds to add to the local clock to match the server clock."""
        if self._time_delta is None:
            if not self._sync_time:
                self._time_delta = 0
            else:
                try:
                    server_time = _fetch_server_time(
                        self._session, self.url(AUTH_TIME_PATH), self._timeout,
                    )
                except requests.RequestException as e:
                    raise NetworkError(f"could not retrieve server time, {e}") from e
                except (ValueError, TypeError) as e:
                    raise NetworkError(f"could not parse server time, {e}") from e
                self._time_delta = server_time - int(time.time())
                logger.debug("Server clock offset is %ds", self._time_delta)
        return self._time_delta

    def timestamp(self) -> int:
        """Current server epoch, as used in signatures."""
        return int(time.time()) + self.time_delta

    def call(
        self,
        method: str,
        path: str,
        data: Any = None,
        params: Optional[dict] = None,
        need_auth: bool = True,
    ) -> Any:
        """
        Issue a request and decode its JSON response.

        Parameters:
            method: HTTP verb
            path: API path, e.g. "/me"
            data: JSON-serializable body, None for no body
            params: Optional query parameters
            need_auth: Sign the request; otherwise only the application key is sent

        Returns:
            Decoded JSON response, or None for an empty response

        Raises:
            ConfigurationError: If need_auth is set and no consumer key is configured
            NetworkError: If the API cannot be reached
            ApiError: If the API answers with a non-success status
        """
        method = method.upper()
        url = self.url(path, params)
        body = "" if data is None else json.dumps(data, separators=(",", ":"))

        headers = {
            "User-Agent": USER_AGENT,
            X_OVH_APPLICATION: self.config.credentials.application_key,
        }
        if body:
            headers["Content-Type"] = "application/json"
        if need_auth:
            signed = sign_request(self.config.credentials, method, url, body, self.timestamp())
            headers.update(signed.headers())

        logger.debug("%s %s (signed: %s)", method, url, need_auth)
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                data=body or None,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(f"could not execute request {method} {url}, {e}") from e

        return self._decode(method, url, response)

    @staticmethod
    def _decode(method: str, url: str, response: requests.Response) -> Any:
        """
        Decode a response, raising on non-success statuses.

        Parameters:
            method: HTTP verb of the request
            url: URL of the request
            response: Response to decode

        Returns:
            Decoded JSON, or None for an empty body
        """
        text = response.text
        if not response.ok:
            message = text
            error_code = None
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                message = payload.get("message", message)
                error_code = payload.get("errorCode")
            logger.debug("%s %s failed with %d: %s", method, url, response.status_code, text)
            raise ApiError(response.status_code, message, error_code=error_code, body=text)

        if not text.strip():
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                response.status_code,
                f"could not deserialize the payload of {method} {url}, {e}",
                body=text,
            ) from e

    def get(self, path: str, need_auth: bool = True, **params: Any) -> Any:
        """Signed GET, keyword arguments become query parameters."""
        return self.call("GET", path, params=params or None, need_auth=need_auth)

    def post(self, path: str, data: Any = None, need_auth: bool = True) -> Any:
        """Signed POST with a JSON body."""
        return self.call("POST", path, data=data, need_auth=need_auth)

    def put(self, path: str, data: Any = None, need_auth: bool = True) -> Any:
        """Signed PUT with a JSON body."""
        return self.call("PUT", path, data=data, need_auth=need_auth)

    def delete(self, path: str, need_auth: bool = True) -> Any:
        """
        Signed DELETE.

        A 404 is not an error: the resource is already gone.

        Parameters:
            path: API path
            need_auth: Sign the request

        Returns:
            Decoded JSON response, or None
        """
        try:
            return self.call("DELETE", path, need_auth=need_auth)
        except ApiError as e:
            if e.status_code == 404:
                logger.warning("%s not found (may have been already deleted)", path)
                return None
            raise
