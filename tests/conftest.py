"""
Shared pytest fixtures for ovhctl tests.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from ovhctl.config import Configuration
from ovhctl.constants import CONFIG_KEYS
from ovhctl.signer import Credentials


def _make_response(status_code: int = 200, payload=None, text: str = None) -> requests.Response:
    """
    Build a real requests.Response with the given status and body.

    Parameters:
        status_code: HTTP status
        payload: JSON-serializable body
        text: Raw body, used instead of payload when given

    Returns:
        requests.Response: The response
    """
    response = requests.Response()
    response.status_code = status_code
    if text is None:
        text = "" if payload is None else json.dumps(payload)
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    return response


@pytest.fixture
def make_response():
    """
    Factory building real requests.Response objects.

    Returns:
        Callable: (status_code, payload, text) -> requests.Response
    """
    return _make_response


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's OVH_* variables out of the tests."""
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def mock_session():
    """
    Create a mock HTTP session answering every request with an empty object.

    Returns:
        MagicMock: A mock object mimicking requests.Session
    """
    session = MagicMock()
    session.request.return_value = _make_response(200, {})
    session.get.return_value = _make_response(200, 1000000000)
    return session


@pytest.fixture
def tmp_env_file(tmp_path):
    """
    Create a temporary credential file with valid credentials.

    Parameters:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path: Path to the temporary credential file
    """
    env_file = tmp_path / "credentials.env"
    env_file.write_text(
        "OVH_ENDPOINT=ovh-eu\n"
        "OVH_APPLICATION_KEY=test_app_key_1234\n"
        "OVH_APPLICATION_SECRET=test_secret\n"
        "OVH_CONSUMER_KEY=test_consumer_key\n"
    )
    return env_file


@pytest.fixture
def config(tmp_path):
    """
    A configuration with every credential set.

    Returns:
        Configuration: The configuration
    """
    return Configuration(
        endpoint="https://eu.api.ovh.com/1.0",
        credentials=Credentials("app_key", "app_secret", "consumer_key"),
        path=tmp_path / "credentials.env",
    )


@pytest.fixture
def unauthenticated_config(config):
    """
    A configuration without consumer key, as before 'ovhctl connect'.

    Returns:
        Configuration: The configuration
    """
    return config._replace(credentials=config.credentials._replace(consumer_key=None))
