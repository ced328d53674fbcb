"""
Credential store for ovhctl.

Credentials live in a dotenv file (default:
~/.config/ovhctl/credentials.env). Environment variables override file
values key by key. The loaded Configuration is an immutable value that
callers pass explicitly to the client and the handshake.
"""

import logging
import os
from pathlib import Path
from typing import NamedTuple, Optional, Union

import ovh.client
from dotenv import dotenv_values, set_key

from ovhctl.constants import (
    CONFIG_KEYS,
    DEFAULT_ENDPOINT,
    ENV_APPLICATION_KEY,
    ENV_APPLICATION_SECRET,
    ENV_CONSUMER_KEY,
    ENV_ENDPOINT,
    ENV_FILE,
)
from ovhctl.exceptions import ConfigurationError
from ovhctl.signer import Credentials
from ovhctl.validation import mask_key, validate_endpoint

logger = logging.getLogger(__name__)


class Configuration(NamedTuple):
    """Everything a single invocation needs to talk to the API."""

    endpoint: str
    credentials: Credentials
    path: Path


def resolve_endpoint(endpoint: str) -> str:
    """
    Turn an endpoint alias or URL into a base URL.

    Parameters:
        endpoint: An alias known to python-ovh (e.g. "ovh-eu") or an http(s) URL

    Returns:
        Base URL without trailing slash

    Raises:
        ConfigurationError: If the endpoint is neither a known alias nor a URL
    """
    endpoint = endpoint.strip()
    if endpoint in ovh.client.ENDPOINTS:
        return ovh.client.ENDPOINTS[endpoint]
    if validate_endpoint(endpoint):
        return endpoint.rstrip("/")
    raise ConfigurationError(
        f"unknown endpoint '{endpoint}', use a URL or one of: "
        f"{', '.join(ovh.client.ENDPOINTS)}"
    )


def _read_file(env_file: Path) -> dict[str, str]:
    """
    Read non-empty values from a dotenv file.

    Parameters:
        env_file: Path to the dotenv file

    Returns:
        Mapping of configuration key to value
    """
    try:
        values = dotenv_values(env_file)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"could not read configuration file {env_file}, {e}") from e

    return {key: value for key, value in values.items() if value}


def load_configuration(path: Optional[Union[str, Path]] = None) -> Configuration:
    """
    Load the configuration from file and environment.

    An explicit path must exist. The default path is optional as long as
    the environment provides the missing values.

    Parameters:
        path: Configuration file to use instead of the default one

    Returns:
        The loaded configuration

    Raises:
        ConfigurationError: If the file is missing or required values are absent
    """
    env_file = Path(path) if path is not None else ENV_FILE

    if path is not None and not env_file.is_file():
        raise ConfigurationError(f"configuration file {env_file} does not exist")

    values: dict[str, str] = {}
    if env_file.is_file():
        values.update(_read_file(env_file))
        logger.debug("Loaded %d value(s) from %s", len(values), env_file)

    for key in CONFIG_KEYS:
        env_value = os.environ.get(key)
        if env_value:
            values[key] = env_value
            logger.debug("%s taken from environment", key)

    missing = [key for key in (ENV_APPLICATION_KEY, ENV_APPLICATION_SECRET) if not values.get(key)]
    if missing:
        raise ConfigurationError(
            f"missing {', '.join(missing)} in {env_file} or environment"
        )

    credentials = Credentials(
        application_key=values[ENV_APPLICATION_KEY],
        application_secret=values[ENV_APPLICATION_SECRET],
        consumer_key=values.get(ENV_CONSUMER_KEY),
    )
    endpoint = resolve_endpoint(values.get(ENV_ENDPOINT, DEFAULT_ENDPOINT))

    logger.info(
        "Configuration loaded (endpoint: %s, application key: %s)",
        endpoint,
        mask_key(credentials.application_key),
    )
    return Configuration(endpoint=endpoint, credentials=credentials, path=env_file)


def persist_consumer_key(config: Configuration, consumer_key: str) -> Configuration:
    """
    Store a confirmed consumer key in the credential file.

    Only the consumer key line is written; every other line of the file,
    application key and secret included, is left as is. The file is
    created with owner-only permissions if it does not exist yet.

    Parameters:
        config: Current configuration, whose path is the file to update
        consumer_key: Consumer key to store

    Returns:
        The configuration updated with the new consumer key

    Raises:
        ConfigurationError: If the file cannot be written
    """
    env_file = config.path
    try:
        env_file.parent.mkdir(parents=True, exist_ok=True)
        if not env_file.exists():
            env_file.touch(mode=0o600)
        set_key(env_file, ENV_CONSUMER_KEY, consumer_key, quote_mode="never")
    except OSError as e:
        raise ConfigurationError(f"could not write consumer key to {env_file}, {e}") from e

    logger.info("Consumer key %s saved to %s", mask_key(consumer_key), env_file)
    if os.environ.get(ENV_CONSUMER_KEY):
        logger.warning(
            "%s is set in the environment and overrides the key saved to %s",
            ENV_CONSUMER_KEY,
            env_file,
        )
    return config._replace(
        credentials=config.credentials._replace(consumer_key=consumer_key),
    )
