"""
Constants used throughout the ovhctl package.

This module centralizes header names, configuration keys, default
endpoint and access rules, and the filesystem path of the credential
store.
"""

import os
import re
from pathlib import Path

from ovhctl import __version__

# Headers attached to outgoing requests
X_OVH_APPLICATION = "X-Ovh-Application"
X_OVH_CONSUMER = "X-Ovh-Consumer"
X_OVH_TIMESTAMP = "X-Ovh-Timestamp"
X_OVH_SIGNATURE = "X-Ovh-Signature"

USER_AGENT = f"ovhctl/{__version__}"

# Signature scheme version prefix
SIGNATURE_PREFIX = "$1$"

# Matches a complete signature: prefix followed by a SHA-1 hex digest
SIGNATURE_REGEX = re.compile(r"^\$1\$[0-9a-f]{40}$")

# Keys of the credential file, also honoured as environment variables
ENV_ENDPOINT = "OVH_ENDPOINT"
ENV_APPLICATION_KEY = "OVH_APPLICATION_KEY"
ENV_APPLICATION_SECRET = "OVH_APPLICATION_SECRET"
ENV_CONSUMER_KEY = "OVH_CONSUMER_KEY"

CONFIG_KEYS = [
    ENV_ENDPOINT,
    ENV_APPLICATION_KEY,
    ENV_APPLICATION_SECRET,
    ENV_CONSUMER_KEY,
]

DEFAULT_ENDPOINT = "https://eu.api.ovh.com/1.0"

# Seconds before an HTTP request is abandoned
DEFAULT_TIMEOUT = 180

# HTTP verbs an access rule may grant
ACCESS_RULE_METHODS = ["GET", "POST", "PUT", "DELETE"]

# Full API access, granted by `ovhctl connect` unless rules are given
DEFAULT_ACCESS_RULES = [(method, "/*") for method in ACCESS_RULE_METHODS]

# API paths used by the authentication handshake
AUTH_CREDENTIAL_PATH = "/auth/credential"
AUTH_CURRENT_CREDENTIAL_PATH = "/auth/currentCredential"
AUTH_TIME_PATH = "/auth/time"

# Credential file path: ~/.config/ovhctl/credentials.env
# Respects XDG_CONFIG_HOME if set, otherwise defaults to ~/.config
_CONFIG_DIR = Path(
    os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
) / "ovhctl"
ENV_FILE = _CONFIG_DIR / "credentials.env"
