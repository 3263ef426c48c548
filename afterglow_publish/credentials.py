"""
Credential lookup: explicit configuration first, then the platform keychain.
"""

import logging
from typing import Optional, Tuple

import keyring
from keyring.errors import KeyringError

from .config import PublishConfig
from .errors import CredentialsError


KEYRING_SERVICE = 'com.afterglow.manager'
KEYRING_KEY_ID = 'aws-access-key-id'
KEYRING_SECRET = 'aws-secret-access-key'

MISSING_MESSAGE = "No credentials found. Configure AWS credentials in Settings."

logger = logging.getLogger(__name__)


def _from_keyring(username: str) -> Optional[str]:
    try:
        return keyring.get_password(KEYRING_SERVICE, username)
    except KeyringError as e:
        raise CredentialsError(f"Keychain error: {e}") from e


def get_credentials(config: PublishConfig) -> Tuple[str, str]:
    """
    Resolve the access key pair for a publish.

    Values set on the config (environment or CLI) win; anything missing is
    read from the keychain.

    Raises:
        CredentialsError: if either value is missing or empty
    """
    key_id = config.access_key
    secret = config.secret_key

    if not key_id:
        key_id = _from_keyring(KEYRING_KEY_ID)
    if not secret:
        secret = _from_keyring(KEYRING_SECRET)

    if not key_id or not key_id.strip() or not secret or not secret.strip():
        raise CredentialsError(MISSING_MESSAGE)

    logger.debug(f"Using access key ending in ...{key_id[-4:]}")
    return key_id.strip(), secret.strip()
