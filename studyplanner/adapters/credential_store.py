"""
Storage of the suggestion provider API key in the system keyring.
"""

from __future__ import annotations

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)


KEYRING_SERVICE_NAME = "studyplanner"


class ApiKeyStore:
    """
    Reads and writes provider API keys through ``keyring``.

    Lookups never raise: an unavailable backend is logged and reported as
    "no key", which in turn disables the external suggestion path.
    """

    def __init__(self, service_name: str = KEYRING_SERVICE_NAME):
        self.service_name = service_name

    def get_api_key(self, provider: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service_name, provider)
        except KeyringError as exc:  # pragma: no cover - environment dependent
            logger.warning("Could not read %s API key from keyring: %s", provider, exc)
            return None

    def set_api_key(self, provider: str, api_key: str) -> None:
        """
        Store ``api_key`` for ``provider``.

        Raises:
            KeyringError: If the backend refuses the write
        """
        keyring.set_password(self.service_name, provider, api_key)

    def clear_api_key(self, provider: str) -> bool:
        """Remove the stored key. Returns False if there was nothing to remove."""
        try:
            keyring.delete_password(self.service_name, provider)
        except PasswordDeleteError:
            return False
        except KeyringError as exc:  # pragma: no cover - environment dependent
            logger.warning("Could not remove %s API key from keyring: %s", provider, exc)
            return False
        return True
