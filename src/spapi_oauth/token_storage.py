"""OS keychain storage for SP-API seller credentials via keyring."""

import json
import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .config import KEYRING_SERVICE
from .errors import CredentialStoreError
from .models import ExternalCredential

logger = logging.getLogger(__name__)


class KeyringCredentialStore:
    """One keychain entry per account, holding the whole credential as JSON.

    Writes and deletes touch a single entry, so a credential is never
    partially cleared.
    """

    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def load(self, account_id: str) -> ExternalCredential | None:
        """Retrieve the credential for an account, or None if it is not linked."""
        try:
            data = keyring.get_password(self.service, account_id)
        except KeyringError as e:
            raise CredentialStoreError(f"Could not read credentials for {account_id}: {e}") from e
        if not data:
            return None
        try:
            return ExternalCredential.from_dict(json.loads(data))
        except (ValueError, KeyError) as e:
            raise CredentialStoreError(f"Stored credentials for {account_id} are corrupt") from e

    def save(self, account_id: str, credential: ExternalCredential) -> None:
        try:
            keyring.set_password(self.service, account_id, json.dumps(credential.to_dict()))
        except KeyringError as e:
            raise CredentialStoreError(f"Could not store credentials for {account_id}: {e}") from e
        logger.debug("Stored credentials for account %s", account_id)

    def delete(self, account_id: str) -> bool:
        """Delete the credential. Returns False if there was nothing to delete."""
        try:
            keyring.delete_password(self.service, account_id)
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            raise CredentialStoreError(f"Could not delete credentials for {account_id}: {e}") from e
        logger.info("Deleted credentials for account %s", account_id)
        return True
