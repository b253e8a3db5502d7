"""Login with Amazon OAuth client with automatic token refresh."""

import base64
import enum
import json
import logging
import secrets
import threading
import time
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from .config import (
    CONSENT_VERSION,
    DEFAULT_TIMEOUT_SECONDS,
    LWA_TOKEN_URL,
    REFRESH_BUFFER_SECONDS,
    STATE_MAX_AGE_SECONDS,
    USER_AGENT,
    RegionConfig,
)
from .errors import AuthExchangeError, CallbackError, DisconnectedError, NetworkError, RefreshError
from .models import ExternalCredential, TokenBundle

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def load(self, account_id: str) -> ExternalCredential | None: ...

    def save(self, account_id: str, credential: ExternalCredential) -> None: ...

    def delete(self, account_id: str) -> bool: ...


class ConnectionState(str, enum.Enum):
    UNLINKED = "unlinked"
    VALID = "valid"
    REFRESHING = "refreshing"


def encode_state(account_id: str, issued_at: float | None = None) -> str:
    """Build the opaque OAuth ``state`` value: account id, timestamp, and a nonce."""
    payload = {
        "account_id": account_id,
        "issued_at": int(issued_at if issued_at is not None else time.time()),
        "nonce": secrets.token_urlsafe(16),
    }
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def decode_state(state: str, max_age: float = STATE_MAX_AGE_SECONDS) -> str:
    """Return the account id carried by ``state``.

    Raises:
        CallbackError: If the value is malformed or older than ``max_age`` seconds.
    """
    try:
        payload = json.loads(base64.urlsafe_b64decode(state.encode()))
        account_id = payload["account_id"]
        issued_at = float(payload["issued_at"])
    except (ValueError, KeyError, TypeError) as e:
        raise CallbackError("Invalid OAuth state parameter") from e
    if time.time() - issued_at > max_age:
        raise CallbackError("OAuth state has expired; start the connection again")
    return account_id


class LwaOAuthClient:
    """OAuth client that manages the SP-API credential lifecycle per account.

    Usage:
        client = LwaOAuthClient(RegionConfig.from_env(), KeyringCredentialStore())
        url, state = client.authorization_url("alice")
        ...  # seller approves, redirect delivers the code
        client.connect("alice", code)
        token = client.ensure_fresh_token("alice")  # auto-refreshes near expiry
    """

    def __init__(
        self,
        config: RegionConfig,
        store: CredentialStore,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config
        self.store = store
        self.timeout = timeout
        self._transport = transport

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _account_lock(self, account_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.Lock()
            return lock

    def authorization_url(self, account_id: str) -> tuple[str, str]:
        """Build the Seller Central consent URL for an account.

        Returns:
            (url, state) tuple. Keep ``state`` to validate the redirect.
        """
        state = encode_state(account_id)
        params = {
            "application_id": self.config.application_id,
            "state": state,
            "version": CONSENT_VERSION,
        }
        return f"{self.config.consent_url}?{urlencode(params)}", state

    def verify_state(self, account_id: str, state: str) -> None:
        """Check that a redirect's ``state`` is fresh and was issued for ``account_id``.

        Raises:
            CallbackError: If the state is unusable or was issued for another account.
        """
        if decode_state(state) != account_id:
            raise CallbackError(f"OAuth state was issued for another account, not {account_id}")

    def _post_token(self, data: dict[str, str], error_cls: type) -> TokenBundle:
        """POST a grant to the LWA token endpoint and parse the bundle."""
        form = {
            **data,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    LWA_TOKEN_URL,
                    headers={
                        "Content-Type": "application/x-www-form-urlencoded",
                        "User-Agent": USER_AGENT,
                    },
                    data=form,
                )
        except httpx.TransportError as e:
            raise NetworkError(f"Token endpoint unreachable: {e}") from e
        received_at = time.time()

        try:
            body: Any = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code >= 400 or not body.get("access_token"):
            error = body.get("error") or f"http_{response.status_code}"
            description = body.get("error_description") or "No access_token in response"
            logger.warning("%s grant failed: %s (%s)", data["grant_type"], error, description)
            raise error_cls(f"{error}: {description}", error=error, description=description)

        return TokenBundle.from_response(body, received_at)

    def exchange_authorization_code(self, code: str) -> TokenBundle:
        """Exchange a single-use authorization code for access + refresh tokens.

        Raises:
            AuthExchangeError: If LWA rejects the code. Not retried.
            NetworkError: If the token endpoint cannot be reached.
        """
        bundle = self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.config.redirect_uri,
            },
            AuthExchangeError,
        )
        logger.info("Authorization code exchanged (expires in %ss)", bundle.expires_in)
        return bundle

    def refresh_access_token(self, refresh_token: str) -> TokenBundle:
        """Mint a new access token. The response may or may not rotate the refresh token."""
        bundle = self._post_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            RefreshError,
        )
        logger.info(
            "Access token refreshed (expires in %ss, refresh token %s)",
            bundle.expires_in,
            "rotated" if bundle.refresh_token else "unchanged",
        )
        return bundle

    def connect(self, account_id: str, code: str, seller_id: str | None = None) -> ExternalCredential:
        """Exchange ``code`` and store the resulting credential for ``account_id``."""
        bundle = self.exchange_authorization_code(code)
        with self._account_lock(account_id):
            existing = self.store.load(account_id)
            connected_at = existing.connected_at if existing else None
            credential = ExternalCredential.from_bundle(bundle, seller_id=seller_id, connected_at=connected_at)
            self.store.save(account_id, credential)
        logger.info("Account %s connected (seller %s)", account_id, credential.seller_id or "unknown")
        return credential

    def connection_state(self, account_id: str) -> ConnectionState:
        credential = self.store.load(account_id)
        if credential is None or not credential.access_token:
            return ConnectionState.UNLINKED
        if credential.needs_refresh(time.time(), REFRESH_BUFFER_SECONDS):
            return ConnectionState.REFRESHING
        return ConnectionState.VALID

    def ensure_fresh_token(self, account_id: str) -> str:
        """Get a valid access token, refreshing if it expires within five minutes.

        Concurrent callers for the same account share one refresh.

        Returns:
            A valid SP-API access token string.

        Raises:
            DisconnectedError: If the account has no credential or no refresh token.
            RefreshError: If LWA rejects the refresh.
        """
        with self._account_lock(account_id):
            credential = self._require(account_id)
            if not credential.needs_refresh(time.time(), REFRESH_BUFFER_SECONDS):
                return credential.access_token
            return self._refresh_locked(account_id, credential)

    def force_refresh(self, account_id: str) -> str:
        """Force a token refresh regardless of expiry."""
        with self._account_lock(account_id):
            return self._refresh_locked(account_id, self._require(account_id))

    def disconnect(self, account_id: str) -> bool:
        """Remove the whole credential for an account."""
        with self._account_lock(account_id):
            return self.store.delete(account_id)

    def _require(self, account_id: str) -> ExternalCredential:
        credential = self.store.load(account_id)
        if credential is None:
            raise DisconnectedError(f"Account {account_id} is not connected")
        return credential

    def _refresh_locked(self, account_id: str, credential: ExternalCredential) -> str:
        if not credential.refresh_token:
            raise DisconnectedError(f"Account {account_id} has no refresh token; reconnect required")
        bundle = self.refresh_access_token(credential.refresh_token)
        self.store.save(account_id, credential.with_refresh(bundle))
        return bundle.access_token
