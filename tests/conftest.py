import threading
from urllib.parse import parse_qs

import httpx
import pytest

from spapi_oauth.config import RegionConfig


class MemoryStore:
    """In-memory stand-in for the keyring credential store."""

    def __init__(self, credentials=None):
        self.credentials = dict(credentials or {})
        self.saves = 0
        self._lock = threading.Lock()

    def load(self, account_id):
        with self._lock:
            return self.credentials.get(account_id)

    def save(self, account_id, credential):
        with self._lock:
            self.credentials[account_id] = credential
            self.saves += 1

    def delete(self, account_id):
        with self._lock:
            return self.credentials.pop(account_id, None) is not None


def form_body(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def config():
    return RegionConfig(
        region="eu",
        sandbox=False,
        application_id="amzn1.sp.solution.test-app",
        client_id="amzn1.application-oa2-client.test",
        client_secret="test_client_secret",
        redirect_uri="http://127.0.0.1:8881/callback",
    )


@pytest.fixture
def store():
    return MemoryStore()
