"""Tests for OAuth redirect parsing and the local callback server."""

import threading

import httpx
import pytest

from spapi_oauth.errors import CallbackError
from spapi_oauth.server import parse_callback_params, parse_callback_url, start_callback_server, wait_for_callback


class TestParseCallback:
    def test_accepts_spapi_oauth_code(self):
        result = parse_callback_params(
            {"spapi_oauth_code": "code123", "state": "s1", "selling_partner_id": "A3SELLER"}, expected_state="s1"
        )
        assert result.code == "code123"
        assert result.seller_id == "A3SELLER"

    def test_accepts_code(self):
        assert parse_callback_params({"code": ["abc"], "state": ["s1"]}).code == "abc"

    def test_error_aborts(self):
        with pytest.raises(CallbackError, match="access_denied"):
            parse_callback_params({"error": "access_denied", "state": "s1", "code": "abc"})

    def test_state_mismatch(self):
        with pytest.raises(CallbackError, match="state mismatch"):
            parse_callback_params({"code": "abc", "state": "other"}, expected_state="s1")

    def test_missing_state(self):
        with pytest.raises(CallbackError, match="Missing state"):
            parse_callback_params({"code": "abc"})

    def test_missing_code(self):
        with pytest.raises(CallbackError, match="Missing authorization code"):
            parse_callback_params({"state": "s1"})

    def test_parse_url(self):
        url = "https://example.com/callback?state=s1&spapi_oauth_code=xyz&selling_partner_id=A1"
        result = parse_callback_url(url, expected_state="s1")
        assert (result.code, result.seller_id) == ("xyz", "A1")


class TestCallbackServer:
    def _serve(self, server):
        outcome = {}

        def run():
            try:
                outcome["result"] = wait_for_callback(server, timeout=10)
            except Exception as e:
                outcome["error"] = e

        thread = threading.Thread(target=run)
        thread.start()
        return thread, outcome

    def test_receives_redirect(self):
        server = start_callback_server("http://127.0.0.1:0/callback", "s1")
        port = server.server_address[1]
        thread, outcome = self._serve(server)

        response = httpx.get(
            f"http://127.0.0.1:{port}/callback", params={"spapi_oauth_code": "abc", "state": "s1"}, trust_env=False
        )
        thread.join(timeout=10)

        assert response.status_code == 200
        assert outcome["result"].code == "abc"

    def test_error_redirect(self):
        server = start_callback_server("http://127.0.0.1:0/callback", "s1")
        port = server.server_address[1]
        thread, outcome = self._serve(server)

        response = httpx.get(
            f"http://127.0.0.1:{port}/callback", params={"error": "access_denied", "state": "s1"}, trust_env=False
        )
        thread.join(timeout=10)

        assert response.status_code == 400
        assert isinstance(outcome["error"], CallbackError)
