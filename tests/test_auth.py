"""Tests for OAuth authentication."""

import io
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, Mock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx

from spiris_tui.auth import (
    OAUTH_SCOPES,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    CallbackHandler,
    CallbackServer,
    OAuthClient,
    OAuthError,
    TokenEncryption,
)
from spiris_tui.config import SpirisConfig
from spiris_tui.db.models import Credential

SANDBOX_TOKEN_URL = "https://identity-sandbox.test.vismaonline.com/connect/token"


def reset_callback_handler():
    CallbackHandler.auth_code = None
    CallbackHandler.state = None
    CallbackHandler.error = None


class TestTokenEncryption:
    """Tests for TokenEncryption class."""

    def test_encrypt_decrypt_with_key(self, security_config_with_encryption):
        """Test encryption and decryption with a key."""
        encryption = TokenEncryption(security_config_with_encryption.encryption_key)
        encrypted = encryption.encrypt("secret_token_value")
        assert encrypted != "secret_token_value"
        assert encryption.decrypt(encrypted) == "secret_token_value"

    def test_encrypt_without_key(self):
        """Test that encrypt returns original value without key."""
        assert TokenEncryption(None).encrypt("secret_token_value") == "secret_token_value"

    def test_decrypt_without_key(self):
        """Test that decrypt returns original value without key."""
        assert TokenEncryption(None).decrypt("secret_token_value") == "secret_token_value"


class TestCallbackHandler:
    """Tests for CallbackHandler do_GET."""

    def _create_handler(self, path: str) -> CallbackHandler:
        handler = CallbackHandler.__new__(CallbackHandler)
        handler.path = path
        handler.requestline = f"GET {path} HTTP/1.1"
        handler.request_version = "HTTP/1.1"
        handler.client_address = ("127.0.0.1", 12345)
        handler.wfile = io.BytesIO()
        handler.headers = {}
        return handler

    def test_do_get_success(self):
        """Test handling successful OAuth callback."""
        reset_callback_handler()
        handler = self._create_handler("/callback?code=auth123&state=state789")
        with (
            patch.object(handler, "send_response"),
            patch.object(handler, "send_header"),
            patch.object(handler, "end_headers"),
        ):
            handler.do_GET()
        assert CallbackHandler.auth_code == "auth123"
        assert CallbackHandler.state == "state789"
        assert CallbackHandler.error is None
        assert b'Authorization Successful' in handler.wfile.getvalue()

    def test_do_get_error(self):
        """Test handling OAuth callback with error."""
        reset_callback_handler()
        handler = self._create_handler("/callback?error=access_denied")
        with (
            patch.object(handler, "send_response"),
            patch.object(handler, "send_header"),
            patch.object(handler, "end_headers"),
        ):
            handler.do_GET()
        assert CallbackHandler.error == "access_denied"
        assert b'Authorization Failed' in handler.wfile.getvalue()


class TestCallbackServer:
    """Tests for CallbackServer."""

    def test_properties_before_start(self):
        """Test properties return None before server starts."""
        reset_callback_handler()
        server = CallbackServer(18085)
        assert server.auth_code is None
        assert server.state is None
        assert server.error is None

    def test_start_and_stop(self):
        """Test starting and stopping the callback server."""
        server = CallbackServer(18086)
        server.start()
        assert server._server is not None
        assert server._thread is not None
        server.stop()
        assert server._server is None

    def test_wait_for_callback_without_thread(self):
        """Test wait_for_callback when thread is None."""
        CallbackServer(18087).wait_for_callback(timeout=0.1)


class TestOAuthClient:
    """Tests for OAuthClient."""

    def test_start_authorization_builds_url(self, spiris_config):
        """Test the authorization URL carries client, redirect, scopes and state."""
        client = OAuthClient(spiris_config)
        handle = client.start_authorization()
        parsed = urlparse(handle.url)
        params = parse_qs(parsed.query)
        assert handle.url.startswith(spiris_config.authorize_url)
        assert params["client_id"] == ["test-client-id"]
        assert params["redirect_uri"] == ["http://localhost:8080/callback"]
        assert params["response_type"] == ["code"]
        assert params["scope"] == [" ".join(OAUTH_SCOPES)]
        assert params["state"] == [handle.state]

    def test_start_authorization_uses_fresh_state(self, spiris_config):
        """Test each authorization URL gets its own state token."""
        client = OAuthClient(spiris_config)
        assert client.start_authorization().state != client.start_authorization().state

    def test_encrypt_decrypt_token(self, spiris_config, security_config_with_encryption):
        """Test token encryption round trip through the client."""
        client = OAuthClient(spiris_config, security_config_with_encryption.encryption_key)
        encrypted = client.encrypt_token("my_token")
        assert encrypted != "my_token"
        assert client.decrypt_token(encrypted) == "my_token"

    def test_is_token_expired_true(self, spiris_config):
        """Test a past expiry counts as expired."""
        credential = Credential(access_token="a", expires_at=datetime.now() - timedelta(hours=1))
        assert OAuthClient(spiris_config).is_token_expired(credential) is True

    def test_is_token_expired_within_buffer(self, spiris_config):
        """Test a token inside the expiry buffer counts as expired."""
        credential = Credential(
            access_token="a",
            expires_at=datetime.now() + timedelta(seconds=TOKEN_EXPIRY_BUFFER_SECONDS - 60),
        )
        assert OAuthClient(spiris_config).is_token_expired(credential) is True

    def test_is_token_expired_false(self, spiris_config):
        """Test a token well before expiry is valid."""
        credential = Credential(access_token="a", expires_at=datetime.now() + timedelta(hours=1))
        assert OAuthClient(spiris_config).is_token_expired(credential) is False

    def test_get_callback_port_from_uri(self, spiris_config):
        """Test the callback port comes from the redirect URI."""
        assert OAuthClient(spiris_config)._get_callback_port() == 8080

    def test_get_callback_port_default(self):
        """Test the callback port defaults to 8080."""
        config = SpirisConfig(
            client_id="id",
            client_secret="secret",
            environment="sandbox",
            redirect_uri="http://localhost/callback",
        )
        assert OAuthClient(config)._get_callback_port() == 8080


class TestTokenEndpoint:
    """Tests for code exchange and refresh against the token endpoint."""

    @respx.mock
    async def test_exchange_code(self, spiris_config):
        """Test exchanging an authorization code for a credential."""
        route = respx.post(SANDBOX_TOKEN_URL).mock(
            return_value=httpx.Response(
                200,
                json={"access_token": "access", "refresh_token": "refresh", "expires_in": 3600},
            )
        )
        credential = await OAuthClient(spiris_config).exchange_code("code123")
        assert credential.access_token == "access"
        assert credential.refresh_token == "refresh"
        assert credential.expires_at > datetime.now() + timedelta(minutes=59)
        body = parse_qs(route.calls.last.request.content.decode())
        assert body["grant_type"] == ["authorization_code"]
        assert body["code"] == ["code123"]
        assert route.calls.last.request.headers["Authorization"].startswith("Basic ")

    @respx.mock
    async def test_refresh_token_keeps_old_refresh_token(self, spiris_config):
        """Test a refresh response without a new refresh token keeps the old one."""
        respx.post(SANDBOX_TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "new", "expires_in": 60})
        )
        credential = await OAuthClient(spiris_config).refresh_token("old-refresh")
        assert credential.access_token == "new"
        assert credential.refresh_token == "old-refresh"

    @respx.mock
    async def test_rejected_grant_raises(self, spiris_config):
        """Test an error status from the token endpoint raises OAuthError."""
        respx.post(SANDBOX_TOKEN_URL).mock(
            return_value=httpx.Response(400, json={"error": "invalid_grant"})
        )
        with pytest.raises(OAuthError, match="400"):
            await OAuthClient(spiris_config).refresh_token("bad")

    @respx.mock
    async def test_malformed_response_raises(self, spiris_config):
        """Test a token response without an access token raises OAuthError."""
        respx.post(SANDBOX_TOKEN_URL).mock(return_value=httpx.Response(200, json={}))
        with pytest.raises(OAuthError, match="Malformed"):
            await OAuthClient(spiris_config).exchange_code("code")

    @respx.mock
    async def test_non_object_response_raises(self, spiris_config):
        """Test a token response that is not a JSON object raises OAuthError."""
        respx.post(SANDBOX_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=["access_token"])
        )
        with pytest.raises(OAuthError, match="Malformed"):
            await OAuthClient(spiris_config).refresh_token("refresh")

    @respx.mock
    async def test_network_error_raises(self, spiris_config):
        """Test a transport failure raises OAuthError."""
        respx.post(SANDBOX_TOKEN_URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(OAuthError, match="Token request failed"):
            await OAuthClient(spiris_config).exchange_code("code")


class TestAuthorize:
    """Tests for the local callback authorization flow."""

    def _mock_server(self, mock_server_class, **attrs) -> Mock:
        mock_server = Mock()
        mock_server.error = None
        mock_server.auth_code = None
        mock_server.state = None
        for name, value in attrs.items():
            setattr(mock_server, name, value)
        mock_server_class.return_value = mock_server
        return mock_server

    async def test_authorize_error_response(self, spiris_config):
        """Test an error in the callback raises OAuthError."""
        client = OAuthClient(spiris_config)
        with (
            patch("spiris_tui.auth.CallbackServer") as mock_server_class,
            patch("spiris_tui.auth.webbrowser"),
        ):
            self._mock_server(mock_server_class, error="access_denied")
            with pytest.raises(OAuthError, match="access_denied"):
                await client.authorize(open_browser=False)

    async def test_authorize_no_auth_code(self, spiris_config):
        """Test a callback without a code raises OAuthError."""
        client = OAuthClient(spiris_config)
        with (
            patch("spiris_tui.auth.CallbackServer") as mock_server_class,
            patch("spiris_tui.auth.webbrowser"),
        ):
            self._mock_server(mock_server_class)
            with pytest.raises(OAuthError, match="No authorization code"):
                await client.authorize(open_browser=False)

    async def test_authorize_state_mismatch(self, spiris_config):
        """Test a callback with a foreign state raises OAuthError."""
        client = OAuthClient(spiris_config)
        with (
            patch("spiris_tui.auth.CallbackServer") as mock_server_class,
            patch("spiris_tui.auth.webbrowser"),
        ):
            self._mock_server(mock_server_class, auth_code="code", state="someone-else")
            with pytest.raises(OAuthError, match="State mismatch"):
                await client.authorize(open_browser=False)

    async def test_authorize_success(self, spiris_config):
        """Test a matching callback exchanges the code and opens the browser."""
        client = OAuthClient(spiris_config)
        expected = Credential(access_token="access", expires_at=datetime.now())
        with (
            patch("spiris_tui.auth.CallbackServer") as mock_server_class,
            patch("spiris_tui.auth.webbrowser") as mock_browser,
            patch.object(client, "exchange_code", AsyncMock(return_value=expected)) as exchange,
        ):
            mock_server = self._mock_server(mock_server_class, auth_code="code")
            mock_server.wait_for_callback.side_effect = lambda: setattr(
                mock_server, "state", client._state
            )
            result = await client.authorize(open_browser=True)
        assert result is expected
        exchange.assert_awaited_once_with("code")
        mock_browser.open.assert_called_once()
        mock_server.stop.assert_called_once()


class TestOAuthConstants:
    """Tests for module constants."""

    def test_oauth_scopes_defined(self):
        """Test the scopes cover API access, offline refresh and sales."""
        assert OAUTH_SCOPES == ["ea:api", "offline_access", "ea:sales"]

    def test_token_expiry_buffer(self):
        """Test the expiry buffer is five minutes."""
        assert TOKEN_EXPIRY_BUFFER_SECONDS == 300
