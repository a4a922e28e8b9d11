"""Authentication module for Spiris OAuth2."""

import asyncio
import logging
import secrets
import webbrowser
from dataclasses import dataclass
from datetime import datetime, timedelta
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Thread
from urllib.parse import parse_qs, urlparse

import httpx
from cryptography.fernet import Fernet

from spiris_tui.config import SpirisConfig
from spiris_tui.db.models import Credential

log = logging.getLogger('spiris_tui.auth')

OAUTH_SCOPES = ["ea:api", "offline_access", "ea:sales"]
TOKEN_EXPIRY_BUFFER_SECONDS = 300
CALLBACK_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True)
class AuthorizationHandle:
    """An authorization URL the user visits, and the state it is bound to."""

    url: str
    state: str


class TokenEncryption:
    """Handles encryption and decryption of OAuth tokens."""

    def __init__(self, encryption_key: str | None):
        self._fernet = Fernet(encryption_key.encode()) if encryption_key else None

    def encrypt(self, value: str) -> str:
        """Encrypt a value if encryption is configured."""
        if self._fernet:
            return self._fernet.encrypt(value.encode()).decode()
        return value

    def decrypt(self, value: str) -> str:
        """Decrypt a value if encryption is configured."""
        if self._fernet:
            return self._fernet.decrypt(value.encode()).decode()
        return value


class CallbackHandler(BaseHTTPRequestHandler):
    """HTTP request handler for OAuth callback."""

    auth_code: str | None = None
    state: str | None = None
    error: str | None = None

    def log_message(self, format: str, *args) -> None:
        """Suppress HTTP server logging."""
        pass

    def do_GET(self) -> None:
        """Handle GET request from OAuth callback."""
        params = parse_qs(urlparse(self.path).query)
        CallbackHandler.auth_code = params.get("code", [None])[0]
        CallbackHandler.state = params.get("state", [None])[0]
        CallbackHandler.error = params.get("error", [None])[0]
        self.send_response(200)
        self.send_header('Content-type', 'text/html')
        self.end_headers()
        if CallbackHandler.error:
            title = 'Authorization Failed'
            message = f'Error: {CallbackHandler.error}'
        else:
            title = 'Authorization Successful'
            message = 'You can close this window and start spiris-tui.'
        html = f'''<!DOCTYPE html>
<html>
<head><title>spiris-tui - {title}</title></head>
<body style="font-family: sans-serif; text-align: center; padding-top: 4rem;">
    <h1>{title}</h1>
    <p>{message}</p>
</body>
</html>'''
        self.wfile.write(html.encode())


class CallbackServer:
    """Local HTTP server to receive OAuth callbacks."""

    def __init__(self, port: int):
        self._port = port
        self._server: HTTPServer | None = None
        self._thread: Thread | None = None

    def start(self) -> None:
        """Start the callback server in a background thread."""
        CallbackHandler.auth_code = None
        CallbackHandler.state = None
        CallbackHandler.error = None
        self._server = HTTPServer(("localhost", self._port), CallbackHandler)
        self._thread = Thread(target=self._server.handle_request, daemon=True)
        self._thread.start()

    def wait_for_callback(self, timeout: float = CALLBACK_TIMEOUT_SECONDS) -> None:
        """Wait for the callback to be received."""
        if self._thread:
            self._thread.join(timeout=timeout)

    def stop(self) -> None:
        """Stop the callback server."""
        if self._server:
            self._server.server_close()
            self._server = None
        self._thread = None

    @property
    def auth_code(self) -> str | None:
        """Get the authorization code from the callback."""
        return CallbackHandler.auth_code

    @property
    def state(self) -> str | None:
        """Get the state from the callback."""
        return CallbackHandler.state

    @property
    def error(self) -> str | None:
        """Get any error from the callback."""
        return CallbackHandler.error


class OAuthClient:
    """OAuth2 client for the Spiris identity server."""

    def __init__(self, config: SpirisConfig, encryption_key: str | None = None):
        self._config = config
        self._encryption = TokenEncryption(encryption_key)
        self._state: str | None = None

    def start_authorization(self) -> AuthorizationHandle:
        """Generate a fresh authorization URL bound to the configured redirect."""
        self._state = secrets.token_urlsafe(32)
        url = httpx.URL(
            self._config.authorize_url,
            params={
                "client_id": self._config.client_id,
                "redirect_uri": self._config.redirect_uri,
                "response_type": "code",
                "scope": " ".join(OAUTH_SCOPES),
                "state": self._state,
                "prompt": "select_account",
            },
        )
        return AuthorizationHandle(url=str(url), state=self._state)

    async def authorize(self, open_browser: bool = True) -> Credential:
        """Run the full OAuth authorization flow through a local callback server."""
        server = CallbackServer(self._get_callback_port())
        server.start()
        try:
            handle = self.start_authorization()
            log.info(f'Authorization URL: {handle.url}')
            if open_browser:
                webbrowser.open(handle.url)
            await asyncio.get_running_loop().run_in_executor(
                None, server.wait_for_callback
            )
            if server.error:
                raise OAuthError(f"Authorization failed: {server.error}")
            if not server.auth_code:
                raise OAuthError("No authorization code received")
            if server.state != handle.state:
                raise OAuthError("State mismatch - possible CSRF attack")
            return await self.exchange_code(server.auth_code)
        finally:
            server.stop()

    async def exchange_code(self, auth_code: str) -> Credential:
        """Exchange an authorization code for a credential."""
        return await self._request_token({
            "grant_type": "authorization_code",
            "code": auth_code,
            "redirect_uri": self._config.redirect_uri,
        })

    async def refresh_token(self, refresh_token: str) -> Credential:
        """Refresh an expired access token."""
        return await self._request_token({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    async def _request_token(self, form: dict[str, str]) -> Credential:
        """Post a grant to the token endpoint and parse the response."""
        auth = httpx.BasicAuth(self._config.client_id, self._config.client_secret)
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(self._config.token_url, data=form, auth=auth)
        except httpx.HTTPError as e:
            raise OAuthError(f"Token request failed: {e}") from e
        if response.status_code >= 400:
            raise OAuthError(
                f"Token endpoint returned {response.status_code}: {response.text}"
            )
        try:
            data = response.json()
            access_token = data["access_token"]
            expires_in = int(data.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError) as e:
            raise OAuthError(f"Malformed token response: {e}") from e
        return Credential(
            access_token=access_token,
            expires_at=datetime.now() + timedelta(seconds=expires_in),
            refresh_token=data.get("refresh_token") or form.get("refresh_token"),
        )

    def encrypt_token(self, token: str) -> str:
        """Encrypt a token for storage."""
        return self._encryption.encrypt(token)

    def decrypt_token(self, token: str) -> str:
        """Decrypt a token from storage."""
        return self._encryption.decrypt(token)

    def is_token_expired(self, credential: Credential) -> bool:
        """Check if a credential is expired or about to expire."""
        buffer = timedelta(seconds=TOKEN_EXPIRY_BUFFER_SECONDS)
        return datetime.now() >= (credential.expires_at - buffer)

    def _get_callback_port(self) -> int:
        """Extract the port from the redirect URI."""
        parsed = urlparse(self._config.redirect_uri)
        return parsed.port or 8080


class OAuthError(Exception):
    """Exception raised for OAuth-related errors."""

    pass
