"""Ownership of the session's single access credential."""

import logging
from dataclasses import replace

import aiosqlite
from cryptography.fernet import InvalidToken

from spiris_tui.auth import AuthorizationHandle, OAuthClient
from spiris_tui.db.models import Credential
from spiris_tui.db.repository import Repository

log = logging.getLogger('spiris_tui.credentials')


class CredentialStore:
    """Loads, refreshes and saves the credential, and starts authorization.

    Tokens are encrypted at rest when an encryption key is configured. A
    record that cannot be read back is treated exactly like a missing one.
    """

    def __init__(self, repository: Repository, oauth: OAuthClient):
        self._repository = repository
        self._oauth = oauth
        self._handle: AuthorizationHandle | None = None

    @property
    def waiting(self) -> bool:
        """Whether an authorization URL has been issued and not yet used."""
        return self._handle is not None

    async def load(self) -> Credential | None:
        """Load the persisted credential, or None when there is none usable."""
        try:
            stored = await self._repository.get_credential()
        except (aiosqlite.DatabaseError, ValueError) as e:
            log.warning(f'Stored credential unreadable: {e}')
            return None
        if stored is None:
            log.debug('No stored credential')
            return None
        try:
            return replace(
                stored,
                access_token=self._oauth.decrypt_token(stored.access_token),
                refresh_token=(
                    self._oauth.decrypt_token(stored.refresh_token)
                    if stored.refresh_token
                    else None
                ),
            )
        except InvalidToken:
            log.warning('Stored credential could not be decrypted')
            return None

    async def save(self, credential: Credential) -> None:
        """Persist a credential, replacing the previous one."""
        await self._repository.save_credential(
            replace(
                credential,
                access_token=self._oauth.encrypt_token(credential.access_token),
                refresh_token=(
                    self._oauth.encrypt_token(credential.refresh_token)
                    if credential.refresh_token
                    else None
                ),
            )
        )
        self._handle = None
        log.info(f'Credential saved, expires at {credential.expires_at.isoformat()}')

    async def refresh_if_expired(self, credential: Credential) -> Credential | None:
        """Return a usable credential, refreshing and saving it when expired.

        Raises OAuthError when the token endpoint rejects the refresh.
        """
        if not self._oauth.is_token_expired(credential):
            return credential
        if not credential.refresh_token:
            log.info('Stored credential expired and has no refresh token')
            return None
        refreshed = await self._oauth.refresh_token(credential.refresh_token)
        await self.save(refreshed)
        return refreshed

    def start_authorization(self) -> AuthorizationHandle:
        """Issue an authorization URL, reusing the pending one if any."""
        if self._handle is None:
            self._handle = self._oauth.start_authorization()
            log.info('Authorization URL issued')
        return self._handle

