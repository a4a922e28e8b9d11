"""Main Textual application for spiris-tui."""

import logging
import sys

import aiosqlite
from textual.app import App, ComposeResult
from textual.widgets import Header

from spiris_tui.api.gateway import SpirisGateway
from spiris_tui.auth import OAuthClient
from spiris_tui.config import Config, configure_logging, load_config
from spiris_tui.db.repository import Repository
from spiris_tui.screens.session import SessionScreen
from spiris_tui.session.controller import SessionController
from spiris_tui.session.credentials import CredentialStore
from spiris_tui.session.sync import GatewayFactory

log = logging.getLogger('spiris_tui.app')


class SpirisApp(App):
    """Terminal client for Spiris Bokföring och Fakturering."""

    TITLE = "spiris-tui"
    SUB_TITLE = "Spiris Bokföring och Fakturering"

    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        background: $surface;
    }
    """

    def __init__(
        self, config: Config | None = None, gateway_factory: GatewayFactory | None = None
    ):
        super().__init__()
        self._config = config or load_config()
        self._gateway_factory = gateway_factory or self._default_gateway
        self._repository: Repository | None = None
        self._controller: SessionController | None = None

    @property
    def config(self) -> Config:
        """Get application configuration."""
        return self._config

    @property
    def repository(self) -> Repository | None:
        """Get the credential repository."""
        return self._repository

    @property
    def controller(self) -> SessionController | None:
        return self._controller

    def _default_gateway(self, access_token: str) -> SpirisGateway:
        return SpirisGateway(self._config.spiris, access_token)

    def compose(self) -> ComposeResult:
        """Create child widgets for the app."""
        yield Header()

    async def on_mount(self) -> None:
        """Open storage, restore the session and show it."""
        try:
            self._repository = Repository(self._config.storage.path)
            await self._repository.connect()
        except (aiosqlite.Error, OSError) as e:
            log.exception('Could not open session storage')
            self.exit(return_code=1, message=f"Could not open session storage: {e}")
            return
        oauth = OAuthClient(self._config.spiris, self._config.security.encryption_key)
        store = CredentialStore(self._repository, oauth)
        self._controller = await SessionController.create(store, self._gateway_factory)
        self.push_screen(SessionScreen(self._controller))

    async def on_unmount(self) -> None:
        """Clean up resources when app closes."""
        if self._repository:
            await self._repository.close()


def main() -> None:  # pragma: no cover
    """Entry point for the application."""
    config = load_config()
    configure_logging(config.logging)
    app = SpirisApp(config)
    try:
        app.run()
    except Exception:
        log.exception('spiris-tui terminated with an error')
        raise
    sys.exit(app.return_code or 0)


if __name__ == "__main__":  # pragma: no cover
    main()
