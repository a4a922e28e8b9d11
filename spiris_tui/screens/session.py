"""The single screen hosting the interactive session."""

import logging

from textual import events
from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import Header

from spiris_tui.intents import intent_for_key
from spiris_tui.session.controller import SessionController
from spiris_tui.widgets.session_view import SessionView, StatusBar

log = logging.getLogger('spiris_tui.screens')

BACKGROUND_POLL_SECONDS = 0.1


class SessionScreen(Screen):
    """Routes every key press through the session controller and re-renders."""

    def __init__(self, controller: SessionController, **kwargs) -> None:
        super().__init__(**kwargs)
        self._controller = controller

    @property
    def controller(self) -> SessionController:
        return self._controller

    def compose(self) -> ComposeResult:
        """Create screen layout."""
        yield Header()
        yield SessionView(id='session-view')
        yield StatusBar(id='status-bar')

    def on_mount(self) -> None:
        """Draw the initial state and start polling background refreshes."""
        self.refresh_view()
        self.set_interval(BACKGROUND_POLL_SECONDS, self._apply_background_results)

    async def on_key(self, event: events.Key) -> None:
        """Translate the key and hand it to the controller."""
        intent = intent_for_key(event.key, event.character)
        if intent is None:
            return
        event.stop()
        event.prevent_default()
        await self._controller.dispatch(intent)
        if self._controller.state.should_quit:
            log.info('Quit requested')
            self.app.exit()
            return
        self.refresh_view()

    def _apply_background_results(self) -> None:
        if self._controller.apply_background_results():
            self.refresh_view()

    def refresh_view(self) -> None:
        """Re-render the body and status bar from the session state."""
        state = self._controller.state
        self.query_one('#session-view', SessionView).show(state)
        self.query_one('#status-bar', StatusBar).show(state)
