"""Session controller: turns intents into state changes and side effects."""

import logging

from spiris_tui.auth import OAuthError
from spiris_tui.intents import Intent, IntentKind
from spiris_tui.session.credentials import CredentialStore
from spiris_tui.session.forms import FormCollector
from spiris_tui.session.models import (
    Effect,
    EffectAction,
    InputMode,
    SessionState,
)
from spiris_tui.session.navigation import Direction, NavigationController
from spiris_tui.session.sync import DataSynchronizer, GatewayFactory

log = logging.getLogger('spiris_tui.session')

MOVES = {
    IntentKind.MOVE_UP: Direction.UP,
    IntentKind.MOVE_DOWN: Direction.DOWN,
    IntentKind.MOVE_LEFT: Direction.LEFT,
    IntentKind.MOVE_RIGHT: Direction.RIGHT,
}


class SessionController:
    """Single owner of the session state.

    Every intent is handled to completion before the next one; blocking
    loads and form submissions are awaited inside `dispatch`.
    """

    def __init__(
        self,
        state: SessionState,
        store: CredentialStore,
        gateway_factory: GatewayFactory,
    ):
        self.state = state
        self._store = store
        self.navigation = NavigationController(state)
        self.synchronizer = DataSynchronizer(state, gateway_factory)
        self.forms = FormCollector(state, self.navigation, self.synchronizer)

    @classmethod
    async def create(
        cls, store: CredentialStore, gateway_factory: GatewayFactory
    ) -> "SessionController":
        """Build a session from whatever credential the store can provide."""
        credential = await store.load()
        error = None
        if credential is not None:
            try:
                credential = await store.refresh_if_expired(credential)
            except OAuthError as e:
                log.warning(f'Token refresh failed: {e}')
                credential = None
                error = f"Token refresh failed: {e}"
        state = SessionState.initial(credential)
        if error:
            state.set_error(error)
        log.info(f'Session started on {state.screen.type.value} screen')
        return cls(state, store, gateway_factory)

    def quit_allowed(self) -> bool:
        return self.navigation.quit_allowed()

    async def dispatch(self, intent: Intent) -> None:
        """Apply one intent to the session."""
        if self.state.mode is InputMode.EDITING:
            await self._dispatch_editing(intent)
        else:
            await self._dispatch_normal(intent)

    async def _dispatch_editing(self, intent: Intent) -> None:
        if intent.kind is IntentKind.CANCEL:
            self.navigation.cancel()
        elif intent.kind is IntentKind.CONFIRM:
            await self.forms.confirm_field()
        elif intent.kind is IntentKind.BACKSPACE:
            self.forms.backspace()
        elif intent.char is not None:
            self.forms.type_char(intent.char)

    async def _dispatch_normal(self, intent: Intent) -> None:
        kind = intent.kind
        if kind is IntentKind.QUIT:
            self.state.should_quit = self.quit_allowed()
        elif kind is IntentKind.CANCEL:
            self.navigation.cancel()
        elif kind is IntentKind.CONFIRM:
            await self._perform(self.navigation.confirm())
        elif kind is IntentKind.CYCLE_FORWARD:
            await self._perform(self.navigation.cycle_forward())
        elif kind is IntentKind.CYCLE_BACK:
            await self._perform(self.navigation.cycle_back())
        elif kind in MOVES:
            self.navigation.move(MOVES[kind])
        elif kind is IntentKind.REFRESH:
            self.refresh_current()
        elif kind is IntentKind.NEW_FORM:
            await self._perform(self.navigation.open_create())
        elif kind is IntentKind.EDIT:
            await self._perform(self.navigation.open_edit())
        elif kind is IntentKind.HELP:
            self.navigation.open_help()

    def refresh_current(self) -> bool:
        """Start a background refresh of the list being shown."""
        screen = self.state.screen
        if not screen.is_list:
            return False
        started = self.synchronizer.refresh(screen.kind)
        if started:
            self.state.set_status(f"Refreshing {screen.kind.plural}...")
        return started

    def apply_background_results(self) -> int:
        """Fold finished background refreshes into the session."""
        return self.synchronizer.apply_pending()

    async def _perform(self, effect: Effect | None) -> None:
        if effect is None:
            return
        if effect.action is EffectAction.LOAD:
            await self.synchronizer.load(effect.kind)
        elif effect.action is EffectAction.START_FORM:
            self.forms.start(effect.kind, effect.entity_id)
        elif effect.action is EffectAction.AUTHORIZE:
            self._start_authorization()

    def _start_authorization(self) -> None:
        if self._store.waiting:
            return
        self.state.set_status("Starting OAuth flow...")
        self.state.authorization = self._store.start_authorization()
        self.state.set_status(
            "Open the URL above in your browser, then run: spiris-tui-login --code <code>"
        )
