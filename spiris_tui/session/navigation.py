"""Screen navigation and input mode transitions."""

from enum import Enum

from spiris_tui.api import EntityKind
from spiris_tui.session.models import (
    Effect,
    EffectAction,
    InputMode,
    Screen,
    ScreenType,
    SessionState,
)


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


HOME_MENU: list[tuple[str, Screen]] = [
    ("View Customers", Screen.entity_list(EntityKind.CUSTOMER)),
    ("View Invoices", Screen.entity_list(EntityKind.INVOICE)),
    ("View Articles", Screen.entity_list(EntityKind.ARTICLE)),
    ("Create Customer", Screen.create(EntityKind.CUSTOMER)),
    ("Create Invoice", Screen.create(EntityKind.INVOICE)),
    ("Create Article", Screen.create(EntityKind.ARTICLE)),
    ("Help", Screen.help()),
]

PRIMARY_SCREENS: list[Screen] = [
    Screen.home(),
    Screen.entity_list(EntityKind.CUSTOMER),
    Screen.entity_list(EntityKind.INVOICE),
    Screen.entity_list(EntityKind.ARTICLE),
    Screen.help(),
]


class NavigationController:
    """Moves between screens and tracks the single return pointer.

    Only one prior screen is remembered: cancelling twice from a screen
    reached in two hops lands on Home, not on the first screen.
    """

    def __init__(self, state: SessionState):
        self._state = state

    @property
    def _nav(self):
        return self._state.navigation

    def quit_allowed(self) -> bool:
        """Editing must be cancelled or completed before the process may exit."""
        return self._nav.mode is InputMode.NORMAL

    def move(self, direction: Direction) -> None:
        """Move the selection on a list screen or the Home menu."""
        if direction not in (Direction.UP, Direction.DOWN):
            return
        step = -1 if direction is Direction.UP else 1
        screen = self._nav.current
        if screen.type is ScreenType.HOME:
            self._nav.menu_index = _clamp(self._nav.menu_index + step, len(HOME_MENU))
        elif screen.is_list:
            collection = self._state.collection(screen.kind)
            if collection.items:
                collection.selected = _clamp(collection.selected + step, len(collection.items))

    def confirm(self) -> Effect | None:
        """Act on Enter outside of a form."""
        screen = self._nav.current
        if screen.type is ScreenType.HOME:
            _, target = HOME_MENU[self._nav.menu_index]
            self._nav.current = target
            return _entry_effect(target)
        if screen.is_list:
            item = self._state.collection(screen.kind).selected_item
            if item is not None and item.id:
                self._go(Screen.detail(screen.kind, item.id))
            return None
        if screen.type is ScreenType.AUTH:
            return Effect(EffectAction.AUTHORIZE)
        return None

    def cancel(self) -> None:
        """Abort the form being edited, or go back one screen."""
        if self._nav.mode is InputMode.EDITING:
            self._state.form = None
            self._nav.mode = InputMode.NORMAL
        elif self._nav.return_to is not None:
            self._nav.current = self._nav.return_to
            self._nav.return_to = None
            self._state.error_message = None
        else:
            self._nav.current = Screen.home()

    def cycle_forward(self) -> Effect | None:
        return self._cycle(1)

    def cycle_back(self) -> Effect | None:
        return self._cycle(-1)

    def _cycle(self, step: int) -> Effect | None:
        if not self._state.is_authenticated or self._nav.mode is InputMode.EDITING:
            return None
        try:
            index = PRIMARY_SCREENS.index(self._nav.current)
        except ValueError:
            return None
        target = PRIMARY_SCREENS[(index + step) % len(PRIMARY_SCREENS)]
        self._nav.current = target
        return _entry_effect(target)

    def open_help(self) -> None:
        if self._nav.current.type is not ScreenType.HELP:
            self._go(Screen.help())

    def open_create(self) -> Effect | None:
        """Open a new form for the kind shown on a list or create screen."""
        screen = self._nav.current
        if screen.is_list:
            self._go(Screen.create(screen.kind))
        elif screen.type is not ScreenType.ENTITY_CREATE:
            return None
        return Effect(EffectAction.START_FORM, screen.kind)

    def open_edit(self) -> Effect | None:
        """Open an edit form for the entity shown on a detail screen."""
        screen = self._nav.current
        if screen.type is not ScreenType.ENTITY_DETAIL:
            return None
        if not screen.kind.editable:
            self._state.set_error(f"{screen.kind.plural.capitalize()} cannot be edited")
            return None
        if self._state.collection(screen.kind).find(screen.entity_id) is None:
            return None
        self._go(Screen.edit(screen.kind, screen.entity_id))
        return Effect(EffectAction.START_FORM, screen.kind, screen.entity_id)

    def show_list(self, kind: EntityKind) -> None:
        """Land on a kind's list screen, forgetting the return pointer."""
        self._nav.current = Screen.entity_list(kind)
        self._nav.return_to = None

    def _go(self, target: Screen) -> None:
        self._nav.return_to = self._nav.current
        self._nav.current = target


def _clamp(index: int, length: int) -> int:
    return max(0, min(index, length - 1))


def _entry_effect(screen: Screen) -> Effect | None:
    if screen.is_list:
        return Effect(EffectAction.LOAD, screen.kind)
    if screen.type is ScreenType.ENTITY_CREATE:
        return Effect(EffectAction.START_FORM, screen.kind)
    return None
