"""Keybinding table: terminal keys to session intents."""

from dataclasses import dataclass
from enum import Enum


class IntentKind(Enum):
    """Discrete user actions the session understands."""

    QUIT = "quit"
    CANCEL = "cancel"
    CONFIRM = "confirm"
    CYCLE_FORWARD = "cycle_forward"
    CYCLE_BACK = "cycle_back"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    INSERT_CHAR = "insert_char"
    BACKSPACE = "backspace"
    REFRESH = "refresh"
    NEW_FORM = "new_form"
    EDIT = "edit"
    HELP = "help"


@dataclass(frozen=True)
class Intent:
    """A normalized key press.

    Character-bound intents keep the character so that, while a form is
    being edited, the key can be typed instead of acted on.
    """

    kind: IntentKind
    char: str | None = None


NAMED_KEYS: dict[str, IntentKind] = {
    "escape": IntentKind.CANCEL,
    "enter": IntentKind.CONFIRM,
    "tab": IntentKind.CYCLE_FORWARD,
    "shift+tab": IntentKind.CYCLE_BACK,
    "up": IntentKind.MOVE_UP,
    "down": IntentKind.MOVE_DOWN,
    "left": IntentKind.MOVE_LEFT,
    "right": IntentKind.MOVE_RIGHT,
    "backspace": IntentKind.BACKSPACE,
}

CHARACTER_KEYS: dict[str, IntentKind] = {
    "q": IntentKind.QUIT,
    "r": IntentKind.REFRESH,
    "n": IntentKind.NEW_FORM,
    "e": IntentKind.EDIT,
    "h": IntentKind.HELP,
    "?": IntentKind.HELP,
}


def intent_for_key(key: str, character: str | None = None) -> Intent | None:
    """Translate a key name and its printable character into an intent."""
    if key in NAMED_KEYS:
        return Intent(NAMED_KEYS[key])
    if character and len(character) == 1 and character.isprintable():
        return Intent(CHARACTER_KEYS.get(character, IntentKind.INSERT_CHAR), character)
    return None
