"""Context help: per-screen descriptions and keyboard shortcuts."""

from dataclasses import dataclass

from spiris_tui.api import EntityKind
from spiris_tui.session.models import InputMode, Screen, ScreenType


@dataclass(frozen=True)
class ScreenHelp:
    title: str
    description: str
    shortcuts: tuple[tuple[str, str], ...]


GLOBAL_SHORTCUTS = (
    ("Tab/Shift+Tab", "Cycle Home, Customers, Invoices, Articles, Help"),
    ("h or ?", "Show help"),
    ("Esc", "Go back / cancel form"),
    ("q", "Quit (not while a form is open)"),
)

FORM_SHORTCUTS = (
    ("Type", "Enter a value for the current field"),
    ("Backspace", "Delete the last character"),
    ("Enter", "Accept the field; the last field submits"),
    ("Esc", "Cancel the form without saving"),
)


def screen_help(screen: Screen) -> ScreenHelp:
    """Help content for a screen."""
    if screen.type is ScreenType.HOME:
        return ScreenHelp(
            "Home",
            "Pick a list to browse or a record to create",
            (("↑/↓", "Move through the menu"), ("Enter", "Open the selected item")),
        )
    if screen.type is ScreenType.AUTH:
        return ScreenHelp(
            "Authentication",
            "Authorize this terminal against your Spiris company",
            (
                ("Enter", "Show the authorization URL"),
                ("spiris-tui-login", "Complete the login in another terminal"),
            ),
        )
    if screen.type is ScreenType.ENTITY_LIST:
        return ScreenHelp(
            f"{screen.kind.label} list",
            f"Browse the first page of {screen.kind.plural}",
            (
                ("↑/↓", "Move the selection"),
                ("Enter", f"View {screen.kind.value} details"),
                ("n", f"Create a new {screen.kind.value}"),
                ("r", "Refresh in the background"),
            ),
        )
    if screen.type is ScreenType.ENTITY_DETAIL:
        shortcuts = (("Esc", "Back to the list"),)
        if screen.kind.editable:
            shortcuts = (("e", f"Edit this {screen.kind.value}"),) + shortcuts
        return ScreenHelp(
            f"{screen.kind.label} details",
            f"All fields of one {screen.kind.value}",
            shortcuts,
        )
    if screen.is_form:
        if screen.type is ScreenType.ENTITY_EDIT:
            action = "Edit"
            shortcuts = FORM_SHORTCUTS + (("Esc, then e", "Retry after a failed update"),)
        else:
            action = "Create"
            shortcuts = FORM_SHORTCUTS + (("n", "Start over after a failed submission"),)
        if screen.kind is EntityKind.INVOICE:
            description = "Customer ID must match an existing customer"
        else:
            description = f"{action} a {screen.kind.value} one field at a time"
        return ScreenHelp(f"{action} {screen.kind.value}", description, shortcuts)
    return ScreenHelp(
        "Help & keyboard shortcuts",
        "Configuration: config.toml or ~/.config/spiris-tui/config.toml",
        GLOBAL_SHORTCUTS,
    )


def context_shortcuts(screen: Screen, mode: InputMode) -> list[str]:
    """Short key hints for the status bar."""
    if mode is InputMode.EDITING:
        return ["Enter:Next field", "Backspace:Delete", "Esc:Cancel"]
    hints = ["q:Quit", "h:Help"]
    if screen.type is ScreenType.HOME:
        hints += ["↑/↓:Select", "Enter:Open", "Tab:Next screen"]
    elif screen.type is ScreenType.AUTH:
        hints.append("Enter:Authorize")
    elif screen.is_list:
        hints += ["Enter:View", "n:New", "r:Refresh", "Tab:Next screen"]
    elif screen.type is ScreenType.ENTITY_DETAIL:
        if screen.kind.editable:
            hints.append("e:Edit")
        hints.append("Esc:Back")
    elif screen.type is ScreenType.ENTITY_CREATE:
        hints += ["n:New form", "Esc:Back"]
    else:
        hints.append("Esc:Back")
    return hints
