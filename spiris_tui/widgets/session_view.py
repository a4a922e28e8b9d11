"""Text rendition of the session state."""

from decimal import Decimal

from rich.markup import escape
from textual.widgets import Static

from spiris_tui.api import Article, Customer, Entity, EntityKind, Invoice
from spiris_tui.help import GLOBAL_SHORTCUTS, context_shortcuts, screen_help
from spiris_tui.session.forms import FORM_FIELDS
from spiris_tui.session.models import InputMode, ScreenType, SessionState
from spiris_tui.session.navigation import HOME_MENU

CURSOR = "▸"


def render_session(state: SessionState) -> str:
    """Render the body of the current screen as console markup."""
    screen = state.screen
    if screen.type is ScreenType.HOME:
        return render_home(state)
    if screen.type is ScreenType.AUTH:
        return render_auth(state)
    if screen.type is ScreenType.ENTITY_LIST:
        return render_list(state, screen.kind)
    if screen.type is ScreenType.ENTITY_DETAIL:
        return render_detail(state, screen.kind, screen.entity_id)
    if screen.is_form:
        return render_form(state)
    return render_help(state)


def render_home(state: SessionState) -> str:
    lines = ["[b]Spiris Bokföring och Fakturering[/b]", ""]
    for index, (label, _) in enumerate(HOME_MENU):
        if index == state.navigation.menu_index:
            lines.append(f"[reverse] {CURSOR} {label} [/reverse]")
        else:
            lines.append(f"   {label}")
    return "\n".join(lines)


def render_auth(state: SessionState) -> str:
    lines = ["[b]Authentication required[/b]", ""]
    if state.authorization is None:
        lines.append("Press Enter to start the OAuth authorization flow.")
    else:
        lines += [
            "Open this URL in your browser and approve access:",
            "",
            f"[u]{escape(state.authorization.url)}[/u]",
            "",
            "Then complete the login with [b]spiris-tui-login --code <code>[/b]",
            "and restart spiris-tui.",
        ]
    return "\n".join(lines)


def render_list(state: SessionState, kind: EntityKind) -> str:
    collection = state.collection(kind)
    lines = [f"[b]{kind.label}s[/b] ({len(collection.items)})", ""]
    if collection.loading and not collection.items:
        lines.append(f"Loading {kind.plural}...")
    elif not collection.items:
        if collection.loaded:
            lines.append(f"No {kind.plural} found. Press 'n' to create one.")
        elif collection.last_error:
            lines.append(f"Could not load {kind.plural}. Press 'r' to retry.")
        else:
            lines.append(f"No {kind.plural} loaded yet. Press 'r' to load.")
    for index, item in enumerate(collection.items):
        row = escape(format_row(item))
        if index == collection.selected:
            lines.append(f"[reverse] {CURSOR} {row} [/reverse]")
        else:
            lines.append(f"   {row}")
    return "\n".join(lines)


def format_row(item: Entity) -> str:
    """One-line summary of an entity for list screens."""
    if isinstance(item, Customer):
        return f"{item.customer_number or '-':<8} {item.name or '':<30} {item.email or ''}"
    if isinstance(item, Invoice):
        date = item.invoice_date.strftime("%Y-%m-%d") if item.invoice_date else "-"
        return f"#{item.invoice_number or '-':<7} {date:<11} {_money(item.total_amount):>12}"
    return f"{item.number or '-':<10} {item.name or '':<30} {_money(item.net_price):>12}"


def render_detail(state: SessionState, kind: EntityKind, entity_id: str) -> str:
    item = state.collection(kind).find(entity_id)
    if item is None:
        return f"{kind.label} not found. Press Esc to go back."
    lines = [f"[b]{kind.label} details[/b]", ""]
    for label, value in detail_fields(item):
        lines.append(f"[dim]{label + ':':<16}[/dim] {escape(value)}")
    return "\n".join(lines)


def detail_fields(item: Entity) -> list[tuple[str, str]]:
    if isinstance(item, Customer):
        fields = [
            ("Customer no.", item.customer_number),
            ("Name", item.name),
            ("Email", item.email),
            ("Phone", item.phone),
            ("Website", item.website),
            ("Active", _yes_no(item.is_active)),
        ]
    elif isinstance(item, Invoice):
        fields = [
            ("Invoice no.", item.invoice_number),
            ("Customer ID", item.customer_id),
            ("Date", item.invoice_date.strftime("%Y-%m-%d") if item.invoice_date else None),
            ("Total", _money(item.total_amount)),
            ("VAT", _money(item.total_vat_amount)),
            ("Remarks", item.remarks),
        ]
    elif isinstance(item, Article):
        fields = [
            ("Number", item.number),
            ("Name", item.name),
            ("Net price", _money(item.net_price)),
            ("Active", _yes_no(item.is_active)),
        ]
    else:
        fields = []
    fields.append(("ID", item.id))
    return [(label, "-" if value is None else str(value)) for label, value in fields]


def render_form(state: SessionState) -> str:
    screen = state.screen
    action = "Edit" if screen.type is ScreenType.ENTITY_EDIT else "New"
    lines = [f"[b]{action} {screen.kind.value}[/b]", ""]
    form = state.form
    if form is None:
        lines.append("No form in progress.")
        if screen.type is ScreenType.ENTITY_CREATE:
            lines.append("Press 'n' to start a new form, Esc to go back.")
        else:
            lines.append("Press Esc to go back.")
        return "\n".join(lines)
    for index, field in enumerate(FORM_FIELDS[form.kind]):
        if index < form.cursor:
            value = escape(form.collected[index])
            lines.append(f"   {field.label + ':':<20} {value}")
        elif index == form.cursor:
            lines.append(f"[b]{CURSOR}  {field.label + ':':<20} {escape(form.live)}█[/b]")
        else:
            lines.append(f"[dim]   {field.label + ':':<20}[/dim]")
    return "\n".join(lines)


def render_help(state: SessionState) -> str:
    lines = []
    context = state.navigation.return_to
    if context is not None and context.type is not ScreenType.HELP:
        context_help = screen_help(context)
        lines += [f"[b]{context_help.title}[/b]", context_help.description, ""]
        lines += _shortcut_lines(context_help.shortcuts)
        lines.append("")
    general = screen_help(state.screen)
    lines += [f"[b]{general.title}[/b]", general.description, ""]
    lines += _shortcut_lines(GLOBAL_SHORTCUTS)
    return "\n".join(lines)


def render_status(state: SessionState) -> str:
    """Render the status line: error, status message, key hints."""
    parts = []
    if state.error_message:
        parts.append(f"[b red]{escape(state.error_message)}[/b red]")
    if state.status_message:
        parts.append(escape(state.status_message))
    mode = "EDIT" if state.mode is InputMode.EDITING else "NORMAL"
    parts.append(f"[b]{mode}[/b] " + " ".join(context_shortcuts(state.screen, state.mode)))
    return " | ".join(parts)


def _shortcut_lines(shortcuts) -> list[str]:
    return [f"  [b]{escape(key):<18}[/b] {escape(text)}" for key, text in shortcuts]


def _money(amount: Decimal | None) -> str:
    return "-" if amount is None else f"{amount:,.2f}"


def _yes_no(flag: bool | None) -> str | None:
    if flag is None:
        return None
    return "yes" if flag else "no"


class SessionView(Static):
    """Main body showing the current screen of the session."""

    DEFAULT_CSS = """
    SessionView {
        height: 1fr;
        padding: 1 2;
    }
    """

    def show(self, state: SessionState) -> None:
        self.update(render_session(state))


class StatusBar(Static):
    """Status bar with the latest message and key hints."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: 1;
        background: $primary;
        color: $text;
        padding: 0 1;
    }
    """

    def show(self, state: SessionState) -> None:
        self.update(render_status(state))
