"""Multi-step form capture for creating and editing records."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum

from spiris_tui.api import EntityKind, SpirisAPIError
from spiris_tui.session.models import FormBuffer, InputMode, SessionState
from spiris_tui.session.navigation import NavigationController
from spiris_tui.session.sync import DataSynchronizer

log = logging.getLogger('spiris_tui.forms')


@dataclass(frozen=True)
class FormField:
    """One prompt of a form and the payload key it fills."""

    label: str
    key: str
    optional: bool = False


FORM_FIELDS: dict[EntityKind, tuple[FormField, ...]] = {
    EntityKind.CUSTOMER: (
        FormField("Name", "Name"),
        FormField("Email", "EmailAddress"),
        FormField("Phone", "Telephone"),
        FormField("Website (optional)", "WwwAddress", optional=True),
    ),
    EntityKind.INVOICE: (
        FormField("Customer ID", "CustomerId"),
        FormField("Description", "Text"),
        FormField("Amount", "UnitPrice"),
    ),
    EntityKind.ARTICLE: (
        FormField("Article number", "Number"),
        FormField("Name", "Name"),
        FormField("Net price", "NetPrice"),
    ),
}


class FormPhase(Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    SUBMITTING = "submitting"


class FormValidationError(Exception):
    """Raised when collected values cannot be turned into a payload."""

    pass


def required_field_count(kind: EntityKind) -> int:
    """Number of confirmations that completes a form of this kind."""
    return len(FORM_FIELDS[kind])


def build_payload(kind: EntityKind, values: list[str]) -> dict:
    """Map collected field values onto the service's JSON payload.

    Empty optional fields map to None; every other value is sent as typed.
    """
    fields = FORM_FIELDS[kind]
    if len(values) != len(fields):
        raise FormValidationError(
            f"{kind.label} form needs {len(fields)} values, got {len(values)}"
        )
    mapped = {
        f.key: (None if f.optional and value == "" else value)
        for f, value in zip(fields, values)
    }
    if kind is EntityKind.CUSTOMER:
        return {**mapped, "IsActive": True}
    if kind is EntityKind.INVOICE:
        return {
            "CustomerId": mapped["CustomerId"],
            "InvoiceDate": date.today().isoformat(),
            "Rows": [
                {
                    "Text": mapped["Text"],
                    "UnitPrice": _amount(mapped["UnitPrice"], "Amount"),
                    "Quantity": 1,
                }
            ],
        }
    return {
        "Number": mapped["Number"],
        "Name": mapped["Name"],
        "NetPrice": _amount(mapped["NetPrice"], "Net price"),
        "IsActive": True,
    }


def _amount(value: str, label: str) -> float:
    try:
        amount = Decimal(value.strip().replace(",", "."))
    except InvalidOperation:
        raise FormValidationError(f"{label} must be a number, got '{value}'") from None
    if not amount.is_finite():
        raise FormValidationError(f"{label} must be a number, got '{value}'")
    return float(amount)


class FormCollector:
    """Collects one field per confirmation and submits the completed form."""

    def __init__(
        self,
        state: SessionState,
        navigation: NavigationController,
        synchronizer: DataSynchronizer,
    ):
        self._state = state
        self._navigation = navigation
        self._synchronizer = synchronizer
        self._submitting = False

    @property
    def phase(self) -> FormPhase:
        if self._submitting:
            return FormPhase.SUBMITTING
        if self._state.form is not None:
            return FormPhase.COLLECTING
        return FormPhase.IDLE

    def start(self, kind: EntityKind, entity_id: str | None = None) -> None:
        """Begin a fresh form, discarding any previous one."""
        self._state.form = FormBuffer(kind=kind, entity_id=entity_id)
        self._state.navigation.mode = InputMode.EDITING

    def type_char(self, char: str) -> None:
        if self._state.form is not None:
            self._state.form.live += char

    def backspace(self) -> None:
        if self._state.form is not None:
            self._state.form.live = self._state.form.live[:-1]

    async def confirm_field(self) -> None:
        """Store the typed value and submit once every field is filled."""
        form = self._state.form
        if form is None:
            return
        form.collected.append(form.live)
        form.live = ""
        if form.cursor >= required_field_count(form.kind):
            await self._submit(form)

    async def _submit(self, form: FormBuffer) -> None:
        """Send the form to the service; the input loop waits for the outcome."""
        self._submitting = True
        self._state.form = None
        self._state.navigation.mode = InputMode.NORMAL
        verb = "update" if form.entity_id else "create"
        try:
            payload = build_payload(form.kind, form.collected)
            await self._synchronizer.write(form.kind, payload, form.entity_id)
        except (FormValidationError, SpirisAPIError) as e:
            log.warning(f'Failed to {verb} {form.kind.value}: {e}')
            self._state.set_error(f"Failed to {verb} {form.kind.value}: {e}")
            return
        finally:
            self._submitting = False
        self._state.error_message = None
        self._state.set_status(f"{form.kind.label} {verb}d successfully")
        self._navigation.show_list(form.kind)
        await self._synchronizer.load(form.kind)
