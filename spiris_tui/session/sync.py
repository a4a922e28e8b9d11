"""Loading and refreshing entity collections from the Spiris API."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from spiris_tui.api import Entity, EntityKind, SpirisAPIError
from spiris_tui.api.gateway import SpirisGateway
from spiris_tui.session.models import SessionState

log = logging.getLogger('spiris_tui.sync')

PAGE_SIZE = 50
FIRST_PAGE = 1
NOT_AUTHENTICATED = "Not authenticated. Run spiris-tui-login, then restart spiris-tui"

GatewayFactory = Callable[[str], SpirisGateway]


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a background refresh, handed back to the main loop."""

    kind: EntityKind
    items: list[Entity] | None = None
    error: str | None = None


class DataSynchronizer:
    """Keeps the cached collections in step with the service.

    `load` runs inside the current intent and blocks until the service
    answers. `refresh` runs as a background task that only sees a copy of the
    access token; its result is queued and applied by `apply_pending` on the
    main loop, which is the only place collections change.
    """

    def __init__(self, state: SessionState, gateway_factory: GatewayFactory):
        self._state = state
        self._gateway_factory = gateway_factory
        self._results: asyncio.Queue[SyncResult] = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()
        self._in_flight: dict[EntityKind, int] = {}

    def _gateway(self) -> SpirisGateway | None:
        credential = self._state.credential
        if credential is None:
            return None
        return self._gateway_factory(credential.access_token)

    async def load(self, kind: EntityKind) -> bool:
        """Load the first page of a kind, waiting for the result."""
        gateway = self._gateway()
        if gateway is None:
            self._state.set_error(NOT_AUTHENTICATED)
            return False
        collection = self._state.collection(kind)
        previous_error = collection.last_error
        collection.loading = True
        collection.last_error = None
        try:
            items = await gateway.list_entities(kind, PAGE_SIZE, FIRST_PAGE)
        except SpirisAPIError as e:
            self._record_failure(kind, str(e))
            return False
        finally:
            collection.loading = self._in_flight.get(kind, 0) > 0
        self._record_success(kind, items, previous_error)
        return True

    def refresh(self, kind: EntityKind) -> bool:
        """Start a background reload of a kind without waiting for it."""
        gateway = self._gateway()
        if gateway is None:
            self._state.set_error(NOT_AUTHENTICATED)
            return False
        self._in_flight[kind] = self._in_flight.get(kind, 0) + 1
        self._state.collection(kind).loading = True
        task = asyncio.create_task(_fetch(gateway, kind, self._results))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        log.debug(f'Spawned background refresh of {kind.plural}')
        return True

    def apply_pending(self) -> int:
        """Apply every queued background result; returns how many were applied."""
        applied = 0
        while True:
            try:
                result = self._results.get_nowait()
            except asyncio.QueueEmpty:
                return applied
            remaining = self._in_flight.get(result.kind, 1) - 1
            self._in_flight[result.kind] = remaining
            collection = self._state.collection(result.kind)
            collection.loading = remaining > 0
            if self._state.screen.kind is not result.kind:
                log.debug(f'Discarding refresh of {result.kind.plural}: no longer shown')
                continue
            if result.error is not None:
                self._record_failure(result.kind, result.error)
            else:
                self._record_success(result.kind, result.items, collection.last_error)
                self._state.set_status(f"Loaded {len(result.items)} {result.kind.plural}")
            applied += 1

    async def write(self, kind: EntityKind, payload: dict, entity_id: str | None = None) -> Entity:
        """Create a record, or update one when an identifier is given."""
        gateway = self._gateway()
        if gateway is None:
            raise SpirisAPIError("Not authenticated")
        if entity_id:
            return await gateway.update_entity(kind, entity_id, payload)
        return await gateway.create_entity(kind, payload)

    def _record_success(
        self, kind: EntityKind, items: list[Entity], previous_error: str | None
    ) -> None:
        collection = self._state.collection(kind)
        collection.replace_items(items)
        collection.last_error = None
        if previous_error and self._state.error_message == _failure_message(kind, previous_error):
            self._state.error_message = None

    def _record_failure(self, kind: EntityKind, error: str) -> None:
        log.warning(f'Failed to load {kind.plural}: {error}')
        self._state.collection(kind).last_error = error
        self._state.set_error(_failure_message(kind, error))


async def _fetch(
    gateway: SpirisGateway, kind: EntityKind, results: asyncio.Queue
) -> None:
    """Background unit: fetch one page and report the outcome."""
    try:
        items = await gateway.list_entities(kind, PAGE_SIZE, FIRST_PAGE)
    except SpirisAPIError as e:
        results.put_nowait(SyncResult(kind, error=str(e)))
    except Exception as e:
        log.exception(f'Background refresh of {kind.plural} crashed')
        results.put_nowait(SyncResult(kind, error=f"Unexpected error: {e}"))
    else:
        results.put_nowait(SyncResult(kind, items=items))


def _failure_message(kind: EntityKind, error: str) -> str:
    return f"Failed to load {kind.plural}: {error}"
