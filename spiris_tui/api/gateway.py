"""Kind-based access to Spiris records for the session."""

import logging

from spiris_tui.api import ENDPOINTS, Entity, EntityKind, SpirisClient
from spiris_tui.config import SpirisConfig

log = logging.getLogger('spiris_tui.gateway')


class SpirisGateway:
    """List, create and update records of any entity kind.

    Each call opens its own HTTP session, so a gateway holds nothing but the
    configuration and the access token it was built with.
    """

    def __init__(self, config: SpirisConfig, access_token: str):
        self._config = config
        self._access_token = access_token

    async def list_entities(self, kind: EntityKind, page_size: int, page: int) -> list[Entity]:
        """Fetch one page of records of a kind."""
        async with SpirisClient(self._config, self._access_token) as client:
            rows = await client.list_page(ENDPOINTS[kind], page_size, page)
            entities = [client.parse(kind, row) for row in rows]
        log.info(f'Received {len(entities)} {kind.plural} (page {page}, size {page_size})')
        return entities

    async def create_entity(self, kind: EntityKind, payload: dict) -> Entity:
        """Create a record and return it as stored by the service."""
        async with SpirisClient(self._config, self._access_token) as client:
            data = await client.create(ENDPOINTS[kind], payload)
            entity = client.parse(kind, data)
        log.info(f'Created {kind.value} {entity.id}')
        return entity

    async def update_entity(self, kind: EntityKind, entity_id: str, payload: dict) -> Entity:
        """Replace the fields of an existing record."""
        async with SpirisClient(self._config, self._access_token) as client:
            data = await client.update(ENDPOINTS[kind], entity_id, {**payload, "Id": entity_id})
            entity = client.parse(kind, data)
        log.info(f'Updated {kind.value} {entity_id}')
        return entity
