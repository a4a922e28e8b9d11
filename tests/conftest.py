"""Shared test fixtures."""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from spiris_tui.api import Article, Customer, EntityKind, Invoice, SpirisAPIError
from spiris_tui.config import (
    Config,
    LoggingConfig,
    SecurityConfig,
    SpirisConfig,
    StorageConfig,
)
from spiris_tui.db.models import Credential
from spiris_tui.db.repository import Repository
from spiris_tui.session.models import SessionState


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db_path(temp_dir):
    """Create a temporary database path."""
    return temp_dir / "test.db"


@pytest.fixture
def spiris_config():
    """Create a test Spiris config."""
    return SpirisConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        environment="sandbox",
        redirect_uri="http://localhost:8080/callback",
    )


@pytest.fixture
def storage_config(temp_db_path):
    """Create a test storage config."""
    return StorageConfig(path=temp_db_path)


@pytest.fixture
def security_config():
    """Create a test security config without encryption."""
    return SecurityConfig(encryption_key=None)


@pytest.fixture
def security_config_with_encryption():
    """Create a test security config with encryption."""
    from cryptography.fernet import Fernet

    key = Fernet.generate_key().decode()
    return SecurityConfig(encryption_key=key)


@pytest.fixture
def config(spiris_config, storage_config, security_config, temp_dir):
    """Create a test config."""
    return Config(
        spiris=spiris_config,
        storage=storage_config,
        security=security_config,
        logging=LoggingConfig(path=temp_dir / "test.log", level="DEBUG"),
    )


@pytest.fixture
async def repository(temp_db_path):
    """Create a repository with a temporary database."""
    repo = Repository(temp_db_path)
    await repo.connect()
    yield repo
    await repo.close()


@pytest.fixture
def credential():
    """A credential valid for the next hour."""
    return Credential(
        access_token="access-token",
        expires_at=datetime.now() + timedelta(hours=1),
        refresh_token="refresh-token",
    )


def make_customer(id: str = "c-1", name: str = "Acme AB") -> Customer:
    return Customer(
        id=id,
        customer_number="1001",
        name=name,
        email="info@acme.se",
        phone="08-123 45",
        website=None,
        is_active=True,
    )


def make_invoice(id: str = "i-1", number: int = 1) -> Invoice:
    return Invoice(
        id=id,
        invoice_number=number,
        customer_id="c-1",
        invoice_date=datetime(2024, 1, 15),
        total_amount=None,
        total_vat_amount=None,
        remarks=None,
    )


def make_article(id: str = "a-1", name: str = "Consulting") -> Article:
    return Article(id=id, number="A1", name=name, net_price=None, is_active=True)


class FakeGateway:
    """In-memory stand-in for SpirisGateway that records every call."""

    def __init__(self):
        self.items: dict[EntityKind, list] = {kind: [] for kind in EntityKind}
        self.list_error: SpirisAPIError | None = None
        self.write_error: SpirisAPIError | None = None
        self.tokens: list[str] = []
        self.list_calls: list[tuple[EntityKind, int, int]] = []
        self.created: list[tuple[EntityKind, dict]] = []
        self.updated: list[tuple[EntityKind, str, dict]] = []

    def factory(self, access_token: str) -> "FakeGateway":
        self.tokens.append(access_token)
        return self

    async def list_entities(self, kind, page_size, page):
        self.list_calls.append((kind, page_size, page))
        if self.list_error is not None:
            raise self.list_error
        return list(self.items[kind])

    async def create_entity(self, kind, payload):
        self.created.append((kind, payload))
        if self.write_error is not None:
            raise self.write_error
        return make_customer(id="new") if kind is EntityKind.CUSTOMER else None

    async def update_entity(self, kind, entity_id, payload):
        self.updated.append((kind, entity_id, payload))
        if self.write_error is not None:
            raise self.write_error
        return None


@pytest.fixture
def gateway():
    """A fake gateway with no records."""
    return FakeGateway()


@pytest.fixture
def state(credential):
    """An authenticated session on the Home screen."""
    return SessionState.initial(credential)
