"""Spiris Bokföring och Fakturering API client module."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

import httpx

from spiris_tui.config import SpirisConfig

log = logging.getLogger('spiris_tui.api')

REQUEST_TIMEOUT_SECONDS = 30.0


class EntityKind(Enum):
    """Record categories managed by the accounting service."""

    CUSTOMER = "customer"
    INVOICE = "invoice"
    ARTICLE = "article"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def plural(self) -> str:
        return f"{self.value}s"

    @property
    def editable(self) -> bool:
        """Whether a stored record can be replaced from a form.

        Invoice forms hold a single row dated today, so sending one over an
        existing invoice would lose its date and rows.
        """
        return self is not EntityKind.INVOICE


ENDPOINTS = {
    EntityKind.CUSTOMER: "customers",
    EntityKind.INVOICE: "customerinvoices",
    EntityKind.ARTICLE: "articles",
}


@dataclass
class Customer:
    """Spiris customer."""

    id: str | None
    customer_number: str | None
    name: str | None
    email: str | None
    phone: str | None
    website: str | None
    is_active: bool | None


@dataclass
class Invoice:
    """Spiris customer invoice."""

    id: str | None
    invoice_number: int | None
    customer_id: str | None
    invoice_date: datetime | None
    total_amount: Decimal | None
    total_vat_amount: Decimal | None
    remarks: str | None


@dataclass
class Article:
    """Spiris article (product or service)."""

    id: str | None
    number: str | None
    name: str | None
    net_price: Decimal | None
    is_active: bool | None


Entity = Customer | Invoice | Article


class SpirisClient:
    """Async client for the Spiris REST API."""

    def __init__(self, config: SpirisConfig, access_token: str):
        self._config = config
        self._access_token = access_token
        self._base_url = config.api_base_url
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "SpirisClient":
        """Enter async context."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._get_headers(),
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with authorization."""
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _send(self, method: str, endpoint: str, **kwargs) -> dict:
        """Send a request and decode the JSON body, raising SpirisAPIError on failure."""
        try:
            response = await self._client.request(method, f"/{endpoint}", **kwargs)
        except httpx.HTTPError as e:
            raise SpirisAPIError(f"Request to {endpoint} failed: {e}") from e
        if response.status_code >= 400:
            log.error(f'Spiris error response {response.status_code}: {response.text}')
            raise SpirisAPIError(
                _error_message(response), status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as e:
            raise SpirisAPIError(f"Invalid JSON from {endpoint}: {e}") from e

    async def list_page(self, endpoint: str, page_size: int, page: int) -> list[dict]:
        """Fetch one page of an endpoint's collection."""
        params = {"$pagesize": page_size, "$page": page}
        data = await self._send("GET", endpoint, params=params)
        if not isinstance(data, dict):
            raise SpirisAPIError(f"Unexpected response shape from {endpoint}")
        return data.get("Data") or []

    async def create(self, endpoint: str, payload: dict) -> dict:
        """Create a record on an endpoint."""
        log.debug(f'Create {endpoint} payload: {payload}')
        return await self._send("POST", endpoint, json=payload)

    async def update(self, endpoint: str, entity_id: str, payload: dict) -> dict:
        """Replace a record on an endpoint."""
        log.debug(f'Update {endpoint}/{entity_id} payload: {payload}')
        return await self._send("PUT", f"{endpoint}/{entity_id}", json=payload)

    def parse(self, kind: EntityKind, data: dict) -> Entity:
        """Parse a record of the given kind."""
        parsers = {
            EntityKind.CUSTOMER: self._parse_customer,
            EntityKind.INVOICE: self._parse_invoice,
            EntityKind.ARTICLE: self._parse_article,
        }
        try:
            return parsers[kind](data)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise SpirisAPIError(f"Could not decode {kind.value}: {e}") from e

    def _parse_customer(self, data: dict) -> Customer:
        """Parse customer data from API response."""
        return Customer(
            id=data.get("Id"),
            customer_number=data.get("CustomerNumber"),
            name=data.get("Name"),
            email=data.get("EmailAddress"),
            phone=data.get("Telephone"),
            website=data.get("WwwAddress"),
            is_active=data.get("IsActive"),
        )

    def _parse_invoice(self, data: dict) -> Invoice:
        """Parse invoice data from API response."""
        invoice_date = data.get("InvoiceDate")
        return Invoice(
            id=data.get("Id"),
            invoice_number=data.get("InvoiceNumber"),
            customer_id=data.get("CustomerId"),
            invoice_date=datetime.fromisoformat(invoice_date) if invoice_date else None,
            total_amount=_decimal(data.get("TotalAmount")),
            total_vat_amount=_decimal(data.get("TotalVatAmount")),
            remarks=data.get("Remarks"),
        )

    def _parse_article(self, data: dict) -> Article:
        """Parse article data from API response."""
        return Article(
            id=data.get("Id"),
            number=data.get("Number"),
            name=data.get("Name"),
            net_price=_decimal(data.get("NetPrice")),
            is_active=data.get("IsActive"),
        )


def _decimal(value) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def _error_message(response: httpx.Response) -> str:
    """Extract the service's error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(data, dict):
        message = data.get("DeveloperErrorMessage") or data.get("Message")
        if message:
            return f"HTTP {response.status_code}: {message}"
    return f"HTTP {response.status_code}"


class SpirisAPIError(Exception):
    """Exception raised for Spiris API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
