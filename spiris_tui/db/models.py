"""Persisted records."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Credential:
    """OAuth access credential for the Spiris API."""

    access_token: str
    expires_at: datetime
    refresh_token: str | None = None
    updated_at: datetime = field(default_factory=datetime.now)
