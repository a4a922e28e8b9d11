"""Data access layer for the session database."""

import logging
from datetime import datetime
from pathlib import Path

import aiosqlite

from spiris_tui.db.migrations import SCHEMA_VERSION, get_migration_sql
from spiris_tui.db.models import Credential

log = logging.getLogger('spiris_tui.db')

CREDENTIAL_ROW_ID = 1


class Repository:
    """Async repository for the single-session database."""

    def __init__(self, db_path: Path):
        self._db_path = Path(db_path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Connect to the database and run migrations.

        A file that is not a readable database is moved aside and replaced
        with a fresh one, which leaves the session without a credential.
        """
        try:
            await self._open()
        except aiosqlite.DatabaseError as e:
            await self.close()
            if not self._db_path.is_file():
                raise
            corrupt_path = self._db_path.with_name(self._db_path.name + '.corrupt')
            log.warning(f'Session database unreadable ({e}), moving it to {corrupt_path}')
            self._db_path.replace(corrupt_path)
            await self._open()

    async def _open(self) -> None:
        self._connection = await aiosqlite.connect(self._db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._run_migrations()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _run_migrations(self) -> None:
        """Run pending database migrations."""
        current_version = await self._get_schema_version()
        if current_version < SCHEMA_VERSION:
            migrations = get_migration_sql(current_version, SCHEMA_VERSION)
            for sql in migrations:
                await self._connection.executescript(sql)
            await self._connection.commit()

    async def _get_schema_version(self) -> int:
        """Get current schema version from database."""
        try:
            cursor = await self._connection.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = await cursor.fetchone()
            return row["version"] if row else 0
        except aiosqlite.OperationalError:
            return 0

    # Credential operations

    async def save_credential(self, credential: Credential) -> Credential:
        """Save the session credential, replacing any previous one."""
        now = datetime.now()
        await self._connection.execute(
            """INSERT INTO credentials (id, access_token, refresh_token,
               expires_at, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
               access_token=excluded.access_token,
               refresh_token=excluded.refresh_token,
               expires_at=excluded.expires_at,
               updated_at=excluded.updated_at""",
            (
                CREDENTIAL_ROW_ID,
                credential.access_token,
                credential.refresh_token,
                credential.expires_at.isoformat(),
                now.isoformat(),
            ),
        )
        await self._connection.commit()
        credential.updated_at = now
        return credential

    async def get_credential(self) -> Credential | None:
        """Get the session credential, if one has been saved."""
        cursor = await self._connection.execute(
            "SELECT * FROM credentials WHERE id = ?", (CREDENTIAL_ROW_ID,)
        )
        row = await cursor.fetchone()
        return self._row_to_credential(row) if row else None

    def _row_to_credential(self, row: aiosqlite.Row) -> Credential:
        return Credential(
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            expires_at=datetime.fromisoformat(row["expires_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
