"""
Audit store implementation on SQLite.

Writes go through a read-write connection; queries and summaries go through
a read-only connection that may point at a lagging replica. The table is
append-only: rows are never updated or deleted here.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .models import (
    AuditEvent,
    AuditEventCreate,
    AuditFilter,
    AuditSummary,
    Pagination,
    now_millis,
)

# Columns written from AuditEventCreate, in insert order
_COLUMNS = (
    ("audit_time", "time"),
    ("origin", "origin"),
    ("realm_name", "realm"),
    ("agent_user_id", "agent_user_id"),
    ("agent_username", "agent_username"),
    ("agent_realm_name", "agent_realm"),
    ("user_id", "subject_user_id"),
    ("username", "subject_username"),
    ("ct_event_type", "domain_event_type"),
    ("kc_event_type", "provider_event_type"),
    ("kc_operation_type", "provider_operation_type"),
    ("client_id", "client_id"),
    ("additional_info", "additional_info"),
)


class StorageError(Exception):
    """Raised when the audit database cannot be written or read."""
    pass


class AuditStore:
    """
    Append-only audit event store with SQLite backend.

    Safe for concurrent writers: SQLite serialises writes and AUTOINCREMENT
    hands out unique, increasing ids. Reads share no in-process state.
    """

    def __init__(
        self,
        db_path: str | Path = "audit.db",
        read_db_path: Optional[str | Path] = None,
    ) -> None:
        """
        Initialize audit store.

        Args:
            db_path: Path to the SQLite database used for writes
            read_db_path: Path used for reads (replica); defaults to db_path
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.read_db_path = Path(read_db_path) if read_db_path else self.db_path
        self._init_db()

    def _init_db(self) -> None:
        """Create database schema if it doesn't exist."""
        with self._write_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS audit (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    audit_time INTEGER NOT NULL,
                    origin TEXT,
                    realm_name TEXT,
                    agent_user_id TEXT,
                    agent_username TEXT,
                    agent_realm_name TEXT,
                    user_id TEXT,
                    username TEXT,
                    ct_event_type TEXT,
                    kc_event_type TEXT,
                    kc_operation_type TEXT,
                    client_id TEXT,
                    additional_info TEXT
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_audit_time
                ON audit(audit_time DESC, id DESC)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_audit_realm
                ON audit(realm_name)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_audit_user
                ON audit(realm_name, user_id)
            """)

            conn.commit()

    @contextmanager
    def _write_connection(self) -> Iterator[sqlite3.Connection]:
        """Read-write connection, closed on exit."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _read_connection(self) -> Iterator[sqlite3.Connection]:
        """Read-only connection, closed on exit."""
        uri = f"{self.read_db_path.resolve().as_uri()}?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def store(self, event_create: AuditEventCreate) -> AuditEvent:
        """
        Append a new audit event to the store.

        Args:
            event_create: Event data to append

        Returns:
            The stored event with its assigned id and time

        Raises:
            StorageError: If the event cannot be persisted. Never retried.
        """
        values = event_create.model_dump()
        if values["time"] is None:
            values["time"] = now_millis()

        columns = ", ".join(column for column, _ in _COLUMNS)
        placeholders = ", ".join("?" for _ in _COLUMNS)

        try:
            with self._write_connection() as conn:
                cursor = conn.execute(
                    f"INSERT INTO audit ({columns}) VALUES ({placeholders})",
                    tuple(values[field] for _, field in _COLUMNS),
                )
                conn.commit()
                event_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise StorageError(f"Failed to store audit event: {e}") from e

        return AuditEvent(id=event_id, **values)

    def query(
        self,
        audit_filter: AuditFilter,
        pagination: Optional[Pagination] = None,
    ) -> tuple[list[AuditEvent], int]:
        """
        Query audit events with filters.

        Args:
            audit_filter: Constraints on the rows to return
            pagination: Page window (defaults to the first maximal page)

        Returns:
            Page of matching events ordered by time then id, both
            descending, and the total number of matches ignoring pagination

        Raises:
            StorageError: If the read connection fails
        """
        if pagination is None:
            pagination = Pagination()

        where_clause, params = self._build_where(audit_filter)

        try:
            with self._read_connection() as conn:
                total = conn.execute(
                    f"SELECT COUNT(*) FROM audit {where_clause}", params
                ).fetchone()[0]
                rows = conn.execute(
                    f"""
                    SELECT * FROM audit
                    {where_clause}
                    ORDER BY audit_time DESC, id DESC
                    LIMIT ? OFFSET ?
                    """,
                    [*params, pagination.limit, pagination.offset],
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to query audit events: {e}") from e

        return [self._row_to_event(row) for row in rows], total

    def summary(self, realm: Optional[str] = None) -> AuditSummary:
        """
        Distinct origins, realms and domain event types among stored rows.

        Args:
            realm: Restrict the summary to one realm

        Raises:
            StorageError: If the read connection fails
        """
        values: dict[str, set[str]] = {}

        try:
            with self._read_connection() as conn:
                for column in ("origin", "realm_name", "ct_event_type"):
                    sql = f"SELECT DISTINCT {column} FROM audit WHERE {column} IS NOT NULL"
                    params: list[str] = []
                    if realm:
                        sql += " AND realm_name = ?"
                        params.append(realm)
                    rows = conn.execute(sql, params).fetchall()
                    values[column] = {row[0] for row in rows}
        except sqlite3.Error as e:
            raise StorageError(f"Failed to summarize audit events: {e}") from e

        return AuditSummary(
            origins=values["origin"],
            realms=values["realm_name"],
            domain_event_types=values["ct_event_type"],
        )

    def _build_where(self, audit_filter: AuditFilter) -> tuple[str, list]:
        """Translate a filter into a WHERE clause and its parameters."""
        conditions = []
        params: list[str | int] = []

        if audit_filter.realm:
            conditions.append("realm_name = ?")
            params.append(audit_filter.realm)

        if audit_filter.origin:
            conditions.append("origin = ?")
            params.append(audit_filter.origin)

        if audit_filter.domain_event_types:
            placeholders = ",".join("?" * len(audit_filter.domain_event_types))
            conditions.append(f"ct_event_type IN ({placeholders})")
            params.extend(audit_filter.domain_event_types)

        if audit_filter.provider_event_types:
            placeholders = ",".join("?" * len(audit_filter.provider_event_types))
            conditions.append(f"kc_event_type IN ({placeholders})")
            params.extend(audit_filter.provider_event_types)

        if audit_filter.subject_user_id:
            conditions.append("user_id = ?")
            params.append(audit_filter.subject_user_id)

        if audit_filter.date_from is not None:
            conditions.append("audit_time >= ?")
            params.append(audit_filter.date_from)

        if audit_filter.date_to is not None:
            conditions.append("audit_time <= ?")
            params.append(audit_filter.date_to)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        return where_clause, params

    def _row_to_event(self, row: sqlite3.Row) -> AuditEvent:
        """Convert database row to AuditEvent model."""
        values = {field: row[column] for column, field in _COLUMNS}
        return AuditEvent(id=row["id"], **values)
