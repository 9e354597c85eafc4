"""
Persistence for job records.

Writes go to the hosted `jobs` table through the Supabase client. When the
database is unreachable, or rejects the write because of a missing table, a
missing column or a row-level security policy, the record is appended to local
storage instead and the result is flagged as demo mode. Any other database
error is returned to the caller as a failed save.

Errors are classified once, here, into an ErrorKind; callers branch on the
kind instead of sniffing codes or messages.
"""

import json
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

import settings
from errors import (
    AuthorizationError,
    ConnectivityError,
    QuoteToolError,
    SchemaError,
    UnclassifiedRemoteError,
)
from job_model import utc_now_iso
from local_storage import LocalStorage
from logging_config import get_logger

logger = get_logger(__name__)

# one lock per storage directory; local saves are read-modify-write
_local_locks: Dict[str, threading.Lock] = {}
_local_locks_guard = threading.Lock()


def _local_lock(storage: LocalStorage) -> threading.Lock:
    key = str(storage.root.resolve())
    with _local_locks_guard:
        return _local_locks.setdefault(key, threading.Lock())

DEMO_MODE_MESSAGE = "Saved to local storage in demo mode"
MISSING_TABLE_MESSAGE = "Table does not exist in database. Using local storage until fixed."
UNKNOWN_COLUMN_MESSAGE = "Table columns don't match the data. Using local storage until fixed."
ACCESS_DENIED_MESSAGE = "Row-level security blocked the insert. Using local storage until fixed."
LOCAL_SAVE_FAILED_MESSAGE = "Failed to save data even in fallback mode"

# SQL a developer runs when a pricing column is missing server-side
COLUMN_MIGRATIONS = {
    "margin_percentage": "ALTER TABLE jobs ADD COLUMN IF NOT EXISTS margin_percentage INTEGER DEFAULT 20;",
    "rush_fee_enabled": "ALTER TABLE jobs ADD COLUMN IF NOT EXISTS rush_fee_enabled BOOLEAN DEFAULT FALSE;",
    "rush_fee_amount": "ALTER TABLE jobs ADD COLUMN IF NOT EXISTS rush_fee_amount DECIMAL(10,2) DEFAULT 0;",
}

RLS_INSTRUCTIONS = (
    "Add these policies on the table in the Supabase dashboard: "
    "FOR INSERT to anon WITH CHECK (true); FOR SELECT to anon USING (true)"
)

_MISSING_TABLE_CODES = {"42P01", "PGRST205"}
_UNKNOWN_COLUMN_CODES = {"42703", "PGRST204"}
_ACCESS_DENIED_CODES = {"42501"}


class ErrorKind(str, Enum):
    UNREACHABLE = "unreachable"
    MISSING_TABLE = "missing_table"
    UNKNOWN_COLUMN = "unknown_column"
    ACCESS_DENIED = "access_denied"
    OTHER = "other"

    @property
    def falls_back(self) -> bool:
        return self is not ErrorKind.OTHER

    @property
    def is_schema_mismatch(self) -> bool:
        return self in (ErrorKind.MISSING_TABLE, ErrorKind.UNKNOWN_COLUMN)


_FALLBACK_MESSAGES = {
    ErrorKind.UNREACHABLE: DEMO_MODE_MESSAGE,
    ErrorKind.MISSING_TABLE: MISSING_TABLE_MESSAGE,
    ErrorKind.UNKNOWN_COLUMN: UNKNOWN_COLUMN_MESSAGE,
    ErrorKind.ACCESS_DENIED: ACCESS_DENIED_MESSAGE,
}

_EXCEPTION_BY_KIND = {
    ErrorKind.UNREACHABLE: ConnectivityError,
    ErrorKind.MISSING_TABLE: SchemaError,
    ErrorKind.UNKNOWN_COLUMN: SchemaError,
    ErrorKind.ACCESS_DENIED: AuthorizationError,
    ErrorKind.OTHER: UnclassifiedRemoteError,
}


@dataclass(frozen=True)
class StoreError:
    kind: ErrorKind
    message: str
    code: Optional[str] = None
    details: Optional[str] = None

    def to_exception(self) -> QuoteToolError:
        extra = {"kind": self.kind.value}
        if self.code:
            extra["code"] = self.code
        if self.details:
            extra["details"] = self.details
        return _EXCEPTION_BY_KIND[self.kind](self.message, extra)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


@dataclass
class InsertResult:
    data: Optional[List[Dict[str, Any]]]
    demo_mode: bool
    message: Optional[str] = None
    error: Optional[StoreError] = None

    @property
    def record(self) -> Optional[Dict[str, Any]]:
        return self.data[0] if self.data else None


@dataclass
class QueryResult:
    data: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[StoreError] = None


@dataclass(frozen=True)
class ConnectionStatus:
    is_connected: bool
    error: Optional[StoreError] = None


def classify_error(exc: BaseException) -> StoreError:
    if not isinstance(exc, APIError):
        return StoreError(kind=ErrorKind.UNREACHABLE, message=str(exc) or type(exc).__name__)

    code = str(exc.code) if exc.code else None
    message = str(exc.message or "")
    details = str(exc.details) if exc.details else None
    lowered = message.lower()

    if code in _MISSING_TABLE_CODES:
        kind = ErrorKind.MISSING_TABLE
    elif code in _UNKNOWN_COLUMN_CODES:
        kind = ErrorKind.UNKNOWN_COLUMN
    elif (
        code in _ACCESS_DENIED_CODES
        or "row-level security" in lowered
        or "permission denied" in lowered
    ):
        kind = ErrorKind.ACCESS_DENIED
    # No recognized code: fall back to the Postgres message wording
    elif "column" in lowered and "does not exist" in lowered:
        kind = ErrorKind.UNKNOWN_COLUMN
    elif "relation" in lowered and "does not exist" in lowered:
        kind = ErrorKind.MISSING_TABLE
    else:
        kind = ErrorKind.OTHER

    return StoreError(kind=kind, message=message or "Database error", code=code, details=details)


def create_supabase_client(
    url: Optional[str] = None,
    key: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
) -> Optional[Client]:
    """
    Build a Supabase client from settings. Returns None when the URL or key is
    missing, which the JobStore treats as "unreachable".
    """
    url = url if url is not None else settings.SUPABASE_URL
    key = key if key is not None else settings.SUPABASE_ANON_KEY
    if not url or not key:
        logger.warning("SUPABASE_URL / SUPABASE_ANON_KEY not set; jobs will be stored locally")
        return None

    options = ClientOptions(
        postgrest_client_timeout=timeout or settings.REQUEST_TIMEOUT_SECONDS,
    )
    return create_client(url, key, options=options)


def _next_local_id(existing: List[Dict[str, Any]]) -> int:
    """Epoch milliseconds, bumped past any numeric id already stored."""
    now_ms = int(time.time() * 1000)
    taken = [r.get("id") for r in existing if isinstance(r, dict)]
    highest = max((i for i in taken if isinstance(i, int) and not isinstance(i, bool)), default=0)
    return max(now_ms, highest + 1)


class JobStore:
    """
    Remote-first job persistence with a local storage fallback.

    insert() never raises: every outcome comes back as an InsertResult.
    query() always goes to the database and reports failures in
    QueryResult.error.
    """

    def __init__(self, client: Optional[Client] = None, storage: Optional[LocalStorage] = None):
        self.client = client
        self.storage = storage or LocalStorage()

    # ----------------------------
    # Connectivity
    # ----------------------------
    def check_connection(self, table: str) -> ConnectionStatus:
        if self.client is None:
            return ConnectionStatus(
                is_connected=False,
                error=StoreError(kind=ErrorKind.UNREACHABLE, message="Supabase is not configured"),
            )

        try:
            self.client.table(table).select("id").limit(1).execute()
            return ConnectionStatus(is_connected=True)
        except APIError as e:
            # The server answered, so it is reachable even if the table is not usable
            err = classify_error(e)
            logger.info("Connection check on %s returned %s (%s)", table, err.kind.value, err.code)
            return ConnectionStatus(is_connected=True, error=err)
        except Exception as e:
            logger.warning("Supabase connection check failed: %s", e)
            return ConnectionStatus(is_connected=False, error=classify_error(e))

    # ----------------------------
    # Insert
    # ----------------------------
    def insert(self, table: str, record: Dict[str, Any]) -> InsertResult:
        status = self.check_connection(table)
        if not status.is_connected:
            logger.warning("Database unreachable; saving %s record locally", table)
            return self._save_local(table, record)

        try:
            resp = self.client.table(table).insert(record).execute()
        except Exception as e:
            err = classify_error(e)
            return self._handle_insert_error(table, record, err)

        data = list(resp.data or [])
        logger.info("Inserted %d record(s) into %s", len(data), table)
        return InsertResult(data=data, demo_mode=False)

    def _handle_insert_error(self, table: str, record: Dict[str, Any], err: StoreError) -> InsertResult:
        if err.kind is ErrorKind.OTHER:
            logger.error("Insert into %s failed (%s): %s", table, err.code, err.message)
            return InsertResult(data=None, demo_mode=False, message=err.message, error=err)

        if err.kind is ErrorKind.MISSING_TABLE:
            logger.error("Table %r does not exist; create it with setup_database.py", table)
        elif err.kind is ErrorKind.UNKNOWN_COLUMN:
            logger.error("Column mismatch in table %r: %s", table, err.message)
            for column, sql in COLUMN_MIGRATIONS.items():
                if column in err.message:
                    logger.error("Missing %s column. Run: %s", column, sql)
        elif err.kind is ErrorKind.ACCESS_DENIED:
            logger.error("Row-level security rejected insert into %r. %s", table, RLS_INSTRUCTIONS)
        else:
            logger.warning("Insert into %s failed in transit: %s", table, err.message)

        return self._save_local(table, record, _FALLBACK_MESSAGES[err.kind])

    # ----------------------------
    # Local fallback
    # ----------------------------
    def load_local(self, table: str) -> List[Dict[str, Any]]:
        raw = self.storage.get_item(table)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Local %s data is unreadable; ignoring it", table)
            return []
        return data if isinstance(data, list) else []

    def _save_local(self, table: str, record: Dict[str, Any], message: str = DEMO_MODE_MESSAGE) -> InsertResult:
        try:
            with _local_lock(self.storage):
                existing = self.load_local(table)

                item = dict(record)
                if not item.get("id"):
                    item["id"] = _next_local_id(existing)
                if not item.get("created_at"):
                    item["created_at"] = utc_now_iso()

                existing.append(item)
                self.storage.set_item(table, json.dumps(existing))
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving %s record to local storage: %s", table, e)
            return InsertResult(
                data=None,
                demo_mode=True,
                message=LOCAL_SAVE_FAILED_MESSAGE,
                error=StoreError(kind=ErrorKind.UNREACHABLE, message=LOCAL_SAVE_FAILED_MESSAGE),
            )

        return InsertResult(data=[item], demo_mode=True, message=message)

    # ----------------------------
    # Query
    # ----------------------------
    def query(
        self,
        table: str,
        *,
        or_filter: Optional[str] = None,
        order_by: Optional[str] = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> QueryResult:
        if self.client is None:
            return QueryResult(error=StoreError(kind=ErrorKind.UNREACHABLE, message="Supabase is not configured"))

        try:
            q = self.client.table(table).select("*")
            if or_filter:
                q = q.or_(or_filter)
            if order_by:
                q = q.order(order_by, desc=descending)
            if limit:
                q = q.limit(limit)
            resp = q.execute()
        except Exception as e:
            err = classify_error(e)
            logger.error("Query on %s failed (%s): %s", table, err.kind.value, err.message)
            return QueryResult(error=err)

        return QueryResult(data=list(resp.data or []))

    def fetch_similar(self, table: str, material: str, part_type: str, *, limit: int = 5) -> QueryResult:
        # PostgREST or-filter: commas and parentheses would split the expression
        def _clean(s: str) -> str:
            return "".join(ch for ch in s if ch not in ",()").strip()

        or_filter = f"material.ilike.%{_clean(material)}%,part_type.ilike.%{_clean(part_type)}%"
        return self.query(table, or_filter=or_filter, limit=limit)
