"""
Snowflake connections for the training log tables.

Repositories are the only consumers of connections; route handlers and the
streak service never see SQL. A connection is opened per request by
create_snowflake_connection(), which hands out either a real
snowflake-connector connection or an in-memory MockSnowflakeConnection
that understands the repositories' queries.
"""

import base64
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Generator, Optional, Protocol

logger = logging.getLogger(__name__)

TABLES = ("training_logs", "training_slots", "skipped_days")


class SnowflakeConnectionError(Exception):
    """Raised when a Snowflake session can't be opened."""
    pass


class SnowflakeConnection(Protocol):
    """The slice of a DB-API connection the repositories use."""

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Where and as whom to connect."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "TRAININGLOG"
    schema: str = "PUBLIC"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


def _load_private_key(key_pem: bytes) -> bytes:
    """PEM private key (unencrypted) to the PKCS8 DER bytes the connector wants."""
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    private_key = serialization.load_pem_private_key(
        key_pem,
        password=None,
        backend=default_backend(),
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _read_private_key(config: SnowflakeConfig) -> Optional[bytes]:
    if config.private_key_base64:
        return _load_private_key(base64.b64decode(config.private_key_base64))
    if config.private_key_path:
        with open(config.private_key_path, "rb") as key_file:
            return _load_private_key(key_file.read())
    return None


def _connect_params(config: SnowflakeConfig) -> dict[str, Any]:
    """
    Keyword arguments for snowflake.connector.connect().

    A private key (inline or on disk) takes precedence over a password.
    """
    params: dict[str, Any] = {
        "account": config.account,
        "user": config.user,
        "database": config.database,
        "schema": config.schema,
        "warehouse": config.warehouse,
        "role": config.role,
        "client_session_keep_alive": True,
    }

    private_key = _read_private_key(config)
    if private_key:
        params["private_key"] = private_key
        auth = "key-pair"
    elif config.password:
        params["password"] = config.password
        auth = "password"
    else:
        raise SnowflakeConnectionError("Snowflake needs a password or a private key")

    logger.info("Connecting to Snowflake", extra={"auth": auth, "account": config.account})
    return params


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """Open a Snowflake session and close it when the block exits."""
    import snowflake.connector

    try:
        conn = snowflake.connector.connect(**_connect_params(config))
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Could not connect to Snowflake",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    logger.debug(
        "Snowflake session opened",
        extra={"database": config.database, "schema": config.schema}
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
        except Exception as e:
            logger.warning("Error closing Snowflake session", extra={"error": str(e)})


# ---------------------------------------------------------------------------
# In-memory stand-in
# ---------------------------------------------------------------------------

class MockSnowflakeCursor:
    """
    Cursor over in-memory tables.

    Understands exactly the statements the log, slot and skip repositories
    issue. Statements are routed by verb and table name, and parameters are
    read positionally in the order the repositories bind them.
    """

    def __init__(self, storage: dict[str, list[dict[str, Any]]]) -> None:
        self._storage = storage
        self._results: list[tuple] = []
        self._rowcount = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> "MockSnowflakeCursor":
        statement = " ".join(query.upper().split())
        params = tuple(params or ())
        self._results = []
        self._rowcount = 0

        logger.debug("Mock statement", extra={"statement": statement[:80], "params": params})

        handlers = {
            "SELECT": self._handle_select,
            "INSERT": self._handle_insert,
            "DELETE": self._handle_delete,
        }
        handler = handlers.get(statement.split(" ", 1)[0])
        if handler is None:
            raise NotImplementedError(f"Mock cursor can't run: {statement[:40]}")
        handler(statement, params)
        return self

    def _handle_select(self, query: str, params: tuple) -> None:
        if 'FROM TRAINING_LOGS' in query:
            rows = [r for r in self._storage['training_logs'] if r['user_id'] == params[0]]
            if 'COUNT(*)' in query:
                self._results = [(len(rows),)]
                return
            start, end = params[1], params[2]
            rows = sorted(
                (r for r in rows if start <= r['logged_at'] <= end),
                key=lambda r: r['logged_at'],
            )
            self._results = [
                (r['user_id'], r['logged_at'], r['visibility'], r['tags'], r['notes'])
                for r in rows
            ]

        elif 'FROM TRAINING_SLOTS' in query:
            rows = sorted(
                (r for r in self._storage['training_slots'] if r['user_id'] == params[0]),
                key=lambda r: r['position'],
            )
            self._results = [
                (r['day_of_week'], r['scheduled_time'], r['source_group_id'], r['adopted_at'])
                for r in rows
            ]

        elif 'FROM SKIPPED_DAYS' in query:
            rows = [
                r for r in self._storage['skipped_days']
                if r['user_id'] == params[0]
                and (len(params) < 2 or r['skip_date'] == _as_date(params[1]))
                and (len(params) < 4 or (
                    r['day_of_week'] == params[2] and r['scheduled_time'] == params[3]
                ))
            ]
            if 'COUNT(*)' in query:
                self._results = [(len(rows),)]
                return
            rows.sort(key=lambda r: (r['skip_date'], r['scheduled_time']), reverse=True)
            self._results = [
                (r['user_id'], r['skip_date'], r['day_of_week'],
                 r['scheduled_time'], r['reason'], r['created_at'])
                for r in rows
            ]

    def _handle_insert(self, query: str, params: tuple) -> None:
        if 'TRAINING_LOGS' in query:
            log_id, user_id, logged_at, visibility, tags, notes = params
            self._storage['training_logs'].append({
                'log_id': log_id,
                'user_id': user_id,
                'logged_at': logged_at,
                'visibility': visibility,
                'tags': tags,
                'notes': notes,
            })
        elif 'TRAINING_SLOTS' in query:
            user_id, position, day_of_week, scheduled_time, source_group_id, adopted_at = params
            self._storage['training_slots'].append({
                'user_id': user_id,
                'position': position,
                'day_of_week': day_of_week,
                'scheduled_time': scheduled_time,
                'source_group_id': source_group_id,
                'adopted_at': adopted_at,
            })
        elif 'SKIPPED_DAYS' in query:
            user_id, skip_date, day_of_week, scheduled_time, reason, created_at = params
            self._storage['skipped_days'].append({
                'user_id': user_id,
                'skip_date': _as_date(skip_date),
                'day_of_week': day_of_week,
                'scheduled_time': scheduled_time,
                'reason': reason,
                'created_at': created_at,
            })
        else:
            return
        self._rowcount = 1

    def _handle_delete(self, query: str, params: tuple) -> None:
        if 'TRAINING_SLOTS' in query:
            table = 'training_slots'
            keep = [r for r in self._storage[table] if r['user_id'] != params[0]]
        elif 'SKIPPED_DAYS' in query:
            table = 'skipped_days'
            keep = [
                r for r in self._storage[table]
                if not (r['user_id'] == params[0] and r['skip_date'] == _as_date(params[1]))
            ]
        else:
            return
        self._rowcount = len(self._storage[table]) - len(keep)
        self._storage[table][:] = keep

    def fetchone(self) -> Optional[tuple]:
        return self._results[0] if self._results else None

    def fetchall(self) -> list[tuple]:
        return list(self._results)

    def close(self) -> None:
        self._results = []

    @property
    def rowcount(self) -> int:
        return self._rowcount


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class MockSnowflakeConnection:
    """
    In-memory connection for local development and tests.

    Every table is a list of row dicts. Writes are visible immediately, so
    commit and rollback do nothing.
    """

    def __init__(self) -> None:
        self._storage: dict[str, list[dict[str, Any]]] = {table: [] for table in TABLES}
        logger.info("Using in-memory Snowflake tables")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    def close(self) -> None:
        pass

    def _clear(self) -> None:
        """Empty every table."""
        for rows in self._storage.values():
            rows.clear()


# Mock mode keeps one in-memory database for the life of the process
_shared_mock_connection: Optional[MockSnowflakeConnection] = None


def shared_mock_connection() -> MockSnowflakeConnection:
    global _shared_mock_connection

    if _shared_mock_connection is None:
        _shared_mock_connection = MockSnowflakeConnection()
    return _shared_mock_connection


@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    A connection for one unit of work.

    In mock mode every caller gets the same in-memory connection, so rows
    written by one request are there for the next. Otherwise a real
    Snowflake session is opened from config and closed afterwards.
    """
    if mock_mode:
        yield shared_mock_connection()
        return

    if config is None:
        raise ValueError("A SnowflakeConfig is required outside mock mode")

    with get_snowflake_connection(config) as conn:
        yield conn
