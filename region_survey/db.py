from contextlib import contextmanager
from pathlib import Path
from urllib.parse import quote, unquote

import psycopg
from psycopg.rows import dict_row

from region_survey.config import get_settings

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "db" / "schema.sql"

# (sqlstate prefix, reason); checked in order so the exact code wins over its class.
_SQLSTATE_REASONS = (
    ("28P01", "auth_failed"),
    ("28", "auth_error"),
    ("08001", "network_error"),
    ("08006", "network_error"),
)
_MESSAGE_REASONS = (
    ("could not translate host name", "invalid_host_or_uri"),
    ("connection refused", "connection_refused"),
    ("timeout expired", "network_timeout"),
    ("timed out", "network_timeout"),
)


class DatabaseConfigurationError(RuntimeError):
    """Raised when DATABASE_URL is missing or settings cannot be loaded."""


class DatabaseConnectionError(RuntimeError):
    """Raised when the survey store cannot be reached."""


def _classify_connection_error(exc: psycopg.Error) -> str:
    sqlstate = str(getattr(exc, "sqlstate", "") or "").upper()
    if sqlstate:
        for prefix, reason in _SQLSTATE_REASONS:
            if sqlstate.startswith(prefix):
                return reason

    message = str(exc).lower()
    for needle, reason in _MESSAGE_REASONS:
        if needle in message:
            return reason
    return "unknown"


def _normalize_database_url(database_url: str) -> str:
    # Hosted Postgres passwords often carry '@' or '#' that must be percent-encoded.
    text = str(database_url or "").strip()
    scheme, sep, remainder = text.partition("://")
    if not sep or not scheme.startswith("postgres") or "@" not in remainder:
        return text

    credentials, tail = remainder.rsplit("@", 1)
    username, has_password, raw_password = credentials.partition(":")
    if not username or not has_password:
        return text
    return f"{scheme}://{username}:{quote(unquote(raw_password), safe='')}@{tail}"


@contextmanager
def get_connection():
    try:
        settings = get_settings()
    except Exception as exc:  # noqa: BLE001
        raise DatabaseConfigurationError("database settings are not configured") from exc

    database_url = _normalize_database_url(settings.database_url)
    if not database_url:
        raise DatabaseConfigurationError("DATABASE_URL is empty")

    options = f"-c statement_timeout={settings.db_statement_timeout_ms}" if settings.db_statement_timeout_ms else None
    try:
        conn = psycopg.connect(
            database_url,
            row_factory=dict_row,
            connect_timeout=settings.db_connect_timeout_seconds,
            options=options,
        )
    except psycopg.Error as exc:
        reason = _classify_connection_error(exc)
        raise DatabaseConnectionError(f"database connection failed ({reason})") from exc

    try:
        yield conn
    finally:
        conn.close()


def run_schema(schema_path: str | Path = SCHEMA_PATH) -> None:
    sql = Path(schema_path).read_text(encoding="utf-8")
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(sql)
        conn.commit()
