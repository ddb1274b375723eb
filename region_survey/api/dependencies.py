import logging
from secrets import compare_digest

from fastapi import Header, HTTPException
import psycopg

from region_survey.config import get_settings
from region_survey.db import DatabaseConfigurationError, DatabaseConnectionError, get_connection
from region_survey.runtime_db_guard import describe_store_failure
from region_survey.services.errors import StoreFailureError
from region_survey.services.repository import PostgresRepository

logger = logging.getLogger(__name__)


def get_repository():
    """Yield a repository bound to one connection.

    Store errors raised while the request runs are thrown back in here and
    surface as ``StoreFailureError`` so the client always sees ``store_failure``.
    """
    try:
        with get_connection() as conn:
            yield PostgresRepository(conn)
    except (DatabaseConfigurationError, DatabaseConnectionError) as exc:
        logger.warning("store_unavailable error=%s", exc)
        raise StoreFailureError(str(exc)) from exc
    except psycopg.Error as exc:
        logger.warning("store_failure sqlstate=%s error=%s", getattr(exc, "sqlstate", None), exc)
        raise StoreFailureError(describe_store_failure(exc)) from exc


def require_admin_token(
    authorization: str | None = Header(default=None),
):
    try:
        expected = get_settings().admin_api_token
    except Exception:  # noqa: BLE001
        expected = None
    if not expected:
        raise HTTPException(status_code=503, detail="admin token is not configured")

    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")

    token = authorization.removeprefix("Bearer ").strip()
    if not compare_digest(token.encode(), expected.encode()):
        raise HTTPException(status_code=403, detail="invalid bearer token")
