from __future__ import annotations

import logging
from threading import Lock

from region_survey.config import Settings, get_settings
from region_survey.db import SCHEMA_PATH, run_schema

logger = logging.getLogger(__name__)

# undefined_table, undefined_column
_SCHEMA_MISMATCH_SQLSTATE = {"42P01", "42703"}

_schema_heal_lock = Lock()
_schema_healed_once = False

DB_BOOTSTRAP_STATE: dict[str, object] = {
    "enabled": False,
    "attempted": False,
    "ok": None,
    "detail": None,
}


def should_auto_apply_schema_on_startup(settings: Settings | None = None) -> bool:
    if settings is None:
        try:
            settings = get_settings()
        except Exception:  # noqa: BLE001
            return False
    if settings.auto_apply_schema_on_startup is not None:
        return settings.auto_apply_schema_on_startup
    return settings.app_env.strip().lower() == "prod"


def apply_schema_bootstrap() -> dict[str, object]:
    enabled = should_auto_apply_schema_on_startup()
    DB_BOOTSTRAP_STATE["enabled"] = enabled
    DB_BOOTSTRAP_STATE["attempted"] = enabled
    if not enabled:
        DB_BOOTSTRAP_STATE["ok"] = None
        DB_BOOTSTRAP_STATE["detail"] = "disabled"
        return DB_BOOTSTRAP_STATE

    try:
        run_schema(SCHEMA_PATH)
    except Exception as exc:  # noqa: BLE001
        DB_BOOTSTRAP_STATE["ok"] = False
        DB_BOOTSTRAP_STATE["detail"] = f"{type(exc).__name__}: {exc}"
        return DB_BOOTSTRAP_STATE

    DB_BOOTSTRAP_STATE["ok"] = True
    DB_BOOTSTRAP_STATE["detail"] = "schema applied"
    return DB_BOOTSTRAP_STATE


def is_schema_mismatch_sqlstate(sqlstate: str | None) -> bool:
    return sqlstate in _SCHEMA_MISMATCH_SQLSTATE


def heal_schema_once() -> bool:
    """Re-apply db/schema.sql the first time a missing table/column is hit."""
    global _schema_healed_once  # noqa: PLW0603

    with _schema_heal_lock:
        if _schema_healed_once:
            return False
        run_schema(SCHEMA_PATH)
        _schema_healed_once = True
        return True


def describe_store_failure(exc: Exception) -> str:
    """Client-facing message for a failed store call; a schema mismatch triggers one heal attempt."""
    sqlstate = getattr(exc, "sqlstate", None)
    if is_schema_mismatch_sqlstate(sqlstate):
        try:
            healed = heal_schema_once()
        except Exception as heal_exc:  # noqa: BLE001
            logger.exception("schema_auto_heal_failed: %s", heal_exc)
            healed = False
        return "database schema auto-healed; retry request" if healed else "database schema mismatch detected"

    message = str(exc).strip()
    if message:
        return message
    return f"database query failed ({sqlstate or 'unknown'})"
