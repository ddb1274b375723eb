import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import psycopg

from region_survey.api.admin_routes import router as admin_router
from region_survey.api.routes import router as api_router
from region_survey.config import get_settings
from region_survey.db import DatabaseConfigurationError, DatabaseConnectionError, get_connection
from region_survey.runtime_db_guard import (
    DB_BOOTSTRAP_STATE,
    apply_schema_bootstrap,
    describe_store_failure,
)
from region_survey.services.errors import STORE_FAILURE, OptionLockedError, SurveyError

DEFAULT_CORS_ALLOW_ORIGINS = "http://127.0.0.1:3000,http://localhost:3000"

logger = logging.getLogger(__name__)


def _resolve_cors_allow_origins() -> list[str]:
    try:
        raw = get_settings().cors_allow_origins
    except Exception:  # noqa: BLE001
        raw = DEFAULT_CORS_ALLOW_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


app = FastAPI(title="Region Demand Survey Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=_resolve_cors_allow_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)
app.include_router(admin_router)


@app.on_event("startup")
def startup_schema_bootstrap():
    state = apply_schema_bootstrap()
    logger.info(
        "startup_schema_bootstrap enabled=%s attempted=%s ok=%s detail=%s",
        state.get("enabled"),
        state.get("attempted"),
        state.get("ok"),
        state.get("detail"),
    )


@app.exception_handler(SurveyError)
def handle_survey_error(_, exc: SurveyError):  # noqa: ANN001
    content = {"detail": exc.message, "error_code": exc.error_code}
    if isinstance(exc, OptionLockedError):
        content["existing_option_type"] = exc.existing_option_type
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(psycopg.Error)
def handle_psycopg_error(_, exc: psycopg.Error):  # noqa: ANN001
    logger.warning("store_failure sqlstate=%s error=%s", exc.sqlstate, exc)
    return JSONResponse(status_code=503, content={"detail": describe_store_failure(exc), "error_code": STORE_FAILURE})


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/health/db")
def health_db_check():
    try:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                row = cur.fetchone() or {}
    except DatabaseConfigurationError as exc:
        reason, extra = "database_not_configured", {"detail": str(exc)}
    except DatabaseConnectionError as exc:
        reason, extra = "database_connection_failed", {"detail": str(exc)}
    except psycopg.Error as exc:
        reason, extra = "database_query_failed", {"sqlstate": exc.sqlstate}
    else:
        return {"status": "ok", "db": "ok", "ping": row.get("ok") == 1, "bootstrap": DB_BOOTSTRAP_STATE}

    return JSONResponse(
        status_code=503,
        content={"status": "degraded", "db": "error", "reason": reason, **extra, "bootstrap": DB_BOOTSTRAP_STATE},
    )
