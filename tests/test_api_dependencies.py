from contextlib import contextmanager

import psycopg
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

import region_survey.api.dependencies as deps
import region_survey.runtime_db_guard as guard
from region_survey.config import get_settings
from region_survey.db import DatabaseConfigurationError
from region_survey.main import app
from region_survey.services.errors import StoreFailureError


@contextmanager
def _fake_connection():
    yield object()


def _make_psycopg_error(sqlstate: str, message: str = "boom") -> psycopg.Error:
    err = psycopg.ProgrammingError(message)
    err.sqlstate = sqlstate
    return err


def test_get_repository_schema_mismatch_triggers_heal(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(deps, "get_connection", _fake_connection)
    monkeypatch.setattr(guard, "heal_schema_once", lambda: True)

    gen = deps.get_repository()
    _ = next(gen)

    with pytest.raises(StoreFailureError) as exc_info:
        gen.throw(_make_psycopg_error("42P01"))

    assert exc_info.value.status_code == 503
    assert exc_info.value.error_code == "store_failure"
    assert exc_info.value.message == "database schema auto-healed; retry request"


def test_get_repository_schema_mismatch_reports_detected_when_heal_not_applied(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(deps, "get_connection", _fake_connection)
    monkeypatch.setattr(guard, "heal_schema_once", lambda: False)

    gen = deps.get_repository()
    _ = next(gen)

    with pytest.raises(StoreFailureError) as exc_info:
        gen.throw(_make_psycopg_error("42703"))

    assert exc_info.value.message == "database schema mismatch detected"


def test_get_repository_passes_store_message_through(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(deps, "get_connection", _fake_connection)

    gen = deps.get_repository()
    _ = next(gen)

    with pytest.raises(StoreFailureError) as exc_info:
        gen.throw(_make_psycopg_error("40001", "could not serialize access"))

    assert exc_info.value.message == "could not serialize access"


def test_get_repository_unconfigured_database_is_store_failure(monkeypatch: pytest.MonkeyPatch):
    @contextmanager
    def _unconfigured():
        raise DatabaseConfigurationError("DATABASE_URL is empty")
        yield  # pragma: no cover

    monkeypatch.setattr(deps, "get_connection", _unconfigured)

    with pytest.raises(StoreFailureError) as exc_info:
        next(deps.get_repository())
    assert exc_info.value.message == "DATABASE_URL is empty"


class _TimeoutConnection:
    def cursor(self):
        raise psycopg.OperationalError("canceling statement due to statement timeout")

    def rollback(self):
        pass


def test_route_db_failure_reaches_client_as_store_failure(monkeypatch: pytest.MonkeyPatch):
    @contextmanager
    def _timeout_connection():
        yield _TimeoutConnection()

    monkeypatch.setattr(deps, "get_connection", _timeout_connection)

    client = TestClient(app)
    res = client.get("/api/v1/surveys/existing", params={"user_name": "Kim", "cohort": "1기"})

    assert res.status_code == 503
    assert res.json() == {
        "detail": "canceling statement due to statement timeout",
        "error_code": "store_failure",
    }


def test_require_admin_token_checks_bearer(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/test")
    monkeypatch.setenv("ADMIN_API_TOKEN", "admin-secret")
    get_settings.cache_clear()

    with pytest.raises(HTTPException) as missing:
        deps.require_admin_token(authorization=None)
    assert missing.value.status_code == 401

    with pytest.raises(HTTPException) as invalid:
        deps.require_admin_token(authorization="Bearer nope")
    assert invalid.value.status_code == 403

    assert deps.require_admin_token(authorization="Bearer admin-secret") is None
    get_settings.cache_clear()


def test_require_admin_token_unconfigured(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/test")
    monkeypatch.delenv("ADMIN_API_TOKEN", raising=False)
    monkeypatch.setattr(deps, "get_settings", lambda: type("S", (), {"admin_api_token": None})())

    with pytest.raises(HTTPException) as exc_info:
        deps.require_admin_token(authorization="Bearer anything")
    assert exc_info.value.status_code == 503
