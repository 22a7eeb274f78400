"""Focused unit tests for global exception handling behaviors.

These tests exercise the public contract via a FastAPI test app using the
installed exception handler and ExceptionNormalizationMiddleware.
"""

from __future__ import annotations

from unittest.mock import patch

from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from core.error_handler import (
    ExceptionNormalizationMiddleware,
    global_exception_handler,
)
from core.exceptions import DomainError, DraftNotFoundError
from core.middleware import CorrelationIdMiddleware
from services.intake.exceptions import (
    DraftValidationError,
    ExtractionInFlightError,
    IntakeError,
    MissingImagesError,
)


class Item(BaseModel):
    name: str = Field(min_length=3)
    qty: int = Field(ge=1)


def build_test_app(env: str) -> TestClient:
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(ExceptionNormalizationMiddleware)
    app.add_exception_handler(IntakeError, global_exception_handler)
    app.add_exception_handler(DomainError, global_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(HTTPException, global_exception_handler)
    app.add_exception_handler(RequestValidationError, global_exception_handler)

    @app.post("/items")
    async def create_item(item: Item):  # pragma: no cover - executed via client
        return {"ok": True, "item": item.model_dump()}

    @app.get("/draft-missing")
    async def draft_missing():
        raise DraftNotFoundError("Draft abc not found")

    @app.get("/invalid-draft")
    async def invalid_draft():
        raise DraftValidationError({"year": ["Valid year required"]})

    @app.get("/no-images")
    async def no_images():
        raise MissingImagesError()

    @app.get("/busy")
    async def busy():
        raise ExtractionInFlightError()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("Exploded with secret=should_not_leak")

    @app.get("/forbidden")
    async def forbidden():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    client = TestClient(app)

    # Patch environment setting per test invocation
    patcher = patch("core.error_handler.get_settings")
    mocked = patcher.start()
    mocked.return_value.ENVIRONMENT = env

    def fin():
        patcher.stop()

    client._finalizer = fin  # type: ignore[attr-defined]
    return client


def test_validation_error_production():
    client = build_test_app("production")
    resp = client.post("/items", json={"name": "ab", "qty": 0})
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"]["type"] == "validation_error"
    assert "validation_errors" not in data["error"]
    client._finalizer()


def test_validation_error_development():
    client = build_test_app("development")
    resp = client.post("/items", json={"name": "ab", "qty": 0})
    assert resp.status_code == 422
    assert "validation_errors" in resp.json()["error"]
    client._finalizer()


def test_draft_validation_keeps_field_errors_in_production():
    client = build_test_app("production")
    resp = client.get("/invalid-draft")
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"]["type"] == "validation_error"
    assert body["error"]["field_errors"] == {"year": ["Valid year required"]}
    assert "exception_type" not in body["error"]
    client._finalizer()


def test_intake_error_message_is_user_facing():
    client = build_test_app("production")
    resp = client.get("/no-images")
    assert resp.status_code == 422
    body = resp.json()
    assert body["message"] == "Upload at least 1 image"
    assert body["error"]["type"] == "missing_images"
    client._finalizer()


def test_in_flight_is_conflict():
    client = build_test_app("development")
    resp = client.get("/busy")
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"]["type"] == "operation_in_flight"
    assert body["error"]["exception_type"] == "ExtractionInFlightError"
    client._finalizer()


def test_unknown_draft_is_not_found():
    client = build_test_app("production")
    resp = client.get("/draft-missing")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"]["type"] == "not_found"
    assert body["message"] == "The requested draft was not found"
    client._finalizer()


def test_generic_exception_production():
    client = build_test_app("production")
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["type"] == "internal_server_error"
    assert "traceback" not in body["error"]
    assert "secret=should_not_leak" not in str(body)
    client._finalizer()


def test_generic_exception_development():
    client = build_test_app("development")
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["type"] == "internal_server_error"
    assert "traceback" in body["error"]
    client._finalizer()


def test_http_exception_development_includes_detail():
    client = build_test_app("development")
    resp = client.get("/forbidden")
    assert resp.status_code == 403
    body = resp.json()
    assert body["error"]["type"] == "http_error"
    assert body["error"]["details"]["detail"] == "Access denied"
    client._finalizer()


def test_correlation_id_in_error_body_matches_header():
    client = build_test_app("production")
    resp = client.get("/no-images", headers={"X-Correlation-ID": "cid-42"})
    assert resp.headers["X-Correlation-ID"] == "cid-42"
    assert resp.json()["error"]["correlation_id"] == "cid-42"
    client._finalizer()
