import json
import logging

from core.error_handler import (
    StructuredLogger,
    _build_error_response,
    set_correlation_id,
    setup_logging,
)


def test_structured_logger_redacts_sensitive_keys(monkeypatch):
    logger = StructuredLogger("tests")
    monkeypatch.setenv("ENVIRONMENT", "development")

    data = {
        "api_key": "placeholder_key",  # pragma: allowlist secret
        "seller_phone": "555-0100",
        "filename": "front.jpg",
    }
    sanitized = logger._sanitize_data(data)

    assert sanitized["api_key"] == "[REDACTED]"
    assert sanitized["seller_phone"] == "[REDACTED]"
    assert sanitized["filename"] == "front.jpg"


def test_structured_logger_masks_image_payloads():
    logger = StructuredLogger("tests")

    sanitized = logger._sanitize_data(
        {
            "images": ["data:image/jpeg;base64,AAAA", "plain"],
            "nested": {"data_uri": "data:image/png;base64,BBBB"},
        }
    )

    assert sanitized["images"] == ["[IMAGE DATA]", "plain"]
    assert sanitized["nested"]["data_uri"] == "[REDACTED]"


def test_structured_logger_prefixes_correlation_id(caplog):
    logger = StructuredLogger("tests.structured")
    set_correlation_id("cid-7")

    with caplog.at_level(logging.INFO, logger="tests.structured"):
        logger.info("Image batch processed", committed=2)

    record = caplog.records[-1]
    assert record.getMessage() == "[cid-7] Image batch processed"
    assert record.structured_data["committed"] == 2
    set_correlation_id(None)


def test_setup_logging_is_idempotent():
    root = logging.getLogger()
    before = list(root.handlers)
    setup_logging()
    setup_logging()
    added = [h for h in root.handlers if h not in before]
    assert len(added) <= 1
    for handler in added:
        root.removeHandler(handler)


def test_build_error_response_production_hides_optional_fields():
    resp = _build_error_response(
        correlation_id="cid",
        error_type="internal_server_error",
        message="An internal error occurred",
        environment="production",
        details={"debug": True},
        traceback_str="trace",
        exception_type="ValueError",
        validation_errors={"x": 1},
        status_code=500,
    )
    body = json.loads(resp.body)

    assert resp.status_code == 500
    assert body["error"] == {"correlation_id": "cid", "type": "internal_server_error"}


def test_build_error_response_development_includes_optional_fields():
    resp = _build_error_response(
        correlation_id="cid",
        error_type="validation_error",
        message="Draft listing has invalid fields",
        environment="development",
        traceback_str="trace",
        exception_type="DraftValidationError",
        field_errors={"make": ["make is required"]},
        status_code=422,
    )
    body = json.loads(resp.body)

    assert body["error"]["field_errors"] == {"make": ["make is required"]}
    assert body["error"]["traceback"] == "trace"
    assert body["error"]["exception_type"] == "DraftValidationError"
