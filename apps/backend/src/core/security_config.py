"""Security configuration constants for the listing intake API.

- Keys that should be redacted from structured logs
- Error response fields exposed per environment
"""

# Matched as substrings of lower-cased keys, see `is_sensitive_key`.
SENSITIVE_KEYS: set[str] = {
    # Credentials
    "password",
    "secret",
    "token",
    "authorization",
    "api_key",
    "x-api-key",
    "cookie",
    "session_id",
    "bearer",
    # Seller contact details that can end up in listing descriptions
    "email",
    "phone",
    "address",
    # Raw image payloads
    "data_uri",
    "image_data",
    "image_bytes",
}

# Error fields safe to return in production. Field errors and the error code
# are user-facing: the form needs them to show per-field messages.
PRODUCTION_ERROR_FIELDS: set[str] = {
    "correlation_id",
    "type",
    "field_errors",
}

DEVELOPMENT_ERROR_FIELDS: set[str] = PRODUCTION_ERROR_FIELDS | {
    "details",
    "traceback",
    "exception_type",
    "validation_errors",
}


def get_allowed_error_fields(environment: str) -> set[str]:
    """Get allowed error response fields based on environment.

    Args:
        environment: The application environment (production, development, etc.)

    Returns:
        Set of allowed field names for error responses
    """
    if environment == "production":
        return PRODUCTION_ERROR_FIELDS.copy()
    return DEVELOPMENT_ERROR_FIELDS.copy()


def is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)
