"""Envelope shared by every JSON response of the listing intake API."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard response wrapper.

    Attributes:
        success: Whether the request was successful.
        data: Payload when `success` is True.
        message: Human-readable status line shown to the user.
        error: Structured error details when `success` is False.
    """

    success: bool = True
    data: T | None = None
    message: str = "Operation completed successfully"
    error: dict[str, Any] | None = None


class ErrorResponse(ApiResponse[None]):
    """Envelope produced by the global exception handlers."""

    success: bool = False
    message: str = "An error occurred"
    error: dict[str, Any] | None = None
