"""Domain exceptions for the listing intake engine.

Every intake error is recoverable from the user's point of view: per-file
errors are collected into a batch report, whole-operation errors leave
committed state untouched. Each exception carries a stable `error_code` so
the API layer can map it to a response without string matching.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, eq=False)
class IntakeError(Exception):
    """Base class for intake domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class DraftValidationError(IntakeError):
    """One or more draft fields failed their predicate."""

    def __init__(
        self,
        field_errors: dict[str, list[str]],
        message: str = "Draft listing has invalid fields",
    ) -> None:
        super().__init__(message=message, error_code="validation_error")
        self.field_errors = field_errors


class AdmissionError(IntakeError):
    """A file was rejected by size or type before any async work started."""

    def __init__(
        self, message: str = "File rejected", error_code: str = "admission_rejected"
    ) -> None:
        super().__init__(message=message, error_code=error_code)


class ImageSizeLimitError(AdmissionError):
    def __init__(self, message: str = "Image size exceeds the upload limit") -> None:
        super().__init__(message=message, error_code="file_too_large")


class ImageFormatError(AdmissionError):
    def __init__(self, message: str = "Unsupported image type") -> None:
        super().__init__(message=message, error_code="unsupported_type")


class DecodeError(IntakeError):
    """An accepted file could not be read as image data."""

    def __init__(self, message: str = "File is not a readable image") -> None:
        super().__init__(message=message, error_code="decode_failed")


class ExtractionError(IntakeError):
    """The extraction collaborator failed or found no vehicle."""

    def __init__(self, message: str = "Failed to extract vehicle details") -> None:
        super().__init__(message=message, error_code="extraction_failed")


class MissingImagesError(IntakeError):
    def __init__(self, message: str = "Upload at least 1 image") -> None:
        super().__init__(message=message, error_code="missing_images")


class NoImageStagedError(IntakeError):
    def __init__(self, message: str = "Upload an image first") -> None:
        super().__init__(message=message, error_code="no_image_staged")


class OperationInFlightError(IntakeError):
    """A single-flight operation was invoked while already loading."""

    def __init__(self, message: str = "Operation already in progress") -> None:
        super().__init__(message=message, error_code="operation_in_flight")


class ExtractionInFlightError(OperationInFlightError):
    def __init__(self, message: str = "Extraction already in progress") -> None:
        super().__init__(message=message)


class SubmissionInFlightError(OperationInFlightError):
    def __init__(self, message: str = "Listing submission already in progress") -> None:
        super().__init__(message=message)


class FavoriteInFlightError(OperationInFlightError):
    def __init__(self, message: str = "Favorite update already in progress") -> None:
        super().__init__(message=message)


class ImagePositionError(IntakeError):
    def __init__(self, message: str = "No image at that position") -> None:
        super().__init__(message=message, error_code="invalid_position")


class IllegalModeTransitionError(IntakeError):
    def __init__(self, message: str = "Editing mode cannot go back to AI intake") -> None:
        super().__init__(message=message, error_code="illegal_mode_transition")
