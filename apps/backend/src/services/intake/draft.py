"""Draft listing form model and the editing-mode state machine."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from schemas.listings import (
    DESCRIPTION_MIN_LENGTH,
    CarStatus,
    ExtractionResult,
    ListingCreate,
    ListingSubmission,
)
from services.intake.batch import ImageBatch
from services.intake.exceptions import (
    DraftValidationError,
    IllegalModeTransitionError,
    MissingImagesError,
)
from services.intake.models import EditingMode


logger = logging.getLogger(__name__)

FORM_FIELDS: tuple[str, ...] = (
    "make",
    "model",
    "year",
    "price",
    "mileage",
    "color",
    "fuel_type",
    "transmission",
    "body_type",
    "seats",
    "description",
    "status",
    "featured",
)

# Fields an extraction result writes, with the type each is coerced to.
EXTRACTED_FIELDS: dict[str, type] = {
    "make": str,
    "model": str,
    "year": int,
    "color": str,
    "body_type": str,
    "fuel_type": str,
    "price": float,
    "mileage": int,
    "transmission": str,
    "description": str,
}


def _default_values() -> dict[str, Any]:
    values: dict[str, Any] = {name: "" for name in FORM_FIELDS}
    values["status"] = CarStatus.AVAILABLE.value
    values["featured"] = False
    return values


class ModeMachine:
    """AI intake -> manual review, and never back."""

    _ALLOWED = {(EditingMode.AI_INTAKE, EditingMode.MANUAL_REVIEW)}

    def __init__(self) -> None:
        self._mode = EditingMode.AI_INTAKE

    @property
    def mode(self) -> EditingMode:
        return self._mode

    def transition(self, target: EditingMode) -> None:
        if target is self._mode:
            return
        if (self._mode, target) not in self._ALLOWED:
            raise IllegalModeTransitionError(
                f"Cannot move from {self._mode.value} to {target.value}"
            )
        logger.info("Editing mode %s -> %s", self._mode.value, target.value)
        self._mode = target

    def promote(self) -> None:
        self.transition(EditingMode.MANUAL_REVIEW)


def _field_errors(exc: ValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        message = str(err.get("msg", "Invalid value"))
        message = message.removeprefix("Value error, ")
        errors.setdefault(str(loc[0]), []).append(message)
    return errors


class DraftListingModel:
    """Mutable form record plus the batch of images that goes with it.

    Values are kept as entered; nothing is parsed until `validate`. Each
    write replaces the previous value of a field outright.
    """

    def __init__(
        self,
        images: ImageBatch,
        description_min_length: int = DESCRIPTION_MIN_LENGTH,
    ) -> None:
        self.images = images
        self.description_min_length = description_min_length
        self._values = _default_values()

    def values(self) -> dict[str, Any]:
        return dict(self._values)

    def get(self, name: str) -> Any:
        return self._values[name]

    def update(self, **fields: Any) -> None:
        unknown = sorted(set(fields) - set(FORM_FIELDS))
        if unknown:
            raise DraftValidationError(
                {name: ["Unknown field"] for name in unknown},
                message=f"Unknown draft fields: {', '.join(unknown)}",
            )
        self._values.update(fields)

    def apply_extraction(self, result: ExtractionResult) -> None:
        """Overwrite every extracted field; AI output wins over manual edits."""
        for name, coerce in EXTRACTED_FIELDS.items():
            self._values[name] = coerce(getattr(result, name))

    def validate(self) -> ListingCreate:
        try:
            return ListingCreate.model_validate(
                self._values,
                context={"description_min_length": self.description_min_length},
            )
        except ValidationError as exc:
            raise DraftValidationError(_field_errors(exc)) from exc

    def build_submission(self) -> ListingSubmission:
        """Snapshot the draft for persistence.

        An empty batch raises `MissingImagesError` before any field is checked.
        """
        if not self.images:
            raise MissingImagesError()
        fields = self.validate()
        return ListingSubmission(fields=fields, images=self.images.data_uris())

    def reset(self) -> None:
        self._values = _default_values()
