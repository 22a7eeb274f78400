"""Schemas for draft car listings and the AI extraction contract."""

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


DESCRIPTION_MIN_LENGTH = 10
MIN_MODEL_YEAR = 1900

FUEL_TYPES = ["Petrol", "Diesel", "Electric", "Hybrid", "Plug-in Hybrid"]
TRANSMISSIONS = ["Automatic", "Manual", "Semi-Automatic"]
BODY_TYPES = ["SUV", "Sedan", "Hatchback", "Convertible", "Coupe", "Wagon", "Pickup"]


class CarStatus(str, Enum):
    """Availability of a listed car."""

    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"
    SOLD = "SOLD"


def max_model_year() -> int:
    return datetime.now(UTC).year + 1


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class ListingCreate(BaseModel):
    """Validated listing record handed to the persistence collaborator.

    Every predicate is independent of the others. Form values arrive as
    strings and are parsed here; `seats` is dropped from the dump when
    absent rather than defaulted.
    """

    make: Annotated[str, Field(min_length=1, description="Manufacturer, e.g. Honda")]
    model: Annotated[str, Field(min_length=1, description="Model name, e.g. City")]
    year: Annotated[int, Field(description="Model year")]
    price: Annotated[
        float, Field(ge=0, allow_inf_nan=False, description="Asking price")
    ]
    mileage: Annotated[int, Field(ge=0, description="Odometer reading")]
    color: Annotated[str, Field(min_length=1)]
    fuel_type: Annotated[str, Field(min_length=1)]
    transmission: Annotated[str, Field(min_length=1)]
    body_type: Annotated[str, Field(min_length=1)]
    seats: int | None = Field(default=None, ge=0, description="Optional seat count")
    description: Annotated[str, Field(description="Free-text description")]
    status: CarStatus = Field(default=CarStatus.AVAILABLE)
    featured: bool = Field(default=False)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @field_validator(
        "make",
        "model",
        "color",
        "fuel_type",
        "transmission",
        "body_type",
        "description",
        mode="before",
    )
    @classmethod
    def _require_text(cls, v: Any, info: ValidationInfo) -> Any:
        if _blank_to_none(v) is None:
            raise ValueError(f"{info.field_name} is required")
        return v

    @field_validator("year", "price", "mileage", "seats", mode="before")
    @classmethod
    def _parse_number(cls, v: Any, info: ValidationInfo) -> Any:
        v = _blank_to_none(v)
        if v is None:
            if info.field_name == "seats":
                return None
            raise ValueError(f"{info.field_name} is required")
        if isinstance(v, str):
            text = v.strip().replace(",", "")
            try:
                number = float(text)
            except ValueError as exc:
                raise ValueError(f"{info.field_name} must be a number") from exc
            if info.field_name == "price":
                return number
            if not number.is_integer():
                raise ValueError(f"{info.field_name} must be a whole number")
            return int(number)
        return v

    @field_validator("year")
    @classmethod
    def _validate_year(cls, v: int) -> int:
        if not MIN_MODEL_YEAR <= v <= max_model_year():
            raise ValueError("Valid year required")
        return v

    @field_validator("description")
    @classmethod
    def _validate_description(cls, v: str, info: ValidationInfo) -> str:
        min_length = DESCRIPTION_MIN_LENGTH
        if info.context and "description_min_length" in info.context:
            min_length = int(info.context["description_min_length"])
        if len(v) < min_length:
            raise ValueError(
                f"Description must be at least {min_length} characters"
            )
        return v

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def to_record(self) -> dict[str, Any]:
        """Dump for persistence, excluding absent optional fields."""
        record = self.model_dump(mode="json")
        if record.get("seats") is None:
            record.pop("seats", None)
        return record


class ExtractionResult(BaseModel):
    """Agent output: structured vehicle attributes read from one photo."""

    make: str = Field(..., description="Manufacturer name")
    model: str = Field(..., description="Model name")
    year: int = Field(..., description="Approximate model year")
    color: str = Field(default="", description="Exterior color")
    body_type: str = Field(
        default="", description="One of: " + ", ".join(BODY_TYPES)
    )
    fuel_type: str = Field(
        default="", description="One of: " + ", ".join(FUEL_TYPES)
    )
    transmission: str = Field(
        default="", description="One of: " + ", ".join(TRANSMISSIONS)
    )
    price: float = Field(
        default=0, ge=0, allow_inf_nan=False, description="Estimated market price"
    )
    mileage: int = Field(default=0, ge=0, description="Estimated mileage")
    description: str = Field(default="", description="Short listing description")
    confidence: float = Field(
        default=0.0, ge=0.0, le=1.0, description="AI confidence in the extraction (0-1)"
    )

    @field_validator("year", "mileage", mode="before")
    @classmethod
    def _coerce_int(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().replace(",", "")
        if isinstance(v, str | float):
            return int(float(v))
        return v

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_float(cls, v: Any) -> Any:
        if isinstance(v, str):
            return float(v.strip().replace(",", ""))
        return v


class ExtractionNotFound(BaseModel):
    """Agent output: the photo does not show an identifiable vehicle."""

    reason: str = Field(..., description="Why extraction failed (e.g. no car visible)")

    model_config = ConfigDict(extra="forbid")


class ListingSubmission(BaseModel):
    """Fully validated snapshot handed to the persistence collaborator."""

    fields: ListingCreate
    images: Annotated[list[str], Field(min_length=1, description="Image data URIs")]


class SavedListing(BaseModel):
    id: str
    fields: dict[str, Any]
    image_count: int
    created_at: datetime


class FavoriteResult(BaseModel):
    listing_id: str
    saved: bool
    message: str
