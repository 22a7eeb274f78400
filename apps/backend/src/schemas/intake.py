"""Wire shapes for draft listing sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from schemas.listings import ExtractionResult, SavedListing
from services.intake.models import (
    BatchReport,
    EditingMode,
    EncodedImage,
    IngestionIssue,
    IssueKind,
)
from services.intake.operation import (
    Failure,
    OperationState,
    OperationStatus,
    Success,
)


if TYPE_CHECKING:
    from services.intake.session import ListingIntakeSession


class EncodedImageOut(BaseModel):
    id: str
    position: int
    source_index: int
    filename: str
    data: str = Field(..., description="Base64 data URI")

    @classmethod
    def from_entry(cls, entry: EncodedImage, position: int) -> EncodedImageOut:
        return cls(
            id=entry.id,
            position=position,
            source_index=entry.source_index,
            filename=entry.filename,
            data=entry.data,
        )


class IngestionIssueOut(BaseModel):
    source_index: int
    filename: str
    kind: IssueKind
    message: str
    error_code: str

    @classmethod
    def from_issue(cls, issue: IngestionIssue) -> IngestionIssueOut:
        return cls(
            source_index=issue.source_index,
            filename=issue.filename,
            kind=issue.kind,
            message=issue.message,
            error_code=issue.error_code,
        )


class BatchReportOut(BaseModel):
    """Per-submission upload summary, including per-file notices."""

    submission_id: int
    received: int
    accepted: int
    committed: int
    stale: bool
    issues: list[IngestionIssueOut] = Field(default_factory=list)
    batch_size: int

    @classmethod
    def from_report(cls, report: BatchReport, batch_size: int) -> BatchReportOut:
        return cls(
            submission_id=report.submission_id,
            received=report.received,
            accepted=report.accepted,
            committed=len(report.committed),
            stale=report.stale,
            issues=[IngestionIssueOut.from_issue(i) for i in report.issues],
            batch_size=batch_size,
        )


class OperationStateOut(BaseModel):
    status: OperationStatus
    generation: int
    error: str | None = None

    @classmethod
    def from_state(cls, state: OperationState[Any]) -> OperationStateOut:
        error = None
        if isinstance(state, Failure):
            error = getattr(state.error, "message", None) or str(state.error)
        return cls(status=state.status, generation=state.generation, error=error)


class DraftSessionOut(BaseModel):
    id: str
    mode: EditingMode
    fields: dict[str, Any]
    images: list[EncodedImageOut] = Field(default_factory=list)
    staged_image: str | None = Field(
        default=None, description="Filename of the photo staged for AI intake"
    )
    extraction: OperationStateOut
    submission: OperationStateOut
    summary: str | None = None

    @classmethod
    def from_session(cls, session: ListingIntakeSession) -> DraftSessionOut:
        staged = session.reconciler.staged
        return cls(
            id=session.id,
            mode=session.mode,
            fields=session.draft.values(),
            images=[
                EncodedImageOut.from_entry(entry, position)
                for position, entry in enumerate(session.batch.snapshot())
            ],
            staged_image=staged.filename if staged else None,
            extraction=OperationStateOut.from_state(session.reconciler.operation.state),
            submission=OperationStateOut.from_state(session.persist.state),
            summary=session.reconciler.last_summary,
        )


class FieldsUpdate(BaseModel):
    """Partial form update; values are stored as entered."""

    model_config = ConfigDict(extra="forbid")

    make: Any = None
    model: Any = None
    year: Any = None
    price: Any = None
    mileage: Any = None
    color: Any = None
    fuel_type: Any = None
    transmission: Any = None
    body_type: Any = None
    seats: Any = None
    description: Any = None
    status: Any = None
    featured: Any = None


class ExtractionOut(BaseModel):
    state: OperationStateOut
    result: ExtractionResult | None = None
    summary: str | None = None
    draft: DraftSessionOut


class SubmissionOut(BaseModel):
    state: OperationStateOut
    listing: SavedListing | None = None

    @classmethod
    def from_state(cls, state: OperationState[SavedListing]) -> SubmissionOut:
        listing = state.value if isinstance(state, Success) else None
        return cls(state=OperationStateOut.from_state(state), listing=listing)


class ListingOptions(BaseModel):
    fuel_types: list[str]
    transmissions: list[str]
    body_types: list[str]
    statuses: list[str]
    min_year: int
    max_year: int
    description_min_length: int
