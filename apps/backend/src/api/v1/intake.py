"""Draft listing endpoints: photo uploads, AI intake, field edits and submission."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, UploadFile, status

from core.error_handler import StructuredLogger
from dependencies.intake import (
    AppSettings,
    DraftSession,
    ExtractionAgent,
    ListingStore,
    Registry,
)
from schemas.api import ApiResponse
from schemas.intake import (
    BatchReportOut,
    DraftSessionOut,
    ExtractionOut,
    FieldsUpdate,
    OperationStateOut,
    SubmissionOut,
)
from services.intake.models import UploadedImage
from services.intake.operation import Failure, Success


router = APIRouter(prefix="/drafts", tags=["drafts"])
structured_logger = StructuredLogger(__name__)


async def _read_upload(upload: UploadFile) -> UploadedImage:
    """Pull one multipart part into memory with the metadata the client sent."""
    data = await upload.read()
    return UploadedImage(
        filename=upload.filename or "upload",
        content_type=upload.content_type or "",
        data=data,
        declared_size=upload.size,
    )


@router.post(
    "",
    response_model=ApiResponse[DraftSessionOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_draft(
    registry: Registry,
    agent: ExtractionAgent,
    store: ListingStore,
    settings: AppSettings,
) -> ApiResponse[DraftSessionOut]:
    session = registry.create(agent=agent, store=store, settings=settings)
    return ApiResponse(
        success=True, data=session.snapshot(), message="Draft created"
    )


@router.get("/{draft_id}", response_model=ApiResponse[DraftSessionOut])
async def get_draft(session: DraftSession) -> ApiResponse[DraftSessionOut]:
    return ApiResponse(success=True, data=session.snapshot(), message="Draft loaded")


@router.patch("/{draft_id}/fields", response_model=ApiResponse[DraftSessionOut])
async def update_fields(
    session: DraftSession, payload: FieldsUpdate
) -> ApiResponse[DraftSessionOut]:
    session.update_fields(**payload.model_dump(exclude_unset=True))
    return ApiResponse(success=True, data=session.snapshot(), message="Draft updated")


@router.post("/{draft_id}/images", response_model=ApiResponse[BatchReportOut])
async def upload_images(
    session: DraftSession,
    files: Annotated[list[UploadFile], File(description="Listing photos")],
) -> ApiResponse[BatchReportOut]:
    """Add a selection of photos to the draft.

    Rejected or unreadable files are reported per file; the readable ones are
    committed to the batch together once every file has been processed.
    """
    uploads = [await _read_upload(upload) for upload in files]
    report = await session.add_images(uploads)
    structured_logger.info(
        "Image batch processed",
        draft_id=session.id,
        received=report.received,
        committed=len(report.committed),
        issues=len(report.issues),
    )
    return ApiResponse(
        success=report.success,
        data=BatchReportOut.from_report(report, batch_size=len(session.batch)),
        message=report.message,
    )


@router.delete(
    "/{draft_id}/images/{position}", response_model=ApiResponse[DraftSessionOut]
)
async def remove_image(
    session: DraftSession, position: int
) -> ApiResponse[DraftSessionOut]:
    session.remove_image(position)
    return ApiResponse(success=True, data=session.snapshot(), message="Image removed")


@router.put("/{draft_id}/ai-image", response_model=ApiResponse[DraftSessionOut])
async def stage_ai_image(
    session: DraftSession,
    file: Annotated[UploadFile, File(description="Photo to read vehicle details from")],
) -> ApiResponse[DraftSessionOut]:
    session.stage_image(await _read_upload(file))
    return ApiResponse(
        success=True, data=session.snapshot(), message="Image ready for extraction"
    )


@router.delete("/{draft_id}/ai-image", response_model=ApiResponse[DraftSessionOut])
async def unstage_ai_image(session: DraftSession) -> ApiResponse[DraftSessionOut]:
    session.unstage_image()
    return ApiResponse(success=True, data=session.snapshot(), message="Image removed")


@router.post("/{draft_id}/extract", response_model=ApiResponse[ExtractionOut])
async def extract_vehicle_details(session: DraftSession) -> ApiResponse[ExtractionOut]:
    """Read vehicle details from the staged photo and prefill the draft.

    On success the draft switches to manual review and the photo joins the
    listing images. On failure nothing changes and the photo stays staged.
    """
    state = await session.extract()
    if isinstance(state, Failure):
        raise state.error
    result = state.value.result if isinstance(state, Success) else None
    return ApiResponse(
        success=True,
        data=ExtractionOut(
            state=OperationStateOut.from_state(state),
            result=result,
            summary=session.reconciler.last_summary,
            draft=session.snapshot(),
        ),
        message=session.reconciler.last_summary or "Extraction discarded",
    )


@router.post("/{draft_id}/submit", response_model=ApiResponse[SubmissionOut])
async def submit_draft(
    session: DraftSession, registry: Registry
) -> ApiResponse[SubmissionOut]:
    """Persist the draft as a listing; a submitted draft is closed."""
    state = await session.submit()
    if isinstance(state, Failure):
        raise state.error
    registry.close(session.id)
    return ApiResponse(
        success=True,
        data=SubmissionOut.from_state(state),
        message="Listing created",
    )


@router.delete("/{draft_id}", response_model=ApiResponse[None])
async def discard_draft(draft_id: str, registry: Registry) -> ApiResponse[None]:
    registry.discard(draft_id)
    return ApiResponse(success=True, data=None, message="Draft discarded")
