"""One editing session: the draft, its image batch, and the actions on them."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol
from uuid import uuid4

from core.config import Settings
from schemas.listings import ListingSubmission, SavedListing
from services.ai.agents import ExtractionAgentProtocol
from services.images.codec import ImageCodec
from services.intake.batch import BatchIngestionEngine, ImageBatch
from services.intake.draft import DraftListingModel, ModeMachine
from services.intake.exceptions import (
    ExtractionInFlightError,
    OperationInFlightError,
    SubmissionInFlightError,
)
from services.intake.extraction import ExtractionOutcome, ExtractionReconciler
from services.intake.models import BatchReport, EditingMode, EncodedImage, UploadedImage
from services.intake.operation import AsyncOperation, OperationState, Success


if TYPE_CHECKING:
    from schemas.intake import DraftSessionOut

logger = logging.getLogger(__name__)


class ListingStoreProtocol(Protocol):
    """Persistence collaborator for finished drafts."""

    async def add_listing(self, submission: ListingSubmission) -> SavedListing:
        ...


class ListingIntakeSession:
    """Wires the intake components together for a single draft listing.

    While a submission is being persisted the draft is frozen: edits, uploads,
    removals and AI intake are rejected with `SubmissionInFlightError`, so the
    reset that follows a successful submit only clears what was persisted.
    """

    def __init__(
        self,
        agent: ExtractionAgentProtocol,
        store: ListingStoreProtocol,
        settings: Settings,
        draft_id: str | None = None,
    ) -> None:
        self.id = draft_id or uuid4().hex
        self.store = store
        codec = ImageCodec(
            max_dimension=settings.MAX_IMAGE_DIMENSION,
            jpeg_quality=settings.JPEG_QUALITY,
        )
        self.batch = ImageBatch()
        self.modes = ModeMachine()
        self.draft = DraftListingModel(
            self.batch, description_min_length=settings.DESCRIPTION_MIN_LENGTH
        )
        self.engine = BatchIngestionEngine(
            self.batch, codec=codec, max_file_bytes=settings.MAX_IMAGE_BYTES
        )
        self.reconciler = ExtractionReconciler(
            agent,
            draft=self.draft,
            batch=self.batch,
            modes=self.modes,
            codec=codec,
            max_file_bytes=settings.MAX_IMAGE_BYTES,
        )
        self.persist: AsyncOperation[ListingSubmission, SavedListing] = AsyncOperation(
            store.add_listing, name="listing submission"
        )

    @property
    def mode(self) -> EditingMode:
        return self.modes.mode

    def snapshot(self) -> DraftSessionOut:
        from schemas.intake import DraftSessionOut

        return DraftSessionOut.from_session(self)

    def update_fields(self, **fields: Any) -> None:
        self._guard_submission()
        self.draft.update(**fields)

    async def add_images(self, files: Sequence[UploadedImage]) -> BatchReport:
        self._guard_submission()
        return await self.engine.submit(files)

    def remove_image(self, position: int) -> EncodedImage:
        self._guard_submission()
        return self.engine.remove(position)

    def stage_image(self, file: UploadedImage) -> None:
        self._guard_submission()
        self.reconciler.stage(file)

    def unstage_image(self) -> None:
        self._guard_submission()
        self.reconciler.unstage()

    async def extract(self) -> OperationState[ExtractionOutcome]:
        self._guard_submission()
        return await self.reconciler.extract()

    async def submit(self) -> OperationState[SavedListing]:
        """Validate the draft and hand it to the listing store.

        Raises:
            SubmissionInFlightError: a previous submit is still loading.
            ExtractionInFlightError: an extraction has not finished yet.
            OperationInFlightError: photo uploads have not joined yet.
            MissingImagesError: the batch is empty.
            DraftValidationError: one or more fields are invalid.
        """
        self._guard_submission()
        if self.reconciler.operation.is_loading:
            raise ExtractionInFlightError(
                "Wait for the extraction to finish before submitting"
            )
        if self.engine.in_flight:
            raise OperationInFlightError(
                "Wait for the photo upload to finish before submitting"
            )
        submission = self.draft.build_submission()
        state = await self.persist.invoke(submission)
        if isinstance(state, Success) and self.persist.is_current(state.generation):
            logger.info("Draft %s saved as listing %s", self.id, state.value.id)
            self.engine.reset()
            self.reconciler.discard()
            self.draft.reset()
        return state

    def reset(self) -> None:
        """Discard in-flight work and start the draft over."""
        self.engine.reset()
        self.reconciler.discard()
        self.persist.reset()
        self.draft.reset()
        logger.info("Draft %s reset", self.id)

    def _guard_submission(self) -> None:
        if self.persist.is_loading:
            raise SubmissionInFlightError()
