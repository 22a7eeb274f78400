"""AI intake: one staged photo, one extraction call, one reconciliation.

The reconciler owns a single `AsyncOperation`. Its action does all of the
slow work (model payload, extraction call, batch encoding) without touching
shared state; only after the action succeeds are the draft fields, the
image batch and the editing mode updated, in one synchronous step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from schemas.listings import ExtractionNotFound, ExtractionResult
from services.ai.agents import ExtractionAgentProtocol
from services.images.codec import ImageCodec
from services.images.normalize import PER_FILE_SIZE_LIMIT, admit
from services.intake.batch import ImageBatch
from services.intake.draft import DraftListingModel, ModeMachine
from services.intake.exceptions import (
    ExtractionError,
    ExtractionInFlightError,
    IntakeError,
    NoImageStagedError,
)
from services.intake.models import EncodedImage, UploadedImage
from services.intake.operation import AsyncOperation, Failure, OperationState, Success


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExtractionOutcome:
    """Everything a successful extraction contributes, not yet applied."""

    result: ExtractionResult
    image: EncodedImage


def summarize(result: ExtractionResult) -> str:
    return (
        f"Detected {result.year} {result.make} {result.model} "
        f"with {round(result.confidence * 100)}% confidence"
    )


class ExtractionReconciler:
    def __init__(
        self,
        agent: ExtractionAgentProtocol,
        draft: DraftListingModel,
        batch: ImageBatch,
        modes: ModeMachine,
        codec: ImageCodec | None = None,
        max_file_bytes: int = PER_FILE_SIZE_LIMIT,
    ) -> None:
        self.agent = agent
        self.draft = draft
        self.batch = batch
        self.modes = modes
        self.codec = codec or ImageCodec()
        self.max_file_bytes = max_file_bytes
        self._staged: UploadedImage | None = None
        self.operation: AsyncOperation[UploadedImage, ExtractionOutcome] = (
            AsyncOperation(self._run, name="vehicle extraction")
        )
        self.last_summary: str | None = None

    @property
    def staged(self) -> UploadedImage | None:
        return self._staged

    def stage(self, file: UploadedImage) -> None:
        """Stage one photo for extraction, replacing any previous one."""
        self._guard_in_flight()
        admit(file, self.max_file_bytes)
        self._staged = file
        logger.info("Staged %s for extraction", file.filename)

    def unstage(self) -> None:
        self._guard_in_flight()
        self._staged = None

    async def extract(self) -> OperationState[ExtractionOutcome]:
        """Run the extraction for the staged photo and apply it on success.

        Raises:
            NoImageStagedError: nothing is staged; no call is made.
            ExtractionInFlightError: an extraction is already loading.
        """
        if self._staged is None:
            raise NoImageStagedError()
        self._guard_in_flight()

        state = await self.operation.invoke(self._staged)
        if not self.operation.is_current(state.generation):
            logger.info(
                "Dropping stale extraction result (generation %d)", state.generation
            )
            return state

        if isinstance(state, Success):
            self._apply(state.value)
        elif isinstance(state, Failure):
            logger.warning("Extraction failed, staged image kept: %s", state.error)
        return state

    def discard(self) -> None:
        """Forget the staged photo; an in-flight result will not be applied."""
        self.operation.reset()
        self._staged = None
        self.last_summary = None

    def _guard_in_flight(self) -> None:
        if self.operation.is_loading:
            raise ExtractionInFlightError()

    async def _run(self, file: UploadedImage) -> ExtractionOutcome:
        try:
            payload = await self.codec.encode_for_model(file)
            result = await self.agent.run_image_extraction_agent(payload, "image/jpeg")
            if isinstance(result, ExtractionNotFound):
                raise ExtractionError(f"No vehicle found: {result.reason}")
            if not isinstance(result, ExtractionResult):
                raise ExtractionError("Extraction returned an unexpected result")
            data_uri = await self.codec.encode(file)
        except ExtractionError:
            raise
        except IntakeError as exc:
            raise ExtractionError(exc.message) from exc
        except Exception as exc:
            raise ExtractionError(f"Failed to process car image: {exc}") from exc

        image = EncodedImage(source_index=0, filename=file.filename).ready(data_uri)
        return ExtractionOutcome(result=result, image=image)

    def _apply(self, outcome: ExtractionOutcome) -> None:
        self.draft.apply_extraction(outcome.result)
        self.batch.commit([outcome.image])
        self.modes.promote()
        self.last_summary = summarize(outcome.result)
        logger.info("Successfully extracted car details: %s", self.last_summary)
