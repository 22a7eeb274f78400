"""Ordered image batch and the engine that fills it from file selections.

One `submit` call fans out one encode per accepted file and joins on all of
them before touching the shared batch. The commit at the join is a single
synchronous step on the event loop, so no reader ever sees a half-applied
submission. Entries are appended in completion order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from services.images.codec import ImageCodec
from services.images.normalize import PER_FILE_SIZE_LIMIT, admit
from services.intake.exceptions import AdmissionError, DecodeError, ImagePositionError
from services.intake.models import (
    BatchReport,
    EncodedImage,
    ImageStatus,
    IngestionIssue,
    IssueKind,
    UploadedImage,
)


logger = logging.getLogger(__name__)

BatchListener = Callable[[tuple[EncodedImage, ...]], None]


class ImageBatch:
    """Append-only ordered list of ready images for one draft."""

    def __init__(self) -> None:
        self._entries: list[EncodedImage] = []
        self._version = 0
        self._listeners: list[BatchListener] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def version(self) -> int:
        """Incremented once per structural change."""
        return self._version

    def snapshot(self) -> tuple[EncodedImage, ...]:
        return tuple(self._entries)

    def data_uris(self) -> list[str]:
        return [entry.data for entry in self._entries]

    def subscribe(self, listener: BatchListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def commit(self, entries: Sequence[EncodedImage]) -> None:
        """Append all `entries` in one transition, or none of them."""
        if not entries:
            return
        not_ready = [e for e in entries if e.status is not ImageStatus.READY]
        if not_ready:
            raise ValueError(
                f"Only ready images can be committed; got {len(not_ready)} not ready"
            )
        self._entries = [*self._entries, *entries]
        self._changed()

    def remove(self, position: int) -> EncodedImage:
        """Delete the entry at `position`; later entries shift down by one."""
        if position < 0 or position >= len(self._entries):
            raise ImagePositionError(
                f"No image at position {position} (batch has {len(self._entries)})"
            )
        removed = self._entries[position]
        self._entries = self._entries[:position] + self._entries[position + 1 :]
        self._changed()
        return removed

    def clear(self) -> None:
        if not self._entries:
            return
        self._entries = []
        self._changed()

    def _changed(self) -> None:
        self._version += 1
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)


def _plural(count: int) -> str:
    return "s" if count != 1 else ""


class BatchIngestionEngine:
    """Turns file selections into committed batch entries."""

    def __init__(
        self,
        batch: ImageBatch,
        codec: ImageCodec | None = None,
        max_file_bytes: int = PER_FILE_SIZE_LIMIT,
    ) -> None:
        self.batch = batch
        self.codec = codec or ImageCodec()
        self.max_file_bytes = max_file_bytes
        self._epoch = 0
        self._submissions = 0
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        """Number of submit calls that have not joined yet."""
        return self._in_flight

    async def submit(self, files: Sequence[UploadedImage]) -> BatchReport:
        self._submissions += 1
        report = BatchReport(submission_id=self._submissions, received=len(files))
        epoch = self._epoch

        slots: list[tuple[EncodedImage, UploadedImage]] = []
        for index, file in enumerate(files):
            try:
                admit(file, self.max_file_bytes)
            except AdmissionError as exc:
                logger.info(
                    "Submission %d: skipped %s (%s)",
                    report.submission_id,
                    file.filename,
                    exc.error_code,
                )
                report.issues.append(
                    IngestionIssue(
                        source_index=index,
                        filename=file.filename,
                        kind=IssueKind.ADMISSION,
                        message=f"{file.filename} will be skipped: {exc.message}",
                        error_code=exc.error_code,
                    )
                )
                continue
            slots.append((EncodedImage(source_index=index, filename=file.filename), file))

        report.accepted = len(slots)
        if not slots:
            report.message = "No valid images to upload"
            logger.warning(
                "Submission %d: no files accepted out of %d",
                report.submission_id,
                report.received,
            )
            return report

        settled: list[EncodedImage] = []
        self._in_flight += 1
        try:
            async with asyncio.TaskGroup() as group:
                for pending, file in slots:
                    group.create_task(self._encode_one(pending, file, settled, report))
        finally:
            self._in_flight -= 1

        # Join point: every accepted file has settled.
        if epoch != self._epoch:
            report.stale = True
            report.message = "Upload discarded because the draft was reset"
            logger.info("Submission %d: discarded stale join", report.submission_id)
            return report

        ready = [entry for entry in settled if entry.status is ImageStatus.READY]
        self.batch.commit(ready)
        report.committed = ready
        report.issues.sort(key=lambda issue: issue.source_index)
        if ready:
            report.message = (
                f"Successfully uploaded {len(ready)} image{_plural(len(ready))}"
            )
        else:
            report.message = "None of the selected images could be read"
        logger.info(
            "Submission %d: committed %d of %d files (%d issues)",
            report.submission_id,
            len(ready),
            report.received,
            len(report.issues),
        )
        return report

    async def _encode_one(
        self,
        pending: EncodedImage,
        file: UploadedImage,
        settled: list[EncodedImage],
        report: BatchReport,
    ) -> None:
        try:
            data = await self.codec.encode(file)
        except Exception as exc:  # noqa: BLE001 - one file never fails its siblings
            error = exc if isinstance(exc, DecodeError) else DecodeError(str(exc))
            if error is not exc:
                logger.exception("Unexpected error encoding %s", file.filename)
            settled.append(pending.failed())
            report.issues.append(
                IngestionIssue(
                    source_index=pending.source_index,
                    filename=file.filename,
                    kind=IssueKind.DECODE,
                    message=f"{file.filename} could not be read: {error.message}",
                    error_code=error.error_code,
                )
            )
            return
        settled.append(pending.ready(data))

    def remove(self, position: int) -> EncodedImage:
        """Remove a committed entry by its current position."""
        removed = self.batch.remove(position)
        logger.info("Removed image at position %d", position)
        return removed

    def reset(self) -> None:
        """Clear the batch; joins from earlier submissions are discarded."""
        self._epoch += 1
        self.batch.clear()
