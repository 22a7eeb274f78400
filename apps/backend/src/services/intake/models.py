"""Domain models shared by the intake engine components.

These are plain dataclasses rather than pydantic models: they never cross
the API boundary directly (see `schemas.intake` for the wire shapes) and
several of them are created on every settled encode.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4


class ImageStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class IssueKind(str, Enum):
    ADMISSION = "admission"
    DECODE = "decode"


class EditingMode(str, Enum):
    """Which editing surface the draft is shown in."""

    AI_INTAKE = "ai_intake"
    MANUAL_REVIEW = "manual_review"


@dataclass(frozen=True, slots=True)
class UploadedImage:
    """One binary handed over at the file input boundary."""

    filename: str
    content_type: str
    data: bytes = field(repr=False)
    declared_size: int | None = None

    @property
    def size(self) -> int:
        if self.declared_size is not None:
            return self.declared_size
        return len(self.data)


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """An image entry owned by a batch; immutable once ready."""

    source_index: int
    filename: str
    data: str = field(default="", repr=False)
    status: ImageStatus = ImageStatus.PENDING
    id: str = field(default_factory=lambda: uuid4().hex)

    def ready(self, data: str) -> EncodedImage:
        return EncodedImage(
            source_index=self.source_index,
            filename=self.filename,
            data=data,
            status=ImageStatus.READY,
            id=self.id,
        )

    def failed(self) -> EncodedImage:
        return EncodedImage(
            source_index=self.source_index,
            filename=self.filename,
            status=ImageStatus.FAILED,
            id=self.id,
        )


@dataclass(frozen=True, slots=True)
class IngestionIssue:
    source_index: int
    filename: str
    kind: IssueKind
    message: str
    error_code: str


@dataclass(slots=True)
class BatchReport:
    """Outcome of one `BatchIngestionEngine.submit` call."""

    submission_id: int
    received: int
    accepted: int = 0
    committed: list[EncodedImage] = field(default_factory=list)
    issues: list[IngestionIssue] = field(default_factory=list)
    stale: bool = False
    message: str = ""

    @property
    def success(self) -> bool:
        return bool(self.committed) and not self.stale
