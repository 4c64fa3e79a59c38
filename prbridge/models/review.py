"""Pending review entries and the result of flushing them."""

from enum import Enum
from typing import List

from pydantic import Field

from prbridge.models.base import CanonicalModel


class ReviewEventType(str, Enum):
    COMMENT = "COMMENT"
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"


class PendingReviewEntry(CanonicalModel):
    """Inline comment staged while a review is open; memory only."""

    text: str
    file_path: str
    start_line: int | None = None
    end_line: int | None = None
    position: int | None = None
    left_sha: str | None = None
    right_sha: str | None = None
    sha: str | None = None


class BatchItemResult(CanonicalModel):
    entry: PendingReviewEntry
    ok: bool
    error: str | None = None


class BatchResult(CanonicalModel):
    """Per-entry outcome of a best-effort batch."""

    items: List[BatchItemResult] = Field(default_factory=list)

    @property
    def failed(self) -> List[BatchItemResult]:
        return [i for i in self.items if not i.ok]

    @property
    def succeeded(self) -> List[BatchItemResult]:
        return [i for i in self.items if i.ok]
