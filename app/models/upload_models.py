"""
In-flight image and upload state for report submissions

These objects live only for the duration of one submission attempt and
are never persisted.
"""

import math
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties going up"""
    return int(math.floor(value + 0.5))


@dataclass
class RawImage:
    """User-supplied image bytes with their declared media type"""
    data: bytes
    content_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class NormalizedImage:
    """Image ready for upload"""
    data: bytes
    content_type: str
    filename: str
    width: Optional[int] = None
    height: Optional[int] = None
    is_original: bool = False

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_raw(cls, raw: RawImage) -> "NormalizedImage":
        """Wrap an untouched original (fail-open path)"""
        return cls(
            data=raw.data,
            content_type=raw.content_type,
            filename=raw.filename,
            is_original=True
        )


def jpeg_filename(filename: str) -> str:
    """Replace the extension of a filename with .jpg"""
    stem, _ = os.path.splitext(os.path.basename(filename or ""))
    return f"{stem or 'image'}.jpg"


class UploadState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class UploadSnapshot:
    """One progress event emitted by a blob store upload"""
    bytes_transferred: int
    total_bytes: int
    url: Optional[str] = None


@dataclass
class UploadTask:
    """Progress of a single image within a batch"""
    index: int
    total_bytes: int = 0
    bytes_transferred: int = 0
    percent: int = 0
    state: UploadState = UploadState.PENDING
    url: Optional[str] = None


@dataclass
class UploadBatch:
    """
    Ordered upload tasks for one submission.

    overall_percent is the rounded mean of the per-task percentages, not a
    byte-weighted average. Each task is mutated only by its own events.
    """
    tasks: List[UploadTask] = field(default_factory=list)
    overall_percent: int = 0

    @classmethod
    def create(cls, count: int) -> "UploadBatch":
        if count < 1:
            raise ValueError("An upload batch needs at least one image")
        return cls(tasks=[UploadTask(index=i) for i in range(count)])

    def __len__(self) -> int:
        return len(self.tasks)

    @property
    def percentages(self) -> List[int]:
        return [task.percent for task in self.tasks]

    @property
    def completed_count(self) -> int:
        return sum(1 for task in self.tasks if task.state == UploadState.COMPLETE)

    def start(self, index: int, total_bytes: int) -> None:
        task = self.tasks[index]
        task.state = UploadState.IN_PROGRESS
        task.total_bytes = total_bytes

    def record_progress(self, index: int, bytes_transferred: int, total_bytes: int) -> None:
        task = self.tasks[index]
        task.bytes_transferred = bytes_transferred
        task.total_bytes = total_bytes
        task.percent = round_half_up(bytes_transferred / (total_bytes or 1) * 100)
        self._recompute()

    def complete(self, index: int, url: str) -> None:
        task = self.tasks[index]
        task.state = UploadState.COMPLETE
        task.url = url
        task.percent = 100
        self._recompute()

    def fail(self, index: int) -> None:
        self.tasks[index].state = UploadState.FAILED

    def _recompute(self) -> None:
        self.overall_percent = round_half_up(sum(self.percentages) / len(self.tasks))
