"""
Result shapes for batch registration.

Each candidate produces exactly one tagged item result, so a failure can
always be traced back to the input position and email that caused it.
"""

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass(slots=True)
class BatchItemCreated:
    index: int
    email: str
    record: Any
    status: Literal["created"] = "created"


@dataclass(slots=True)
class BatchItemFailed:
    index: int
    email: str
    reason: str
    status: Literal["failed"] = "failed"


BatchItemResult = BatchItemCreated | BatchItemFailed


@dataclass(slots=True)
class BatchOutcome:
    results: list[BatchItemResult] = field(default_factory=list)

    @property
    def created(self) -> list[Any]:
        return [item.record for item in self.results if isinstance(item, BatchItemCreated)]

    @property
    def failures(self) -> list[BatchItemFailed]:
        return [item for item in self.results if isinstance(item, BatchItemFailed)]

    @property
    def success_count(self) -> int:
        return len(self.created)
