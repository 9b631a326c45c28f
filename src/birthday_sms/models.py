from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class Record:
    name: str
    birth_date: date
    row_number: int


@dataclass(frozen=True)
class SkippedRow:
    row_number: int
    reason: str
    name: str | None = None


@dataclass(frozen=True)
class IngestResult:
    records: list[Record]
    skipped: list[SkippedRow]


@dataclass(frozen=True)
class DeliveryOutcome:
    success: bool
    attempt_count: int
    timestamp: datetime
    message_id: str | None = None
    error_description: str | None = None


@dataclass
class PipelineResult:
    target_date: date | None = None
    records_processed: int = 0
    matches: list[Record] = field(default_factory=list)
    notification_sent: bool = False
    errors: list[str] = field(default_factory=list)
    skipped_rows: list[SkippedRow] = field(default_factory=list)
    delivery: DeliveryOutcome | None = None
