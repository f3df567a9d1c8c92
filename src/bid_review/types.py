"""Shared domain models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Priority(str, Enum):
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Language(str, Enum):
    ZH = "zh"
    EN = "en"

    @classmethod
    def parse(cls, value: str | Language | None) -> Language:
        """Resolve a language code, falling back to Chinese."""
        if isinstance(value, Language):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.ZH


class ComplianceStatus(str, Enum):
    YES = "Y"
    NO = "N"
    PARTIAL = "Partial"
    UNKNOWN = ""


class CoverageStatus(str, Enum):
    COVERED = "covered"
    PARTIALLY_COVERED = "partially_covered"
    MISSING = "missing"


@dataclass(slots=True)
class Chunk:
    """A contiguous slice of the source document text."""

    index: int
    text: str
    start: int = 0


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One unvalidated record pulled out of model output.

    Only the normalizer turns a `RawRecord` into a canonical model.
    """

    fields: Mapping[str, Any]

    def get(self, *keys: str) -> Any:
        """Return the first non-None value among `keys`."""
        for key in keys:
            value = self.fields.get(key)
            if value is not None:
                return value
        return None


@dataclass(slots=True)
class Finding:
    """Canonical review finding after normalization."""

    id: str
    rule_id: str
    title: str
    severity: Severity
    priority: Priority
    page_no: int
    snippet: str
    suggestion: str
    confidence: float


@dataclass(slots=True)
class ChunkFindings:
    """Normalized findings produced by one chunk."""

    index: int
    findings: list[Finding]
    repair_strategy: str = "strict"


@dataclass(slots=True)
class AnalysisResult:
    """Aggregated review result keyed by an opaque document id."""

    doc_id: str
    total_pages: int
    findings: list[Finding] = field(default_factory=list)
    status: AnalysisStatus = AnalysisStatus.COMPLETED
    created_at: int | None = None

    @property
    def finding_count(self) -> int:
        return len(self.findings)


@dataclass(slots=True)
class MatrixItem:
    """One mandatory requirement extracted from an RFP."""

    requirement_id: str
    requirement_text: str
    source_section: str = ""
    source_page: int = 0
    requirement_type: str | None = None
    compliance_status: ComplianceStatus | None = None


@dataclass(slots=True)
class BidComparisonItem:
    """How well the bid answers one extracted requirement."""

    id: int
    requirement_id: str
    requirement_text: str
    status: CoverageStatus
    evidence: str = ""
    comment: str = ""


@dataclass(slots=True)
class BidComparisonSummary:
    total: int = 0
    covered: int = 0
    partially_covered: int = 0
    missing: int = 0

    @classmethod
    def from_items(cls, items: list[BidComparisonItem]) -> BidComparisonSummary:
        statuses = [item.status for item in items]
        return cls(
            total=len(items),
            covered=statuses.count(CoverageStatus.COVERED),
            partially_covered=statuses.count(CoverageStatus.PARTIALLY_COVERED),
            missing=statuses.count(CoverageStatus.MISSING),
        )


@dataclass(slots=True)
class BidComparison:
    items: list[BidComparisonItem] = field(default_factory=list)
    summary: BidComparisonSummary = field(default_factory=BidComparisonSummary)
