"""Coercion of loosely-typed model records into canonical models.

Normalization never rejects a record: missing or invalid values fall back to
defaults, and severity/priority are always resolved to a valid member.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Sequence
from typing import Any

from bid_review.types import (
    BidComparisonItem,
    ComplianceStatus,
    CoverageStatus,
    Finding,
    MatrixItem,
    Priority,
    RawRecord,
    Severity,
)

_SEVERITY_BY_NAME = {severity.value.lower(): severity for severity in Severity}
_PRIORITY_BY_SEVERITY = {
    Severity.CRITICAL: Priority.P1,
    Severity.HIGH: Priority.P2,
}
_COMPLIANCE_ALIASES = {
    "Y": ComplianceStatus.YES,
    "YES": ComplianceStatus.YES,
    "COMPLIANT": ComplianceStatus.YES,
    "N": ComplianceStatus.NO,
    "NO": ComplianceStatus.NO,
    "NONCOMPLIANT": ComplianceStatus.NO,
    "NON-COMPLIANT": ComplianceStatus.NO,
    "PARTIAL": ComplianceStatus.PARTIAL,
    "PARTIALLY": ComplianceStatus.PARTIAL,
    "PARTIALLY_COVERED": ComplianceStatus.PARTIAL,
}
_COVERAGE_ALIASES = {
    "covered": CoverageStatus.COVERED,
    "partially_covered": CoverageStatus.PARTIALLY_COVERED,
    "partial": CoverageStatus.PARTIALLY_COVERED,
    "partially": CoverageStatus.PARTIALLY_COVERED,
}


def normalize_finding(raw: RawRecord) -> Finding:
    severity = coerce_severity(raw.get("severity"))
    return Finding(
        id=str(uuid.uuid4()),
        rule_id=coerce_str(raw.get("rule_id")),
        title=coerce_str(raw.get("title")),
        severity=severity,
        priority=coerce_priority(raw.get("priority"), severity),
        page_no=coerce_page(raw.get("page_no")),
        snippet=coerce_str(raw.get("snippet")),
        suggestion=coerce_str(raw.get("suggestion")),
        confidence=coerce_number(raw.get("confidence")),
    )


def normalize_matrix_item(raw: RawRecord, index: int) -> MatrixItem:
    """Normalize one requirement; `index` is its position within its chunk."""
    requirement_id = raw.get("requirementId", "requirement_id", "id")
    requirement_type = raw.get("requirementType", "requirement_type")
    return MatrixItem(
        requirement_id=coerce_str(requirement_id) or str(index + 1),
        requirement_text=coerce_str(
            raw.get("requirementText", "requirement_text", "text", "requirement")
        ),
        source_section=coerce_str(raw.get("sourceSection", "section", "section_id")),
        source_page=coerce_page(raw.get("sourcePage", "page", "source_page")),
        requirement_type=None if requirement_type is None else coerce_str(requirement_type),
        compliance_status=coerce_compliance_status(
            raw.get("complianceStatus", "compliance_status")
        ),
    )


def normalize_comparison_item(
    raw: RawRecord, index: int, requirements: Sequence[MatrixItem] = ()
) -> BidComparisonItem:
    """Normalize one coverage verdict.

    Missing requirement ids and texts are filled from `requirements`, by id
    first and then by position. Unknown statuses count as missing.
    """

    positional = requirements[index] if index < len(requirements) else None
    requirement_id = coerce_str(raw.get("requirement_id", "requirementId"))
    if not requirement_id:
        requirement_id = positional.requirement_id if positional else str(index + 1)

    requirement_text = coerce_str(raw.get("requirement_text", "requirement"))
    if not requirement_text:
        by_id = next(
            (item for item in requirements if item.requirement_id == requirement_id), None
        )
        source = by_id or positional
        requirement_text = source.requirement_text if source else ""

    raw_id = raw.get("id")
    return BidComparisonItem(
        id=raw_id if isinstance(raw_id, int) and not isinstance(raw_id, bool) else index + 1,
        requirement_id=requirement_id,
        requirement_text=requirement_text,
        status=coerce_coverage_status(raw.get("status")),
        evidence=coerce_str(raw.get("evidence")),
        comment=coerce_str(raw.get("comment")),
    )


def coerce_severity(value: Any) -> Severity:
    return _SEVERITY_BY_NAME.get(coerce_str(value).strip().lower(), Severity.LOW)


def coerce_priority(value: Any, severity: Severity) -> Priority:
    text = coerce_str(value).strip().upper()
    for priority in Priority:
        if text.startswith(priority.value):
            return priority
    return _PRIORITY_BY_SEVERITY.get(severity, Priority.P3)


def coerce_number(value: Any) -> float:
    """Parse `value` as a finite number, falling back to 0."""
    if isinstance(value, bool):
        return 0.0
    if not isinstance(value, (int, float, str)):
        return 0.0
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        # JSON integers are unbounded; float() overflows past ~1e308.
        return 0.0
    return number if math.isfinite(number) else 0.0


def coerce_page(value: Any) -> int:
    return max(0, int(coerce_number(value)))


def coerce_str(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_compliance_status(value: Any) -> ComplianceStatus | None:
    if value is None:
        return None
    return _COMPLIANCE_ALIASES.get(coerce_str(value).strip().upper(), ComplianceStatus.UNKNOWN)


def coerce_coverage_status(value: Any) -> CoverageStatus:
    return _COVERAGE_ALIASES.get(coerce_str(value).strip().lower(), CoverageStatus.MISSING)
