"""Record extraction from unreliable model output.

Model replies are expected to hold a JSON object such as
`{"errors": [{...}, {...}]}` (or a bare array of records), but in practice
they arrive wrapped in markdown fences, cut off mid-record when the output
token budget runs out, or otherwise malformed. `ResponseRepairParser` tries
three strategies in order and keeps the first one that yields a JSON document:

1. `parse_strict`: strip fences and parse the whole payload.
2. `repair_truncated`: cut the payload after the last complete record and
   close every bracket still open at that point.
3. `salvage_records`: scan the record array and parse each balanced `{...}`
   on its own, skipping the ones that do not parse.

None of the strategies raise. A chunk whose output cannot be recovered
yields no records.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from bid_review.types import RawRecord

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_KEYS: tuple[str, ...] = ("findings", "errors", "items")

_FENCED_BLOCK = re.compile(r"```[A-Za-z]*[ \t]*\r?\n?(?P<body>.*?)(?:```|\Z)", re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}

Strategy = Callable[[str, Sequence[str]], "list[RawRecord] | None"]


class _ScanState(Enum):
    CODE = "code"
    STRING = "string"
    ESCAPE = "escape"


@dataclass(slots=True)
class RepairOutcome:
    """Records recovered from one reply plus the strategy that produced them.

    `strategy` is `"exhausted"` when every strategy failed.
    """

    records: list[RawRecord] = field(default_factory=list)
    strategy: str = "exhausted"

    @property
    def exhausted(self) -> bool:
        return self.strategy == "exhausted"


def strip_code_fences(text: str) -> str:
    """Return the body of the first markdown code fence, or the trimmed text."""
    stripped = text.strip()
    match = _FENCED_BLOCK.search(stripped)
    if match is None:
        return stripped
    return match.group("body").strip()


def parse_strict(text: str, collection_keys: Sequence[str]) -> list[RawRecord] | None:
    """Parse `text` as one JSON document; None when it is not valid JSON."""
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return _records_from_payload(payload, collection_keys)


def repair_truncated(text: str, collection_keys: Sequence[str]) -> list[RawRecord] | None:
    """Drop the unfinished tail after the last complete record and re-close.

    The record array is the first `[` in the document. A record is complete
    when its closing `}` brings the bracket stack back to the array level.
    """

    begin = _document_start(text)
    if begin is None:
        return None

    stack: list[str] = []
    array_depth: int | None = None
    cut: tuple[int, str] | None = None

    for position, char in _structural_chars(text, begin):
        if char in _CLOSERS:
            stack.append(char)
            if char == "[" and array_depth is None:
                array_depth = len(stack)
            continue
        if not stack or _CLOSERS[stack[-1]] != char:
            break
        stack.pop()
        if not stack:
            # The document closed on its own; strict parsing already judged it.
            break
        if char == "}" and array_depth is not None and len(stack) == array_depth:
            closing = "".join(_CLOSERS[opener] for opener in reversed(stack))
            cut = (position + 1, closing)

    if cut is None:
        return None
    end, closing = cut
    return parse_strict(text[begin:end] + closing, collection_keys)


def salvage_records(text: str, collection_keys: Sequence[str]) -> list[RawRecord] | None:
    """Parse every balanced top-level object inside the record array."""
    start = _array_body_start(text, collection_keys)
    records: list[RawRecord] = []
    depth = 0
    object_start = 0

    for position, char in _structural_chars(text, start):
        if char == "{":
            if depth == 0:
                object_start = position
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                candidate = text[object_start : position + 1]
                try:
                    payload = json.loads(candidate)
                except (ValueError, RecursionError):
                    continue
                if isinstance(payload, dict):
                    records.append(RawRecord(fields=payload))

    return records or None


class ResponseRepairParser:
    """Escalating, never-raising parser for model replies."""

    def __init__(self, collection_keys: Sequence[str] = DEFAULT_COLLECTION_KEYS) -> None:
        self.collection_keys = tuple(collection_keys)
        self._strategies: tuple[tuple[str, Strategy], ...] = (
            ("strict", parse_strict),
            ("truncation", repair_truncated),
            ("brace_scan", salvage_records),
        )

    def parse(self, raw_output: str) -> list[RawRecord]:
        return self.parse_with_outcome(raw_output).records

    def parse_with_outcome(self, raw_output: str) -> RepairOutcome:
        text = strip_code_fences(raw_output or "")
        for name, strategy in self._strategies:
            records = strategy(text, self.collection_keys)
            if records is None:
                continue
            if name != "strict":
                logger.warning(
                    f"Recovered {len(records)} record(s) from malformed output via {name}"
                )
            return RepairOutcome(records=records, strategy=name)

        logger.warning(
            f"Could not recover any records from model output: {(raw_output or '')[:1000]!r}"
        )
        return RepairOutcome()


def _records_from_payload(payload: Any, collection_keys: Sequence[str]) -> list[RawRecord]:
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        items = []
        for key in collection_keys:
            if isinstance(payload.get(key), list):
                items = payload[key]
                break
    else:
        items = []
    return [RawRecord(fields=item) for item in items if isinstance(item, dict)]


def _structural_chars(text: str, start: int = 0) -> Iterator[tuple[int, str]]:
    """Yield brackets and braces that sit outside JSON string literals."""
    state = _ScanState.CODE
    for position in range(start, len(text)):
        char = text[position]
        if state is _ScanState.ESCAPE:
            state = _ScanState.STRING
        elif state is _ScanState.STRING:
            if char == "\\":
                state = _ScanState.ESCAPE
            elif char == '"':
                state = _ScanState.CODE
        elif char == '"':
            state = _ScanState.STRING
        elif char in "{}[]":
            yield position, char


def _document_start(text: str) -> int | None:
    for position, char in _structural_chars(text):
        if char in _CLOSERS:
            return position
    return None


def _array_body_start(text: str, collection_keys: Sequence[str]) -> int:
    for key in collection_keys:
        match = re.search(rf'"{re.escape(key)}"\s*:\s*\[', text)
        if match:
            return match.end()
    for position, char in _structural_chars(text):
        if char == "[":
            return position + 1
    return 0
