# services/issue_normalizer.py

"""
Issue normalizer.

Issues reach the API in four shapes: entries of a student's `issues`,
`complaints` or `maintenance` arrays, and rows of the standalone `issues`
collection. Field names drifted over time (`solved`/`isSolved`,
`timestamp`/`date`, room/floor/hostel stored on the issue, under
`hostelDetails`, or only on the student). Everything past this module only
sees the canonical `Issue`.
"""

import hashlib
import json
import time
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence

from core.logging_config import get_logger
from models.enums import IssueStatus, IssueType, SourceKind
from models.issue import Issue

log = get_logger("normalizer")

UNCATEGORIZED = "uncategorized"

# Arrays on a person document and the source kind of their entries
EMBEDDED_ARRAYS = (
    ("issues", SourceKind.embedded_issue),
    ("complaints", SourceKind.embedded_complaint),
    ("maintenance", SourceKind.embedded_maintenance),
)

DEFAULT_TYPE = {
    SourceKind.embedded_issue: IssueType.complaint,
    SourceKind.embedded_complaint: IssueType.complaint,
    SourceKind.embedded_maintenance: IssueType.maintenance,
    SourceKind.standalone: IssueType.complaint,
}

# Field names tried at each level of a location fallback chain. Each tuple is
# one pass over the chain; stored ids are tried everywhere before display values.
HOSTEL_KEYS = (("hostelId",), ("hostel",))
FLOOR_KEYS = (("floorId",), ("floor",))
ROOM_KEYS = (("room", "roomNumber", "studentRoom"),)


# -----------------------------------------------------
# Small helpers
# -----------------------------------------------------
def first_present(*values: Any) -> Any:
    """First value that is not None / empty string / empty container."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        if isinstance(value, (list, dict, set, tuple)) and not value:
            continue
        return value
    return None


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value).strip() or None


def _level(doc: Optional[dict], keys: Sequence[str]) -> Any:
    if not isinstance(doc, dict):
        return None
    return first_present(*(doc.get(k) for k in keys))


def _details(doc: Optional[dict]) -> Optional[dict]:
    if not isinstance(doc, dict):
        return None
    details = doc.get("hostelDetails")
    return details if isinstance(details, dict) else None


def resolve_location(raw: dict, parent: Optional[dict], passes: Sequence[Sequence[str]]) -> Optional[str]:
    """
    issue field -> issue hostelDetails.* -> parent field -> parent hostelDetails.*
    First non-empty wins, trying each pass of key names in turn.
    """
    levels = (raw, _details(raw), parent, _details(parent))
    for keys in passes:
        value = first_present(*(_level(level, keys) for level in levels))
        if value is not None:
            return _text(value)
    return None


# -----------------------------------------------------
# Timestamps
# -----------------------------------------------------
def to_epoch_ms(value: Any) -> Optional[int]:
    """
    Converts store-native and legacy timestamp shapes to epoch ms.
    Returns None (never raises) for anything unusable.
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return int(value.timestamp() * 1000)

        if isinstance(value, date):
            return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp() * 1000)

        if isinstance(value, dict):
            seconds = first_present(value.get("seconds"), value.get("_seconds"))
            if seconds is None:
                return None
            nanos = first_present(value.get("nanoseconds"), value.get("_nanoseconds")) or 0
            return int(float(seconds) * 1000 + float(nanos) / 1_000_000)

        if isinstance(value, (int, float)):
            # seconds vs milliseconds
            return int(value * 1000) if abs(value) < 100_000_000_000 else int(value)

        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            try:
                return to_epoch_ms(float(text))
            except ValueError:
                pass
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            return to_epoch_ms(datetime.fromisoformat(text))

    except (ValueError, TypeError, OverflowError) as e:
        log.debug(f"Unusable timestamp {value!r}: {e}")

    return None


def resolve_timestamp(raw: dict) -> int:
    candidates = [
        raw.get("timestampUtc"),
        raw.get("timestamp"),
    ]
    if raw.get("date"):
        if raw.get("time"):
            candidates.append(f"{raw['date']}T{raw['time']}")
        candidates.append(raw.get("date"))
    candidates.append(raw.get("createdAt"))

    for candidate in candidates:
        ms = to_epoch_ms(candidate)
        if ms is not None:
            return ms

    return int(time.time() * 1000)


def resolve_complete_date(raw: dict) -> Optional[str]:
    """ISO-8601 text; store-native timestamps and epoch numbers are converted."""
    value = raw.get("completeDate")
    if value is None or isinstance(value, str):
        return _text(value)
    ms = to_epoch_ms(value)
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


# -----------------------------------------------------
# Identity of a raw record
# -----------------------------------------------------
def resolve_id(raw: dict, parent: Optional[dict]) -> str:
    explicit = first_present(raw.get("id"), raw.get("issueId"), raw.get("postId"))
    if explicit is not None:
        return str(explicit)

    # Legacy entries without an id get a stable content-derived one
    fingerprint = json.dumps(
        {"parent": (parent or {}).get("id"), "raw": raw},
        sort_keys=True,
        default=str,
    )
    return "legacy-" + hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()[:16]


def resolve_type(raw: dict, source_kind: SourceKind) -> IssueType:
    explicit = IssueType.parse(first_present(raw.get("type"), raw.get("tag")))
    return explicit or DEFAULT_TYPE[source_kind]


def parent_name(parent: Optional[dict]) -> Optional[str]:
    if not parent:
        return None
    return _text(first_present(parent.get("fullName"), parent.get("name"))) or "Unknown Student"


# ============================================================
# normalize(raw, source_kind, parent) -> Issue
# ============================================================
def normalize(raw: dict, source_kind: SourceKind, parent: Optional[dict] = None) -> Issue:
    source_kind = SourceKind(source_kind)
    issue_type = resolve_type(raw, source_kind)

    solved = bool(raw.get("solved") or raw.get("isSolved") or False)

    category = None
    if issue_type == IssueType.maintenance:
        category = _text(raw.get("category")) or UNCATEGORIZED

    if parent:
        student_id = _text(parent.get("id"))
        student_name = parent_name(parent)
    else:
        student_id = _text(first_present(raw.get("studentId"), raw.get("userId")))
        student_name = _text(raw.get("studentName"))

    return Issue(
        id=resolve_id(raw, parent),
        type=issue_type,
        message=str(first_present(raw.get("message"), raw.get("content"), raw.get("description")) or ""),
        timestamp_utc=resolve_timestamp(raw),
        author_id=_text(first_present(
            raw.get("authorId"),
            raw.get("userId"),
            (parent or {}).get("uid"),
            student_id,
        )),
        student_id=student_id,
        student_name=student_name,
        hostel=resolve_location(raw, parent, HOSTEL_KEYS),
        floor=resolve_location(raw, parent, FLOOR_KEYS),
        room=resolve_location(raw, parent, ROOM_KEYS),
        category=category,
        solved=solved,
        status=IssueStatus.resolved if solved else IssueStatus.open,
        complete_date=resolve_complete_date(raw) if solved else None,
        source="standalone" if source_kind == SourceKind.standalone else "embedded",
        parent_id=student_id if parent else _text(raw.get("parentId")),
    )


# ============================================================
# Person-level helpers
# ============================================================
def normalize_person_issues(person: dict) -> List[Issue]:
    """Flattens issues/complaints/maintenance arrays of one person."""
    issues: List[Issue] = []
    for field, kind in EMBEDDED_ARRAYS:
        entries = person.get(field)
        if not isinstance(entries, list):
            continue
        for raw in entries:
            if not isinstance(raw, dict):
                log.debug(f"Skipping non-object entry in {person.get('id')}.{field}")
                continue
            issues.append(normalize(raw, kind, person))
    return issues


def merge_issues(embedded: Iterable[Issue], standalone: Iterable[Issue] = ()) -> List[Issue]:
    """
    De-duplicates by id. Embedded entries win over standalone rows (the
    standalone collection is legacy); within a source, first occurrence wins.
    """
    merged: List[Issue] = []
    seen = set()
    for issue in list(embedded) + list(standalone):
        if issue.id in seen:
            continue
        seen.add(issue.id)
        merged.append(issue)
    return merged


def sort_issues(issues: Iterable[Issue]) -> List[Issue]:
    """Newest first; equal timestamps keep their insertion order."""
    return sorted(issues, key=lambda issue: issue.timestamp_utc, reverse=True)


def issue_counts(issues: Sequence[Issue]) -> dict:
    resolved = sum(1 for i in issues if i.solved)
    return {"total": len(issues), "open": len(issues) - resolved, "resolved": resolved}
