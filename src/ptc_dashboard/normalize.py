"""Row normalization for sign-up sheet imports.

Maps records keyed by human-authored headers ("Sign Up", "Start Date/Time
(mm/dd/yyyy)", "Item", ...) onto the canonical SlotRecord shape. Header
matching is driven by HEADER_TABLE and evaluated once per batch.

All functions here are pure.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional

from ptc_dashboard.errors import SchemaError
from ptc_dashboard.models import SLOT_FIELDS, SlotRecord

EXACT = "exact"
CONTAINS = "contains"

# canonical field -> accepted header predicates, tried in order
HEADER_TABLE: dict[str, tuple[tuple[str, str], ...]] = {
    "sign_up": (
        (EXACT, "sign up"),
        (EXACT, "sign-up"),
        (EXACT, "sign ups"),
        (EXACT, "signup"),
        (EXACT, "sign_up"),
    ),
    "start_datetime": (
        (CONTAINS, "start date"),
        (EXACT, "start_datetime"),
    ),
    "end_datetime": (
        (CONTAINS, "end date"),
        (EXACT, "end_datetime"),
    ),
    "location": (
        (EXACT, "location"),
    ),
    "qty": (
        (EXACT, "qty"),
        (EXACT, "quantity"),
    ),
    "item": (
        (EXACT, "item"),
        (EXACT, "grade"),
        (EXACT, "category"),
    ),
    "first_name": (
        (EXACT, "first name"),
        (EXACT, "first_name"),
        (EXACT, "firstname"),
    ),
    "last_name": (
        (EXACT, "last name"),
        (EXACT, "last_name"),
        (EXACT, "lastname"),
    ),
    "email": (
        (EXACT, "email"),
        (EXACT, "email address"),
        (EXACT, "e-mail"),
    ),
    "signup_comment": (
        (EXACT, "sign up comment"),
        (EXACT, "signup comment"),
        (EXACT, "signup_comment"),
        (EXACT, "comment"),
    ),
    "sign_up_coleader": (
        (EXACT, "sign up coleader"),
        (EXACT, "sign up co-leader"),
        (EXACT, "sign_up_coleader"),
        (EXACT, "coleader"),
        (EXACT, "co-leader"),
    ),
    "signup_timestamp": (
        (EXACT, "sign up timestamp"),
        (EXACT, "signup timestamp"),
        (EXACT, "signup_timestamp"),
    ),
}

REQUIRED_FIELDS = ("item",)

DEFAULT_QTY = 1

_DATETIME_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2})(?::(\d{2}))?$"
)
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _header_key(header: Any) -> str:
    return re.sub(r"\s+", " ", str(header or "")).strip().lower()


def _matches(predicate: tuple[str, str], key: str) -> bool:
    kind, text = predicate
    if kind == EXACT:
        return key == text
    return text in key


def build_header_map(
    headers: Iterable[Any], required: Iterable[str] = REQUIRED_FIELDS
) -> dict[str, Any]:
    """
    Resolve incoming headers to canonical fields.

    Args:
        headers: Header row in its original order
        required: Canonical fields that must be located

    Returns:
        Dict of {canonical_field: original_header} for every field found

    Raises:
        SchemaError: If a required field has no matching header
    """
    headers = list(headers)
    keyed = [(header, _header_key(header)) for header in headers]
    claimed: set[int] = set()
    header_map: dict[str, Any] = {}

    for canonical, predicates in HEADER_TABLE.items():
        for predicate in predicates:
            match = next(
                (
                    idx
                    for idx, (_, key) in enumerate(keyed)
                    if idx not in claimed and _matches(predicate, key)
                ),
                None,
            )
            if match is not None:
                claimed.add(match)
                header_map[canonical] = keyed[match][0]
                break

    missing = [name for name in required if name not in header_map]
    if missing:
        raise SchemaError(missing=missing, found=[str(h) for h in headers])
    return header_map


def canonicalize_datetime(value: Any) -> str:
    """
    Render a slot date-time as M/D/YYYY H:MM.

    Native datetimes are formatted directly (a bare date is taken as
    midnight). Strings in M/D/YYYY H:MM[:SS] form lose their seconds and any
    zero padding on month, day and hour. Anything else is trimmed and
    returned unchanged.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return _render(value.month, value.day, value.year, value.hour, value.minute)
    if isinstance(value, date):
        return _render(value.month, value.day, value.year, 0, 0)

    text = str(value).strip()
    m = _DATETIME_RE.match(text)
    if not m:
        return text
    month, day, year, hour, minute = (int(part) for part in m.groups()[:5])
    return _render(month, day, year, hour, minute)


def _render(month: int, day: int, year: int, hour: int, minute: int) -> str:
    return f"{month}/{day}/{year} {hour}:{minute:02d}"


def parse_slot_datetime(text: str) -> Optional[datetime]:
    """Parse a canonical slot date-time; None when it is not in that form."""
    m = _DATETIME_RE.match((text or "").strip())
    if not m:
        return None
    month, day, year, hour, minute = (int(part) for part in m.groups()[:5])
    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


def parse_quantity(value: Any) -> int:
    """Leading integer of the value; DEFAULT_QTY when missing or non-numeric."""
    if value is None or isinstance(value, bool):
        return DEFAULT_QTY
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else DEFAULT_QTY
    m = _LEADING_INT_RE.match(str(value))
    return int(m.group(1)) if m else DEFAULT_QTY


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return canonicalize_datetime(value)
    return str(value).strip()


def normalize_row(
    raw: Mapping[str, Any], header_map: Optional[Mapping[str, Any]] = None
) -> SlotRecord:
    """
    Build a SlotRecord from one raw record.

    Args:
        raw: Record keyed by header (CSV/sheet) or by column name (database)
        header_map: Result of build_header_map for the batch; derived from
            the record's own keys when omitted

    Returns:
        SlotRecord with trimmed string fields, integer qty (None when the
        column is absent or blank) and canonical start/end date-times. A record without an item comes back with
        item == "" and must be ignored by callers.
    """
    if header_map is None:
        header_map = build_header_map(raw.keys(), required=())

    values: dict[str, Any] = {}
    for name in SLOT_FIELDS:
        header = header_map.get(name)
        value = raw.get(header) if header is not None else None
        if name in ("start_datetime", "end_datetime"):
            values[name] = canonicalize_datetime(value)
        elif name == "qty":
            # left unset when not supplied; inserts default it, merges skip it
            values[name] = None if _text(value) == "" else parse_quantity(value)
        else:
            values[name] = _text(value)
    return SlotRecord(**values)


def normalize_stored(record: SlotRecord) -> SlotRecord:
    """
    Canonicalize a stored record's identity fields, keeping its row id.

    Stored qty is kept as-is (including None) so a merge can tell a missing
    quantity from a real one.
    """
    values = {name: _text(getattr(record, name)) for name in SLOT_FIELDS if name != "qty"}
    values["start_datetime"] = canonicalize_datetime(record.start_datetime)
    values["end_datetime"] = canonicalize_datetime(record.end_datetime)
    return SlotRecord(id=record.id, qty=record.qty, **values)
