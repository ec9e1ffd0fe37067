"""Per-grade counts and listing order for the dashboard."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping

from ptc_dashboard import constants
from ptc_dashboard.normalize import parse_slot_datetime

COUNT_FIELDS = ("total", "in_building", "late", "cancelled", "pending", "open_slots")

# status value -> summary column
_STATUS_COLUMNS = {
    constants.STATUS_IN_BUILDING: "in_building",
    constants.STATUS_LATE: "late",
    constants.STATUS_CANCEL: "cancelled",
    constants.STATUS_NONE: "pending",
}


def _empty_counts() -> dict[str, int]:
    return {name: 0 for name in COUNT_FIELDS}


def _is_open(row: Mapping[str, Any]) -> bool:
    if "is_empty_slot" in row:
        return bool(row["is_empty_slot"])
    return not row.get("email") and not row.get("first_name")


def summarize(rows: Iterable[Mapping[str, Any]]) -> dict:
    """
    Count filled slots by status, and open slots, per grade and overall.

    Open slots are counted only in open_slots. A filled slot with an unknown
    status counts toward total and pending. Rows that are not mappings or have
    no item are ignored.

    Returns:
        {"grades": [{"grade": ..., <counts>}, ...], "totals": {<counts>}}
        with grades in lexicographic order
    """
    per_grade: dict[str, dict[str, int]] = {}
    totals = _empty_counts()

    for row in rows or ():
        if not isinstance(row, Mapping) or not row.get("item"):
            continue
        counts = per_grade.setdefault(str(row["item"]), _empty_counts())
        if _is_open(row):
            columns = ("open_slots",)
        else:
            status = row.get("status") or constants.STATUS_NONE
            columns = ("total", _STATUS_COLUMNS.get(status, "pending"))
        for column in columns:
            counts[column] += 1
            totals[column] += 1

    grades = [{"grade": grade, **per_grade[grade]} for grade in sorted(per_grade)]
    return {"grades": grades, "totals": totals}


def _sort_key(row: Mapping[str, Any]):
    start = str(row.get("start_datetime") or "")
    moment = parse_slot_datetime(start)
    # unparseable times sort after every real moment, then by text
    when = (0, moment, "") if moment else (1, datetime.min, start)
    label = row.get("signup_comment") or " ".join(
        part for part in (row.get("first_name"), row.get("last_name")) if part
    )
    return (when, str(row.get("item") or ""), _is_open(row), str(label).lower())


def sort_rows(rows: Iterable[Mapping[str, Any]]) -> list:
    """Start time, then grade, then filled before open, then comment/name."""
    return sorted(rows, key=_sort_key)
