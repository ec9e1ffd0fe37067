"""Read side: stored rows joined with their live status."""

from __future__ import annotations

from typing import Optional

from ptc_dashboard import constants
from ptc_dashboard.managers import DbManager
from ptc_dashboard.normalize import normalize_stored
from ptc_dashboard.slot_keys import assign_slot_keys
from ptc_dashboard.summary import sort_rows, summarize


def load_slots(db: DbManager) -> list[dict]:
    """Every stored slot in persisted order, with slot_key and status attached."""
    with db.snapshot():
        records = db.load_signup_rows()
        statuses = db.read_all_statuses()

    slots = []
    for key, record in assign_slot_keys(normalize_stored(r) for r in records):
        row = record.to_dict()
        row["slot_key"] = str(key)
        row["status"] = statuses.get(str(key), constants.STATUS_NONE)
        slots.append(row)
    return slots


def _filter(slots: list[dict], grade: Optional[str]) -> list[dict]:
    if not grade:
        return slots
    return [row for row in slots if row["item"] == grade]


def list_signups(db: DbManager, grade: Optional[str] = None) -> list[dict]:
    return sort_rows(_filter(load_slots(db), grade))


def get_summary(db: DbManager, grade: Optional[str] = None) -> dict:
    return summarize(_filter(load_slots(db), grade))


def load_dashboard(db: DbManager, grade: Optional[str] = None) -> dict:
    """Grades, listing and summary for one page, all from a single snapshot."""
    slots = load_slots(db)
    selected = _filter(slots, grade)
    return {
        "grades": sorted({row["item"] for row in slots}),
        "signups": sort_rows(selected),
        "summary": summarize(selected),
    }
