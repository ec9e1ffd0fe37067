"""Fill-blanks merge of an incoming sign-up row into a stored one.

A stored value that is non-empty is never replaced. Differences between two
non-empty values are reported as conflicts and the stored value wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from ptc_dashboard.models import MERGEABLE_FIELDS, SlotRecord
from ptc_dashboard.normalize import DEFAULT_QTY

INSERTED = "inserted"
UPDATED = "updated"
UNCHANGED = "unchanged"


@dataclass(frozen=True)
class FieldConflict:
    field: str
    existing: Any
    incoming: Any

    def to_dict(self) -> dict:
        return {"field": self.field, "existing": self.existing, "incoming": self.incoming}


@dataclass
class MergeOutcome:
    action: str
    record: SlotRecord
    changes: dict[str, Any] = field(default_factory=dict)
    conflicts: list[FieldConflict] = field(default_factory=list)


def is_blank(name: str, value: Any) -> bool:
    # qty 0 is a real quantity; only a missing one is blank
    if name == "qty":
        return value is None
    return value is None or str(value).strip() == ""


def merge_record(existing: Optional[SlotRecord], incoming: SlotRecord) -> MergeOutcome:
    """
    Merge an incoming normalized record into the stored record with the same key.

    Args:
        existing: Stored record for the slot, or None when the slot is new
        incoming: Normalized incoming record

    Returns:
        MergeOutcome with action INSERTED (record is the row to append),
        UPDATED (changes holds only the filled-in fields) or UNCHANGED.
    """
    if existing is None:
        record = replace(incoming, id=None)
        if record.qty is None:
            record.qty = DEFAULT_QTY
        return MergeOutcome(action=INSERTED, record=record)

    changes: dict[str, Any] = {}
    conflicts: list[FieldConflict] = []
    for name in MERGEABLE_FIELDS:
        current = getattr(existing, name)
        candidate = getattr(incoming, name)
        if is_blank(name, candidate):
            continue
        if is_blank(name, current):
            if current != candidate:
                changes[name] = candidate
        elif current != candidate:
            conflicts.append(FieldConflict(name, current, candidate))

    if not changes:
        return MergeOutcome(action=UNCHANGED, record=existing, conflicts=conflicts)
    return MergeOutcome(
        action=UPDATED,
        record=replace(existing, **changes),
        changes=changes,
        conflicts=conflicts,
    )
