"""Slot identity derived from time window, category and position.

Email is blank for open slots, so several rows can share the same
(start, end, item). The ordinal position inside that group tells them apart.
Keys are recomputed on every pass and never stored as row ids; only statuses
are persisted against their string form.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Iterator, NamedTuple, Optional

from ptc_dashboard.models import IDENTITY_FIELDS, SlotRecord

KEY_SEPARATOR = "|"


class SlotKey(NamedTuple):
    start: str
    end: str
    item: str
    ordinal: int

    def __str__(self) -> str:
        return KEY_SEPARATOR.join((self.start, self.end, self.item, str(self.ordinal)))


class SlotKeyBuilder:
    """Running per-group counter for one pass over a row set."""

    def __init__(self) -> None:
        self._counts: dict[tuple[str, str, str], int] = defaultdict(int)

    def next_key(self, record: SlotRecord) -> Optional[SlotKey]:
        """Key for the next record in scan order; None for non-slot rows."""
        if not record.is_slot:
            return None
        group = tuple(getattr(record, name) for name in IDENTITY_FIELDS)
        self._counts[group] += 1
        return SlotKey(*group, self._counts[group])


def assign_slot_keys(records: Iterable[SlotRecord]) -> Iterator[tuple[SlotKey, SlotRecord]]:
    """
    Pair every slot record with its key, in the order given.

    Records must already be normalized. Records without an item are dropped
    and do not consume an ordinal.
    """
    builder = SlotKeyBuilder()
    for record in records:
        key = builder.next_key(record)
        if key is not None:
            yield key, record
