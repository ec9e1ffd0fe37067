"""
Import reconciliation: fold a CSV upload or sheet export into the stored sign-ups.

Flow for one batch:
    1. Normalize and key every stored row (insertion order) into an index
    2. Normalize and key every incoming row with its own per-group counter
    3. Same key -> fill-blanks merge (updated / skipped); new key -> insert
    4. All inserts and updates go to storage in one transaction

The two passes never share counters. A stored row and an incoming row are
the same slot when they agree on (start, end, item, ordinal).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ptc_dashboard.errors import EmptyInputError
from ptc_dashboard.file_io import parse_csv_text
from ptc_dashboard.managers import DbManager
from ptc_dashboard.merge import INSERTED, UPDATED, FieldConflict, merge_record
from ptc_dashboard.models import SlotRecord
from ptc_dashboard.normalize import build_header_map, normalize_row, normalize_stored
from ptc_dashboard.sheets import SheetFetcher
from ptc_dashboard.slot_keys import SlotKey, SlotKeyBuilder, assign_slot_keys

logger = logging.getLogger("ptc_dashboard.reconcile")

ExistingRow = Union[SlotRecord, Mapping[str, Any]]


@dataclass
class RowUpdate:
    key: SlotKey
    row_id: Optional[int]
    changes: dict[str, Any]


@dataclass
class SlotConflict:
    key: SlotKey
    conflict: FieldConflict

    def to_dict(self) -> dict:
        d = {"slot_key": str(self.key)}
        d.update(self.conflict.to_dict())
        return d


@dataclass
class ReconcileResult:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    total: int = 0
    inserts: list[SlotRecord] = field(default_factory=list)
    updates: list[RowUpdate] = field(default_factory=list)
    conflicts: list[SlotConflict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "total": self.total,
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


def _batch_headers(incoming_rows: Sequence[Mapping[str, Any]]) -> list[str]:
    headers: list[str] = []
    seen = set()
    for row in incoming_rows:
        for header in row.keys():
            if header is not None and header not in seen:
                seen.add(header)
                headers.append(header)
    return headers


def index_existing(existing_rows: Iterable[ExistingRow]) -> dict[SlotKey, SlotRecord]:
    """Key stored rows in scan order; the index maps each key to its normalized row."""
    normalized = (
        normalize_stored(row) if isinstance(row, SlotRecord) else normalize_row(row)
        for row in existing_rows
    )
    return dict(assign_slot_keys(normalized))


def reconcile(
    existing_rows: Iterable[ExistingRow], incoming_rows: Sequence[Mapping[str, Any]]
) -> ReconcileResult:
    """
    Compute inserts and fill-blank updates for an incoming batch. Pure.

    Args:
        existing_rows: Stored rows in persisted order
        incoming_rows: Raw records keyed by header, in batch order

    Returns:
        ReconcileResult with counters, queued inserts, updates and conflicts

    Raises:
        EmptyInputError: If the batch has no header row or no data rows
        SchemaError: If no incoming header maps to the item column
    """
    incoming_rows = list(incoming_rows)
    headers = _batch_headers(incoming_rows)
    if not incoming_rows or not headers:
        raise EmptyInputError("import contains no data rows")
    header_map = build_header_map(headers)

    index = index_existing(existing_rows)
    builder = SlotKeyBuilder()
    result = ReconcileResult(total=len(incoming_rows))

    for raw in incoming_rows:
        record = normalize_row(raw, header_map)
        key = builder.next_key(record)
        if key is None:
            result.skipped += 1
            continue

        existing = index.get(key)
        outcome = merge_record(existing, record)
        for conflict in outcome.conflicts:
            logger.warning(
                f"Keeping stored {conflict.field} for {key}: "
                f"{conflict.existing!r} (incoming {conflict.incoming!r})"
            )
            result.conflicts.append(SlotConflict(key, conflict))

        if outcome.action == INSERTED:
            result.inserted += 1
            result.inserts.append(outcome.record)
        elif outcome.action == UPDATED:
            result.updated += 1
            result.updates.append(RowUpdate(key, existing.id, outcome.changes))
        else:
            result.skipped += 1

    logger.info(
        f"Reconciled {result.total} row(s): {result.inserted} inserted, "
        f"{result.updated} updated, {result.skipped} skipped, "
        f"{len(result.conflicts)} conflict(s)"
    )
    return result


def run_import(
    db: DbManager, incoming_rows: Sequence[Mapping[str, Any]], dry_run: bool = False
) -> ReconcileResult:
    """
    Reconcile a batch against the store and write the result atomically.

    Reading the index, computing the diff and writing happen inside one
    BEGIN IMMEDIATE transaction, so concurrent imports run one after another.
    Any failure rolls the whole batch back.
    """
    with db.transaction(dry_run=dry_run):
        existing = db.load_signup_rows()
        result = reconcile(existing, incoming_rows)
        db.write_rows(
            result.inserts,
            {update.row_id: update.changes for update in result.updates},
        )
    if dry_run:
        logger.info("Dry run: changes rolled back")
    return result


def import_csv_text(db: DbManager, text: str, dry_run: bool = False) -> ReconcileResult:
    """Parse CSV text (upload or sheet export) and run it through run_import."""
    return run_import(db, parse_csv_text(text), dry_run=dry_run)


def sync_sheet(db: DbManager, fetcher: SheetFetcher, dry_run: bool = False) -> ReconcileResult:
    """Pull the latest sheet export, then import it. The fetch completes before the write lock is taken."""
    text = fetcher.fetch_csv()
    return import_csv_text(db, text, dry_run=dry_run)
