"""Reconciliation driver: pure reconcile() and the transactional run_import()."""

import sqlite3

import pytest

from ptc_dashboard.errors import EmptyInputError, SchemaError
from ptc_dashboard.managers import DbManager
from ptc_dashboard.models import MERGEABLE_FIELDS
from ptc_dashboard.reconcile import import_csv_text, reconcile, run_import, sync_sheet


class TestReconcile:
    def test_all_new_rows_inserted_in_batch_order(self, sheet_row):
        incoming = [sheet_row(email="a@x.com", first="Alice"), sheet_row(), sheet_row(item="7th Grade")]
        result = reconcile([], incoming)
        assert (result.inserted, result.updated, result.skipped, result.total) == (3, 0, 0, 3)
        assert [r.item for r in result.inserts] == ["6th Grade", "6th Grade", "7th Grade"]
        assert result.inserts[0].email == "a@x.com"

    def test_open_slot_filled(self, sheet_row, stored_row):
        existing = [stored_row(1, email="", first_name="")]
        incoming = [sheet_row(email="a@x.com", first="Alice")]
        result = reconcile(existing, incoming)
        assert (result.inserted, result.updated, result.skipped) == (0, 1, 0)
        assert result.updates[0].row_id == 1
        assert result.updates[0].changes["email"] == "a@x.com"
        assert result.updates[0].changes["first_name"] == "Alice"

    def test_row_without_item_skipped(self, sheet_row):
        result = reconcile([], [sheet_row(item="")])
        assert (result.inserted, result.updated, result.skipped) == (0, 0, 1)
        assert result.inserts == []

    def test_two_open_slots_do_not_collide(self, sheet_row):
        result = reconcile([], [sheet_row(), sheet_row()])
        assert result.inserted == 2

    def test_second_slot_in_group_matches_second_stored_row(self, sheet_row, stored_row):
        existing = [stored_row(1, email="a@x.com", first_name="Alice", location="Room 12", sign_up="Spring Conferences"),
                    stored_row(2, location="Room 12", sign_up="Spring Conferences")]
        incoming = [sheet_row(email="a@x.com", first="Alice"), sheet_row(email="b@x.com", first="Bob")]
        result = reconcile(existing, incoming)
        assert (result.inserted, result.updated, result.skipped) == (0, 1, 1)
        assert result.updates[0].row_id == 2
        assert result.updates[0].changes == {"first_name": "Bob", "email": "b@x.com"}

    def test_extra_incoming_slot_in_group_is_inserted(self, sheet_row, stored_row):
        existing = [stored_row(1)]
        result = reconcile(existing, [sheet_row(), sheet_row(email="c@x.com", first="Cy")])
        assert result.inserted == 1
        assert result.inserts[0].email == "c@x.com"

    def test_date_formats_match(self, sheet_row, stored_row):
        existing = [stored_row(1, start="2/16/2026 12:00", end="2/16/2026 12:15")]
        incoming = [sheet_row(start="02/16/2026 12:00:00", end="2/16/2026 12:15:00", email="a@x.com")]
        result = reconcile(existing, incoming)
        assert result.updated == 1
        assert result.inserted == 0

    def test_conflicts_collected(self, sheet_row, stored_row):
        existing = [stored_row(1, email="old@x.com", first_name="Alice")]
        result = reconcile(existing, [sheet_row(email="new@x.com", first="Alice")])
        assert [c.conflict.field for c in result.conflicts] == ["email"]
        assert result.to_dict()["conflicts"][0]["slot_key"] == "2/16/2026 12:00|2/16/2026 12:15|6th Grade|1"

    def test_unsupplied_quantity_is_not_a_conflict(self, sheet_row, stored_row):
        shared = dict(location="Room 12", sign_up="Spring Conferences")
        existing = [stored_row(1, email="a@x.com", qty=2, **shared), stored_row(2, qty=3, **shared)]
        no_qty_column = {k: v for k, v in sheet_row(email="a@x.com").items() if k != "Qty"}
        result = reconcile(existing, [no_qty_column, sheet_row(qty="")])
        assert result.conflicts == []
        assert (result.inserted, result.updated, result.skipped) == (0, 0, 2)

    def test_new_slot_without_quantity_defaults_to_one(self, sheet_row):
        result = reconcile([], [sheet_row(qty="")])
        assert result.inserts[0].qty == 1

    def test_empty_batch(self):
        with pytest.raises(EmptyInputError):
            reconcile([], [])

    def test_missing_item_column(self):
        with pytest.raises(SchemaError) as exc_info:
            reconcile([], [{"Email": "a@x.com", "First Name": "Alice"}])
        assert exc_info.value.found == ["Email", "First Name"]

    def test_existing_rows_as_mappings(self, sheet_row):
        existing = [{"start_datetime": "2/16/2026 12:00", "end_datetime": "2/16/2026 12:15", "item": "6th Grade"}]
        result = reconcile(existing, [sheet_row(email="a@x.com")])
        assert result.updated == 1

    def test_result_dict(self, sheet_row):
        body = reconcile([], [sheet_row()]).to_dict()
        assert body == {"success": True, "inserted": 1, "updated": 0, "skipped": 0, "total": 1, "conflicts": []}


@pytest.mark.integration
class TestRunImport:
    def test_insert_then_idempotent(self, db, sheet_row):
        batch = [sheet_row(email="a@x.com", first="Alice"), sheet_row(), sheet_row(item="7th Grade")]
        first = run_import(db, batch)
        assert first.inserted == 3
        second = run_import(db, batch)
        assert (second.inserted, second.updated, second.skipped) == (0, 0, 3)
        assert db.count_signups() == 3

    def test_scenario_open_slot_filled(self, db, sheet_row):
        run_import(db, [sheet_row()])
        result = run_import(db, [sheet_row(email="a@x.com", first="Alice")])
        assert result.updated == 1
        (row,) = db.load_signup_rows()
        assert row.email == "a@x.com"
        assert row.first_name == "Alice"
        assert not row.is_empty_slot

    def test_fill_blank_invariant_in_storage(self, db, sheet_row):
        run_import(db, [sheet_row(email="a@x.com", first="Alice", comment="Mom of Sam")])
        before = db.load_signup_rows()[0]
        run_import(db, [sheet_row(email="z@x.com", first="Zed", last="Zed", comment="changed")])
        after = db.load_signup_rows()[0]
        for name in MERGEABLE_FIELDS:
            if getattr(before, name) not in ("", None):
                assert getattr(after, name) == getattr(before, name)
        assert after.last_name == "Zed"

    def test_skipped_row_writes_nothing(self, db, sheet_row):
        result = run_import(db, [sheet_row(item="")])
        assert result.skipped == 1
        assert db.count_signups() == 0

    def test_schema_error_writes_nothing(self, db):
        with pytest.raises(SchemaError):
            run_import(db, [{"Email": "a@x.com"}])
        assert db.count_signups() == 0
        assert not db.conn.in_transaction

    def test_failure_rolls_back_whole_batch(self, db, sheet_row, monkeypatch):
        run_import(db, [sheet_row()])
        original = db._write_rows

        def _boom(inserts, updates):
            original(inserts, updates)
            raise RuntimeError("disk full")

        monkeypatch.setattr(db, "_write_rows", _boom)
        with pytest.raises(RuntimeError):
            run_import(db, [sheet_row(email="a@x.com"), sheet_row(item="8th Grade")])
        monkeypatch.undo()
        rows = db.load_signup_rows()
        assert len(rows) == 1
        assert rows[0].email == ""

    def test_dry_run_rolls_back(self, db, sheet_row):
        result = run_import(db, [sheet_row()], dry_run=True)
        assert result.inserted == 1
        assert db.count_signups() == 0

    def test_second_writer_waits_for_lock(self, db_path, sheet_row):
        with DbManager(db_path) as first:
            with first.transaction():
                other = DbManager(db_path)
                other.conn.execute("PRAGMA busy_timeout = 0")
                with pytest.raises(sqlite3.OperationalError):
                    run_import(other, [sheet_row()])
                other.conn.close()

    def test_import_csv_text(self, db, sheet_row, csv_text_builder):
        text = csv_text_builder([sheet_row(email="a@x.com"), sheet_row()])
        result = import_csv_text(db, text)
        assert result.inserted == 2

    def test_import_csv_text_empty(self, db):
        with pytest.raises(EmptyInputError):
            import_csv_text(db, "")

    def test_sync_sheet_uses_fetched_text(self, db, sheet_row, csv_text_builder):
        class _Fetcher:
            def fetch_csv(self):
                return csv_text_builder([sheet_row(email="a@x.com")])

        result = sync_sheet(db, _Fetcher())
        assert result.inserted == 1
