"""Test fixtures for the ptc_dashboard test suite.

- Function-scoped SQLite database on disk (db_path, db)
- Row factories in sheet-header shape (sheet_row) and column shape (stored_row)
- CSV text builder matching the Google Sheets export layout (csv_text_builder)
- Admin / read-only identities
"""

import csv
import io

import pytest

from ptc_dashboard.logging_config import cleanup_test_logs
from ptc_dashboard.managers import DbManager
from ptc_dashboard.models import Identity, Role, SlotRecord

ADMIN_EMAIL = "admin@school.test"

SHEET_HEADERS = [
    "Sign Up",
    "Start Date/Time (mm/dd/yyyy)",
    "End Date/Time (mm/dd/yyyy)",
    "Location",
    "Qty",
    "Item",
    "First Name",
    "Last Name",
    "Email",
    "Sign Up Comment",
    "Sign Up Coleader",
    "Sign Up Timestamp",
]


def pytest_sessionfinish(session, exitstatus):
    cleanup_test_logs()


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "ptcdash.db"
    with DbManager(str(path)) as db:
        db.init_schema()
    return str(path)


@pytest.fixture
def db(db_path):
    with DbManager(db_path) as manager:
        yield manager


@pytest.fixture
def admin():
    return Identity(email=ADMIN_EMAIL, role=Role.ADMIN)


@pytest.fixture
def readonly():
    return Identity(email="parent@example.com", role=Role.READONLY)


@pytest.fixture
def sheet_row():
    """Factory: one raw record keyed by the sheet export headers."""
    def _build(start="2/16/2026 12:00", end="2/16/2026 12:15", item="6th Grade",
               first="", last="", email="", comment="", qty="1", **extra):
        row = {
            "Sign Up": "Spring Conferences",
            "Start Date/Time (mm/dd/yyyy)": start,
            "End Date/Time (mm/dd/yyyy)": end,
            "Location": "Room 12",
            "Qty": qty,
            "Item": item,
            "First Name": first,
            "Last Name": last,
            "Email": email,
            "Sign Up Comment": comment,
            "Sign Up Coleader": "",
            "Sign Up Timestamp": "",
        }
        row.update(extra)
        return row
    return _build


@pytest.fixture
def stored_row():
    """Factory: a SlotRecord as it would come back from the database."""
    def _build(row_id, start="2/16/2026 12:00", end="2/16/2026 12:15", item="6th Grade", **values):
        return SlotRecord(id=row_id, start_datetime=start, end_datetime=end, item=item, **values)
    return _build


@pytest.fixture
def csv_text_builder():
    """Factory: CSV text in the sheet export layout from a list of sheet_row dicts."""
    def _build(rows, headers=SHEET_HEADERS):
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=headers, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
        return buf.getvalue()
    return _build
