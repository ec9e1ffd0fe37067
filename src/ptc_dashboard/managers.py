import datetime
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from ptc_dashboard.constants import TIMESTAMP_FORMAT
from ptc_dashboard.models import MERGEABLE_FIELDS, SLOT_FIELDS, SlotRecord

logger = logging.getLogger("ptc_dashboard.db")

SCHEMA_SQL = """
	CREATE TABLE IF NOT EXISTS signups (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		sign_up TEXT,
		start_datetime TEXT,
		end_datetime TEXT,
		location TEXT,
		qty INTEGER DEFAULT 1,
		item TEXT,
		first_name TEXT,
		last_name TEXT,
		email TEXT,
		signup_comment TEXT,
		sign_up_coleader TEXT,
		signup_timestamp TEXT,
		created_at TEXT DEFAULT (datetime('now')),
		updated_at TEXT DEFAULT (datetime('now'))
	);

	-- live attendance status, keyed by the derived slot key string
	CREATE TABLE IF NOT EXISTS slot_statuses (
		slot_key TEXT PRIMARY KEY,
		status TEXT NOT NULL,
		updated_at TEXT NOT NULL
	);
"""


def utc_timestamp() -> str:
	return datetime.datetime.now(datetime.timezone.utc).strftime(TIMESTAMP_FORMAT)


class DbManager:
	def __init__(self, db_path: str):
		"""
		Open a new SQLite connection from a filesystem path.
		This class owns the connection lifecycle; transactions are explicit.
		"""
		self.db_path = str(db_path)
		if self.db_path != ":memory:":
			Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
		# one connection per request, but FastAPI may hand it across threadpool workers
		self.conn = sqlite3.connect(
			self.db_path, isolation_level=None, timeout=30, check_same_thread=False
		)
		self.conn.row_factory = sqlite3.Row
		if self.db_path != ":memory:":
			self.conn.execute("PRAGMA journal_mode = WAL")

	def __enter__(self) -> "DbManager":
		return self

	def __exit__(self, exc_type, exc, tb) -> None:
		try:
			if self.conn.in_transaction:
				if exc is None:
					self.conn.commit()
				else:
					self.conn.rollback()
		finally:
			self.conn.close()

	def init_schema(self) -> None:
		self.conn.executescript(SCHEMA_SQL)

	@contextmanager
	def transaction(self, dry_run: bool = False):
		"""Single-writer transaction; concurrent writers wait on the database lock."""
		self.conn.execute("BEGIN IMMEDIATE")
		try:
			yield
			if dry_run:
				self.conn.rollback()
			else:
				self.conn.commit()
		except Exception:
			self.conn.rollback()
			raise

	@contextmanager
	def snapshot(self):
		"""Read transaction: every query inside sees the same committed state."""
		self.conn.execute("BEGIN")
		try:
			yield
		finally:
			self.conn.rollback()

	def load_signup_rows(self) -> list[SlotRecord]:
		"""All stored rows in persisted (insertion) order."""
		cur = self.conn.execute(
			f"SELECT id, {', '.join(SLOT_FIELDS)} FROM signups ORDER BY id"
		)
		return [SlotRecord.from_db_row(row) for row in cur.fetchall()]

	def count_signups(self) -> int:
		cur = self.conn.execute("SELECT COUNT(*) FROM signups")
		return int(cur.fetchone()[0])

	def write_rows(self, inserts: list[SlotRecord], updates: dict[int, dict]) -> None:
		"""
		Append new rows and apply field updates as one atomic write.

		Args:
			inserts: Records to append, in order
			updates: {row id: {column: new value}}; only mergeable columns are accepted
		"""
		if not self.conn.in_transaction:
			with self.transaction():
				self._write_rows(inserts, updates)
			return
		self._write_rows(inserts, updates)

	def _write_rows(self, inserts, updates) -> None:
		now = utc_timestamp()
		if inserts:
			placeholders = ", ".join(f":{name}" for name in SLOT_FIELDS)
			self.conn.executemany(
				f"INSERT INTO signups ({', '.join(SLOT_FIELDS)}, created_at, updated_at) "
				f"VALUES ({placeholders}, :now, :now)",
				[dict(record.to_db_dict(), now=now) for record in inserts],
			)
		for row_id, changes in updates.items():
			unknown = set(changes) - set(MERGEABLE_FIELDS)
			if unknown:
				raise ValueError(f"refusing to update non-mergeable column(s): {sorted(unknown)}")
			if not changes:
				continue
			assignments = ", ".join(f"{name} = ?" for name in changes)
			cur = self.conn.execute(
				f"UPDATE signups SET {assignments}, updated_at = ? WHERE id = ?",
				(*changes.values(), now, row_id),
			)
			if cur.rowcount == 0:
				raise LookupError(f"signup id {row_id} not found")
		logger.debug(f"Wrote {len(inserts)} insert(s) and {len(updates)} update(s)")

	def read_all_statuses(self) -> dict[str, str]:
		cur = self.conn.execute("SELECT slot_key, status FROM slot_statuses")
		return {row["slot_key"]: row["status"] for row in cur.fetchall()}

	def write_status(self, slot_key: str, status: str, updated_at: str) -> None:
		self.conn.execute(
			"""
			INSERT INTO slot_statuses (slot_key, status, updated_at) VALUES (?, ?, ?)
			ON CONFLICT(slot_key) DO UPDATE SET status = excluded.status, updated_at = excluded.updated_at
			""",
			(slot_key, status, updated_at),
		)

	def delete_status(self, slot_key: str) -> bool:
		cur = self.conn.execute("DELETE FROM slot_statuses WHERE slot_key = ?", (slot_key,))
		return cur.rowcount > 0
