import csv
import io
import re
from pathlib import Path

from ptc_dashboard.errors import ValidationError


def _normalize_text(s):
	"""Replace smart quotes with ASCII quotes and collapse runs of whitespace."""
	s = s.replace("’", "'").replace("‘", "'").replace("“", '"').replace("”", '"')
	return re.sub(r'\s+', ' ', s)


def decode_upload(content: bytes) -> str:
	"""Decode an uploaded CSV; a UTF-8 byte order mark (Excel/Sheets exports) is dropped."""
	try:
		return content.decode("utf-8-sig")
	except UnicodeDecodeError as e:
		raise ValidationError(f"uploaded file is not UTF-8 text: {e}") from e


def parse_csv_text(text: str) -> list[dict]:
	"""
	Parse CSV text into records keyed by the (trimmed) header row.

	Quoted fields, embedded commas/newlines and doubled quotes are handled by
	the csv module. Blank lines are skipped, values are trimmed, short rows
	are padded with "" and surplus values are dropped.

	Returns:
		List of dicts in row order; empty when there is no header row
	"""
	reader = csv.reader(io.StringIO(text))
	try:
		raw_fieldnames = next(reader)
	except StopIteration:
		return []

	fieldnames = [name.strip() for name in raw_fieldnames]
	if not any(fieldnames):
		return []

	rows = []
	for values in reader:
		if not any(v.strip() for v in values):
			continue
		cleaned = {}
		for idx, name in enumerate(fieldnames):
			if not name:
				continue
			value = values[idx] if idx < len(values) else ""
			cleaned[name] = _normalize_text(value.strip()) if value else ""
		rows.append(cleaned)
	return rows


def load_csv(filename):
	"""Load a sign-up CSV export from disk."""
	filename = Path(filename)
	with open(filename, newline='', encoding='utf-8-sig') as csvfile:
		return parse_csv_text(csvfile.read())
