from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ptc_dashboard import constants
from ptc_dashboard.errors import ValidationError

# Columns that locate a slot; never touched by a merge
IDENTITY_FIELDS = ("start_datetime", "end_datetime", "item")

# Columns filled in by a merge when the stored value is blank
MERGEABLE_FIELDS = (
	"sign_up",
	"location",
	"qty",
	"first_name",
	"last_name",
	"email",
	"signup_comment",
	"sign_up_coleader",
	"signup_timestamp",
)

SLOT_FIELDS = (
	"sign_up",
	"start_datetime",
	"end_datetime",
	"location",
	"qty",
	"item",
	"first_name",
	"last_name",
	"email",
	"signup_comment",
	"sign_up_coleader",
	"signup_timestamp",
)


class Status(Enum):
	NONE = constants.STATUS_NONE
	IN_BUILDING = constants.STATUS_IN_BUILDING
	LATE = constants.STATUS_LATE
	CANCEL = constants.STATUS_CANCEL

	@classmethod
	def from_string(cls, value):
		if isinstance(value, Status):
			return value
		if not isinstance(value, str):
			raise ValidationError(f"Invalid status: {value!r}")
		try:
			return cls(value.strip().lower())
		except ValueError:
			raise ValidationError(
				f"Invalid status: {value!r} (expected one of {', '.join(constants.VALID_STATUSES)})"
			) from None


class Role(Enum):
	ADMIN = constants.ROLE_ADMIN
	READONLY = constants.ROLE_READONLY


@dataclass(frozen=True)
class Identity:
	email: str
	role: Role

	@property
	def is_admin(self) -> bool:
		return self.role == Role.ADMIN

	def to_dict(self) -> dict:
		return {"email": self.email, "role": self.role.value}


@dataclass
class SlotRecord:
	"""One row of sign-up data in canonical shape."""

	sign_up: str = ""
	start_datetime: str = ""
	end_datetime: str = ""
	location: str = ""
	qty: Optional[int] = 1
	item: str = ""
	first_name: str = ""
	last_name: str = ""
	email: str = ""
	signup_comment: str = ""
	sign_up_coleader: str = ""
	signup_timestamp: str = ""
	# storage order only; never part of a slot's identity
	id: Optional[int] = field(default=None, compare=False)

	@property
	def is_slot(self) -> bool:
		return bool(self.item)

	@property
	def is_empty_slot(self) -> bool:
		"""Open slot: a placeholder with nobody signed up."""
		return not self.email and not self.first_name

	@staticmethod
	def from_db_row(row) -> "SlotRecord":
		keys = row.keys()
		values = {name: row[name] for name in SLOT_FIELDS if name in keys}
		for name, value in values.items():
			if value is None and name != "qty":
				values[name] = ""
		return SlotRecord(id=row["id"] if "id" in keys else None, **values)

	def to_db_dict(self) -> dict:
		return {name: getattr(self, name) for name in SLOT_FIELDS}

	def to_dict(self) -> dict:
		d = {"id": self.id}
		d.update(self.to_db_dict())
		d["is_empty_slot"] = self.is_empty_slot
		return d
