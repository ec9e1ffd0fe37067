"""Live attendance status per slot, stored apart from the sign-up rows.

A slot with no entry has status "none"; "none" is never written.
"""

from __future__ import annotations

import logging

from ptc_dashboard.auth import require_admin
from ptc_dashboard.errors import ValidationError
from ptc_dashboard.managers import DbManager, utc_timestamp
from ptc_dashboard.models import Identity, Status

logger = logging.getLogger("ptc_dashboard.status")


class StatusOverlay:
    def __init__(self, db: DbManager):
        self.db = db

    def set_status(self, identity: Identity, slot_key: str, status) -> Status:
        """
        Set or clear the status of one slot.

        Raises:
            AuthorizationError: If identity is not the admin
            ValidationError: If status is not an allowed value or slot_key is empty
        """
        require_admin(identity)
        new_status = Status.from_string(status)
        slot_key = str(slot_key or "").strip()
        if not slot_key:
            raise ValidationError("slot key is required")

        with self.db.transaction():
            if new_status == Status.NONE:
                removed = self.db.delete_status(slot_key)
                logger.info(f"{identity.email} cleared status for {slot_key} (existed={removed})")
            else:
                self.db.write_status(slot_key, new_status.value, utc_timestamp())
                logger.info(f"{identity.email} set {slot_key} -> {new_status.value}")
        return new_status

    def get_status_map(self) -> dict[str, str]:
        return self.db.read_all_statuses()
