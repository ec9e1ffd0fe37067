"""Single-admin identity resolution."""

from __future__ import annotations

from typing import Optional

from ptc_dashboard import constants
from ptc_dashboard.errors import AuthorizationError, ValidationError
from ptc_dashboard.models import Identity, Role


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def resolve_identity(email: Optional[str], admin_email: str = constants.ADMIN_EMAIL) -> Identity:
    """Admin iff the address matches the configured admin, ignoring case."""
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("email required")
    role = Role.ADMIN if normalized == normalize_email(admin_email) else Role.READONLY
    return Identity(email=normalized, role=role)


def require_admin(identity: Optional[Identity]) -> Identity:
    if identity is None or not identity.is_admin:
        who = identity.email if identity else "anonymous"
        raise AuthorizationError(f"admin access required ({who})")
    return identity
