"""
rbac.py
-------
Purpose:
    Role-based capability checks for console affordances.

Notes:
    - Advisory only. The API re-checks every rule; these decide what to offer.
    - Total functions: an unknown or missing role gets the least privilege.
    - Ids are compared case-insensitively after trimming, since different
      endpoints return them with inconsistent casing.
"""

from typing import Any

from crm_console.models.domain.enums import PersonStatus, Role

RoleLike = Role | str | None

ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})
NOTE_VIEWER_ROLES = frozenset(
    {
        Role.ADMIN,
        Role.SUPER_ADMIN,
        Role.COUNSELOR,
        Role.MARKETER,
        Role.TRAINING_ADMIN,
        Role.SALES,
    }
)
LEARNER_WRITER_ROLES = frozenset({Role.SALES, Role.ADMIN, Role.SUPER_ADMIN})
PROMOTABLE_STATUSES = frozenset({PersonStatus.SUSPECT, PersonStatus.LEAD})


def _role(role: RoleLike) -> Role | None:
    if isinstance(role, Role):
        return role
    if not isinstance(role, str):
        return None
    try:
        return Role(role)
    except ValueError:
        return None


def same_id(a: str | None, b: str | None) -> bool:
    """Case-insensitive id equality; missing or blank ids never match."""
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    left, right = a.strip().lower(), b.strip().lower()
    return bool(left) and left == right


def is_admin(role: RoleLike) -> bool:
    return _role(role) in ADMIN_ROLES


def is_super(role: RoleLike) -> bool:
    return _role(role) == Role.SUPER_ADMIN


def is_sales(role: RoleLike) -> bool:
    return _role(role) == Role.SALES


def is_counselor(role: RoleLike) -> bool:
    return _role(role) == Role.COUNSELOR


def can_view_notes(role: RoleLike) -> bool:
    return _role(role) in NOTE_VIEWER_ROLES


def can_create_learner(role: RoleLike) -> bool:
    return _role(role) in LEARNER_WRITER_ROLES


def can_edit_learner(role: RoleLike, self_id: str | None = None, owner_id: str | None = None) -> bool:
    """
    Whether the role may edit a person record.

    Ownership is accepted but not enforced: SALES may edit any record, matching
    what the API currently allows.
    """
    return _role(role) in LEARNER_WRITER_ROLES


def can_add_notes(role: RoleLike, self_id: str | None = None, owner_id: str | None = None) -> bool:
    return _role(role) in LEARNER_WRITER_ROLES


def can_delete_note(role: RoleLike, self_id: str | None = None, author_id: str | None = None) -> bool:
    return is_super(role) or is_admin(role) or is_sales(role) or same_id(self_id, author_id)


def can_manage_users(role: RoleLike) -> bool:
    return is_super(role)


def can_manage_settings(role: RoleLike) -> bool:
    return is_admin(role)


def can_promote(role: RoleLike, status: PersonStatus | str | None) -> bool:
    """Quick-promote affordance: admins only, and only early in the pipeline."""
    try:
        current = PersonStatus(status) if status is not None else None
    except ValueError:
        return False
    return is_admin(role) and current in PROMOTABLE_STATUSES


def capabilities(auth: Any, owner_id: str | None = None) -> dict[str, bool]:
    """Snapshot of every capability for an auth context (anything with role/user_id)."""
    role = getattr(auth, "role", None)
    self_id = getattr(auth, "user_id", None)
    return {
        "is_admin": is_admin(role),
        "is_super": is_super(role),
        "is_sales": is_sales(role),
        "is_counselor": is_counselor(role),
        "can_view_notes": can_view_notes(role),
        "can_create_learner": can_create_learner(role),
        "can_edit_learner": can_edit_learner(role, self_id, owner_id),
        "can_add_notes": can_add_notes(role, self_id, owner_id),
        "can_manage_users": can_manage_users(role),
        "can_manage_settings": can_manage_settings(role),
    }
