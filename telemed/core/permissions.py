"""Role and ownership checks shared by all services."""

from typing import Any
from uuid import UUID

from telemed.core.exceptions import ForbiddenException

ROLE_USER = "user"
ROLE_DOCTOR = "doctor"
ROLE_ADMIN = "admin"


def _same(a: UUID | str | None, b: UUID | str | None) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def can_access(
    actor: dict[str, Any],
    *,
    patient_id: UUID | str | None = None,
    doctor_user_id: UUID | str | None = None,
) -> bool:
    """
    Decide whether an actor may touch a resource.

    Admins may touch anything. A patient (``user`` role) may touch resources
    whose ``patient_id`` is their own id; a doctor may touch resources whose
    owning doctor belongs to them (``doctor_user_id``). Any other combination
    is denied.

    Args:
        actor: Authenticated user (``id`` and ``role`` keys)
        patient_id: Owning patient of the resource, if any
        doctor_user_id: User id of the owning doctor, if any

    Returns:
        True if access is allowed
    """
    role = actor.get("role")
    if role == ROLE_ADMIN:
        return True
    if role == ROLE_USER:
        return _same(patient_id, actor.get("id"))
    if role == ROLE_DOCTOR:
        return _same(doctor_user_id, actor.get("id"))
    return False


def require_access(
    actor: dict[str, Any],
    message: str,
    *,
    patient_id: UUID | str | None = None,
    doctor_user_id: UUID | str | None = None,
) -> None:
    """Raise ForbiddenException with ``message`` unless ``can_access`` allows it."""
    if not can_access(actor, patient_id=patient_id, doctor_user_id=doctor_user_id):
        raise ForbiddenException(message)
