"""Role-based authorization shared by every lead, target and report operation.

Services call :func:`authorize` once per operation instead of branching on
roles themselves. Admins may do everything. Sales users may act on records
they own; when ``owner_id`` is None the check is about the capability alone
(creating a lead, listing one's own leads).
"""
from enum import Enum
from typing import Optional
import uuid

from leadflow.exceptions import ForbiddenError
from leadflow.users.models import User, UserRole

class Capability(str, Enum):
    READ = "read"
    WRITE = "write"
    REASSIGN = "reassign"
    MANAGE_TARGETS = "manage_targets"
    VIEW_TARGETS = "view_targets"
    VIEW_REPORTS = "view_reports"
    VIEW_TEAM = "view_team"
    MANAGE_USERS = "manage_users"

# Capabilities limited to records the caller owns
OWNER_SCOPED = {
    UserRole.SALES: {
        Capability.READ,
        Capability.WRITE,
        Capability.VIEW_TARGETS,
        Capability.VIEW_REPORTS,
    },
}

def authorize(caller: User, capability: Capability, owner_id: Optional[uuid.UUID] = None) -> None:
    if caller.role == UserRole.ADMIN:
        return

    allowed = OWNER_SCOPED.get(caller.role, set())
    if capability not in allowed:
        raise ForbiddenError("You do not have permission to access this resource")
    if owner_id is not None and owner_id != caller.id:
        raise ForbiddenError("Access denied")

def scope_owner(
    caller: User,
    requested: Optional[uuid.UUID],
    capability: Capability = Capability.READ,
) -> Optional[uuid.UUID]:
    """Owner filter for list/report queries.

    Sales users are always pinned to themselves; admins get whatever they
    asked for (None meaning everyone).
    """
    if caller.role == UserRole.ADMIN:
        return requested
    authorize(caller, capability, requested)
    return caller.id
