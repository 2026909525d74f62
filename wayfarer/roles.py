"""
Roles and their total order.

Every role has an integer rank; a caller satisfies a minimum role when its
rank is greater than or equal to the minimum's rank. Handlers that must not
extend a capability to higher ranks use an explicit role set instead (see
``security.require_exact_role``).
"""
from enum import Enum
from typing import Optional


class Role(str, Enum):
    user = "user"
    admin = "admin"
    super_admin = "super_admin"


ROLE_RANK = {
    Role.user: 1,
    Role.admin: 2,
    Role.super_admin: 3,
}


def rank(role: Role) -> int:
    return ROLE_RANK[Role(role)]


def meets(role: Role, min_role: Optional[Role]) -> bool:
    """Return True if `role` ranks at or above `min_role`."""
    if min_role is None:
        return False
    return rank(role) >= rank(min_role)
