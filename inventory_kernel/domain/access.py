"""
Access -- identity context and role gates.

The caller's identity arrives pre-validated from an external auth layer as
an AccessContext.  Services pass it to ``require_role`` before touching the
store; a missing context means no identity at all.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from inventory_kernel.exceptions import InsufficientRoleError, UnauthorizedError


class TenantRole(str, Enum):
    OWNER = "OWNER"
    BOSS = "BOSS"
    EMPLOYEE = "EMPLOYEE"


# Mutate items, the schema, or receive/sell stock
MUTATOR_ROLES: tuple[TenantRole, ...] = (TenantRole.OWNER, TenantRole.BOSS)
# Undo log entries or operations, reset the inventory
OWNER_ONLY: tuple[TenantRole, ...] = (TenantRole.OWNER,)
# Read anything within the tenant
MEMBER_ROLES: tuple[TenantRole, ...] = tuple(TenantRole)


@dataclass(frozen=True)
class AccessContext:
    """Who is acting, for which tenant, with what role."""

    actor_id: UUID
    tenant_id: UUID
    role: TenantRole


def require_role(
    ctx: AccessContext | None,
    allowed: tuple[TenantRole, ...],
    action: str,
) -> AccessContext:
    """
    Gate an action on the caller's role.

    Raises:
        UnauthorizedError: ctx is None.
        InsufficientRoleError: ctx.role is not in ``allowed``.
    """
    if ctx is None:
        raise UnauthorizedError()
    if ctx.role not in allowed:
        raise InsufficientRoleError(
            action=action,
            role=ctx.role.value,
            allowed=tuple(r.value for r in allowed),
        )
    return ctx
