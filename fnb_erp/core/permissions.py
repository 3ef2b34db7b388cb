from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Depends

from fnb_erp.core.errors import ForbiddenError
from fnb_erp.core.security_current import get_current_user
from fnb_erp.models.user import User

PERMISSION_KEYS = frozenset(
    {
        "po:read",
        "po:create",
        "po:edit",
        "po:approve",
        "receiving:read",
        "receiving:proc_verify",
        "receiving:qc_inspect",
        "receiving:warehouse_receive",
        "requests:read",
        "requests:write",
        "requests:fulfill",
        "requests:confirm",
        "transfers:read",
        "transfers:write",
        "transfers:approve",
        "transfers:fulfill",
        "transfers:receive",
        "inventory:read",
        "inventory:adjust",
    }
)

ROLE_PERMISSION_MATRIX: dict[str, set[str]] = {
    "admin": {"*"},
    "manager": {
        "po:read",
        "po:approve",
        "receiving:read",
        "requests:read",
        "transfers:read",
        "transfers:approve",
        "inventory:read",
    },
    "procurement": {
        "po:read",
        "po:create",
        "po:edit",
        "receiving:read",
        "receiving:proc_verify",
        "inventory:read",
    },
    "qc": {
        "po:read",
        "receiving:read",
        "receiving:qc_inspect",
    },
    "warehouse": {
        "po:read",
        "receiving:read",
        "receiving:warehouse_receive",
        "requests:read",
        "requests:fulfill",
        "transfers:read",
        "transfers:write",
        "transfers:fulfill",
        "transfers:receive",
        "inventory:read",
        "inventory:adjust",
    },
    "outlet": {
        "requests:read",
        "requests:write",
        "requests:confirm",
        "transfers:read",
        "transfers:write",
        "transfers:receive",
        "inventory:read",
    },
    "staff": {
        "po:read",
        "receiving:read",
        "requests:read",
        "transfers:read",
        "inventory:read",
    },
}


def role_permissions(role: str) -> set[str]:
    normalized = (role or "").strip().lower()
    return set(ROLE_PERMISSION_MATRIX.get(normalized, set()))


@dataclass(frozen=True)
class ActorContext:
    """The authenticated person a workflow operation runs as."""

    user_id: str
    tenant_id: str
    full_name: str | None
    role: str
    permissions: frozenset[str] = field(default_factory=frozenset)


def build_actor_context(user: User) -> ActorContext:
    role = (user.role or "staff").strip().lower()
    return ActorContext(
        user_id=user.id,
        tenant_id=user.tenant_id,
        full_name=user.full_name,
        role=role,
        permissions=frozenset(role_permissions(role)),
    )


def get_current_actor(user: User = Depends(get_current_user)) -> ActorContext:
    return build_actor_context(user)


def has_permission(actor: ActorContext, permission: str) -> bool:
    if "*" in actor.permissions:
        return True
    return permission in actor.permissions


def require_permission(permission: str) -> Callable[[ActorContext], ActorContext]:
    normalized_permission = (permission or "").strip().lower()
    if normalized_permission not in PERMISSION_KEYS:
        raise ValueError(f"Unknown permission key: {permission}")

    def dependency(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
        if not has_permission(actor, normalized_permission):
            raise ForbiddenError("Insufficient permission for this action")
        return actor

    return dependency
