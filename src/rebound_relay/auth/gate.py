"""Role authorization gate.

Every check here is a pure function of its arguments: the caller resolves the
identity and the membership row, the gate decides.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Any
from uuid import UUID

from rebound_relay.auth.models import Identity, Membership, Role
from rebound_relay.errors import Forbidden, InsufficientRole, NotAMember, Unauthenticated


def has_higher_or_equal_role(current: Role | str, required: Role | str) -> bool:
    return Role(current).rank >= Role(required).rank


def require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity


def authorize(
    identity: Identity | None,
    organization_id: UUID,
    membership_row: Any | None,
    required_role: Role,
) -> Membership:
    """Accept the request or raise the matching rejection.

    ``membership_row`` is the stored membership for ``(identity, organization_id)``
    or None when there is none.
    """
    identity = require_identity(identity)
    if membership_row is None:
        raise NotAMember()
    role = Role(membership_row.role)
    if not has_higher_or_equal_role(role, required_role):
        raise InsufficientRole()
    return Membership(user_id=identity.user_id, organization_id=organization_id, role=role)


def can_manage_subscription(membership: Membership, creator_id: UUID | None) -> bool:
    """Owner-or-creator rule: org admins/owners, or whoever started the subscription."""
    if has_higher_or_equal_role(membership.role, Role.ADMIN):
        return True
    return creator_id is not None and creator_id == membership.user_id


def require_subscription_manager(membership: Membership, creator_id: UUID | None) -> None:
    if not can_manage_subscription(membership, creator_id):
        raise Forbidden(
            "You must be an admin or the creator of this subscription to cancel it"
        )


def is_super_admin(identity: Identity, allow_list: Collection[str]) -> bool:
    return bool(identity.email) and identity.email.lower() in allow_list


def require_super_admin(identity: Identity | None, allow_list: Collection[str]) -> Identity:
    identity = require_identity(identity)
    if not allow_list:
        raise Forbidden("No super admins configured")
    if not is_super_admin(identity, allow_list):
        raise Forbidden("Only super admins can access this resource")
    return identity


def require_owner(identity: Identity, owner_id: UUID, message: str | None = None) -> None:
    if identity.user_id != owner_id:
        raise Forbidden(message)
