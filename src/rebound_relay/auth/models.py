"""Auth domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID


class Role(str, Enum):
    """Organization roles, ordered by privilege."""

    USER = "user"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK = {Role.USER: 0, Role.ADMIN: 1, Role.OWNER: 2}


@dataclass(frozen=True)
class Identity:
    """An authenticated user as reported by the identity provider."""

    user_id: UUID
    email: str
    name: str | None = None
    image: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def display_name(self) -> str:
        return self.name or self.metadata.get("name") or self.email.split("@")[0]


@dataclass(frozen=True)
class Membership:
    user_id: UUID
    organization_id: UUID
    role: Role


@dataclass
class OrganizationContext:
    """The request's current organization, the caller's role in it and its plan."""

    organization: Any
    membership: Membership
    plan: Any = None

    @property
    def organization_id(self) -> UUID:
        return self.membership.organization_id

    @property
    def role(self) -> Role:
        return self.membership.role
