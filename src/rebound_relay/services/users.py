"""Local user mirror and first sign-in bootstrap."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.auth.models import Identity
from rebound_relay.db.repositories.organizations import OrganizationsRepo
from rebound_relay.db.repositories.users import UsersRepo
from rebound_relay.errors import InvalidInput

logger = structlog.get_logger()


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._users = UsersRepo(session)
        self._organizations = OrganizationsRepo(session)

    async def sync_identity(self, identity: Identity) -> dict[str, Any]:
        """Mirror the identity locally; a user without organizations gets a personal one."""
        user, created = await self._users.get_or_create(
            identity.user_id, identity.email, identity.name, identity.image
        )
        organizations = await self._organizations.list_for_user(identity.user_id)
        organization_created = False
        if not organizations:
            await self._organizations.create(
                f"{identity.display_name}'s Organization", owner_id=identity.user_id
            )
            organization_created = True
        await self._session.commit()
        if created or organization_created:
            logger.info(
                "user_bootstrapped",
                user_id=str(identity.user_id),
                user_created=created,
                organization_created=organization_created,
            )
        return {"userCreated": created, "organizationCreated": organization_created}

    async def me(self, identity: Identity) -> dict[str, Any]:
        user = await self._users.get(identity.user_id)
        name = (user.name if user else None) or identity.display_name
        image = (user.image if user else None) or identity.image
        return {
            "id": str(identity.user_id),
            "email": identity.email,
            "name": name,
            "image": image,
            "createdAt": user.created_at if user else None,
        }

    async def update_me(self, identity: Identity, name: str, image: str | None = None) -> dict[str, Any]:
        if len(name.strip()) < 2:
            raise InvalidInput("Name must be at least 2 characters")
        await self._users.get_or_create(identity.user_id, identity.email, identity.name, identity.image)
        await self._users.update_profile(identity.user_id, name.strip(), image)
        await self._session.commit()
        return await self.me(identity)
