"""Repository for the local user mirror."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.models import UserModel


class UsersRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID) -> UserModel | None:
        return await self._session.get(UserModel, user_id)

    async def get_or_create(
        self,
        user_id: UUID,
        email: str,
        name: str | None = None,
        image: str | None = None,
    ) -> tuple[UserModel, bool]:
        """Return the mirrored user, inserting it on first sight. Never overwrites local edits."""
        user = await self.get(user_id)
        if user is not None:
            return user, False
        user = UserModel(id=user_id, email=email, name=name, image=image)
        self._session.add(user)
        await self._session.flush()
        return user, True

    async def update_profile(
        self, user_id: UUID, name: str, image: str | None = None
    ) -> UserModel | None:
        user = await self.get(user_id)
        if user is None:
            return None
        user.name = name
        if image is not None:
            user.image = image
        await self._session.flush()
        return user
