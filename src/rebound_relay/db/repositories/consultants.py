"""Repository for consultant profiles."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.models import ConsultantModel


class ConsultantsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, consultant_id: UUID) -> ConsultantModel | None:
        return await self._session.get(ConsultantModel, consultant_id)

    async def get_by_user(self, user_id: UUID) -> ConsultantModel | None:
        result = await self._session.execute(
            select(ConsultantModel).where(ConsultantModel.user_id == user_id)
        )
        return result.scalars().first()

    async def create(self, user_id: UUID, **fields: Any) -> ConsultantModel:
        consultant = ConsultantModel(user_id=user_id, status="DRAFT", **fields)
        self._session.add(consultant)
        await self._session.flush()
        return consultant

    async def update_fields(self, consultant: ConsultantModel, **fields: Any) -> ConsultantModel:
        for key, value in fields.items():
            if hasattr(consultant, key):
                setattr(consultant, key, value)
        await self._session.flush()
        return consultant

    async def transition_status(
        self, consultant_id: UUID, from_statuses: Iterable[str], to_status: str
    ) -> bool:
        """Move to ``to_status`` only if the current status is one of ``from_statuses``."""
        result = await self._session.execute(
            update(ConsultantModel)
            .where(
                ConsultantModel.id == consultant_id,
                ConsultantModel.status.in_(list(from_statuses)),
            )
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def claim_stripe_account(self, consultant_id: UUID, account_id: str) -> bool:
        """Store ``account_id`` only if the profile has no connected account yet."""
        result = await self._session.execute(
            update(ConsultantModel)
            .where(
                ConsultantModel.id == consultant_id,
                ConsultantModel.stripe_account_id.is_(None),
            )
            .values(stripe_account_id=account_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
