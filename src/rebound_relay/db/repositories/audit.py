"""Repository for the append-only audit log."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rebound_relay.db.models import AuditLogModel

SYSTEM_ACTOR = "system"


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def log(
        self,
        actor_id: str,
        action: str,
        entity_type: str,
        entity_id: str,
        details: dict[str, Any] | None = None,
    ) -> AuditLogModel:
        entry = AuditLogModel(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def list_recent(self, limit: int = 50) -> list[AuditLogModel]:
        result = await self._session.execute(
            select(AuditLogModel).order_by(AuditLogModel.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def list_for_entity(self, entity_type: str, entity_id: str) -> list[AuditLogModel]:
        result = await self._session.execute(
            select(AuditLogModel)
            .where(AuditLogModel.entity_type == entity_type, AuditLogModel.entity_id == entity_id)
            .order_by(AuditLogModel.created_at)
        )
        return list(result.scalars().all())
