"""ActivityLogger: best-effort audit trail writer for admin and vendor actions."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.activity_log import ActivityLog
from backoffice.models.enums import ActorType

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Writes ``activity_logs`` rows.

    Each entry is written inside its own SAVEPOINT: a failing insert is rolled
    back and reported as ``False`` without disturbing the caller's transaction.
    When built with the current ``Request``, entries record the client address
    and ``User-Agent`` unless the caller passes its own.
    """

    def __init__(self, db: AsyncSession, request: Request | None = None) -> None:
        self.db = db
        self.ip_address: str | None = None
        self.user_agent: str | None = None
        if request is not None:
            self.ip_address = request.client.host if request.client else None
            self.user_agent = request.headers.get("user-agent")

    async def log(
        self,
        user_id: uuid.UUID | None,
        user_type: ActorType,
        action: str,
        entity_type: str | None = None,
        entity_id: uuid.UUID | str | None = None,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> bool:
        entry = ActivityLog(
            user_id=user_id,
            user_type=user_type,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            metadata_extra=metadata,
            ip_address=ip_address or self.ip_address,
            user_agent=user_agent or self.user_agent,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(entry)
                await self.db.flush()
        except SQLAlchemyError:
            logger.exception(
                "Failed to log activity %s on %s %s", action, entity_type, entity_id
            )
            return False

        logger.info(
            "Activity logged: %s %s performed %s", user_type.value, user_id, action
        )
        return True

    async def log_admin_action(
        self,
        admin_id: uuid.UUID | None,
        action: str,
        entity_type: str | None = None,
        entity_id: uuid.UUID | str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        return await self.log(
            user_id=admin_id,
            user_type=ActorType.ADMIN,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            metadata=metadata,
        )
