"""Sync log repository -- append-only audit rows for orchestrator runs."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from src.crm_ingest.adsync.models import SyncLogModel
from src.crm_ingest.adsync.schemas import SyncLogCreate

logger = structlog.get_logger(__name__)


class SyncLogRepository:
    """Appends ``sync_log`` rows.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def record(self, entry: SyncLogCreate) -> str:
        """Append one audit row and return its id."""
        async for session in self._session_factory():
            model = SyncLogModel(
                platform=entry.platform,
                status=entry.status.value,
                rows_synced=entry.rows_synced,
                date_range_start=entry.date_range_start,
                date_range_end=entry.date_range_end,
                error_message=entry.error_message,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info(
                "adsync.sync_log_recorded",
                sync_log_id=str(model.id),
                platform=entry.platform,
                status=entry.status.value,
            )
            return str(model.id)
