"""Batch processing for one webhook delivery.

Every record is an independent unit of work run concurrently via
asyncio.gather. Record-level errors (RecordMappingError, PersistenceError)
are caught here and reported as data; anything else propagates and fails the
request. Records already committed by then stay committed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from src.crm_ingest.core.monitoring import webhook_batch_size, webhook_records_total
from src.crm_ingest.ingestion.exceptions import PersistenceError, RecordMappingError
from src.crm_ingest.ingestion.pipelines import EntityPipeline
from src.crm_ingest.ingestion.schemas import BatchSummary, RecordOutcome

logger = structlog.get_logger(__name__)


class BatchProcessor:
    """Applies an entity pipeline to every record of a batch.

    Args:
        pipeline: LeadPipeline or OpportunityPipeline.
    """

    def __init__(self, pipeline: EntityPipeline) -> None:
        self._pipeline = pipeline

    @property
    def entity(self) -> str:
        return self._pipeline.entity.value

    async def process(self, records: Sequence[Any]) -> BatchSummary:
        """Process all records concurrently and aggregate their outcomes."""
        logger.info(
            "ingest.batch_received",
            entity=self.entity,
            records=len(records),
            sample_keys=(
                sorted(records[0].keys()) if records and isinstance(records[0], Mapping) else None
            ),
        )
        webhook_batch_size.labels(entity=self.entity).observe(len(records))

        outcomes = await asyncio.gather(*(self._process_one(r) for r in records))
        failures = [o for o in outcomes if not o.success]

        if failures:
            logger.error(
                "ingest.batch_failed_records",
                entity=self.entity,
                failures=[f.model_dump() for f in failures],
            )

        summary = BatchSummary(
            entity=self._pipeline.entity,
            total=len(records),
            succeeded=len(outcomes) - len(failures),
            failed=len(failures),
            errors=failures,
        )
        logger.info(
            "ingest.batch_complete",
            entity=self.entity,
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return summary

    async def _process_one(self, record: Any) -> RecordOutcome:
        if not isinstance(record, Mapping):
            outcome = RecordOutcome(success=False, error="Record is not an object")
        else:
            try:
                dynamics_id = await self._pipeline.ingest(record)
            except (RecordMappingError, PersistenceError) as exc:
                outcome = RecordOutcome(
                    success=False, dynamics_id=exc.dynamics_id, error=exc.message
                )
            else:
                outcome = RecordOutcome(success=True, dynamics_id=dynamics_id)

        webhook_records_total.labels(
            entity=self.entity,
            outcome="success" if outcome.success else "failed",
        ).inc()
        return outcome
