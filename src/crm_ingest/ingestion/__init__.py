"""Dynamics webhook ingestion -- mapping, reconciliation and idempotent upsert.

Flow per webhook delivery:
  BatchProcessor → EntityPipeline → LeadMapper/OpportunityMapper
  → EntityReconciler (opportunities only) → IngestionRepository upsert

PostgreSQL's unique constraint on dynamics_id is the idempotency key:
redelivering the same event replaces the row instead of duplicating it.
"""

from src.crm_ingest.ingestion.batch import BatchProcessor
from src.crm_ingest.ingestion.campaigns import (
    CampaignCodeResolver,
    CampaignMapping,
    default_campaign_mapping,
)
from src.crm_ingest.ingestion.fields import FieldResolver, FieldSource
from src.crm_ingest.ingestion.mappers import LeadMapper, OpportunityMapper
from src.crm_ingest.ingestion.pipelines import LeadPipeline, OpportunityPipeline
from src.crm_ingest.ingestion.reconciler import EntityReconciler, ResolutionStrategy
from src.crm_ingest.ingestion.repository import IngestionRepository

__all__ = [
    "BatchProcessor",
    "CampaignCodeResolver",
    "CampaignMapping",
    "default_campaign_mapping",
    "FieldResolver",
    "FieldSource",
    "LeadMapper",
    "OpportunityMapper",
    "LeadPipeline",
    "OpportunityPipeline",
    "EntityReconciler",
    "ResolutionStrategy",
    "IngestionRepository",
]
