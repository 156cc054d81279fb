"""Ad-spend sync orchestration for the Meta and Google platform jobs."""

from src.crm_ingest.adsync.client import SyncJobClient
from src.crm_ingest.adsync.exceptions import UpstreamJobError
from src.crm_ingest.adsync.orchestrator import SyncOrchestrator, default_jobs
from src.crm_ingest.adsync.repository import SyncLogRepository
from src.crm_ingest.adsync.schemas import OrchestratorResult, SyncJob

__all__ = [
    "SyncJobClient",
    "UpstreamJobError",
    "SyncOrchestrator",
    "default_jobs",
    "SyncLogRepository",
    "OrchestratorResult",
    "SyncJob",
]
