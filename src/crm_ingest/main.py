"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, Sentry,
lifespan events wiring the ingestion pipelines and the ad-sync orchestrator,
and the v1 API router. CORS is answered by the webhook and sync routes
themselves (permissive, any origin), so there is no CORS middleware.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.requests import Request
from fastapi.responses import Response

from src.crm_ingest.adsync.client import SyncJobClient
from src.crm_ingest.adsync.orchestrator import SyncOrchestrator, default_jobs
from src.crm_ingest.adsync.repository import SyncLogRepository
from src.crm_ingest.adsync.scheduler import AdsSyncScheduler
from src.crm_ingest.api.errors import install_exception_handlers
from src.crm_ingest.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.crm_ingest.api.v1.router import router as v1_router
from src.crm_ingest.config import Settings, get_settings
from src.crm_ingest.core.database import close_db, get_session, init_db
from src.crm_ingest.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.crm_ingest.ingestion.batch import BatchProcessor
from src.crm_ingest.ingestion.campaigns import CampaignCodeResolver, default_campaign_mapping
from src.crm_ingest.ingestion.mappers import LeadMapper, OpportunityMapper
from src.crm_ingest.ingestion.pipelines import LeadPipeline, OpportunityPipeline
from src.crm_ingest.ingestion.reconciler import EntityReconciler
from src.crm_ingest.ingestion.repository import IngestionRepository


def build_ingestion(app: FastAPI) -> None:
    """Wire mappers, reconciler and repository into one BatchProcessor per entity."""
    repository = IngestionRepository(session_factory=get_session)
    campaigns = CampaignCodeResolver(default_campaign_mapping())

    app.state.lead_batch = BatchProcessor(
        LeadPipeline(LeadMapper(campaigns), repository),
    )
    app.state.opportunity_batch = BatchProcessor(
        OpportunityPipeline(
            OpportunityMapper(campaigns),
            EntityReconciler(repository),
            repository,
        ),
    )


def build_orchestrator(app: FastAPI, settings: Settings) -> SyncOrchestrator:
    orchestrator = SyncOrchestrator(
        client=SyncJobClient(
            base_url=settings.SYNC_JOBS_BASE_URL,
            token=settings.SYNC_JOBS_TOKEN,
            timeout=settings.SYNC_JOB_TIMEOUT_SECONDS,
        ),
        sync_log=SyncLogRepository(session_factory=get_session),
        jobs=default_jobs(settings.META_SYNC_PATH, settings.GOOGLE_SYNC_PATH),
    )
    app.state.sync_orchestrator = orchestrator
    return orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB, Sentry and services on startup, close on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()
    await init_db()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    if not settings.DYNAMICS_WEBHOOK_SECRET:
        log.warning("ingest.webhook_secret_missing", hint="all webhook requests will be rejected")

    build_ingestion(app)
    log.info("ingest.pipelines_initialized")

    orchestrator = build_orchestrator(app, settings)
    scheduler = AdsSyncScheduler(orchestrator, settings.ADS_SYNC_INTERVAL_MINUTES)
    scheduler.start()
    app.state.ads_sync_scheduler = scheduler
    log.info(
        "adsync.orchestrator_initialized",
        platforms=[job.platform for job in orchestrator.jobs],
        scheduled=scheduler.running,
    )

    yield

    scheduler.stop()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Dynamics CRM Ingest API",
        version="0.1.0",
        description="Dynamics CRM webhook ingestion and ad-spend sync orchestration",
        lifespan=lifespan,
    )

    install_exception_handlers(app)

    # Middleware is added in reverse order (last added = outermost)

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
