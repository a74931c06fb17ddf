"""
Production FastAPI Application

Serves the webhook, merchant admin and capacity routes.
Run with: granian --interface asgi src.main:app
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.database.orm_db_setting import (
    create_db_and_tables,
    dispose_engines,
    get_engine,
)
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Reconciliation] Starting up...')

    tracing = TracingConfig(service_name='ticket-reconciliation')
    if tracing.enabled:
        tracing.setup()
        tracing.instrument_sqlalchemy(engine=get_engine())
        Logger.base.info('📊 [Reconciliation] OpenTelemetry tracing configured')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Reconciliation] Dependency injection wired')

    await create_db_and_tables()
    Logger.base.info('🗄️  [Reconciliation] Database tables ready')

    Logger.base.info('✅ [Reconciliation] Ready to serve requests')

    yield

    Logger.base.info('🛑 [Reconciliation] Shutting down...')

    await dispose_engines()
    Logger.base.info('🗄️  [Reconciliation] Database engines disposed')

    if tracing.enabled:
        tracing.shutdown()
        Logger.base.info('📊 [Reconciliation] Tracing shutdown complete')

    container.unwire()

    Logger.base.info('👋 [Reconciliation] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
