"""FastAPI application — entry point for the trend intelligence pipeline."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agents.base import HttpAgentCaller
from agents.demo import DemoAgentCaller
from config import settings
from dashboard_settings import SettingsStore
from db import async_session, create_tables
from orchestrator import Orchestrator
from routes import router, set_orchestrator

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

orchestrator = Orchestrator(
    caller=DemoAgentCaller() if settings.demo_mode else HttpAgentCaller(session_factory=async_session),
    store=SettingsStore(async_session),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("=" * 70)
    logger.info("Trend Intelligence Pipeline - Starting Up")
    logger.info("=" * 70)
    logger.info("Mode: %s", "DEMO MODE" if settings.demo_mode else "PRODUCTION MODE")
    logger.info("Port: %d", settings.port)

    logger.info("Creating database tables...")
    await create_tables()

    set_orchestrator(orchestrator)
    await orchestrator.start()

    logger.info("Trend Intelligence Pipeline is running on http://localhost:%d", settings.port)
    yield

    logger.info("Stopping orchestrator...")
    await orchestrator.stop()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Trend Intelligence Pipeline",
    description="Scan Hacker News and arXiv, draft Twitter threads, review and publish them",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=True)
