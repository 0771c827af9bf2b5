"""
REST API lifespan: configuration checks, schema creation, Redis shutdown.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.infrastructure.db import engine
from shared.config.settings import settings
from shared.config.logging import setup_logging, rest_api_logger as logger
from shared.infrastructure.events import close_redis_pool
from rest_api.models import Base


def check_configuration() -> None:
    """Log configuration problems; refuse to start with them in production."""
    problems = settings.validate_production_secrets()
    for problem in problems:
        logger.error("Configuration error", error=problem)
    if problems and settings.environment == "production":
        raise RuntimeError(f"Refusing to start: {'; '.join(problems)}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    check_configuration()

    Base.metadata.create_all(bind=engine)
    logger.info(
        "REST API started",
        port=settings.rest_api_port,
        env=settings.environment,
        database=engine.dialect.name,
        takeaway_key=settings.takeaway_key,
        session_minutes=settings.session_duration_ms // 60_000,
    )

    yield

    logger.info("Shutting down REST API")
    await close_redis_pool()
