"""
Main FastAPI application bootstrap.
Validates configuration and includes routers.
"""
import logging

from fastapi import FastAPI

from costengine.core.config import config
from costengine.api.estimate import router as estimate_router


logger = logging.getLogger(__name__)

# Validate configuration on startup
try:
    config.validate()
except ValueError as error:
    # Fail fast with a clear message
    raise RuntimeError(f"Configuration error: {error}") from error

logger.info(
    "Cost engine starting with catalog backend=%s, concurrency=%d, timeout=%ss",
    config.CATALOG_BACKEND,
    config.BUILD_CONCURRENCY,
    config.BUILD_TIMEOUT_SECONDS
)


app = FastAPI(
    title="Cost Engine",
    description="Monthly cost estimation of prior and planned infrastructure",
)

app.include_router(estimate_router)


@app.get("/health")
async def health() -> dict:
    """
    Liveness endpoint.

    Returns:
        Service status and the configured catalog backend
    """
    return {"status": "ok", "catalog_backend": config.CATALOG_BACKEND}
