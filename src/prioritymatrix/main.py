"""FastAPI application entry point."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from starlette.middleware.gzip import GZipMiddleware

from prioritymatrix import __version__
from prioritymatrix.api.dependencies import get_gateway, get_settings
from prioritymatrix.api.matrix import router as matrix_router
from prioritymatrix.api.settings import router as settings_router

logger = logging.getLogger(__name__)

settings = get_settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Log resolved configuration and sweep stale file locks while running."""
    s = get_settings()
    configure_logging(s.log_level)
    logger.info("PriorityMatrix starting, vault_path=%s, config=%s", s.vault_path, s.config_path)
    sweeper: asyncio.Task[None] | None = None
    if not s.vault_path or not s.vault_path.exists():
        logger.error("VAULT PATH NOT CONFIGURED OR MISSING, APIs will return 503 errors")
    else:
        sweeper = asyncio.create_task(get_gateway(s).lock.sweep())
    yield
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(
    title="PriorityMatrix",
    description="Eisenhower priority matrix for Obsidian vaults",
    version=__version__,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=500)

app.include_router(matrix_router)
app.include_router(settings_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Return project information."""
    return {
        "name": "PriorityMatrix",
        "version": __version__,
        "description": "Eisenhower priority matrix for Obsidian vaults",
    }


@app.get("/health")
@app.get("/api/v1/health")
async def health() -> dict[str, Any]:
    """Health check endpoint with vault and configuration status."""
    s = get_settings()

    checks: dict[str, Any] = {"status": "ok"}

    if not s.vault_path or not s.vault_path.exists():
        checks["status"] = "error"
        checks["vault"] = "not configured or missing"
    else:
        checks["vault"] = "ok"
        config_path = s.config_path
        checks["config"] = "custom" if config_path and config_path.exists() else "defaults"

    return checks
