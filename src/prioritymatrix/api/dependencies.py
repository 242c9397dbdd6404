"""FastAPI dependency injection for shared resources."""

import logging
from functools import lru_cache
from pathlib import Path

from fastapi import HTTPException

from prioritymatrix.config import Settings
from prioritymatrix.engine.classifier import MatrixClassifier
from prioritymatrix.engine.dates import (
    PARSE_CACHE_LIMIT,
    TASK_DATE_CACHE_LIMIT,
    BoundedCache,
    DateParser,
    TaskDateExtractor,
)
from prioritymatrix.engine.stats import StatsCalculator
from prioritymatrix.mutation import KeyedLock, MutationGateway
from prioritymatrix.vault.writer import VaultWriter

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def require_vault_path(settings: Settings) -> Path:
    """Return the configured vault path or fail the request with 503."""
    vault_path = settings.vault_path
    if not vault_path or not vault_path.exists():
        raise HTTPException(status_code=503, detail="Vault path not configured or missing")
    return vault_path


@lru_cache
def get_date_parser() -> DateParser:
    """Get the process-wide date parser and its parse cache."""
    return DateParser(BoundedCache(PARSE_CACHE_LIMIT))


@lru_cache
def get_task_date_extractor() -> TaskDateExtractor:
    """Get the process-wide task-date extractor and its cache."""
    return TaskDateExtractor(BoundedCache(TASK_DATE_CACHE_LIMIT))


@lru_cache
def get_classifier() -> MatrixClassifier:
    return MatrixClassifier(get_date_parser(), get_task_date_extractor())


@lru_cache
def get_stats_calculator() -> StatsCalculator:
    return StatsCalculator(get_date_parser(), get_task_date_extractor())


@lru_cache
def _gateway_for(vault_path: Path, lock_timeout: float) -> MutationGateway:
    logger.info("Creating mutation gateway for %s", vault_path)
    return MutationGateway(VaultWriter(vault_path), KeyedLock(stale_after=lock_timeout))


def get_gateway(settings: Settings) -> MutationGateway:
    """Get the mutation gateway for the configured vault (one per vault path)."""
    vault_path = require_vault_path(settings)
    return _gateway_for(vault_path, settings.lock_timeout)
