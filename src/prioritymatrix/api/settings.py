"""Settings API endpoints for the matrix configuration document."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from prioritymatrix.api.dependencies import get_settings, require_vault_path
from prioritymatrix.api.matrix import invalidate_items
from prioritymatrix.config import Settings
from prioritymatrix.models import MatrixConfig, NewSectionRequest
from prioritymatrix.settings import add_section, load_matrix_config, remove_section, save_matrix_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


def _save(settings: Settings, config: MatrixConfig) -> None:
    config_path = require_vault_path(settings) / settings.config_file
    try:
        save_matrix_config(config_path, config)
    except OSError as e:
        logger.error("Failed to save matrix config to %s: %s", config_path, e)
        raise HTTPException(status_code=500, detail="Failed to save configuration") from e
    invalidate_items()


def _load(settings: Settings) -> MatrixConfig:
    require_vault_path(settings)
    return load_matrix_config(settings.config_path)


@router.get("/config", response_model=MatrixConfig)
async def get_config(settings: Annotated[Settings, Depends(get_settings)]) -> MatrixConfig:
    """Return the current matrix configuration (defaults when none is stored)."""
    return _load(settings)


@router.put("/config", response_model=MatrixConfig)
async def update_config(
    body: MatrixConfig,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MatrixConfig:
    """Replace the full matrix configuration."""
    for key, section in body.sections.items():
        if not section.title.strip():
            raise HTTPException(status_code=422, detail=f"Section {key} needs a title")
    _save(settings, body)
    return body


@router.post("/sections", response_model=MatrixConfig)
async def create_section(
    body: NewSectionRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MatrixConfig:
    """Add a section on a new row."""
    try:
        key, config = add_section(_load(settings), body.name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    _save(settings, config)
    logger.info("Added section %s", key)
    return config


@router.delete("/sections/{key}", response_model=MatrixConfig)
async def delete_section(
    key: str,
    settings: Annotated[Settings, Depends(get_settings)],
) -> MatrixConfig:
    """Remove a section. The last section cannot be removed."""
    try:
        config = remove_section(_load(settings), key)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown section: {key}") from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    _save(settings, config)
    logger.info("Removed section %s", key)
    return config
