"""Matrix configuration stored as JSON inside the vault."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import random
import re
import tempfile
import time
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from prioritymatrix.models import MatrixConfig, Position, PropertyRule, Section, TaskRule

logger = logging.getLogger(__name__)

_USER_CONFIG_KEY = "userConfig"

DEFAULT_SECTIONS: dict[str, dict[str, Any]] = {
    "doFirst": {
        "title": "🔥 Do First",
        "subtitle": "Urgent & Important",
        "description": "Crisis situations, urgent problems, deadline-driven projects",
        "color": "#ff4757",
        "position": {"row": 0, "col": 0},
        "propertyRules": {
            "enabled": True,
            "propertyName": "eisenhower_status",
            "propertyValue": "urgent_important",
        },
        "taskRules": {"enabled": True, "tagName": "urgent-important"},
    },
    "schedule": {
        "title": "📅 Schedule",
        "subtitle": "Not Urgent & Important",
        "description": "Strategic planning, personal development, prevention activities",
        "color": "#ffa502",
        "position": {"row": 0, "col": 1},
        "propertyRules": {
            "enabled": True,
            "propertyName": "eisenhower_status",
            "propertyValue": "not_urgent_important",
        },
        "taskRules": {"enabled": True, "tagName": "schedule"},
    },
    "delegate": {
        "title": "👥 Delegate",
        "subtitle": "Urgent & Not Important",
        "description": "Interruptions, some emails, some phone calls, some meetings",
        "color": "#2ed573",
        "position": {"row": 1, "col": 0},
        "propertyRules": {
            "enabled": True,
            "propertyName": "eisenhower_status",
            "propertyValue": "urgent_not_important",
        },
        "taskRules": {"enabled": True, "tagName": "delegate"},
    },
    "eliminate": {
        "title": "🗑️ Don't Do",
        "subtitle": "Not Urgent & Not Important",
        "description": "Time wasters, trivia, busy work, some emails, some phone calls",
        "color": "#747d8c",
        "position": {"row": 1, "col": 1},
        "propertyRules": {
            "enabled": True,
            "propertyName": "eisenhower_status",
            "propertyValue": "not_urgent_not_important",
        },
        "taskRules": {"enabled": True, "tagName": "eliminate"},
    },
}


def default_config() -> MatrixConfig:
    """The four-quadrant starter configuration."""
    return MatrixConfig.model_validate({"sections": DEFAULT_SECTIONS})


def _merge_user_config(user: dict[str, Any]) -> MatrixConfig:
    """Overlay a stored userConfig onto the defaults, section map replaced wholesale."""
    base = default_config().model_dump(by_alias=True)
    merged = {
        "sections": user.get("sections") or base["sections"],
        "display": {**base["display"], **(user.get("display") or {})},
        "scheduling": {**base["scheduling"], **(user.get("scheduling") or {})},
        "excludedFolders": user.get("excludedFolders", base["excludedFolders"]),
    }
    return MatrixConfig.model_validate(merged)


def _read_document(config_path: Path) -> dict[str, Any]:
    with open(config_path, encoding="utf-8") as f:
        document = json.load(f)
    if not isinstance(document, dict):
        raise ValueError("configuration document must be a JSON object")
    return document


def load_matrix_config(config_path: Path | None) -> MatrixConfig:
    """Read the matrix configuration.

    Returns the default configuration when the document is missing, unreadable
    or invalid.
    """
    if config_path is None or not config_path.exists():
        return default_config()
    try:
        document = _read_document(config_path)
        user = document.get(_USER_CONFIG_KEY)
        if not isinstance(user, dict):
            return default_config()
        return _merge_user_config(user)
    except (json.JSONDecodeError, OSError, ValueError, ValidationError) as e:
        logger.warning("Matrix config corrupt or unreadable, using defaults: %s", e)
        return default_config()


def save_matrix_config(config_path: Path, config: MatrixConfig) -> None:
    """Write the configuration under ``userConfig`` using an atomic replace.

    Other top-level keys already present in the document are preserved.
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)
    document: dict[str, Any] = {}
    if config_path.exists():
        try:
            document = _read_document(config_path)
        except (json.JSONDecodeError, OSError, ValueError):
            logger.warning("Replacing unreadable matrix config at %s", config_path)
            document = {}

    dumped = config.model_dump(by_alias=True, mode="json")
    dumped["display"]["searchQuery"] = ""  # searches are per session
    document[_USER_CONFIG_KEY] = {**(document.get(_USER_CONFIG_KEY) or {}), **dumped}

    fd, tmp_path = tempfile.mkstemp(dir=str(config_path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_path, str(config_path))
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _section_slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", name.strip().lower())


def add_section(config: MatrixConfig, name: str) -> tuple[str, MatrixConfig]:
    """Append a new section on a fresh row below the existing ones.

    Returns the new section key and the updated configuration.
    """
    if not name or not name.strip():
        raise ValueError("Section name must be non-empty")

    slug = _section_slug(name)
    key = f"{slug}_{int(time.time() * 1000)}"
    max_row = max((s.position.row for s in config.sections.values()), default=0)
    section = Section(
        title=name.strip(),
        subtitle="New Quadrant",
        description="Configure this quadrant's rules",
        color=f"#{random.randrange(0x1000000):06x}",
        position=Position(row=max_row + 1, col=0),
        property_rules=PropertyRule(property_name=f"{slug}_status", property_value=slug),
        task_rules=TaskRule(tag_name=slug),
    )
    sections = {**config.sections, key: section}
    return key, config.model_copy(update={"sections": sections})


def remove_section(config: MatrixConfig, key: str) -> MatrixConfig:
    """Remove a section; the last remaining section cannot be removed."""
    if key not in config.sections:
        raise KeyError(key)
    if len(config.sections) <= 1:
        raise ValueError("Cannot remove the last section")
    sections = {k: v for k, v in config.sections.items() if k != key}
    return config.model_copy(update={"sections": sections})
