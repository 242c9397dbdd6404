"""Shared test fixtures."""

from contextlib import contextmanager
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from prioritymatrix.api.dependencies import get_settings
from prioritymatrix.engine.dates import BoundedCache, DateParser, TaskDateExtractor
from prioritymatrix.main import app
from prioritymatrix.models import Note, Task


def days_from_today(days: int) -> str:
    return (datetime.now() + timedelta(days=days)).strftime("%Y-%m-%d")


def make_note(path, status=None, title=None, **frontmatter):
    if status is not None:
        frontmatter["eisenhower_status"] = status
    return Note(path=path, title=title or path.removesuffix(".md"), frontmatter=frontmatter)


def make_task(text, file="Tasks.md", line=0, completed=False, completed_date=None):
    tags = [word for word in text.split() if word.startswith("#")]
    return Task(
        file=file,
        line=line,
        text=text,
        tags=tags,
        completed=completed,
        completed_date=completed_date,
    )


@pytest.fixture
def date_parser():
    return DateParser(BoundedCache(1000))


@pytest.fixture
def task_dates():
    return TaskDateExtractor(BoundedCache(500))


@pytest.fixture(autouse=True)
def _clear_item_cache():
    with patch("prioritymatrix.api.matrix._cache", {"data": None, "ts": 0.0, "key": ""}):
        yield


@pytest.fixture
def client():
    return TestClient(app)


@contextmanager
def override_vault_path(path):
    """Temporarily override the cached settings vault_path, restoring it on exit."""
    settings = get_settings()
    original = settings.vault_path
    settings.vault_path = path
    try:
        yield settings
    finally:
        settings.vault_path = original


@pytest.fixture
def vault(tmp_path):
    """A small vault with notes in three quadrants, tasks and an excluded folder."""
    root = tmp_path / "vault"
    (root / "Projects").mkdir(parents=True)
    (root / "templates").mkdir()
    (root / "Projects" / "Launch.md").write_text(
        f"---\neisenhower_status: urgent_important\ndue_date: {days_from_today(-2)}\n---\n\n# Launch\n"
    )
    (root / "Projects" / "Roadmap.md").write_text(
        "---\neisenhower_status: not_urgent_important\nrecurring: weekly\n---\n\nPlan the quarter.\n"
    )
    (root / "Inbox.md").write_text("---\ncreated: 2024-01-01\n---\n\nUnsorted thoughts.\n")
    (root / "templates" / "Template.md").write_text("---\neisenhower_status: urgent_important\n---\n")
    (root / "Tasks.md").write_text(
        "# Tasks\n"
        f"- [ ] Finish report #urgent-important 📅 {days_from_today(0)}\n"
        "- [x] Book flights #delegate ✅ " + days_from_today(-1) + "\n"
        "- [ ] Read newsletter\n"
        "    - [ ] Call the bank #schedule\n"
    )
    return root
