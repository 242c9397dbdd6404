"""Vault connector for reading notes and tasks from an Obsidian vault."""

import fnmatch
import logging
from pathlib import Path

from prioritymatrix.models import Note, Task
from prioritymatrix.vault.parser import parse_note, parse_tasks

logger = logging.getLogger(__name__)


class VaultConnector:
    """Connects to an Obsidian vault and reads notes and tasks."""

    DEFAULT_EXCLUDES = [
        ".obsidian/*",
        ".trash/*",
        ".git/*",
        "node_modules/*",
        "*.excalidraw.md",
    ]

    def __init__(
        self,
        vault_path: Path,
        excluded_folders: list[str] | None = None,
        include_patterns: list[str] | None = None,
    ) -> None:
        """Initialize the vault connector.

        Args:
            vault_path: Path to the Obsidian vault root.
            excluded_folders: Vault-relative folders whose notes and tasks are ignored.
            include_patterns: Glob patterns for files to include. Defaults to ["**/*.md"].
        """
        self.vault_path = vault_path
        self.include_patterns = include_patterns or ["**/*.md"]
        self.exclude_patterns = list(self.DEFAULT_EXCLUDES)
        for folder in excluded_folders or []:
            folder = folder.strip().strip("/")
            if folder:
                self.exclude_patterns.append(f"{folder}/*")

    def _should_exclude(self, relative_path: str) -> bool:
        """Check if a file should be excluded based on patterns."""
        return any(fnmatch.fnmatch(relative_path, pattern) for pattern in self.exclude_patterns)

    def list_notes(self) -> list[Path]:
        """List all note files in the vault, relative to the vault root."""
        notes: list[Path] = []
        for pattern in self.include_patterns:
            for file_path in self.vault_path.glob(pattern):
                if file_path.is_file():
                    relative = file_path.relative_to(self.vault_path)
                    if not self._should_exclude(relative.as_posix()):
                        notes.append(relative)
        return sorted(set(notes))

    def _read_text(self, relative_path: Path) -> str:
        return (self.vault_path / relative_path).read_text(encoding="utf-8")

    def read_items(self) -> tuple[list[Note], list[Task]]:
        """Read every note and every task in one pass over the vault.

        Files that fail to read or parse are logged and skipped.
        """
        notes: list[Note] = []
        tasks: list[Task] = []
        for path in self.list_notes():
            relative = path.as_posix()
            try:
                content = self._read_text(path)
                notes.append(parse_note(relative, content))
                tasks.extend(parse_tasks(relative, content))
            except Exception as e:
                logger.warning("Error reading %s: %s", relative, e)
        return notes, tasks

    def read_all_notes(self) -> list[Note]:
        return self.read_items()[0]

    def read_all_tasks(self) -> list[Task]:
        return self.read_items()[1]
