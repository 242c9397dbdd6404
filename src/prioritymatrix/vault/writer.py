"""File edits backing matrix moves: frontmatter properties and task-line tags."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import frontmatter

from prioritymatrix.vault.parser import TASK_LINE_RE

logger = logging.getLogger(__name__)


class MutationError(Exception):
    """A requested vault edit could not be applied."""


def _tag_re(tag: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![\w#])#{re.escape(tag)}(?![\w/-])", re.IGNORECASE)


def retag_line(line: str, new_tag: str, known_tags: list[str]) -> str:
    """Replace any known category tag on a task line with ``new_tag``."""
    new_tag = new_tag.lstrip("#")
    for tag in [*known_tags, new_tag]:
        tag = tag.lstrip("#")
        if tag:
            line = _tag_re(tag).sub("", line)
    indent = line[: len(line) - len(line.lstrip())]
    body = re.sub(r"[ \t]{2,}", " ", line.strip())
    return f"{indent}{body} #{new_tag}" if new_tag else f"{indent}{body}"


def _read_lines(target: Path) -> list[str]:
    """Split on "\n" only; a CRLF line keeps its trailing "\r"."""
    with open(target, encoding="utf-8", newline="") as f:
        return f.read().split("\n")


def _write_lines(target: Path, lines: list[str]) -> None:
    with open(target, "w", encoding="utf-8", newline="") as f:
        f.write("\n".join(lines))


def _split_cr(line: str) -> tuple[str, str]:
    return (line[:-1], "\r") if line.endswith("\r") else (line, "")


class VaultWriter:
    """Applies single-file edits inside a vault directory.

    Every method raises MutationError (or OSError from the filesystem) when the
    edit cannot be applied; nothing is written in that case.
    """

    def __init__(self, vault_path: Path) -> None:
        self.vault_path = vault_path

    def resolve(self, relative_path: str) -> Path:
        root = self.vault_path.resolve()
        full_path = (root / relative_path).resolve()
        if not full_path.is_relative_to(root):
            raise MutationError(f"Path escapes the vault: {relative_path}")
        if not full_path.is_file():
            raise MutationError(f"File not found: {relative_path}")
        return full_path

    def lock_key(self, relative_path: str) -> str:
        """Canonical vault-relative POSIX path, so aliases of one file share a lock."""
        return self.resolve(relative_path).relative_to(self.vault_path.resolve()).as_posix()

    def set_note_property(self, path: str, name: str, value: Any) -> None:
        if not name:
            raise MutationError("Property name must be non-empty")
        target = self.resolve(path)
        post = frontmatter.loads(target.read_text(encoding="utf-8"))
        post.metadata[name] = value
        target.write_text(frontmatter.dumps(post) + "\n", encoding="utf-8")
        logger.info("Set %s=%s on %s", name, value, path)

    def clear_note_properties(self, path: str, names: list[str]) -> None:
        target = self.resolve(path)
        post = frontmatter.loads(target.read_text(encoding="utf-8"))
        removed = [name for name in names if name in post.metadata]
        for name in removed:
            del post.metadata[name]
        if not removed:
            logger.info("No properties to clear on %s", path)
            return
        if post.metadata:
            new_content = frontmatter.dumps(post) + "\n"
        else:
            new_content = post.content + "\n"
        target.write_text(new_content, encoding="utf-8")
        logger.info("Cleared %s on %s", ", ".join(removed), path)

    def _locate_task(self, lines: list[str], line: int, expected_text: str | None) -> int:
        """Return the index of the task line, following it if the file shifted."""
        if 0 <= line < len(lines):
            match = TASK_LINE_RE.match(_split_cr(lines[line])[0])
            if match and (expected_text is None or match.group(4).strip() == expected_text):
                return line
        if expected_text:
            for i, candidate in enumerate(lines):
                match = TASK_LINE_RE.match(_split_cr(candidate)[0])
                if match and match.group(4).strip() == expected_text:
                    return i
        raise MutationError(f"Task line {line} not found")

    def set_task_tag(
        self,
        file: str,
        line: int,
        new_tag: str,
        known_tags: list[str],
        expected_text: str | None = None,
    ) -> None:
        target = self.resolve(file)
        lines = _read_lines(target)
        index = self._locate_task(lines, line, expected_text)
        body, ending = _split_cr(lines[index])
        lines[index] = retag_line(body, new_tag, known_tags) + ending
        _write_lines(target, lines)
        logger.info("Tagged task %s:%d with #%s", file, index, new_tag.lstrip("#"))

    def set_task_completed(
        self, file: str, line: int, completed: bool, expected_text: str | None = None
    ) -> None:
        target = self.resolve(file)
        lines = _read_lines(target)
        index = self._locate_task(lines, line, expected_text)
        body, ending = _split_cr(lines[index])
        match = TASK_LINE_RE.match(body)
        if match is None:
            raise MutationError(f"Task line {index} not found")
        marker = "x" if completed else " "
        lines[index] = f"{match.group(1)}{marker}{match.group(3)}{match.group(4)}{ending}"
        _write_lines(target, lines)
        logger.info("Marked task %s:%d %s", file, index, "done" if completed else "open")
