"""Markdown parser for Obsidian notes and their checkbox tasks."""

import re
from pathlib import Path

import frontmatter

from prioritymatrix.models import Note, Task

# - [ ] open, - [x] done; "*" and "+" bullets and any indentation are accepted
TASK_LINE_RE = re.compile(r"^(\s*[-*+]\s+\[)([ xX])(\]\s+)(.*)$")
INLINE_TAG_RE = re.compile(r"(?<![\w#])(#[\w/-]+)")
COMPLETION_DATE_RE = re.compile(r"✅\s*(\d{4}-\d{2}-\d{2})")


def parse_note(path: str, content: str) -> Note:
    """Parse a markdown file with frontmatter.

    Args:
        path: The vault-relative file path (used for title extraction).
        content: The raw markdown content.

    Returns:
        A Note with unwrapped frontmatter values.
    """
    post = frontmatter.loads(content)
    title = _extract_title(path, post.metadata, post.content)

    return Note(
        path=path,
        title=title,
        content=post.content,
        frontmatter=dict(post.metadata),
    )


def _extract_title(path: str, metadata: dict[str, object], content: str) -> str:
    """Extract the note title.

    Priority:
    1. Frontmatter 'title' field
    2. First H1 heading in content
    3. Filename without extension
    """
    if "title" in metadata and isinstance(metadata["title"], str):
        return metadata["title"]

    for line in content.split("\n"):
        line = line.strip()
        if line.startswith("# ") and not line.startswith("## "):
            return line[2:].strip()

    return Path(path).stem


def parse_tasks(path: str, content: str) -> list[Task]:
    """Parse every checkbox task in a file, keeping 0-based line numbers."""
    tasks: list[Task] = []
    for i, line in enumerate(content.split("\n")):
        match = TASK_LINE_RE.match(line)
        if not match:
            continue
        text = match.group(4).strip()
        if not text:
            continue
        completion = COMPLETION_DATE_RE.search(text)
        tasks.append(
            Task(
                file=path,
                line=i,
                text=text,
                tags=INLINE_TAG_RE.findall(text),
                completed=match.group(2).lower() == "x",
                completed_date=completion.group(1) if completion else None,
            )
        )
    return tasks
