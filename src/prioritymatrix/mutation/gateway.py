"""Serialized vault mutations requested by matrix moves."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from prioritymatrix.models import ItemRef, MatrixConfig, MutationResult
from prioritymatrix.mutation.locks import KeyedLock
from prioritymatrix.vault.writer import MutationError, VaultWriter

logger = logging.getLogger(__name__)

QUEUE_REPLAY_DELAY = 0.05  # seconds before the next queued mutation after a failure


class MutationGateway:
    """Runs file edits one at a time per file.

    Mutations against the same path run in request order and never overlap;
    mutations against different paths run concurrently. Failures are logged
    and returned as ``MutationResult(ok=False)``; they are never retried.
    """

    def __init__(
        self,
        writer: VaultWriter,
        lock: KeyedLock | None = None,
        replay_delay: float = QUEUE_REPLAY_DELAY,
    ) -> None:
        self.writer = writer
        self.lock = lock or KeyedLock()
        self.replay_delay = replay_delay

    async def _run(self, path: str, operation: str, func: Callable[..., Any], *args: Any) -> MutationResult:
        try:
            key = self.writer.lock_key(path)
        except MutationError as e:
            logger.error("%s failed for %s: %s", operation, path, e)
            return MutationResult(ok=False, path=path, error=str(e))

        async with self.lock.hold(key):
            try:
                await asyncio.to_thread(func, *args)
            except Exception as e:
                logger.error("%s failed for %s: %s", operation, path, e)
                if self.lock.waiting(key):
                    await asyncio.sleep(self.replay_delay)
                return MutationResult(ok=False, path=path, error=str(e))
        return MutationResult(ok=True, path=path)

    async def set_note_property(self, path: str, name: str, value: Any) -> MutationResult:
        return await self._run(path, "set_note_property", self.writer.set_note_property, path, name, value)

    async def clear_note_properties(self, path: str, names: list[str]) -> MutationResult:
        return await self._run(path, "clear_note_properties", self.writer.clear_note_properties, path, names)

    async def set_task_tag(
        self,
        file: str,
        line: int,
        new_tag: str,
        known_tags: list[str],
        expected_text: str | None = None,
    ) -> MutationResult:
        return await self._run(
            file, "set_task_tag", self.writer.set_task_tag, file, line, new_tag, known_tags, expected_text
        )

    async def toggle_task_completion(
        self, file: str, line: int, completed: bool, expected_text: str | None = None
    ) -> MutationResult:
        return await self._run(
            file, "toggle_task_completion", self.writer.set_task_completed, file, line, completed, expected_text
        )

    async def move_item(self, item: ItemRef, section_key: str, config: MatrixConfig) -> MutationResult:
        """Reassign a note or task to a section by rewriting its rule field."""
        section = config.sections.get(section_key)
        if section is None:
            return MutationResult(ok=False, path=item.path, error=f"Unknown section: {section_key}")

        if item.type == "note":
            rule = section.property_rules
            if not rule.enabled or not rule.property_name:
                return MutationResult(ok=False, path=item.path, error="Section has no property rule")
            return await self.set_note_property(item.path, rule.property_name, rule.property_value)

        if item.line is None:
            return MutationResult(ok=False, path=item.path, error="Task reference needs a line number")
        if not section.task_rules.enabled or not section.task_rules.tag_name:
            return MutationResult(ok=False, path=item.path, error="Section has no task rule")
        return await self.set_task_tag(item.path, item.line, section.task_rules.tag_name, config.known_tags())

    async def bulk_move(
        self, items: list[ItemRef], section_key: str, config: MatrixConfig
    ) -> list[MutationResult]:
        """Move items one after another; a failure does not stop the rest."""
        results = [await self.move_item(item, section_key, config) for item in items]
        failed = sum(1 for r in results if not r.ok)
        logger.info("Bulk move to %s: %d moved, %d failed", section_key, len(results) - failed, failed)
        return results

