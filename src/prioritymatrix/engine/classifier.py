"""Rule-based classification of notes and tasks into matrix sections.

Each section is processed independently: match by rule, apply the search and
advanced filters, sort, then cap the combined note+task count. A failure while
processing one kind of one section only empties that list.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from functools import cmp_to_key
from typing import Any

from prioritymatrix.engine.dates import DateParser, TaskDateExtractor
from prioritymatrix.engine.fields import extract_property_value, extract_tag_label
from prioritymatrix.models import (
    ClassifiedSection,
    DisplaySettings,
    ItemType,
    MatrixConfig,
    Note,
    Section,
    Task,
    UnassignedItems,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (0.5 -> 1, 2.5 -> 3)."""
    return math.floor(value + 0.5)


def split_limit(note_count: int, task_count: int, max_items: int) -> tuple[int, int]:
    """Share ``max_items`` between notes and tasks in proportion to their counts.

    Returns (notes_limit, tasks_limit). Totals already within the limit are
    returned unchanged. The limits never sum past ``max_items``; with a limit
    of 1 the single slot goes to the larger kind (notes on a tie).
    """
    total = note_count + task_count
    if max_items <= 0 or total <= max_items:
        return note_count, task_count
    if note_count and task_count:
        if max_items == 1:
            return (1, 0) if note_count >= task_count else (0, 1)
        notes_limit = max(1, round_half_up(max_items * note_count / total))
        notes_limit = min(notes_limit, max_items - 1)
        tasks_limit = max(1, max_items - notes_limit)
        return min(note_count, notes_limit), min(task_count, tasks_limit)
    if note_count:
        return min(note_count, max_items), 0
    return 0, min(task_count, max_items)


def note_matches(note: Note, section: Section) -> bool:
    rule = section.property_rules
    value = extract_property_value(note.frontmatter.get(rule.property_name))
    return value == rule.property_value


def task_matches(task: Task, section: Section) -> bool:
    tag_name = section.task_rules.tag_name
    return any(extract_tag_label(tag) == tag_name for tag in task.tags)


class MatrixClassifier:
    """Classifies vault items into the sections of a matrix configuration."""

    def __init__(self, date_parser: DateParser, task_dates: TaskDateExtractor) -> None:
        self.dates = date_parser
        self.task_dates = task_dates

    def note_date(self, note: Note, date_property: str) -> Any:
        return extract_property_value(note.frontmatter.get(date_property))

    def task_date(self, task: Task) -> str | None:
        return self.task_dates.extract(task.text)

    def _comparator(
        self, sort_by: str, name_of: Callable[[Any], str], date_of: Callable[[Any], Any]
    ) -> Callable[[Any, Any], int]:
        if sort_by == "name":

            def by_name(a: Any, b: Any) -> int:
                name_a, name_b = name_of(a), name_of(b)
                return (name_a > name_b) - (name_a < name_b)

            return by_name

        if sort_by == "date":

            def by_date(a: Any, b: Any) -> int:
                date_a, date_b = date_of(a), date_of(b)
                if not date_a and not date_b:
                    return 0
                if not date_a:
                    return 1
                if not date_b:
                    return -1
                parsed_a = self.dates.parse_date(date_a)
                parsed_b = self.dates.parse_date(date_b)
                ts_a = parsed_a.timestamp() if parsed_a else 0.0
                ts_b = parsed_b.timestamp() if parsed_b else 0.0
                return (ts_a > ts_b) - (ts_a < ts_b)

            return by_date

        def by_priority(a: Any, b: Any) -> int:
            overdue_a = self.dates.is_overdue(date_of(a))
            overdue_b = self.dates.is_overdue(date_of(b))
            if overdue_a and not overdue_b:
                return -1
            if overdue_b and not overdue_a:
                return 1
            return 0

        return by_priority

    def _passes_filter(self, filter_by: str, raw_date: Any, completed: bool | None) -> bool:
        if filter_by == "overdue":
            return self.dates.is_overdue(raw_date)
        if filter_by == "today":
            return self.dates.is_today(raw_date)
        if filter_by == "week":
            return self.dates.is_this_week(raw_date)
        # completed/pending only narrow tasks; notes carry no completion flag
        if completed is not None:
            if filter_by == "completed":
                return completed
            if filter_by == "pending":
                return not completed
        return True

    def _classify_notes(
        self, notes: Sequence[Note], section: Section, display: DisplaySettings, date_property: str
    ) -> list[Note]:
        query = display.search_query.lower()
        matched: list[Note] = []
        for note in notes:
            if not note_matches(note, section):
                continue
            if query and query not in note.title.lower():
                continue
            if display.filter_by != "all" and not self._passes_filter(
                display.filter_by, self.note_date(note, date_property), None
            ):
                continue
            matched.append(note)

        comparator = self._comparator(
            display.sort_by,
            name_of=lambda n: n.title,
            date_of=lambda n: self.note_date(n, date_property),
        )
        matched.sort(key=cmp_to_key(comparator))
        return matched

    def _classify_tasks(
        self, tasks: Sequence[Task], section: Section, display: DisplaySettings
    ) -> list[Task]:
        query = display.search_query.lower()
        matched: list[Task] = []
        for task in tasks:
            if not display.show_completed and task.completed:
                continue
            if not task_matches(task, section):
                continue
            if query and query not in task.text.lower():
                continue
            if display.filter_by != "all" and not self._passes_filter(
                display.filter_by, self.task_date(task), task.completed
            ):
                continue
            matched.append(task)

        comparator = self._comparator(display.sort_by, name_of=lambda t: t.text, date_of=self.task_date)
        matched.sort(key=cmp_to_key(comparator))
        return matched

    def classify(
        self, notes: Sequence[Note], tasks: Sequence[Task], config: MatrixConfig
    ) -> dict[str, ClassifiedSection]:
        """Classify notes and tasks into every configured section.

        Overlapping rules are not resolved: an item matching two sections
        appears in both.
        """
        display = config.display
        date_property = config.scheduling.date_property_name
        result: dict[str, ClassifiedSection] = {}

        for key, section in config.sections.items():
            section_notes: list[Note] = []
            section_tasks: list[Task] = []

            if display.show_notes and section.property_rules.enabled:
                try:
                    section_notes = self._classify_notes(notes, section, display, date_property)
                except Exception as e:
                    logger.warning("Error processing notes for section %s: %s", key, e)
                    section_notes = []

            if display.show_tasks and section.task_rules.enabled:
                try:
                    section_tasks = self._classify_tasks(tasks, section, display)
                except Exception as e:
                    logger.warning("Error processing tasks for section %s: %s", key, e)
                    section_tasks = []

            notes_limit, tasks_limit = split_limit(
                len(section_notes), len(section_tasks), display.max_items_per_section
            )
            result[key] = ClassifiedSection(
                key=key,
                section=section,
                notes=section_notes[:notes_limit],
                tasks=section_tasks[:tasks_limit],
            )

        return result

    def find_unassigned(
        self,
        notes: Sequence[Note],
        tasks: Sequence[Task],
        config: MatrixConfig,
        search: str = "",
        path_filter: str = "",
        item_type: ItemType = "all",
    ) -> UnassignedItems:
        """Collect items that no enabled section rule claims."""
        display = config.display
        sections = list(config.sections.values())
        path_filter = path_filter.lower().strip()
        query = search.lower()

        unassigned_notes: list[Note] = []
        if display.show_notes and item_type != "tasks":
            for note in notes:
                if path_filter and path_filter not in note.path.lower():
                    continue
                if any(s.property_rules.enabled and note_matches(note, s) for s in sections):
                    continue
                if query and query not in note.title.lower():
                    continue
                unassigned_notes.append(note)

        unassigned_tasks: list[Task] = []
        if display.show_tasks and item_type != "notes":
            for task in tasks:
                if not display.show_completed and task.completed:
                    continue
                if path_filter and path_filter not in task.file.lower():
                    continue
                if any(s.task_rules.enabled and task_matches(task, s) for s in sections):
                    continue
                if query and query not in task.text.lower():
                    continue
                unassigned_tasks.append(task)

        return UnassignedItems(notes=unassigned_notes, tasks=unassigned_tasks)
