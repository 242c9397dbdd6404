"""Productivity statistics over classified matrix sections."""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Mapping
from datetime import datetime, timedelta

from prioritymatrix.engine.classifier import round_half_up
from prioritymatrix.engine.dates import DateParser, TaskDateExtractor
from prioritymatrix.engine.fields import extract_property_value
from prioritymatrix.models import (
    ClassifiedSection,
    MatrixStats,
    SchedulingSettings,
    SectionStats,
    StatsSummary,
)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# Focus weights by quadrant semantics; anything else counts as 2.5.
QUADRANT_PRIORITIES = {
    "urgent_important": 4.0,
    "not_urgent_important": 3.0,
    "urgent_not_important": 2.0,
    "not_urgent_not_important": 1.0,
}
DEFAULT_PRIORITY = 2.5


def _sunday_index(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


def workload_balance(sizes: list[int]) -> float:
    """1.0 for an even spread of items across sections, lower as it skews."""
    total = sum(sizes)
    if not sizes or total == 0:
        return 1.0
    mean = total / len(sizes)
    deviation = sum(abs(size - mean) for size in sizes)
    return round(1 - deviation / (2 * total), 2)


class StatsCalculator:
    """Computes per-section and matrix-wide metrics in one pass per section."""

    def __init__(self, date_parser: DateParser, task_dates: TaskDateExtractor) -> None:
        self.dates = date_parser
        self.task_dates = task_dates

    def _section_priority(self, key: str, section: ClassifiedSection) -> float:
        rule_value = section.section.property_rules.property_value
        if rule_value in QUADRANT_PRIORITIES:
            return QUADRANT_PRIORITIES[rule_value]
        return QUADRANT_PRIORITIES.get(key, DEFAULT_PRIORITY)

    def compute(
        self,
        classified: Mapping[str, ClassifiedSection],
        scheduling: SchedulingSettings,
        now: datetime | None = None,
    ) -> MatrixStats:
        now = now or self.dates.clock()
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)

        per_section: dict[str, SectionStats] = {}
        summary = StatsSummary()
        items_by_date: Counter[datetime] = Counter()
        completion_dates: list[datetime] = []
        quadrant_balance: dict[str, int] = {}
        focus_weight = 0.0

        for key, section in classified.items():
            stats = SectionStats(
                total=len(section.notes) + len(section.tasks),
                notes=len(section.notes),
                tasks=len(section.tasks),
            )

            for task in section.tasks:
                if task.completed:
                    stats.completed += 1
                    completed_at = self.dates.parse_date(task.completed_date)
                    if completed_at is not None:
                        completion_dates.append(completed_at)

                raw_date = self.task_dates.extract(task.text)
                if raw_date:
                    parsed = self.dates.parse_date(raw_date)
                    if parsed is not None:
                        items_by_date[parsed] += 1
                    stats.overdue += self.dates.is_overdue(raw_date)
                    stats.today += self.dates.is_today(raw_date)
                    stats.week += self.dates.is_this_week(raw_date)
                elif not task.completed:
                    stats.unscheduled += 1

            for note in section.notes:
                raw_date = extract_property_value(note.frontmatter.get(scheduling.date_property_name))
                recurring = extract_property_value(note.frontmatter.get(scheduling.recurring_property_name))
                if raw_date:
                    parsed = self.dates.parse_date(raw_date)
                    if parsed is not None:
                        items_by_date[parsed] += 1
                    stats.overdue += self.dates.is_overdue(raw_date)
                    stats.today += self.dates.is_today(raw_date)
                    stats.week += self.dates.is_this_week(raw_date)
                else:
                    stats.unscheduled += 1
                if recurring:
                    stats.recurring += 1

            if stats.tasks:
                stats.completion_rate = round_half_up(stats.completed / stats.tasks * 100)

            per_section[key] = stats
            quadrant_balance[key] = stats.total
            focus_weight += self._section_priority(key, section) * stats.total

            summary.total_items += stats.total
            summary.total_notes += stats.notes
            summary.total_tasks += stats.tasks
            summary.completed_tasks += stats.completed
            summary.overdue_tasks += stats.overdue
            summary.today_tasks += stats.today
            summary.week_tasks += stats.week
            summary.unscheduled_items += stats.unscheduled
            summary.recurring_items += stats.recurring

        total_items = summary.total_items
        total_tasks = summary.total_tasks

        completed_this_week = sum(1 for d in completion_dates if week_ago <= d <= now)
        completed_last_month = sum(1 for d in completion_dates if month_ago <= d <= now)
        avg_daily = completed_this_week / 7

        if total_tasks:
            summary.completion_rate = round_half_up(summary.completed_tasks / total_tasks * 100)
        summary.productivity_score = round_half_up(100 - summary.overdue_tasks / max(total_tasks, 1) * 100)
        summary.completed_this_week = completed_this_week
        summary.completed_last_month = completed_last_month
        summary.avg_daily_completions = round(avg_daily, 1)
        summary.workload_balance = workload_balance(list(quadrant_balance.values()))
        summary.quadrant_balance = quadrant_balance

        recent_rate = completed_this_week / max(summary.week_tasks, 1)
        monthly_rate = completed_last_month / max(total_tasks, 1)
        summary.momentum = round((recent_rate - monthly_rate) * 100, 1)
        summary.urgency_index = round_half_up(
            (summary.overdue_tasks + summary.today_tasks) / max(total_items, 1) * 100
        )
        summary.focus_score = round(focus_weight / max(total_items, 1), 2)

        remaining = total_tasks - summary.completed_tasks
        summary.days_to_complete = math.ceil(remaining / avg_daily) if avg_daily > 0 else None

        by_day: Counter[str] = Counter()
        heat_map: Counter[str] = Counter()
        weekly_pattern = [0] * 7
        for moment, count in items_by_date.items():
            by_day[moment.date().isoformat()] += count
            weekday = _sunday_index(moment)
            heat_map[f"{WEEKDAY_NAMES[weekday]}-{moment.hour}"] += count
            weekly_pattern[weekday] += count

        summary.tasks_by_date = sorted(by_day.items())
        summary.activity_heat_map = dict(heat_map)
        summary.weekly_pattern = weekly_pattern
        summary.quadrant_efficiency = {key: s.completion_rate for key, s in per_section.items()}

        if completed_this_week > 0:
            summary.velocity_trend = round(
                (completed_this_week - completed_last_month / 4) / completed_this_week * 100, 1
            )
        else:
            summary.velocity_trend = 0.0

        logger.debug(
            "Computed stats for %d sections: %d items, %d tasks", len(per_section), total_items, total_tasks
        )
        return MatrixStats(sections=per_section, summary=summary)
