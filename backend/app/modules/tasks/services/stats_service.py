from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from app.modules.tasks.store import TaskInstance
from app.services.day_boundary import (
    DEFAULT_DAY_BOUNDARY_HOUR,
    DEFAULT_TIMEZONE,
    LogicalDate,
    TrailingWindow,
)

DAY_JOB_WORLD = "day job"
DAY_JOB_CATEGORY = "work chores"
CHORES_LABEL = "chores"
EXCLUDED_CATEGORIES = {"in the mail"}


@dataclass
class StatItem:
    Type: str
    Name: str
    Count: int


@dataclass
class DayStat:
    Date: str
    Completed: int = 0
    WorkSessions: int = 0


@dataclass
class CompletionStats:
    StartDate: date
    EndDate: date
    Days: list[DayStat] = field(default_factory=list)
    Items: list[StatItem] = field(default_factory=list)


class _Tally:
    def __init__(self):
        self.day_job = 0
        self.projects: dict[str, StatItem] = {}
        self.categories: dict[str, int] = {}

    def Add(self, task: TaskInstance, count: int = 1) -> None:
        if task.ProjectId:
            if task.ProjectWorld == DAY_JOB_WORLD:
                self.day_job += count
                return
            item = self.projects.get(task.ProjectId)
            if item is None:
                item = StatItem(Type="project", Name=task.ProjectName or task.ProjectId, Count=0)
                self.projects[task.ProjectId] = item
            item.Count += count
        elif task.Category:
            if task.Category == DAY_JOB_CATEGORY:
                self.day_job += count
            else:
                self.categories[task.Category] = self.categories.get(task.Category, 0) + count
        # Incidentals with neither project nor category are not itemised.

    def Items(self) -> list[StatItem]:
        items = []
        if self.day_job:
            items.append(StatItem(Type="project", Name=DAY_JOB_WORLD, Count=self.day_job))
        items.extend(self.projects.values())
        chores = sum(
            count for category, count in self.categories.items() if category not in EXCLUDED_CATEGORIES
        )
        if chores:
            items.append(StatItem(Type="category", Name=CHORES_LABEL, Count=chores))
        return sorted(items, key=lambda item: -item.Count)


def BuildCompletionStats(
    completed: list[TaskInstance],
    long_tasks: list[TaskInstance],
    today: date,
    days: int,
    timezone_name: str | None = DEFAULT_TIMEZONE,
    boundary_hour: int | None = DEFAULT_DAY_BOUNDARY_HOUR,
) -> CompletionStats:
    """Summarise finished work over the ``days`` logical dates ending at ``today``.

    Recurring tasks are left out. Completions are bucketed by the logical
    date of ``CompletedAt``; work sessions of long tasks by their stored
    date.
    """
    if days < 1:
        raise ValueError("Days must be at least 1.")
    window = TrailingWindow(today, days)
    per_day = {value.isoformat(): DayStat(Date=value.isoformat()) for value in window}
    tally = _Tally()

    for task in completed:
        if task.IsRecurring or not task.IsCompleted or task.CompletedAt is None:
            continue
        key = LogicalDate(task.CompletedAt, timezone_name, boundary_hour).isoformat()
        if key not in per_day:
            continue
        per_day[key].Completed += 1
        tally.Add(task)

    for task in long_tasks:
        if task.IsRecurring:
            continue
        hits = 0
        for entry in task.WorkSessions or []:
            key = str(entry.get("date") or "")[:10]
            if key in per_day:
                per_day[key].WorkSessions += 1
                hits += 1
        if hits:
            tally.Add(task, hits)

    return CompletionStats(
        StartDate=window[0],
        EndDate=window[-1],
        Days=list(per_day.values()),
        Items=tally.Items(),
    )
