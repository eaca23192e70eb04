"""Lunar reset of the "soon" flags.

``ShouldReset`` only decides; the store collaborator does the work. The
reset itself is idempotent, so two requests that both read a stale cursor
and both run it leave the same end state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from app.modules.tasks.store import (
    NORMAL_IMPORTANCE,
    TOP_OF_MIND_IMPORTANCE,
    ContentStore,
    ContentStoreError,
    TaskNotFoundError,
)
from app.services.astronomy import (
    MAX_SUPPORTED_DATE,
    MIN_SUPPORTED_DATE,
    AstronomicalEventKind,
    NextEvent,
)
from app.services.day_boundary import DEFAULT_DAY_BOUNDARY_HOUR, DEFAULT_TIMEZONE, LogicalDate

logger = logging.getLogger("app.tasks.moon_reset")

MOON_PHASE_RESET_SETTING = "moonPhaseLastResetDate"


@dataclass
class MoonPhaseResetResult:
    Ran: bool
    TasksUpdated: int = 0
    ProjectsUpdated: int = 0
    Failures: int = 0
    LastResetDate: date | None = None


def ShouldReset(
    last_reset_date: date | None,
    now_date: date,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> bool:
    if last_reset_date is None:
        return True
    return NextEvent(last_reset_date, AstronomicalEventKind.NewMoon, timezone_name=timezone_name) <= now_date


def ParseResetDate(value: str | None) -> date | None:
    if not value:
        return None
    try:
        parsed = date.fromisoformat(value.strip()[:10])
    except ValueError:
        logger.warning("ignoring malformed %s setting: %r", MOON_PHASE_RESET_SETTING, value)
        return None
    if parsed < MIN_SUPPORTED_DATE or parsed > MAX_SUPPORTED_DATE:
        logger.warning("ignoring out-of-range %s setting: %r", MOON_PHASE_RESET_SETTING, value)
        return None
    return parsed


def ReadLastResetDate(store: ContentStore) -> date | None:
    return ParseResetDate(store.ReadSetting(MOON_PHASE_RESET_SETTING))


def ExecuteMoonPhaseReset(store: ContentStore) -> MoonPhaseResetResult:
    result = MoonPhaseResetResult(Ran=True)
    for task in store.ListEligibleForReset():
        if not task.IsSoon:
            continue
        try:
            store.UpdateInstance(task.Id, {"IsSoon": False})
            result.TasksUpdated += 1
        except (ContentStoreError, TaskNotFoundError):
            logger.exception("moon reset failed for task %s", task.Id)
            result.Failures += 1

    for project in store.ListProjectsEligibleForReset():
        if project.Importance != TOP_OF_MIND_IMPORTANCE:
            continue
        try:
            store.UpdateProject(project.Id, {"Importance": NORMAL_IMPORTANCE})
            result.ProjectsUpdated += 1
        except (ContentStoreError, TaskNotFoundError):
            logger.exception("moon reset failed for project %s", project.Id)
            result.Failures += 1
    return result


def RunMoonPhaseReset(
    store: ContentStore,
    now: datetime,
    timezone_name: str | None = DEFAULT_TIMEZONE,
    boundary_hour: int | None = DEFAULT_DAY_BOUNDARY_HOUR,
    force: bool = False,
) -> MoonPhaseResetResult:
    today = LogicalDate(now, timezone_name, boundary_hour)
    last_reset = ReadLastResetDate(store)
    if not force and not ShouldReset(last_reset, today, timezone_name):
        return MoonPhaseResetResult(Ran=False, LastResetDate=last_reset)

    result = ExecuteMoonPhaseReset(store)
    if result.Failures:
        # Cursor stays put so the next read retries the remaining records.
        logger.warning("moon reset left %s failures; cursor not advanced", result.Failures)
        result.LastResetDate = last_reset
        return result

    store.WriteSetting(MOON_PHASE_RESET_SETTING, today.isoformat())
    result.LastResetDate = today
    logger.info(
        "moon reset ran: tasks=%s projects=%s date=%s",
        result.TasksUpdated,
        result.ProjectsUpdated,
        today.isoformat(),
    )
    return result
