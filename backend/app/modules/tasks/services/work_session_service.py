from __future__ import annotations

import logging
from datetime import date, datetime

from app.modules.tasks.store import ContentStore, TaskInstance
from app.services.day_boundary import (
    DEFAULT_DAY_BOUNDARY_HOUR,
    DEFAULT_TIMEZONE,
    LocalNow,
    LogicalDate,
)

logger = logging.getLogger("app.tasks.work_sessions")


class NotLongTaskError(ValueError):
    pass


def _SessionDate(entry: dict) -> str | None:
    value = entry.get("date")
    return str(value)[:10] if value else None


def AddWorkSession(
    task: TaskInstance,
    now: datetime,
    timezone_name: str | None = DEFAULT_TIMEZONE,
    boundary_hour: int | None = DEFAULT_DAY_BOUNDARY_HOUR,
) -> tuple[list[dict], bool]:
    """Append a session for the logical date of ``now``.

    Returns the new session list and whether an entry was added. At most
    one session is kept per date.
    """
    if not task.IsLong:
        raise NotLongTaskError("This task is not marked as long")

    session_date = LogicalDate(now, timezone_name, boundary_hour).isoformat()
    sessions = [dict(entry) for entry in task.WorkSessions or []]
    if any(_SessionDate(entry) == session_date for entry in sessions):
        return sessions, False

    timestamp = LocalNow(now, timezone_name).isoformat(timespec="milliseconds")
    sessions.append({"date": session_date, "timestamp": timestamp})
    return sessions, True


def RemoveWorkSession(task: TaskInstance, session_date: date | str) -> tuple[list[dict], bool]:
    key = session_date.isoformat() if isinstance(session_date, date) else str(session_date)[:10]
    sessions = [dict(entry) for entry in task.WorkSessions or []]
    kept = [entry for entry in sessions if _SessionDate(entry) != key]
    return kept, len(kept) != len(sessions)


def LogWorkSession(
    store: ContentStore,
    task_id: str,
    now: datetime,
    timezone_name: str | None = DEFAULT_TIMEZONE,
    boundary_hour: int | None = DEFAULT_DAY_BOUNDARY_HOUR,
) -> tuple[TaskInstance, bool]:
    task = store.FetchInstance(task_id)
    sessions, added = AddWorkSession(task, now, timezone_name, boundary_hour)
    if not added:
        logger.debug("task %s already has a session today", task_id)
        return task, False
    updated = store.UpdateInstance(task_id, {"WorkSessions": sessions})
    logger.info("work session logged for task %s", task_id)
    return updated, True


def ClearWorkSession(store: ContentStore, task_id: str, session_date: date | str) -> tuple[TaskInstance, bool]:
    task = store.FetchInstance(task_id)
    sessions, removed = RemoveWorkSession(task, session_date)
    if not removed:
        return task, False
    return store.UpdateInstance(task_id, {"WorkSessions": sessions}), True
