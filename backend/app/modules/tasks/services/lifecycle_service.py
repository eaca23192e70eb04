from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from app.modules.tasks.services.recurrence_service import ComputeNextOccurrence, Occurrence
from app.modules.tasks.store import ContentStore, TaskInstance
from app.services.day_boundary import DEFAULT_TIMEZONE

logger = logging.getLogger("app.tasks.lifecycle")

# Copied verbatim from the finished instance onto the next one.
CARRIED_FIELDS = (
    "Title",
    "Description",
    "Category",
    "ProjectId",
    "IsLong",
    "IsSoon",
    "TrackingUrl",
    "PurchaseUrl",
    "Price",
    "WishListCategory",
    "DisplayDateOffset",
    "IsRecurring",
    "RecurrenceType",
    "RecurrenceInterval",
    "RecurrenceDayOfWeek",
    "RecurrenceDayOfMonth",
    "RecurrenceWeekOfMonth",
    "RecurrenceDayOfWeekMonthly",
    "RecurrenceMonth",
)


class NotRecurringError(ValueError):
    pass


@dataclass
class TaskMutationPlan:
    TaskId: str | None
    UpdateFields: dict = field(default_factory=dict)
    CreateFields: dict | None = None
    DeleteCurrent: bool = False
    NextOccurrence: Occurrence = field(default_factory=Occurrence)


@dataclass
class TaskTransitionResult:
    Task: TaskInstance | None
    NextTask: TaskInstance | None = None
    Deleted: bool = False


def DeriveNextOccurrence(instance: TaskInstance, timezone_name: str | None = DEFAULT_TIMEZONE) -> Occurrence:
    return ComputeNextOccurrence(
        instance.Rule,
        instance.DueDate,
        instance.DisplayDate,
        instance.DisplayDateOffset,
        timezone_name=timezone_name,
    )


def BuildNextInstanceFields(instance: TaskInstance, occurrence: Occurrence) -> dict:
    fields = {name: getattr(instance, name) for name in CARRIED_FIELDS}
    fields.update(
        {
            "DueDate": occurrence.DueDate,
            "DisplayDate": occurrence.DisplayDate,
            "IsCompleted": False,
            "CompletedAt": None,
            "WorkSessions": [],
        }
    )
    return fields


def CompleteTask(
    instance: TaskInstance,
    now: datetime,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> TaskMutationPlan:
    if instance.IsCompleted:
        logger.debug("task %s already completed", instance.Id)
        return TaskMutationPlan(TaskId=instance.Id)

    plan = TaskMutationPlan(
        TaskId=instance.Id,
        UpdateFields={"IsCompleted": True, "CompletedAt": now},
    )
    if not instance.IsRecurring:
        return plan

    plan.NextOccurrence = DeriveNextOccurrence(instance, timezone_name)
    if not plan.NextOccurrence.IsEmpty:
        plan.CreateFields = BuildNextInstanceFields(instance, plan.NextOccurrence)
    else:
        logger.debug("task %s recurrence incomplete; series ends", instance.Id)
    return plan


def SkipTask(
    instance: TaskInstance,
    now: datetime,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> TaskMutationPlan:
    if not instance.IsRecurring:
        raise NotRecurringError("Task is not recurring")

    occurrence = DeriveNextOccurrence(instance, timezone_name)
    logger.debug("skipping task %s at %s", instance.Id, now.isoformat())
    return TaskMutationPlan(
        TaskId=instance.Id,
        CreateFields=None if occurrence.IsEmpty else BuildNextInstanceFields(instance, occurrence),
        DeleteCurrent=True,
        NextOccurrence=occurrence,
    )


def ApplyTaskMutationPlan(store: ContentStore, plan: TaskMutationPlan) -> TaskTransitionResult:
    current = None
    if plan.UpdateFields:
        current = store.UpdateInstance(plan.TaskId, plan.UpdateFields)

    next_task = None
    if plan.CreateFields is not None:
        next_id = store.CreateInstance(plan.CreateFields)
        next_task = store.FetchInstance(next_id)

    if plan.DeleteCurrent:
        store.DeleteInstance(plan.TaskId)
    return TaskTransitionResult(Task=current, NextTask=next_task, Deleted=plan.DeleteCurrent)


def RunCompleteTask(
    store: ContentStore,
    task_id: str,
    now: datetime,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> TaskTransitionResult:
    instance = store.FetchInstance(task_id)
    result = ApplyTaskMutationPlan(store, CompleteTask(instance, now, timezone_name))
    if result.Task is None:
        result.Task = instance
    if result.NextTask:
        logger.info("task %s completed; next instance %s", task_id, result.NextTask.Id)
    return result


def RunSkipTask(
    store: ContentStore,
    task_id: str,
    now: datetime,
    timezone_name: str | None = DEFAULT_TIMEZONE,
) -> TaskTransitionResult:
    instance = store.FetchInstance(task_id)
    result = ApplyTaskMutationPlan(store, SkipTask(instance, now, timezone_name))
    result.Task = instance
    logger.info(
        "task %s skipped; next instance %s",
        task_id,
        result.NextTask.Id if result.NextTask else "none",
    )
    return result
