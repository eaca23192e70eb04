import logging
from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import ProgrammingError

from app.db import GetDb
from app.modules.auth.deps import NowUtc, RequireAuthenticated, UserContext
from app.modules.tasks.schemas import (
    DayStatOut,
    LogicalDateOut,
    MoonPhaseResetResponse,
    MoonPhaseStatusOut,
    OccurrenceOut,
    RecurrencePreviewRequest,
    StatItemOut,
    TaskOut,
    TaskStatsResponse,
    TaskTransitionResponse,
    WorkSessionRequest,
    WorkSessionResponse,
)
from app.modules.tasks.services.lifecycle_service import RunCompleteTask, RunSkipTask
from app.modules.tasks.services.moon_reset_service import (
    ReadLastResetDate,
    RunMoonPhaseReset,
    ShouldReset,
)
from app.modules.tasks.services.recurrence_service import (
    ComputeNextOccurrence,
    IncompleteRule,
    ParseRecurrenceRule,
)
from app.modules.tasks.services.stats_service import BuildCompletionStats
from app.modules.tasks.services.work_session_service import ClearWorkSession, LogWorkSession
from app.modules.tasks.store import ContentStoreError, SqlContentStore, TaskInstance, TaskNotFoundError
from app.modules.tasks.strapi_store import StrapiContentStore
from app.modules.tasks.utils.config import (
    LoadTasksConfig,
    ResolveDayBoundaryHour,
    ResolveTimezoneName,
)
from app.services.astronomy import AstronomicalEventKind, NextEvent
from app.services.day_boundary import LogicalDate, ResolveTimezone, TrailingWindow

router = APIRouter(prefix="/api/tasks", tags=["tasks"])
logger = logging.getLogger("app.tasks.router")


def GetContentStore(user: UserContext = Depends(RequireAuthenticated)):
    config = LoadTasksConfig()
    if config.ContentStoreUrl:
        store = StrapiContentStore(
            config.ContentStoreUrl,
            token=user.Token,
            timeout=config.ContentStoreTimeoutSeconds,
            page_size=config.ContentStorePageSize,
        )
        try:
            yield store
        finally:
            store.Close()
        return

    sessions = GetDb()
    db = next(sessions)
    try:
        yield SqlContentStore(db)
    finally:
        sessions.close()


def _handle_db_error(exc: Exception) -> None:
    logger.exception("tasks database error")
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Tasks storage not initialized. Run alembic upgrade head.",
    ) from exc


def _handle_task_error(exc: Exception) -> None:
    detail = str(exc)
    if isinstance(exc, TaskNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail) from exc
    if isinstance(exc, ContentStoreError):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from exc


def _BuildTaskOut(instance: TaskInstance | None) -> TaskOut | None:
    if instance is None:
        return None
    return TaskOut(**asdict(instance))


def _ResolveSettings(store, timezone_override: str | None = None) -> tuple[str, int]:
    if timezone_override:
        ResolveTimezone(timezone_override)
        timezone_name = timezone_override
    else:
        timezone_name = ResolveTimezoneName(store)
    return timezone_name, ResolveDayBoundaryHour(store)


@router.post("/recurrence/preview", response_model=OccurrenceOut)
def PreviewRecurrence(
    payload: RecurrencePreviewRequest,
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> OccurrenceOut:
    try:
        timezone_name, _ = _ResolveSettings(store, payload.TimeZone)
        rule = ParseRecurrenceRule(
            payload.RecurrenceType.value,
            interval=payload.RecurrenceInterval,
            day_of_week=payload.RecurrenceDayOfWeek,
            day_of_month=payload.RecurrenceDayOfMonth,
            week_of_month=payload.RecurrenceWeekOfMonth,
            day_of_week_monthly=payload.RecurrenceDayOfWeekMonthly,
            month=payload.RecurrenceMonth,
        )
        occurrence = ComputeNextOccurrence(
            rule,
            payload.DueDate,
            payload.DisplayDate,
            payload.DisplayDateOffset,
            timezone_name=timezone_name,
        )
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return OccurrenceOut(
        DueDate=occurrence.DueDate,
        DisplayDate=occurrence.DisplayDate,
        IsEmpty=occurrence.IsEmpty,
        MissingFields=list(rule.MissingFields) if isinstance(rule, IncompleteRule) else [],
    )


@router.get("/logical-date", response_model=LogicalDateOut)
def GetLogicalDate(
    timezone: str | None = None,
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> LogicalDateOut:
    try:
        timezone_name, boundary_hour = _ResolveSettings(store, timezone)
        today = LogicalDate(NowUtc(), timezone_name, boundary_hour)
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return LogicalDateOut(LogicalDate=today, TimeZone=timezone_name, DayBoundaryHour=boundary_hour)


@router.get("/stats", response_model=TaskStatsResponse)
def GetTaskStats(
    days: int = Query(7, ge=1, le=366),
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> TaskStatsResponse:
    try:
        timezone_name, boundary_hour = _ResolveSettings(store)
        today = LogicalDate(NowUtc(), timezone_name, boundary_hour)
        window = TrailingWindow(today, days)
        stats = BuildCompletionStats(
            store.ListCompletedSince(window[0]),
            store.ListLongTasks(),
            today,
            days,
            timezone_name,
            boundary_hour,
        )
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return TaskStatsResponse(
        StartDate=stats.StartDate,
        EndDate=stats.EndDate,
        Days=[DayStatOut(**asdict(entry)) for entry in stats.Days],
        Items=[StatItemOut(**asdict(entry)) for entry in stats.Items],
    )


@router.get("/moon-phase/status", response_model=MoonPhaseStatusOut)
def GetMoonPhaseStatus(
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> MoonPhaseStatusOut:
    try:
        timezone_name, boundary_hour = _ResolveSettings(store)
        today = LogicalDate(NowUtc(), timezone_name, boundary_hour)
        last_reset = ReadLastResetDate(store)
        next_new_moon = NextEvent(
            last_reset or today,
            AstronomicalEventKind.NewMoon,
            timezone_name=timezone_name,
        )
        should_reset = ShouldReset(last_reset, today, timezone_name)
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return MoonPhaseStatusOut(
        LastResetDate=last_reset,
        LogicalDate=today,
        NextNewMoon=next_new_moon,
        ShouldReset=should_reset,
    )


@router.post("/moon-phase/reset", response_model=MoonPhaseResetResponse)
def ResetMoonPhase(
    force: bool = False,
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> MoonPhaseResetResponse:
    try:
        timezone_name, boundary_hour = _ResolveSettings(store)
        result = RunMoonPhaseReset(store, NowUtc(), timezone_name, boundary_hour, force=force)
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return MoonPhaseResetResponse(**asdict(result))


@router.post("/{task_id}/complete", response_model=TaskTransitionResponse)
def CompleteTaskItem(
    task_id: str,
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> TaskTransitionResponse:
    try:
        timezone_name, _ = _ResolveSettings(store)
        result = RunCompleteTask(store, task_id, NowUtc(), timezone_name)
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return TaskTransitionResponse(
        Task=_BuildTaskOut(result.Task),
        NextTask=_BuildTaskOut(result.NextTask),
        Deleted=result.Deleted,
    )


@router.post("/{task_id}/skip", response_model=TaskTransitionResponse)
def SkipTaskItem(
    task_id: str,
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> TaskTransitionResponse:
    try:
        timezone_name, _ = _ResolveSettings(store)
        result = RunSkipTask(store, task_id, NowUtc(), timezone_name)
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return TaskTransitionResponse(
        Task=_BuildTaskOut(result.Task),
        NextTask=_BuildTaskOut(result.NextTask),
        Deleted=result.Deleted,
    )


@router.post("/{task_id}/work-session", response_model=WorkSessionResponse)
def LogWorkSessionItem(
    task_id: str,
    payload: WorkSessionRequest | None = None,
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> WorkSessionResponse:
    try:
        timezone_name, boundary_hour = _ResolveSettings(store, payload.TimeZone if payload else None)
        task, added = LogWorkSession(store, task_id, NowUtc(), timezone_name, boundary_hour)
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return WorkSessionResponse(Task=_BuildTaskOut(task), Added=added)


@router.delete("/{task_id}/work-session/{session_date}", response_model=WorkSessionResponse)
def ClearWorkSessionItem(
    task_id: str,
    session_date: date,
    store=Depends(GetContentStore),
    user: UserContext = Depends(RequireAuthenticated),
) -> WorkSessionResponse:
    try:
        task, removed = ClearWorkSession(store, task_id, session_date)
    except (ValueError, ContentStoreError) as exc:
        _handle_task_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)
    return WorkSessionResponse(Task=_BuildTaskOut(task), Removed=removed)
