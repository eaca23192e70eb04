from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Protocol

from sqlalchemy.orm import Session

from app.modules.auth.deps import NowUtc
from app.modules.tasks.models import Project, SystemSetting, Task
from app.modules.tasks.services.recurrence_service import ParseRecurrenceRule, RecurrenceRule

logger = logging.getLogger("app.tasks.store")

TOP_OF_MIND_IMPORTANCE = "top of mind"
NORMAL_IMPORTANCE = "normal"


class TaskNotFoundError(ValueError):
    pass


class ContentStoreError(RuntimeError):
    pass


@dataclass
class TaskInstance:
    Id: str | None
    Title: str
    Description: Any = None
    Category: str | None = None
    ProjectId: str | None = None
    ProjectName: str | None = None
    ProjectWorld: str | None = None
    IsLong: bool = False
    IsSoon: bool = False
    TrackingUrl: str | None = None
    PurchaseUrl: str | None = None
    Price: float | None = None
    WishListCategory: str | None = None
    DueDate: date | None = None
    DisplayDate: date | None = None
    DisplayDateOffset: int | None = None
    IsCompleted: bool = False
    CompletedAt: datetime | None = None
    IsRecurring: bool = False
    RecurrenceType: str = "none"
    RecurrenceInterval: int | None = None
    RecurrenceDayOfWeek: int | None = None
    RecurrenceDayOfMonth: int | None = None
    RecurrenceWeekOfMonth: int | None = None
    RecurrenceDayOfWeekMonthly: int | None = None
    RecurrenceMonth: int | None = None
    WorkSessions: list[dict] = field(default_factory=list)

    @property
    def Rule(self) -> RecurrenceRule:
        return ParseRecurrenceRule(
            self.RecurrenceType,
            interval=self.RecurrenceInterval,
            day_of_week=self.RecurrenceDayOfWeek,
            day_of_month=self.RecurrenceDayOfMonth,
            week_of_month=self.RecurrenceWeekOfMonth,
            day_of_week_monthly=self.RecurrenceDayOfWeekMonthly,
            month=self.RecurrenceMonth,
        )


@dataclass
class ProjectRecord:
    Id: str
    Name: str
    Importance: str | None = None
    World: str | None = None


class ContentStore(Protocol):
    def FetchInstance(self, task_id: str) -> TaskInstance: ...

    def UpdateInstance(self, task_id: str, fields: dict) -> TaskInstance: ...

    def CreateInstance(self, fields: dict) -> str: ...

    def DeleteInstance(self, task_id: str) -> None: ...

    def ListEligibleForReset(self) -> list[TaskInstance]: ...

    def ListProjectsEligibleForReset(self) -> list[ProjectRecord]: ...

    def UpdateProject(self, project_id: str, fields: dict) -> None: ...

    def ListCompletedSince(self, day: date) -> list[TaskInstance]: ...

    def ListLongTasks(self) -> list[TaskInstance]: ...

    def ReadSetting(self, key: str) -> str | None: ...

    def WriteSetting(self, key: str, value: str) -> None: ...


# Fields an instance carries that are not columns of Task.
_DERIVED_FIELDS = {"Id", "ProjectName", "ProjectWorld"}


def _ParseId(task_id: str | int | None) -> int | None:
    if task_id is None or task_id == "":
        return None
    try:
        return int(task_id)
    except (TypeError, ValueError):
        return None


def _LoadWorkSessions(value: str | None) -> list[dict]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        logger.warning("ignoring malformed work sessions payload")
        return []
    return [entry for entry in parsed if isinstance(entry, dict)] if isinstance(parsed, list) else []


class SqlContentStore:
    def __init__(self, db: Session):
        self.db = db

    def _ToInstance(self, record: Task, project: Project | None = None) -> TaskInstance:
        if project is None and record.ProjectId:
            project = self.db.query(Project).filter(Project.Id == record.ProjectId).first()
        return TaskInstance(
            Id=str(record.Id),
            Title=record.Title,
            Description=record.Description,
            Category=record.Category,
            ProjectId=str(record.ProjectId) if record.ProjectId else None,
            ProjectName=project.Name if project else None,
            ProjectWorld=project.World if project else None,
            IsLong=bool(record.IsLong),
            IsSoon=bool(record.IsSoon),
            TrackingUrl=record.TrackingUrl,
            PurchaseUrl=record.PurchaseUrl,
            Price=record.Price,
            WishListCategory=record.WishListCategory,
            DueDate=record.DueDate,
            DisplayDate=record.DisplayDate,
            DisplayDateOffset=record.DisplayDateOffset,
            IsCompleted=bool(record.IsCompleted),
            CompletedAt=record.CompletedAt,
            IsRecurring=bool(record.IsRecurring),
            RecurrenceType=record.RecurrenceType or "none",
            RecurrenceInterval=record.RecurrenceInterval,
            RecurrenceDayOfWeek=record.RecurrenceDayOfWeek,
            RecurrenceDayOfMonth=record.RecurrenceDayOfMonth,
            RecurrenceWeekOfMonth=record.RecurrenceWeekOfMonth,
            RecurrenceDayOfWeekMonthly=record.RecurrenceDayOfWeekMonthly,
            RecurrenceMonth=record.RecurrenceMonth,
            WorkSessions=_LoadWorkSessions(record.WorkSessions),
        )

    def _ColumnValues(self, fields: dict) -> dict:
        values = {}
        for key, value in fields.items():
            if key in _DERIVED_FIELDS or not hasattr(Task, key):
                continue
            if key == "ProjectId":
                value = _ParseId(value)
            elif key == "WorkSessions":
                value = json.dumps(value or [], separators=(",", ":"))
            elif key == "Description" and value is not None and not isinstance(value, str):
                value = json.dumps(value)
            values[key] = value
        return values

    def _GetRecord(self, task_id: str) -> Task:
        record_id = _ParseId(task_id)
        record = self.db.query(Task).filter(Task.Id == record_id).first() if record_id else None
        if not record:
            raise TaskNotFoundError("Task not found")
        return record

    def FetchInstance(self, task_id: str) -> TaskInstance:
        return self._ToInstance(self._GetRecord(task_id))

    def UpdateInstance(self, task_id: str, fields: dict) -> TaskInstance:
        record = self._GetRecord(task_id)
        for key, value in self._ColumnValues(fields).items():
            setattr(record, key, value)
        record.UpdatedAt = NowUtc()
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return self._ToInstance(record)

    def CreateInstance(self, fields: dict) -> str:
        now = NowUtc()
        record = Task(**self._ColumnValues(fields), CreatedAt=now, UpdatedAt=now)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return str(record.Id)

    def DeleteInstance(self, task_id: str) -> None:
        record = self._GetRecord(task_id)
        self.db.delete(record)
        self.db.commit()

    def ListEligibleForReset(self) -> list[TaskInstance]:
        records = self.db.query(Task).filter(Task.IsSoon == True).order_by(Task.Id.asc()).all()  # noqa: E712
        return [self._ToInstance(record) for record in records]

    def ListProjectsEligibleForReset(self) -> list[ProjectRecord]:
        records = (
            self.db.query(Project)
            .filter(Project.Importance == TOP_OF_MIND_IMPORTANCE)
            .order_by(Project.Id.asc())
            .all()
        )
        return [
            ProjectRecord(Id=str(record.Id), Name=record.Name, Importance=record.Importance, World=record.World)
            for record in records
        ]

    def UpdateProject(self, project_id: str, fields: dict) -> None:
        record_id = _ParseId(project_id)
        record = self.db.query(Project).filter(Project.Id == record_id).first() if record_id else None
        if not record:
            raise TaskNotFoundError("Project not found")
        for key in ("Name", "World", "Importance"):
            if key in fields:
                setattr(record, key, fields[key])
        record.UpdatedAt = NowUtc()
        self.db.add(record)
        self.db.commit()

    def ListCompletedSince(self, day: date) -> list[TaskInstance]:
        # One extra day covers completions stored in UTC ahead of the local date.
        cutoff = datetime.combine(day - timedelta(days=1), time.min, tzinfo=timezone.utc)
        records = (
            self.db.query(Task)
            .filter(Task.IsCompleted == True, Task.CompletedAt >= cutoff)  # noqa: E712
            .order_by(Task.CompletedAt.asc())
            .all()
        )
        return [self._ToInstance(record) for record in records]

    def ListLongTasks(self) -> list[TaskInstance]:
        records = self.db.query(Task).filter(Task.IsLong == True).order_by(Task.Id.asc()).all()  # noqa: E712
        return [self._ToInstance(record) for record in records]

    def ReadSetting(self, key: str) -> str | None:
        record = self.db.query(SystemSetting).filter(SystemSetting.Title == key).first()
        return record.Value if record else None

    def WriteSetting(self, key: str, value: str) -> None:
        now = NowUtc()
        record = self.db.query(SystemSetting).filter(SystemSetting.Title == key).first()
        if not record:
            record = SystemSetting(Title=key, CreatedAt=now)
        record.Value = value
        record.UpdatedAt = now
        self.db.add(record)
        self.db.commit()
