from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TaskRecurrenceType(str, Enum):
    None_ = "none"
    Daily = "daily"
    EveryNDays = "every_n_days"
    Weekly = "weekly"
    Biweekly = "biweekly"
    MonthlyByDate = "monthly_by_date"
    MonthlyByWeekday = "monthly_by_weekday"
    Annually = "annually"
    NewMoon = "new_moon"
    FullMoon = "full_moon"
    Seasonal = "seasonal"
    SolsticeWinter = "solstice_winter"
    EquinoxSpring = "equinox_spring"
    SolsticeSummer = "solstice_summer"
    EquinoxAutumn = "equinox_autumn"


class WorkSessionOut(BaseModel):
    date: str
    timestamp: str | None = None


class TaskOut(BaseModel):
    Id: str
    Title: str
    Description: Any = None
    Category: str | None = None
    ProjectId: str | None = None
    ProjectName: str | None = None
    ProjectWorld: str | None = None
    IsLong: bool
    IsSoon: bool
    TrackingUrl: str | None = None
    PurchaseUrl: str | None = None
    Price: float | None = None
    WishListCategory: str | None = None
    DueDate: date | None = None
    DisplayDate: date | None = None
    DisplayDateOffset: int | None = None
    IsCompleted: bool
    CompletedAt: datetime | None = None
    IsRecurring: bool
    RecurrenceType: str
    RecurrenceInterval: int | None = None
    RecurrenceDayOfWeek: int | None = None
    RecurrenceDayOfMonth: int | None = None
    RecurrenceWeekOfMonth: int | None = None
    RecurrenceDayOfWeekMonthly: int | None = None
    RecurrenceMonth: int | None = None
    WorkSessions: list[WorkSessionOut] = Field(default_factory=list)


class RecurrencePreviewRequest(BaseModel):
    RecurrenceType: TaskRecurrenceType
    RecurrenceInterval: int | None = None
    RecurrenceDayOfWeek: int | None = None
    RecurrenceDayOfMonth: int | None = None
    RecurrenceWeekOfMonth: int | None = None
    RecurrenceDayOfWeekMonthly: int | None = None
    RecurrenceMonth: int | None = None
    DueDate: date | None = None
    DisplayDate: date | None = None
    DisplayDateOffset: int | None = Field(default=None, ge=0)
    TimeZone: str | None = None


class OccurrenceOut(BaseModel):
    DueDate: date | None = None
    DisplayDate: date | None = None
    IsEmpty: bool
    MissingFields: list[str] = Field(default_factory=list)


class LogicalDateOut(BaseModel):
    LogicalDate: date
    TimeZone: str
    DayBoundaryHour: int


class TaskTransitionResponse(BaseModel):
    Task: TaskOut | None = None
    NextTask: TaskOut | None = None
    Deleted: bool = False


class WorkSessionRequest(BaseModel):
    TimeZone: str | None = None


class WorkSessionResponse(BaseModel):
    Task: TaskOut
    Added: bool = False
    Removed: bool = False


class StatItemOut(BaseModel):
    Type: str
    Name: str
    Count: int


class DayStatOut(BaseModel):
    Date: str
    Completed: int
    WorkSessions: int


class TaskStatsResponse(BaseModel):
    StartDate: date
    EndDate: date
    Days: list[DayStatOut]
    Items: list[StatItemOut]


class MoonPhaseStatusOut(BaseModel):
    LastResetDate: date | None = None
    LogicalDate: date
    NextNewMoon: date
    ShouldReset: bool


class MoonPhaseResetResponse(BaseModel):
    Ran: bool
    TasksUpdated: int
    ProjectsUpdated: int
    Failures: int
    LastResetDate: date | None = None
