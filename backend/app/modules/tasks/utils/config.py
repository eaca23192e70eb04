import logging
import os
from dataclasses import dataclass

from app.services.day_boundary import (
    DEFAULT_DAY_BOUNDARY_HOUR,
    DEFAULT_TIMEZONE,
    NormalizeBoundaryHour,
    ResolveTimezone,
)

logger = logging.getLogger("app.tasks.config")

TIMEZONE_SETTING = "timezone"
DAY_BOUNDARY_SETTING = "dayBoundaryHour"


def GetEnv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _ReadInt(name: str, default: int) -> int:
    raw = GetEnv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


@dataclass(frozen=True)
class TasksConfig:
    TimeZone: str
    DayBoundaryHour: int
    ContentStoreUrl: str | None
    ContentStoreTimeoutSeconds: float
    ContentStorePageSize: int


def LoadTasksConfig() -> TasksConfig:
    return TasksConfig(
        TimeZone=GetEnv("TIDEMARK_TIMEZONE", DEFAULT_TIMEZONE),
        DayBoundaryHour=_ReadInt("TIDEMARK_DAY_BOUNDARY_HOUR", DEFAULT_DAY_BOUNDARY_HOUR),
        ContentStoreUrl=GetEnv("CONTENT_STORE_URL"),
        ContentStoreTimeoutSeconds=float(_ReadInt("CONTENT_STORE_TIMEOUT_SECONDS", 15)),
        ContentStorePageSize=_ReadInt("CONTENT_STORE_PAGE_SIZE", 100),
    )


def _ValidTimezone(value: str | None) -> str | None:
    if not value:
        return None
    try:
        ResolveTimezone(value)
    except ValueError:
        return None
    return value


def _ValidBoundaryHour(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return NormalizeBoundaryHour(int(value))
    except (TypeError, ValueError):
        return None


def ResolveTimezoneName(store=None, config: TasksConfig | None = None) -> str:
    """Stored setting first, then TIDEMARK_TIMEZONE, then the default."""
    config = config or LoadTasksConfig()
    if store is not None:
        stored = store.ReadSetting(TIMEZONE_SETTING)
        resolved = _ValidTimezone(stored)
        if resolved:
            return resolved
        if stored:
            logger.warning("ignoring invalid stored timezone: %r", stored)
    resolved = _ValidTimezone(config.TimeZone)
    if resolved:
        return resolved
    logger.warning("ignoring invalid TIDEMARK_TIMEZONE: %r", config.TimeZone)
    return DEFAULT_TIMEZONE


def ResolveDayBoundaryHour(store=None, config: TasksConfig | None = None) -> int:
    config = config or LoadTasksConfig()
    if store is not None:
        stored = store.ReadSetting(DAY_BOUNDARY_SETTING)
        resolved = _ValidBoundaryHour(stored)
        if resolved is not None:
            return resolved
        if stored:
            logger.warning("ignoring invalid stored day boundary hour: %r", stored)
    resolved = _ValidBoundaryHour(config.DayBoundaryHour)
    if resolved is not None:
        return resolved
    logger.warning("ignoring invalid TIDEMARK_DAY_BOUNDARY_HOUR: %r", config.DayBoundaryHour)
    return DEFAULT_DAY_BOUNDARY_HOUR
