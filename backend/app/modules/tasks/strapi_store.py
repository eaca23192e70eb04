"""Content store backed by a Strapi v5 REST API.

Records are keyed by ``documentId``. Attribute names are camelCase on the
wire and the legacy recurrence labels ("every x days", "monthly day", ...)
are translated to the engine's kinds in both directions. Weekdays on the
wire run 1 (Monday) to 7 (Sunday); 0 is also read as Sunday.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx

from app.modules.tasks.store import (
    TOP_OF_MIND_IMPORTANCE,
    ContentStoreError,
    ProjectRecord,
    TaskInstance,
    TaskNotFoundError,
)

logger = logging.getLogger("app.tasks.strapi")

MOON_PHASE_SETTING_KEY = "moonPhaseLastResetDate"

LEGACY_RECURRENCE_TYPES = {
    "none": "none",
    "daily": "daily",
    "every x days": "every_n_days",
    "weekly": "weekly",
    "biweekly": "biweekly",
    "monthly date": "monthly_by_date",
    "monthly day": "monthly_by_weekday",
    "annually": "annually",
    "full moon": "full_moon",
    "new moon": "new_moon",
    "every season": "seasonal",
    "winter solstice": "solstice_winter",
    "spring equinox": "equinox_spring",
    "summer solstice": "solstice_summer",
    "autumn equinox": "equinox_autumn",
}
_WIRE_RECURRENCE_TYPES = {kind: label for label, kind in LEGACY_RECURRENCE_TYPES.items()}

_TODO_FIELDS = {
    "Title": "title",
    "Description": "description",
    "Category": "category",
    "ProjectId": "project",
    "IsLong": "long",
    "IsSoon": "soon",
    "TrackingUrl": "trackingUrl",
    "PurchaseUrl": "purchaseUrl",
    "Price": "price",
    "WishListCategory": "wishListCategory",
    "DueDate": "dueDate",
    "DisplayDate": "displayDate",
    "DisplayDateOffset": "displayDateOffset",
    "IsCompleted": "completed",
    "CompletedAt": "completedAt",
    "IsRecurring": "isRecurring",
    "RecurrenceType": "recurrenceType",
    "RecurrenceInterval": "recurrenceInterval",
    "RecurrenceDayOfWeek": "recurrenceDayOfWeek",
    "RecurrenceDayOfMonth": "recurrenceDayOfMonth",
    "RecurrenceWeekOfMonth": "recurrenceWeekOfMonth",
    "RecurrenceDayOfWeekMonthly": "recurrenceDayOfWeekMonthly",
    "RecurrenceMonth": "recurrenceMonth",
    "WorkSessions": "workSessions",
}
_PROJECT_FIELDS = {"Name": "title", "World": "world", "Importance": "importance"}
_WEEKDAY_FIELDS = {"RecurrenceDayOfWeek", "RecurrenceDayOfWeekMonthly"}


def WeekdayFromWire(value: int | None) -> int | None:
    if value is None:
        return None
    return (int(value) - 1) % 7


def WeekdayToWire(value: int | None) -> int | None:
    if value is None:
        return None
    return int(value) % 7 + 1


def RecurrenceTypeFromWire(value: str | None) -> str:
    if not value:
        return "none"
    return LEGACY_RECURRENCE_TYPES.get(value, value)


def RecurrenceTypeToWire(value: str | None) -> str:
    if not value:
        return "none"
    return _WIRE_RECURRENCE_TYPES.get(value, value)


def _ParseDate(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _ParseDateTime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _FormatDateTime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _RecordId(record: dict) -> str:
    return str(record.get("documentId") or record.get("id"))


def TodoFromRecord(record: dict) -> TaskInstance:
    # Strapi v4 responses nest the fields under "attributes".
    attributes = record.get("attributes") or record
    project = attributes.get("project") or None
    if isinstance(project, dict) and "data" in project:
        project = project["data"]
    if isinstance(project, dict) and "attributes" in project:
        project = {**project, **project["attributes"]}
    sessions = attributes.get("workSessions") or []
    return TaskInstance(
        Id=_RecordId(record),
        Title=attributes.get("title") or "",
        Description=attributes.get("description"),
        Category=attributes.get("category"),
        ProjectId=_RecordId(project) if project else None,
        ProjectName=project.get("title") if project else None,
        ProjectWorld=project.get("world") if project else None,
        IsLong=bool(attributes.get("long")),
        IsSoon=bool(attributes.get("soon")),
        TrackingUrl=attributes.get("trackingUrl"),
        PurchaseUrl=attributes.get("purchaseUrl"),
        Price=attributes.get("price"),
        WishListCategory=attributes.get("wishListCategory"),
        DueDate=_ParseDate(attributes.get("dueDate")),
        DisplayDate=_ParseDate(attributes.get("displayDate")),
        DisplayDateOffset=attributes.get("displayDateOffset"),
        IsCompleted=bool(attributes.get("completed")),
        CompletedAt=_ParseDateTime(attributes.get("completedAt")),
        IsRecurring=bool(attributes.get("isRecurring")),
        RecurrenceType=RecurrenceTypeFromWire(attributes.get("recurrenceType")),
        RecurrenceInterval=attributes.get("recurrenceInterval"),
        RecurrenceDayOfWeek=WeekdayFromWire(attributes.get("recurrenceDayOfWeek")),
        RecurrenceDayOfMonth=attributes.get("recurrenceDayOfMonth"),
        RecurrenceWeekOfMonth=attributes.get("recurrenceWeekOfMonth"),
        RecurrenceDayOfWeekMonthly=WeekdayFromWire(attributes.get("recurrenceDayOfWeekMonthly")),
        RecurrenceMonth=attributes.get("recurrenceMonth"),
        WorkSessions=[entry for entry in sessions if isinstance(entry, dict)],
    )


def TodoToPayload(fields: dict) -> dict:
    payload: dict[str, Any] = {}
    for key, value in fields.items():
        wire_key = _TODO_FIELDS.get(key)
        if wire_key is None:
            continue
        if key == "RecurrenceType":
            value = RecurrenceTypeToWire(value)
        elif key in _WEEKDAY_FIELDS:
            value = WeekdayToWire(value)
        elif key == "WorkSessions":
            value = list(value or [])
        elif isinstance(value, datetime):
            value = _FormatDateTime(value)
        elif isinstance(value, date):
            value = value.isoformat()
        payload[wire_key] = value
    return payload


class StrapiContentStore:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 15.0,
        page_size: int = 100,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.page_size = page_size
        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def Close(self) -> None:
        self.client.close()

    def _Request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        payload: dict | None = None,
        not_found: str | None = None,
    ) -> dict:
        try:
            response = self.client.request(method, path, params=params, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 404 and not_found:
                raise TaskNotFoundError(not_found) from exc
            logger.error(
                "content store request failed",
                extra={"method": method, "path": path, "status": status, "response": exc.response.text},
            )
            raise ContentStoreError(f"Content store {method} {path} failed ({status})") from exc
        except httpx.RequestError as exc:
            logger.exception("content store request failed: %s %s", method, path)
            raise ContentStoreError(f"Content store {method} {path} unreachable") from exc
        if not response.content:
            return {}
        return response.json()

    def _ListAll(self, path: str, params: dict) -> list[dict]:
        records: list[dict] = []
        page = 1
        while True:
            query = {
                **params,
                "pagination[page]": page,
                "pagination[pageSize]": self.page_size,
            }
            body = self._Request("GET", path, params=query)
            records.extend(body.get("data") or [])
            pagination = (body.get("meta") or {}).get("pagination") or {}
            if page >= int(pagination.get("pageCount") or 0):
                return records
            page += 1

    def FetchInstance(self, task_id: str) -> TaskInstance:
        body = self._Request(
            "GET", f"/api/todos/{task_id}", params={"populate": "project"}, not_found="Task not found"
        )
        if not body.get("data"):
            raise TaskNotFoundError("Task not found")
        return TodoFromRecord(body["data"])

    def UpdateInstance(self, task_id: str, fields: dict) -> TaskInstance:
        body = self._Request(
            "PUT",
            f"/api/todos/{task_id}",
            params={"populate": "project"},
            payload={"data": TodoToPayload(fields)},
            not_found="Task not found",
        )
        return TodoFromRecord(body["data"])

    def CreateInstance(self, fields: dict) -> str:
        body = self._Request("POST", "/api/todos", payload={"data": TodoToPayload(fields)})
        return _RecordId(body["data"])

    def DeleteInstance(self, task_id: str) -> None:
        self._Request("DELETE", f"/api/todos/{task_id}", not_found="Task not found")

    def ListEligibleForReset(self) -> list[TaskInstance]:
        records = self._ListAll("/api/todos", {"filters[soon][$eq]": "true"})
        return [TodoFromRecord(record) for record in records]

    def ListProjectsEligibleForReset(self) -> list[ProjectRecord]:
        records = self._ListAll("/api/projects", {"filters[importance][$eq]": TOP_OF_MIND_IMPORTANCE})
        projects = []
        for record in records:
            attributes = record.get("attributes") or record
            projects.append(
                ProjectRecord(
                    Id=_RecordId(record),
                    Name=attributes.get("title") or "",
                    Importance=attributes.get("importance"),
                    World=attributes.get("world"),
                )
            )
        return projects

    def UpdateProject(self, project_id: str, fields: dict) -> None:
        payload = {_PROJECT_FIELDS[key]: value for key, value in fields.items() if key in _PROJECT_FIELDS}
        self._Request(
            "PUT", f"/api/projects/{project_id}", payload={"data": payload}, not_found="Project not found"
        )

    def ListCompletedSince(self, day: date) -> list[TaskInstance]:
        # One extra day covers completions stored in UTC ahead of the local date.
        cutoff = (day - timedelta(days=1)).isoformat()
        records = self._ListAll(
            "/api/todos",
            {
                "filters[completed][$eq]": "true",
                "filters[completedAt][$gte]": cutoff,
                "populate": "project",
            },
        )
        return [TodoFromRecord(record) for record in records]

    def ListLongTasks(self) -> list[TaskInstance]:
        records = self._ListAll("/api/todos", {"filters[long][$eq]": "true", "populate": "project"})
        return [TodoFromRecord(record) for record in records]

    def _FindSetting(self, key: str) -> dict | None:
        body = self._Request("GET", "/api/system-settings", params={"filters[title][$eq]": key})
        settings = body.get("data") or []
        return settings[0] if settings else None

    def ReadSetting(self, key: str) -> str | None:
        record = self._FindSetting(key)
        if not record:
            return None
        attributes = record.get("attributes") or record
        if key == MOON_PHASE_SETTING_KEY:
            raw = attributes.get("date")
            return str(raw).split("T")[0].split(" ")[0] if raw else None
        value = attributes.get("value")
        return None if value is None else str(value)

    def WriteSetting(self, key: str, value: str) -> None:
        field_name = "date" if key == MOON_PHASE_SETTING_KEY else "value"
        payload = {"data": {"title": key, field_name: value}}
        record = self._FindSetting(key)
        if record:
            self._Request("PUT", f"/api/system-settings/{_RecordId(record)}", payload=payload)
        else:
            self._Request("POST", "/api/system-settings", payload=payload)
