import json
from datetime import date, datetime, timezone

import httpx
import pytest

from app.modules.tasks.store import ContentStoreError, TaskNotFoundError
from app.modules.tasks.strapi_store import (
    StrapiContentStore,
    TodoFromRecord,
    TodoToPayload,
    WeekdayFromWire,
    WeekdayToWire,
)

TODO_RECORD = {
    "id": 12,
    "documentId": "abc123",
    "title": "Pay rent",
    "completed": False,
    "dueDate": "2024-02-01",
    "displayDate": "2024-01-29",
    "displayDateOffset": 3,
    "isRecurring": True,
    "recurrenceType": "monthly day",
    "recurrenceWeekOfMonth": -1,
    "recurrenceDayOfWeekMonthly": 5,
    "soon": True,
    "long": False,
    "workSessions": None,
    "project": {"documentId": "proj1", "title": "Home", "world": "life stuff"},
}


def _store(handler) -> StrapiContentStore:
    return StrapiContentStore(
        "https://cms.example.test/",
        token="secret-token",
        page_size=2,
        transport=httpx.MockTransport(handler),
    )


def test_record_mapping_translates_legacy_fields():
    task = TodoFromRecord(TODO_RECORD)
    assert task.Id == "abc123"
    assert task.RecurrenceType == "monthly_by_weekday"
    assert task.RecurrenceDayOfWeekMonthly == 4
    assert task.Rule.WeekOfMonth == 5
    assert task.DueDate == date(2024, 2, 1)
    assert task.ProjectName == "Home"
    assert task.WorkSessions == []


def test_weekday_wire_mapping():
    assert WeekdayFromWire(1) == 0
    assert WeekdayFromWire(7) == 6
    assert WeekdayFromWire(0) == 6
    assert WeekdayToWire(6) == 7
    assert WeekdayToWire(0) == 1


def test_payload_uses_wire_names():
    payload = TodoToPayload(
        {
            "RecurrenceType": "every_n_days",
            "RecurrenceDayOfWeek": 2,
            "DueDate": date(2024, 3, 1),
            "CompletedAt": datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc),
            "IsSoon": False,
            "ProjectName": "ignored",
        }
    )
    assert payload == {
        "recurrenceType": "every x days",
        "recurrenceDayOfWeek": 3,
        "dueDate": "2024-03-01",
        "completedAt": "2024-03-01T12:30:00.000Z",
        "soon": False,
    }


def test_fetch_sends_token_and_populates_project():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["path"] = request.url.path
        seen["populate"] = request.url.params.get("populate")
        return httpx.Response(200, json={"data": TODO_RECORD})

    task = _store(handler).FetchInstance("abc123")

    assert task.Title == "Pay rent"
    assert seen == {"auth": "Bearer secret-token", "path": "/api/todos/abc123", "populate": "project"}


def test_fetch_404_is_not_found():
    store = _store(lambda request: httpx.Response(404, json={"error": {"status": 404}}))
    with pytest.raises(TaskNotFoundError):
        store.FetchInstance("missing")


def test_server_error_and_transport_error_become_store_errors():
    with pytest.raises(ContentStoreError):
        _store(lambda request: httpx.Response(500, text="boom")).CreateInstance({"Title": "x"})

    def unreachable(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ContentStoreError):
        _store(unreachable).ListLongTasks()


def test_listing_follows_pagination():
    pages = []

    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["pagination[page]"])
        pages.append(page)
        assert request.url.params["filters[soon][$eq]"] == "true"
        records = [{**TODO_RECORD, "documentId": f"t{page}"}]
        return httpx.Response(200, json={"data": records, "meta": {"pagination": {"page": page, "pageCount": 3}}})

    tasks = _store(handler).ListEligibleForReset()

    assert pages == [1, 2, 3]
    assert [task.Id for task in tasks] == ["t1", "t2", "t3"]


def test_update_and_create_send_data_envelope():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append((request.method, request.url.path, json.loads(request.content)))
        if request.method == "POST":
            return httpx.Response(200, json={"data": {"documentId": "new1"}})
        return httpx.Response(200, json={"data": TODO_RECORD})

    store = _store(handler)
    store.UpdateInstance("abc123", {"IsCompleted": True})
    new_id = store.CreateInstance({"Title": "Next", "WorkSessions": []})

    assert new_id == "new1"
    assert bodies[0] == ("PUT", "/api/todos/abc123", {"data": {"completed": True}})
    assert bodies[1] == ("POST", "/api/todos", {"data": {"title": "Next", "workSessions": []}})


def test_moon_setting_reads_and_writes_date_field():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.method == "GET":
            return httpx.Response(
                200,
                json={"data": [{"documentId": "s1", "title": "moonPhaseLastResetDate", "date": "2024-01-11T00:00:00.000Z"}]},
            )
        assert json.loads(request.content) == {"data": {"title": "moonPhaseLastResetDate", "date": "2024-02-09"}}
        return httpx.Response(200, json={"data": {"documentId": "s1"}})

    store = _store(handler)
    assert store.ReadSetting("moonPhaseLastResetDate") == "2024-01-11"
    store.WriteSetting("moonPhaseLastResetDate", "2024-02-09")
    assert ("PUT", "/api/system-settings/s1") in calls


def test_missing_setting_is_created():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if request.method == "GET":
            return httpx.Response(200, json={"data": []})
        assert json.loads(request.content) == {"data": {"title": "timezone", "value": "Europe/London"}}
        return httpx.Response(200, json={"data": {"documentId": "s2"}})

    store = _store(handler)
    assert store.ReadSetting("timezone") is None
    store.WriteSetting("timezone", "Europe/London")
    assert calls == ["GET", "GET", "POST"]
