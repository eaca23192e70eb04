from datetime import date, datetime, timezone

import pytest

from app.modules.tasks.services.stats_service import BuildCompletionStats
from app.modules.tasks.store import TaskInstance

TODAY = date(2024, 3, 10)


def _done(task_id, completed_at, **fields):
    return TaskInstance(Id=task_id, Title=task_id, IsCompleted=True, CompletedAt=completed_at, **fields)


def test_window_days_and_counts():
    completed = [
        _done("a", datetime(2024, 3, 10, 14, 0, tzinfo=timezone.utc), Category="home"),
        _done("b", datetime(2024, 3, 9, 14, 0, tzinfo=timezone.utc), Category="home"),
        # 23:00 local on 2024-03-06, outside a 3-day window
        _done("c", datetime(2024, 3, 7, 4, 0, tzinfo=timezone.utc), Category="home"),
    ]
    stats = BuildCompletionStats(completed, [], TODAY, 3)
    assert stats.StartDate == date(2024, 3, 8)
    assert stats.EndDate == TODAY
    assert [(day.Date, day.Completed) for day in stats.Days] == [
        ("2024-03-08", 0),
        ("2024-03-09", 1),
        ("2024-03-10", 1),
    ]
    assert [(item.Name, item.Count) for item in stats.Items] == [("chores", 2)]


def test_recurring_tasks_are_excluded():
    completed = [_done("r", datetime(2024, 3, 10, 14, 0, tzinfo=timezone.utc), Category="home", IsRecurring=True)]
    stats = BuildCompletionStats(completed, [], TODAY, 7)
    assert stats.Items == []
    assert sum(day.Completed for day in stats.Days) == 0


def test_items_group_day_job_projects_and_chores():
    noon = datetime(2024, 3, 10, 16, 0, tzinfo=timezone.utc)
    completed = [
        _done("1", noon, ProjectId="p1", ProjectName="Album", ProjectWorld="make music"),
        _done("2", noon, ProjectId="p1", ProjectName="Album", ProjectWorld="make music"),
        _done("3", noon, ProjectId="p2", ProjectName="Q1 report", ProjectWorld="day job"),
        _done("4", noon, Category="work chores"),
        _done("5", noon, Category="in the mail"),
        _done("6", noon, Category="errands"),
        _done("7", noon),
    ]
    long_tasks = [
        TaskInstance(
            Id="L",
            Title="Write songs",
            IsLong=True,
            ProjectId="p1",
            ProjectName="Album",
            ProjectWorld="make music",
            WorkSessions=[{"date": "2024-03-09"}, {"date": "2024-03-10"}, {"date": "2024-01-01"}],
        )
    ]
    stats = BuildCompletionStats(completed, long_tasks, TODAY, 7)

    assert [(item.Type, item.Name, item.Count) for item in stats.Items] == [
        ("project", "Album", 4),
        ("project", "day job", 2),
        ("category", "chores", 1),
    ]
    by_day = {day.Date: day for day in stats.Days}
    assert by_day["2024-03-10"].Completed == 7
    assert by_day["2024-03-10"].WorkSessions == 1
    assert by_day["2024-03-09"].WorkSessions == 1


def test_days_must_be_positive():
    with pytest.raises(ValueError):
        BuildCompletionStats([], [], TODAY, 0)
