from datetime import date, datetime, timezone

from app.modules.tasks.services.moon_reset_service import (
    MOON_PHASE_RESET_SETTING,
    ExecuteMoonPhaseReset,
    ParseResetDate,
    RunMoonPhaseReset,
    ShouldReset,
)

# 2024-02-10 12:00 in New York
AFTER_FEB_NEW_MOON = datetime(2024, 2, 10, 17, 0, tzinfo=timezone.utc)


def test_should_reset_with_no_history():
    assert ShouldReset(None, date(2024, 1, 5))


def test_should_reset_only_after_next_new_moon():
    assert not ShouldReset(date(2024, 1, 12), date(2024, 2, 8))
    assert ShouldReset(date(2024, 1, 12), date(2024, 2, 9))
    assert ShouldReset(date(2024, 1, 12), date(2024, 3, 1))


def test_reset_on_new_moon_day_waits_for_following_one():
    assert not ShouldReset(date(2024, 1, 11), date(2024, 1, 11))
    assert not ShouldReset(date(2024, 1, 11), date(2024, 2, 8))


def test_parse_reset_date_handles_timestamps_and_garbage():
    assert ParseResetDate("2024-01-11T05:00:00.000Z") == date(2024, 1, 11)
    assert ParseResetDate("not a date") is None
    assert ParseResetDate(None) is None


def test_parse_reset_date_ignores_out_of_range():
    assert ParseResetDate("1899-12-31") is None
    assert ParseResetDate("2201-01-01") is None
    assert ParseResetDate("1900-01-01") == date(1900, 1, 1)


def test_execute_clears_soon_and_top_of_mind(store):
    store.AddTask(Id="1", Title="a", IsSoon=True)
    store.AddTask(Id="2", Title="b", IsSoon=False)
    store.AddProject("p1", "Album", importance="top of mind")
    store.AddProject("p2", "Taxes", importance="normal")

    result = ExecuteMoonPhaseReset(store)

    assert result.TasksUpdated == 1
    assert result.ProjectsUpdated == 1
    assert not store.tasks["1"].IsSoon
    assert store.projects["p1"].Importance == "normal"
    assert store.projects["p2"].Importance == "normal"


def test_execute_is_idempotent(store):
    store.AddTask(Id="1", Title="a", IsSoon=True)
    store.AddProject("p1", "Album", importance="top of mind")
    ExecuteMoonPhaseReset(store)
    second = ExecuteMoonPhaseReset(store)
    assert second.TasksUpdated == 0
    assert second.ProjectsUpdated == 0


def test_run_first_time_writes_logical_today(store):
    store.AddTask(Id="1", Title="a", IsSoon=True)
    result = RunMoonPhaseReset(store, AFTER_FEB_NEW_MOON, "America/New_York", 0)
    assert result.Ran
    assert result.LastResetDate == date(2024, 2, 10)
    assert store.settings[MOON_PHASE_RESET_SETTING] == "2024-02-10"


def test_run_skips_before_next_new_moon(store):
    store.settings[MOON_PHASE_RESET_SETTING] = "2024-02-09"
    store.AddTask(Id="1", Title="a", IsSoon=True)
    result = RunMoonPhaseReset(store, AFTER_FEB_NEW_MOON, "America/New_York", 0)
    assert not result.Ran
    assert store.tasks["1"].IsSoon
    assert store.settings[MOON_PHASE_RESET_SETTING] == "2024-02-09"


def test_run_force_ignores_cursor(store):
    store.settings[MOON_PHASE_RESET_SETTING] = "2024-02-09"
    store.AddTask(Id="1", Title="a", IsSoon=True)
    result = RunMoonPhaseReset(store, AFTER_FEB_NEW_MOON, "America/New_York", 0, force=True)
    assert result.Ran
    assert result.TasksUpdated == 1


def test_run_twice_on_same_day_runs_once(store):
    store.settings[MOON_PHASE_RESET_SETTING] = "2024-01-12"
    store.AddTask(Id="1", Title="a", IsSoon=True)
    first = RunMoonPhaseReset(store, AFTER_FEB_NEW_MOON, "America/New_York", 0)
    second = RunMoonPhaseReset(store, AFTER_FEB_NEW_MOON, "America/New_York", 0)
    assert first.Ran
    assert not second.Ran


def test_run_uses_day_boundary(store):
    # 01:30 in New York on 2024-02-09 belongs to 2024-02-08 with a 4am boundary
    early = datetime(2024, 2, 9, 6, 30, tzinfo=timezone.utc)
    store.settings[MOON_PHASE_RESET_SETTING] = "2024-01-12"
    assert not RunMoonPhaseReset(store, early, "America/New_York", 4).Ran
    assert RunMoonPhaseReset(store, early, "America/New_York", 0).Ran


def test_run_recovers_from_out_of_range_cursor(store):
    store.settings[MOON_PHASE_RESET_SETTING] = "1899-12-31"
    store.AddTask(Id="1", Title="a", IsSoon=True)

    result = RunMoonPhaseReset(store, AFTER_FEB_NEW_MOON, "America/New_York", 0)

    assert result.Ran
    assert not store.tasks["1"].IsSoon
    assert store.settings[MOON_PHASE_RESET_SETTING] == "2024-02-10"


def test_failures_leave_cursor_unchanged(store):
    store.settings[MOON_PHASE_RESET_SETTING] = "2024-01-12"
    store.AddTask(Id="1", Title="a", IsSoon=True)
    store.AddTask(Id="2", Title="b", IsSoon=True)
    store.failing_ids.add("2")

    result = RunMoonPhaseReset(store, AFTER_FEB_NEW_MOON, "America/New_York", 0)

    assert result.Ran
    assert result.TasksUpdated == 1
    assert result.Failures == 1
    assert store.settings[MOON_PHASE_RESET_SETTING] == "2024-01-12"
    assert not store.tasks["1"].IsSoon


def test_should_reset_is_deterministic():
    results = {ShouldReset(date(2024, 1, 1), date(2024, 1, 12)) for _ in range(3)}
    assert results == {True}
    assert not ShouldReset(date(2024, 1, 1), date(2024, 1, 10))
