# tests/test_api.py

from __future__ import annotations

from tasktimer import api


def _ok(result: dict):
    assert result["ok"] is True, result
    return result["data"]


def _err(result: dict) -> str:
    assert result["ok"] is False, result
    assert result["error"]["message"]
    return result["error"]["kind"]


def test_report_scenario_end_to_end(state, clock) -> None:
    group = _ok(api.dispatch(state, "createTaskGroup", {"name": "Work"}))
    task = _ok(
        api.dispatch(state, "createTask", {"task_group_id": group["id"], "name": "Write report"})
    )
    assert task["duration_minutes"] is None

    session = _ok(api.dispatch(state, "startSession", {"task_id": task["id"]}))
    assert session["end_time"] is None
    assert session["start_time"] == "2026-03-10T09:00:00.000000+00:00"

    active = _ok(api.dispatch(state, "getActiveSession"))
    assert active["session"]["id"] == session["id"]
    assert active["task"]["name"] == "Write report"
    assert active["task_group"]["name"] == "Work"

    clock.advance(minutes=17, seconds=30)
    stopped = _ok(api.dispatch(state, "endSession", {"session_id": session["id"]}))
    assert stopped["completed"] is True
    assert stopped["duration_minutes"] == 17
    assert stopped["end_time"] == "2026-03-10T09:17:30.000000+00:00"

    assert _ok(api.dispatch(state, "getActiveSession")) is None


def test_second_start_is_tagged_conflict(state) -> None:
    group = state.store.create_group("Work")
    a = state.store.create_task(group.id, "A")
    b = state.store.create_task(group.id, "B")

    _ok(api.dispatch(state, "startSession", {"task_id": a.id}))
    assert _err(api.dispatch(state, "startSession", {"task_id": b.id})) == "conflict"


def test_pause_resume_through_dispatch(state, clock) -> None:
    group = state.store.create_group("Work")
    task = state.store.create_task(group.id, "A")
    session = _ok(api.dispatch(state, "startSession", {"task_id": task.id}))

    paused = _ok(api.dispatch(state, "pauseSession", {"session_id": session["id"]}))
    assert paused["is_paused"] is True
    assert _err(api.dispatch(state, "pauseSession", {"session_id": session["id"]})) == "conflict"

    clock.advance(seconds=45)
    resumed = _ok(api.dispatch(state, "resumeSession", {"session_id": session["id"]}))
    assert resumed["total_paused_duration_ms"] == 45_000


def test_update_and_list_commands(state, clock) -> None:
    group = _ok(api.dispatch(state, "createTaskGroup", {"name": "Work", "description": "job"}))
    clock.advance(seconds=1)
    _ok(api.dispatch(state, "createTaskGroup", {"name": "Home"}))

    names = [g["name"] for g in _ok(api.dispatch(state, "listTaskGroups"))]
    assert names == ["Home", "Work"]

    renamed = _ok(api.dispatch(state, "updateTaskGroup", {"id": group["id"], "name": "Office"}))
    assert renamed["description"] == "job"

    task = _ok(
        api.dispatch(
            state,
            "createTask",
            {"task_group_id": group["id"], "name": "Focus", "duration_minutes": 25},
        )
    )
    cleared = _ok(api.dispatch(state, "updateTask", {"id": task["id"], "duration_minutes": None}))
    assert cleared["duration_minutes"] is None

    kept = _ok(api.dispatch(state, "updateTask", {"id": task["id"], "name": "Deep focus"}))
    assert kept["name"] == "Deep focus"

    tasks = _ok(api.dispatch(state, "listTasksByGroup", {"task_group_id": group["id"]}))
    assert [t["name"] for t in tasks] == ["Deep focus"]


def test_delete_group_cascades_via_dispatch(state) -> None:
    group = _ok(api.dispatch(state, "createTaskGroup", {"name": "Work"}))
    task = _ok(api.dispatch(state, "createTask", {"task_group_id": group["id"], "name": "A"}))
    _ok(api.dispatch(state, "startSession", {"task_id": task["id"]}))

    assert _ok(api.dispatch(state, "deleteTaskGroup", {"id": group["id"]})) is None
    assert state.store.count_tasks() == 0
    assert state.store.count_sessions() == 0
    assert _err(api.dispatch(state, "deleteTask", {"id": task["id"]})) == "not_found"


def test_statistics_command(state, clock) -> None:
    group = state.store.create_group("Work")
    task = state.store.create_task(group.id, "A")
    session = state.sessions.start(task.id)
    clock.advance(minutes=20)
    state.sessions.stop(session.id)

    data = _ok(
        api.dispatch(
            state,
            "getStatistics",
            {"start_date": "2026-03-10T00:00:00Z", "end_date": "2026-03-10T23:59:59Z"},
        )
    )
    assert data["taskStatistics"][0]["total_duration_minutes"] == 20
    assert data["groupStatistics"][0]["total_tasks"] == 1

    bad = api.dispatch(state, "getStatistics", {"start_date": "2026-03-11", "end_date": "2026-03-10"})
    assert _err(bad) == "validation"


def test_error_kinds(state) -> None:
    assert _err(api.dispatch(state, "createTaskGroup", {"name": "  "})) == "validation"
    assert _err(api.dispatch(state, "createTaskGroup", {})) == "validation"
    assert _err(api.dispatch(state, "launchRocket", {})) == "validation"
    assert _err(api.dispatch(state, "listTaskGroups", ["not", "a", "dict"])) == "validation"
    assert _err(api.dispatch(state, "createTask", {"task_group_id": "x", "name": "A"})) == "not_found"
    assert _err(api.dispatch(state, "endSession", {"session_id": "missing"})) == "not_found"


def test_storage_failure_is_tagged(state) -> None:
    state.store.close()
    assert _err(api.dispatch(state, "listTaskGroups")) == "storage"


def test_every_surface_operation_is_dispatchable() -> None:
    assert set(api.COMMAND_NAMES) == {
        "createTaskGroup",
        "listTaskGroups",
        "updateTaskGroup",
        "deleteTaskGroup",
        "createTask",
        "listTasksByGroup",
        "updateTask",
        "deleteTask",
        "startSession",
        "pauseSession",
        "resumeSession",
        "endSession",
        "getActiveSession",
        "getStatistics",
    }


def test_malformed_ids_are_validation_failures(state) -> None:
    group = state.store.create_group("Work")
    state.store.create_task(group.id, "A")

    assert _err(api.dispatch(state, "deleteTask", {"id": {"nested": 1}})) == "validation"
    assert _err(api.dispatch(state, "startSession", {"task_id": ["x"]})) == "validation"
    assert _err(api.dispatch(state, "pauseSession", {"session_id": 7})) == "validation"
    assert _err(api.dispatch(state, "listTasksByGroup", {"task_group_id": ""})) == "validation"
    assert _err(api.dispatch(state, "updateTaskGroup", {"id": None, "name": "X"})) == "validation"
    assert state.store.count_tasks() == 1
