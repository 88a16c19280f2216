"""Reduced-scope fallback tests."""

import pytest

from taskpilot.errors import IntegrationError
from taskpilot.operations import OperationRegistry
from taskpilot.recovery import FallbackHandler

SERVER_ERROR = IntegrationError("Internal error", status=500)


def _registry(name, handler):
    operations = OperationRegistry()
    operations.register(name, handler)
    return operations


@pytest.mark.asyncio
async def test_create_retries_with_essential_fields():
    calls = []

    async def create_task(params, request_id):
        calls.append(params)
        if "notes" in params:
            raise SERVER_ERROR
        return {"gid": "t1", "name": params["name"]}

    handler = FallbackHandler(_registry("create_task", create_task))
    result = await handler.attempt(
        "create_task",
        {"name": "Plan", "notes": "long notes", "projects": ["P1"], "due_on": "soon"},
        SERVER_ERROR,
    )

    assert result.success is True
    assert result.fallback_used is True
    assert result.fallback_type == "simplified_operation"
    assert result.data == {"gid": "t1", "name": "Plan"}
    assert calls == [{"name": "Plan", "projects": ["P1"]}]
    assert "Task created with basic information only" in result.limitations


@pytest.mark.asyncio
async def test_create_falls_back_to_manual_guidance():
    async def create_project(params, request_id):
        raise SERVER_ERROR

    handler = FallbackHandler(_registry("create_project", create_project))
    result = await handler.attempt("create_project", {"name": "Apollo"}, SERVER_ERROR)

    assert result.success is False
    assert result.fallback_type == "manual_guidance"
    assert 'I couldn\'t create the project "Apollo" automatically.' in result.user_message
    assert "1. Open the project management app in your browser" in result.user_message


@pytest.mark.asyncio
async def test_update_applies_fields_one_at_a_time():
    applied = []

    async def update_task(params, request_id):
        if "due_on" in params:
            raise IntegrationError("due_on is invalid", status=400)
        applied.append(params)
        return {"gid": params["task_id"]}

    handler = FallbackHandler(_registry("update_task", update_task))
    result = await handler.attempt(
        "update_task",
        {"task_id": "t1", "name": "Renamed", "due_on": "never", "completed": True},
        SERVER_ERROR,
    )

    assert result.success is True
    assert result.fallback_type == "partial_success"
    assert applied == [
        {"task_id": "t1", "name": "Renamed"},
        {"task_id": "t1", "completed": True},
    ]
    assert result.limitations == ["Could not update: due_on"]
    assert "2 field(s) updated successfully" in result.user_message


@pytest.mark.asyncio
async def test_single_field_update_is_not_split():
    async def update_task(params, request_id):
        raise SERVER_ERROR

    handler = FallbackHandler(_registry("update_task", update_task))
    result = await handler.attempt("update_task", {"task_id": "t1", "name": "X"}, SERVER_ERROR)

    assert result.success is False
    assert result.fallback_type == "manual_guidance"


@pytest.mark.asyncio
async def test_read_serves_cached_data():
    async def list_tasks(params, request_id):
        raise SERVER_ERROR

    handler = FallbackHandler(_registry("list_tasks", list_tasks))
    handler.remember("list_tasks", {"project": "P1"}, [{"gid": "t1"}])

    result = await handler.attempt("list_tasks", {"project": "P1"}, SERVER_ERROR)
    assert result.success is True
    assert result.fallback_type == "cached_data"
    assert result.data == [{"gid": "t1"}]
    assert result.limitations == ["Data may be up to 5 minutes old"]


@pytest.mark.asyncio
async def test_read_simplified_then_cached():
    calls = []

    async def list_tasks(params, request_id):
        calls.append(params)
        if len(calls) > 1:
            raise SERVER_ERROR
        return [{"gid": "t1", "name": "A"}]

    handler = FallbackHandler(_registry("list_tasks", list_tasks))
    first = await handler.attempt("list_tasks", {"project": "P1"}, SERVER_ERROR)

    assert first.fallback_type == "simplified_operation"
    assert calls[0] == {"project": "P1", "opt_fields": ["name", "gid"]}
    assert handler.get_cache_stats()["total_entries"] == 1

    second = await handler.attempt("list_tasks", {"project": "P1"}, SERVER_ERROR)
    assert second.fallback_type == "cached_data"
    assert len(calls) == 1

    handler.clear_cache()
    assert handler.get_cache_stats() == {"total_entries": 0, "total_size": 0}


@pytest.mark.asyncio
async def test_unknown_operation_shape_gets_manual_steps():
    handler = FallbackHandler(OperationRegistry())
    result = await handler.attempt("delete_task", {"task_id": "t1"}, SERVER_ERROR)

    assert result.success is False
    assert result.fallback_type == "manual_guidance"
    assert "Perform the delete task operation manually" in result.user_message
