"""Retry and recovery-strategy tests."""

import pytest

import taskpilot.utils.retry as retry_utils
from taskpilot.config import RecoveryConfig
from taskpilot.errors import (
    AuthorizationError,
    ErrorCategory,
    IntegrationError,
    NotFoundError,
    TransientError,
    ValidationError,
    classify_error,
)
from taskpilot.recovery import ErrorContext, RecoveryController, determine_strategy
from taskpilot.utils.retry import compute_backoff


@pytest.fixture
def delays(monkeypatch):
    recorded = []

    async def fake_schedule_retry(attempt, base_delay=1.0, max_delay=10.0):
        delay = compute_backoff(attempt, base_delay, max_delay)
        recorded.append(delay)
        return delay

    monkeypatch.setattr(retry_utils, "schedule_retry", fake_schedule_retry)
    return recorded


def _flaky(failures, error, result="ok"):
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise error
        return result

    return operation, calls


def test_compute_backoff_doubles_and_caps():
    assert compute_backoff(1) == 1.0
    assert compute_backoff(2) == 2.0
    assert compute_backoff(3) == 4.0
    assert compute_backoff(6) == 10.0
    assert compute_backoff(3, base_delay=0) == 0


@pytest.mark.asyncio
async def test_schedule_retry_skips_sleep_without_delay():
    assert await retry_utils.schedule_retry(1, base_delay=0) == 0


@pytest.mark.asyncio
async def test_succeeds_on_third_attempt(delays):
    controller = RecoveryController()
    operation, calls = _flaky(2, TransientError("Service unavailable", status=503))

    result = await controller.execute_with_recovery(
        operation, ErrorContext(operation="list_tasks")
    )

    assert result.success is True
    assert result.data == "ok"
    assert result.attempt_count == 3
    assert calls["count"] == 3
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_unauthorized_is_not_retried(delays):
    controller = RecoveryController()
    operation, calls = _flaky(5, IntegrationError("Unauthorized", status=401))

    result = await controller.execute_with_recovery(
        operation, ErrorContext(operation="create_task")
    )

    assert result.success is False
    assert result.attempt_count == 1
    assert calls["count"] == 1
    assert result.recovery_strategy == "user_guidance"
    assert "Authentication Required" in result.user_guidance
    assert isinstance(result.error, IntegrationError)
    assert delays == []


@pytest.mark.asyncio
async def test_validation_error_gets_guidance(delays):
    controller = RecoveryController()
    operation, _ = _flaky(5, ValidationError("name is required"))

    result = await controller.execute_with_recovery(
        operation, ErrorContext(operation="create_project")
    )

    assert result.attempt_count == 1
    assert result.recovery_strategy == "user_guidance"
    assert "Missing Required Information" in result.user_guidance
    assert "Try creating the project in a different team or workspace" in result.alternative_actions


@pytest.mark.asyncio
async def test_not_found_suggests_alternatives(delays):
    controller = RecoveryController()
    operation, _ = _flaky(5, NotFoundError("Task not found", status=404))

    result = await controller.execute_with_recovery(
        operation, ErrorContext(operation="update_task")
    )

    assert result.attempt_count == 1
    assert result.recovery_strategy == "alternative_approach"
    assert result.alternative_actions[0] == "Search for similar items using partial names"
    assert "Try updating individual fields separately" in result.alternative_actions


@pytest.mark.asyncio
async def test_exhausted_retries_record_history(delays):
    controller = RecoveryController(RecoveryConfig(max_retries=3))
    operation, calls = _flaky(10, IntegrationError("Internal error", status=500))
    context = ErrorContext(operation="create_task", request_id="req-1")

    result = await controller.execute_with_recovery(operation, context)

    assert result.success is False
    assert result.attempt_count == 3
    assert calls["count"] == 3
    assert result.recovery_strategy == "fallback"
    assert "Service Temporarily Unavailable" in result.user_guidance
    stats = controller.get_recovery_stats()
    assert stats["history"] == {"create_task:IntegrationError": 1}
    assert stats["total_recovery_attempts"] == 1

    recovered, _ = _flaky(0, None)
    await controller.execute_with_recovery(recovered, context)
    assert controller.get_recovery_stats()["unique_error_types"] == 0


@pytest.mark.asyncio
async def test_guidance_can_be_disabled(delays):
    controller = RecoveryController(
        RecoveryConfig(enable_user_guidance=False, contextual_suggestions=False)
    )
    operation, _ = _flaky(5, RuntimeError("something odd"))

    result = await controller.execute_with_recovery(
        operation, ErrorContext(operation="create_task")
    )

    assert result.recovery_strategy == "graceful_degradation"
    assert result.user_guidance == ""
    assert result.alternative_actions[0] == "Try rephrasing your request with different wording"


def test_should_retry_rules():
    controller = RecoveryController()

    assert controller.should_retry(TimeoutError("read timed out"), 1) is True
    assert controller.should_retry(IntegrationError("Too many", status=429), 1) is True
    assert controller.should_retry(AuthorizationError("Forbidden", status=403), 1) is False
    assert controller.should_retry(ValueError("invalid date"), 1) is False
    assert controller.should_retry(RuntimeError("boom"), 1) is True
    assert controller.should_retry(RuntimeError("boom"), 3) is False


@pytest.mark.asyncio
async def test_authorization_error_without_status_is_not_retried(delays):
    controller = RecoveryController()
    operation, calls = _flaky(5, AuthorizationError("Forbidden"))

    result = await controller.execute_with_recovery(
        operation, ErrorContext(operation="create_task")
    )

    assert result.attempt_count == 1
    assert calls["count"] == 1
    assert result.recovery_strategy == "user_guidance"
    assert "Permission Denied" in result.user_guidance
    assert delays == []


@pytest.mark.asyncio
async def test_not_found_status_is_not_retried(delays):
    controller = RecoveryController()
    operation, calls = _flaky(5, NotFoundError("Project P9 does not exist", status=404))

    result = await controller.execute_with_recovery(
        operation, ErrorContext(operation="list_tasks")
    )

    assert result.attempt_count == 1
    assert calls["count"] == 1
    assert result.recovery_strategy == "alternative_approach"
    assert delays == []


def test_should_retry_follows_error_classes():
    controller = RecoveryController()

    assert controller.should_retry(AuthorizationError("Forbidden"), 1) is False
    assert controller.should_retry(NotFoundError("gone", status=404), 1) is False
    assert controller.should_retry(NotFoundError("gone"), 1) is False
    assert controller.should_retry(ValidationError("bad payload"), 1) is False
    assert controller.should_retry(TransientError("hiccup"), 1) is True


@pytest.mark.parametrize(
    "error, strategy",
    [
        (IntegrationError("x", status=401), "user_guidance"),
        (IntegrationError("x", status=403), "user_guidance"),
        (IntegrationError("x", status=404), "alternative_approach"),
        (IntegrationError("x", status=429), "retry"),
        (IntegrationError("x", status=502), "fallback"),
        (IntegrationError("x", status=418), "user_guidance"),
        (ConnectionError("connection reset by peer"), "retry"),
        (RuntimeError("Project not found"), "alternative_approach"),
        (ValueError("invalid email"), "user_guidance"),
        (RuntimeError("boom"), "graceful_degradation"),
    ],
)
def test_determine_strategy(error, strategy):
    assert determine_strategy(error) == strategy


def test_classify_error_reads_status_code_attribute():
    class HttpError(Exception):
        status_code = 503

    assert classify_error(HttpError("bad gateway")) == ErrorCategory.TRANSIENT
    assert classify_error(AuthorizationError("denied")) == ErrorCategory.AUTHORIZATION
    assert classify_error(ValidationError("bad")) == ErrorCategory.VALIDATION
    assert classify_error(RuntimeError("boom")) == ErrorCategory.UNKNOWN
