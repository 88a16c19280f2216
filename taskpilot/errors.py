"""Exception hierarchy for taskpilot."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .contracts import WorkflowExecution
    from .recovery.models import RecoveryResult

_NETWORK_MARKERS = ("timeout", "timed out", "network", "econnreset", "connection reset")
_VALIDATION_MARKERS = ("required", "invalid", "not found")


class TaskpilotError(Exception):
    """Base class for all taskpilot errors."""


class IntegrationError(TaskpilotError):
    """Failure reported by the remote backend or its client."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        operation_name: Optional[str] = None,
        details: Any = None,
        request_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.operation_name = operation_name
        self.details = details
        self.request_id = request_id

    def to_user_friendly_message(self) -> str:
        message = self.message
        if self.operation_name:
            message = f"Error during {self.operation_name}: {message}"
        if self.request_id:
            message += f" (Request ID: {self.request_id})"
        return message


class TransientError(IntegrationError):
    """Timeouts, connection resets, rate limits and 5xx responses."""


class AuthorizationError(IntegrationError):
    """401/403 responses."""


class NotFoundError(IntegrationError):
    """The referenced resource does not exist or is not visible."""


class ValidationError(IntegrationError):
    """Missing or invalid parameters."""


class UnknownOperationError(TaskpilotError):
    """No handler is registered for the requested operation."""


class WorkflowError(TaskpilotError):
    """Base class for workflow engine failures."""


class WorkflowNotFoundError(WorkflowError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class WorkflowStalledError(WorkflowError):
    """No step could make progress during a full scheduling pass."""

    def __init__(self, workflow_id: str, pending: list[str]) -> None:
        super().__init__(
            f"Workflow {workflow_id} stalled - unsatisfiable dependency or cycle "
            f"(pending steps: {', '.join(pending)})"
        )
        self.workflow_id = workflow_id
        self.pending = pending


class StepFailedError(WorkflowError):
    """A required step failed after recovery, fallback and step retries."""

    def __init__(
        self,
        step_id: str,
        cause: BaseException,
        recovery: Optional["RecoveryResult"] = None,
        execution: Optional["WorkflowExecution"] = None,
        fallback_used: bool = False,
    ) -> None:
        super().__init__(f"Step {step_id} failed: {cause}")
        self.step_id = step_id
        self.cause = cause
        self.recovery = recovery
        self.execution = execution
        self.fallback_used = fallback_used


class ErrorCategory(str, Enum):
    """Coarse error classes driving retry and recovery decisions."""

    TRANSIENT = "transient"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


def error_status(error: BaseException) -> Optional[int]:
    """Return the HTTP-like status carried by ``error``, if any."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_network_error(error: BaseException) -> bool:
    if isinstance(error, (TimeoutError, ConnectionError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _NETWORK_MARKERS)


def is_validation_error(error: BaseException) -> bool:
    if isinstance(error, ValidationError):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _VALIDATION_MARKERS)


def classify_error(error: BaseException) -> ErrorCategory:
    """Map an exception onto the taxonomy used for recovery."""
    status = error_status(error)
    if isinstance(error, AuthorizationError) or status in (401, 403):
        return ErrorCategory.AUTHORIZATION
    if isinstance(error, NotFoundError) or status == 404:
        return ErrorCategory.NOT_FOUND
    if isinstance(error, TransientError) or status == 429:
        return ErrorCategory.TRANSIENT
    if status is not None and 500 <= status < 600:
        return ErrorCategory.TRANSIENT
    if is_network_error(error):
        return ErrorCategory.TRANSIENT
    if "not found" in str(error).lower():
        return ErrorCategory.NOT_FOUND
    if is_validation_error(error):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN
