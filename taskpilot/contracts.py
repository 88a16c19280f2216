"""Core workflow contracts for the taskpilot engine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

ExecutionStatus = Literal["pending", "running", "completed", "failed", "partial"]
StepStatus = Literal["pending", "running", "completed", "failed", "skipped"]

TERMINAL_STEP_STATUSES = ("completed", "failed", "skipped")
SATISFIED_STEP_STATUSES = ("completed", "skipped")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowStep(BaseModel):
    """Defines one step in a workflow."""

    model_config = ConfigDict(frozen=True)

    id: str
    operation: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    dependencies: List[str] = Field(default_factory=list)
    optional: bool = False
    retryable: bool = False
    description: Optional[str] = None


class WorkflowDefinition(BaseModel):
    """A named, reusable graph of steps."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    steps: List[WorkflowStep] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_step_graph(self) -> "WorkflowDefinition":
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id '{step.id}' in workflow {self.id}")
            seen.add(step.id)
        for step in self.steps:
            missing = [dep for dep in step.dependencies if dep not in seen]
            if missing:
                raise ValueError(
                    f"Step '{step.id}' in workflow {self.id} depends on unknown steps: {missing}"
                )
        return self

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        return next((s for s in self.steps if s.id == step_id), None)

    @property
    def required_steps(self) -> List[WorkflowStep]:
        return [s for s in self.steps if not s.optional]


class StepResult(BaseModel):
    """Outcome of a single step within one execution."""

    step_id: str
    status: StepStatus = "pending"
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STEP_STATUSES

    @property
    def is_satisfied(self) -> bool:
        return self.status in SATISFIED_STEP_STATUSES


class WorkflowErrorRecord(BaseModel):
    """Error log entry recorded against a step or the whole workflow."""

    step_id: str
    message: str
    error_type: str
    recovery_attempted: bool = False
    fallback_used: bool = False
    timestamp: datetime = Field(default_factory=utcnow)


class WorkflowExecution(BaseModel):
    """Mutable record of one workflow run."""

    workflow_id: str
    session_id: str
    status: ExecutionStatus = "pending"
    started_at: datetime = Field(default_factory=utcnow)
    ended_at: Optional[datetime] = None
    steps: List[StepResult] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)
    errors: List[WorkflowErrorRecord] = Field(default_factory=list)

    def step_result(self, step_id: str) -> Optional[StepResult]:
        return next((s for s in self.steps if s.step_id == step_id), None)

    @property
    def is_running(self) -> bool:
        return self.status == "running"

    @property
    def duration(self) -> Optional[float]:
        """Run time in seconds, or ``None`` while still running."""
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()


class WorkflowSuggestion(BaseModel):
    """A catalog workflow ranked against a free-text intent."""

    workflow_id: str
    name: str
    description: str
    confidence: float
    reasoning: str
    estimated_duration: str
    required_parameters: List[str] = Field(default_factory=list)
    optional_parameters: List[str] = Field(default_factory=list)
