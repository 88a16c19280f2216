"""Execution registry for status polling and cancellation."""

from __future__ import annotations

import asyncio
from typing import Dict, Protocol, Tuple

from .contracts import WorkflowExecution, utcnow


class ExecutionRegistry(Protocol):
    """Protocol for execution tracking backends."""

    async def save(self, execution: WorkflowExecution) -> None:
        """Track ``execution`` under its (session, workflow) key."""

    async def get(self, session_id: str, workflow_id: str) -> WorkflowExecution | None:
        """Retrieve the latest execution for the key."""

    async def cancel(self, session_id: str, workflow_id: str) -> bool:
        """Flag a running execution as failed; ``False`` if not running."""

    async def list_executions(self) -> list[WorkflowExecution]:
        """Return all tracked executions."""


class InMemoryExecutionRegistry(ExecutionRegistry):
    """Store executions in local memory.

    Data is not persisted across process restarts. A later run for the same
    (session, workflow) pair replaces the earlier entry.
    """

    def __init__(self) -> None:
        self._executions: Dict[Tuple[str, str], WorkflowExecution] = {}
        self._lock = asyncio.Lock()

    async def save(self, execution: WorkflowExecution) -> None:
        async with self._lock:
            self._executions[(execution.session_id, execution.workflow_id)] = execution

    async def get(self, session_id: str, workflow_id: str) -> WorkflowExecution | None:
        return self._executions.get((session_id, workflow_id))

    async def cancel(self, session_id: str, workflow_id: str) -> bool:
        async with self._lock:
            execution = self._executions.get((session_id, workflow_id))
            if execution is None or execution.status != "running":
                return False
            execution.status = "failed"
            execution.ended_at = utcnow()
            return True

    async def list_executions(self) -> list[WorkflowExecution]:
        return list(self._executions.values())

