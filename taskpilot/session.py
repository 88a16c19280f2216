"""Session context collaborator.

Keeps a short memory of entities created or mentioned per session so later
runs can infer parameters such as the project a task belongs to.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Dict, Protocol

from .contracts import WorkflowExecution
from .utils.bounded import BoundedDict

logger = logging.getLogger(__name__)


class SessionContextStore(Protocol):
    def record_execution(self, execution: WorkflowExecution) -> None:
        """Observe a finished execution."""

    def recent_entities(self, session_id: str) -> Dict[str, Any]:
        """Entities recently mentioned in ``session_id``, keyed by context name."""


class InMemorySessionContextStore(SessionContextStore):
    def __init__(self, max_sessions: int = 500, max_history: int = 50) -> None:
        self._entities: BoundedDict[str, Dict[str, Any]] = BoundedDict(max_sessions)
        self._history: BoundedDict[str, deque] = BoundedDict(max_sessions)
        self._max_history = max_history

    def record_execution(self, execution: WorkflowExecution) -> None:
        completed = [s for s in execution.steps if s.status == "completed"]
        entities = self._entities.setdefault(execution.session_id, dict)
        for key, value in execution.context.items():
            if key.endswith(("_id", "_name")) and isinstance(value, str):
                entities[key] = value

        history = self._history.setdefault(
            execution.session_id, lambda: deque(maxlen=self._max_history)
        )
        history.append(
            {
                "workflow_id": execution.workflow_id,
                "status": execution.status,
                "duration": execution.duration,
                "steps_completed": len(completed),
                "total_steps": len(execution.steps),
            }
        )
        logger.info(
            f"Workflow {execution.workflow_id} finished with "
            f"{len(completed)}/{len(execution.steps)} steps completed"
        )

    def mention(self, session_id: str, key: str, value: Any) -> None:
        self._entities.setdefault(session_id, dict)[key] = value

    def recent_entities(self, session_id: str) -> Dict[str, Any]:
        return dict(self._entities.get(session_id) or {})

    def history(self, session_id: str) -> list:
        return list(self._history.get(session_id) or [])
