"""Workflow execution engine for taskpilot."""

from __future__ import annotations

import logging
import re
from string import Template
from typing import Any, Dict, Iterator, List, Optional, Set

from .catalog import WorkflowCatalog, builtin_catalog, load_catalog
from .config import EngineConfig, TaskpilotConfig
from .contracts import (
    StepResult,
    WorkflowDefinition,
    WorkflowErrorRecord,
    WorkflowExecution,
    WorkflowStep,
    WorkflowSuggestion,
    utcnow,
)
from .errors import StepFailedError, WorkflowNotFoundError, WorkflowStalledError
from .operations import DEFAULT_CONTEXT_PREFIXES, OperationRegistry
from .recovery import ErrorContext, FallbackHandler, RecoveryController
from .registry import ExecutionRegistry, InMemoryExecutionRegistry
from .resolver import EntityResolverService
from .session import SessionContextStore

logger = logging.getLogger(__name__)

CONTEXT_SIGIL = "$"
ENTITY_MARKER = "@"

_REFERENCE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)$")
_EMBEDDED_REFERENCE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")
_MISSING = object()

_DOMAIN_CUES = (
    ("project", ("project",)),
    ("sprint", ("sprint",)),
    ("onboarding", ("onboard", "team")),
)


def _field(data: Any, name: str) -> Any:
    if isinstance(data, dict):
        return data.get(name)
    return getattr(data, name, None)


def _references(value: Any) -> Iterator[str]:
    """Yield context names referenced anywhere inside a parameter template."""
    if isinstance(value, str):
        yield from _EMBEDDED_REFERENCE.findall(value)
    elif isinstance(value, list):
        for item in value:
            yield from _references(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from _references(item)


class WorkflowEngine:
    """Run catalog workflows step by step against an operation registry.

    Steps are scheduled in passes: each pass runs every pending step whose
    dependencies are completed or skipped. Operations go through the recovery
    controller and, when that gives up, through the fallback handler.
    """

    def __init__(
        self,
        operations: OperationRegistry,
        recovery: Optional[RecoveryController] = None,
        fallback: Optional[FallbackHandler] = None,
        resolver: Optional[EntityResolverService] = None,
        registry: Optional[ExecutionRegistry] = None,
        session_store: Optional[SessionContextStore] = None,
        catalog: Optional[WorkflowCatalog] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self._operations = operations
        self._recovery = recovery or RecoveryController()
        self._fallback = fallback
        self._resolver = resolver
        self._registry = registry or InMemoryExecutionRegistry()
        self._session_store = session_store
        self.catalog = catalog or builtin_catalog()
        self.config = config or EngineConfig()

    # ------------------------------------------------------------------
    # Execution
    async def execute_workflow(
        self,
        workflow_id: str,
        parameters: Dict[str, Any],
        session_id: str,
        request_id: Optional[str] = None,
        recent_entities: Optional[Dict[str, Any]] = None,
    ) -> WorkflowExecution:
        """Run ``workflow_id`` to completion.

        Raises:
            WorkflowNotFoundError: The catalog has no such workflow.
            StepFailedError: A required step failed after recovery, fallback
                and step-level retries.
            WorkflowStalledError: A scheduling pass made no progress.
        """
        definition = self.catalog.get(workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)

        context: Dict[str, Any] = {}
        if recent_entities is None and self._session_store is not None:
            recent_entities = self._session_store.recent_entities(session_id)
        context.update(recent_entities or {})
        context.update(parameters)

        execution = WorkflowExecution(
            workflow_id=workflow_id,
            session_id=session_id,
            steps=[StepResult(step_id=step.id) for step in definition.steps],
            context=context,
        )
        await self._registry.save(execution)

        execution.status = "running"
        logger.info(
            f"[{request_id}] Starting workflow {workflow_id} for session {session_id}"
        )
        try:
            await self._run_steps(definition, execution, request_id)
        except Exception as e:
            execution.status = "failed"
            execution.ended_at = utcnow()
            execution.errors.append(
                WorkflowErrorRecord(
                    step_id="workflow", message=str(e), error_type=type(e).__name__
                )
            )
            logger.error(f"[{request_id}] Workflow {workflow_id} failed: {e}")
            self._record(execution)
            raise

        if execution.status == "running":
            execution.status = self._determine_status(definition, execution)
        if execution.ended_at is None:
            execution.ended_at = utcnow()
        logger.info(f"[{request_id}] Workflow {workflow_id} finished: {execution.status}")
        self._record(execution)
        return execution

    async def get_workflow_execution(
        self, session_id: str, workflow_id: str
    ) -> Optional[WorkflowExecution]:
        return await self._registry.get(session_id, workflow_id)

    async def cancel_workflow(self, session_id: str, workflow_id: str) -> bool:
        """Stop scheduling further steps of a running execution.

        An operation already dispatched is not interrupted and its remote
        side effect is not undone.
        """
        cancelled = await self._registry.cancel(session_id, workflow_id)
        if cancelled:
            logger.info(f"Cancelled workflow {workflow_id} for session {session_id}")
        return cancelled

    async def _run_steps(
        self,
        definition: WorkflowDefinition,
        execution: WorkflowExecution,
        request_id: Optional[str],
    ) -> None:
        max_passes = len(definition.steps) * self.config.pass_multiplier
        passes = 0

        while passes < max_passes and not all(s.is_terminal for s in execution.steps):
            passes += 1
            progress = False

            for step in definition.steps:
                if not execution.is_running:
                    logger.info(f"Workflow {execution.workflow_id} cancelled; stopping")
                    return

                result = execution.step_result(step.id)
                if result is None or result.is_terminal:
                    continue
                if not self._dependencies_met(step, execution):
                    continue

                await self._run_step(
                    step, result, execution, request_id, last_pass=passes == max_passes
                )
                progress = True

            if not progress:
                pending = [s.step_id for s in execution.steps if not s.is_terminal]
                raise WorkflowStalledError(execution.workflow_id, pending)

    @staticmethod
    def _dependencies_met(step: WorkflowStep, execution: WorkflowExecution) -> bool:
        for dep in step.dependencies:
            dep_result = execution.step_result(dep)
            if dep_result is None or not dep_result.is_satisfied:
                return False
        return True

    async def _run_step(
        self,
        step: WorkflowStep,
        result: StepResult,
        execution: WorkflowExecution,
        request_id: Optional[str],
        last_pass: bool,
    ) -> None:
        result.attempts += 1
        result.status = "running"
        result.started_at = utcnow()
        result.ended_at = None
        result.error = None
        logger.debug(f"Running step {step.id} (attempt {result.attempts})")

        try:
            data = await self._execute_step(step, execution, request_id)
        except StepFailedError as failure:
            result.error = str(failure.cause)
            result.ended_at = utcnow()

            if step.optional:
                result.status = "skipped"
                logger.info(f"Optional step {step.id} skipped: {failure.cause}")
                return

            if (
                step.retryable
                and result.attempts < self.config.max_step_attempts
                and not last_pass
            ):
                result.status = "pending"
                logger.info(f"Step {step.id} re-queued after failure: {failure.cause}")
                return

            result.status = "failed"
            execution.errors.append(
                WorkflowErrorRecord(
                    step_id=step.id,
                    message=str(failure.cause),
                    error_type=type(failure.cause).__name__,
                    recovery_attempted=failure.recovery is not None,
                    fallback_used=failure.fallback_used,
                )
            )
            failure.execution = execution
            raise

        result.result = data
        result.status = "completed"
        result.ended_at = utcnow()
        self._merge_context(execution, step, data)

    async def _execute_step(
        self,
        step: WorkflowStep,
        execution: WorkflowExecution,
        request_id: Optional[str],
    ) -> Any:
        try:
            params = await self.resolve_step_parameters(step, execution)
        except Exception as e:
            raise StepFailedError(step.id, e) from e

        error_context = ErrorContext(
            operation=step.operation,
            parameters=params,
            session_id=execution.session_id,
            request_id=request_id,
            user_intent=f"Workflow step: {step.description or step.operation}",
        )
        recovery = await self._recovery.execute_with_recovery(
            lambda: self._operations.perform(step.operation, params, request_id),
            error_context,
        )
        if recovery.success:
            if self._fallback is not None:
                self._fallback.remember(step.operation, params, recovery.data)
            return recovery.data

        cause = recovery.error or RuntimeError("Operation failed without specific error")
        if self._fallback is None:
            raise StepFailedError(step.id, cause, recovery) from cause

        fallback = await self._fallback.attempt(step.operation, params, cause, request_id)
        if fallback.success:
            logger.info(f"Step {step.id} completed via {fallback.fallback_type} fallback")
            return fallback.data
        raise StepFailedError(step.id, cause, recovery, fallback_used=True) from cause

    # ------------------------------------------------------------------
    # Parameters and context
    async def resolve_step_parameters(
        self, step: WorkflowStep, execution: WorkflowExecution
    ) -> Dict[str, Any]:
        """Substitute context references and resolve entity handles."""
        resolved: Dict[str, Any] = {}
        for key, value in step.parameters.items():
            value = await self._resolve_value(value, execution)
            if value is not _MISSING:
                resolved[key] = value
        return resolved

    async def _resolve_value(self, value: Any, execution: WorkflowExecution) -> Any:
        if isinstance(value, str):
            value = self._substitute(value, execution.context)
            if isinstance(value, str) and ENTITY_MARKER in value:
                return await self._resolve_entity_reference(value, execution.session_id)
            return value
        if isinstance(value, list):
            items = []
            for item in value:
                item = await self._resolve_value(item, execution)
                if item is not _MISSING:
                    items.append(item)
            return items
        if isinstance(value, dict):
            nested = {}
            for key, item in value.items():
                item = await self._resolve_value(item, execution)
                if item is not _MISSING:
                    nested[key] = item
            return nested
        return value

    @staticmethod
    def _substitute(value: str, context: Dict[str, Any]) -> Any:
        match = _REFERENCE.match(value)
        if match:
            return context.get(match.group(1), _MISSING)
        if CONTEXT_SIGIL in value:
            return Template(value).safe_substitute(context)
        return value

    async def _resolve_entity_reference(self, value: str, session_id: str) -> str:
        if self._resolver is None:
            return value
        try:
            resolved = await self._resolver.resolve_any_entity(value, "auto", session_id)
        except Exception as e:
            logger.warning(f"Entity resolution failed for '{value}': {e}")
            return value
        best = resolved.result.best_match
        if best is None:
            return value
        logger.debug(f"Resolved '{value}' to {resolved.entity_type} {best.id}")
        return best.id

    def _context_prefix(self, operation: str) -> Optional[str]:
        registration = self._operations.get(operation)
        if registration is not None:
            return registration.context_prefix
        return DEFAULT_CONTEXT_PREFIXES.get(operation)

    def _merge_context(
        self, execution: WorkflowExecution, step: WorkflowStep, data: Any
    ) -> None:
        if data is None:
            return
        resource_id = _field(data, "id") or _field(data, "gid")
        name = _field(data, "name")
        if resource_id:
            execution.context[f"{step.operation}_{step.id}_id"] = resource_id

        prefix = self._context_prefix(step.operation)
        if prefix:
            if resource_id:
                execution.context[f"{prefix}_id"] = resource_id
            if name:
                execution.context[f"{prefix}_name"] = name

    def _determine_status(
        self, definition: WorkflowDefinition, execution: WorkflowExecution
    ) -> str:
        required = [execution.step_result(s.id) for s in definition.required_steps]
        if any(r is not None and r.status == "failed" for r in required):
            return "failed"
        if all(r is not None and r.status == "completed" for r in required):
            return "completed"
        return "partial"

    def _record(self, execution: WorkflowExecution) -> None:
        if self._session_store is None:
            return
        try:
            self._session_store.record_execution(execution)
        except Exception as e:
            logger.warning(f"Could not record execution in session context: {e}")

    # ------------------------------------------------------------------
    # Suggestions
    def suggest_workflows(
        self,
        intent: str,
        context: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> List[WorkflowSuggestion]:
        """Rank catalog workflows against a free-text intent."""
        context = context or {}
        lowered = intent.lower()
        suggestions: List[WorkflowSuggestion] = []

        for definition in self.catalog:
            confidence = self._workflow_confidence(definition, lowered, context)
            if confidence <= self.config.suggestion_threshold:
                continue
            required = self.required_parameters(definition)
            suggestions.append(
                WorkflowSuggestion(
                    workflow_id=definition.id,
                    name=definition.name,
                    description=definition.description,
                    confidence=confidence,
                    reasoning=self._workflow_reasoning(definition, lowered),
                    estimated_duration=self.estimate_duration(definition),
                    required_parameters=required,
                    optional_parameters=self.optional_parameters(definition, required),
                )
            )

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        logger.debug(
            f"[{session_id}] {len(suggestions)} workflow suggestions for '{intent}'"
        )
        return suggestions[: self.config.max_suggestions]

    @staticmethod
    def _workflow_confidence(
        definition: WorkflowDefinition, intent: str, context: Dict[str, Any]
    ) -> float:
        confidence = 0.0
        name = definition.name.lower()

        for keyword in name.split():
            if keyword in intent:
                confidence += 0.2

        for step in definition.steps:
            if step.operation.replace("_", " ").lower() in intent:
                confidence += 0.15

        for name_cue, intent_cues in _DOMAIN_CUES:
            if name_cue in name and any(cue in intent for cue in intent_cues):
                confidence += 0.3

        if context.get("project_name") and any(
            "project" in s.operation for s in definition.steps
        ):
            confidence += 0.1

        return min(confidence, 1.0)

    @staticmethod
    def _workflow_reasoning(definition: WorkflowDefinition, intent: str) -> str:
        operations = [s.operation for s in definition.steps]
        reasons = []
        if "project" in intent and any("project" in op for op in operations):
            reasons.append("involves project operations")
        if "task" in intent and any("task" in op for op in operations):
            reasons.append("includes task management")
        if "team" in intent and any("user" in op for op in operations):
            reasons.append("involves team coordination")

        if reasons:
            return f"This workflow matches because it {' and '.join(reasons)}."
        return "This workflow may be relevant to your request."

    @staticmethod
    def estimate_duration(definition: WorkflowDefinition) -> str:
        count = len(definition.steps)
        if count <= 2:
            return "1-2 minutes"
        if count <= 5:
            return "2-5 minutes"
        return "5+ minutes"

    def _upstream_keys(self, definition: WorkflowDefinition, step: WorkflowStep) -> Set[str]:
        """Context keys filled by the steps ``step`` transitively depends on."""
        produced: Set[str] = set()
        seen: Set[str] = set()
        pending = list(step.dependencies)
        while pending:
            dep = definition.get_step(pending.pop())
            if dep is None or dep.id in seen:
                continue
            seen.add(dep.id)
            produced.add(f"{dep.operation}_{dep.id}_id")
            prefix = self._context_prefix(dep.operation)
            if prefix:
                produced.update({f"{prefix}_id", f"{prefix}_name"})
            pending.extend(dep.dependencies)
        return produced

    def _caller_references(
        self, definition: WorkflowDefinition, steps: List[WorkflowStep]
    ) -> List[str]:
        names: List[str] = []
        for step in steps:
            upstream = self._upstream_keys(definition, step)
            for name in _references(step.parameters):
                if name not in upstream and name not in names:
                    names.append(name)
        return names

    def required_parameters(self, definition: WorkflowDefinition) -> List[str]:
        """Caller-supplied names referenced by non-optional steps."""
        return self._caller_references(definition, definition.required_steps)

    def optional_parameters(
        self, definition: WorkflowDefinition, required: Optional[List[str]] = None
    ) -> List[str]:
        """Caller-supplied names referenced only by optional steps."""
        required = required if required is not None else self.required_parameters(definition)
        optional_steps = [s for s in definition.steps if s.optional]
        return [
            name
            for name in self._caller_references(definition, optional_steps)
            if name not in required
        ]


def build_engine(
    config: Optional[TaskpilotConfig] = None,
    operations: Optional[OperationRegistry] = None,
    resolver: Optional[EntityResolverService] = None,
    registry: Optional[ExecutionRegistry] = None,
    session_store: Optional[SessionContextStore] = None,
) -> WorkflowEngine:
    """Wire a ``WorkflowEngine`` from configuration."""
    config = config or TaskpilotConfig()
    operations = operations or OperationRegistry()
    return WorkflowEngine(
        operations=operations,
        recovery=RecoveryController(config.recovery),
        fallback=FallbackHandler(operations, config.fallback),
        resolver=resolver,
        registry=registry,
        session_store=session_store,
        catalog=load_catalog(config.catalog_path),
        config=config.engine,
    )
