"""Retry, backoff and recovery-strategy selection for backend operations."""

from __future__ import annotations

import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from ..config import RecoveryConfig
from ..errors import ErrorCategory, classify_error, error_status
from ..utils import retry as retry_utils
from .guidance import determine_strategy, generate_guidance, suggest_alternatives
from .models import ErrorContext, RecoveryResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecoveryController:
    """Run an operation with bounded retries and classify terminal failures."""

    def __init__(self, config: Optional[RecoveryConfig] = None) -> None:
        self.config = config or RecoveryConfig()
        self._history: Dict[str, int] = {}
        self._lock = threading.Lock()

    async def execute_with_recovery(
        self,
        operation: Callable[[], Awaitable[T]],
        context: ErrorContext,
    ) -> RecoveryResult:
        """Attempt ``operation`` up to ``max_retries`` times.

        Returns a successful ``RecoveryResult`` carrying the data, or a failed one
        with the terminal error, the chosen strategy and user guidance. Never
        raises for operation failures.
        """
        last_error: Optional[BaseException] = None
        attempt = 0

        while attempt < self.config.max_retries:
            attempt += 1
            try:
                data = await operation()
            except Exception as e:
                last_error = e
                logger.info(
                    f"[{context.request_id}] Attempt {attempt} failed for "
                    f"{context.operation}: {e}"
                )
                if not self.should_retry(e, attempt):
                    break
                delay = await retry_utils.schedule_retry(
                    attempt, self.config.base_delay, self.config.max_delay
                )
                logger.debug(f"Retrying {context.operation} after {delay:.2f}s")
                continue

            self._forget(context.operation)
            return RecoveryResult(success=True, data=data, attempt_count=attempt)

        if last_error is None:
            last_error = RuntimeError("Unknown error occurred during operation")
        return self._handle_failure(last_error, context, attempt)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Decide whether another attempt is worthwhile."""
        if attempt >= self.config.max_retries:
            return False

        status = error_status(error)
        if status is not None and status in self.config.retryable_status_codes:
            return True
        return classify_error(error) not in (
            ErrorCategory.AUTHORIZATION,
            ErrorCategory.NOT_FOUND,
            ErrorCategory.VALIDATION,
        )

    def get_recovery_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_recovery_attempts": sum(self._history.values()),
                "unique_error_types": len(self._history),
                "history": dict(self._history),
            }

    def clear_recovery_history(self) -> None:
        with self._lock:
            self._history.clear()

    # ------------------------------------------------------------------
    def _handle_failure(
        self, error: BaseException, context: ErrorContext, attempt: int
    ) -> RecoveryResult:
        strategy = determine_strategy(error)
        guidance = (
            generate_guidance(error, context) if self.config.enable_user_guidance else ""
        )
        alternatives = suggest_alternatives(
            error, context, contextual=self.config.contextual_suggestions
        )

        key = f"{context.operation}:{type(error).__name__}"
        with self._lock:
            self._history[key] = self._history.get(key, 0) + 1

        logger.warning(
            f"[{context.request_id}] {context.operation} failed after {attempt} "
            f"attempt(s); strategy={strategy}"
        )
        return RecoveryResult(
            success=False,
            error=error,
            attempt_count=attempt,
            recovery_strategy=strategy,
            user_guidance=guidance,
            alternative_actions=alternatives,
        )

    def _forget(self, operation: str) -> None:
        prefix = f"{operation}:"
        with self._lock:
            for key in [k for k in self._history if k == operation or k.startswith(prefix)]:
                del self._history[key]
