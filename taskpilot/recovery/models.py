"""Data models exchanged with the recovery layer."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RecoveryStrategy = Literal[
    "retry",
    "fallback",
    "user_guidance",
    "alternative_approach",
    "graceful_degradation",
]

FallbackType = Literal[
    "simplified_operation",
    "alternative_endpoint",
    "cached_data",
    "manual_guidance",
    "partial_success",
]


class ErrorContext(BaseModel):
    """What was being attempted when an operation failed."""

    operation: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    session_id: Optional[str] = None
    request_id: Optional[str] = None
    user_intent: Optional[str] = None


class RecoveryResult(BaseModel):
    """Outcome of ``RecoveryController.execute_with_recovery``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: Any = None
    error: Optional[BaseException] = Field(default=None, exclude=True)
    attempt_count: int = 0
    recovery_strategy: Optional[RecoveryStrategy] = None
    user_guidance: Optional[str] = None
    alternative_actions: List[str] = Field(default_factory=list)


class FallbackResult(BaseModel):
    """Outcome of a reduced-scope fallback attempt."""

    success: bool
    data: Any = None
    fallback_used: bool = True
    fallback_type: Optional[FallbackType] = None
    limitations: List[str] = Field(default_factory=list)
    user_message: Optional[str] = None
