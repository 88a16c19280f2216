"""Error recovery: retries, strategy selection and fallbacks."""

from __future__ import annotations

from .controller import RecoveryController
from .fallback import FallbackHandler
from .guidance import determine_strategy, generate_guidance, suggest_alternatives
from .models import ErrorContext, FallbackResult, RecoveryResult, RecoveryStrategy

__all__ = [
    "ErrorContext",
    "FallbackHandler",
    "FallbackResult",
    "RecoveryController",
    "RecoveryResult",
    "RecoveryStrategy",
    "determine_strategy",
    "generate_guidance",
    "suggest_alternatives",
]
