"""Entity resolution for taskpilot."""

from __future__ import annotations

from .models import (
    Candidate,
    EntityMatch,
    EntityResolutionResult,
    LearningRecord,
    ResolvedEntity,
)
from .providers import CandidateProvider, InMemoryCandidateProvider
from .semantic import SemanticEntityResolver
from .service import EntityResolverService, infer_entity_type

__all__ = [
    "Candidate",
    "CandidateProvider",
    "EntityMatch",
    "EntityResolutionResult",
    "EntityResolverService",
    "InMemoryCandidateProvider",
    "LearningRecord",
    "ResolvedEntity",
    "SemanticEntityResolver",
    "infer_entity_type",
]
