"""Pydantic models for entity resolution."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..contracts import utcnow

MatchType = Literal["exact", "fuzzy", "semantic", "contextual"]
EntityType = Literal["task", "project", "user"]


class Candidate(BaseModel):
    """Something a free-text reference may resolve to."""

    id: str
    name: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class EntityMatch(BaseModel):
    """A scored candidate for one resolution call."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str
    score: float
    match_type: MatchType
    confidence: float
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("confidence", "score")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return max(0.0, min(1.0, v))


class EntityResolutionResult(BaseModel):
    """Ranked matches for a query plus ambiguity flags."""

    query: str
    matches: List[EntityMatch] = Field(default_factory=list)
    best_match: Optional[EntityMatch] = None
    is_ambiguous: bool = False
    needs_disambiguation: bool = False
    confidence: float = 0.0

    @classmethod
    def empty(cls, query: str) -> "EntityResolutionResult":
        return cls(query=query)


class LearningRecord(BaseModel):
    """A confirmed user selection for a normalized query."""

    query: str
    selected_id: str
    selected_name: str
    session_id: str
    timestamp: datetime = Field(default_factory=utcnow)


class ResolvedEntity(BaseModel):
    """Resolution result tagged with the entity type that was searched."""

    entity_type: EntityType
    result: EntityResolutionResult
