"""Typed entity resolution backed by a candidate provider."""

from __future__ import annotations

import logging
import re
from typing import Literal, Optional

from .models import EntityResolutionResult, EntityType, ResolvedEntity
from .providers import CandidateProvider
from .semantic import SemanticEntityResolver

logger = logging.getLogger(__name__)

_FIRST_LAST = re.compile(r"^[a-z]+\s+[a-z]+$", re.IGNORECASE)
_SINGLE_TOKEN = re.compile(r"^[a-z0-9\s\-_]+$", re.IGNORECASE)
_USER_WORDS = ("@", "user", "assignee", "member")
_PROJECT_WORDS = ("project", "team")


def infer_entity_type(query: str) -> EntityType:
    """Guess what kind of entity a bare reference points at."""
    lowered = query.lower()
    if any(word in lowered for word in _USER_WORDS):
        return "user"
    if any(word in lowered for word in _PROJECT_WORDS):
        return "project"
    if _FIRST_LAST.match(lowered) or len(lowered.split(" ")) == 2:
        return "user"
    if _SINGLE_TOKEN.match(lowered) and len(lowered) > 2 and " " not in lowered:
        return "project"
    return "task"


class EntityResolverService:
    """Fetch candidates for an entity type and rank them semantically."""

    def __init__(
        self,
        resolver: SemanticEntityResolver,
        provider: CandidateProvider,
    ) -> None:
        self.resolver = resolver
        self._provider = provider

    async def resolve(
        self, entity_type: EntityType, query: str, session_id: Optional[str] = None
    ) -> EntityResolutionResult:
        try:
            candidates = await self._provider.list_candidates(entity_type, query)
        except Exception as e:
            logger.error(f"Failed to fetch {entity_type} candidates for '{query}': {e}")
            return EntityResolutionResult.empty(query)
        return self.resolver.resolve_entity(query, candidates, session_id)

    async def resolve_task(self, query: str, session_id: Optional[str] = None) -> EntityResolutionResult:
        return await self.resolve("task", query, session_id)

    async def resolve_project(self, query: str, session_id: Optional[str] = None) -> EntityResolutionResult:
        return await self.resolve("project", query, session_id)

    async def resolve_user(self, query: str, session_id: Optional[str] = None) -> EntityResolutionResult:
        return await self.resolve("user", query, session_id)

    async def resolve_any_entity(
        self,
        query: str,
        entity_type: Literal["task", "project", "user", "auto"] = "auto",
        session_id: Optional[str] = None,
    ) -> ResolvedEntity:
        """Resolve ``query``, inferring the entity type when ``auto``."""
        clean = query[1:] if query.startswith("@") else query
        resolved_type: EntityType = (
            infer_entity_type(clean) if entity_type == "auto" else entity_type
        )
        result = await self.resolve(resolved_type, clean, session_id)
        return ResolvedEntity(entity_type=resolved_type, result=result)

    def record_user_selection(
        self, query: str, selected_id: str, selected_name: str, session_id: str
    ) -> None:
        clean = query[1:] if query.startswith("@") else query
        self.resolver.record_user_selection(clean, selected_id, selected_name, session_id)

    def generate_disambiguation_dialog(
        self, result: EntityResolutionResult, entity_label: str
    ) -> str:
        return self.resolver.generate_disambiguation_dialog(result, entity_label)
