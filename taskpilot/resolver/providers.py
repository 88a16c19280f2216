"""Candidate providers feeding the entity resolver."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Union

from .models import Candidate, EntityType


class CandidateProvider(Protocol):
    """Supplies candidate lists for a given entity type and query."""

    async def list_candidates(self, entity_type: EntityType, query: str) -> List[Candidate]:
        """Return candidates that ``query`` may refer to."""


class InMemoryCandidateProvider(CandidateProvider):
    """Serve static candidate lists per entity type.

    Useful for tests, the CLI, or callers that already fetched the data.
    """

    def __init__(
        self,
        candidates: Optional[Mapping[str, Iterable[Union[Candidate, dict]]]] = None,
    ) -> None:
        self._candidates: Dict[str, List[Candidate]] = {}
        for entity_type, items in (candidates or {}).items():
            self.set_candidates(entity_type, items)

    def set_candidates(
        self, entity_type: str, items: Iterable[Union[Candidate, dict]]
    ) -> None:
        self._candidates[entity_type] = [
            item if isinstance(item, Candidate) else Candidate(**item) for item in items
        ]

    async def list_candidates(self, entity_type: EntityType, query: str) -> List[Candidate]:
        return list(self._candidates.get(entity_type, []))
