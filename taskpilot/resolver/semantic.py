"""Semantic entity resolution.

Matches a free-text reference (a task title, project name or person) against a
candidate list using exact and fuzzy comparison, ranks the matches, flags
ambiguity and learns from selections the user confirmed earlier.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Union

from ..config import ResolverConfig
from ..contracts import utcnow
from ..utils.bounded import BoundedDict
from ..utils.strings import normalize, similarity_ratio
from .models import Candidate, EntityMatch, EntityResolutionResult, LearningRecord

logger = logging.getLogger(__name__)

AMBIGUITY_DELTA = 0.2
EXACT_CONTAINMENT_CONFIDENCE = 0.9
FUZZY_CONFIDENCE_FACTOR = 0.8
LEARNING_BOOST_PER_SELECTION = 0.05
LEARNING_MAX_BOOST = 0.2

_METADATA_LABELS = (
    ("projectName", "Project"),
    ("project_name", "Project"),
    ("teamName", "Team"),
    ("team_name", "Team"),
    ("status", "Status"),
    ("assignee", "Assignee"),
)

CandidateLike = Union[Candidate, Mapping[str, Any]]


def _as_candidate(value: CandidateLike) -> Candidate:
    if isinstance(value, Candidate):
        return value
    data = dict(value)
    if "id" not in data and "gid" in data:
        data["id"] = data.pop("gid")
    return Candidate(**data)


class SemanticEntityResolver:
    """Rank candidates against a query and learn from confirmed selections."""

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or ResolverConfig()
        self._clock = clock
        self._learning: BoundedDict[str, Deque[LearningRecord]] = BoundedDict(
            self.config.max_learning_queries
        )

    # ------------------------------------------------------------------
    def resolve_entity(
        self,
        query: str,
        candidates: Iterable[CandidateLike],
        session_id: Optional[str] = None,
    ) -> EntityResolutionResult:
        """Resolve ``query`` against ``candidates``.

        Never raises for "no match"; an empty result has zero confidence.
        """
        pool = [_as_candidate(c) for c in candidates]
        if not query or not pool:
            return EntityResolutionResult.empty(query)

        normalized_query = normalize(query)
        if not normalized_query:
            return EntityResolutionResult.empty(query)
        matches = self._find_exact_matches(normalized_query, pool)

        if not any(m.confidence >= EXACT_CONTAINMENT_CONFIDENCE for m in matches):
            matches.extend(self._find_fuzzy_matches(normalized_query, pool))

        if self.config.learning_enabled and session_id:
            self._apply_learning(matches, normalized_query)

        matches.sort(key=lambda m: (m.confidence, m.score), reverse=True)
        limited = matches[: self.config.max_matches]

        best = limited[0] if limited else None
        is_ambiguous = self._is_ambiguous(limited)
        needs_disambiguation = bool(
            is_ambiguous
            and best is not None
            and best.confidence < self.config.disambiguation_threshold
        )

        logger.debug(
            f"Resolved '{query}' against {len(pool)} candidates: "
            f"{len(limited)} matches, ambiguous={is_ambiguous}"
        )
        return EntityResolutionResult(
            query=query,
            matches=limited,
            best_match=best,
            is_ambiguous=is_ambiguous,
            needs_disambiguation=needs_disambiguation,
            confidence=best.confidence if best else 0.0,
        )

    def record_user_selection(
        self,
        query: str,
        selected_id: str,
        selected_name: str,
        session_id: str,
    ) -> None:
        """Remember that ``selected_id`` was the intended match for ``query``."""
        if not self.config.learning_enabled:
            return

        normalized_query = normalize(query)
        record = LearningRecord(
            query=normalized_query,
            selected_id=selected_id,
            selected_name=selected_name,
            session_id=session_id,
            timestamp=self._clock(),
        )
        entries = self._learning.setdefault(
            normalized_query,
            lambda: deque(maxlen=self.config.max_selections_per_query),
        )
        entries.append(record)
        logger.info(f"Recorded selection {selected_id} for query '{normalized_query}'")

    def selections_for(self, query: str) -> List[LearningRecord]:
        return list(self._learning.get(normalize(query)) or [])

    def generate_disambiguation_dialog(
        self, result: EntityResolutionResult, entity_label: str
    ) -> str:
        """Render a numbered choice list when the caller must pick a match."""
        if not result.needs_disambiguation or not result.matches:
            return ""

        lines = [
            f'Multiple {entity_label}s match "{result.query}". Please specify which one:',
            "",
        ]
        for index, match in enumerate(result.matches, start=1):
            confidence = round(match.confidence * 100)
            details = self._format_metadata(match.metadata)
            suffix = f" ({details})" if details else ""
            lines.append(f"{index}. **{match.name}**{suffix} - {confidence}% match")

        lines.append("")
        lines.append(
            "Please respond with the number of your choice, or provide a more specific name."
        )
        return "\n".join(lines)

    def clear_learning_data(self) -> None:
        self._learning.clear()

    def get_learning_stats(self) -> Dict[str, int]:
        entries = self._learning.values()
        return {
            "total_queries": len(entries),
            "total_selections": sum(len(e) for e in entries),
        }

    # ------------------------------------------------------------------
    def _find_exact_matches(
        self, query: str, candidates: List[Candidate]
    ) -> List[EntityMatch]:
        matches: List[EntityMatch] = []
        for candidate in candidates:
            name = normalize(candidate.name)
            if not name:
                continue
            if name == query:
                matches.append(
                    EntityMatch(
                        id=candidate.id,
                        name=candidate.name,
                        score=1.0,
                        match_type="exact",
                        confidence=1.0,
                        metadata=candidate.metadata,
                    )
                )
            elif query in name or name in query:
                score = max(len(query) / len(name), len(name) / len(query))
                matches.append(
                    EntityMatch(
                        id=candidate.id,
                        name=candidate.name,
                        score=score,
                        match_type="exact",
                        confidence=EXACT_CONTAINMENT_CONFIDENCE,
                        metadata=candidate.metadata,
                    )
                )
        return matches

    def _find_fuzzy_matches(
        self, query: str, candidates: List[Candidate]
    ) -> List[EntityMatch]:
        matches: List[EntityMatch] = []
        for candidate in candidates:
            similarity = similarity_ratio(query, normalize(candidate.name))
            if similarity >= self.config.fuzzy_threshold:
                matches.append(
                    EntityMatch(
                        id=candidate.id,
                        name=candidate.name,
                        score=similarity,
                        match_type="fuzzy",
                        confidence=similarity * FUZZY_CONFIDENCE_FACTOR,
                        metadata=candidate.metadata,
                    )
                )
        return matches

    def _apply_learning(self, matches: List[EntityMatch], query: str) -> None:
        entries = self._learning.get(query)
        if not entries:
            return

        cutoff = self._clock() - timedelta(days=self.config.learning_window_days)
        for match in matches:
            selections = [e for e in entries if e.selected_id == match.id]
            if not selections:
                continue
            recent = [s for s in selections if s.timestamp > cutoff]
            boost = min(LEARNING_MAX_BOOST, len(recent) * LEARNING_BOOST_PER_SELECTION)
            match.confidence = min(1.0, match.confidence + boost)
            match.match_type = "contextual"

    @staticmethod
    def _is_ambiguous(matches: List[EntityMatch]) -> bool:
        if len(matches) < 2:
            return False
        return abs(matches[0].confidence - matches[1].confidence) < AMBIGUITY_DELTA

    @staticmethod
    def _format_metadata(metadata: Dict[str, Any]) -> str:
        parts: List[str] = []
        seen: set[str] = set()
        for key, label in _METADATA_LABELS:
            value = metadata.get(key)
            if value and label not in seen:
                parts.append(f"{label}: {value}")
                seen.add(label)
        return ", ".join(parts)
