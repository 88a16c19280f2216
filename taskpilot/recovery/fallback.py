"""Reduced-scope fallbacks attempted after the primary operation gave up."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..config import FallbackConfig
from ..utils.bounded import TTLCache
from .models import FallbackResult

if TYPE_CHECKING:
    from ..operations import OperationRegistry

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = ("id", "gid", "task_id", "project_id", "section_id", "user_id")
READ_PREFIXES = ("list_", "get_", "search_")


def _cache_key(operation: str, params: Dict[str, Any]) -> str:
    return f"{operation}:{json.dumps(params, sort_keys=True, default=str)}"


def _noun(operation: str) -> str:
    _, _, noun = operation.partition("_")
    return (noun or operation).replace("_", " ")


class FallbackHandler:
    """Try a degraded version of a failed operation.

    Fallbacks never raise: every outcome, including "nothing worked", is
    reported through a ``FallbackResult``.
    """

    def __init__(
        self,
        operations: "OperationRegistry",
        config: Optional[FallbackConfig] = None,
    ) -> None:
        self._operations = operations
        self.config = config or FallbackConfig()
        self._cache: TTLCache[str, Any] = TTLCache(
            self.config.cache_ttl, self.config.cache_capacity
        )

    async def attempt(
        self,
        operation: str,
        params: Dict[str, Any],
        error: BaseException,
        request_id: Optional[str] = None,
    ) -> FallbackResult:
        """Dispatch to the fallback matching the shape of ``operation``."""
        logger.info(f"[{request_id}] Attempting fallback for {operation} after: {error}")
        if operation.startswith("create_"):
            return await self.fallback_create(operation, params, request_id)
        if operation.startswith("update_"):
            return await self.fallback_update(operation, params, request_id)
        if operation.startswith(READ_PREFIXES):
            return await self.fallback_read(operation, params, request_id)
        return self._manual_guidance(operation, params)

    async def fallback_create(
        self, operation: str, params: Dict[str, Any], request_id: Optional[str] = None
    ) -> FallbackResult:
        if self.config.enable_simplified_operations:
            simplified = {
                k: v for k, v in params.items() if k in self.config.essential_fields
            }
            try:
                data = await self._operations.perform(operation, simplified, request_id)
            except Exception as e:
                logger.info(f"[{request_id}] Simplified {operation} failed: {e}")
            else:
                noun = _noun(operation)
                name = params.get("name", noun)
                return FallbackResult(
                    success=True,
                    data=data,
                    fallback_type="simplified_operation",
                    limitations=[
                        f"{noun.capitalize()} created with basic information only",
                        "Additional details can be added separately",
                    ],
                    user_message=(
                        f"**{noun.capitalize()} Created** (Simplified Mode)\n\n"
                        f'"{name}" has been created with basic information. '
                        "You can add more details separately."
                    ),
                )
        return self._manual_guidance(operation, params)

    async def fallback_update(
        self, operation: str, params: Dict[str, Any], request_id: Optional[str] = None
    ) -> FallbackResult:
        identity = {k: v for k, v in params.items() if k in IDENTITY_FIELDS}
        fields = {k: v for k, v in params.items() if k not in IDENTITY_FIELDS}

        if self.config.enable_simplified_operations and len(fields) > 1:
            updated: List[str] = []
            failures: List[str] = []
            last_data: Any = None
            for field, value in fields.items():
                try:
                    last_data = await self._operations.perform(
                        operation, {**identity, field: value}, request_id
                    )
                    updated.append(field)
                except Exception as e:
                    failures.append(field)
                    logger.info(f"[{request_id}] Failed to update {field}: {e}")

            if updated:
                message = f"**Updated** (Partial Success)\n\n{len(updated)} field(s) updated successfully."
                if failures:
                    message += (
                        f"\n\nCould not update: {', '.join(failures)}. "
                        "Try updating these fields separately."
                    )
                return FallbackResult(
                    success=True,
                    data=last_data,
                    fallback_type="partial_success",
                    limitations=(
                        [f"Could not update: {', '.join(failures)}"] if failures else []
                    ),
                    user_message=message,
                )
        return self._manual_guidance(operation, params)

    async def fallback_read(
        self, operation: str, params: Dict[str, Any], request_id: Optional[str] = None
    ) -> FallbackResult:
        key = _cache_key(operation, params)
        cached = self._cache.get(key)
        if cached is not None:
            return FallbackResult(
                success=True,
                data=cached,
                fallback_type="cached_data",
                limitations=[
                    f"Data may be up to {int(self.config.cache_ttl // 60)} minutes old"
                ],
                user_message="**Retrieved** (Cached Data)\n\nShowing recently cached data. "
                "Some information may be slightly outdated.",
            )

        if self.config.enable_simplified_operations:
            simplified = {**params, "opt_fields": list(self.config.minimal_read_fields)}
            try:
                data = await self._operations.perform(operation, simplified, request_id)
            except Exception as e:
                logger.info(f"[{request_id}] Simplified {operation} failed: {e}")
            else:
                self._cache.set(key, data)
                return FallbackResult(
                    success=True,
                    data=data,
                    fallback_type="simplified_operation",
                    limitations=[
                        "Limited information shown",
                        "Some filters may not be applied",
                    ],
                    user_message="**Retrieved** (Simplified Mode)\n\nShowing basic information only.",
                )
        return self._manual_guidance(operation, params)

    def remember(self, operation: str, params: Dict[str, Any], data: Any) -> None:
        """Cache a successful read so later failures can serve it."""
        if operation.startswith(READ_PREFIXES) and data is not None:
            self._cache.set(_cache_key(operation, params), data)

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> Dict[str, int]:
        values = self._cache.values()
        return {
            "total_entries": len(values),
            "total_size": sum(len(json.dumps(v, default=str)) for v in values),
        }

    # ------------------------------------------------------------------
    def _manual_guidance(self, operation: str, params: Dict[str, Any]) -> FallbackResult:
        noun = _noun(operation)
        target = params.get("name") or noun
        if operation.startswith("create_"):
            steps = [
                "Open the project management app in your browser",
                "Navigate to the appropriate project or workspace",
                f'Create the {noun} and enter: "{target}"',
                "Add any additional details as needed",
            ]
            title = f"{noun.capitalize()} Creation Failed"
            intro = f'I couldn\'t create the {noun} "{target}" automatically.'
        elif operation.startswith("update_"):
            steps = [
                f'Open the {noun} "{target}" in the app',
                "Make the changes directly in the interface",
                "Save your changes",
            ]
            title = f"{noun.capitalize()} Update Failed"
            intro = f'I couldn\'t update the {noun} "{target}" automatically.'
        else:
            steps = [
                "Open the project management app in your browser",
                f"Perform the {operation.replace('_', ' ')} operation manually",
                "Try again in a few minutes - the issue might be temporary",
            ]
            title = "Operation Failed"
            intro = f"The {operation.replace('_', ' ')} operation couldn't be completed automatically."

        numbered = "\n".join(f"{i}. {s}" for i, s in enumerate(steps, start=1))
        return FallbackResult(
            success=False,
            fallback_type="manual_guidance",
            user_message=f"**{title}**\n\n{intro} Here's what you can do:\n\n**Manual Steps:**\n{numbered}",
        )
