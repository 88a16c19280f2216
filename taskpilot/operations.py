"""Explicit registry mapping operation names to async handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import UnknownOperationError

logger = logging.getLogger(__name__)

OperationHandler = Callable[[Dict[str, Any], Optional[str]], Awaitable[Any]]


@dataclass(frozen=True)
class OperationRegistration:
    """A handler plus the context keys its results populate."""

    name: str
    handler: OperationHandler
    context_prefix: Optional[str] = None
    description: Optional[str] = None


# Context keys filled from created resources when no prefix is registered.
DEFAULT_CONTEXT_PREFIXES: Dict[str, str] = {
    "create_project": "project",
    "create_task": "last_task",
    "create_section": "section",
}


class OperationRegistry:
    """Holds the operations a workflow step may name.

    Handlers receive the resolved parameters and the optional request id and
    return the backend result.
    """

    def __init__(self) -> None:
        self._operations: Dict[str, OperationRegistration] = {}

    def register(
        self,
        name: str,
        handler: OperationHandler,
        context_prefix: Optional[str] = None,
        description: Optional[str] = None,
    ) -> OperationRegistration:
        if name in self._operations:
            logger.warning(f"Replacing handler for operation {name}")
        registration = OperationRegistration(
            name=name,
            handler=handler,
            context_prefix=context_prefix or DEFAULT_CONTEXT_PREFIXES.get(name),
            description=description,
        )
        self._operations[name] = registration
        return registration

    def operation(
        self, name: str, context_prefix: Optional[str] = None
    ) -> Callable[[OperationHandler], OperationHandler]:
        """Decorator form of :meth:`register`."""

        def decorator(handler: OperationHandler) -> OperationHandler:
            self.register(name, handler, context_prefix, description=handler.__doc__)
            return handler

        return decorator

    def get(self, name: str) -> Optional[OperationRegistration]:
        return self._operations.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def names(self) -> List[str]:
        return sorted(self._operations)

    async def perform(
        self,
        name: str,
        parameters: Dict[str, Any],
        request_id: Optional[str] = None,
    ) -> Any:
        registration = self._operations.get(name)
        if registration is None:
            raise UnknownOperationError(f"Unknown operation: {name}")
        logger.debug(f"[{request_id}] Performing {name}")
        return await registration.handler(parameters, request_id)
