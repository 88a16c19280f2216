"""taskpilot: multi-step workflow orchestration for task-management backends."""

from .catalog import WorkflowCatalog, load_catalog
from .config import TaskpilotConfig, load_config
from .contracts import WorkflowDefinition, WorkflowExecution, WorkflowStep
from .engine import WorkflowEngine, build_engine
from .errors import StepFailedError, WorkflowNotFoundError, WorkflowStalledError
from .operations import OperationRegistry
from .recovery import FallbackHandler, RecoveryController
from .resolver import EntityResolverService, SemanticEntityResolver

__version__ = "0.1.0"
__all__ = [
    "EntityResolverService",
    "FallbackHandler",
    "OperationRegistry",
    "RecoveryController",
    "SemanticEntityResolver",
    "StepFailedError",
    "TaskpilotConfig",
    "WorkflowCatalog",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowExecution",
    "WorkflowNotFoundError",
    "WorkflowStalledError",
    "WorkflowStep",
    "build_engine",
    "load_catalog",
    "load_config",
]
