"""Workflow catalog: built-in definitions and YAML loading."""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Iterator, List, Optional

import yaml

from .contracts import WorkflowDefinition

logger = logging.getLogger(__name__)

BUILTIN_WORKFLOWS: List[dict] = [
    {
        "id": "project_setup",
        "name": "Project Setup",
        "description": "Create a new project with initial tasks and team assignments",
        "steps": [
            {
                "id": "create_project",
                "operation": "create_project",
                "parameters": {
                    "name": "$project_name",
                    "notes": "$project_description",
                    "workspace": "$workspace_id",
                },
                "description": "Create the main project",
            },
            {
                "id": "create_planning_task",
                "operation": "create_task",
                "parameters": {
                    "name": "Project Planning",
                    "notes": "Initial project planning and setup",
                    "workspace": "$workspace_id",
                    "projects": ["$project_id"],
                },
                "dependencies": ["create_project"],
                "description": "Create initial planning task",
            },
            {
                "id": "create_kickoff_task",
                "operation": "create_task",
                "parameters": {
                    "name": "Project Kickoff Meeting",
                    "notes": "Schedule and conduct project kickoff",
                    "workspace": "$workspace_id",
                    "projects": ["$project_id"],
                },
                "dependencies": ["create_project"],
                "description": "Create kickoff meeting task",
            },
        ],
    },
    {
        "id": "sprint_setup",
        "name": "Sprint Setup",
        "description": "Set up a new sprint with tasks and assignments",
        "steps": [
            {
                "id": "create_sprint_project",
                "operation": "create_project",
                "parameters": {
                    "name": "$sprint_name",
                    "notes": "Sprint project for organized task management",
                    "workspace": "$workspace_id",
                },
                "description": "Create sprint project",
            },
            {
                "id": "create_sprint_planning",
                "operation": "create_task",
                "parameters": {
                    "name": "Sprint Planning",
                    "notes": "Plan and estimate sprint tasks",
                    "workspace": "$workspace_id",
                    "projects": ["$project_id"],
                    "assignee": "$scrum_master",
                },
                "dependencies": ["create_sprint_project"],
                "description": "Create sprint planning task",
            },
            {
                "id": "create_daily_standup",
                "operation": "create_task",
                "parameters": {
                    "name": "Daily Standup Template",
                    "notes": "Template for daily standup meetings",
                    "workspace": "$workspace_id",
                    "projects": ["$project_id"],
                },
                "dependencies": ["create_sprint_project"],
                "optional": True,
                "description": "Create standup template",
            },
        ],
    },
    {
        "id": "team_onboarding",
        "name": "Team Member Onboarding",
        "description": "Set up onboarding tasks for new team members",
        "steps": [
            {
                "id": "create_onboarding_project",
                "operation": "create_project",
                "parameters": {
                    "name": "Team Onboarding - $member_name",
                    "notes": "Onboarding checklist and tasks for new team member",
                    "workspace": "$workspace_id",
                },
                "description": "Create onboarding project",
            },
            {
                "id": "create_welcome_task",
                "operation": "create_task",
                "parameters": {
                    "name": "Welcome & Introduction",
                    "notes": "Welcome new team member and provide introduction",
                    "workspace": "$workspace_id",
                    "projects": ["$project_id"],
                    "assignee": "$buddy_assignee",
                },
                "dependencies": ["create_onboarding_project"],
                "description": "Create welcome task",
            },
            {
                "id": "create_setup_task",
                "operation": "create_task",
                "parameters": {
                    "name": "Account & Tool Setup",
                    "notes": "Set up accounts, tools, and access permissions",
                    "workspace": "$workspace_id",
                    "projects": ["$project_id"],
                    "assignee": "$it_assignee",
                },
                "dependencies": ["create_onboarding_project"],
                "description": "Create setup task",
            },
        ],
    },
]


class WorkflowCatalog:
    """Immutable-by-convention collection of workflow definitions."""

    def __init__(self, definitions: Optional[Iterable[WorkflowDefinition]] = None) -> None:
        self._definitions: Dict[str, WorkflowDefinition] = {}
        for definition in definitions or []:
            self.add(definition)

    def add(self, definition: WorkflowDefinition) -> None:
        if definition.id in self._definitions:
            logger.warning(f"Workflow {definition.id} redefined in catalog")
        self._definitions[definition.id] = definition

    def get(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        return self._definitions.get(workflow_id)

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._definitions

    def __iter__(self) -> Iterator[WorkflowDefinition]:
        return iter(list(self._definitions.values()))

    def __len__(self) -> int:
        return len(self._definitions)


def builtin_catalog() -> WorkflowCatalog:
    return WorkflowCatalog(WorkflowDefinition(**data) for data in BUILTIN_WORKFLOWS)


def load_catalog(path: Optional[str] = None, include_builtin: bool = True) -> WorkflowCatalog:
    """Build a catalog from the built-in workflows plus an optional YAML file.

    The file holds a top-level ``workflows`` list whose entries follow the
    ``WorkflowDefinition`` shape. Definitions from the file replace built-ins
    with the same id.
    """
    catalog = builtin_catalog() if include_builtin else WorkflowCatalog()
    if not path:
        return catalog
    if not os.path.exists(path):
        raise FileNotFoundError(f"Workflow catalog not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}
    for entry in data.get("workflows", []):
        catalog.add(WorkflowDefinition(**entry))
    logger.info(f"Loaded {len(catalog)} workflows (catalog file: {path})")
    return catalog
