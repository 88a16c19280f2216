"""Workflow suggestion ranking tests."""

import pytest

from taskpilot.engine import WorkflowEngine
from taskpilot.operations import OperationRegistry


@pytest.fixture
def engine():
    return WorkflowEngine(OperationRegistry())


def test_project_intent_ranks_project_setup(engine):
    suggestions = engine.suggest_workflows("set up a new project with some tasks")

    assert [s.workflow_id for s in suggestions] == ["project_setup"]
    suggestion = suggestions[0]
    assert suggestion.confidence == pytest.approx(0.5)
    assert suggestion.reasoning == (
        "This workflow matches because it involves project operations "
        "and includes task management."
    )
    assert suggestion.estimated_duration == "2-5 minutes"
    assert suggestion.required_parameters == [
        "project_name",
        "project_description",
        "workspace_id",
    ]
    assert suggestion.optional_parameters == []


def test_project_context_adds_confidence(engine):
    plain = engine.suggest_workflows("new project")[0]
    boosted = engine.suggest_workflows("new project", {"project_name": "Apollo"})[0]

    assert boosted.confidence == pytest.approx(plain.confidence + 0.1)


def test_team_intent_matches_onboarding(engine):
    suggestions = engine.suggest_workflows("onboard a new member to the team")

    assert suggestions[0].workflow_id == "team_onboarding"
    assert suggestions[0].confidence == pytest.approx(0.7)
    assert suggestions[0].required_parameters == [
        "member_name",
        "workspace_id",
        "buddy_assignee",
        "it_assignee",
    ]


def test_sprint_parameters(engine):
    suggestions = engine.suggest_workflows("plan the next sprint")
    sprint = next(s for s in suggestions if s.workflow_id == "sprint_setup")

    assert sprint.required_parameters == ["sprint_name", "workspace_id", "scrum_master"]
    assert sprint.reasoning == "This workflow may be relevant to your request."


def test_unrelated_intent_has_no_suggestions(engine):
    assert engine.suggest_workflows("bake a cake") == []


def test_duration_buckets(engine):
    definition = engine.catalog.get("project_setup")
    assert engine.estimate_duration(definition) == "2-5 minutes"
    short = definition.model_copy(update={"steps": definition.steps[:1]})
    assert engine.estimate_duration(short) == "1-2 minutes"
