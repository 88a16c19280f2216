import json

import pytest
from typer.testing import CliRunner

from taskpilot.cli import app


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("TASKPILOT_CONFIG", "TASKPILOT_CATALOG"):
        monkeypatch.delenv(name, raising=False)


def test_workflow_list_shows_catalog():
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "list"])
    assert result.exit_code == 0, result.stdout
    assert "project_setup\tProject Setup\t3 steps" in result.stdout
    assert "team_onboarding" in result.stdout


def test_workflow_list_includes_catalog_file(tmp_path, monkeypatch):
    path = tmp_path / "workflows.yaml"
    path.write_text(
        "workflows:\n"
        "  - id: cleanup\n"
        "    name: Cleanup\n"
        "    steps:\n"
        "      - id: a\n"
        "        operation: update_task\n"
    )
    monkeypatch.setenv("TASKPILOT_CATALOG", str(path))

    result = CliRunner().invoke(app, ["workflow", "list"])
    assert result.exit_code == 0, result.stdout
    assert "cleanup\tCleanup\t1 steps" in result.stdout


def test_workflow_show_and_missing():
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "show", "sprint_setup"])
    assert result.exit_code == 0, result.stdout
    output = result.stdout
    assert "Workflow sprint_setup: Sprint Setup" in output
    assert "- create_daily_standup: create_task (after create_sprint_project; optional)" in output
    assert "Required parameters: sprint_name, workspace_id, scrum_master" in output
    assert "Estimated duration: 2-5 minutes" in output

    missing = runner.invoke(app, ["workflow", "show", "missing-id"])
    assert missing.exit_code == 1
    assert "Workflow not found" in missing.stdout


def test_workflow_suggest():
    result = CliRunner().invoke(app, ["workflow", "suggest", "start a new project"])
    assert result.exit_code == 0, result.stdout
    assert result.stdout.startswith("project_setup\t0.50\tProject Setup")
    assert "Requires: project_name, project_description, workspace_id" in result.stdout

    none = CliRunner().invoke(app, ["workflow", "suggest", "bake a cake"])
    assert "No matching workflows" in none.stdout


def test_entity_resolve(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(
        json.dumps(
            [
                {"id": "t1", "name": "Review Design"},
                {"gid": "t2", "name": "Update Docs"},
            ]
        )
    )

    result = CliRunner().invoke(
        app, ["entity", "resolve", "review design", "--candidates", str(path)]
    )
    assert result.exit_code == 0, result.stdout
    assert "t1\t1.00\texact\tReview Design" in result.stdout


def test_entity_resolve_disambiguation(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(
        json.dumps(
            [
                {"id": "a", "name": "Design Review"},
                {"id": "b", "name": "Design Reviews"},
            ]
        )
    )

    result = CliRunner().invoke(
        app,
        ["entity", "resolve", "desgn review", "--candidates", str(path), "--label", "task"],
    )
    assert result.exit_code == 0, result.stdout
    assert 'Multiple tasks match "desgn review"' in result.stdout


def test_entity_resolve_bad_input(tmp_path):
    runner = CliRunner()
    missing = runner.invoke(
        app, ["entity", "resolve", "x", "--candidates", str(tmp_path / "none.json")]
    )
    assert missing.exit_code == 1

    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([{"id": "t1", "name": "Review Design"}]))
    no_match = runner.invoke(app, ["entity", "resolve", "quarterly budget", "--candidates", str(path)])
    assert no_match.exit_code == 1
    assert "No matches found" in no_match.stdout
