import pytest

from taskpilot.catalog import builtin_catalog, load_catalog
from taskpilot.contracts import WorkflowDefinition

CATALOG_YAML = """
workflows:
  - id: release
    name: Release Checklist
    description: Prepare a release
    steps:
      - id: notes
        operation: create_task
        parameters:
          name: Release notes for $version
          projects: [$project_id]
      - id: announce
        operation: create_task
        dependencies: [notes]
        optional: true
        retryable: true
        parameters:
          name: Announce $version
  - id: project_setup
    name: Project Setup
    steps:
      - id: only
        operation: create_project
        parameters:
          name: $project_name
"""


def test_builtin_catalog_contents():
    catalog = builtin_catalog()
    assert {d.id for d in catalog} == {"project_setup", "sprint_setup", "team_onboarding"}
    sprint = catalog.get("sprint_setup")
    assert sprint.get_step("create_daily_standup").optional is True
    assert [s.id for s in sprint.required_steps] == [
        "create_sprint_project",
        "create_sprint_planning",
    ]


def test_load_catalog_from_yaml(tmp_path):
    path = tmp_path / "workflows.yaml"
    path.write_text(CATALOG_YAML)

    catalog = load_catalog(str(path))
    assert len(catalog) == 4
    release = catalog.get("release")
    assert release.get_step("announce").dependencies == ["notes"]
    assert release.get_step("announce").retryable is True
    assert len(catalog.get("project_setup").steps) == 1

    only_file = load_catalog(str(path), include_builtin=False)
    assert "sprint_setup" not in only_file


def test_missing_catalog_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_catalog(str(tmp_path / "nope.yaml"))


def test_definition_rejects_bad_graphs():
    with pytest.raises(ValueError):
        WorkflowDefinition(
            id="dup",
            name="Dup",
            steps=[
                {"id": "a", "operation": "create_task"},
                {"id": "a", "operation": "create_task"},
            ],
        )
    with pytest.raises(ValueError):
        WorkflowDefinition(
            id="dangling",
            name="Dangling",
            steps=[{"id": "a", "operation": "create_task", "dependencies": ["zz"]}],
        )
