"""Command line interface for inspecting taskpilot workflows and resolving entities."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from taskpilot.catalog import load_catalog
from taskpilot.config import load_config
from taskpilot.engine import build_engine
from taskpilot.resolver import SemanticEntityResolver

app = typer.Typer(help="CLI for taskpilot workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for browsing the workflow catalog")
entity_app = typer.Typer(help="Commands for entity resolution")

app.add_typer(workflow_app, name="workflow")
app.add_typer(entity_app, name="entity")


@app.callback()
def main() -> None:
    """taskpilot CLI entry point."""
    pass


@workflow_app.command("list")
def workflow_list(config: Optional[Path] = None) -> None:
    """
    List the workflows available in the catalog.

    Includes the built-in workflows plus any defined in the catalog file named
    by the configuration (or the TASKPILOT_CATALOG environment variable).

    Example:
        taskpilot workflow list
        # Output: project_setup    Project Setup    3 steps
    """
    settings = load_config(str(config) if config else None)
    catalog = load_catalog(settings.catalog_path)
    if not len(catalog):
        typer.echo("No workflows found")
        return
    for definition in catalog:
        typer.echo(f"{definition.id}\t{definition.name}\t{len(definition.steps)} steps")


@workflow_app.command("show")
def workflow_show(workflow_id: str, config: Optional[Path] = None) -> None:
    """
    Show the steps of a catalog workflow.

    Args:
        workflow_id: Workflow ID to inspect (get from 'workflow list')

    Example:
        taskpilot workflow show project_setup
        # Output: Workflow project_setup: Project Setup
        #         - create_project: create_project
        #         - create_planning_task: create_task (after create_project)
    """
    settings = load_config(str(config) if config else None)
    engine = build_engine(settings)
    definition = engine.catalog.get(workflow_id)
    if definition is None:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    typer.echo(f"Workflow {definition.id}: {definition.name}")
    if definition.description:
        typer.echo(definition.description)
    for step in definition.steps:
        flags = []
        if step.dependencies:
            flags.append(f"after {', '.join(step.dependencies)}")
        if step.optional:
            flags.append("optional")
        if step.retryable:
            flags.append("retryable")
        typer.echo(
            f"- {step.id}: {step.operation}" + (f" ({'; '.join(flags)})" if flags else "")
        )

    required = engine.required_parameters(definition)
    optional = engine.optional_parameters(definition, required)
    typer.echo(f"Required parameters: {', '.join(required) or '(none)'}")
    if optional:
        typer.echo(f"Optional parameters: {', '.join(optional)}")
    typer.echo(f"Estimated duration: {engine.estimate_duration(definition)}")


@workflow_app.command("suggest")
def workflow_suggest(
    intent: str,
    project_name: Optional[str] = typer.Option(
        None, help="Project already in context for this request"
    ),
    config: Optional[Path] = None,
) -> None:
    """
    Suggest catalog workflows for a free-text intent.

    Example:
        taskpilot workflow suggest "set up a new project"
        # Output: project_setup    0.70    Project Setup
        #           This workflow matches because it involves project operations.
    """
    settings = load_config(str(config) if config else None)
    engine = build_engine(settings)
    context = {"project_name": project_name} if project_name else {}
    suggestions = engine.suggest_workflows(intent, context)
    if not suggestions:
        typer.echo("No matching workflows")
        return
    for suggestion in suggestions:
        typer.echo(
            f"{suggestion.workflow_id}\t{suggestion.confidence:.2f}\t{suggestion.name}"
        )
        typer.echo(f"  {suggestion.reasoning}")
        if suggestion.required_parameters:
            typer.echo(f"  Requires: {', '.join(suggestion.required_parameters)}")


@entity_app.command("resolve")
def entity_resolve(
    query: str,
    candidates: Path = typer.Option(
        ..., help="JSON file holding a list of {id, name, metadata} candidates"
    ),
    label: str = typer.Option("item", help="Entity label used in disambiguation text"),
    config: Optional[Path] = None,
) -> None:
    """
    Resolve a free-text reference against a candidate file.

    Example:
        taskpilot entity resolve "review design" --candidates tasks.json --label task
        # Output: t1    1.00    exact    Review Design
    """
    if not candidates.exists():
        typer.secho("Candidates file does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        data = json.loads(candidates.read_text())
    except json.JSONDecodeError as exc:
        typer.secho(f"Invalid candidates file: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not isinstance(data, list):
        typer.secho("Candidates file must contain a JSON list", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    settings = load_config(str(config) if config else None)
    resolver = SemanticEntityResolver(settings.resolver)
    result = resolver.resolve_entity(query, data)

    if not result.matches:
        typer.echo("No matches found")
        raise typer.Exit(code=1)

    if result.needs_disambiguation:
        typer.echo(resolver.generate_disambiguation_dialog(result, label))
        return
    for match in result.matches:
        typer.echo(f"{match.id}\t{match.confidence:.2f}\t{match.match_type}\t{match.name}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
