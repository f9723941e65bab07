"""CLI entry point for stacksherpa."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler

from stacksherpa.activity import read_activity_log
from stacksherpa.categories import normalize_category
from stacksherpa.config import DEFAULT_LOG_LEVEL, LOG_LEVELS, Config
from stacksherpa.errors import StacksherpaError
from stacksherpa.profile.gaps import detect_gaps
from stacksherpa.profile.summary import summarize_profile
from stacksherpa.taste.patterns import describe_pattern, filter_patterns_for_category
from stacksherpa.workspace import Workspace

app = typer.Typer(help="Recommend API providers from your profile, catalog and past decisions.")
projects_app = typer.Typer(help="Manage the registry of projects that share decisions.")
app.add_typer(projects_app, name="projects")


def _configure_logging(level: str) -> None:
    if level not in LOG_LEVELS:
        level = DEFAULT_LOG_LEVEL
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    log_level: str = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING or ERROR (default: STACKSHERPA_LOG_LEVEL)"
    ),
) -> None:
    """stacksherpa: API provider recommendations that learn from your decisions."""
    level = log_level.upper() if log_level else Config.load().log_level
    _configure_logging(level)


def _open_workspace(project_dir: str | None = None) -> Workspace:
    config = Config.load()
    if project_dir:
        config.project_dir = Path(project_dir).resolve()
    issues = config.validate()
    if issues:
        for issue in issues:
            rprint(f"[red]Config error: {issue}[/red]")
        raise typer.Exit(1)
    return Workspace.open(config)


def _parse_json_option(name: str, raw: str | None) -> dict | None:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        rprint(f"[red]--{name} must be a JSON object: {e}[/red]")
        raise typer.Exit(1)
    if not isinstance(value, dict):
        rprint(f"[red]--{name} must be a JSON object of dot-path keys[/red]")
        raise typer.Exit(1)
    return value


def _echo_json(data: object) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


ProjectOption = typer.Option(None, "--project", "-p", help="Project directory (default: cwd)")
FormatOption = typer.Option("text", "--format", "-f", help="Output format: text or json")


@app.command()
def recommend(
    category: str = typer.Argument(help='API category, e.g. "email" or "payments"'),
    format: str = FormatOption,
    project: str = ProjectOption,
) -> None:
    """Recommend a provider for a category."""
    ws = _open_workspace(project)
    try:
        result = ws.recommender.recommend(category, ws.project_dir)
        if format == "json":
            typer.echo(result.to_json())
        else:
            typer.echo(result.to_text())
    except StacksherpaError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        ws.close()


@app.command()
def providers(
    category: str = typer.Argument(help="API category"),
    format: str = FormatOption,
) -> None:
    """List the active providers in a category."""
    ws = _open_workspace()
    try:
        normalized = normalize_category(category)
        found = ws.catalog.get_providers_by_category(normalized)
        if format == "json":
            _echo_json([p.to_dict() for p in found])
            return
        if not found:
            rprint(f"[yellow]No providers found for '{normalized}'.[/yellow]")
            return
        rprint(f"[bold]{normalized}[/bold] ({len(found)} providers)")
        for p in found:
            extras = []
            if p.offers_free_tier:
                extras.append("free tier")
            if p.compliance:
                extras.append(", ".join(p.compliance))
            suffix = f" - {'; '.join(extras)}" if extras else ""
            rprint(f"  {p.name} [dim]({p.id})[/dim]{suffix}")
    finally:
        ws.close()


@app.command()
def provider(
    provider_id: str = typer.Argument(help='Provider ID, e.g. "stripe"'),
) -> None:
    """Show one provider with past decisions about it."""
    ws = _open_workspace()
    try:
        found = ws.catalog.get_provider_by_id(provider_id)
        if found is None:
            rprint(f"[red]Provider not found: {provider_id}[/red]")
            raise typer.Exit(1)
        _echo_json({
            "provider": found.to_dict(),
            "pastDecisions": [e.to_dict() for e in ws.ledger.experiences_for_api(found.name)],
        })
    finally:
        ws.close()


@app.command()
def categories() -> None:
    """List categories with provider counts."""
    ws = _open_workspace()
    try:
        rows = ws.catalog.get_categories()
        if not rows:
            rprint("[yellow]Catalog is empty. Run 'stacksherpa catalog-import' first.[/yellow]")
            return
        for row in rows:
            rprint(f"  {row['category']}: {row['count']}")
    finally:
        ws.close()


@app.command()
def profile(
    set: str = typer.Option(None, "--set", help='JSON of dot-paths to set, e.g. \'{"project.scale": "startup"}\''),
    append: str = typer.Option(None, "--append", help="JSON of dot-paths to append to"),
    remove: str = typer.Option(None, "--remove", help="JSON of dot-paths to remove (true deletes the key)"),
    category: str = typer.Option(None, "--category", "-c", help="Show open questions for a category"),
    format: str = FormatOption,
    project: str = ProjectOption,
) -> None:
    """Show the effective profile, or update the local profile."""
    ops = {
        "set": _parse_json_option("set", set),
        "append": _parse_json_option("append", append),
        "remove": _parse_json_option("remove", remove),
    }
    ws = _open_workspace(project)
    try:
        if any(v is not None for v in ops.values()):
            result = ws.profiles.update_project_profile(ws.project_dir, **ops)
            if format == "json":
                _echo_json(result.to_dict())
                return
            for op in result.applied_ops:
                rprint(f"  [green]{op.op}[/green] {op.path}")
            for warning in result.warnings:
                rprint(f"  [yellow]{warning}[/yellow]")
            return

        view = ws.profiles.load_effective(ws.project_dir)
        gaps = detect_gaps(view.effective, normalize_category(category)) if category else []
        if format == "json":
            _echo_json({**view.to_dict(), "gaps": [g.to_dict() for g in gaps]})
            return
        typer.echo(summarize_profile(view.effective))
        if gaps:
            rprint("\n[bold]Open questions:[/bold]")
            for gap in gaps:
                typer.echo(f"  ({gap.impact}) {gap.question}")
    finally:
        ws.close()


@app.command()
def decide(
    api: str = typer.Argument(help='Provider chosen, e.g. "Resend"'),
    category: str = typer.Argument(help="API category"),
    outcome: str = typer.Option("neutral", "--outcome", "-o", help="positive, negative or neutral"),
    context: str = typer.Option(None, "--context", help='e.g. "high volume", "mvp"'),
    notes: str = typer.Option(None, "--notes", help="Notes about the experience"),
    private: bool = typer.Option(False, "--private", help="Keep notes out of cross-project taste"),
    project: str = ProjectOption,
) -> None:
    """Record a provider decision for this project."""
    ws = _open_workspace(project)
    try:
        ws.registry.ensure_registered(ws.project_dir)
        decision = ws.ledger.record(
            ws.project_dir,
            api=api,
            category=normalize_category(category),
            outcome=outcome,
            context=context,
            notes=notes,
            notes_private=private,
            recorded_by="user",
        )
        rprint(f"[green]Recorded {decision.outcome} decision for {api}[/green] ({decision.id})")
    except (StacksherpaError, ValueError) as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        ws.close()


@app.command()
def report(
    decision_id: str = typer.Argument(help="Decision ID returned by 'decide'"),
    success: bool = typer.Option(..., "--success/--failure", help="Whether the integration worked"),
    stage: str = typer.Option(None, "--stage", help="setup, build, runtime, quota, auth or platform"),
    notes: str = typer.Option(None, "--notes", help="Notes about the outcome"),
    project: str = ProjectOption,
) -> None:
    """Report how a recorded decision worked out."""
    ws = _open_workspace(project)
    try:
        outcome_note = "; ".join(
            part for part in (
                notes,
                f"outcome: {'success' if success else 'failure'}",
                f"stage: {stage}" if stage else None,
            ) if part
        )
        updated = ws.ledger.update(
            ws.project_dir,
            decision_id,
            outcome="positive" if success else "negative",
            notes=outcome_note,
        )
        if updated is None:
            rprint(f"[red]Decision not found: {decision_id}[/red]")
            raise typer.Exit(1)
        rprint(f"[green]Updated {updated.api} decision: {updated.outcome}[/green]")
    except StacksherpaError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        ws.close()


@app.command()
def patterns(
    category: str = typer.Option(None, "--category", "-c", help="Only patterns for this category"),
    format: str = FormatOption,
) -> None:
    """Show taste patterns learned across projects."""
    ws = _open_workspace()
    try:
        taste = ws.patterns.compute()
        found = taste.patterns
        if category:
            found = filter_patterns_for_category(found, normalize_category(category))
        if format == "json":
            _echo_json([{**p.to_dict(), "description": describe_pattern(p)} for p in found])
            return
        if not found:
            rprint("[yellow]No patterns yet. Record a few decisions first.[/yellow]")
            return
        rprint(f"[bold]{len(found)} pattern(s) from {len(taste.experiences)} decision(s)[/bold]")
        for p in found:
            typer.echo(f"  {describe_pattern(p)}")
    finally:
        ws.close()


@projects_app.command("list")
def projects_list() -> None:
    """List registered projects."""
    ws = _open_workspace()
    try:
        registered = ws.registry.get_all()
        if not registered:
            rprint("[yellow]No projects registered yet.[/yellow]")
            return
        for p in registered:
            sharing = "shared" if p.share_to_global_taste else "private"
            rprint(f"  {p.name} [dim]{p.path}[/dim] ({sharing})")
    finally:
        ws.close()


@projects_app.command("update")
def projects_update(
    path: str = typer.Argument(help="Project path"),
    name: str = typer.Option(None, "--name", help="New display name"),
    share: bool = typer.Option(None, "--share/--no-share", help="Share decisions with other projects"),
) -> None:
    """Rename a project or change its sharing setting."""
    ws = _open_workspace()
    try:
        updated = ws.registry.update(path, name=name, share=share)
        if updated is None:
            rprint(f"[red]Project not registered: {path}[/red]")
            raise typer.Exit(1)
        rprint(f"[green]Updated {updated.name}[/green]")
    finally:
        ws.close()


@projects_app.command("remove")
def projects_remove(path: str = typer.Argument(help="Project path")) -> None:
    """Remove a project from the registry (its files are untouched)."""
    ws = _open_workspace()
    try:
        if not ws.registry.remove(path):
            rprint(f"[red]Project not registered: {path}[/red]")
            raise typer.Exit(1)
        rprint(f"[green]Removed {path}[/green]")
    finally:
        ws.close()


@projects_app.command("prune")
def projects_prune() -> None:
    """Remove projects whose directories no longer exist."""
    ws = _open_workspace()
    try:
        pruned = ws.registry.prune_stale()
        rprint(f"Pruned {len(pruned)} project(s)")
        for path in pruned:
            rprint(f"  {path}")
    finally:
        ws.close()


@app.command("catalog-import")
def catalog_import(
    path: str = typer.Argument(help="JSON file with a list of provider objects"),
) -> None:
    """Load providers from a JSON file into the catalog."""
    ws = _open_workspace()
    try:
        count = ws.catalog.import_providers(Path(path))
        stats = ws.catalog.get_stats()
        rprint(f"[green]Imported {count} provider(s)[/green]")
        rprint(
            f"  Catalog: {stats['active_providers']} active providers "
            f"in {stats['categories']} categories"
        )
    except StacksherpaError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        ws.close()


@app.command()
def stats(
    stale_days: int = typer.Option(90, "--stale-days", help="Flag providers not verified in this many days"),
) -> None:
    """Show catalog statistics and providers due for re-verification."""
    ws = _open_workspace()
    try:
        s = ws.catalog.get_stats()
        rprint("[bold]stacksherpa catalog:[/bold]")
        rprint(f"  Providers:   {s['total_providers']} ({s['active_providers']} active)")
        rprint(f"  Categories:  {s['categories']}")
        rprint(f"  Open issues: {s['open_issues']}")

        stale = ws.catalog.get_stale_providers(days=stale_days)
        if stale:
            rprint(f"\n[bold]Not verified in {stale_days} days:[/bold]")
            for p in stale:
                rprint(f"  {p.name} ({p.category}): {p.last_verified or 'never'}")
    finally:
        ws.close()


@app.command()
def activity(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show"),
    tool: str = typer.Option(None, "--tool", help="Only calls to this MCP tool"),
    errors: bool = typer.Option(False, "--errors", help="Only calls that failed"),
) -> None:
    """Show recent MCP tool calls."""
    calls = read_activity_log(limit=limit, tool_name=tool, errors_only=errors)
    if not calls:
        rprint("[yellow]No activity recorded yet.[/yellow]")
        return
    for call in calls:
        status = "[green]ok[/green]" if call.ok else f"[red]error[/red] {call.error}"
        rprint(f"  {call.timestamp}  {call.tool_name}  {call.duration_ms}ms  {status}")


@app.command()
def serve() -> None:
    """Start the MCP server (launched by the agent host)."""
    import asyncio
    from stacksherpa.mcp_server import main as mcp_main
    asyncio.run(mcp_main())


if __name__ == "__main__":
    app()
