"""CLI entry point for the QA studio."""

from __future__ import annotations

import asyncio
import functools
import logging
import sys
from pathlib import Path

import anthropic
import click
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from qastudio.errors import StudioError
from qastudio.models.config import StudioConfig
from qastudio.models.session import (
    ArtifactScope,
    ScriptFramework,
    Session,
    TestDataItem,
    TestType,
)
from qastudio.render.export import EXPORT_FORMATS, write_export
from qastudio.render.masking import DataItemView, mask_value, masked_plan
from qastudio.workspace import Workspace

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "qa-studio.json"
_SCRIPT_SUFFIX = {
    ScriptFramework.CYPRESS: ".cy.ts",
    ScriptFramework.PLAYWRIGHT: ".spec.ts",
    ScriptFramework.SELENIUM: "_test.py",
}
_PRIORITY_STYLE = {"Critical": "red", "High": "dark_orange", "Medium": "blue", "Low": "dim"}

config_option = click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _open(config: str) -> Workspace:
    try:
        cfg = StudioConfig.load_or_default(config)
    except ValueError as e:
        console.print(f"[red]Invalid config {config}: {e}[/red]")
        sys.exit(1)
    return Workspace.open(cfg)


def reports_errors(fn):
    """Print studio, backend and API key errors in red and exit 1."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (StudioError, EnvironmentError, ValueError) as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)
        except anthropic.APIError as e:
            console.print(f"[red]AI backend error: {e}[/red]")
            sys.exit(1)

    return wrapper


def _parse_data(pairs: tuple[str, ...]) -> dict[str, str]:
    values = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--data")
        values[key] = value
    return values


def _print_data(items: list[TestDataItem], reveal: bool) -> None:
    if not items:
        console.print("[yellow]No test data[/yellow]")
        return
    table = Table(title="Test Data")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_column("Sensitive")
    for item in items:
        view = DataItemView(item)
        if reveal and not view.revealed:
            view.toggle()
        table.add_row(item.key, view.display, "yes" if item.is_sensitive else "")
    console.print(table)


def _print_plan(session: Session, reveal: bool) -> None:
    plan = session.plan if reveal else masked_plan(session.plan, session.test_data)
    if plan.summary:
        console.print(f"\n[bold]Summary[/bold]\n{plan.summary}")
    for label, text in (("Strategy", plan.strategy), ("Scope", plan.scope),
                        ("Risks", plan.risks), ("Tools", plan.tools)):
        if text:
            console.print(f"\n[bold]{label}[/bold]\n{text}")

    for si, suite in enumerate(plan.suites):
        table = Table(title=f"[{si}] {suite.name}", caption=suite.description or None)
        table.add_column("#", justify="right")
        table.add_column("ID", style="bold")
        table.add_column("Priority")
        table.add_column("Type")
        table.add_column("Title")
        table.add_column("Steps", justify="right")
        for ci, tc in enumerate(suite.cases):
            style = _PRIORITY_STYLE.get(tc.priority.value, "")
            table.add_row(
                str(ci), tc.id, f"[{style}]{tc.priority.value}[/{style}]",
                tc.type.value, tc.title, str(len(tc.steps)),
            )
        console.print(table)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """AI-assisted QA studio: test plans, cases and automation scripts per website."""
    setup_logging(verbose)


@cli.command()
@click.option("--user", "-u", default=None, help="User id that owns new sessions")
@click.option("--data-dir", default=None, help="Directory for sessions and debug logs")
@config_option
def init(user: str | None, data_dir: str | None, config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = StudioConfig(user_id=user)
    if data_dir:
        cfg.data_dir = data_dir
    cfg.save(config_path)
    Path(cfg.data_dir).mkdir(parents=True, exist_ok=True)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nStart a session with:")
    console.print("  [blue]qa-studio new https://example.com[/blue]")


@cli.command()
@click.argument("url")
@config_option
@reports_errors
def new(url: str, config: str) -> None:
    """Start a new session for URL."""
    ws = _open(config)
    session = ws.create_session(url)
    console.print(f"[green]Created session[/green] {session.id} ({session.name})")
    console.print(f"Next: [blue]qa-studio analyze {session.id}[/blue]")


@cli.command()
@config_option
@reports_errors
def sessions(config: str) -> None:
    """List your sessions, most recent first."""
    ws = _open(config)
    items = ws.sessions()
    if not items:
        console.print("[yellow]No sessions yet[/yellow]")
        return
    table = Table(title="Sessions")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("URL")
    table.add_column("Cases", justify="right")
    table.add_column("Scripts", justify="right")
    for s in items:
        table.add_row(
            s.id, s.name, s.url,
            str(s.plan.case_count) if s.plan else "-",
            str(len(s.generated_scripts)),
        )
    console.print(table)


@cli.command()
@click.argument("session_id")
@click.option("--reveal", is_flag=True, help="Show sensitive values in plain text")
@config_option
@reports_errors
def show(session_id: str, reveal: bool, config: str) -> None:
    """Show a session's test data, plan and scripts."""
    ws = _open(config)
    session = ws.get(session_id)
    console.print(f"[bold]{session.name}[/bold]  {session.url}  ({session.artifact_scope.value})")
    _print_data(session.test_data, reveal)
    if session.plan is None:
        console.print("[yellow]No plan generated yet[/yellow]")
    else:
        _print_plan(session, reveal)
    for script in session.generated_scripts:
        console.print(f"  Script {script.id}: {script.name}")


@cli.command()
@click.argument("session_id")
@click.argument("name")
@config_option
@reports_errors
def rename(session_id: str, name: str, config: str) -> None:
    """Rename a session."""
    ws = _open(config)
    ws.rename_session(session_id, name)
    console.print(f"[green]Renamed session {session_id}:[/green] {name}")


@cli.command()
@click.argument("session_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@config_option
@reports_errors
def delete(session_id: str, yes: bool, config: str) -> None:
    """Delete a session."""
    ws = _open(config)
    session = ws.get(session_id)
    if not yes and not click.confirm(f"Delete session '{session.name}'?"):
        return
    ws.delete_session(session_id)
    console.print(f"[green]Deleted session {session_id}[/green]")


@cli.group()
def data() -> None:
    """Manage a session's test data."""
    pass


@data.command("set")
@click.argument("session_id")
@click.argument("key")
@click.argument("value")
@click.option("--sensitive/--plain", default=None, help="Mark the value as sensitive")
@config_option
@reports_errors
def data_set(session_id: str, key: str, value: str, sensitive: bool | None, config: str) -> None:
    """Set one test data value."""
    ws = _open(config)
    session = ws.set_test_value(session_id, key, value, sensitive)
    item = next(i for i in session.test_data if i.key == key)
    shown = mask_value(key, value) if item.is_sensitive else value
    console.print(f"[green]Set[/green] {key} = {shown}")


@cli.command()
@click.argument("session_id")
@config_option
@reports_errors
def analyze(session_id: str, config: str) -> None:
    """Ask the AI which test data the target needs and prefill suggestions."""
    ws = _open(config)
    with console.status("Analyzing website requirements..."):
        session = asyncio.run(ws.analyze(session_id))
    reqs = session.requirements.requirements if session.requirements else []
    table = Table(title=f"Requirements for {session.url}")
    table.add_column("Group")
    table.add_column("Key", style="bold")
    table.add_column("Description")
    table.add_column("Suggested")
    for r in reqs:
        suggested = r.suggested_value or ""
        if r.is_sensitive:
            suggested = mask_value(r.key, suggested)
        table.add_row(r.group or "", r.key, r.description, suggested)
    console.print(table)
    console.print("Adjust values with [blue]qa-studio data set[/blue], then run "
                  f"[blue]qa-studio generate {session.id}[/blue]")


@cli.command()
@click.argument("session_id")
@click.option("--scope", type=click.Choice([s.value for s in ArtifactScope]), default=None,
              help="Which artifacts to generate (default from config)")
@config_option
@reports_errors
def generate(session_id: str, scope: str | None, config: str) -> None:
    """Generate a test plan for a session, replacing any existing plan."""
    ws = _open(config)
    with console.status("Generating test plan..."):
        session = asyncio.run(ws.generate(
            session_id, scope=ArtifactScope(scope) if scope else None,
        ))
    console.print(
        f"[green]Plan generated:[/green] {len(session.plan.suites)} suites, "
        f"{session.plan.case_count} test cases"
    )


@cli.command()
@click.argument("session_id")
@click.argument("suite_index", type=int)
@click.option("--focus", type=click.Choice([t.value for t in TestType]), default=None,
              help="Test type to focus the new cases on")
@click.option("--count", type=click.IntRange(1, 20), default=None, help="How many cases")
@config_option
@reports_errors
def more(session_id: str, suite_index: int, focus: str | None, count: int | None, config: str) -> None:
    """Generate more cases for one suite."""
    ws = _open(config)
    before = ws.get(session_id).plan
    with console.status("Generating more test cases..."):
        session = asyncio.run(ws.request_more_cases(session_id, suite_index, focus, count))
    suite = session.plan.suites[suite_index]
    added = len(suite.cases) - len(before.suites[suite_index].cases)
    console.print(f"[green]Added {added} cases to '{suite.name}'[/green]")


@cli.command()
@click.argument("session_id")
@click.argument("suite_index", type=int)
@click.argument("case_index", type=int)
@click.option("--data", "data_pairs", multiple=True, help="Override test data as KEY=VALUE")
@config_option
@reports_errors
def regenerate(
    session_id: str, suite_index: int, case_index: int, data_pairs: tuple[str, ...], config: str,
) -> None:
    """Rewrite one case around new test data."""
    ws = _open(config)
    overrides = _parse_data(data_pairs)
    items = []
    for item in ws.get(session_id).test_data:
        if item.key in overrides:
            item = item.model_copy(update={"value": overrides.pop(item.key)})
        items.append(item)
    items += [TestDataItem(key=k, value=v) for k, v in overrides.items()]

    with console.status("Regenerating test case..."):
        session = asyncio.run(ws.regenerate_case(session_id, suite_index, case_index, items))
    case = session.plan.suites[suite_index].cases[case_index]
    console.print(f"[green]Regenerated[/green] {case.id}: {case.title}")


@cli.command()
@click.argument("session_id")
@click.argument("suite_index", type=int)
@click.argument("case_index", type=int)
@click.argument("field")
@click.argument("value")
@config_option
@reports_errors
def edit(session_id: str, suite_index: int, case_index: int, field: str, value: str, config: str) -> None:
    """Edit one field of a case (title, description, preconditions, type, scenario_type, priority)."""
    ws = _open(config)
    session = ws.edit_case(session_id, suite_index, case_index, field, value)
    case = session.plan.suites[suite_index].cases[case_index]
    console.print(f"[green]Updated {case.id}.{field}[/green]")


@cli.command()
@click.argument("session_id")
@click.option("--framework", "-f", type=click.Choice([f.value for f in ScriptFramework]),
              required=True, help="Automation framework")
@click.option("--suite", "suites", multiple=True, help="Limit to these suite names")
@click.option("--output", "-o", default=None, help="Write the script to this file")
@config_option
@reports_errors
def script(
    session_id: str, framework: str, suites: tuple[str, ...], output: str | None, config: str,
) -> None:
    """Generate an automation script from a session's plan."""
    ws = _open(config)
    fw = ScriptFramework(framework)
    with console.status(f"Generating {fw.value} script..."):
        generated = asyncio.run(ws.add_script(session_id, fw, list(suites) or None))

    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(generated.code, encoding="utf-8")
        console.print(f"[green]Script saved:[/green] [blue]{path}[/blue]")
    else:
        lexer = "python" if fw == ScriptFramework.SELENIUM else "typescript"
        console.print(Syntax(generated.code, lexer))
    console.print(f"Stored as script {generated.id} ({generated.name})")


@cli.command()
@click.argument("session_id")
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), default="csv", help="Export format")
@click.option("--output", "-o", default=None, help="Output file path")
@click.option("--reveal", is_flag=True, help="Include sensitive values in plain text")
@config_option
@reports_errors
def export(session_id: str, fmt: str, output: str | None, reveal: bool, config: str) -> None:
    """Export a session's plan to CSV, JSON or Markdown."""
    ws = _open(config)
    session = ws.get(session_id)
    if session.plan is None:
        console.print("[yellow]No plan to export. Run 'qa-studio generate' first.[/yellow]")
        sys.exit(1)
    path = Path(output or f"{session.name}_plan.{fmt}")
    write_export(session.plan, fmt, path, session.test_data, reveal=reveal)
    console.print(f"[green]Exported:[/green] [blue]{path}[/blue]")
    if reveal:
        console.print("[yellow]Sensitive values were written in plain text[/yellow]")


@cli.command()
@config_option
@reports_errors
def recent(config: str) -> None:
    """List recently used target URLs."""
    ws = _open(config)
    urls = ws.recent_urls()
    if not urls:
        console.print("[yellow]No recent URLs[/yellow]")
        return
    for i, url in enumerate(urls, 1):
        console.print(f"  {i}. {url}")


if __name__ == "__main__":
    cli()
