"""Hook Janitor CLI - unused-method detection for event-driven plugin code."""
from pathlib import Path
import time
from typing import List, Optional

import click
import typer
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from src.analyzer.cancellation import CancellationToken
from src.analyzer.hook_registry import HookOrigin, HookRegistries, load_hook_registries
from src.analyzer.hook_matcher import HookMatcher
from src.analyzer.pipeline import AnalysisSession, Finding, FindingVariant
from src.analyzer.program import Program
from src.analyzer.symbols import MethodSymbol, TypeRef
from src.config import get_config
from src.reporter.messages import DIAGNOSTIC_ID, format_message, format_suggestion
from src.utils.safe_console import SafeConsole

app = typer.Typer(
    name="hook-janitor",
    help="Find unused plugin methods and suggest the hooks they were meant to be",
    add_completion=False
)
console = SafeConsole()

# Registry inspection sub-command
hooks_app = typer.Typer(name="hooks", help="Inspect the hook registries")

VARIANT_LABELS = {
    FindingVariant.PLAIN_UNUSED: "unused",
    FindingVariant.UNUSED_WITH_HOOK_SUGGESTIONS: "hook?",
    FindingVariant.UNUSED_AS_COMMAND: "command?",
}

VARIANT_FILTERS = {
    "unused": FindingVariant.PLAIN_UNUSED,
    "hooks": FindingVariant.UNUSED_WITH_HOOK_SUGGESTIONS,
    "commands": FindingVariant.UNUSED_AS_COMMAND,
}

# Containing type for signatures typed on the command line
AD_HOC_TYPE = TypeRef("<command-line>")


def _load_registries(rules_dir: Optional[str]) -> HookRegistries:
    return load_hook_registries(Path(rules_dir) if rules_dir else get_config().rules_dir)


def _resolve_project(project_path: str) -> Path:
    path = Path(project_path).resolve()
    if not path.exists():
        console.print(f"[bold red]Error:[/bold red] Project path does not exist: {escape(str(path))}")
        raise typer.Exit(1)
    return path


def build_session(project_path: Path, rules_dir: Optional[str] = None) -> AnalysisSession:
    """Load registries and sources, then bind the program (no analysis yet)."""
    registries = _load_registries(rules_dir)
    program = Program.from_directory(project_path)
    return AnalysisSession(program, registries, settings=get_config().similarity_settings())


def _print_findings(findings: List[Finding], details: bool):
    table = Table(title=f"Unused Methods ({DIAGNOSTIC_ID})")
    table.add_column("Method", style="cyan")
    table.add_column("Kind", style="yellow")
    table.add_column("Location", style="magenta", no_wrap=False)
    table.add_column("Suggestions", style="green", no_wrap=False)

    for finding in findings:
        table.add_row(
            escape(finding.method.display_name),
            VARIANT_LABELS[finding.variant],
            escape(str(finding.location)),
            escape(", ".join(format_suggestion(c) for c in finding.suggestions)),
        )
    console.print(table)

    if details:
        for finding in findings:
            console.print(f"\n[bold]{escape(str(finding.location))}[/bold] {DIAGNOSTIC_ID}")
            console.print(escape(format_message(finding)))


@app.command()
def audit(
    project_path: str = typer.Argument(".", help="Plugin directory or file to analyze"),
    details: bool = typer.Option(False, "--details", "-d", help="Print the full message for each finding"),
    strict: bool = typer.Option(False, "--strict", help="Exit with code 1 when any finding is reported"),
    only: Optional[str] = typer.Option(
        None, "--only", help="Show one kind of finding",
        click_type=click.Choice(list(VARIANT_FILTERS), case_sensitive=False)
    ),
    rules_dir: Optional[str] = typer.Option(None, "--rules-dir", help="Directory holding the hook rule JSON files"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Analysis threads"),
):
    """Scan plugin sources and list unused methods."""
    path = _resolve_project(project_path)
    console.print(f"[bold blue]Analyzing plugins:[/bold blue] {escape(str(path))}\n")

    start_time = time.time()
    with Progress(SpinnerColumn(), TextColumn("[bold blue]{task.description}"),
                  TimeElapsedColumn(), transient=True, console=console) as progress:
        task = progress.add_task("[cyan]Binding program...", total=None)
        session = build_session(path, rules_dir)
        progress.update(task, description=f"[yellow]Analyzing {len(session.declarations)} methods...")
        findings = session.run(workers=workers or get_config().workers, cancellation=CancellationToken())
    elapsed = time.time() - start_time

    if only:
        findings = [f for f in findings if f.variant is VARIANT_FILTERS[only.lower()]]

    if findings:
        _print_findings(findings, details)
    else:
        console.print("[bold green]No unused methods found![/bold green]")

    console.print(f"\n[dim]{len(session.program)} file(s), {len(session.declarations)} method(s), "
                  f"{len(findings)} finding(s) in {elapsed:.2f}s[/dim]")

    if strict and findings:
        raise typer.Exit(1)


@app.command()
def explain(
    project_path: str = typer.Argument(..., help="Plugin directory or file"),
    method: str = typer.Argument(..., help="Method name or Class.method"),
    rules_dir: Optional[str] = typer.Option(None, "--rules-dir", help="Directory holding the hook rule JSON files"),
):
    """Show why a method is or is not reported."""
    path = _resolve_project(project_path)
    session = build_session(path, rules_dir)

    declarations = session.declarations_named(method)
    if not declarations:
        console.print(f"[bold red]No method named[/bold red] {escape(method)}")
        raise typer.Exit(1)

    for declaration in declarations:
        header = declaration.symbol.display_name if declaration.symbol else declaration.name
        console.print(f"[bold cyan]{escape(header)}[/bold cyan] [dim]{escape(str(declaration.location))}[/dim]")

        reason = session.pipeline.skip_policy.reason(declaration)
        if reason:
            console.print(f"  Skipped: {escape(reason)}")
            continue

        if declaration.symbol.is_override:
            console.print("  Used: overrides a base class method")
            continue

        evidence = session.usage_resolver.evidence_for(declaration.symbol)
        if evidence is not None:
            console.print(f"  Used: {evidence.kind.value} at {escape(str(evidence.location))}")
            continue

        finding = session.pipeline.evaluate(declaration)
        console.print(f"  {escape(format_message(finding))}")


@hooks_app.command("stats")
def hooks_stats(
    rules_dir: Optional[str] = typer.Option(None, "--rules-dir", help="Directory holding the hook rule JSON files"),
):
    """Show how many hooks each registry holds."""
    registries = _load_registries(rules_dir)

    table = Table(title="Hook Registries")
    table.add_column("Origin", style="cyan")
    table.add_column("Hooks", justify="right", style="yellow")
    counts = registries.counts()
    for origin in HookOrigin:
        table.add_row(origin.value, str(counts[origin]))
    console.print(table)
    console.print(f"[dim]Total: {sum(counts.values())} hooks[/dim]")


@hooks_app.command("similar")
def hooks_similar(
    name: str = typer.Argument(..., help="Method name to match"),
    parameters: Optional[List[str]] = typer.Argument(None, help="Parameter types, e.g. BasePlayer str"),
    rules_dir: Optional[str] = typer.Option(None, "--rules-dir", help="Directory holding the hook rule JSON files"),
):
    """Rank known hooks by similarity to an ad-hoc signature."""
    matcher = HookMatcher(_load_registries(rules_dir), get_config().similarity_settings())
    signature = MethodSymbol(name, tuple(TypeRef.parse(p) for p in parameters or []), AD_HOC_TYPE)

    if matcher.is_hook(signature):
        console.print(f"[bold green]{escape(name)} is an exact hook signature[/bold green]")
        return

    candidates = matcher.similar(signature)
    if not candidates:
        console.print("[dim]No similar hooks[/dim]")
        return

    table = Table(title=f"Hooks similar to {escape(name)}")
    table.add_column("Hook", style="cyan")
    table.add_column("Origin", style="magenta")
    table.add_column("Score", justify="right", style="yellow")
    for candidate in candidates:
        table.add_row(escape(format_suggestion(candidate)), candidate.signature.origin.value, f"{candidate.score:.3f}")
    console.print(table)


# Register hooks sub-command
app.add_typer(hooks_app)


@app.callback()
def main():
    """Hook Janitor - unused-method detection for event-driven plugin code."""
    pass


if __name__ == "__main__":
    app()
