"""Command-line interface for multi-provider code review."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from multi_review import __version__
from multi_review.config import ConfigError, load_config, validate_config
from multi_review.formatting import format_markdown, format_result_as_json, format_summary_markdown
from multi_review.orchestrator import NoProvidersError, run_review
from multi_review.providers import build_registry

# Status output goes to stderr so stdout stays clean for JSON and markdown
console = Console(stderr=True)

EXIT_CONFIG_ERROR = 1
EXIT_NO_PROVIDERS = 2
EXIT_NEEDS_WORK = 10


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _diff_stats(diff: str) -> tuple[int, int, int]:
    """Count files, added lines and removed lines in a unified diff."""
    files = additions = deletions = 0
    for line in diff.splitlines():
        if line.startswith("diff --git "):
            files += 1
        elif line.startswith("+") and not line.startswith("+++"):
            additions += 1
        elif line.startswith("-") and not line.startswith("---"):
            deletions += 1
    return files, additions, deletions


def _load_context(context_file: str | None) -> dict[str, Any]:
    if not context_file:
        return {}
    try:
        data = json.loads(Path(context_file).read_text())
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--context-file") from e
    if not isinstance(data, dict):
        raise click.BadParameter("must contain a JSON object", param_hint="--context-file")
    return data


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """Multi-Review - parallel code review by several AI providers."""
    setup_logging(verbose)


@cli.command("review")
@click.argument("diff_file", type=click.File("r"))
@click.option("--context-file", type=click.Path(exists=True), help="JSON file with PR context")
@click.option("--providers", help="Comma-separated provider names (default: all enabled)")
@click.option("--threshold", type=float, help="Consensus agreement threshold (0-1]")
@click.option(
    "--output", type=click.Choice(["json", "markdown", "summary"]), default="markdown"
)
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def review(
    diff_file: TextIO,
    context_file: str | None,
    providers: str | None,
    threshold: float | None,
    output: str,
    config_path: str | None,
) -> None:
    """Review a unified diff (use - for stdin).

    Exits 10 when the consensus verdict is critical_vulnerabilities or
    needs_review, 2 when no provider is available.
    """
    diff = diff_file.read()
    if not diff.strip():
        console.print("[yellow]Empty diff - nothing to review[/yellow]")
        return

    context = _load_context(context_file)
    files, additions, deletions = _diff_stats(diff)
    context.setdefault("file_count", files)

    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    errors = validate_config(config)
    if threshold is not None and not 0.0 < threshold <= 1.0:
        errors.append(f"--threshold must be in (0, 1], got {threshold}")
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/red] {error}")
        sys.exit(EXIT_CONFIG_ERROR)

    console.print(f"🔍 Reviewing diff ({len(diff)} bytes, {files} files)...")

    try:
        result = asyncio.run(
            run_review(diff, context, providers=providers, threshold=threshold, config=config)
        )
    except NoProvidersError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(EXIT_NO_PROVIDERS)

    consensus = result.consensus
    console.print(
        f"✅ Review complete: [bold]{consensus.verdict.value}[/bold] "
        f"({consensus.voting_count}/{consensus.total_count} voting, "
        f"{consensus.agreement:.0%} agreement, {result.issue_stats.total} issues)"
    )
    if result.failed_providers:
        console.print(
            f"[yellow]⚠️  {len(result.failed_providers)} providers failed: "
            f"{', '.join(result.failed_providers)}[/yellow]"
        )

    if output == "json":
        click.echo(json.dumps(format_result_as_json(result), indent=2))
    elif output == "summary":
        click.echo(format_summary_markdown(result, files, additions, deletions))
    else:
        click.echo(format_markdown(result))

    if result.has_blocking_verdict:
        sys.exit(EXIT_NEEDS_WORK)


@cli.command("providers")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def providers_cmd(config_path: str | None) -> None:
    """List registered providers and whether they can be used."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    registry = build_registry(config)

    table = Table(title="Review Providers")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Model")
    table.add_column("Configured")
    table.add_column("Enabled")

    for name in registry.names():
        info = registry.info(name)
        table.add_row(
            name,
            info["type"],
            info["model"],
            "yes" if info["configured"] else "no",
            "[green]yes[/green]" if info["enabled"] else "[dim]no[/dim]",
        )

    Console().print(table)


@cli.group("config")
def config_group() -> None:
    """Configuration commands."""
    pass


@config_group.command("validate")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def config_validate(config_path: str | None) -> None:
    """Validate configuration file."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    errors = validate_config(config)
    if errors:
        console.print("[red]Configuration is invalid:[/red]")
        for error in errors:
            console.print(f"  • {error}")
        sys.exit(EXIT_CONFIG_ERROR)

    console.print("[green]✓ Configuration is valid[/green]")


if __name__ == "__main__":
    cli()
