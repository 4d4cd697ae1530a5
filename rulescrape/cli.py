"""CLI interface for rulescrape."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from rulescrape.config import BatchSettings, DocumentSettings, ExtractionSettings, RulesSettings, set_settings
from rulescrape.formatters import format_as_json, format_batch_as_json
from rulescrape.models import BatchResult
from rulescrape.pipeline.parse import DocumentParseError
from rulescrape.pipeline.pipeline import extract_file, run_pipeline
from rulescrape.pipeline.rules import Rule, RuleParseError, get_rulesets, load_rules_file
from rulescrape.pipeline.rules_factory import build_rule_engine, describe_rule
from rulescrape.pipeline.transformations import UnknownTransformationError, get_default_registry

console = Console(stderr=True)


def setup_logging(log_level: str) -> None:
    """Configure logging with rich handler."""
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _write_output(text: str, output_path: Path | None) -> None:
    """Write output text to file or stdout."""
    if output_path:
        output_path.write_text(text, encoding="utf-8")
    else:
        click.echo(text)


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    sys.exit(1)


def _configure_settings(rules_file: Path, ruleset: str, workers: int | None) -> ExtractionSettings:
    """Configure extraction settings from command line options."""
    batch = BatchSettings() if workers is None else BatchSettings(workers=workers)
    settings = ExtractionSettings(
        rules=RulesSettings(rules_file=str(rules_file), ruleset=ruleset),
        document=DocumentSettings(),
        batch=batch,
    )
    set_settings(settings)
    return settings


def display_failed_files(result: BatchResult) -> None:
    """Display failed files with their errors."""
    if not result.failed_files:
        return

    console.print("\n[bold red]Failed Files:[/bold red]")
    for file_path, error in result.failed_files.items():
        console.print(f"  [red]✗[/red] {escape(str(file_path))}")
        console.print(f"    [dim]{escape(error)}[/dim]")


def _add_rule_to_tree(tree: Tree, rule: Rule) -> None:
    for child in rule.children.values():
        branch = tree.add(f"[cyan]{escape(child.label)}[/cyan] [dim]{escape(describe_rule(child))}[/dim]")
        _add_rule_to_tree(branch, child)
    if rule.item is not None:
        branch = tree.add(f"[magenta]item[/magenta] [dim]{escape(describe_rule(rule.item))}[/dim]")
        _add_rule_to_tree(branch, rule.item)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    help="Set the logging level",
)
def main(log_level: str) -> None:
    """Declarative structured data extraction from HTML."""
    setup_logging(log_level.upper())


@main.command()
@click.argument("rules_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--ruleset",
    type=str,
    default="default",
    help="Name of the ruleset inside the rules file (default: default)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file path (default: stdout)",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Worker threads for directories (default: BATCH_WORKERS or 4)",
)
@click.option(
    "--compact",
    is_flag=True,
    default=False,
    help="Write JSON without indentation",
)
def extract(
    rules_file: Path,
    path: Path,
    ruleset: str,
    output: Path | None,
    workers: int | None,
    compact: bool,
) -> None:
    """Extract a record from an HTML file, or from every file in a directory."""
    settings = _configure_settings(rules_file, ruleset, workers)
    try:
        engine = build_rule_engine(settings)
    except (RuleParseError, UnknownTransformationError) as e:
        _fail(str(e))

    if path.is_file():
        try:
            record = extract_file(path, engine, settings.document.encoding)
        except DocumentParseError as e:
            _fail(str(e))
        _write_output(format_as_json(record, pretty=not compact), output)
        return

    result = run_pipeline(path, settings, engine)
    _write_output(format_batch_as_json(result, pretty=not compact), output)
    display_failed_files(result)
    if result.success_count == 0 and result.failure_count > 0:
        sys.exit(1)


@main.command()
@click.argument("rules_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--ruleset",
    type=str,
    default=None,
    help="Ruleset to show (default: list all rulesets)",
)
def rules(rules_file: Path, ruleset: str | None) -> None:
    """Show the rulesets in a rules file, or the rule tree of one ruleset."""
    out = Console()
    try:
        if ruleset is None:
            names = list(get_rulesets(load_rules_file(str(rules_file))))
            out.print(f"[bold blue]Rulesets in {escape(str(rules_file))}:[/bold blue]")
            for name in names:
                out.print(f"  [cyan]•[/cyan] {escape(str(name))}")
            return
        settings = _configure_settings(rules_file, ruleset, None)
        engine = build_rule_engine(settings)
    except (RuleParseError, UnknownTransformationError) as e:
        _fail(str(e))

    tree = Tree(f"[bold blue]Ruleset: {escape(ruleset)}[/bold blue]")
    _add_rule_to_tree(tree, engine.root)
    out.print(tree)


@main.command()
def transformations() -> None:
    """List the registered transformations."""
    table = Table(title="Transformations", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for registered in get_default_registry().items():
        table.add_row(registered.name, registered.description)
    Console().print(table)


if __name__ == "__main__":
    main()
