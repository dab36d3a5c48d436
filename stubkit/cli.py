from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from . import __version__
from .config import ConfigError, ConfigNotFoundError, ScaffoldConfig, load_config
from .inventory import InventoryError, inspect_templates
from .scaffold import (
    InvalidFeatureSlugError,
    ScaffoldOptions,
    ScaffoldResult,
    accept_default,
    scaffold_tests,
    validate_feature_slug,
)
from .starter import StarterError, init_templates

app = typer.Typer(help="Generate boilerplate test stubs for project features.")
console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_NOT_FOUND = 3
EXIT_ABORTED = 4


class OutputFormat(str, Enum):
    table = "table"
    json = "json"
    md = "md"


def _configure_logging(quiet: bool) -> None:
    package_logger = logging.getLogger("stubkit")
    package_logger.setLevel(logging.WARNING if quiet else logging.INFO)
    if not any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=err_console, show_time=False, show_path=False))


def _json_print(payload: dict) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=True, sort_keys=True))


def _print_key_value_table(title: str, rows: list[tuple[str, str]]) -> None:
    table = Table(title=title)
    table.add_column("Field")
    table.add_column("Value")
    for key, value in rows:
        table.add_row(key, value)
    console.print(table)


def _emit_success(
    command: str,
    output_format: OutputFormat,
    data: dict,
    md_renderer: Callable[[dict], str] | None = None,
    table_renderer: Callable[[dict], None] | None = None,
) -> None:
    if output_format == OutputFormat.json:
        _json_print(
            {
                "ok": True,
                "command": command,
                "exit_code": EXIT_OK,
                "data": data,
            }
        )
        return

    if output_format == OutputFormat.md and md_renderer is not None:
        typer.echo(md_renderer(data))
        return

    if output_format == OutputFormat.table and table_renderer is not None:
        table_renderer(data)
        return

    # Fallback for simple commands without dedicated renderer.
    if output_format == OutputFormat.md:
        lines = [f"# {command}", ""]
        lines.extend(f"- **{key}**: {value}" for key, value in data.items())
        typer.echo("\n".join(lines))
    else:
        _print_key_value_table(
            title=command,
            rows=[(str(key), str(value)) for key, value in data.items()],
        )


def _emit_error(
    command: str,
    output_format: OutputFormat,
    exit_code: int,
    code: str,
    message: str,
) -> NoReturn:
    if output_format == OutputFormat.json:
        _json_print(
            {
                "ok": False,
                "command": command,
                "exit_code": exit_code,
                "error": {
                    "code": code,
                    "message": message,
                },
            }
        )
    elif output_format == OutputFormat.md:
        typer.echo(f"# {command}\n\n- **status**: error\n- **code**: {code}\n- **message**: {message}")
    else:
        err_console.print(f"[red]Error ({code}):[/red] {escape(message)}", highlight=False)

    raise typer.Exit(code=exit_code)


def _load_config_or_exit(
    command: str,
    output_format: OutputFormat,
    root: Path,
    config_path: Path | None,
) -> ScaffoldConfig:
    try:
        return load_config(root, config_path)
    except ConfigNotFoundError as error:
        _emit_error(
            command=command,
            output_format=output_format,
            exit_code=EXIT_NOT_FOUND,
            code="config_not_found",
            message=str(error),
        )
    except ConfigError as error:
        _emit_error(
            command=command,
            output_format=output_format,
            exit_code=EXIT_INVALID_INPUT,
            code="config_error",
            message=str(error),
        )


def _split_types(values: Optional[List[str]]) -> tuple[str, ...] | None:
    if values is None:
        return None
    return tuple(item.strip() for value in values for item in value.split(",") if item.strip())


def _prompt_confirm(message: str, default: bool) -> bool:
    # stdout is reserved for the command output.
    return Confirm.ask(escape(message), default=default, console=err_console)


def _scaffold_data(feature: str, result: ScaffoldResult) -> dict:
    return {
        "feature": feature,
        "feature_path": result.feature_path,
        "dry_run": result.dry_run,
        "suites": list(result.suites),
        "files_created": list(result.files_created),
        "skipped": list(result.skipped),
        "failed": list(result.failed),
    }


def _summary_lines(payload: dict) -> list[str]:
    feature = payload["feature"]
    files = payload["files_created"]
    if not files:
        return [
            f"No test stub files were created for '{feature}'. "
            "Check template directory or use --force for existing files."
        ]
    if payload["dry_run"]:
        lines = [f"[dry-run] Test stubs for '{feature}' would be managed at the following paths:"]
        lines.extend(f"  {path}" for path in files)
        return lines
    return [f"Created test file: {path}" for path in files]


@app.command("scaffold")
def scaffold_feature(
    feature: str = typer.Argument(..., help="Feature slug: letters, digits, '_' or '-'."),
    types: Optional[List[str]] = typer.Option(
        None, "--types", "-t", help="Suite type(s) to scaffold. Repeat or comma-separate."
    ),
    all_types: bool = typer.Option(False, "--all", help="Scaffold every configured default suite type."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report intended changes without writing anything."),
    force: bool = typer.Option(False, "--force", help="Overwrite existing test files."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Create a missing feature folder without prompting."),
    root: Path = typer.Option(Path("."), "--root", help="Project root."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: stubkit.yml)."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
):
    """Create test stubs for a feature from the configured templates."""
    _configure_logging(quiet)
    try:
        validate_feature_slug(feature)
    except InvalidFeatureSlugError as error:
        _emit_error(
            command="scaffold",
            output_format=output_format,
            exit_code=EXIT_INVALID_INPUT,
            code="invalid_feature_slug",
            message=str(error),
        )

    config = _load_config_or_exit("scaffold", output_format, root, config_path)
    options = ScaffoldOptions(
        dry_run=dry_run,
        force=force,
        all=all_types,
        types=_split_types(types),
    )
    result = scaffold_tests(
        feature,
        options,
        config,
        root=root,
        confirm=accept_default if yes else _prompt_confirm,
    )

    if result.aborted:
        if output_format == OutputFormat.table:
            typer.echo("Aborted by user. Feature folder not created.")
            raise typer.Exit(code=EXIT_ABORTED)
        _emit_error(
            command="scaffold",
            output_format=output_format,
            exit_code=EXIT_ABORTED,
            code="aborted",
            message="Aborted by user. Feature folder not created.",
        )
    if not result.success:
        _emit_error(
            command="scaffold",
            output_format=output_format,
            exit_code=EXIT_ERROR,
            code="folder_creation_failed",
            message=result.error or "Scaffolding failed.",
        )

    def render_md(payload: dict) -> str:
        lines = [f"# Test stubs: `{payload['feature']}`", ""]
        lines.append(f"- **feature_path**: `{payload['feature_path']}`")
        lines.append(f"- **suites**: {', '.join(payload['suites'])}")
        lines.append(f"- **dry_run**: {payload['dry_run']}")
        lines.append("")
        lines.extend(_summary_lines(payload))
        if payload["skipped"]:
            lines.append("\n## Skipped")
            lines.extend(f"- `{item}`" for item in payload["skipped"])
        if payload["failed"]:
            lines.append("\n## Failed suite types")
            lines.extend(f"- `{item}`" for item in payload["failed"])
        return "\n".join(lines)

    def render_table(payload: dict) -> None:
        for line in _summary_lines(payload):
            typer.echo(line)
        if payload["skipped"] or payload["failed"]:
            table = Table(title=f"Not generated for {payload['feature']}")
            table.add_column("Item")
            table.add_column("Reason")
            for item in payload["skipped"]:
                table.add_row(item, "exists (use --force)")
            for item in payload["failed"]:
                table.add_row(item, "template missing or write failed")
            console.print(table)

    _emit_success(
        command="scaffold",
        output_format=output_format,
        data=_scaffold_data(feature, result),
        md_renderer=render_md,
        table_renderer=render_table,
    )


app.command("ts", hidden=True)(scaffold_feature)


@app.command("init")
def init_project(
    root: Path = typer.Option(Path("."), "--root", help="Project root."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: stubkit.yml)."),
    types: Optional[List[str]] = typer.Option(
        None, "--types", "-t", help="Suite type(s) to install starters for. Repeat or comma-separate."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing templates."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
):
    """Install starter test templates and a stubkit.yml."""
    _configure_logging(quiet)
    config = _load_config_or_exit("init", output_format, root, config_path)
    try:
        report = init_templates(root, config, types=_split_types(types), force=force)
    except StarterError as error:
        _emit_error(
            command="init",
            output_format=output_format,
            exit_code=EXIT_INVALID_INPUT,
            code="starter_error",
            message=str(error),
        )

    data = {
        "template_dir": str(report.template_dir),
        "created": list(report.created),
        "skipped": list(report.skipped),
    }

    def render_md(payload: dict) -> str:
        lines = [f"# Starter templates in `{payload['template_dir']}`", ""]
        lines.append(f"- **created**: {', '.join(payload['created']) if payload['created'] else 'none'}")
        lines.append(f"- **skipped**: {', '.join(payload['skipped']) if payload['skipped'] else 'none'}")
        return "\n".join(lines)

    def render_table(payload: dict) -> None:
        table = Table(title=f"Starter templates: {payload['template_dir']}")
        table.add_column("File")
        table.add_column("Status")
        for item in payload["created"]:
            table.add_row(item, "created")
        for item in payload["skipped"]:
            table.add_row(item, "kept")
        console.print(table)

    _emit_success(command="init", output_format=output_format, data=data, md_renderer=render_md, table_renderer=render_table)


@app.command("templates")
def list_templates(
    root: Path = typer.Option(Path("."), "--root", help="Project root."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file (default: stubkit.yml)."),
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
):
    """Show which configured suite types have a template."""
    _configure_logging(quiet=True)
    config = _load_config_or_exit("templates", output_format, root, config_path)
    try:
        report = inspect_templates(config, root)
    except InventoryError as error:
        _emit_error(
            command="templates",
            output_format=output_format,
            exit_code=EXIT_NOT_FOUND,
            code="template_dir_not_found",
            message=str(error),
        )

    data = {
        "template_dir": str(report.template_dir),
        "available": list(report.available),
        "missing": list(report.missing),
        "extra": list(report.extra),
    }

    def render_md(payload: dict) -> str:
        lines = [f"# Templates in `{payload['template_dir']}`", ""]
        lines.append(f"- **available**: {', '.join(payload['available']) if payload['available'] else 'none'}")
        lines.append(f"- **missing**: {', '.join(payload['missing']) if payload['missing'] else 'none'}")
        lines.append(f"- **extra**: {', '.join(payload['extra']) if payload['extra'] else 'none'}")
        return "\n".join(lines)

    def render_table(payload: dict) -> None:
        table = Table(title=f"Templates: {payload['template_dir']}")
        table.add_column("Suite type")
        table.add_column("Status")
        for item in payload["available"]:
            table.add_row(item, "[green]available[/green]")
        for item in payload["missing"]:
            table.add_row(item, "[yellow]missing[/yellow]")
        for item in payload["extra"]:
            table.add_row(item, "not in defaults")
        console.print(table)

    _emit_success(
        command="templates",
        output_format=output_format,
        data=data,
        md_renderer=render_md,
        table_renderer=render_table,
    )


@app.command("version")
def version(
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
) -> None:
    """Print version."""
    _emit_success(command="version", output_format=output_format, data={"version": __version__})


if __name__ == "__main__":
    app()
