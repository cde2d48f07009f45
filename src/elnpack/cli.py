"""Command line interface for elnpack."""

from __future__ import annotations

import difflib
from datetime import datetime
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from elnpack.archive import ArchiveFormatError, ArchiveWriter, read_archive_manifest, verify_archive
from elnpack.config import ConfigError, ConfigManager, ElnPackConfig, flatten_for_env, resolve_with_precedence
from elnpack.executor import CommandExecutor, PillowThumbnailLoader, PresetFilePicker, Runtime
from elnpack.executor.runtime import Listener
from elnpack.integrity import HashComputer
from elnpack.logs import configure_logging
from elnpack.naming import sanitize_component, suggested_archive_name
from elnpack.state import AppModel, BodyFormat, EventKind, Genre, SavePhase, StatusEvent
from elnpack.update import messages as m

console = Console()

RUN_TIMEOUT_SECONDS = 600.0


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    if summary_only and mode not in {"summary", "warning", "error"}:
        return

    console.print(message)


def _format_summary_line(command: str, target: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands."""

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {target}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: ElnPackConfig,
    *,
    json_output: bool,
    quiet: bool,
    summary_mode: bool,
) -> tuple[bool, bool]:
    """Combine CLI flags with configured defaults.

    Returns:
        tuple[bool, bool]: Effective ``(quiet, summary_only)`` flags.

    Raises:
        click.ClickException: If the requested modes conflict.
    """

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _load_config() -> ElnPackConfig:
    manager = ConfigManager()
    manager.ensure_exists()
    config = manager.load()
    configure_logging(config.logging)
    return config


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(f"Cannot assign into '{segment}' because it is not a mapping in the config file.")
        node = existing
    node[path[-1]] = value


def _event_mode(event: StatusEvent) -> str:
    if event.kind.is_error or event.kind == EventKind.SANITIZATION_FALLBACK:
        return "warning"
    return "detail"


def _format_event(event: StatusEvent) -> str:
    if event.kind.is_error:
        return f"[yellow]{event.kind.value}: {event.message}[/yellow]"
    if event.kind == EventKind.SANITIZATION_FALLBACK:
        return f"[cyan]{event.message}[/cyan]"
    return event.message


class _EventPrinter:
    """Print status events as the runtime records them."""

    def __init__(self, *, quiet: bool, summary_only: bool) -> None:
        self.quiet = quiet
        self.summary_only = summary_only
        self.warnings = 0
        self._seen = 0

    def __call__(self, model: AppModel, msg: m.Message) -> None:
        fresh = min(model.event_count - self._seen, len(model.events))
        for event in model.events[len(model.events) - fresh :]:
            if _event_mode(event) == "warning":
                self.warnings += 1
            _emit_message(
                _format_event(event),
                mode=_event_mode(event),
                quiet=self.quiet,
                summary_only=self.summary_only,
            )
        self._seen = model.event_count


def _build_runtime(
    config: ElnPackConfig,
    picker: PresetFilePicker,
    model: AppModel,
    listener: Listener | None = None,
) -> Runtime:
    hasher = HashComputer(chunk_size=config.attachments.hash_chunk_kb * 1024)
    executor = CommandExecutor(
        picker=picker,
        thumbnails=PillowThumbnailLoader(max_px=config.attachments.thumbnail_max_px),
        hasher=hasher,
        writer=ArchiveWriter(
            hasher,
            compression=config.archive.compression,
            render_math=config.archive.render_math,
        ),
    )
    return Runtime(executor, model, max_workers=config.executor.max_workers, listener=listener)


def _parse_performed_at(value: str | None) -> datetime:
    if value is None:
        return datetime.now().astimezone()
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise click.ClickException(
            f"Invalid --performed-at value '{value}'; use ISO 8601 such as 2024-05-01T14:30+02:00."
        ) from exc


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="elnpack")
def cli() -> None:
    """elnPack bundles lab notes, attachments and metadata into .eln archives."""


@cli.command()
@click.option("--title", required=True, help="Entry title.")
@click.option("--body", type=str, help="Main text as markdown.")
@click.option(
    "--body-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the main text from a markdown file.",
)
@click.option(
    "-a",
    "--attach",
    "attachments",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File to attach; repeat for several files.",
)
@click.option("--keywords", type=str, help="Comma-separated keywords.")
@click.option("--genre", type=click.Choice([genre.value for genre in Genre]), help="Entry genre.")
@click.option(
    "--body-format",
    type=click.Choice([fmt.value for fmt in BodyFormat]),
    help="Store the body as rendered HTML or raw markdown.",
)
@click.option(
    "--metadata",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="eLabFTW extra-fields JSON to import.",
)
@click.option("--performed-at", type=str, help="Entry date/time in ISO 8601; defaults to now.")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Archive path; defaults to the title-derived name in the current directory.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the written archive.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def pack(
    ctx: click.Context,
    title: str,
    body: str | None,
    body_file: Path | None,
    attachments: tuple[Path, ...],
    keywords: str | None,
    genre: str | None,
    body_format: str | None,
    metadata: Path | None,
    performed_at: str | None,
    output: Path | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Assemble an entry and write it as a .eln archive.

    Args:
        ctx: Click context used for parameter source inspection.
        title: Entry title.
        body: Inline markdown body.
        body_file: Markdown file providing the body.
        attachments: Files to attach.
        keywords: Comma-separated keywords.
        genre: Entry genre override.
        body_format: Body storage format override.
        metadata: eLabFTW extra-fields JSON to import.
        performed_at: ISO 8601 entry date/time.
        output: Destination archive path.
        json_output: If True, emit JSON describing the archive.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.

    Raises:
        click.ClickException: If the entry is invalid or the archive cannot be written.
    """

    json_enabled = json_output
    try:
        config = _load_config()
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
        )
        if body is not None and body_file is not None:
            raise click.ClickException("--body cannot be combined with --body-file.")
        text = body_file.read_text(encoding="utf-8") if body_file is not None else (body or "")
        when = _parse_performed_at(performed_at)

        destination = (output or Path.cwd() / suggested_archive_name(title)).expanduser().resolve()
        picker = PresetFilePicker(
            files=[[path.expanduser().resolve() for path in attachments]],
            metadata_files=[metadata.expanduser().resolve()] if metadata is not None else [],
            destinations=[destination],
        )

        printer = None if json_output else _EventPrinter(quiet=quiet_enabled, summary_only=summary_only)
        initial = AppModel(
            genre=Genre(genre or config.archive.genre),
            body_format=BodyFormat(body_format or config.archive.body_format),
        )
        with _build_runtime(config, picker, initial, printer) as runtime:
            runtime.dispatch(m.TitleChanged(title))
            runtime.dispatch(m.MarkdownChanged(text))
            runtime.dispatch(m.NowSet(when))
            if keywords:
                runtime.dispatch(m.KeywordsAdded(keywords))
            if attachments:
                runtime.dispatch(m.PickFilesRequested())
            if metadata is not None:
                runtime.dispatch(m.ImportRequested())
            runtime.run_until_idle(RUN_TIMEOUT_SECONDS)
            runtime.dispatch(m.SaveRequested())
            model = runtime.run_until_idle(RUN_TIMEOUT_SECONDS)

        if model.save.phase != SavePhase.SUCCEEDED:
            failure = model.error
            if failure is None:
                raise click.ClickException("Archive was not written.")
            _handle_cli_error(
                failure.message,
                code=failure.kind.value,
                json_output=json_enabled,
                details=failure.details or None,
            )
            return

        completed = model.events[-1]
        written = model.save.last_archive
        if json_output:
            console.print_json(
                data={
                    "archive": {
                        "path": str(written),
                        "sha256": completed.details.get("sha256"),
                        "size": completed.details.get("size"),
                    },
                    "attachments": [
                        {
                            "name": item.sanitized_name,
                            "original_name": item.original_name,
                            "sha256": item.hash_at_add,
                            "size": item.size,
                            "mime": item.mime,
                        }
                        for item in model.attachments
                    ],
                    "keywords": list(model.keywords.items),
                    "fields": len(model.extra_fields.fields),
                    "events": [event.model_dump(mode="json") for event in model.events],
                }
            )
            return

        warnings = printer.warnings if printer is not None else 0
        _emit_message(
            _format_summary_line(
                "Pack",
                written or destination,
                {
                    "attachments": len(model.attachments),
                    "keywords": len(model.keywords.items),
                    "fields": len(model.extra_fields.fields),
                    "warnings": warnings,
                    "sha256": completed.details.get("sha256"),
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_enabled, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(exc.format_message(), code="cli_error", json_output=json_enabled, original=exc)
    except TimeoutError as exc:
        _handle_cli_error(str(exc), code="timeout", json_output=json_enabled, original=exc)


@cli.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Emit the parsed manifest as JSON.")
def inspect(archive: Path, json_output: bool) -> None:
    """Show the entry stored in ARCHIVE."""

    try:
        manifest = read_archive_manifest(archive)
    except ArchiveFormatError as exc:
        _handle_cli_error(str(exc), code="archive_format", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data=manifest.model_dump(mode="json"))
        return

    console.print(f"[bold]{manifest.title}[/bold] ({manifest.genre}, {manifest.body_format})")
    if manifest.date_created:
        console.print(f"Created: {manifest.date_created}")
    if manifest.keywords:
        console.print(f"Keywords: {', '.join(manifest.keywords)}")

    table = Table(title=f"Attachments in {archive.name}")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("SHA-256")
    for item in manifest.files:
        table.add_row(item.name, item.mime or "", str(item.size or ""), item.sha256 or "")
    console.print(table)

    fields = manifest.extra_fields.get("extra_fields", {})
    if fields:
        console.print(f"Metadata fields: {', '.join(fields)}")


@cli.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Emit the verification report as JSON.")
def verify(archive: Path, json_output: bool) -> None:
    """Re-digest every attachment in ARCHIVE against its recorded checksum."""

    try:
        report = verify_archive(archive)
    except ArchiveFormatError as exc:
        _handle_cli_error(str(exc), code="archive_format", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data={**report.model_dump(mode="json"), "ok": report.ok})
    else:
        for name in report.mismatched:
            console.print(f"[red]Checksum mismatch: {name}[/red]")
        for name in report.missing:
            console.print(f"[red]Missing from archive: {name}[/red]")
        console.print(
            _format_summary_line(
                "Verify",
                archive,
                {"checked": report.checked, "mismatched": len(report.mismatched), "missing": len(report.missing)},
            )
        )
    if not report.ok:
        raise SystemExit(1)


@cli.command()
@click.argument("names", nargs=-1, required=True)
def sanitize(names: tuple[str, ...]) -> None:
    """Print the archive-safe form of each NAME."""

    for name in names:
        click.echo(sanitize_component(name))


@cli.group()
def config() -> None:
    """Manage elnpack configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.option(
    "--env",
    "as_env",
    is_flag=True,
    help="Print the effective values as ELNPACK__ environment assignments.",
)
def config_view(no_env: bool, as_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_env:
        for key, value in flatten_for_env(effective).items():
            click.echo(f"{key}={value}")
        return

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'archive.compression'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=ElnPackConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=ElnPackConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
