"""Command line interface for chunkwatch."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from chunkwatch.chunking import ChunkPipeline, ChunkwatchError, SplitResult, compare_files
from chunkwatch.config import ChunkwatchConfig, ConfigError, ConfigManager, resolve_with_precedence
from chunkwatch.logs import configure_logging
from chunkwatch.state import ProcessedSet, StateError
from chunkwatch.watch import ScanResult, WatchService

console = Console()
err_console = Console(stderr=True)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print ``message`` unless quiet or summary mode hides its ``mode``."""
    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, target: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {target}: {parts}.[/green]"


def _load_config(
    *,
    json_output: bool,
    overrides: dict[str, Any] | None = None,
) -> ChunkwatchConfig:
    try:
        manager = ConfigManager()
        manager.ensure_exists()
        return manager.load(cli_overrides=overrides)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)


def _resolve_output_modes(
    ctx: click.Context,
    config: ChunkwatchConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE
    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output and explicit_quiet and quiet_enabled:
        raise click.ClickException("--json cannot be combined with --quiet.")
    if json_output and explicit_summary and summary_only:
        raise click.ClickException("--json cannot be combined with --summary.")
    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _setup_logging(
    config: ChunkwatchConfig,
    *,
    quiet: bool,
    summary_only: bool,
    json_output: bool,
) -> None:
    level = None
    if quiet or json_output:
        level = "ERROR"
    elif summary_only:
        level = "WARNING"
    configure_logging(config.logging, console=err_console, level_override=level)


def _emit_scan(scan: ScanResult, *, json_output: bool, quiet: bool, summary_only: bool) -> None:
    """Render output for one completed directory scan."""
    if json_output:
        console.print_json(data=scan.to_payload())
        return

    if scan.error:
        _emit_message(f"[red]{scan.error}[/red]", mode="error", quiet=quiet, summary_only=summary_only)
        return

    if not scan.outcomes:
        _emit_message(
            f"[dim]Scan {scan.tick}: no new files.[/dim]",
            mode="detail",
            quiet=quiet,
            summary_only=summary_only,
        )
        return

    if not summary_only and not quiet:
        table = Table(title=f"Scan {scan.tick}")
        table.add_column("File")
        table.add_column("Status")
        table.add_column("Chunks", justify="right")
        for outcome in scan.outcomes:
            chunks = str(len(outcome.result.chunks)) if outcome.result is not None else "-"
            table.add_row(outcome.path.name, outcome.status, chunks)
        console.print(table)

    for outcome in scan.outcomes:
        if outcome.status in {"failed", "timed_out"}:
            _emit_message(
                f"[red]{outcome.path.name}: {outcome.error}[/red]",
                mode="error",
                quiet=quiet,
                summary_only=summary_only,
            )
        elif outcome.status == "unverified":
            _emit_message(
                f"[yellow]{outcome.path.name}: integrity check failed.[/yellow]",
                mode="warning",
                quiet=quiet,
                summary_only=summary_only,
            )

    _emit_message(
        _format_summary_line("Watch", scan.output_dir, scan.counts),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


def _split_payload(result: SplitResult) -> dict[str, Any]:
    payload = result.model_dump(mode="json")
    payload["verified"] = result.verified
    return payload


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="chunkwatch")
def cli() -> None:
    """chunkwatch splits incoming files into fixed-size chunks and verifies them."""


@cli.command()
@click.option(
    "--input",
    "input_dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Directory to poll for new files.",
)
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Directory receiving chunk files.",
)
@click.option("--interval", type=float, help="Override the poll interval in seconds.")
@click.option("--once", is_flag=True, help="Scan the input directory once and exit.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing each scan.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def watch(
    ctx: click.Context,
    input_dir: str | None,
    output_dir: str | None,
    interval: float | None,
    once: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Poll the input directory and split every new file.

    Args:
        ctx: Click context for parameter source inspection.
        input_dir: Optional input directory override.
        output_dir: Optional output directory override.
        interval: Optional poll interval override in seconds.
        once: When True, run a single scan and exit.
        json_output: When True, emit JSON payloads instead of text.
        summary_mode: When True, restrict output to summary/warning lines.
        quiet: When True, suppress non-error output entirely.
    """
    if interval is not None and interval <= 0:
        raise click.ClickException("--interval must be greater than zero.")

    overrides: dict[str, Any] = {}
    if input_dir:
        overrides["watch.input_dir"] = input_dir
    if output_dir:
        overrides["watch.output_dir"] = output_dir
    config = _load_config(json_output=json_output, overrides=overrides)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
    )
    _setup_logging(config, quiet=quiet_enabled, summary_only=summary_only, json_output=json_output)

    try:
        service = WatchService(config, interval_override=interval)
    except StateError as exc:
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)

    def _render(scan: ScanResult) -> None:
        _emit_scan(scan, json_output=json_output, quiet=quiet_enabled, summary_only=summary_only)

    if not once:
        _emit_message(
            f"[cyan]Watching {service.input_dir}. Press Ctrl+C to stop.[/cyan]",
            mode="detail",
            quiet=quiet_enabled or json_output,
            summary_only=summary_only,
        )
    try:
        if once:
            _render(service.scan_once())
        else:
            service.run(_render)
    except StateError as exc:
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)
    except KeyboardInterrupt:
        service.stop()
        _emit_message(
            "[yellow]Watch stopped by user request.[/yellow]",
            mode="summary",
            quiet=quiet_enabled or json_output,
            summary_only=summary_only,
        )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Directory receiving chunk files.",
)
@click.option(
    "--mode",
    type=click.Choice(["auto", "text", "binary"]),
    default="auto",
    show_default=True,
    help="Pipeline to use; auto picks one from the extension.",
)
@click.option("--chunk-size", type=int, help="Chunk size in characters (text) or bytes (binary).")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the split.")
def split(
    path: Path,
    output_dir: str | None,
    mode: str,
    chunk_size: int | None,
    json_output: bool,
) -> None:
    """Split a single PATH into chunks and verify the round trip.

    Exits with status 1 when the integrity check fails.
    """
    overrides: dict[str, Any] = {}
    if output_dir:
        overrides["watch.output_dir"] = output_dir
    if chunk_size is not None:
        overrides["chunking.chunk_size_bytes"] = chunk_size
    config = _load_config(json_output=json_output, overrides=overrides)
    _setup_logging(config, quiet=False, summary_only=False, json_output=json_output)

    pipeline = ChunkPipeline(config, store=ProcessedSet())
    try:
        result = pipeline.process(path, None if mode == "auto" else mode)  # type: ignore[arg-type]
    except ChunkwatchError as exc:
        _handle_cli_error(str(exc), code="split_error", json_output=json_output, original=exc)

    if json_output:
        console.print_json(data=_split_payload(result))
    else:
        metrics = {
            "file": path.name,
            "mode": result.source.mode,
            "chunks": len(result.chunks),
            "check": "Pass" if result.verified else "Fail",
        }
        console.print(_format_summary_line("Split", pipeline.output_dir, metrics))
    if not result.verified:
        raise SystemExit(1)


@cli.command()
@click.argument("original", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("candidate", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mode", type=click.Choice(["text", "binary"]), default="binary", show_default=True)
@click.option("--encoding", default="utf-8", show_default=True, help="Text mode encoding.")
def verify(original: Path, candidate: Path, mode: str, encoding: str) -> None:
    """Compare ORIGINAL with CANDIDATE; exit with status 1 when they differ."""
    try:
        identical = compare_files(original, candidate, mode, encoding=encoding)  # type: ignore[arg-type]
    except ChunkwatchError as exc:
        _handle_cli_error(str(exc), code="verify_error", json_output=False, original=exc)
    if identical:
        console.print("[green]Files are identical. No data loss.[/green]")
        return
    console.print("[red]Files do not match. Data might be lost.[/red]")
    raise SystemExit(1)


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at the dotted ``path`` inside ``target``.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(f"Cannot assign into '{segment}' because it is not a mapping.")
        node = existing
    node[path[-1]] = value


@cli.group()
def config() -> None:
    """Manage chunkwatch configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


def _settings_by_key(config: ChunkwatchConfig) -> dict[str, Any]:
    """Return every setting of ``config`` keyed by its dotted name."""
    flat: dict[str, Any] = {}

    def _walk(prefix: str, value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk(f"{prefix}.{key}" if prefix else str(key), child)
            return
        flat[prefix] = value

    _walk("", config.model_dump(mode="json"))
    return flat


def _resolve_file(file_data: dict[str, Any]) -> ChunkwatchConfig:
    try:
        return resolve_with_precedence(defaults=ChunkwatchConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _print_changes(before: dict[str, Any], after: dict[str, Any]) -> int:
    """Print one ``key: old -> new`` line per changed setting and return the count."""
    changed = [key for key in after if before.get(key) != after[key]]
    for key in changed:
        console.print(f"  {key}: {before.get(key)!r} -> {after[key]!r}", markup=False)
    return len(changed)


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY, parsed as YAML.")
def config_set(key: str, value: str) -> None:
    """Persist one setting such as ``chunking.chunk_size_bytes`` to the config file."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        file_data = manager.load_file_overrides()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    before = _settings_by_key(_resolve_file(file_data))
    key = key.strip()
    if key not in before:
        hint = difflib.get_close_matches(key, list(before), n=1)
        suggestion = f" Did you mean '{hint[0]}'?" if hint else ""
        raise click.ClickException(f"Unknown chunkwatch setting '{key}'.{suggestion}")
    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value for {key}: {exc}") from exc

    try:
        _assign_nested(file_data, key.split("."), parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    after = _settings_by_key(_resolve_file(file_data))

    manager.save(file_data)
    if not _print_changes(before, after):
        console.print(f"[yellow]{key} already set to {after[key]!r}.[/yellow]")
        return
    console.print(f"[green]Updated {key} in {manager.config_path}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the config file in $EDITOR and save it only if every setting validates."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        before = _settings_by_key(_resolve_file(manager.load_file_overrides()))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        console.print("[yellow]Config file left unchanged.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Edited config is not valid YAML; nothing saved: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Edited config must be a mapping of sections; nothing saved.")

    after = _settings_by_key(_resolve_file(parsed))
    manager.save(parsed)
    count = _print_changes(before, after)
    console.print(f"[green]{count} setting(s) changed; saved {manager.config_path}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
