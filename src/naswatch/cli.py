"""naswatch command line: one command per stage plus config and catalog helpers."""

import logging
from pathlib import Path

import typer

from naswatch import __version__
from naswatch.checks.types import ExitPolicy
from naswatch.config import (
    ConfigError,
    NasConfig,
    ensure_default_config,
    load_config,
    read_config_document,
    render_effective_config,
    resolve_config_path,
)
from naswatch.logsink import LogSink
from naswatch.report import TIMESTAMP_MODES, write_verdict_report
from naswatch.stages import STAGES, StageContext, StageReport, StageSpec, get_stage
from naswatch.ui import console, error, render_catalog, render_verdict

EXIT_USAGE = 2

cli = typer.Typer(
    name="naswatch",
    help="naswatch - host health verification and configuration drift audit",
    no_args_is_help=True,
)

catalog_app = typer.Typer(help="Inspect the audit catalog.", no_args_is_help=True)
config_app = typer.Typer(help="Create and inspect configuration.", no_args_is_help=True)
cli.add_typer(catalog_app, name="catalog")
cli.add_typer(config_app, name="config")


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show naswatch version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Emit internal diagnostics on stderr.",
    ),
) -> None:
    _ = version
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config_or_exit(config_path: Path | None) -> NasConfig:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        error(str(exc), hint=f"reason: {exc.reason_code}")
        raise typer.Exit(EXIT_USAGE) from exc


def run_stage(
    stage_spec: StageSpec,
    config: NasConfig,
    *,
    quiet: bool = False,
    workers: int | None = None,
) -> StageReport:
    """Run one stage with a log sink configured for it."""
    max_workers = workers if workers is not None else config.probes.max_workers
    with LogSink.from_config(
        stage_spec.name,
        config.logging,
        echo=config.logging.echo and not quiet,
        truncate=stage_spec.truncate_log,
    ) as sink:
        context = StageContext(
            sink=sink,
            max_workers=max_workers,
            timeout=config.probes.timeout_seconds,
        )
        return stage_spec.run(config, context)


def _stage_command(
    name: str,
    config_path: Path | None,
    quiet: bool,
    out: Path | None,
    timestamp_mode: str,
    workers: int | None,
) -> None:
    if timestamp_mode not in TIMESTAMP_MODES:
        error(f"--timestamp-mode must be one of {', '.join(TIMESTAMP_MODES)}, got {timestamp_mode!r}")
        raise typer.Exit(EXIT_USAGE)
    if workers is not None and workers < 1:
        error("--workers must be >= 1")
        raise typer.Exit(EXIT_USAGE)

    stage_spec = get_stage(name)
    config = _load_config_or_exit(config_path)
    try:
        report = run_stage(stage_spec, config, quiet=quiet, workers=workers)
    except OSError as exc:
        error(f"cannot open log destination: {exc}", hint=f"Check logging.log_dir ({config.logging.log_dir}).")
        raise typer.Exit(EXIT_USAGE) from exc

    if not quiet:
        render_verdict(report)
    if out is not None:
        json_path, md_path = write_verdict_report(report, out, timestamp_mode)
        if not quiet:
            console.print("[cyan]Reports written to:[/cyan]")
            console.print(f"  {json_path}")
            console.print(f"  {md_path}")
    raise typer.Exit(code=report.exit_code)


def _register_stage(stage_spec: StageSpec) -> None:
    def command(
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Config file (default: $NASWATCH_CONFIG or /etc/naswatch/config.yaml).",
        ),
        quiet: bool = typer.Option(False, "--quiet", "-q", help="Log to files only; no console output."),
        out: Path | None = typer.Option(
            None,
            "--out",
            "-o",
            help="Write <STAGE>_VERDICT.json and .md into this directory.",
        ),
        timestamp_mode: str = typer.Option(
            "deterministic",
            "--timestamp-mode",
            help="Timestamp mode for reports: deterministic or wallclock",
        ),
        workers: int | None = typer.Option(
            None,
            "--workers",
            "-w",
            help="Parallel workers for read-only checks (default: probes.max_workers).",
        ),
    ) -> None:
        _stage_command(stage_spec.name, config_path, quiet, out, timestamp_mode, workers)

    command.__name__ = f"{stage_spec.name}_cmd"
    if stage_spec.exit_policy is ExitPolicy.SUPPRESS:
        exit_note = "always exits 0"
    else:
        exit_note = "exits 1 on failure"
    cli.command(name=stage_spec.name, help=f"{stage_spec.description} ({exit_note})")(command)


for _stage in STAGES.values():
    _register_stage(_stage)


@catalog_app.command(name="show")
def catalog_show(
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file."),
) -> None:
    """Show the managed artifacts the audit compares."""
    config = _load_config_or_exit(config_path)
    render_catalog(config.audit.catalog)


@config_app.command(name="init")
def config_init(
    path: Path | None = typer.Option(
        None,
        "--path",
        help="Where to write the config (default: resolved config location).",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
) -> None:
    """Write the default configuration template."""
    target = path or resolve_config_path(None)
    try:
        created = ensure_default_config(target, force=force)
    except FileExistsError as exc:
        error(str(exc), hint="Use --force to overwrite.")
        raise typer.Exit(1) from exc
    except OSError as exc:
        error(str(exc))
        raise typer.Exit(1) from exc

    console.print("[green]Config initialized[/green]")
    console.print(f"[cyan]Path:[/cyan] {created}")


@config_app.command(name="show")
def config_show(
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file."),
) -> None:
    """Validate and print the effective configuration."""
    try:
        source, raw = read_config_document(config_path)
        load_config(config_path)
    except ConfigError as exc:
        error(str(exc), hint=f"reason: {exc.reason_code}")
        raise typer.Exit(EXIT_USAGE) from exc

    origin = str(source) if source is not None else "built-in defaults"
    console.print(f"[cyan]Source:[/cyan] {origin}")
    typer.echo(render_effective_config(raw))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
