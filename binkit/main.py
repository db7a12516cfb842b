"""
binkit — CLI entrypoint.

Usage:
    python -m binkit.main --help
    python -m binkit.main which pnpm --all
    python -m binkit.main resolve node_modules/.bin/tsc
    python -m binkit.main dlx list
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from binkit import __version__
from binkit.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="binkit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to binkit.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """binkit — locate, resolve, run and cache command-line binaries."""
    from binkit.core.config.loader import ConfigError, Settings, load_settings

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    config_error: str | None = None
    try:
        settings = load_settings(ctx.obj["config_path"])
    except ConfigError as e:
        settings = Settings()
        config_error = str(e)
    ctx.obj["settings"] = settings

    # ── Logging setup (once, at process start) ──────────────────
    level = resolve_level(
        debug=debug,
        verbose=verbose,
        quiet=quiet,
        env_level=os.environ.get("BINKIT_LOG_LEVEL"),
        config_level=settings.log_level,
    )
    setup_logging(
        level=level,
        log_file=os.environ.get("BINKIT_LOG_FILE") or settings.log_file,
        log_file_level=os.environ.get("BINKIT_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    if config_error:
        click.secho(f"❌ {config_error}", fg="red", err=True)
        sys.exit(2)


# ── Lookup ──────────────────────────────────────────────────────


@cli.command()
@click.argument("name")
@click.option("--all", "-a", "show_all", is_flag=True, help="Show every match on PATH.")
@click.option(
    "--skip-shadow", is_flag=True,
    help="Ignore node_modules/.bin shadow binaries.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def which(name: str, show_all: bool, skip_shadow: bool, as_json: bool) -> None:
    """Find NAME on PATH and resolve it to the real executable."""
    import posixpath

    from binkit.core.services.bin_resolve import BinResolver, is_shadow_bin_path

    resolver = BinResolver()
    if skip_shadow:
        hits = [
            hit for hit in resolver.which_raw(name, all=True)
            if not is_shadow_bin_path(posixpath.dirname(hit))
        ]
        if not show_all:
            hits = hits[:1]
        paths = [resolver.resolve_path(hit) for hit in hits]
    else:
        found = resolver.which(name, all=show_all)
        paths = found if isinstance(found, list) else ([found] if found else [])

    if as_json:
        click.echo(json.dumps({"name": name, "paths": paths}, indent=2))
        if not paths:
            sys.exit(1)
        return

    if not paths:
        click.secho(f"Binary not found: {name}", fg="red", err=True)
        sys.exit(1)

    for path in paths:
        click.echo(path)


@cli.command()
@click.argument("path")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def resolve(path: str, as_json: bool) -> None:
    """Resolve PATH (or a bare name) through symlinks and wrapper scripts."""
    from binkit.core.services.bin_resolve import BinResolver

    resolution = BinResolver().resolve(path)

    if as_json:
        click.echo(json.dumps(resolution.model_dump(), indent=2))
        return

    click.echo(resolution.path)
    if resolution.diagnostic:
        click.secho(f"   ({resolution.stage}: {resolution.diagnostic})", fg="yellow", err=True)


# ── Execution ───────────────────────────────────────────────────


@cli.command(
    "exec",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("name")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--cwd", type=click.Path(file_okay=False), default=None, help="Working directory.")
@click.option("--timeout", type=float, default=None, help="Seconds before the process is killed.")
def exec_cmd(name: str, args: tuple[str, ...], cwd: str | None, timeout: float | None) -> None:
    """Resolve NAME and run it with ARGS."""
    from binkit.adapters.shell.spawn import SpawnError
    from binkit.core.services.bin_resolve import BinNotFoundError, exec_bin

    try:
        result = exec_bin(name, list(args), cwd=cwd, timeout=timeout)
    except BinNotFoundError as e:
        click.secho(f"❌ {e.message}", fg="red", err=True)
        sys.exit(127)
    except SpawnError as e:
        if e.stdout:
            click.echo(e.stdout, nl=False)
        if e.stderr:
            click.echo(e.stderr, nl=False, err=True)
        click.secho(f"❌ {e.message.splitlines()[0]}", fg="red", err=True)
        sys.exit(e.code if e.code else 1)

    if result.stdout:
        click.echo(result.stdout, nl=False)
    if result.stderr:
        click.echo(result.stderr, nl=False, err=True)


# ── Register sub-command groups from binkit/ui/cli/ ─────────────

from binkit.ui.cli.dlx import dlx  # noqa: E402

cli.add_command(dlx)


if __name__ == "__main__":
    cli()
