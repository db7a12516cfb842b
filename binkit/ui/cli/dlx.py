"""
CLI commands for the download cache.

Thin wrappers over ``binkit.core.services.dlx``.

Usage::

    binkit dlx run https://example.com/tool-linux-x64 -- --version
    binkit dlx list --json
    binkit dlx clean --max-age 0
    binkit dlx path
"""

from __future__ import annotations

import json
import sys

import click


def _cache(ctx: click.Context):
    """Build the cache from the loaded settings."""
    from binkit.core.config.loader import Settings
    from binkit.core.services.dlx import DlxCache

    settings = (ctx.obj or {}).get("settings") or Settings()
    return DlxCache.from_settings(settings)


def _format_age(age_ms: int) -> str:
    seconds = age_ms // 1000
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


@click.group()
def dlx() -> None:
    """Download cache — fetch, verify and run binaries from URLs."""


# ── Run a binary from a URL ────────────────────────────────────


@dlx.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option("--name", default=None, help="Binary file name inside the cache entry.")
@click.option("--checksum", default=None, help="Expected checksum (sha256 hex or algo:hex).")
@click.option("--ttl", "cache_ttl", type=int, default=None, help="Cache TTL in milliseconds.")
@click.option("--force", is_flag=True, help="Download even if a fresh copy is cached.")
@click.argument("url")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(
    ctx: click.Context,
    name: str | None,
    checksum: str | None,
    cache_ttl: int | None,
    force: bool,
    url: str,
    args: tuple[str, ...],
) -> None:
    """Download (or reuse) the binary at URL and run it with ARGS."""
    from binkit.adapters.shell.spawn import SpawnError
    from binkit.core.services.dlx import DownloadError

    try:
        outcome = _cache(ctx).binary(
            list(args),
            url=url,
            name=name,
            checksum=checksum,
            cache_ttl=cache_ttl,
            force=force,
        )
    except DownloadError as e:
        click.secho(f"❌ {e.message}", fg="red", err=True)
        sys.exit(1)
    except ValueError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(2)
    except OSError as e:
        click.secho(f"❌ Cannot write to the download cache: {e}", fg="red", err=True)
        sys.exit(1)

    if not (ctx.obj or {}).get("quiet"):
        verb = "Downloaded" if outcome.downloaded else "Cached"
        click.secho(f"📦 {verb}: {outcome.binary_path}", fg="cyan", err=True)

    try:
        result = outcome.run_handle.wait()
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


# ── Inspect / maintain ─────────────────────────────────────────


@dlx.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List cached binaries."""
    entries = _cache(ctx).list()

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    if not entries:
        click.echo("No cached binaries.")
        return

    click.secho(f"\n📦 Cached binaries: {len(entries)}", fg="cyan", bold=True)
    for entry in entries:
        click.echo(f"   • {entry.name}  ({entry.size} bytes, {_format_age(entry.age)} old)")
        click.echo(f"     {entry.url}")
    click.echo()


@dlx.command()
@click.option(
    "--max-age", "max_age_ms", type=int, default=None,
    help="Remove entries older than this many milliseconds (0 = everything). Default: cache TTL.",
)
@click.pass_context
def clean(ctx: click.Context, max_age_ms: int | None) -> None:
    """Remove stale and corrupt cache entries."""
    removed = _cache(ctx).clean(max_age_ms)
    if not (ctx.obj or {}).get("quiet"):
        click.secho(f"✅ Removed {removed} cache entr{'y' if removed == 1 else 'ies'}", fg="green")


@dlx.command()
@click.pass_context
def path(ctx: click.Context) -> None:
    """Print the cache root directory."""
    click.echo(_cache(ctx).path)
