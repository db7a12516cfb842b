"""
L3 Resolution — PATH lookup with wrapper resolution, and real-binary discovery.

``which_bin_sync`` / ``which_bin`` find a command on PATH and resolve
each hit through the wrapper pipeline. ``find_real_*`` look past
``node_modules/.bin`` shadow binaries to the package manager that is
actually installed on the machine.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath

from binkit.core.services.bin_resolve.classify import is_shadow_bin_path
from binkit.core.services.bin_resolve.normalize import normalize_path
from binkit.core.services.bin_resolve.resolver import BinResolver

logger = logging.getLogger(__name__)


def which_bin_sync(
    bin_name: str,
    *,
    all: bool = False,
    nothrow: bool = True,
    resolver: BinResolver | None = None,
) -> str | list[str] | None:
    """Find and resolve a binary on PATH.

    Args:
        bin_name: Command name.
        all: Return every match (in PATH order) instead of the first.
        nothrow: Return None instead of raising when nothing matches.
        resolver: Resolver to use (default: current platform and environment).

    Returns:
        A resolved path, a list of resolved paths when ``all`` is set,
        or None.

    Raises:
        BinNotFoundError: Nothing matches and ``nothrow`` is false.
    """
    return (resolver or BinResolver()).which(bin_name, all=all, nothrow=nothrow)


async def which_bin(
    bin_name: str,
    *,
    all: bool = False,
    nothrow: bool = True,
    resolver: BinResolver | None = None,
) -> str | list[str] | None:
    """Async ``which_bin_sync``; the filesystem walk runs in a worker thread."""
    return await asyncio.to_thread(
        which_bin_sync, bin_name, all=all, nothrow=nothrow, resolver=resolver,
    )


def find_real_bin(
    bin_name: str,
    common_paths: list[str] | tuple[str, ...] = (),
    *,
    resolver: BinResolver | None = None,
) -> str | None:
    """Find the real executable for a binary, bypassing shadow bins.

    ``common_paths`` are checked first, in order. Otherwise the first
    PATH hit wins unless it sits in ``node_modules/.bin``, in which
    case the first non-shadow PATH hit is preferred.
    """
    for candidate in common_paths:
        if candidate and os.path.exists(candidate):
            return candidate

    resolver = resolver or BinResolver()
    matches = resolver.which_raw(bin_name, all=True)
    if not matches:
        return None

    first = matches[0]
    if is_shadow_bin_path(posixpath.dirname(first)):
        for alternative in matches[1:]:
            if not is_shadow_bin_path(posixpath.dirname(alternative)):
                logger.debug("find_real_bin(%s): skipping shadow %s → %s", bin_name, first, alternative)
                return alternative
    return first


def find_real_npm(*, resolver: BinResolver | None = None) -> str:
    """Find the real npm, falling back to the bare command name."""
    resolver = resolver or BinResolver()

    # npm ships next to node
    node = resolver.which_raw("node")
    if node:
        beside_node = f"{posixpath.dirname(node[0])}/npm"
        if os.path.exists(beside_node):
            return beside_node

    found = find_real_bin("npm", ["/usr/local/bin/npm", "/usr/bin/npm"], resolver=resolver)
    if found and os.path.exists(found):
        return found
    return "npm"


def _home(resolver: BinResolver) -> str:
    return resolver.env.get("HOME") or resolver.env.get("USERPROFILE") or os.path.expanduser("~")


def find_real_pnpm(*, resolver: BinResolver | None = None) -> str | None:
    """Find the real pnpm in its conventional install locations, then on PATH."""
    resolver = resolver or BinResolver()
    env = resolver.env
    if resolver.windows:
        candidates: list[str] = []
        for var, sub in (("APPDATA", "npm"), ("LOCALAPPDATA", "pnpm")):
            if env.get(var):
                base = normalize_path(f"{env[var]}/{sub}")
                candidates += [f"{base}/pnpm.cmd", f"{base}/pnpm"]
        candidates += ["C:/Program Files/nodejs/pnpm.cmd", "C:/Program Files/nodejs/pnpm"]
    else:
        home = _home(resolver)
        data_home = env.get("XDG_DATA_HOME") or f"{home}/.local/share"
        candidates = [
            "/usr/local/bin/pnpm",
            "/usr/bin/pnpm",
            normalize_path(f"{data_home}/pnpm/pnpm"),
            normalize_path(f"{home}/.pnpm/pnpm"),
        ]
    return find_real_bin("pnpm", candidates, resolver=resolver)


def find_real_yarn(*, resolver: BinResolver | None = None) -> str | None:
    """Find the real yarn in its conventional install locations, then on PATH."""
    resolver = resolver or BinResolver()
    home = _home(resolver)
    candidates = [
        "/usr/local/bin/yarn",
        "/usr/bin/yarn",
        normalize_path(f"{home}/.yarn/bin/yarn"),
        normalize_path(f"{home}/.config/yarn/global/node_modules/.bin/yarn"),
    ]
    return find_real_bin("yarn", candidates, resolver=resolver)
