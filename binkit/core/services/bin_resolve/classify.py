"""
L1 Domain — Path and execution-context predicates (pure).

Answers three questions callers ask before dispatching a command:
is this path a shadow binary (``node_modules/.bin``), does it live in a
package-manager-managed tree, and are we running inside a throwaway
``npx``/``dlx`` execution directory.

Environment variables are read, never written.
"""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Mapping

from binkit.core.services.bin_resolve.normalize import normalize_path, to_path_str

_MANAGED_TREE_RE = re.compile(r"(?:^|[/\\])node_modules(?:[/\\]|$)")

# Directory markers of temporary package execution contexts.
_TEMP_EXECUTOR_MARKERS: tuple[str, ...] = (
    "_npx",          # npm's npx cache
    ".pnpm-store",   # pnpm dlx store
    "dlx-",          # common dlx directory prefix
    ".yarn/$$",      # Yarn Berry PnP virtual packages
)
_WINDOWS_TEMP_EXECUTOR_MARKERS: tuple[str, ...] = (
    "AppData/Local/Temp/xfs-",  # Yarn on Windows
)

_USER_AGENT_MARKERS: tuple[str, ...] = ("exec", "npx", "dlx")


def is_shadow_bin_path(path_like: str | os.PathLike | None) -> bool:
    """True when the path has a ``node_modules`` segment directly followed by ``.bin``."""
    filepath = to_path_str(path_like)
    if not filepath:
        return False
    segments = normalize_path(filepath).split("/")
    return any(
        first == "node_modules" and second == ".bin"
        for first, second in zip(segments, segments[1:])
    )


def is_in_managed_tree(path_like: str | os.PathLike | None) -> bool:
    """True when the path contains a ``node_modules`` segment anywhere."""
    filepath = to_path_str(path_like)
    if not filepath:
        return False
    return bool(_MANAGED_TREE_RE.search(filepath))


def is_running_in_temporary_executor(
    cwd: str | os.PathLike | None = None,
    *,
    env: Mapping[str, str] | None = None,
    windows: bool | None = None,
) -> bool:
    """Detect ``npm exec`` / ``npx`` / ``pnpm dlx`` / ``yarn dlx`` contexts.

    Those run from directories that are deleted afterwards, so nothing
    persistent (shims, PATH edits) should be created from them.
    """
    env = os.environ if env is None else env
    if windows is None:
        windows = sys.platform == "win32"

    user_agent = env.get("npm_config_user_agent", "")
    if any(marker in user_agent for marker in _USER_AGENT_MARKERS):
        return True

    normalized_cwd = normalize_path(os.getcwd() if cwd is None else cwd)

    npm_cache = env.get("npm_config_cache")
    if npm_cache and normalize_path(npm_cache) in normalized_cwd:
        return True

    markers = _TEMP_EXECUTOR_MARKERS
    if windows:
        markers = markers + _WINDOWS_TEMP_EXECUTOR_MARKERS
    return any(marker in normalized_cwd for marker in markers)


def should_skip_shadow(
    bin_path: str | None,
    *,
    cwd: str | os.PathLike | None = None,
    windows: bool | None = None,
    env: Mapping[str, str] | None = None,
) -> bool:
    """Decide whether installing a shadow binary must be skipped.

    On Windows an already-resolved binary is never shadowed: running
    executables are locked, so writing a shim next to them fails.
    """
    if windows is None:
        windows = sys.platform == "win32"
    if windows and bin_path:
        return True
    return is_running_in_temporary_executor(cwd, env=env, windows=windows)
