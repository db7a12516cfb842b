"""
L4 Execution — Resolve a binary and run it.

``exec_bin`` is the only caller-facing place where "could not find the
binary" becomes an error: resolution itself never fails.
"""

from __future__ import annotations

import logging
import os
import posixpath
from collections.abc import Mapping, Sequence

from binkit.adapters.shell.spawn import SpawnResult, spawn
from binkit.core.data.constants import WINDOWS_SCRIPT_EXTS
from binkit.core.services.bin_resolve.errors import BinNotFoundError
from binkit.core.services.bin_resolve.normalize import is_path
from binkit.core.services.bin_resolve.resolver import BinResolver

logger = logging.getLogger(__name__)


def needs_shell(bin_path: str, *, windows: bool) -> bool:
    """Windows batch and PowerShell scripts must go through the shell."""
    return windows and posixpath.splitext(bin_path)[1].lower() in WINDOWS_SCRIPT_EXTS


def exec_bin(
    bin_path: str,
    args: Sequence[str] | None = None,
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    resolver: BinResolver | None = None,
) -> SpawnResult:
    """Resolve ``bin_path`` and run it with ``args``.

    Paths go through the wrapper pipeline; bare names are looked up on
    PATH first.

    Raises:
        BinNotFoundError: Nothing runnable was found.
        SpawnError: The process exited non-zero.
    """
    resolver = resolver or BinResolver()
    if is_path(bin_path):
        resolved: str | None = resolver.resolve_path(bin_path)
        if resolved and not os.path.exists(resolved):
            resolved = None
    else:
        found = resolver.which(bin_path)
        resolved = found if isinstance(found, str) else None

    if not resolved:
        raise BinNotFoundError(bin_path)

    logger.debug("exec_bin: %s → %s", bin_path, resolved)
    try:
        return spawn(
            resolved,
            list(args or []),
            cwd=cwd,
            env=env,
            timeout=timeout,
            shell=needs_shell(resolved, windows=resolver.windows),
        )
    except (FileNotFoundError, NotADirectoryError) as e:
        raise BinNotFoundError(bin_path) from e
