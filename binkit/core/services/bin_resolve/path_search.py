"""
L2 Search — Executable lookup over the PATH directory list.

Mirrors what a shell does when a bare command is typed: walk every
PATH entry in order and keep the candidates that exist and are
runnable. On Windows the current directory is searched first and each
``PATHEXT`` extension is tried.

The directory table is built once per searcher; callers that need a
fresh view of PATH construct a new searcher.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from binkit.core.data.constants import DEFAULT_PATHEXT

logger = logging.getLogger(__name__)


class PathSearcher:
    """Finds executables by name on a PATH-style directory list."""

    def __init__(
        self,
        path_env: str = "",
        *,
        pathext: str = DEFAULT_PATHEXT,
        windows: bool = False,
        cwd: str | None = None,
    ) -> None:
        self.windows = windows
        self.cwd = cwd or os.getcwd()
        self._delimiter = ";" if windows else os.pathsep
        self._path_env = path_env
        self._pathext = pathext or DEFAULT_PATHEXT
        self._dirs: list[str] | None = None

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str],
        *,
        windows: bool,
        cwd: str | None = None,
    ) -> PathSearcher:
        """Build a searcher from an environment mapping (``PATH``, ``PATHEXT``)."""
        path_env = env.get("PATH") or env.get("Path") or ""
        return cls(
            path_env,
            pathext=env.get("PATHEXT", DEFAULT_PATHEXT),
            windows=windows,
            cwd=cwd,
        )

    # ── Directory table ─────────────────────────────────────────

    @property
    def directories(self) -> list[str]:
        """PATH entries in search order (quotes stripped, empties dropped)."""
        if self._dirs is None:
            dirs: list[str] = [self.cwd] if self.windows else []
            for entry in self._path_env.split(self._delimiter):
                if len(entry) >= 2 and entry[0] == entry[-1] == '"':
                    entry = entry[1:-1]
                if entry:
                    dirs.append(entry)
            self._dirs = dirs
            logger.debug("PATH table: %d directories", len(dirs))
        return self._dirs

    def _extensions(self, name: str) -> list[str]:
        if not self.windows:
            return [""]
        exts: list[str] = []
        for ext in self._pathext.split(";"):
            if ext and ext not in exts:
                exts.append(ext)
            if ext and ext.lower() not in exts:
                exts.append(ext.lower())
        # "foo.cmd" may already carry its extension
        if "." in name:
            exts.insert(0, "")
        return exts

    def _is_executable(self, candidate: str) -> bool:
        if not os.path.isfile(candidate):
            return False
        if self.windows:
            return True
        return os.access(candidate, os.X_OK)

    # ── Lookup ──────────────────────────────────────────────────

    def search(self, name: str, *, all: bool = False) -> list[str]:
        """Return matching executables in PATH order.

        Args:
            name: Bare command name, or a relative/absolute path.
            all: Collect every match instead of stopping at the first.

        Returns:
            Absolute paths, de-duplicated, possibly empty.
        """
        if not name:
            return []

        if "/" in name or (self.windows and "\\" in name):
            # Names with a separator are never looked up on PATH.
            directories = [""]
        else:
            directories = self.directories

        found: list[str] = []
        for directory in directories:
            base = os.path.join(directory or self.cwd, name)
            for ext in self._extensions(name):
                candidate = base + ext
                if candidate in found or not self._is_executable(candidate):
                    continue
                found.append(candidate)
                if not all:
                    return found
        return found
