"""
L2 Version manager — Volta image lookup.

Volta puts one dispatching shim per tool in ``~/.volta/bin``. The real
files live under ``~/.volta/tools/image`` keyed by version, and the
pinned versions are recorded under ``~/.volta/tools/user``:

    tools/user/platform.json       {"node": {"runtime": "20.1.0", "npm": "10.2.0"}}
    tools/user/bin/<tool>.json     {"package": "typescript", ...}
    tools/image/npm/<v>/bin/npm-cli.js
    tools/image/node/<v>/lib/node_modules/npm/bin/npm-cli.js
    tools/image/packages/<pkg>/bin/<tool>

A missing or unreadable record is not an error: the lookup returns
None and the caller keeps the shim path.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any

from binkit.core.data.constants import NPM_BINS

logger = logging.getLogger(__name__)

_VOLTA_DIR_RE = re.compile(r"(?<=/)\.volta/", re.IGNORECASE)


def find_volta_root(path: str) -> str | None:
    """Return the ``.../.volta`` directory a normalized path lives under, if any."""
    match = _VOLTA_DIR_RE.search(path)
    if not match:
        return None
    return path[: match.end() - 1]


@dataclass
class VersionManagerLayout:
    """Directory layout of one Volta installation."""

    root: str
    windows: bool = False
    _records: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def image_dir(self) -> str:
        return f"{self.root}/tools/image"

    @property
    def user_dir(self) -> str:
        return f"{self.root}/tools/user"

    def _read_record(self, path: str) -> Any:
        if path in self._records:
            return self._records[path]
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            logger.debug("Volta record %s unavailable: %s", path, e)
            data = None
        self._records[path] = data
        return data

    def pinned_versions(self) -> tuple[str | None, str | None]:
        """``(node_runtime, npm)`` from ``platform.json``."""
        data = self._read_record(f"{self.user_dir}/platform.json")
        node = data.get("node") if isinstance(data, dict) else None
        if not isinstance(node, dict):
            return None, None
        runtime, npm = node.get("runtime"), node.get("npm")
        return (
            runtime if isinstance(runtime, str) and runtime else None,
            npm if isinstance(npm, str) and npm else None,
        )

    def tool_package(self, name: str) -> str | None:
        """Package that provides ``name``, from ``tools/user/bin/<name>.json``."""
        data = self._read_record(f"{self.user_dir}/bin/{name}.json")
        package = data.get("package") if isinstance(data, dict) else None
        return package if isinstance(package, str) and package else None

    def candidates(self, name: str) -> list[str]:
        """Image paths that may hold the real ``name``, most specific first."""
        if name in NPM_BINS:
            runtime, npm = self.pinned_versions()
            rel = f"bin/{name}-cli.js"
            paths: list[str] = []
            if npm:
                paths.append(f"{self.image_dir}/npm/{npm}/{rel}")
            if runtime:
                paths.append(f"{self.image_dir}/node/{runtime}/lib/node_modules/npm/{rel}")
                if self.windows:
                    paths.append(f"{self.image_dir}/node/{runtime}/node_modules/npm/{rel}")
            return paths

        package = self.tool_package(name)
        if not package:
            return []
        base = f"{self.image_dir}/packages/{package}/bin/{name}"
        return [base, f"{base}.cmd"] if self.windows else [base]

    def locate(self, name: str) -> str | None:
        """First existing image path for ``name``, or None."""
        for candidate in self.candidates(name):
            if os.path.isfile(candidate):
                logger.debug("Volta: %s → %s", name, candidate)
                return candidate
        return None
