"""
L3 Resolution — From an invoked path to the program that actually runs.

Pipeline (each stage may short-circuit):

    1. normalize          forward slashes, ``.``/``..`` collapsed
    2. search             bare names are looked up on PATH
    3. realpath           symlinks resolved; missing files degrade to the literal path
    4. version manager    Volta shims re-targeted to the pinned image
    5. wrapper decode     generated shell/batch/PowerShell shims parsed for their target
    6. result             always normalized

Nothing here raises for filesystem conditions. A degraded outcome
carries a ``diagnostic`` on the returned ``Resolution`` instead.
"""

from __future__ import annotations

import errno
import logging
import os
import posixpath
import re
import sys
from collections.abc import Mapping

from binkit.core.data.constants import (
    BINARY_SIGNATURES,
    MAX_WRAPPER_BYTES,
    NPM_BINS,
    PNPM_YARN_BINS,
    WINDOWS_WRAPPER_EXTS,
)
from binkit.core.models.resolution import Resolution
from binkit.core.services.bin_resolve.errors import BinNotFoundError
from binkit.core.services.bin_resolve.normalize import (
    is_absolute,
    join_relative,
    normalize_path,
    to_path_str,
)
from binkit.core.services.bin_resolve.path_search import PathSearcher
from binkit.core.services.bin_resolve.templates import match_wrapper
from binkit.core.services.bin_resolve.volta import VersionManagerLayout, find_volta_root

logger = logging.getLogger(__name__)

# setup-pnpm leaves paths like .../node_modules/.bin/pnpm/bin/pnpm.cjs
_CI_NESTED_BIN_RE = re.compile(r"^(.*/\.bin/(?:pnpm|yarn))/bin/")

_OS_ERROR_DIAGNOSTICS: dict[int, str] = {
    errno.ENOENT: "not-found",
    errno.ENOTDIR: "not-a-directory",
    errno.EACCES: "permission-denied",
    errno.EPERM: "permission-denied",
    errno.ELOOP: "symlink-loop",
}


def _diagnose(exc: OSError | ValueError) -> str:
    if isinstance(exc, ValueError):
        return "invalid-path"
    return _OS_ERROR_DIAGNOSTICS.get(exc.errno or 0, "os-error")


def _split_name(path: str) -> tuple[str, str]:
    """``(stem, ext)`` of a normalized path's last segment."""
    stem, ext = posixpath.splitext(posixpath.basename(path))
    return stem, ext


class BinResolver:
    """Resolves binary names and paths for one platform and environment.

    The PATH table and Volta records are read lazily and kept for the
    lifetime of the instance.
    """

    def __init__(
        self,
        platform: str | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> None:
        self.platform = platform or sys.platform
        self.windows = self.platform == "win32"
        self.env: Mapping[str, str] = dict(os.environ) if env is None else env
        self.cwd = cwd or os.getcwd()
        self.searcher = PathSearcher.from_env(self.env, windows=self.windows, cwd=self.cwd)
        self._volta: dict[str, VersionManagerLayout] = {}

    # ── Public API ──────────────────────────────────────────────

    def resolve(self, bin_path: str | os.PathLike) -> Resolution:
        """Resolve a binary path or name to the real executable path."""
        requested = to_path_str(bin_path)
        normalized = normalize_path(requested)
        if normalized == ".":
            return Resolution(requested=requested, path=normalized)

        literal = normalized
        if not is_absolute(requested, windows=self.windows):
            matches = self.searcher.search(requested)
            if not matches:
                logger.debug("resolve %r: not on PATH", requested)
                return Resolution(
                    requested=requested, path=normalized, stage="search", diagnostic="not-on-path",
                )
            literal = normalize_path(matches[0])

        literal = self._repair_ci_nested_bin(literal)

        real, diagnostic = self._realpath(literal)

        volta = self._resolve_volta(literal)
        if volta:
            return Resolution(requested=requested, path=volta, stage="version-manager")

        if real is not None:
            decoded = self._decode_wrapper(literal)
            if decoded:
                target, template_name = decoded
                resolved_target, _ = self._realpath(target)
                return Resolution(
                    requested=requested,
                    path=resolved_target or target,
                    stage="wrapper",
                    wrapper=template_name,
                )
            return Resolution(requested=requested, path=real, stage="realpath")

        logger.debug("resolve %r: %s, keeping %s", requested, diagnostic, literal)
        return Resolution(requested=requested, path=literal, stage="literal", diagnostic=diagnostic)

    def resolve_path(self, bin_path: str | os.PathLike) -> str:
        """Like ``resolve`` but returns only the path string."""
        return self.resolve(bin_path).path

    def which(
        self,
        name: str,
        *,
        all: bool = False,
        nothrow: bool = True,
    ) -> str | list[str] | None:
        """Find ``name`` on PATH and resolve each hit.

        Returns:
            The first resolved path, every resolved path when ``all`` is
            set, or None when nothing matches and ``nothrow`` is set.

        Raises:
            BinNotFoundError: Nothing matches and ``nothrow`` is false.
        """
        matches = self.searcher.search(name, all=all)
        if not matches:
            if nothrow:
                return None
            raise BinNotFoundError(name)
        if all:
            return [self.resolve_path(match) for match in matches]
        return self.resolve_path(matches[0])

    def which_raw(self, name: str, *, all: bool = False) -> list[str]:
        """PATH hits for ``name`` without wrapper resolution, normalized."""
        return [normalize_path(match) for match in self.searcher.search(name, all=all)]

    # ── Stages ──────────────────────────────────────────────────

    def _realpath(self, path: str) -> tuple[str | None, str | None]:
        """``(real, None)`` on success, ``(None, diagnostic)`` when it degrades."""
        try:
            return normalize_path(os.path.realpath(path, strict=True)), None
        except (OSError, ValueError) as e:
            return None, _diagnose(e)

    def _repair_ci_nested_bin(self, path: str) -> str:
        stem, _ = _split_name(path)
        if stem not in PNPM_YARN_BINS:
            return path
        match = _CI_NESTED_BIN_RE.match(path)
        if match and os.path.isfile(match.group(1)):
            logger.debug("resolve: nested CI bin path %s → %s", path, match.group(1))
            return match.group(1)
        return path

    def _resolve_volta(self, path: str) -> str | None:
        stem, _ = _split_name(path)
        if stem == "node":
            return None
        root = find_volta_root(path)
        if root is None:
            return None
        layout = self._volta.get(root)
        if layout is None:
            layout = self._volta[root] = VersionManagerLayout(root, windows=self.windows)
        located = layout.locate(stem)
        if located is None:
            return None
        real, _ = self._realpath(located)
        return real or normalize_path(located)

    def _decode_wrapper(self, path: str) -> tuple[str, str] | None:
        """Return ``(target, template_name)`` if ``path`` is a recognized wrapper."""
        stem, ext = _split_name(path)
        ext_lower = ext.lower()
        base_dir = posixpath.dirname(path)

        if self.windows:
            if ext_lower not in WINDOWS_WRAPPER_EXTS:
                return None
            if stem in NPM_BINS:
                # e.g. C:/Program Files/nodejs/npm.cmd next to node_modules/npm
                quick = f"{base_dir}/node_modules/npm/bin/{stem}-cli.js"
                if os.path.isfile(quick):
                    return normalize_path(quick), "npm-install-dir"
            if ext_lower == ".exe":
                return None
        elif ext_lower:
            return None

        source = self._read_script(path)
        if source is None:
            return None
        matched = match_wrapper(source, stem, ext_lower, windows=self.windows)
        if matched is None:
            return None
        template, rel_target = matched
        target = join_relative(base_dir, rel_target)
        logger.debug("resolve: %s is a %s wrapper → %s", path, template.name, target)
        return target, template.name

    def _read_script(self, path: str) -> str | None:
        try:
            with open(path, "rb") as fh:
                head = fh.read(MAX_WRAPPER_BYTES + 1)
        except OSError as e:
            logger.debug("resolve: cannot read %s: %s", path, e)
            return None
        if len(head) > MAX_WRAPPER_BYTES or head.startswith(BINARY_SIGNATURES):
            return None
        try:
            return head.decode("utf-8")
        except UnicodeDecodeError:
            return None


def resolve_bin_path_sync(
    bin_path: str | os.PathLike,
    *,
    resolver: BinResolver | None = None,
) -> str:
    """Resolve a binary path to its actual executable file.

    Never raises for missing files: the normalized input comes back
    instead.
    """
    return (resolver or BinResolver()).resolve_path(bin_path)
