"""
L5 Orchestration — Download-and-execute binary cache.

Layout::

    <cache root>/<sha256(url)>/<binary name>
    <cache root>/<sha256(url)>/.dlx-metadata.json

``DlxCache.binary`` walks CheckCache → (Reuse | Download → Verify →
Persist) → Ready. Nothing is written for a key until its content has
been fetched and verified.

Listing and cleaning never raise for corrupt entries: they are skipped
(listing) or removed (cleaning).
"""

from __future__ import annotations

import hashlib
import logging
import os
import platform as host_platform
import shutil
import sys
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from binkit.adapters.shell.spawn import RunHandle, start
from binkit.core.config.loader import Settings
from binkit.core.data.constants import (
    ARCH_MAP,
    DEFAULT_CACHE_TTL_MS,
    DLX_CACHE_SUBDIR,
    DLX_METADATA_FILE,
    DOWNLOAD_TIMEOUT_SECONDS,
)
from binkit.core.models.cache import CacheEntry, CacheMetadata, DownloadOutcome
from binkit.core.persistence.metadata_file import load_metadata, save_metadata, write_bytes_atomic
from binkit.core.services.bin_resolve.execute import needs_shell
from binkit.core.services.bin_resolve.normalize import normalize_path
from binkit.core.services.dlx.download import checksums_match, fetch_bytes, verify_checksum

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]


# ── Paths and keys ──────────────────────────────────────────────


def user_cache_dir(env: Mapping[str, str] | None = None, system: str | None = None) -> Path:
    """The platform's conventional per-user cache directory."""
    env = os.environ if env is None else env
    system = system or host_platform.system()
    home = Path(env.get("HOME") or Path.home())

    if system == "Darwin":
        return home / "Library" / "Caches"
    if system == "Windows":
        local_app_data = env.get("LOCALAPPDATA")
        return Path(local_app_data) if local_app_data else home / "AppData" / "Local"
    xdg_cache = env.get("XDG_CACHE_HOME")
    return Path(xdg_cache) if xdg_cache else home / ".cache"


def get_dlx_cache_path(env: Mapping[str, str] | None = None) -> str:
    """Cache root: ``BINKIT_DLX_CACHE_DIR`` or ``<user cache dir>/binkit/dlx``.

    Always forward-slash normalized, no trailing separator.
    """
    env = os.environ if env is None else env
    override = env.get("BINKIT_DLX_CACHE_DIR")
    if override:
        return normalize_path(os.path.expanduser(override))
    return normalize_path(user_cache_dir(env).joinpath(*DLX_CACHE_SUBDIR))


def cache_key(url: str) -> str:
    """Directory name for a URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def host_arch() -> str:
    machine = host_platform.machine()
    return ARCH_MAP.get(machine, machine.lower() or "unknown")


def default_binary_name(platform: str, arch: str) -> str:
    """``binary-<platform>-<arch>`` plus ``.exe`` on Windows."""
    ext = ".exe" if platform == "win32" else ""
    return f"binary-{platform}-{arch}{ext}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _entry_binary(entry_dir: Path) -> Path | None:
    """The binary file of an entry: its first non-dot regular file."""
    try:
        names = sorted(os.listdir(entry_dir))
    except OSError:
        return None
    for name in names:
        if name.startswith("."):
            continue
        candidate = entry_dir / name
        if candidate.is_file():
            return candidate
    return None


def _checked_name(name: str) -> str:
    """A binary name must be a plain, visible file name inside its entry directory."""
    if not name or name.startswith(".") or "/" in name or "\\" in name:
        raise ValueError(f"Invalid binary name: {name!r}")
    return name


# ── Cache ───────────────────────────────────────────────────────


class DlxCache:
    """A download cache rooted at one directory."""

    def __init__(
        self,
        root: str | Path | None = None,
        *,
        fetch: Fetcher | None = None,
        clock: Callable[[], int] | None = None,
        ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self.root = Path(root if root is not None else get_dlx_cache_path())
        self.ttl_ms = ttl_ms
        self.timeout = timeout
        self._fetch = fetch or (lambda url: fetch_bytes(url, timeout=self.timeout))
        self._clock = clock or _now_ms

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> DlxCache:
        root = os.path.expanduser(settings.cache_dir) if settings.cache_dir else None
        return cls(
            root,
            ttl_ms=settings.cache_ttl_ms,
            timeout=settings.download_timeout,
            **kwargs,
        )

    @property
    def path(self) -> str:
        return normalize_path(self.root)

    def entry_dir(self, url: str) -> Path:
        return self.root / cache_key(url)

    # ── CheckCache ──────────────────────────────────────────────

    def _is_fresh(self, entry_dir: Path, binary_path: Path, ttl_ms: int, checksum: str | None) -> bool:
        metadata = load_metadata(entry_dir / DLX_METADATA_FILE)
        if metadata is None:
            return False
        if metadata.age_ms(self._clock()) >= ttl_ms:
            logger.debug("Cache entry %s is stale", entry_dir.name)
            return False
        if not binary_path.is_file():
            logger.debug("Cache entry %s has no binary %s", entry_dir.name, binary_path.name)
            return False
        if checksum and not checksums_match(checksum, metadata.checksum or ""):
            logger.debug("Cache entry %s checksum differs from requested", entry_dir.name)
            return False
        return True

    # ── Download → Verify → Persist ─────────────────────────────

    def _download(
        self,
        url: str,
        entry_dir: Path,
        binary_path: Path,
        *,
        checksum: str | None,
        platform: str,
        arch: str,
    ) -> None:
        data = self._fetch(url)
        actual = verify_checksum(data, checksum, url=url)

        entry_dir.mkdir(parents=True, exist_ok=True)
        mode = None if os.name == "nt" else 0o755
        write_bytes_atomic(binary_path, data, mode=mode)
        save_metadata(
            CacheMetadata(
                url=url,
                timestamp=self._clock(),
                platform=platform,
                arch=arch,
                checksum=actual,
                size=len(data),
            ),
            entry_dir / DLX_METADATA_FILE,
        )
        logger.info("Cached %s (%d bytes) at %s", url, len(data), binary_path)

    # ── Public API ──────────────────────────────────────────────

    def ensure(
        self,
        *,
        url: str,
        name: str | None = None,
        checksum: str | None = None,
        cache_ttl: int | None = None,
        force: bool = False,
        platform: str | None = None,
        arch: str | None = None,
    ) -> tuple[Path, bool]:
        """Make sure the binary for ``url`` is cached.

        Returns:
            ``(binary_path, downloaded)``.

        Raises:
            DownloadError: The fetch failed.
            ChecksumMismatchError: Content did not match ``checksum``.
            ValueError: ``name`` is not a plain file name.
        """
        platform = platform or sys.platform
        arch = arch or host_arch()
        ttl = self.ttl_ms if cache_ttl is None else cache_ttl

        entry_dir = self.entry_dir(url)
        binary_path = entry_dir / _checked_name(name or default_binary_name(platform, arch))

        if not force and self._is_fresh(entry_dir, binary_path, ttl, checksum):
            logger.debug("Reusing cached %s", binary_path)
            return binary_path, False

        self._download(url, entry_dir, binary_path, checksum=checksum, platform=platform, arch=arch)
        return binary_path, True

    def binary(
        self,
        args: Sequence[str] | None = None,
        *,
        url: str,
        name: str | None = None,
        checksum: str | None = None,
        cache_ttl: int | None = None,
        force: bool = False,
        platform: str | None = None,
        arch: str | None = None,
        spawn_options: Mapping[str, Any] | None = None,
    ) -> DownloadOutcome:
        """Fetch (or reuse) a binary and start it with ``args``.

        ``spawn_options`` accepts ``cwd`` and ``env``. The returned
        outcome's ``run_handle`` is already running.
        """
        binary_path, downloaded = self.ensure(
            url=url,
            name=name,
            checksum=checksum,
            cache_ttl=cache_ttl,
            force=force,
            platform=platform,
            arch=arch,
        )
        resolved = normalize_path(binary_path)
        options = dict(spawn_options or {})
        options.setdefault("shell", needs_shell(resolved, windows=os.name == "nt"))
        handle: RunHandle = start(str(binary_path), list(args or []), **options)
        return DownloadOutcome(binary_path=resolved, downloaded=downloaded, run_handle=handle)

    def list(self) -> list[CacheEntry]:
        """Valid cache entries, with their age in milliseconds."""
        if not self.root.is_dir():
            return []

        now = self._clock()
        entries: list[CacheEntry] = []
        for entry_dir in sorted(self.root.iterdir()):
            if not entry_dir.is_dir():
                continue
            metadata = load_metadata(entry_dir / DLX_METADATA_FILE)
            if metadata is None:
                continue
            binary_path = _entry_binary(entry_dir)
            if binary_path is None:
                continue
            try:
                size = binary_path.stat().st_size
            except OSError:
                continue
            entries.append(
                CacheEntry(
                    name=binary_path.name,
                    url=metadata.url,
                    size=size,
                    age=metadata.age_ms(now),
                    platform=metadata.platform,
                    arch=metadata.arch,
                    checksum=metadata.checksum,
                    path=normalize_path(binary_path),
                )
            )
        return entries

    def clean(self, max_age_ms: int | None = None) -> int:
        """Remove stale and corrupt entries.

        Args:
            max_age_ms: Entries older than this are removed; zero or
                less removes everything. Defaults to the cache TTL.

        Returns:
            Number of entries removed.
        """
        if not self.root.is_dir():
            return 0

        max_age = self.ttl_ms if max_age_ms is None else max_age_ms
        now = self._clock()
        removed = 0

        for entry_dir in sorted(self.root.iterdir()):
            if not entry_dir.is_dir():
                continue
            metadata = load_metadata(entry_dir / DLX_METADATA_FILE)
            if metadata is None or _entry_binary(entry_dir) is None:
                reason = "corrupt"
            elif max_age <= 0 or metadata.age_ms(now) > max_age:
                reason = "stale"
            else:
                continue
            try:
                shutil.rmtree(entry_dir)
            except OSError as e:
                logger.warning("Cannot remove cache entry %s: %s", entry_dir, e)
                continue
            logger.debug("Removed %s cache entry %s", reason, entry_dir.name)
            removed += 1

        if removed:
            logger.info("Removed %d cache entr%s from %s", removed, "y" if removed == 1 else "ies", self.root)
        return removed


# ── Module-level convenience ────────────────────────────────────


def dlx_binary(
    args: Sequence[str] | None = None,
    *,
    url: str,
    name: str | None = None,
    checksum: str | None = None,
    cache_ttl: int | None = None,
    force: bool = False,
    platform: str | None = None,
    arch: str | None = None,
    spawn_options: Mapping[str, Any] | None = None,
    cache: DlxCache | None = None,
) -> DownloadOutcome:
    """Download (or reuse) a binary from ``url`` and start it."""
    return (cache or DlxCache()).binary(
        args,
        url=url,
        name=name,
        checksum=checksum,
        cache_ttl=cache_ttl,
        force=force,
        platform=platform,
        arch=arch,
        spawn_options=spawn_options,
    )


def list_dlx_cache(*, cache: DlxCache | None = None) -> list[CacheEntry]:
    """List valid entries of the download cache."""
    return (cache or DlxCache()).list()


def clean_dlx_cache(
    max_age_ms: int = DEFAULT_CACHE_TTL_MS,
    *,
    cache: DlxCache | None = None,
) -> int:
    """Remove stale and corrupt download cache entries; returns the count."""
    return (cache or DlxCache()).clean(max_age_ms)
