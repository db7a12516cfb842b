"""
Shared test fixtures and configuration.
"""

import os
import stat
from collections.abc import Callable
from pathlib import Path

import pytest

from binkit.core.services.bin_resolve import BinResolver


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the real user environment out of every test."""
    for var in list(os.environ):
        if var.startswith("BINKIT_") or var.startswith("npm_config_"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("BINKIT_DLX_CACHE_DIR", str(tmp_path / "dlx-cache"))


@pytest.fixture
def make_exe() -> Callable[..., Path]:
    """Factory: write an executable file (parents created)."""

    def _make(path: Path, content: str | bytes = "#!/bin/sh\nexit 0\n", mode: int = 0o755) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        os.chmod(path, mode)
        return path

    return _make


@pytest.fixture
def bin_dirs(tmp_path: Path) -> tuple[Path, Path]:
    """Two empty directories to put on a fake PATH."""
    first, second = tmp_path / "bin1", tmp_path / "bin2"
    first.mkdir()
    second.mkdir()
    return first, second


@pytest.fixture
def resolver_for(tmp_path: Path) -> Callable[..., BinResolver]:
    """Factory: a POSIX resolver whose PATH is exactly the given directories."""

    def _make(*dirs: Path, platform: str = "linux", **env: str) -> BinResolver:
        environ = {"PATH": os.pathsep.join(str(d) for d in dirs), **env}
        return BinResolver(platform=platform, env=environ, cwd=str(tmp_path))

    return _make


def is_executable(path: Path) -> bool:
    """True if the owner execute bit is set."""
    return bool(path.stat().st_mode & stat.S_IXUSR)
