"""
Tests for PATH search — PathSearcher, which_bin(_sync), find_real_bin.
"""

import asyncio
import os
import sys
from pathlib import Path

import pytest

from binkit.core.services.bin_resolve import (
    BinNotFoundError,
    BinResolver,
    PathSearcher,
    find_real_bin,
    find_real_npm,
    find_real_pnpm,
    find_real_yarn,
    normalize_path,
    which_bin,
    which_bin_sync,
)

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX filesystem semantics")


def _real(path: Path) -> str:
    return normalize_path(os.path.realpath(path))


class TestPathSearcher:
    """Tests for PATH scanning."""

    def test_first_match_in_path_order(self, bin_dirs, make_exe):
        """PATH order decides the first match."""
        first, second = bin_dirs
        make_exe(first / "tool")
        make_exe(second / "tool")
        searcher = PathSearcher(f"{first}{os.pathsep}{second}")
        assert searcher.search("tool") == [str(first / "tool")]
        assert searcher.search("tool", all=True) == [str(first / "tool"), str(second / "tool")]

    def test_skips_non_executable_and_directories(self, bin_dirs, make_exe):
        """Non-executables and directories are skipped."""
        first, second = bin_dirs
        make_exe(first / "tool", mode=0o644)
        (first / "dir-tool").mkdir()
        make_exe(second / "tool")
        searcher = PathSearcher(f"{first}{os.pathsep}{second}")
        assert searcher.search("tool") == [str(second / "tool")]
        assert searcher.search("dir-tool") == []

    def test_empty_and_quoted_entries(self, bin_dirs, make_exe):
        """Empty entries are dropped and quotes stripped."""
        first, _ = bin_dirs
        make_exe(first / "tool")
        searcher = PathSearcher(f'{os.pathsep}"{first}"{os.pathsep}')
        assert searcher.search("tool") == [str(first / "tool")]

    def test_duplicate_entries_deduplicated(self, bin_dirs, make_exe):
        """Duplicate PATH entries give one hit."""
        first, _ = bin_dirs
        make_exe(first / "tool")
        searcher = PathSearcher(f"{first}{os.pathsep}{first}")
        assert searcher.search("tool", all=True) == [str(first / "tool")]

    def test_name_with_separator_is_relative_to_cwd(self, tmp_path: Path, make_exe):
        """Names with a separator resolve against cwd."""
        make_exe(tmp_path / "scripts" / "run")
        searcher = PathSearcher("", cwd=str(tmp_path))
        assert searcher.search("scripts/run") == [str(tmp_path / "scripts" / "run")]

    def test_windows_pathext_and_cwd_first(self, tmp_path: Path, bin_dirs, make_exe):
        """Windows searches cwd first with PATHEXT."""
        first, _ = bin_dirs
        make_exe(tmp_path / "tool.cmd")
        make_exe(first / "tool.exe")
        searcher = PathSearcher(str(first), pathext=".EXE;.CMD", windows=True, cwd=str(tmp_path))
        assert searcher.search("tool", all=True) == [str(tmp_path / "tool.cmd"), str(first / "tool.exe")]

    def test_windows_name_with_extension(self, bin_dirs, make_exe):
        """A name with an extension is tried as-is."""
        first, _ = bin_dirs
        make_exe(first / "tool.cmd")
        searcher = PathSearcher(str(first), windows=True, cwd=str(first.parent))
        assert searcher.search("tool.cmd") == [str(first / "tool.cmd")]

    def test_windows_path_delimiter(self, bin_dirs, make_exe):
        """Windows splits PATH on semicolons."""
        first, second = bin_dirs
        make_exe(second / "tool.exe")
        searcher = PathSearcher(f"{first};{second}", windows=True, cwd=str(first))
        assert searcher.search("tool") == [str(second / "tool.exe")]


class TestWhichBinSync:
    """Tests for which_bin_sync."""

    def test_single_and_all(self, bin_dirs, make_exe, resolver_for):
        """all=True lists every hit; the default is the first."""
        first, second = bin_dirs
        a = make_exe(first / "tool")
        b = make_exe(second / "tool")
        resolver = resolver_for(first, second)

        every = which_bin_sync("tool", all=True, resolver=resolver)
        assert every == [_real(a), _real(b)]
        assert which_bin_sync("tool", resolver=resolver) == every[0]

    def test_not_found_nothrow(self, bin_dirs, resolver_for):
        """nothrow returns None."""
        assert which_bin_sync("missing-tool", resolver=resolver_for(*bin_dirs)) is None
        assert which_bin_sync("missing-tool", all=True, resolver=resolver_for(*bin_dirs)) is None

    def test_not_found_throws(self, bin_dirs, resolver_for):
        """nothrow=False raises BinNotFoundError."""
        with pytest.raises(BinNotFoundError) as exc_info:
            which_bin_sync("missing-tool", nothrow=False, resolver=resolver_for(*bin_dirs))
        assert exc_info.value.code == "ENOENT"
        assert str(exc_info.value) == "Binary not found: missing-tool"
        assert isinstance(exc_info.value, FileNotFoundError)

    def test_results_are_absolute_and_normalized(self, bin_dirs, make_exe, resolver_for):
        """Results are absolute forward-slash paths."""
        first, _ = bin_dirs
        make_exe(first / "tool")
        path = which_bin_sync("tool", resolver=resolver_for(first))
        assert path.startswith("/")
        assert "\\" not in path and "//" not in path


class TestWhichBinAsync:
    """Tests for which_bin."""

    def test_same_as_sync(self, bin_dirs, make_exe, resolver_for):
        """The async variant matches the sync one."""
        first, second = bin_dirs
        make_exe(first / "tool")
        make_exe(second / "tool")
        resolver = resolver_for(first, second)

        result = asyncio.run(which_bin("tool", all=True, resolver=resolver))
        assert result == which_bin_sync("tool", all=True, resolver=resolver)

    def test_throws(self, bin_dirs, resolver_for):
        """The async variant raises the same error."""
        with pytest.raises(BinNotFoundError):
            asyncio.run(which_bin("missing-tool", nothrow=False, resolver=resolver_for(*bin_dirs)))


class TestFindRealBin:
    """Tests for real-binary discovery."""

    def test_common_path_wins(self, tmp_path: Path, bin_dirs, make_exe, resolver_for):
        """Common paths are checked before PATH."""
        first, _ = bin_dirs
        make_exe(first / "pnpm")
        common = make_exe(tmp_path / "opt" / "pnpm")
        assert find_real_bin("pnpm", [str(common)], resolver=resolver_for(first)) == str(common)

    def test_skips_shadow_bin(self, tmp_path: Path, make_exe, resolver_for):
        """A shadow first hit gives way to a global one."""
        shadow_dir = tmp_path / "project" / "node_modules" / ".bin"
        global_dir = tmp_path / "global"
        make_exe(shadow_dir / "pnpm")
        real = make_exe(global_dir / "pnpm")
        found = find_real_bin("pnpm", resolver=resolver_for(shadow_dir, global_dir))
        assert found == normalize_path(real)

    def test_only_shadow_available(self, tmp_path: Path, make_exe, resolver_for):
        """A shadow hit is used when nothing else exists."""
        shadow_dir = tmp_path / "node_modules" / ".bin"
        shadow = make_exe(shadow_dir / "pnpm")
        assert find_real_bin("pnpm", resolver=resolver_for(shadow_dir)) == normalize_path(shadow)

    def test_not_found(self, bin_dirs, resolver_for):
        """Nothing anywhere gives None."""
        assert find_real_bin("missing-tool", resolver=resolver_for(*bin_dirs)) is None

    def test_find_real_pnpm_uses_xdg_data_home(self, tmp_path: Path, bin_dirs, make_exe, resolver_for):
        """pnpm is found under XDG_DATA_HOME."""
        real = make_exe(tmp_path / "data" / "pnpm" / "pnpm")
        resolver = resolver_for(*bin_dirs, HOME=str(tmp_path / "home"), XDG_DATA_HOME=str(tmp_path / "data"))
        found = find_real_pnpm(resolver=resolver)
        # A system-wide pnpm takes precedence when the machine has one.
        if not any(os.path.exists(p) for p in ("/usr/local/bin/pnpm", "/usr/bin/pnpm")):
            assert found == normalize_path(real)


class TestFindRealNpm:
    """Tests for npm and yarn discovery."""

    def test_npm_beside_node(self, bin_dirs, make_exe, resolver_for):
        """npm next to node wins."""
        first, second = bin_dirs
        make_exe(first / "node")
        npm = make_exe(first / "npm")
        make_exe(second / "npm")
        assert find_real_npm(resolver=resolver_for(first, second)) == normalize_path(npm)

    def test_falls_back_to_bare_name(self, bin_dirs, resolver_for):
        """No npm anywhere gives the bare name."""
        found = find_real_npm(resolver=resolver_for(*bin_dirs))
        if not any(os.path.exists(p) for p in ("/usr/local/bin/npm", "/usr/bin/npm")):
            assert found == "npm"

    def test_yarn_in_home(self, tmp_path: Path, bin_dirs, make_exe, resolver_for):
        """yarn is found under ~/.yarn/bin."""
        home = tmp_path / "home"
        real = make_exe(home / ".yarn" / "bin" / "yarn")
        found = find_real_yarn(resolver=resolver_for(*bin_dirs, HOME=str(home)))
        if not any(os.path.exists(p) for p in ("/usr/local/bin/yarn", "/usr/bin/yarn")):
            assert found == normalize_path(real)


def test_searcher_table_is_memoized(bin_dirs, make_exe):
    """The PATH table is built once per resolver."""
    first, _ = bin_dirs
    resolver = BinResolver(platform="linux", env={"PATH": str(first)})
    assert resolver.searcher.directories == [str(first)]
    assert resolver.searcher.directories is resolver.searcher.directories
