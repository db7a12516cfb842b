"""
Tests for Volta shim resolution.
"""

import json
import os
import sys
from pathlib import Path

import pytest

from binkit.core.services.bin_resolve import normalize_path
from binkit.core.services.bin_resolve.volta import VersionManagerLayout, find_volta_root

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX filesystem semantics")


def _real(path: Path) -> str:
    return normalize_path(os.path.realpath(path))


@pytest.fixture
def volta(tmp_path: Path) -> Path:
    """A .volta root with the standard tools layout."""
    root = tmp_path / ".volta"
    (root / "tools" / "image").mkdir(parents=True)
    (root / "tools" / "user" / "bin").mkdir(parents=True)
    return root


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def _shim(volta: Path, name: str, make_exe) -> Path:
    return make_exe(volta / "bin" / name, f"volta {name} wrapper")


class TestFindVoltaRoot:
    """Tests for locating the Volta root."""

    def test_found(self):
        """The .volta directory is the root."""
        assert find_volta_root("/home/u/.volta/bin/npm") == "/home/u/.volta"

    def test_case_insensitive(self):
        """Case does not matter."""
        assert find_volta_root("C:/Users/u/.Volta/bin/npm") == "C:/Users/u/.Volta"

    def test_requires_directory_boundary(self):
        """.volta must be a whole segment."""
        assert find_volta_root("/home/u/my.volta/bin/npm") is None
        assert find_volta_root("/home/u/bin/npm") is None


class TestNpmResolution:
    """Tests for npm/npx shims."""

    def test_pinned_npm_image(self, volta: Path, make_exe, resolver_for):
        """The pinned npm image wins."""
        _write_json(volta / "tools" / "user" / "platform.json", {"node": {"runtime": "20.1.0", "npm": "10.2.0"}})
        cli = make_exe(volta / "tools" / "image" / "npm" / "10.2.0" / "bin" / "npm-cli.js", "// npm\n")
        npm = _shim(volta, "npm", make_exe)

        resolution = resolver_for().resolve(str(npm))
        assert resolution.path == _real(cli)
        assert resolution.stage == "version-manager"

    def test_falls_back_to_npm_bundled_with_node(self, volta: Path, make_exe, resolver_for):
        """The npm bundled with the pinned node is the fallback."""
        _write_json(volta / "tools" / "user" / "platform.json", {"node": {"runtime": "20.1.0", "npm": "10.2.0"}})
        cli = make_exe(
            volta / "tools" / "image" / "node" / "20.1.0" / "lib" / "node_modules" / "npm" / "bin" / "npx-cli.js",
            "// npx\n",
        )
        npx = _shim(volta, "npx", make_exe)
        assert resolver_for().resolve_path(str(npx)) == _real(cli)

    def test_missing_platform_record_keeps_volta_path(self, volta: Path, make_exe, resolver_for):
        """No platform record keeps the shim path."""
        npm = _shim(volta, "npm", make_exe)
        resolution = resolver_for().resolve(str(npm))
        assert ".volta" in resolution.path
        assert resolution.path == _real(npm)

    def test_corrupt_platform_record_keeps_volta_path(self, volta: Path, make_exe, resolver_for):
        """A corrupt platform record keeps the shim path."""
        (volta / "tools" / "user" / "platform.json").write_text("{not json")
        npm = _shim(volta, "npm", make_exe)
        assert resolver_for().resolve_path(str(npm)) == _real(npm)

    def test_pinned_image_missing_keeps_volta_path(self, volta: Path, make_exe, resolver_for):
        """A pinned but missing image keeps the shim path."""
        _write_json(volta / "tools" / "user" / "platform.json", {"node": {"runtime": "20.1.0", "npm": "10.2.0"}})
        npm = _shim(volta, "npm", make_exe)
        assert resolver_for().resolve_path(str(npm)) == _real(npm)


class TestPackageResolution:
    """Tests for package binary shims."""

    def test_package_binary(self, volta: Path, make_exe, resolver_for):
        """The tool record names the package that provides the binary."""
        _write_json(volta / "tools" / "user" / "bin" / "tsc.json", {"name": "tsc", "package": "typescript"})
        real = make_exe(volta / "tools" / "image" / "packages" / "typescript" / "bin" / "tsc")
        tsc = _shim(volta, "tsc", make_exe)
        assert resolver_for().resolve_path(str(tsc)) == _real(real)

    def test_cmd_variant_only_on_windows(self, volta: Path, make_exe, resolver_for):
        """The .cmd variant is tried on Windows only."""
        _write_json(volta / "tools" / "user" / "bin" / "tsc.json", {"package": "typescript"})
        real = make_exe(volta / "tools" / "image" / "packages" / "typescript" / "bin" / "tsc.cmd")
        tsc = _shim(volta, "tsc", make_exe)

        assert resolver_for(platform="win32").resolve_path(str(tsc)) == _real(real)
        assert resolver_for(platform="linux").resolve_path(str(tsc)) == _real(tsc)

    def test_missing_tool_record(self, volta: Path, make_exe, resolver_for):
        """No tool record keeps the shim path."""
        tsc = _shim(volta, "tsc", make_exe)
        assert resolver_for().resolve_path(str(tsc)) == _real(tsc)


def test_node_is_never_retargeted(volta: Path, make_exe, resolver_for):
    """The node shim itself is left alone."""
    _write_json(volta / "tools" / "user" / "bin" / "node.json", {"package": "node"})
    make_exe(volta / "tools" / "image" / "packages" / "node" / "bin" / "node")
    node = _shim(volta, "node", make_exe)
    assert resolver_for().resolve_path(str(node)) == _real(node)


def test_layout_memoizes_records(volta: Path):
    """Records are read once per layout."""
    platform_json = volta / "tools" / "user" / "platform.json"
    _write_json(platform_json, {"node": {"runtime": "20.1.0", "npm": "10.2.0"}})
    layout = VersionManagerLayout(normalize_path(volta))
    assert layout.pinned_versions() == ("20.1.0", "10.2.0")

    platform_json.unlink()
    assert layout.pinned_versions() == ("20.1.0", "10.2.0")
