"""
Tests for persistence — atomic writes and cache metadata sidecars.
"""

import json
import os
import sys
from pathlib import Path

import pytest

from binkit.core.models.cache import CacheMetadata
from binkit.core.persistence.metadata_file import load_metadata, save_metadata, write_bytes_atomic


class TestAtomicWrite:
    """Tests for temp-file + rename writes."""

    def test_writes_content(self, tmp_path: Path):
        """Content lands at the final path."""
        path = tmp_path / "entry" / "tool"
        write_bytes_atomic(path, b"payload")
        assert path.read_bytes() == b"payload"

    def test_replaces_existing(self, tmp_path: Path):
        """An existing file is replaced in one step."""
        path = tmp_path / "tool"
        path.write_bytes(b"old")
        write_bytes_atomic(path, b"new")
        assert path.read_bytes() == b"new"

    def test_no_temp_files_left(self, tmp_path: Path):
        """Only the final file remains."""
        write_bytes_atomic(tmp_path / "tool", b"x")
        assert os.listdir(tmp_path) == ["tool"]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_mode_applied(self, tmp_path: Path):
        """The requested mode is set on the final file."""
        path = tmp_path / "tool"
        write_bytes_atomic(path, b"x", mode=0o755)
        assert path.stat().st_mode & 0o777 == 0o755

    def test_failed_rename_cleans_up(self, tmp_path: Path, monkeypatch):
        """A failure before the rename leaves no temp file behind."""
        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(OSError, match="disk full"):
            write_bytes_atomic(tmp_path / "tool", b"x")
        assert os.listdir(tmp_path) == []


class TestMetadataFile:
    """Tests for the .dlx-metadata.json sidecar."""

    def test_save_and_load(self, tmp_path: Path):
        """A record survives save and load."""
        path = tmp_path / ".dlx-metadata.json"
        meta = CacheMetadata(url="https://x/y", timestamp=123, platform="linux", arch="x64", checksum="ab", size=4)
        save_metadata(meta, path)
        assert load_metadata(path) == meta

    def test_saved_json_shape(self, tmp_path: Path):
        """Saved file is human-readable JSON with a fixed key set."""
        path = tmp_path / ".dlx-metadata.json"
        save_metadata(CacheMetadata(url="https://x/y", timestamp=1), path)
        raw = path.read_text()
        assert raw.endswith("\n")
        assert "\n  " in raw
        assert json.loads(raw) == {
            "url": "https://x/y",
            "timestamp": 1,
            "platform": "unknown",
            "arch": "unknown",
            "checksum": None,
            "size": 0,
        }

    def test_load_missing(self, tmp_path: Path):
        """A missing sidecar loads as None."""
        assert load_metadata(tmp_path / "missing.json") is None

    @pytest.mark.parametrize("content", ["not json {{{", "[]", '{"timestamp": 1}', '{"url": "u", "timestamp": "later"}'])
    def test_load_corrupt(self, tmp_path: Path, content: str):
        """Corrupt or incomplete records load as None."""
        path = tmp_path / ".dlx-metadata.json"
        path.write_text(content)
        assert load_metadata(path) is None


class TestCacheMetadata:
    """Tests for the metadata model."""

    def test_age(self):
        """Age is now minus the timestamp."""
        meta = CacheMetadata(url="u", timestamp=1_000)
        assert meta.age_ms(4_000) == 3_000

    def test_age_never_negative(self):
        """Clock skew (timestamp in the future) reads as age zero."""
        assert CacheMetadata(url="u", timestamp=5_000).age_ms(1_000) == 0
