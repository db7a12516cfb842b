"""
Download cache models — sidecar metadata and listing entries.

``CacheMetadata`` is the on-disk record stored next to every cached
binary as ``.dlx-metadata.json``.  Its field set is fixed: the JSON
written to disk has exactly these keys.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CacheMetadata(BaseModel):
    """Sidecar record for one cache entry."""

    url: str
    timestamp: int                   # epoch milliseconds of the download
    platform: str = "unknown"
    arch: str = "unknown"
    checksum: str | None = None
    size: int = 0

    def age_ms(self, now_ms: int) -> int:
        """Milliseconds since the entry was written (never negative)."""
        return max(0, now_ms - self.timestamp)


class CacheEntry(BaseModel):
    """A valid cache entry as reported by listing."""

    name: str                        # binary file name
    url: str
    size: int = 0
    age: int = 0                     # milliseconds
    platform: str = "unknown"
    arch: str = "unknown"
    checksum: str | None = None
    path: str = ""                   # absolute binary path

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


class DownloadOutcome(BaseModel):
    """Result of ``dlx_binary``: where the binary is and its started run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    binary_path: str
    downloaded: bool
    run_handle: Any = Field(default=None, exclude=True)
