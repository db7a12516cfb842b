"""
Download cache — fetch, verify, cache and run binaries from URLs.
"""

from binkit.core.services.dlx.cache import (
    DlxCache,
    cache_key,
    clean_dlx_cache,
    dlx_binary,
    get_dlx_cache_path,
    list_dlx_cache,
)
from binkit.core.services.dlx.download import (
    ChecksumMismatchError,
    DownloadError,
    fetch_bytes,
    verify_checksum,
)

__all__ = [
    "ChecksumMismatchError",
    "DlxCache",
    "DownloadError",
    "cache_key",
    "clean_dlx_cache",
    "dlx_binary",
    "fetch_bytes",
    "get_dlx_cache_path",
    "list_dlx_cache",
    "verify_checksum",
]
