"""
L4 Execution — Binary download and checksum verification.

Downloads are fetched fully into memory and verified before anything
is written, so a failed or tampered download never reaches the cache.
"""

from __future__ import annotations

import hashlib
import logging
import urllib.error
import urllib.request

from binkit.core.data.constants import DOWNLOAD_TIMEOUT_SECONDS, DOWNLOAD_USER_AGENT

logger = logging.getLogger(__name__)

DEFAULT_CHECKSUM_ALGO = "sha256"


class DownloadError(Exception):
    """A download failed (network error or non-success response)."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        self.message = message
        super().__init__(message)


class ChecksumMismatchError(DownloadError):
    """Downloaded content does not match the expected checksum."""

    def __init__(self, url: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(url, f"Checksum mismatch: expected {expected}, got {actual}")


def fetch_bytes(url: str, *, timeout: float = DOWNLOAD_TIMEOUT_SECONDS) -> bytes:
    """Fetch ``url`` and return the response body.

    Raises:
        DownloadError: Network failure or non-2xx status.
    """
    logger.info("Downloading %s", url)
    try:
        request = urllib.request.Request(url, headers={"User-Agent": DOWNLOAD_USER_AGENT})
        with urllib.request.urlopen(request, timeout=timeout) as resp:
            status = getattr(resp, "status", 200)
            if not 200 <= status < 300:
                raise DownloadError(url, f"Failed to download binary: HTTP {status} ({url})")
            data = resp.read()
    except urllib.error.HTTPError as e:
        raise DownloadError(url, f"Failed to download binary: HTTP {e.code} {e.reason} ({url})") from e
    except urllib.error.URLError as e:
        raise DownloadError(url, f"Failed to download binary: {e.reason} ({url})") from e
    except (OSError, ValueError) as e:
        raise DownloadError(url, f"Failed to download binary: {e} ({url})") from e

    logger.debug("Downloaded %d bytes from %s", len(data), url)
    return data


def compute_checksum(data: bytes, algo: str = DEFAULT_CHECKSUM_ALGO) -> str:
    """Hex digest of ``data``."""
    return hashlib.new(algo, data).hexdigest()


def split_checksum(expected: str) -> tuple[str, str]:
    """Parse ``algo:hex`` (or bare sha256 hex) into ``(algo, hex)``."""
    if ":" in expected:
        algo, digest = expected.split(":", 1)
        return algo.strip().lower(), digest.strip().lower()
    return DEFAULT_CHECKSUM_ALGO, expected.strip().lower()


def checksums_match(expected: str, sha256_hex: str) -> bool:
    """Compare an expected checksum to a recorded sha256 hex digest."""
    algo, digest = split_checksum(expected)
    return algo == DEFAULT_CHECKSUM_ALGO and digest == sha256_hex.lower()


def verify_checksum(data: bytes, expected: str | None, *, url: str = "") -> str:
    """Verify ``data`` against ``expected`` and return its sha256 hex digest.

    Raises:
        ChecksumMismatchError: The digest differs from ``expected``.
    """
    actual = compute_checksum(data)
    if not expected:
        return actual

    algo, digest = split_checksum(expected)
    try:
        computed = actual if algo == DEFAULT_CHECKSUM_ALGO else compute_checksum(data, algo)
    except ValueError as e:
        raise ChecksumMismatchError(url, expected, f"unsupported algorithm {algo!r}") from e

    if computed != digest:
        raise ChecksumMismatchError(url, expected, computed)
    return actual
