"""
Cache entry persistence — atomic writes for binaries and their metadata.

Every write goes to a temp file in the destination directory and is
then renamed onto the final name, so a concurrent reader sees either
the previous file or the complete new one. Two writers racing on the
same entry is fine: the last rename wins.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from binkit.core.models.cache import CacheMetadata

logger = logging.getLogger(__name__)


def write_bytes_atomic(path: Path, data: bytes, *, mode: int | None = None) -> None:
    """Write ``data`` to ``path`` via temp file + rename.

    Args:
        path: Final destination.
        data: File content.
        mode: Optional permission bits applied before the rename.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".dlx_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def load_metadata(path: Path) -> CacheMetadata | None:
    """Load a metadata sidecar.

    Returns:
        The parsed record, or None if the file is missing or corrupt.
    """
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return CacheMetadata.model_validate(data)
    except (OSError, ValueError, ValidationError) as e:
        logger.debug("Corrupt cache metadata %s: %s", path, e)
        return None


def save_metadata(metadata: CacheMetadata, path: Path) -> None:
    """Save a metadata sidecar (atomic write)."""
    content = json.dumps(metadata.model_dump(mode="json"), indent=2) + "\n"
    try:
        write_bytes_atomic(path, content.encode("utf-8"))
        logger.debug("Metadata saved to %s", path)
    except OSError as e:
        logger.error("Failed to save metadata to %s: %s", path, e)
        raise
