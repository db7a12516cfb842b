"""
Domain models — Pydantic types for binary resolution and the download cache.

All models are re-exported here for convenient access:

    from binkit.core.models import Resolution, CacheMetadata, CacheEntry, DownloadOutcome
"""

from binkit.core.models.cache import CacheEntry, CacheMetadata, DownloadOutcome
from binkit.core.models.resolution import Resolution, ResolutionStage

__all__ = [
    # cache.py
    "CacheEntry",
    "CacheMetadata",
    "DownloadOutcome",
    # resolution.py
    "Resolution",
    "ResolutionStage",
]
