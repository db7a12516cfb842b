"""
L0 Data — constants shared by the resolver and the download cache.
"""

from binkit.core.data.constants import (  # noqa: F401
    ARCH_MAP,
    DEFAULT_CACHE_TTL_MS,
    DLX_CACHE_SUBDIR,
    DLX_METADATA_FILE,
    PACKAGE_MANAGER_BINS,
    WINDOWS_SCRIPT_EXTS,
)
