"""
Binary resolution — find the program a command name or path really runs.

Layers:
    L1 Domain      normalize, classify, templates   (pure)
    L2 Search      path_search, volta               (filesystem reads)
    L3 Resolution  resolver, which                  (pipeline)
    L4 Execution   execute                          (subprocess)
"""

from binkit.core.services.bin_resolve.classify import (
    is_in_managed_tree,
    is_running_in_temporary_executor,
    is_shadow_bin_path,
    should_skip_shadow,
)
from binkit.core.services.bin_resolve.errors import BinNotFoundError
from binkit.core.services.bin_resolve.execute import exec_bin
from binkit.core.services.bin_resolve.normalize import (
    is_absolute,
    is_path,
    normalize_path,
)
from binkit.core.services.bin_resolve.path_search import PathSearcher
from binkit.core.services.bin_resolve.resolver import BinResolver, resolve_bin_path_sync
from binkit.core.services.bin_resolve.templates import (
    WRAPPER_TEMPLATES,
    WrapperTemplate,
    match_wrapper,
)
from binkit.core.services.bin_resolve.which import (
    find_real_bin,
    find_real_npm,
    find_real_pnpm,
    find_real_yarn,
    which_bin,
    which_bin_sync,
)

__all__ = [
    "BinNotFoundError",
    "BinResolver",
    "PathSearcher",
    "WRAPPER_TEMPLATES",
    "WrapperTemplate",
    "exec_bin",
    "find_real_bin",
    "find_real_npm",
    "find_real_pnpm",
    "find_real_yarn",
    "is_absolute",
    "is_in_managed_tree",
    "is_path",
    "is_running_in_temporary_executor",
    "is_shadow_bin_path",
    "match_wrapper",
    "normalize_path",
    "resolve_bin_path_sync",
    "should_skip_shadow",
    "which_bin",
    "which_bin_sync",
]
