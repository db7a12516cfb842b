"""
L0 Data — Module-level constants.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# Architecture name normalization.
#
# Cache metadata records the architecture in the same vocabulary the
# JavaScript tooling uses (``x64``, ``arm64``), so ``platform.machine()``
# output is mapped before it is written.
ARCH_MAP: dict[str, str] = {
    "x86_64": "x64",
    "AMD64": "x64",        # Windows / WSL2
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",      # macOS (Darwin reports arm64)
    "ARM64": "arm64",
    "armv7l": "arm",
    "i686": "ia32",
    "i386": "ia32",
}

# Package manager entry points with dedicated wrapper grammars.
NPM_BINS: frozenset[str] = frozenset({"npm", "npx"})
PNPM_YARN_BINS: frozenset[str] = frozenset({"pnpm", "yarn"})
PACKAGE_MANAGER_BINS: frozenset[str] = NPM_BINS | PNPM_YARN_BINS

# Windows files that must be started through the command interpreter.
WINDOWS_SCRIPT_EXTS: frozenset[str] = frozenset({".bat", ".cmd", ".ps1"})

# Extensions a Windows wrapper may carry ("" is the sh-style shim).
WINDOWS_WRAPPER_EXTS: frozenset[str] = frozenset({"", ".cmd", ".exe", ".ps1"})

# Default PATHEXT when the environment does not define one.
DEFAULT_PATHEXT = ".EXE;.CMD;.BAT;.COM"

# Wrapper scripts are tiny; anything bigger is treated as a real program.
MAX_WRAPPER_BYTES = 64 * 1024

# Leading bytes of native executables (ELF, Mach-O, fat Mach-O, PE).
BINARY_SIGNATURES: tuple[bytes, ...] = (
    b"\x7fELF",
    b"\xfe\xed\xfa\xce",
    b"\xfe\xed\xfa\xcf",
    b"\xce\xfa\xed\xfe",
    b"\xcf\xfa\xed\xfe",
    b"\xca\xfe\xba\xbe",
    b"MZ",
)

# ── Download cache ──────────────────────────────────────────────

DLX_CACHE_SUBDIR = ("binkit", "dlx")
DLX_METADATA_FILE = ".dlx-metadata.json"

# 7 days, in milliseconds.
DEFAULT_CACHE_TTL_MS = 7 * 24 * 60 * 60 * 1000

DOWNLOAD_USER_AGENT = "binkit/0.1"
DOWNLOAD_TIMEOUT_SECONDS = 60
