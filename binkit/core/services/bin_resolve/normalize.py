"""
L1 Domain — Path string normalization (pure).

Every path handed back by the resolver goes through ``normalize_path``:
forward slashes only, no repeated separators, ``.``/``..`` collapsed.
Network-share prefixes (``//server/share``) and Win32 namespaces
(``//?/``, ``//./``) keep their double leading slash.

No I/O, no subprocess.
"""

from __future__ import annotations

import os
import re
import sys

_SEPARATORS = "/\\"
_SPLIT_RE = re.compile(r"[/\\]+")
_DRIVE_RE = re.compile(r"^[A-Za-z]:[/\\]")


def to_path_str(path_like: str | bytes | os.PathLike | None) -> str:
    """Convert a path-like value to ``str`` (``None`` becomes ``""``)."""
    if path_like is None:
        return ""
    if isinstance(path_like, bytes):
        return path_like.decode("utf-8", errors="replace")
    return os.fspath(path_like)


def _skip_separators(filepath: str, start: int) -> int:
    while start < len(filepath) and filepath[start] in _SEPARATORS:
        start += 1
    return start


def _is_unc(filepath: str) -> bool:
    """True for ``//server/share...`` (either slash style).

    A bare double slash followed by a single segment is just a
    repeated separator, not a share.
    """
    i = _skip_separators(filepath, 2)
    first_end = -1
    while i < len(filepath):
        if filepath[i] in _SEPARATORS:
            first_end = i
            break
        i += 1
    if first_end <= 2:
        return False
    return _skip_separators(filepath, first_end) < len(filepath)


def _split_prefix(filepath: str) -> tuple[str, int]:
    """Return ``(prefix, start)``: the kept root and where segments begin."""
    length = len(filepath)

    # \\?\ and \\.\ namespaces
    if (
        length > 4
        and filepath[0] in _SEPARATORS
        and filepath[1] in _SEPARATORS
        and filepath[2] in "?."
        and filepath[3] in _SEPARATORS
    ):
        return f"//{filepath[2]}/", 4

    c0, c1, c2 = filepath[0], filepath[1], filepath[2] if length > 2 else ""
    double = (c0 == c1 == "\\" and c2 != "\\") or (c0 == c1 == "/" and c2 != "/")
    if length > 2 and double and _is_unc(filepath):
        return "//", 2

    start = _skip_separators(filepath, 0)
    return ("/" if start else ""), start


def normalize_path(path_like: str | bytes | os.PathLike | None) -> str:
    r"""Normalize a path to forward-slash form.

    Examples:
        ``C:\foo\..\bar`` → ``C:/bar``
        ``/usr//local/bin/`` → ``/usr/local/bin``
        ``\\server\share\x`` → ``//server/share/x``
        ``""`` → ``.``
    """
    filepath = to_path_str(path_like)
    length = len(filepath)
    if length == 0:
        return "."
    if length < 2:
        return "/" if filepath == "\\" else filepath

    prefix, start = _split_prefix(filepath)

    segments: list[str] = []
    for segment in _SPLIT_RE.split(filepath[start:]):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if segments and segments[-1] != "..":
                segments.pop()
            elif not prefix:
                # Leading '..' survives on relative paths only.
                segments.append(segment)
            continue
        segments.append(segment)

    if not segments:
        return prefix or "."
    return prefix + "/".join(segments)


def is_absolute(path_like: str | bytes | os.PathLike | None, *, windows: bool | None = None) -> bool:
    r"""Check whether a path is absolute.

    A leading ``/`` or ``\`` always counts (POSIX roots, UNC shares,
    Win32 namespaces). Drive letters (``C:\``, ``d:/``) count only when
    ``windows`` is true, which defaults to the running platform.
    """
    filepath = to_path_str(path_like)
    if not filepath:
        return False
    if filepath[0] in _SEPARATORS:
        return True
    if windows is None:
        windows = sys.platform == "win32"
    return bool(windows and _DRIVE_RE.match(filepath))


def is_path(path_like: str | bytes | os.PathLike | None) -> bool:
    """Check whether a string names a filesystem path rather than a bare command.

    ``@scope/name`` is a package name, not a path; ``@scope/name/bin`` and
    anything with a backslash are paths.
    """
    filepath = to_path_str(path_like)
    if not filepath:
        return False
    if filepath in (".", ".."):
        return True
    if is_absolute(filepath):
        return True
    if "/" in filepath or "\\" in filepath:
        if filepath.startswith("@") and not filepath.startswith("@/"):
            parts = filepath.split("/")
            if len(parts) <= 2 and "\\" not in parts[-1]:
                return False
        return True
    return False


def join_relative(base_dir: str, rel_path: str) -> str:
    """Join a wrapper-relative target onto its directory and normalize."""
    return normalize_path(f"{base_dir}/{rel_path}")
