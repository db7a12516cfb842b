"""
Errors raised by binary lookup and execution.
"""

from __future__ import annotations

import errno


class BinNotFoundError(FileNotFoundError):
    """A binary could not be located on PATH or on disk.

    ``code`` is always ``"ENOENT"`` and the message starts with
    ``"Binary not found:"`` so callers can match either.
    """

    code = "ENOENT"

    def __init__(self, bin_name: str, message: str = "") -> None:
        self.bin_name = bin_name
        self.message = message or f"Binary not found: {bin_name}"
        super().__init__(errno.ENOENT, self.message)

    def __str__(self) -> str:
        return self.message
