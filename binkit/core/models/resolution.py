"""
Resolution — outcome of resolving a binary path.

"Not found" is a normal outcome here, not an exception: the pipeline
always produces a path, and ``diagnostic`` says why it may not be the
real program.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ResolutionStage = Literal[
    "normalize",         # empty input
    "search",            # bare name not found on PATH
    "literal",           # path exists only as written (realpath failed)
    "realpath",          # symlinks resolved
    "version-manager",   # re-targeted through a version manager image
    "wrapper",           # decoded from a generated wrapper script
]


class Resolution(BaseModel):
    """A resolved binary path plus how it was obtained."""

    requested: str
    path: str
    stage: ResolutionStage = "normalize"
    diagnostic: str | None = None  # not-found, not-a-directory, not-on-path, ...
    wrapper: str | None = None     # template name when stage == "wrapper"

    @property
    def ok(self) -> bool:
        """True when no stage had to degrade."""
        return self.diagnostic is None

    def __str__(self) -> str:
        return self.path
