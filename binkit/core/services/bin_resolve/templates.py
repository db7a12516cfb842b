"""
L1 Domain — Generated wrapper script grammars (pure).

Package managers and shim generators put small scripts on PATH whose
only job is to start the real program. Each grammar we know about is a
``WrapperTemplate``: an applicability predicate (binary name, file
extension, platform) plus a regex whose ``target`` group captures the
path the script execs, relative to the script's own directory.

``WRAPPER_TEMPLATES`` is evaluated in order; the first template that
applies and matches wins. Specific grammars come before generic ones.

No I/O, no subprocess.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from binkit.core.data.constants import PNPM_YARN_BINS

_SH = frozenset({""})
_CMD = frozenset({".cmd"})
_PS1 = frozenset({".ps1"})


@dataclass(frozen=True)
class WrapperTemplate:
    """One recognized wrapper grammar."""

    name: str
    pattern: re.Pattern[str]
    extensions: frozenset[str]
    bin_names: frozenset[str] | None = None   # None = any binary name
    windows_only: bool = False
    prefix: str = ""                            # prepended to the captured target

    def applies_to(self, bin_name: str, ext: str, *, windows: bool) -> bool:
        """Whether this grammar is worth trying for the given file."""
        if self.windows_only and not windows:
            return False
        if ext.lower() not in self.extensions:
            return False
        return self.bin_names is None or bin_name in self.bin_names

    def extract(self, source: str) -> str | None:
        """Return the script-relative target path, or None if the content doesn't match."""
        match = self.pattern.search(source)
        if not match:
            return None
        target = match.group("target").strip()
        if not target:
            return None
        return self.prefix + target


def _npm_cli(var: str, base: str) -> re.Pattern[str]:
    return re.compile(rf'{var}_CLI_JS="\${base}/(?P<target>[^"]+)"')


WRAPPER_TEMPLATES: tuple[WrapperTemplate, ...] = (
    # ── npm's own sh launchers ──────────────────────────────────
    # npm >= 7: NPM_CLI_JS="$CLI_BASEDIR/node_modules/npm/bin/npm-cli.js"
    WrapperTemplate(
        name="npm-cli-sh",
        pattern=_npm_cli("NPM", "CLI_BASEDIR"),
        extensions=_SH,
        bin_names=frozenset({"npm"}),
    ),
    WrapperTemplate(
        name="npx-cli-sh",
        pattern=_npm_cli("NPX", "CLI_BASEDIR"),
        extensions=_SH,
        bin_names=frozenset({"npx"}),
    ),
    # npm 6 derived the base from the script location: NPM_CLI_JS="$basedir/..."
    WrapperTemplate(
        name="npm-cli-sh-legacy",
        pattern=_npm_cli("NPM", "basedir"),
        extensions=_SH,
        bin_names=frozenset({"npm"}),
    ),
    WrapperTemplate(
        name="npx-cli-sh-legacy",
        pattern=_npm_cli("NPX", "basedir"),
        extensions=_SH,
        bin_names=frozenset({"npx"}),
    ),
    # ── pnpm / yarn sh launchers ────────────────────────────────
    # Standalone installer: exec "$basedir/node" "$basedir/.tools/pnpm/<v>/..." "$@"
    WrapperTemplate(
        name="pnpm-tools-sh",
        pattern=re.compile(r'"\$basedir/(?P<target>\.tools/[^"]+)"\s+"\$@"'),
        extensions=_SH,
        bin_names=PNPM_YARN_BINS,
    ),
    # setup-pnpm CI action writes "$basedir/pnpm/bin/pnpm.cjs" into .bin/pnpm,
    # which only makes sense one directory up.
    WrapperTemplate(
        name="setup-pnpm-malformed-sh",
        pattern=re.compile(r'"?\$basedir/(?P<target>pnpm/[^"\s]+)"?\s+"\$@"'),
        extensions=_SH,
        bin_names=frozenset({"pnpm"}),
        prefix="../",
    ),
    # ── cmd-shim sh (any package bin) ───────────────────────────
    # exec "$basedir/node"  "$basedir/../<pkg>/bin/<entry>" "$@"
    WrapperTemplate(
        name="cmd-shim-sh",
        pattern=re.compile(r'"\$basedir/(?P<target>[^"]+)"\s+"\$@"'),
        extensions=_SH,
    ),
    # exec node $basedir/../pnpm/bin/pnpm.cjs "$@" (unquoted target)
    WrapperTemplate(
        name="exec-node-sh",
        pattern=re.compile(r'exec\s+node\s+"?\$basedir/(?P<target>[^"\s]+)"?\s+"\$@"'),
        extensions=_SH,
        bin_names=PNPM_YARN_BINS,
    ),
    # ── Windows batch files ─────────────────────────────────────
    # SET "NPM_CLI_JS=%~dp0\node_modules\npm\bin\npm-cli.js"
    WrapperTemplate(
        name="npm-cli-cmd",
        pattern=re.compile(r'"NPM_CLI_JS=%~dp0\\(?P<target>[^"]+)"'),
        extensions=_CMD,
        bin_names=frozenset({"npm"}),
        windows_only=True,
    ),
    WrapperTemplate(
        name="npx-cli-cmd",
        pattern=re.compile(r'"NPX_CLI_JS=%~dp0\\(?P<target>[^"]+)"'),
        extensions=_CMD,
        bin_names=frozenset({"npx"}),
        windows_only=True,
    ),
    # setup-pnpm action: node "%~dp0\..\pnpm\bin\pnpm.cjs" %*
    WrapperTemplate(
        name="node-dp0-cmd",
        pattern=re.compile(r'node\s+"%~dp0\\(?P<target>[^"]+)"\s+%\*'),
        extensions=_CMD,
        bin_names=PNPM_YARN_BINS,
        windows_only=True,
    ),
    # "%~dp0\node.exe" "%~dp0\..\pnpm\bin\pnpm.cjs" %*
    WrapperTemplate(
        name="node-exe-dp0-cmd",
        pattern=re.compile(r'"%~dp0\\[^"]*node[^"]*"\s+"%~dp0\\(?P<target>[^"]+)"\s+%\*'),
        extensions=_CMD,
        bin_names=PNPM_YARN_BINS,
        windows_only=True,
    ),
    # cmd-shim: ... "%_prog%"  "%dp0%\..\<pkg>\bin\<entry>" %*
    WrapperTemplate(
        name="cmd-shim-cmd",
        pattern=re.compile(r'"%dp0%\\(?P<target>[^"]+)"\s+%\*'),
        extensions=_CMD,
        windows_only=True,
    ),
    # ── PowerShell ──────────────────────────────────────────────
    WrapperTemplate(
        name="npm-cli-ps1",
        pattern=re.compile(r'\$NPM_CLI_JS="\$PSScriptRoot/(?P<target>[^"]+)"'),
        extensions=_PS1,
        bin_names=frozenset({"npm"}),
        windows_only=True,
    ),
    WrapperTemplate(
        name="npx-cli-ps1",
        pattern=re.compile(r'\$NPX_CLI_JS="\$PSScriptRoot/(?P<target>[^"]+)"'),
        extensions=_PS1,
        bin_names=frozenset({"npx"}),
        windows_only=True,
    ),
    # cmd-shim: & "$basedir/node$exe"  "$basedir/../<pkg>/bin/<entry>" $args
    WrapperTemplate(
        name="cmd-shim-ps1",
        pattern=re.compile(r'"\$basedir/(?P<target>[^"]+)"\s+\$args'),
        extensions=_PS1,
        windows_only=True,
    ),
)


def match_wrapper(
    source: str,
    bin_name: str,
    ext: str,
    *,
    windows: bool,
    templates: tuple[WrapperTemplate, ...] = WRAPPER_TEMPLATES,
) -> tuple[WrapperTemplate, str] | None:
    """Find the first template that applies to the file and matches its content.

    Returns:
        ``(template, relative_target)`` or None.
    """
    for template in templates:
        if not template.applies_to(bin_name, ext, windows=windows):
            continue
        target = template.extract(source)
        if target:
            return template, target
    return None
