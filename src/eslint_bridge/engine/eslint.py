"""ESLint engine running the eslint executable over stdin.

The engine feeds document content to ``eslint --stdin`` and parses the
JSON formatter output into a report. ESLint exits with 0 when nothing was
found, 1 when problems were reported and 2 on a fatal error; only the last
case raises.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger

from eslint_bridge.diagnostics import Problem
from eslint_bridge.errors import NO_CONFIG_MESSAGE, LintError, NoConfigError

# Exit codes of the eslint CLI that still come with a JSON report
REPORT_EXIT_CODES = (0, 1)

_BANNER = re.compile(r"^Oops! Something went wrong! :\(\s*(?:ESLint: [^\n]*\n)?\s*", re.MULTILINE)
_NO_CONFIG_MARKERS = (
    NO_CONFIG_MESSAGE,
    "ESLint couldn't find a configuration file",
)


@dataclass
class DocumentReport:
    """ESLint's result for one linted file."""

    file_path: str
    messages: list[Problem | None] = field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    output: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentReport:
        return cls(
            file_path=data.get("filePath", ""),
            messages=[Problem.from_dict(m) if m else None for m in data.get("messages") or []],
            error_count=int(data.get("errorCount") or 0),
            warning_count=int(data.get("warningCount") or 0),
            output=data.get("output"),
        )


@dataclass
class LintReport:
    """ESLint's result for a lint invocation."""

    results: list[DocumentReport] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(r.error_count for r in self.results)

    @property
    def warning_count(self) -> int:
        return sum(r.warning_count for r in self.results)


class LintEngine(Protocol):
    """A loaded lint engine able to lint a piece of text."""

    async def execute_on_text(
        self,
        content: str,
        file_path: str | None,
        options: dict[str, Any] | None = None,
    ) -> LintReport:
        ...


def build_arguments(options: dict[str, Any] | None) -> list[str]:
    """Translate ESLint API style options into eslint CLI flags.

    Args:
        options: The ``eslint.options`` setting pushed by the client.

    Returns:
        Extra command line arguments.
    """
    args: list[str] = []
    if not options:
        return args
    if options.get("configFile"):
        args += ["--config", str(options["configFile"])]
    for rule_path in options.get("rulePaths") or []:
        args += ["--rulesdir", str(rule_path)]
    if options.get("ignorePath"):
        args += ["--ignore-path", str(options["ignorePath"])]
    if options.get("parser"):
        args += ["--parser", str(options["parser"])]
    for env in options.get("envs") or []:
        args += ["--env", str(env)]
    for name in options.get("globals") or []:
        args += ["--global", str(name)]
    for plugin in options.get("plugins") or []:
        args += ["--plugin", str(plugin)]
    rules = options.get("rules") or {}
    for rule_id, setting in rules.items():
        args += ["--rule", json.dumps({rule_id: setting})]
    return args


def _clean_failure(text: str) -> str:
    return _BANNER.sub("", text.strip()).strip()


def _to_error(text: str) -> LintError:
    message = _clean_failure(text)
    if any(marker in message for marker in _NO_CONFIG_MARKERS):
        return NoConfigError(message)
    return LintError(message)


def parse_report(stdout: str) -> LintReport:
    """Parse the output of ``eslint --format json``.

    Raises:
        LintError: If the output is not an ESLint JSON report.
    """
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise LintError(f"Invalid ESLint output: {e}") from e
    if not isinstance(data, list):
        raise LintError("Invalid ESLint output: expected a list of results")
    return LintReport(results=[DocumentReport.from_dict(item) for item in data if item])


class EslintEngine:
    """Lint engine backed by an eslint executable.

    Attributes:
        executable: Path to the eslint executable.
    """

    def __init__(self, executable: str) -> None:
        self.executable = executable

    def __repr__(self) -> str:
        return f"EslintEngine({self.executable!r})"

    async def execute_on_text(
        self,
        content: str,
        file_path: str | None,
        options: dict[str, Any] | None = None,
    ) -> LintReport:
        """Lint ``content`` as if it were the file at ``file_path``.

        Raises:
            LintError: If ESLint fails instead of producing a report.
        """
        args = [self.executable, "--stdin", "--format", "json", *build_arguments(options)]
        cwd = None
        if file_path:
            args += ["--stdin-filename", file_path]
            directory = os.path.dirname(file_path)
            if os.path.isdir(directory):
                cwd = directory

        logger.debug(f"Running {' '.join(args)}")
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
        stdout, stderr = await process.communicate(content.encode("utf-8"))
        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")

        if process.returncode not in REPORT_EXIT_CODES:
            raise _to_error(err or out)
        return parse_report(out)
