"""
phpdoc_typecheck/reporter.py
════════════════════════════

Writes findings out.

Output formats
──────────────
  • text     : ``file:line:col: severity: message [code]``, coloured with
               termcolor and followed by the offending source line and a
               caret when the stream is a terminal
  • cppcheck : the classic one-liner ``[file:line]: (severity) message [code]``
  • json     : one cppcheck addon JSON object per line

Usage
─────
    with Reporter(sys.stdout, fmt="text") as rep:
        rep.report_file(report, source)
    # finish() prints the summary line
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, TextIO, Union

from termcolor import colored

from .diagnostics import Diagnostic, FileReport, Severity

FORMATS = ("text", "cppcheck", "json")


@dataclass
class ReporterStats:
    """Aggregate counts per severity."""
    error: int = 0
    warning: int = 0
    files: int = 0
    fixed: int = 0

    def record(self, severity: Severity) -> None:
        setattr(self, severity.label, getattr(self, severity.label) + 1)

    @property
    def total(self) -> int:
        return self.error + self.warning

    def summary_line(self) -> str:
        parts: List[str] = []
        if self.error:
            parts.append(f"{self.error} error{'s' if self.error != 1 else ''}")
        if self.warning:
            parts.append(f"{self.warning} warning{'s' if self.warning != 1 else ''}")
        if not parts:
            parts.append("no findings")
        line = f"{', '.join(parts)} in {self.files} file{'s' if self.files != 1 else ''}"
        if self.fixed:
            line += f", {self.fixed} fix{'es' if self.fixed != 1 else ''} applied"
        return line


# ═════════════════════════════════════════════════════════════════════════
#  RENDERERS
# ═════════════════════════════════════════════════════════════════════════

class _TerminalRenderer:
    """Coloured text with the source line and a caret."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic, source_lines: Sequence[str]) -> None:
        loc = diag.location
        sev_str = colored(diag.severity.label, diag.severity.color, attrs=["bold"])
        code_str = colored(f"[{diag.error_id}]", attrs=["dark"])
        lines = [f"{colored(str(loc), attrs=['bold'])}: {sev_str}: {diag.message} {code_str}"]
        if 0 < loc.line <= len(source_lines):
            pipe = colored("|", "blue", attrs=["bold"])
            gutter = colored(str(loc.line).rjust(5), "blue", attrs=["bold"])
            lines.append(f"{gutter} {pipe} {source_lines[loc.line - 1]}")
            pad = " " * max(loc.column - 1, 0)
            caret = colored("^", diag.severity.color, attrs=["bold"])
            lines.append(f"{' ' * 5} {pipe} {pad}{caret}")
        self._stream.write("\n".join(lines) + "\n")


class _PlainRenderer:
    def __init__(self, stream: TextIO, cppcheck: bool = False) -> None:
        self._stream = stream
        self._cppcheck = cppcheck

    def render(self, diag: Diagnostic, source_lines: Sequence[str]) -> None:
        line = diag.to_cppcheck_line() if self._cppcheck else diag.to_gcc_format()
        self._stream.write(line + "\n")


class _JsonRenderer:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic, source_lines: Sequence[str]) -> None:
        self._stream.write(diag.to_json_str() + "\n")


_Renderer = Union[_TerminalRenderer, _PlainRenderer, _JsonRenderer]


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER
# ═════════════════════════════════════════════════════════════════════════

class Reporter:
    """
    Routes every finding to the chosen renderer and keeps the counts.

    *colour* ``None`` means "colour when *stream* is a terminal"; it only
    affects the ``text`` format.
    """

    def __init__(
        self,
        stream: TextIO = sys.stdout,
        fmt: str = "text",
        colour: Optional[bool] = None,
    ) -> None:
        if fmt not in FORMATS:
            raise ValueError(f"unknown output format {fmt!r}")
        self.fmt = fmt
        self.stats = ReporterStats()
        self._stream = stream
        use_colour = colour if colour is not None else hasattr(stream, "isatty") and stream.isatty()
        self._colour = use_colour and fmt == "text"
        if fmt == "json":
            self._renderer: _Renderer = _JsonRenderer(stream)
        elif self._colour:
            self._renderer = _TerminalRenderer(stream)
        else:
            self._renderer = _PlainRenderer(stream, cppcheck=fmt == "cppcheck")

    def __enter__(self) -> "Reporter":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.finish()

    def report(self, diag: Diagnostic, source_lines: Sequence[str] = ()) -> None:
        self.stats.record(diag.severity)
        self._renderer.render(diag, source_lines)

    def report_file(self, report: FileReport, source: str = "") -> None:
        """Render every finding of one file, in source order."""
        self.stats.files += 1
        self.stats.fixed += report.fixes_applied
        source_lines = source.splitlines()
        ordered = sorted(
            report.diagnostics, key=lambda d: (d.location.line, d.location.column),
        )
        for diag in ordered:
            self.report(diag, source_lines)

    def finish(self) -> ReporterStats:
        """Print the summary line (text format only)."""
        if self.fmt == "text":
            summary = self.stats.summary_line()
            if self._colour:
                colour = "red" if self.stats.error else "yellow" if self.stats.total else "green"
                summary = colored(summary, colour, attrs=["bold"])
            self._stream.write(summary + "\n")
        self._stream.flush()
        return self.stats
