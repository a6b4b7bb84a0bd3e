"""
phpdoc_typecheck/diagnostics.py
═══════════════════════════════

Findings, their codes, and the in-memory sink the scanner reports into.

Layout
──────

  PART 1  Severity, ErrorCode table
  PART 2  SourceLocation, Diagnostic
  PART 3  DiagnosticSink protocol, FileReport (sink + changeset fixer)

Every finding the scanner can produce is a member of :class:`ErrorCode`,
which fixes its code string, severity and message template in one place.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Sequence, Set, Tuple

from .errors import FixError
from .tokens import Token

_log = logging.getLogger(__name__)

ADDON_NAME = "phpdoc-typecheck"


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — SEVERITIES AND CODES
# ═════════════════════════════════════════════════════════════════════════

class Severity(enum.Enum):
    """
    Each carries:
      • label — the string used in every output format
      • color — termcolor colour name
    """

    ERROR = ("error", "red")
    WARNING = ("warning", "yellow")

    def __init__(self, label: str, color: str) -> None:
        self.label = label
        self.color = color


class ErrorCode(enum.Enum):
    """(code, severity, message template) for every finding."""

    PARSE_ERROR = (
        "phpdoc_parse_error", Severity.ERROR, "PHPDoc failed to parse source: %s")
    TEMPLATE_NAME = (
        "phpdoc_template_name", Severity.ERROR, "PHPDoc template name missing or malformed")
    TEMPLATE_TYPE = (
        "phpdoc_template_type", Severity.ERROR, "PHPDoc template type missing or malformed")
    TEMPLATE_TYPE_STYLE = (
        "phpdoc_template_type_style", Severity.WARNING,
        "PHPDoc template type doesn't conform to recommended style")
    CLASS_PROP_TYPE = (
        "phpdoc_class_prop_type", Severity.ERROR,
        "PHPDoc class property type missing or malformed")
    CLASS_PROP_NAME = (
        "phpdoc_class_prop_name", Severity.ERROR,
        "PHPDoc class property name missing or malformed")
    CLASS_PROP_TYPE_STYLE = (
        "phpdoc_class_prop_type_style", Severity.WARNING,
        "PHPDoc class property type doesn't conform to recommended style")
    FUN_PARAM_TYPE = (
        "phpdoc_fun_param_type", Severity.ERROR,
        "PHPDoc function parameter %s type missing or malformed")
    FUN_PARAM_NAME = (
        "phpdoc_fun_param_name", Severity.ERROR,
        "PHPDoc function parameter %s name missing or malformed")
    FUN_PARAM_COUNT = (
        "phpdoc_fun_param_count", Severity.ERROR,
        "PHPDoc number of function parameters doesn't match actual number")
    FUN_PARAM_TYPE_MISMATCH = (
        "phpdoc_fun_param_type_mismatch", Severity.ERROR,
        "PHPDoc function parameter %s type mismatch")
    FUN_PARAM_NAME_MISMATCH = (
        "phpdoc_fun_param_name_mismatch", Severity.ERROR,
        "PHPDoc function parameter %s name mismatch")
    FUN_PARAM_PASS_SPLAT_MISMATCH = (
        "phpdoc_fun_param_pass_splat_mismatch", Severity.WARNING,
        "PHPDoc function parameter %s splat mismatch or pass by reference mismatch")
    FUN_PARAM_TYPE_STYLE = (
        "phpdoc_fun_param_type_style", Severity.WARNING,
        "PHPDoc function parameter %s type doesn't conform to recommended style")
    FUN_RET_TYPE = (
        "phpdoc_fun_ret_type", Severity.ERROR,
        "PHPDoc function return type missing or malformed")
    FUN_RET_TYPE_MISMATCH = (
        "phpdoc_fun_ret_type_mismatch", Severity.ERROR,
        "PHPDoc function return type mismatch")
    FUN_RET_MULTIPLE = (
        "phpdoc_fun_ret_multiple", Severity.ERROR,
        "PHPDoc multiple function @return tags, put in one tag separated by |")
    FUN_RET_TYPE_STYLE = (
        "phpdoc_fun_ret_type_style", Severity.WARNING,
        "PHPDoc function return type doesn't conform to recommended style")
    VAR_TYPE = (
        "phpdoc_var_type", Severity.ERROR, "PHPDoc var type missing or malformed")
    VAR_TYPE_MISMATCH = (
        "phpdoc_var_type_mismatch", Severity.ERROR, "PHPDoc var type mismatch")
    VAR_NAME_MISMATCH = (
        "phpdoc_var_name_mismatch", Severity.ERROR, "PHPDoc var name mismatch")
    VAR_MULTIPLE = (
        "phpdoc_var_multiple", Severity.ERROR, "PHPDoc multiple @var tags")
    VAR_TYPE_STYLE = (
        "phpdoc_var_type_style", Severity.WARNING,
        "PHPDoc var type doesn't conform to recommended style")
    TAG_MISPLACED = (
        "phpdoc_tag_misplaced", Severity.ERROR, "PHPDoc %s tag is not expected here")
    FUN_DOC_MISSING = (
        "phpdoc_fun_doc_missing", Severity.WARNING, "PHPDoc function is not documented")
    FUN_PARAM_MISSING = (
        "phpdoc_fun_param_missing", Severity.WARNING,
        "PHPDoc function parameter %s not documented")
    FUN_RET_MISSING = (
        "phpdoc_fun_ret_missing", Severity.WARNING, "PHPDoc missing function @return tag")
    VAR_DOC_MISSING = (
        "phpdoc_var_doc_missing", Severity.WARNING,
        "PHPDoc variable or constant is not documented")
    VAR_MISSING = (
        "phpdoc_var_missing", Severity.WARNING, "PHPDoc missing @var tag")
    INTERNAL_FIX = (
        "phpdoc_internal_fix", Severity.ERROR, "PHPDoc internal error applying fix: %s")

    def __init__(self, code: str, severity: Severity, template: str) -> None:
        self.code = code
        self.severity = severity
        self.template = template

    @classmethod
    def from_code(cls, code: str) -> Optional["ErrorCode"]:
        for member in cls:
            if member.code == code:
                return member
        return None


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — FINDINGS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single finding.

    Attributes
    ----------
    error_id : code string, e.g. ``phpdoc_var_type``
    message  : human-readable text, template already filled in
    severity : Severity
    location : where the finding points
    fixable  : an automatic fix exists
    """
    error_id: str
    message: str
    severity: Severity
    location: SourceLocation
    fixable: bool = False

    def to_cppcheck_json(self) -> Dict[str, Any]:
        """Serialize to cppcheck's JSON addon output format."""
        return {
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "severity": self.severity.label,
            "message": self.message,
            "addon": ADDON_NAME,
            "errorId": self.error_id,
            "extra": "fixable" if self.fixable else "",
        }

    def to_json_str(self) -> str:
        return json.dumps(self.to_cppcheck_json())

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        return f"{self.location}: {self.severity.label}: {self.message} [{self.error_id}]"

    def to_cppcheck_line(self) -> str:
        loc = self.location
        return f"[{loc.file}:{loc.line}]: ({self.severity.label}) {self.message} [{self.error_id}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — SINK
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSink(Protocol):
    """What the scanner reports into."""

    def report_error(self, message: str, ptr: int, code: str,
                     args: Sequence[Any] = ()) -> None: ...

    def report_warning(self, message: str, ptr: int, code: str,
                       args: Sequence[Any] = ()) -> None: ...

    def report_fixable_warning(self, message: str, ptr: int, code: str,
                               args: Sequence[Any] = ()) -> bool: ...

    def begin_changeset(self) -> None: ...

    def replace_token_range(self, start: int, end: int, text: str) -> None: ...

    def end_changeset(self) -> None: ...

    def rollback_changeset(self) -> None: ...


class FileReport:
    """
    Collects the findings for one file and applies fixes to its tokens.

    Reporting is idempotent: a finding identical to one already held
    (same code, position and message) is dropped.  Codes listed in
    *disabled_codes* are never recorded.

    Fixes are grouped in changesets.  Replacements made inside an open
    changeset only reach the token contents on :meth:`end_changeset`;
    :meth:`rollback_changeset` discards them all.
    """

    def __init__(
        self,
        file_name: str,
        tokens: Sequence[Token],
        fix: bool = False,
        disabled_codes: FrozenSet[str] = frozenset(),
    ) -> None:
        self.file_name = file_name
        self.tokens = tokens
        self.fix = fix
        self.disabled_codes = disabled_codes
        self.diagnostics: List[Diagnostic] = []
        self.fixes_applied = 0
        self._seen: Set[Tuple[str, int, int, str]] = set()
        self._contents = [token.content for token in tokens]
        self._changeset: Optional[Dict[int, str]] = None

    # ── reporting ────────────────────────────────────────────────────

    def _location(self, ptr: int) -> SourceLocation:
        if not self.tokens:
            return SourceLocation(self.file_name, 1, 1)
        token = self.tokens[max(0, min(ptr, len(self.tokens) - 1))]
        return SourceLocation(self.file_name, token.line, token.column)

    def _record(self, message: str, ptr: int, code: str, args: Sequence[Any],
                severity: Severity, fixable: bool) -> bool:
        if code in self.disabled_codes:
            return False
        text = message % tuple(args) if args else message
        location = self._location(ptr)
        key = (code, location.line, location.column, text)
        if key in self._seen:
            return False
        self._seen.add(key)
        self.diagnostics.append(Diagnostic(code, text, severity, location, fixable))
        _log.debug("%s: %s [%s]", location, text, code)
        return True

    def report_error(self, message: str, ptr: int, code: str,
                     args: Sequence[Any] = ()) -> None:
        self._record(message, ptr, code, args, Severity.ERROR, False)

    def report_warning(self, message: str, ptr: int, code: str,
                       args: Sequence[Any] = ()) -> None:
        self._record(message, ptr, code, args, Severity.WARNING, False)

    def report_fixable_warning(self, message: str, ptr: int, code: str,
                               args: Sequence[Any] = ()) -> bool:
        """Record the warning; True when the caller should apply its fix."""
        recorded = self._record(message, ptr, code, args, Severity.WARNING, True)
        return recorded and self.fix

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.WARNING)

    # ── fixing ───────────────────────────────────────────────────────

    def begin_changeset(self) -> None:
        if self._changeset is not None:
            raise FixError("changeset already open")
        self._changeset = {}

    def replace_token_range(self, start: int, end: int, text: str) -> None:
        """Replace tokens ``start..end`` inclusive with *text*."""
        if self._changeset is None:
            raise FixError("no changeset open")
        if not 0 <= start <= end < len(self.tokens):
            raise FixError(f"token range {start}..{end} out of bounds")
        self._changeset[start] = text
        for index in range(start + 1, end + 1):
            self._changeset[index] = ""

    def end_changeset(self) -> None:
        if self._changeset is None:
            raise FixError("no changeset open")
        for index, text in self._changeset.items():
            self._contents[index] = text
        self._changeset = None
        self.fixes_applied += 1

    def rollback_changeset(self) -> None:
        self._changeset = None

    def fixed_source(self) -> str:
        return "".join(self._contents)
