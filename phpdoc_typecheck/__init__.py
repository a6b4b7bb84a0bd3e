"""
phpdoc_typecheck — PHPDoc type annotation checker
=================================================

Reads PHP sources, parses the types written in PHPDoc comments, and
checks them against the native declarations they document and against a
recommended house spelling.

Core modules
------------
type_parser
    PHPDoc type grammar: canonical types and house-style rewrites.
type_lattice
    Widening, super types and the wide/narrow compatibility test.
scope
    Immutable lexical scope: namespace, imports, templates, enclosing class.
cursor
    Significant-token cursor and documentation comment reader.
scanner
    The two-pass declaration scanner.

Supporting modules
------------------
tokens, reflection
    PHP tokenizer and declaration facts read off its token stream.
diagnostics, reporter
    Error codes, findings, the fixing sink and output renderers.
config, errors
    Scan configuration and the exception hierarchy.

Quick start
-----------
>>> from phpdoc_typecheck import check_source
>>> report = check_source("<?php /** @var int */ const FOO = 'x';")
>>> [d.error_id for d in report.diagnostics]
[]

Package layout
--------------
::

    phpdoc_typecheck/
    ├── __init__.py            ← this file
    ├── __main__.py
    ├── main.py                CLI
    ├── type_parser.py
    ├── type_lattice.py
    ├── scope.py
    ├── cursor.py
    ├── scanner.py
    ├── tokens.py
    ├── reflection.py
    ├── diagnostics.py
    ├── reporter.py
    ├── config.py
    └── errors.py
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import Dict, List

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__: List[str] = []          # populated below

# ---------------------------------------------------------------------------
# Internal registry: module name → names re-exported at package level
# ---------------------------------------------------------------------------

_CORE_MODULES: Dict[str, List[str]] = {
    "errors": ["PhpDocTypeError", "ScanError", "FixError", "ConfigError"],
    "scope": ["Scope", "ScopeKind", "Artifact"],
    "type_lattice": ["TypeLattice", "widen_union"],
    "type_parser": ["DocTypeParser", "ParsedType", "ParseMode"],
    "tokens": ["Token", "TokenCode", "tokenize", "untokenize"],
    "cursor": ["TokenCursor", "PendingComment", "TagOccurrence", "read_comment"],
    "diagnostics": ["Diagnostic", "ErrorCode", "FileReport", "Severity", "SourceLocation"],
    "config": ["ScanConfig", "load_config", "discover_config"],
    "reporter": ["Reporter", "ReporterStats"],
    "scanner": ["DeclarationScanner", "check_source"],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace."""
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"phpdoc_typecheck: required submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            raise AttributeError(f"phpdoc_typecheck.{module_rel_name} does not export '{name}'")
        setattr(current_module, name, obj)
        __all__.append(name)

    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names)

__all__ += ["__version__"]
