# phpdoc_typecheck/errors.py
"""
Exception hierarchy for phpdoc-typecheck.

Hierarchy
─────────
┌──────────────────────────────────────────────────────────────────────┐
│  PhpDocTypeError (base)                                              │
│  ├── ScanError    - scanner lost sync with the token stream          │
│  ├── FixError     - a tag replacement broke the comment's structure  │
│  └── ConfigError  - unreadable or invalid configuration              │
└──────────────────────────────────────────────────────────────────────┘

Malformed type expressions are *not* exceptions: the type parser reports
them by returning ``None`` and the scanner turns that into a diagnostic.
``ScanError`` and ``FixError`` are recovered from inside a single file;
only ``ConfigError`` ends a run.
"""

from __future__ import annotations

from typing import Optional


class PhpDocTypeError(Exception):
    """Base class for every error raised by this package."""


class ScanError(PhpDocTypeError):
    """The declaration scanner met a construct it cannot follow.

    ``ptr`` is the token index where the problem was noticed, or ``None``
    at end of input.
    """

    def __init__(self, message: str, ptr: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.ptr = ptr

    def __str__(self) -> str:
        if self.ptr is not None:
            return f"token {self.ptr}: {self.message}"
        return self.message


class FixError(PhpDocTypeError):
    """An automatic fix would corrupt the documentation comment."""


class ConfigError(PhpDocTypeError):
    """Raised for configuration files that cannot be used."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message
