"""
phpdoc_typecheck/__main__.py
============================

Entry point for ``python -m phpdoc_typecheck``; see :mod:`phpdoc_typecheck.main`.
"""

from __future__ import annotations

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())
