# tests/conftest.py
"""
Shared fixtures and helpers for the phpdoc-typecheck test suite.

PHP sources used by more than one module live here as constants; the
helpers run the scanner over a snippet and boil the report down to what
the tests assert on.
"""

from __future__ import annotations

from typing import List, Tuple

import pytest

from phpdoc_typecheck.config import ScanConfig
from phpdoc_typecheck.diagnostics import FileReport
from phpdoc_typecheck.scanner import check_source
from phpdoc_typecheck.scope import Scope
from phpdoc_typecheck.type_lattice import TypeLattice
from phpdoc_typecheck.type_parser import DocTypeParser


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "known_approximation: documents a place where the scanner is "
        "knowingly imprecise",
    )


# ---------------------------------------------------------------------------
# PHP fixtures
# ---------------------------------------------------------------------------

CLEAN_CLASS = """<?php
namespace App\\Models;

use App\\Contracts\\HasName;

/**
 * A user.
 *
 * @property-read string $display
 */
class User extends Model implements HasName {
    /** @var int */
    public int $id = 0;

    /** @var ?string Nickname. */
    protected ?string $nick = null;

    /**
     * Constructor.
     *
     * @param int $id
     * @param string|null $nick
     */
    public function __construct(int $id, ?string $nick = null) {
        $this->id = $id;
        $this->nick = $nick;
    }

    /**
     * Name to show.
     *
     * @return string
     */
    public function name(): string {
        return $this->nick ?? 'user';
    }
}
"""

WRONG_TYPES = """<?php
/**
 * Adds things.
 *
 * @param string $a
 * @param int $b
 * @return string
 */
function add(int $a, int $b): int {
    return $a + $b;
}
"""

STYLE_WRONG = """<?php
/**
 * @param integer $count
 * @return boolean
 */
function positive(int $count): bool {
    return $count > 0;
}
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def scan_php(source: str, **config) -> FileReport:
    """Scan *source* with a :class:`ScanConfig` built from *config*."""
    return check_source(source, "test.php", ScanConfig(**config))


def codes(report: FileReport) -> List[str]:
    """Error ids in report order."""
    return [d.error_id for d in report.diagnostics]


def findings(report: FileReport) -> List[Tuple[int, str]]:
    """(line, error id) pairs sorted by line."""
    return sorted((d.location.line, d.error_id) for d in report.diagnostics)


def parse(text: str, **kwargs):
    """Parse *text* in the global scope with a fresh parser."""
    return DocTypeParser().parse_type_and_var(Scope(), text, **kwargs)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def parser() -> DocTypeParser:
    return DocTypeParser()


@pytest.fixture
def lattice() -> TypeLattice:
    return TypeLattice()


@pytest.fixture
def class_scope() -> Scope:
    """Inside ``class \\App\\Child extends \\App\\Base``."""
    return Scope(
        namespace="\\App",
        uses={"Dep": "\\Vendor\\Dep"},
        class_name="\\App\\Child",
        parent_name="\\App\\Base",
    )
