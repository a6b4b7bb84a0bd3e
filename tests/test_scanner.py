# tests/test_scanner.py
"""
End-to-end tests for the declaration scanner: PHP source in, findings
(and fixed source) out.
"""

import pytest

from phpdoc_typecheck.diagnostics import Severity
from phpdoc_typecheck.scanner import DeclarationScanner, check_source
from phpdoc_typecheck.diagnostics import FileReport
from phpdoc_typecheck.errors import FixError
from phpdoc_typecheck.scope import Artifact
from phpdoc_typecheck.tokens import tokenize

from tests.conftest import (
    CLEAN_CLASS,
    STYLE_WRONG,
    WRONG_TYPES,
    codes,
    findings,
    scan_php,
)


# ---------------------------------------------------------------------------
# Shared sources
# ---------------------------------------------------------------------------

class TestSharedSources:

    def test_clean_class(self):
        assert scan_php(CLEAN_CLASS).diagnostics == []

    def test_wrong_types(self):
        assert findings(scan_php(WRONG_TYPES)) == [
            (5, "phpdoc_fun_param_type_mismatch"),
            (7, "phpdoc_fun_ret_type_mismatch"),
        ]

    def test_wrong_types_messages(self):
        messages = [d.message for d in scan_php(WRONG_TYPES).diagnostics]
        assert "PHPDoc function parameter 1 type mismatch" in messages
        assert "PHPDoc function return type mismatch" in messages

    def test_style_warnings(self):
        report = scan_php(STYLE_WRONG)
        assert findings(report) == [
            (3, "phpdoc_fun_param_type_style"),
            (4, "phpdoc_fun_ret_type_style"),
        ]
        assert all(d.severity is Severity.WARNING and d.fixable for d in report.diagnostics)
        assert report.fixes_applied == 0

    def test_style_fixes(self):
        report = scan_php(STYLE_WRONG, fix=True)
        fixed = report.fixed_source()
        assert " * @param int $count\n" in fixed
        assert " * @return bool\n" in fixed
        assert report.fixes_applied == 2

    def test_style_off(self):
        assert scan_php(STYLE_WRONG, check_style=False).diagnostics == []

    def test_disabled_code(self):
        report = scan_php(STYLE_WRONG, disabled_codes=frozenset({"phpdoc_fun_ret_type_style"}))
        assert codes(report) == ["phpdoc_fun_param_type_style"]


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------

class TestParameters:

    def test_count_mismatch(self):
        report = scan_php("""<?php
/**
 * @param int $a
 */
function f(int $a, int $b): void {}
""")
        assert findings(report) == [(5, "phpdoc_fun_param_count")]

    def test_count_mismatch_still_matches_by_name(self):
        report = scan_php("""<?php
/**
 * @param string $b
 */
function f(int $a, int $b): void {}
""")
        assert findings(report) == [
            (3, "phpdoc_fun_param_type_mismatch"),
            (5, "phpdoc_fun_param_count"),
        ]

    def test_name_mismatch(self):
        report = scan_php("""<?php
/**
 * @param int $x
 */
function f(int $a): void {}
""")
        assert findings(report) == [(3, "phpdoc_fun_param_name_mismatch")]

    def test_malformed_type_and_name(self):
        report = scan_php("""<?php
/**
 * @param Integer $x
 */
function f(int $x): void {}
""")
        assert findings(report) == [
            (3, "phpdoc_fun_param_name"),
            (3, "phpdoc_fun_param_type"),
        ]

    def test_splat_mismatch(self):
        report = scan_php("""<?php
/**
 * @param int ...$xs
 */
function f(int $xs): void {}
""")
        assert findings(report) == [(3, "phpdoc_fun_param_pass_splat_mismatch")]

    def test_reference_mismatch(self):
        report = scan_php("""<?php
/**
 * @param array &$a
 */
function f(array $a): void {}
""")
        assert codes(report) == ["phpdoc_fun_param_pass_splat_mismatch"]

    def test_undocumented_reference_is_fine(self):
        report = scan_php("""<?php
/**
 * @param array $a
 */
function f(array &$a): void {}
""")
        assert report.diagnostics == []

    def test_default_null_widens_native(self):
        report = scan_php("""<?php
/**
 * @param int|null $a
 */
function f(int $a = null): void {}
""")
        assert report.diagnostics == []

    def test_promoted_constructor(self):
        report = scan_php("""<?php
class Point {
    /**
     * @param float $x
     * @param string $y
     */
    public function __construct(public float $x, public float $y) {}
}
""")
        assert findings(report) == [(5, "phpdoc_fun_param_type_mismatch")]


class TestReturns:

    def test_multiple(self):
        report = scan_php("""<?php
/**
 * @return int
 * @return string
 */
function f(): int {}
""")
        assert findings(report) == [
            (4, "phpdoc_fun_ret_multiple"),
            (4, "phpdoc_fun_ret_type_mismatch"),
        ]

    def test_malformed(self):
        report = scan_php("""<?php
/**
 * @return array<int
 */
function f(): array {}
""")
        assert codes(report) == ["phpdoc_fun_ret_type"]

    def test_undeclared_native_accepts_anything(self):
        report = scan_php("""<?php
/**
 * @return \\Foo|int
 */
function f() {}
""")
        assert report.diagnostics == []

    def test_interface_method(self):
        report = scan_php("""<?php
interface Shape {
    /**
     * @return string
     */
    public function area(): float;
}
""")
        assert findings(report) == [(4, "phpdoc_fun_ret_type_mismatch")]

    def test_static_narrower_than_self(self):
        report = scan_php("""<?php
class A {
    /**
     * @return static
     */
    public function copy(): self {}
}
""")
        assert report.diagnostics == []

    @pytest.mark.known_approximation
    def test_late_static_binding_in_body(self):
        report = scan_php("""<?php
class A {
    /**
     * @return static
     */
    public static function make(): static {
        static $made = 0;
        static::boot();
        return new static();
    }
}
""")
        assert report.diagnostics == []

    @pytest.mark.known_approximation
    def test_unknowable_types_accepted(self):
        report = scan_php("""<?php
/**
 * @return key-of<array>
 */
function f(): int {}
""")
        assert report.diagnostics == []


class TestAnonymousFunctions:

    def test_closure_with_use(self):
        report = scan_php("""<?php
$rate = 2;
$double = array_map(
    /**
     * @param string $n
     */
    function (int $n) use ($rate): int { return $n * $rate; },
    [1, 2]
);
""")
        assert findings(report) == [(5, "phpdoc_fun_param_type_mismatch")]

    def test_arrow_function(self):
        report = scan_php("""<?php
$f =
    /** @return string */
    fn(int $x): int => $x * 2;
""")
        assert findings(report) == [(3, "phpdoc_fun_ret_type_mismatch")]

    def test_comment_before_attribute(self):
        report = scan_php("""<?php
/**
 * @return string
 */
#[Pure]
function f(): int {}
""")
        assert findings(report) == [(3, "phpdoc_fun_ret_type_mismatch")]


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

class TestTemplates:

    def test_constraint_used(self):
        report = scan_php("""<?php
/**
 * @template T of \\Countable
 * @param T $items
 * @return T
 */
function first(\\Countable $items): \\Countable {}
""")
        assert report.diagnostics == []

    def test_constraint_checked(self):
        report = scan_php("""<?php
/**
 * @template T of \\Countable
 * @param T $items
 * @return T
 */
function first(array $items): array {}
""")
        assert findings(report) == [
            (4, "phpdoc_fun_param_type_mismatch"),
            (5, "phpdoc_fun_ret_type_mismatch"),
        ]

    def test_missing_name(self):
        report = scan_php("""<?php
/**
 * @template
 */
function f(): void {}
""")
        assert findings(report) == [(3, "phpdoc_template_name")]

    def test_malformed_constraint(self):
        report = scan_php("""<?php
/**
 * @template T of Integer
 * @param T $x
 */
function f(int $x): void {}
""")
        assert findings(report) == [(3, "phpdoc_template_type")]

    def test_malformed_constraint_in_intersection(self):
        report = scan_php("""<?php
/**
 * @template T of Integer
 * @param \\Countable&T $x
 */
function f(int $x): void {}
""")
        assert findings(report) == [(3, "phpdoc_template_type")]

    def test_class_template_visible_in_methods(self):
        report = scan_php("""<?php
/**
 * @template TItem of int
 */
class Box {
    /**
     * @return TItem
     */
    public function get(): string {}
}
""")
        assert findings(report) == [(7, "phpdoc_fun_ret_type_mismatch")]


# ---------------------------------------------------------------------------
# Classes, properties and constants
# ---------------------------------------------------------------------------

class TestVariables:

    def test_property_mismatch(self):
        report = scan_php("""<?php
class A {
    /** @var string */
    public int $x = 0;
}
""")
        assert findings(report) == [(3, "phpdoc_var_type_mismatch")]

    def test_name_mismatch(self):
        report = scan_php("""<?php
class A {
    /** @var int $y */
    public int $x = 0;
}
""")
        assert findings(report) == [(3, "phpdoc_var_name_mismatch")]

    def test_several_names(self):
        report = scan_php("""<?php
class A {
    /** @var int $b */
    public $a = 1, $b = 2;
}
""")
        assert report.diagnostics == []

    def test_multiple(self):
        report = scan_php("""<?php
class A {
    /**
     * @var int
     * @var string
     */
    public $x;
}
""")
        assert findings(report) == [(5, "phpdoc_var_multiple")]

    def test_class_constant(self):
        report = scan_php("""<?php
class A {
    /** @var string */
    const int FOO = 1;
}
""")
        assert findings(report) == [(3, "phpdoc_var_type_mismatch")]

    def test_top_level_constant(self):
        report = scan_php("""<?php
/** @var Integer */
const LIMIT = 10;
""")
        assert findings(report) == [(2, "phpdoc_var_type")]

    def test_local_variables_ignored(self):
        report = scan_php("""<?php
function f(): void {
    /** @var string */
    $x = 1;
}
""")
        assert report.diagnostics == []

    def test_misplaced_tags(self):
        report = scan_php("""<?php
class A {
    /**
     * @param int $x
     * @var int
     */
    public int $x = 0;
}
""")
        assert findings(report) == [(4, "phpdoc_tag_misplaced")]

    def test_anonymous_class(self):
        report = scan_php("""<?php
$o = new class(1) {
    /** @var string */
    public int $x = 0;
};
""")
        assert findings(report) == [(3, "phpdoc_var_type_mismatch")]

    def test_enum(self):
        report = scan_php("""<?php
enum Suit: string {
    case Hearts = 'H';

    /** @var string */
    const WILD = 'W';

    /**
     * @return string
     */
    public function label(): string { return $this->value; }
}
""")
        assert report.diagnostics == []


class TestClassTags:

    def test_property_tag_without_name(self):
        report = scan_php("""<?php
/**
 * @property int
 */
class A {}
""")
        assert findings(report) == [(3, "phpdoc_class_prop_name")]

    def test_property_tag_malformed(self):
        report = scan_php("""<?php
/**
 * @property-write Integer $x
 */
class A {}
""")
        assert "phpdoc_class_prop_type" in codes(report)

    def test_misplaced_on_class(self):
        report = scan_php("""<?php
/**
 * @return int
 */
class A {}
""")
        assert findings(report) == [(3, "phpdoc_tag_misplaced")]
        assert report.diagnostics[0].message == "PHPDoc @return tag is not expected here"

    def test_misplaced_var_on_function(self):
        report = scan_php("""<?php
/**
 * @var int
 */
function f(): void {}
""")
        assert findings(report) == [(3, "phpdoc_tag_misplaced")]


# ---------------------------------------------------------------------------
# Names and hierarchy
# ---------------------------------------------------------------------------

class TestNamesAndHierarchy:

    def test_braced_namespace_with_alias(self):
        report = scan_php("""<?php
namespace Shop {
    use Money\\Amount as Cash;

    /**
     * @param Cash $price
     */
    function charge(\\Money\\Amount $price): void {}
}
""")
        assert report.diagnostics == []

    def test_alias_mismatch(self):
        report = scan_php("""<?php
namespace Shop {
    use Money\\Amount as Cash;

    /**
     * @param Cash $price
     */
    function charge(\\Money\\Other $price): void {}
}
""")
        assert findings(report) == [(6, "phpdoc_fun_param_type_mismatch")]

    def test_group_use(self):
        report = scan_php("""<?php
namespace App;

use Money\\{Amount, Currency as Cur};

/**
 * @param Amount $a
 * @param Cur $c
 */
function f(\\Money\\Amount $a, \\Money\\Currency $c): void {}
""")
        assert report.diagnostics == []

    def test_subclass_declared_later(self):
        report = scan_php("""<?php
/**
 * @return Child
 */
function make(): Base {}

class Child extends Base {}
class Base {}
""")
        assert report.diagnostics == []

    def test_superclass_does_not_fit(self):
        report = scan_php("""<?php
/**
 * @return Base
 */
function make(): Child {}

class Child extends Base {}
class Base {}
""")
        assert findings(report) == [(3, "phpdoc_fun_ret_type_mismatch")]

    def test_artifacts_recorded(self):
        tokens = tokenize("""<?php
namespace App;
class Child extends Base implements \\Countable {}
interface Shape extends \\Stringable {}
""")
        scanner = DeclarationScanner(tokens, FileReport("t.php", tokens))
        scanner.scan()
        assert scanner.artifacts == {
            "\\App\\Child": Artifact("\\App\\Base", ("\\Countable",)),
            "\\App\\Shape": Artifact(None, ("\\Stringable",)),
        }


# ---------------------------------------------------------------------------
# Optional documentation checks
# ---------------------------------------------------------------------------

class TestHasDocs:

    def test_function_undocumented(self):
        report = scan_php("<?php\nfunction f(int $a): int {}\n", check_has_docs=True)
        assert findings(report) == [(2, "phpdoc_fun_doc_missing")]

    def test_off_by_default(self):
        assert scan_php("<?php\nfunction f(int $a): int {}\n").diagnostics == []

    def test_parameter_and_return_missing(self):
        report = scan_php("""<?php
/**
 * Summary.
 */
function f(int $a): int {}
""", check_has_docs=True)
        assert findings(report) == [
            (5, "phpdoc_fun_param_missing"),
            (5, "phpdoc_fun_ret_missing"),
        ]
        assert "PHPDoc function parameter $a not documented" in [
            d.message for d in report.diagnostics
        ]

    def test_constructor_and_void_exempt(self):
        report = scan_php("""<?php
class A {
    /**
     * Make one.
     */
    public function __construct() {}

    /**
     * Do it.
     */
    public function run(): void {}
}
""", check_has_docs=True)
        assert report.diagnostics == []

    def test_closures_exempt(self):
        report = scan_php("<?php\n$f = function (int $x) { return $x; };\n", check_has_docs=True)
        assert report.diagnostics == []

    def test_property_undocumented(self):
        report = scan_php("<?php\nclass A {\n    public $x;\n}\n", check_has_docs=True)
        assert findings(report) == [(3, "phpdoc_var_doc_missing")]

    def test_property_without_var(self):
        report = scan_php("""<?php
class A {
    /** Counter. */
    public int $n = 0;
}
""", check_has_docs=True)
        assert findings(report) == [(4, "phpdoc_var_missing")]


# ---------------------------------------------------------------------------
# Fixes and recovery
# ---------------------------------------------------------------------------

class TestFixes:

    def test_multi_line_type_joined(self):
        source = """<?php
/**
 * @param array<int,
 *     integer> $map
 */
function f(array $map): void {}
"""
        report = scan_php(source, fix=True)
        assert findings(report) == [(3, "phpdoc_fun_param_type_style")]
        assert report.fixes_applied == 1
        assert report.fixed_source() == """<?php
/**
 * @param array<int, int> $map
 */
function f(array $map): void {}
"""

    def test_description_kept(self):
        report = scan_php("""<?php
class A {
    /** @var integer Number of items. */
    public int $n = 0;
}
""", fix=True)
        assert "/** @var int Number of items. */" in report.fixed_source()

    def test_no_fix_without_flag(self):
        report = scan_php(STYLE_WRONG)
        assert report.fixed_source() == STYLE_WRONG

    def test_crlf_line_endings(self):
        source = STYLE_WRONG.replace("\n", "\r\n")
        report = scan_php(source, fix=True)
        assert findings(report) == [
            (3, "phpdoc_fun_param_type_style"),
            (4, "phpdoc_fun_ret_type_style"),
        ]
        assert report.fixed_source() == (
            source.replace("integer", "int").replace("boolean", "bool")
        )

    def test_multi_line_type_with_cr_line_endings(self):
        source = (
            "<?php\rclass A {\r    /** @var integer\r     *  | boolean */\r"
            "    public $x;\r}\r"
        )
        report = scan_php(source, fix=True)
        assert codes(report) == ["phpdoc_var_type_style"]
        assert report.fixes_applied == 1
        fixed = report.fixed_source()
        assert "/** @var int | bool */\r" in fixed
        assert fixed.count("\r") == source.count("\r") - 1

    def test_failed_fix_rolled_back(self, monkeypatch):
        replace = FileReport.replace_token_range

        def replace_then_fail(report, start, end, text):
            replace(report, start, end, text)
            raise FixError("replacement rejected")

        monkeypatch.setattr(FileReport, "replace_token_range", replace_then_fail)
        report = scan_php(STYLE_WRONG, fix=True)
        assert findings(report) == [
            (3, "phpdoc_fun_param_type_style"),
            (3, "phpdoc_internal_fix"),
            (4, "phpdoc_fun_ret_type_style"),
            (4, "phpdoc_internal_fix"),
        ]
        assert report.fixes_applied == 0
        assert report.fixed_source() == STYLE_WRONG
        assert (report.error_count, report.warning_count) == (2, 2)


class TestRecovery:

    def test_stray_brace(self):
        report = scan_php("""<?php
}
$y = 1;
class A {
    /** @var string */
    public int $x = 0;
}
""")
        assert findings(report) == [
            (2, "phpdoc_parse_error"),
            (5, "phpdoc_var_type_mismatch"),
        ]
        assert report.diagnostics[0].message == (
            "PHPDoc failed to parse source: unmatched '}'"
        )

    def test_unterminated_property(self):
        report = scan_php("<?php\nclass A {\n    public $x\n}\n")
        assert codes(report) == ["phpdoc_parse_error"]

    def test_check_source_file_name(self):
        report = check_source("<?php\n}\n", "lib/broken.php")
        assert report.diagnostics[0].location.file == "lib/broken.php"


class TestSummaryScenarios:

    def test_null_does_not_fit_void(self):
        report = scan_php("""<?php
/**
 * @return null
 */
function f(): void {}
""")
        assert findings(report) == [(3, "phpdoc_fun_ret_type_mismatch")]

    def test_extra_param_tag_reported_once(self):
        report = scan_php("""<?php
/**
 * @param int $a
 * @param int $b
 */
function f(int $a): void {}
""")
        assert findings(report) == [(6, "phpdoc_fun_param_count")]

    def test_malformed_class_template_binds_never(self):
        report = scan_php("""<?php
/**
 * @template T of Integer
 */
class Box {
    /**
     * @param T $x
     */
    public function set(int $x): void {}
}
""")
        assert findings(report) == [(3, "phpdoc_template_type")]
