# tests/test_scope.py
"""
Tests for the immutable Scope value: kind transitions, rebinding, and
class-name resolution.
"""

import pytest

from phpdoc_typecheck.errors import ScanError
from phpdoc_typecheck.scope import ALLOWED_TRANSITIONS, Scope, ScopeKind


class TestTransitions:

    @pytest.mark.parametrize("outer, inner", [
        (ScopeKind.ROOT, ScopeKind.NAMESPACE),
        (ScopeKind.ROOT, ScopeKind.CLASSISH),
        (ScopeKind.NAMESPACE, ScopeKind.FUNCTION),
        (ScopeKind.CLASSISH, ScopeKind.FUNCTION),
        (ScopeKind.FUNCTION, ScopeKind.PARAMETERS),
        (ScopeKind.PARAMETERS, ScopeKind.CLASSISH),
        (ScopeKind.OTHER, ScopeKind.OTHER),
    ])
    def test_allowed(self, outer, inner):
        assert Scope(kind=outer).enter(inner, 10).kind is inner

    @pytest.mark.parametrize("outer, inner", [
        (ScopeKind.ROOT, ScopeKind.PARAMETERS),
        (ScopeKind.NAMESPACE, ScopeKind.NAMESPACE),
        (ScopeKind.CLASSISH, ScopeKind.OTHER),
        (ScopeKind.FUNCTION, ScopeKind.CLASSISH),
        (ScopeKind.PARAMETERS, ScopeKind.OTHER),
    ])
    def test_rejected(self, outer, inner):
        with pytest.raises(ScanError):
            Scope(kind=outer).enter(inner, 10)

    def test_table_covers_every_kind(self):
        assert set(ALLOWED_TRANSITIONS) == set(ScopeKind)

    def test_error_carries_position(self):
        with pytest.raises(ScanError) as excinfo:
            Scope(kind=ScopeKind.CLASSISH).enter(ScopeKind.OTHER, 42)
        assert excinfo.value.ptr == 42
        assert str(excinfo.value).startswith("token 42:")


class TestDerivation:

    def test_enter_records_closer(self):
        assert Scope().enter(ScopeKind.OTHER, 7).closer == 7

    def test_enter_classish_sets_class(self):
        inner = Scope(namespace="\\App").enter(
            ScopeKind.CLASSISH, 9, class_name="\\App\\A", parent_name="\\App\\B",
        )
        assert (inner.class_name, inner.parent_name) == ("\\App\\A", "\\App\\B")
        assert inner.namespace == "\\App"

    def test_function_keeps_class(self):
        cls = Scope().enter(ScopeKind.CLASSISH, 9, class_name="\\A")
        assert cls.enter(ScopeKind.FUNCTION, 8).class_name == "\\A"

    def test_enter_namespace_clears_uses(self):
        outer = Scope().with_use("X", "\\Lib\\X")
        inner = outer.enter(ScopeKind.NAMESPACE, 5, namespace="\\App")
        assert inner.namespace == "\\App"
        assert inner.uses == {}

    def test_with_namespace_clears_uses(self):
        scope = Scope().with_use("X", "\\Lib\\X").with_namespace("\\App")
        assert (scope.namespace, scope.uses) == ("\\App", {})

    def test_rebinding_leaves_original_untouched(self):
        original = Scope()
        changed = original.with_use("X", "\\Lib\\X").with_template("T", "int")
        assert original.uses == {} and original.templates == {}
        assert changed.uses == {"X": "\\Lib\\X"}
        assert changed.templates == {"T": "int"}

    def test_frozen(self):
        with pytest.raises(AttributeError):
            Scope().namespace = "\\App"


class TestResolution:

    @pytest.fixture
    def scope(self):
        return Scope(namespace="\\App").with_use("Log", "\\Psr\\Log")

    @pytest.mark.parametrize("name, expected", [
        ("\\Foo", "\\Foo"),
        ("Foo", "\\App\\Foo"),
        ("Sub\\Foo", "\\App\\Sub\\Foo"),
        ("namespace\\Foo", "\\App\\Foo"),
        ("Log", "\\Psr\\Log"),
        ("Log\\LoggerInterface", "\\Psr\\Log\\LoggerInterface"),
    ])
    def test_resolve(self, scope, name, expected):
        assert scope.resolve_class_name(name) == expected

    def test_global_namespace(self):
        assert Scope().qualify("Foo") == "\\Foo"
        assert Scope().resolve_class_name("Foo") == "\\Foo"
