# tests/test_type_lattice.py
"""
Tests for supertype closures and the wide/narrow compatibility test.
"""

import pytest

from phpdoc_typecheck.scope import Artifact
from phpdoc_typecheck.type_lattice import LIBRARY, TypeLattice, widen_union


class TestSuperTypes:

    def test_scalars(self, lattice):
        assert set(lattice.super_types("int")) == {"array-key", "scalar"}
        assert lattice.super_types("mixed") == ()

    def test_class_is_object(self, lattice):
        assert lattice.super_types("\\Unknown") == ("object",)

    def test_library_chain(self, lattice):
        supers = lattice.super_types("\\InvalidArgumentException")
        assert {"\\LogicException", "\\Exception", "\\Throwable",
                "\\Stringable", "object"} <= set(supers)
        assert "\\InvalidArgumentException" not in supers

    def test_iterators_reach_iterable(self, lattice):
        assert "iterable" in lattice.super_types("\\ArrayIterator")

    def test_static_includes_its_class(self, lattice):
        supers = lattice.super_types("static(\\Foo)")
        assert {"static", "self", "parent", "object", "\\Foo"} <= set(supers)

    def test_artifacts(self):
        lattice = TypeLattice({
            "\\App\\Child": Artifact("\\App\\Base", ("\\App\\Named",)),
            "\\App\\Base": Artifact(None, ("\\Countable",)),
        })
        supers = set(lattice.super_types("\\App\\Child"))
        assert supers == {"object", "\\App\\Base", "\\App\\Named", "\\Countable"}

    def test_cyclic_artifacts_terminate(self):
        lattice = TypeLattice({
            "\\A": Artifact("\\B"),
            "\\B": Artifact("\\A"),
        })
        assert set(lattice.super_types("\\A")) == {"object", "\\B"}

    def test_cached(self, lattice):
        assert lattice.super_types("\\Generator") is lattice.super_types("\\Generator")

    def test_library_names_are_absolute(self):
        assert all(name.startswith("\\") for name in LIBRARY)


class TestWidenUnion:

    def test_array_key(self):
        assert "array-key" in widen_union(["int", "string"])

    def test_scalar(self):
        assert "scalar" in widen_union(["int", "string", "bool", "float"])

    def test_iterable(self):
        assert "iterable" in widen_union(["\\Traversable", "array"])

    def test_nothing_to_add(self):
        assert widen_union(["int", "null"]) == ["int", "null"]


class TestCompareTypes:

    @pytest.mark.parametrize("wide, narrow", [
        ("int", "int"),
        ("array-key", "int"),
        ("scalar", "bool"),
        ("iterable", "array"),
        ("iterable", "\\ArrayIterator"),
        ("object", "\\Foo"),
        ("callable", "\\Closure"),
        ("callable", "callable-string"),
        ("string", "callable-string"),
        ("int|null", "int"),
        ("int|string", "array-key"),
        ("bool|float|int|string", "scalar"),
        ("\\Traversable|array", "iterable"),
        ("\\Throwable", "\\InvalidArgumentException"),
        ("\\Foo", "static(\\Foo)"),
        ("\\A", "\\A&\\B"),
        ("mixed", "resource"),
        ("void", "never"),
    ])
    def test_fits(self, lattice, wide, narrow):
        assert lattice.compare_types(wide, narrow)

    @pytest.mark.parametrize("wide, narrow", [
        ("int", "string"),
        ("int", "array-key"),
        ("int", "int|null"),
        ("\\Foo", "object"),
        ("static(\\Foo)", "\\Foo"),
        ("\\A&\\B", "\\A"),
        ("array", "iterable"),
        ("\\Exception", "\\Error"),
    ])
    def test_does_not_fit(self, lattice, wide, narrow):
        assert not lattice.compare_types(wide, narrow)

    def test_unknown_wide_accepts_anything(self, lattice):
        assert lattice.compare_types(None, "int")

    def test_unknown_narrow_never_fits(self, lattice):
        assert not lattice.compare_types("mixed", None)

    def test_artifact_hierarchy(self):
        lattice = TypeLattice({"\\Child": Artifact("\\Base")})
        assert lattice.compare_types("\\Base", "\\Child")
        assert not lattice.compare_types("\\Child", "\\Base")


class TestObjectLike:

    @pytest.mark.parametrize("type_", ["object", "iterable", "callable", "\\Foo", "static(\\Foo)"])
    def test_object_like(self, lattice, type_):
        assert lattice.is_object_like(type_)

    @pytest.mark.parametrize("type_", ["int", "array", "null"])
    def test_not_object_like(self, lattice, type_):
        assert not lattice.is_object_like(type_)


SAMPLE_TYPES = [
    "int", "int|string", "array-key", "bool|float|null", "\\Bar&\\Foo",
    "\\A&\\B|null", "static(\\Foo)", "callable", "iterable", "array|\\Countable",
]


class TestLaws:

    @pytest.mark.parametrize("type_", SAMPLE_TYPES)
    def test_reflexive(self, lattice, type_):
        assert lattice.compare_types(type_, type_)

    @pytest.mark.parametrize("type_", SAMPLE_TYPES)
    def test_mixed_and_never(self, lattice, type_):
        assert lattice.compare_types("mixed", type_)
        assert lattice.compare_types(type_, "never")

    @pytest.mark.parametrize("wide, first, second", [
        ("scalar", "int", "string"),
        ("iterable", "array", "\\Iterator"),
        ("object", "\\Foo", "static(\\Bar)"),
    ])
    def test_union_monotonic(self, lattice, wide, first, second):
        assert lattice.compare_types(wide, first)
        assert lattice.compare_types(wide, second)
        assert lattice.compare_types(wide, f"{first}|{second}")

    def test_transitive_hierarchy(self):
        lattice = TypeLattice({"\\A": Artifact("\\B"), "\\B": Artifact("\\C")})
        assert lattice.compare_types("\\C", "\\A")
