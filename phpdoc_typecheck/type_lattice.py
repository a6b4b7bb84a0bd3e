"""
phpdoc_typecheck/type_lattice.py
════════════════════════════════

Supertype closures and the "is this type the same or narrower" test.

Canonical types are plain strings: a ``|``-separated union of
``&``-separated intersections of atoms such as ``int``, ``array-key``,
``\\Foo\\Bar`` or ``static(\\Foo\\Bar)``.  The lattice never parses
anything; it only splits on those two separators.

Hierarchy sources, in lookup order
──────────────────────────────────

  1. the built-in and SPL class table below
  2. the artifacts collected from the file under check (pass 1)
  3. for anything else, the closure of the name on its own
"""

from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .scope import Artifact

# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — BUILT-IN HIERARCHY
# ═════════════════════════════════════════════════════════════════════════

LIBRARY: Dict[str, Tuple[str, ...]] = {
    # Predefined general.
    "\\ArrayAccess": (),
    "\\BackedEnum": ("\\UnitEnum",),
    "\\Closure": ("callable",),
    "\\Directory": (),
    "\\Fiber": (),
    "\\php_user_filter": (),
    "\\SensitiveParameterValue": (),
    "\\Serializable": (),
    "\\stdClass": (),
    "\\Stringable": (),
    "\\UnitEnum": (),
    "\\WeakReference": (),
    # Predefined iterables.
    "\\Generator": ("\\Iterator",),
    "\\InternalIterator": ("\\Iterator",),
    "\\Iterator": ("\\Traversable",),
    "\\IteratorAggregate": ("\\Traversable",),
    "\\Traversable": ("iterable",),
    "\\WeakMap": ("\\ArrayAccess", "\\Countable", "\\IteratorAggregate"),
    # Predefined throwables.
    "\\ArithmeticError": ("\\Error",),
    "\\AssertionError": ("\\Error",),
    "\\CompileError": ("\\Error",),
    "\\DivisionByZeroError": ("\\ArithmeticError",),
    "\\Error": ("\\Throwable",),
    "\\ErrorException": ("\\Exception",),
    "\\Exception": ("\\Throwable",),
    "\\ParseError": ("\\CompileError",),
    "\\Throwable": ("\\Stringable",),
    "\\TypeError": ("\\Error",),
    # SPL data structures.
    "\\SplDoublyLinkedList": ("\\Iterator", "\\Countable", "\\ArrayAccess", "\\Serializable"),
    "\\SplStack": ("\\SplDoublyLinkedList",),
    "\\SplQueue": ("\\SplDoublyLinkedList",),
    "\\SplHeap": ("\\Iterator", "\\Countable"),
    "\\SplMaxHeap": ("\\SplHeap",),
    "\\SplMinHeap": ("\\SplHeap",),
    "\\SplPriorityQueue": ("\\Iterator", "\\Countable"),
    "\\SplFixedArray": ("\\IteratorAggregate", "\\ArrayAccess", "\\Countable", "\\JsonSerializable"),
    "\\SplObjectStorage": ("\\Countable", "\\Iterator", "\\Serializable", "\\ArrayAccess"),
    # SPL iterators.
    "\\AppendIterator": ("\\IteratorIterator",),
    "\\ArrayIterator": ("\\SeekableIterator", "\\ArrayAccess", "\\Serializable", "\\Countable"),
    "\\CachingIterator": ("\\IteratorIterator", "\\ArrayAccess", "\\Countable", "\\Stringable"),
    "\\CallbackFilterIterator": ("\\FilterIterator",),
    "\\DirectoryIterator": ("\\SplFileInfo", "\\SeekableIterator"),
    "\\EmptyIterator": ("\\Iterator",),
    "\\FilesystemIterator": ("\\DirectoryIterator",),
    "\\FilterIterator": ("\\IteratorIterator",),
    "\\GlobalIterator": ("\\FilesystemIterator", "\\Countable"),
    "\\InfiniteIterator": ("\\IteratorIterator",),
    "\\IteratorIterator": ("\\OuterIterator",),
    "\\LimitIterator": ("\\IteratorIterator",),
    "\\MultipleIterator": ("\\Iterator",),
    "\\NoRewindIterator": ("\\IteratorIterator",),
    "\\ParentIterator": ("\\RecursiveFilterIterator",),
    "\\RecursiveArrayIterator": ("\\ArrayIterator", "\\RecursiveIterator"),
    "\\RecursiveCachingIterator": ("\\CachingIterator", "\\RecursiveIterator"),
    "\\RecursiveCallbackFilterIterator": ("\\CallbackFilterIterator", "\\RecursiveIterator"),
    "\\RecursiveDirectoryIterator": ("\\FilesystemIterator", "\\RecursiveIterator"),
    "\\RecursiveFilterIterator": ("\\FilterIterator", "\\RecursiveIterator"),
    "\\RecursiveIteratorIterator": ("\\OuterIterator",),
    "\\RecursiveRegexIterator": ("\\RegexIterator", "\\RecursiveIterator"),
    "\\RecursiveTreeIterator": ("\\RecursiveIteratorIterator",),
    "\\RegexIterator": ("\\FilterIterator",),
    # SPL interfaces.
    "\\Countable": (),
    "\\OuterIterator": ("\\Iterator",),
    "\\RecursiveIterator": ("\\Iterator",),
    "\\SeekableIterator": ("\\Iterator",),
    # SPL exceptions.
    "\\BadFunctionCallException": ("\\LogicException",),
    "\\BadMethodCallException": ("\\BadFunctionCallException",),
    "\\DomainException": ("\\LogicException",),
    "\\InvalidArgumentException": ("\\LogicException",),
    "\\LengthException": ("\\LogicException",),
    "\\LogicException": ("\\Exception",),
    "\\OutOfBoundsException": ("\\RuntimeException",),
    "\\OutOfRangeException": ("\\LogicException",),
    "\\OverflowException": ("\\RuntimeException",),
    "\\RangeException": ("\\RuntimeException",),
    "\\RuntimeException": ("\\Exception",),
    "\\UnderflowException": ("\\RuntimeException",),
    "\\UnexpectedValueException": ("\\RuntimeException",),
    # SPL file handling.
    "\\SplFileInfo": ("\\Stringable",),
    "\\SplFileObject": ("\\SplFileInfo", "\\RecursiveIterator", "\\SeekableIterator"),
    "\\SplTempFileObject": ("\\SplFileObject",),
    # SPL misc.
    "\\ArrayObject": ("\\IteratorAggregate", "\\ArrayAccess", "\\Serializable", "\\Countable"),
    "\\SplObserver": (),
    "\\SplSubject": (),
}

# Fixed supertypes of the non-class atoms.
_BUILTIN_SUPERS: Dict[str, Tuple[str, ...]] = {
    "int": ("array-key", "scalar"),
    "string": ("array-key", "scalar"),
    "callable-string": ("callable", "string", "array-key", "scalar"),
    "array-key": ("scalar",),
    "float": ("scalar",),
    "bool": ("scalar",),
    "array": ("iterable",),
    "static": ("self", "parent", "object"),
    "self": ("parent", "object"),
    "parent": ("object",),
}


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — LATTICE
# ═════════════════════════════════════════════════════════════════════════

def widen_union(members: Iterable[str]) -> List[str]:
    """Add the members a union implies as a whole.

    ``int|string`` covers ``array-key``; with ``bool`` and ``float`` as
    well it covers ``scalar``; ``\\Traversable|array`` covers ``iterable``.
    """
    result = list(members)
    if "int" in result and "string" in result:
        result.append("array-key")
    if "bool" in result and "float" in result and "array-key" in result:
        result.append("scalar")
    if "\\Traversable" in result and "array" in result:
        result.append("iterable")
    return result


class TypeLattice:
    """Subtype queries over canonical type strings.

    Parameters
    ----------
    artifacts:
        Class hierarchy discovered in the file under check, keyed by
        absolute class name.  Read-only for the lattice's lifetime.
    """

    def __init__(self, artifacts: Optional[Mapping[str, Artifact]] = None) -> None:
        self.artifacts: Mapping[str, Artifact] = artifacts if artifacts is not None else {}
        self._cache: Dict[str, Tuple[str, ...]] = {}

    def super_types(self, base: str) -> Tuple[str, ...]:
        """Every type that *base* is a member of, excluding *base* itself.

        ``static(\\X)`` is the exception: it includes ``\\X``, since a
        late-bound ``static`` is always at least an ``\\X``.
        """
        cached = self._cache.get(base)
        if cached is None:
            cached = tuple(self._compute_super_types(base))
            self._cache[base] = cached
        return cached

    def _compute_super_types(self, base: str) -> List[str]:
        if base in _BUILTIN_SUPERS:
            return list(_BUILTIN_SUPERS[base])
        if base.startswith("static("):
            supers = ["static", "self", "parent", "object"]
            seed = base[len("static("):-1]
            include_seed = True
        elif base.startswith("\\"):
            supers = ["object"]
            seed = base
            include_seed = False
        else:
            return []

        seen = set()
        queue = deque([seed])
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            is_seed = current == seed
            if not is_seed or include_seed:
                if current not in supers:
                    supers.append(current)
            if current in LIBRARY:
                queue.extend(LIBRARY[current])
            elif current in self.artifacts:
                artifact = self.artifacts[current]
                if artifact.extends:
                    queue.append(artifact.extends)
                queue.extend(artifact.implements)
            elif not is_seed:
                for extra in self.super_types(current):
                    if extra not in supers:
                        supers.append(extra)
        return supers

    def compare_types(self, wide: Optional[str], narrow: Optional[str]) -> bool:
        """Whether *narrow* is the same as or narrower than *wide*.

        ``None`` stands for an unknown type: an unknown narrow type never
        fits, anything fits an unknown wide type.
        """
        if narrow is None:
            return False
        if wide is None or wide == "mixed" or narrow == "never":
            return True

        wide_intersections = [
            frozenset(member.split("&")) for member in widen_union(wide.split("|"))
        ]
        for narrow_intersection in narrow.split("|"):
            singles = narrow_intersection.split("&")
            closure = set(singles)
            for single in singles:
                closure.update(self.super_types(single))
            if not any(wide_set <= closure for wide_set in wide_intersections):
                return False
        return True

    def is_object_like(self, type_: str) -> bool:
        """Usable as an intersection member."""
        return type_ in ("object", "iterable", "callable") or "object" in self.super_types(type_)
