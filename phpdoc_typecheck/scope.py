"""
phpdoc_typecheck/scope.py
═════════════════════════

Lexical scope as seen by the declaration scanner.

A :class:`Scope` is an immutable value.  The scanner threads it through
its recursive calls; a child scope is derived with :meth:`Scope.enter`
and a rebinding (``namespace Foo;``, ``use Foo\\Bar;``, a ``@template``
tag) produces a sibling value with :func:`dataclasses.replace`.  Nothing
ever mutates a scope that another part of the walk can still see.

Kind transitions
────────────────

  root       → namespace, classish, function, other
  namespace  → classish, function, other
  classish   → classish, function
  function   → parameters, other
  parameters → classish, function
  other      → classish, function, other

A transition outside this table means the scanner is out of step with
the source, and :meth:`Scope.enter` raises :class:`ScanError`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from .errors import ScanError


class ScopeKind(Enum):
    ROOT = "root"
    NAMESPACE = "namespace"
    CLASSISH = "classish"
    FUNCTION = "function"
    PARAMETERS = "parameters"
    OTHER = "other"


ALLOWED_TRANSITIONS: Dict[ScopeKind, FrozenSet[ScopeKind]] = {
    ScopeKind.ROOT: frozenset({
        ScopeKind.NAMESPACE, ScopeKind.CLASSISH, ScopeKind.FUNCTION, ScopeKind.OTHER,
    }),
    ScopeKind.NAMESPACE: frozenset({
        ScopeKind.CLASSISH, ScopeKind.FUNCTION, ScopeKind.OTHER,
    }),
    ScopeKind.CLASSISH: frozenset({ScopeKind.CLASSISH, ScopeKind.FUNCTION}),
    ScopeKind.FUNCTION: frozenset({ScopeKind.PARAMETERS, ScopeKind.OTHER}),
    ScopeKind.PARAMETERS: frozenset({ScopeKind.CLASSISH, ScopeKind.FUNCTION}),
    ScopeKind.OTHER: frozenset({
        ScopeKind.CLASSISH, ScopeKind.FUNCTION, ScopeKind.OTHER,
    }),
}


@dataclass(frozen=True)
class Artifact:
    """Inheritance facts for one named class, interface, trait or enum."""
    extends: Optional[str] = None
    implements: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Scope:
    """
    Attributes
    ----------
    kind        : what sort of region this is
    namespace   : absolute namespace, ``""`` for the global one
    uses        : import alias → absolute class name
    templates   : template name → canonical constraint type
    class_name  : absolute name of the enclosing class, if any
    parent_name : absolute name of its parent class, if any
    closer      : token index at which this scope ends
    """
    kind: ScopeKind = ScopeKind.ROOT
    namespace: str = ""
    uses: Mapping[str, str] = field(default_factory=dict)
    templates: Mapping[str, str] = field(default_factory=dict)
    class_name: Optional[str] = None
    parent_name: Optional[str] = None
    closer: Optional[int] = None

    # ── derivation ───────────────────────────────────────────────────

    def enter(
        self,
        kind: ScopeKind,
        closer: Optional[int] = None,
        *,
        class_name: Optional[str] = None,
        parent_name: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> "Scope":
        """Derive the scope of a nested region."""
        if kind not in ALLOWED_TRANSITIONS[self.kind]:
            raise ScanError(
                f"unexpected {kind.value} scope inside {self.kind.value} scope",
                closer,
            )
        changes = {"kind": kind, "closer": closer}
        if kind is ScopeKind.CLASSISH:
            changes["class_name"] = class_name
            changes["parent_name"] = parent_name
        if kind is ScopeKind.NAMESPACE:
            changes["namespace"] = namespace or ""
            changes["uses"] = {}
        return dataclasses.replace(self, **changes)

    def with_namespace(self, namespace: str) -> "Scope":
        """Rebind for ``namespace Foo;``; imports do not carry over."""
        return dataclasses.replace(self, namespace=namespace, uses={})

    def with_use(self, alias: str, name: str) -> "Scope":
        return dataclasses.replace(self, uses={**self.uses, alias: name})

    def with_template(self, name: str, type_: str) -> "Scope":
        return dataclasses.replace(self, templates={**self.templates, name: type_})

    # ── name resolution ──────────────────────────────────────────────

    def qualify(self, name: str) -> str:
        """Absolute name of something declared here as *name*."""
        return f"{self.namespace}\\{name}"

    def resolve_class_name(self, name: str) -> str:
        """Resolve a class reference through imports and the namespace.

        ``\\Foo`` is already absolute, ``namespace\\Foo`` is relative to
        the current namespace, and otherwise the first segment is looked
        up among the imports before falling back to the namespace.
        """
        if name.startswith("\\"):
            return name
        if name.lower().startswith("namespace\\"):
            return self.qualify(name[len("namespace\\"):])
        first, sep, rest = name.partition("\\")
        if first in self.uses:
            return self.uses[first] + sep + rest
        return self.qualify(name)
