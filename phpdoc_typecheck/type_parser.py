"""
phpdoc_typecheck/type_parser.py
═══════════════════════════════

Recursive-descent parser for PHPDoc type expressions.

The parser turns the text of a tag such as ``@param ?array<int, Foo> $x``
into a *canonical type*: a sorted union of sorted intersections of atoms,
with every refinement PHPStan and Psalm accept collapsed onto the atom it
refines (``non-empty-list<int>`` → ``array``, ``int<0, max>`` → ``int``,
``'foo'`` → ``string`` and so on).

Design
──────

  ┌────────────────┐    ┌───────────────────────┐    ┌──────────────┐
  │ TYPE_LEXICON   │ →  │ DocTypeParser         │ →  │ ParsedType   │
  │ (parsimonious) │    │ Optional-returning    │    │ type, var,   │
  │ one lexeme per │    │ parse functions with  │    │ splat, fixed │
  │ match() call   │    │ checkpoint / restore  │    │ ...          │
  └────────────────┘    └───────────────────────┘    └──────────────┘

* Every ``_parse_*`` function returns the canonical text, or ``None`` when
  the input does not match.  Failure is never an exception: the public
  entry points take a checkpoint before each optional element and restore
  it when the element fails, so callers get ``type=None`` / ``var=None``.
* Keywords are lowercase and case-sensitive.  ``Integer`` is neither a
  keyword nor an acceptable class name, so it fails.
* While consuming tokens the parser notes the house spelling of aliases
  (``integer`` → ``int``, ``boolean`` → ``bool`` ...) so the scanner can
  offer a fix; see :attr:`ParsedType.fixed`.
"""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, NamedTuple, Optional, Tuple

from parsimonious.grammar import Grammar

from .scope import Scope
from .type_lattice import TypeLattice

_log = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — LEXICON
# ═════════════════════════════════════════════════════════════════════════

TYPE_LEXICON = Grammar(r'''
    # A single lexeme; whitespace is skipped with `blank` first.
    lexeme        = variable / name / number / quoted / unterminated
                  / splat / dcolon / symbol

    variable      = ~r"\$[A-Za-z0-9_]*"
    name          = ~r"[A-Za-z_\\][A-Za-z0-9_\-\\]*"
    number        = ~r"-?[0-9][0-9_]*(?:\.[0-9_]*)?"
    quoted        = ~r"'(?:[^'\\]|\\.)*'"s / ~r'"(?:[^"\\]|\\.)*"'s
    unterminated  = ~r"['\"]"
    splat         = "..."
    dcolon        = "::"
    symbol        = ~r"."s

    blank         = ~r"\s*"
''')

_BLANK = TYPE_LEXICON["blank"]
_LEXEME = TYPE_LEXICON["lexeme"]


class LexToken(NamedTuple):
    kind: str
    start: int
    end: int
    text: Optional[str]


def lex(text: str) -> List[LexToken]:
    """Split *text* into lexemes, ending with a single ``end`` token.

    An unterminated string literal ends the usable input where it starts.
    """
    tokens: List[LexToken] = []
    pos = 0
    while True:
        pos = _BLANK.match(text, pos).end
        if pos >= len(text):
            break
        node = _LEXEME.match(text, pos)
        kind = node.children[0].expr_name
        if kind == "unterminated":
            break
        tokens.append(LexToken(kind, node.start, node.end, node.text))
        pos = node.end
    tokens.append(LexToken("end", pos, pos, None))
    return tokens


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — VOCABULARY
# ═════════════════════════════════════════════════════════════════════════

_BOOL_WORDS = frozenset({"bool", "boolean", "true", "false"})
_INT_WORDS = frozenset({
    "int", "integer", "positive-int", "negative-int",
    "non-positive-int", "non-negative-int", "int-mask", "int-mask-of",
})
_FLOAT_WORDS = frozenset({"float", "double"})
_STRING_WORDS = frozenset({
    "string", "class-string", "numeric-string", "literal-string",
    "non-empty-string", "non-falsy-string", "truthy-string",
})
_ARRAY_WORDS = frozenset({"array", "non-empty-array", "list", "non-empty-list"})
_NEVER_WORDS = frozenset({"never", "never-return", "never-returns", "no-return"})
_SIMPLE_WORDS = {
    "callable-string": "callable-string",
    "resource": "resource",
    "null": "null",
    "void": "void",
    "mixed": "mixed",
    "array-key": "array-key",
    "scalar": "scalar",
}

# Names a class may not take, compared case-insensitively.
_RESERVED = (
    _BOOL_WORDS | _INT_WORDS | _FLOAT_WORDS | _STRING_WORDS | _ARRAY_WORDS
    | _NEVER_WORDS | frozenset(_SIMPLE_WORDS)
    | frozenset({
        "object", "self", "parent", "static", "callable", "iterable",
        "key-of", "value-of",
    })
)

# House spelling for accepted aliases.
HOUSE_STYLE: Dict[str, str] = {
    "integer": "int",
    "boolean": "bool",
    "double": "float",
    "never-return": "never",
    "never-returns": "never",
    "no-return": "never",
}

_DELIMITERS = frozenset({",", ";", ":", "."})


class ParseMode(IntEnum):
    """How much of the tag text to read."""
    TYPE = 0        # type only
    VAR = 1         # type, then a variable name
    MODIFIERS = 2   # also '&' and '...' before the variable
    DEFAULT = 3     # also '= null' widening the type


@dataclass(frozen=True)
class ParsedType:
    """
    Attributes
    ----------
    type       : canonical type, ``None`` if missing or malformed
    var        : variable (or template) name, ``None`` if missing or malformed
    remainder  : unparsed trailing text, stripped
    nullable   : the written type includes ``null``
    pass_splat : ``&`` and/or ``...`` written before the variable
    fixed      : the type text in house spelling
    type_span  : ``(start, end)`` of the type within the input text
    """
    type: Optional[str]
    var: Optional[str] = None
    remainder: str = ""
    nullable: bool = False
    pass_splat: str = ""
    fixed: Optional[str] = None
    type_span: Optional[Tuple[int, int]] = None


_Mark = Tuple[int, int]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — PARSER
# ═════════════════════════════════════════════════════════════════════════

class DocTypeParser:
    """Parse PHPDoc types against a :class:`TypeLattice`.

    One parser serves a whole scan.  Each public call resets its state,
    so calls never influence one another.
    """

    def __init__(self, lattice: Optional[TypeLattice] = None) -> None:
        self.lattice = lattice if lattice is not None else TypeLattice()
        self._scope = Scope()
        self._text = ""
        self._tokens: List[LexToken] = []
        self._index = 0
        self._edits: List[Tuple[int, str]] = []
        self._prefer_wide = False

    # ── public API ───────────────────────────────────────────────────

    def parse_type_and_var(
        self,
        scope: Optional[Scope],
        text: str,
        mode: ParseMode = ParseMode.TYPE,
        prefer_wide: bool = False,
    ) -> ParsedType:
        """Parse a type, and depending on *mode* a variable after it.

        *prefer_wide* picks ``mixed`` (native types) rather than ``never``
        (documented types) for constructs whose type cannot be known.
        """
        self._start(scope, text, prefer_wide)

        mark = self._mark()
        first = self._index
        type_ = self._parse_any_type()
        if type_ is not None and not self._type_is_delimited(mode):
            type_ = None
        nullable = False
        fixed = None
        span = None
        if type_ is None:
            self._reset(mark)
        else:
            nullable = "null" in type_.split("|")
            span = (self._tokens[first].start, self._tokens[self._index - 1].end)
            fixed = self._restyle(first, self._index)

        var = None
        pass_splat = ""
        if mode >= ParseMode.VAR:
            mark = self._mark()
            var, pass_splat = self._parse_variable(mode)
            if var is None:
                self._reset(mark)
                pass_splat = ""
            elif (
                mode >= ParseMode.DEFAULT
                and type_ is not None
                and self._next == "="
                and (self._peek(1) or "").lower() == "null"
            ):
                type_ = self._tidy_union(type_.split("|") + ["null"])

        return ParsedType(
            type=type_,
            var=var,
            remainder=self._remainder(),
            nullable=nullable,
            pass_splat=pass_splat,
            fixed=fixed,
            type_span=span,
        )

    def parse_template(self, scope: Optional[Scope], text: str) -> ParsedType:
        """Parse ``Name [of|as Type]``; the constraint defaults to ``mixed``."""
        self._start(scope, text, prefer_wide=False)

        name = None
        token = self._current
        if token.kind == "name" and token.text[0] in string.ascii_letters:
            mark = self._mark()
            self._take()
            if (
                self._next is None
                or self._next in ("of", "as")
                or self._spaced()
                or self._next in _DELIMITERS
            ):
                name = token.text
            else:
                self._reset(mark)

        type_: Optional[str] = "mixed"
        fixed = None
        span = None
        if self._next in ("of", "as"):
            self._take()
            mark = self._mark()
            first = self._index
            type_ = self._parse_any_type()
            if type_ is not None and not self._type_is_delimited(ParseMode.TYPE):
                type_ = None
            if type_ is None:
                self._reset(mark)
            else:
                span = (self._tokens[first].start, self._tokens[self._index - 1].end)
                fixed = self._restyle(first, self._index)

        return ParsedType(
            type=type_, var=name, remainder=self._remainder(), fixed=fixed, type_span=span,
        )

    # ── token plumbing ───────────────────────────────────────────────

    def _start(self, scope: Optional[Scope], text: str, prefer_wide: bool) -> None:
        self._scope = scope if scope is not None else Scope()
        self._text = text
        self._tokens = lex(text)
        self._index = 0
        self._edits = []
        self._prefer_wide = prefer_wide

    @property
    def _current(self) -> LexToken:
        return self._tokens[self._index]

    @property
    def _next(self) -> Optional[str]:
        return self._tokens[self._index].text

    def _peek(self, offset: int) -> Optional[str]:
        index = min(self._index + offset, len(self._tokens) - 1)
        return self._tokens[index].text

    def _take(self, expect: Optional[str] = None) -> Optional[str]:
        text = self._next
        if text is None or (expect is not None and text != expect):
            return None
        self._index += 1
        return text

    def _take_word(self) -> str:
        """Consume a keyword, noting its house spelling."""
        token = self._current
        self._index += 1
        if token.text in HOUSE_STYLE:
            self._edits.append((token.start, HOUSE_STYLE[token.text]))
        return token.text

    def _mark(self) -> _Mark:
        return self._index, len(self._edits)

    def _reset(self, mark: _Mark) -> None:
        self._index = mark[0]
        del self._edits[mark[1]:]

    def _spaced(self) -> bool:
        start = self._current.start
        return start > 0 and self._text[start - 1].isspace()

    def _remainder(self) -> str:
        return self._text[self._current.start:].strip()

    def _unknown(self) -> str:
        return "mixed" if self._prefer_wide else "never"

    def _type_is_delimited(self, mode: ParseMode) -> bool:
        """Text after a type must be separated from it."""
        nxt = self._next
        if nxt is None or self._spaced() or nxt in _DELIMITERS:
            return True
        return mode >= ParseMode.VAR and (nxt in ("&", "...") or nxt.startswith("$"))

    def _restyle(self, first: int, end: int) -> str:
        """Type text between two token indexes, in house spelling."""
        replacements = dict(self._edits)
        pieces: List[str] = []
        for index in range(first, end):
            token = self._tokens[index]
            if index > first:
                gap = self._text[self._tokens[index - 1].end:token.start]
                pieces.append(" " if "\n" in gap or "\r" in gap else gap)
            pieces.append(replacements.get(token.start, token.text))
        return "".join(pieces)

    # ── variable ─────────────────────────────────────────────────────

    def _parse_variable(self, mode: ParseMode) -> Tuple[Optional[str], str]:
        pass_splat = ""
        if mode >= ParseMode.MODIFIERS:
            if self._next == "&":
                self._take()
                pass_splat += "&"
            if self._next == "...":
                self._take()
                pass_splat += "..."
        token = self._current
        if token.kind != "variable":
            return None, ""
        self._take()
        if not (
            self._next is None
            or (mode >= ParseMode.DEFAULT and self._next == "=")
            or self._spaced()
            or self._next in _DELIMITERS
        ):
            return None, ""
        return token.text, pass_splat

    # ── unions and intersections ─────────────────────────────────────

    def _parse_any_type(self, in_brackets: bool = False) -> Optional[str]:
        if in_brackets and self._current.kind == "variable" and self._peek(1) == "is":
            # Conditional return type.
            self._take()
            self._take("is")
            if self._parse_any_type() is None or self._take("?") is None:
                return None
            first = self._parse_any_type()
            if first is None or self._take(":") is None:
                return None
            second = self._parse_any_type()
            if second is None:
                return None
            members = first.split("|") + second.split("|")
        elif self._next == "?":
            self._take()
            single = self._parse_single_type()
            if single is None:
                return None
            members = single.split("|") + ["null"]
        else:
            members = []
            while True:
                intersection = self._parse_intersection()
                if intersection is None:
                    return None
                members.extend(intersection)
                if self._next != "|":
                    break
                self._take()
        return self._tidy_union(members)

    def _intersection_follows(self) -> bool:
        """Tell an intersection ``&`` from a pass-by-reference ``&``."""
        if self._next != "&":
            return False
        after = self._peek(1)
        return not (after in ("...", "=", ",", ")", None) or after.startswith("$"))

    def _parse_intersection(self) -> Optional[List[str]]:
        """Parse ``A&B&...``; return the union members it contributes."""
        parts: List[str] = []
        union_instead = None
        while True:
            single = self._parse_single_type()
            if single is None:
                return None
            if "|" in single:
                parts.append(self._unknown())
                union_instead = single
            else:
                parts.extend(single.split("&"))
            if not self._intersection_follows():
                break
            self._take("&")

        if union_instead is not None:
            if len(parts) > 1:
                # Not in disjunctive normal form.
                return None
            return union_instead.split("|")
        if len(parts) > 1:
            tidy = self._tidy_intersection(parts)
            return None if tidy is None else [tidy]
        return parts

    def _tidy_intersection(self, parts: List[str]) -> Optional[str]:
        if "never" in parts:
            return "never"
        members = [part for part in parts if part != "mixed"]
        if not members:
            return "mixed"
        if len(members) == 1:
            return members[0]
        for part in list(members):
            if not self.lattice.is_object_like(part):
                return None
            supers = self.lattice.super_types(part)
            members = [member for member in members if member not in supers]
        return "&".join(sorted(set(members)))

    def _tidy_union(self, members: List[str]) -> str:
        unique = sorted(set(members))
        if len(unique) == 1:
            return unique[0]
        if "mixed" in unique:
            return "mixed"
        if "never" in unique:
            unique.remove("never")
        kept = list(unique)
        for wide in unique:
            if wide not in kept:
                continue
            kept = [
                member for member in kept
                if member == wide or not self.lattice.compare_types(wide, member)
            ]
        return "|".join(kept)

    def _parse_single_type(self) -> Optional[str]:
        if self._next == "(":
            self._take()
            type_ = self._parse_any_type(in_brackets=True)
            if type_ is None or self._take(")") is None:
                return None
        else:
            type_ = self._parse_basic_type()
            if type_ is None:
                return None
        while self._next == "[" and self._peek(1) == "]":
            self._take()
            self._take()
            type_ = "array"
        return type_

    # ── basic types ──────────────────────────────────────────────────

    def _parse_basic_type(self) -> Optional[str]:
        token = self._current
        word = token.text
        if word is None:
            return None
        is_number = token.kind == "number"

        if word in _BOOL_WORDS:
            self._take_word()
            type_ = "bool"
        elif word in _INT_WORDS or (is_number and "." not in word):
            type_ = self._parse_int()
        elif word in _FLOAT_WORDS or is_number:
            self._take_word()
            type_ = "float"
        elif word in _STRING_WORDS or token.kind == "quoted":
            type_ = self._parse_string()
        elif word in _ARRAY_WORDS:
            type_ = self._parse_array()
        elif word == "object":
            self._take()
            type_ = "object"
            if self._next == "{" and not self._parse_shape(keys_required=True):
                return None
        elif word in _NEVER_WORDS:
            self._take_word()
            type_ = "never"
        elif word in _SIMPLE_WORDS:
            self._take()
            type_ = _SIMPLE_WORDS[word]
        elif word == "self":
            self._take()
            type_ = self._scope.class_name or "self"
        elif word == "parent":
            self._take()
            type_ = self._scope.parent_name or "parent"
        elif word in ("static", "$this"):
            type_ = self._parse_static()
        elif word == "callable" or word == "\\Closure" or (
            word == "Closure" and self._scope.namespace == ""
        ):
            type_ = self._parse_callable()
        elif word == "iterable":
            self._take()
            type_ = "iterable"
            if self._next == "<" and not self._parse_generic_args(max_args=2):
                return None
        elif word in ("key-of", "value-of"):
            type_ = self._parse_key_value_of()
        elif (
            token.kind == "name"
            and "-" not in word
            and "\\\\" not in word
            and word.lower() not in _RESERVED
        ):
            type_ = self._parse_class_name()
        else:
            return None

        if type_ is None:
            return None

        if self._next == "::" and "object" in self.lattice.super_types(type_):
            # Class constant, or a wildcard over constants.
            self._take()
            nxt = self._next
            have_name = nxt is not None and (nxt[0] in string.ascii_letters or nxt[0] == "_")
            if have_name:
                self._take()
            if (self._next == "*" or not have_name) and self._take("*") is None:
                return None
            type_ = self._unknown()
        return type_

    def _int_bound(self, keyword: str) -> bool:
        token = self._current
        if token.text == keyword or (token.kind == "number" and "." not in token.text):
            self._take()
            return True
        return False

    def _parse_int(self) -> Optional[str]:
        word = self._take_word()
        if word == "int" and self._next == "<":
            # Integer range.
            self._take()
            if not self._int_bound("min") or self._take(",") is None:
                return None
            if not self._int_bound("max") or self._take(">") is None:
                return None
        elif word in ("int-mask", "int-mask-of"):
            if self._take("<") is None:
                return None
            while True:
                mask = self._parse_basic_type()
                if mask is None or not self.lattice.compare_types("int", mask):
                    _log.debug("invalid int mask in %r", self._text)
                    return None
                if word == "int-mask-of" or self._next != ",":
                    break
                self._take()
            if self._take(">") is None:
                return None
        return "int"

    def _parse_string(self) -> Optional[str]:
        word = self._take_word()
        if word == "class-string" and self._next == "<":
            self._take()
            class_type = self._parse_any_type()
            if class_type is None or not self.lattice.compare_types("object", class_type):
                return None
            if self._take(">") is None:
                return None
        return "string"

    def _parse_array(self) -> Optional[str]:
        word = self._take_word()
        if self._next == "<":
            self._take()
            first = self._parse_any_type()
            if first is None:
                return None
            if self._next == ",":
                if word in ("list", "non-empty-list"):
                    return None
                if not self.lattice.compare_types("array-key", first):
                    return None
                self._take()
                if self._parse_any_type() is None:
                    return None
            if self._take(">") is None:
                return None
        elif self._next == "{":
            if word.startswith("non-empty-"):
                return None
            if not self._parse_shape(keys_required=False):
                return None
        return "array"

    def _at_shape_key(self) -> bool:
        token = self._current
        if token.kind == "name":
            ok = "\\" not in token.text
        elif token.kind == "number":
            ok = "." not in token.text
        else:
            ok = token.kind == "quoted"
        if not ok:
            return False
        after = self._peek(1)
        return after == ":" or (after == "?" and self._peek(2) == ":")

    def _parse_shape(self, keys_required: bool) -> bool:
        """Parse ``{key: Type, key?: Type, ...}``, sealed or not."""
        self._take("{")
        if self._next == "}":
            self._take()
            return True
        while True:
            if not keys_required and self._next == "...":
                # Unsealed shape.
                self._take()
                break
            if keys_required:
                if self._current.kind not in ("name", "quoted"):
                    return False
                self._take()
                if self._next == "?":
                    self._take()
                if self._take(":") is None:
                    return False
            elif self._at_shape_key():
                self._take()
                if self._next == "?":
                    self._take()
                self._take(":")
            if self._parse_any_type() is None:
                return False
            if self._next != ",":
                break
            self._take()
            if self._next == "}":
                break
        return self._take("}") is not None

    def _parse_generic_args(self, max_args: Optional[int] = None) -> bool:
        """Parse ``<T, ...>``; the argument types are not kept."""
        self._take("<")
        count = 0
        while True:
            if self._parse_any_type() is None:
                return False
            count += 1
            if self._next != "," or (max_args is not None and count >= max_args):
                break
            self._take()
        return self._take(">") is not None

    def _parse_static(self) -> Optional[str]:
        self._take()
        if (
            self._next == "("
            and (self._peek(1) or "").startswith("\\")
            and self._peek(2) == ")"
        ):
            # The canonical spelling, static(\Foo).
            self._take()
            bound = self._take()
            self._take()
            return f"static({bound})"
        if self._scope.class_name:
            return f"static({self._scope.class_name})"
        return "static"

    def _parse_callable(self) -> Optional[str]:
        word = self._take()
        if self._next == "(":
            self._take()
            while self._next != ")":
                if self._parse_any_type() is None:
                    return None
                for marker in ("&", "...", "="):
                    if self._next == marker:
                        self._take()
                if self._current.kind == "variable":
                    self._take()
                if self._next != ")" and self._take(",") is None:
                    return None
            self._take(")")
            if self._take(":") is None:
                return None
            if self._next == "?":
                returned = self._parse_any_type()
            else:
                returned = self._parse_single_type()
            if returned is None:
                return None
        return "callable" if word == "callable" else "\\Closure"

    def _parse_key_value_of(self) -> Optional[str]:
        self._take()
        if self._take("<") is None:
            return None
        container = self._parse_any_type()
        if container is None:
            return None
        if not (
            self.lattice.compare_types("iterable", container)
            or self.lattice.compare_types("object", container)
        ):
            return None
        if self._take(">") is None:
            return None
        return self._unknown()

    def _parse_class_name(self) -> Optional[str]:
        name = self._take()
        if name.endswith("\\"):
            return None
        type_ = self._resolve_class_name(name)
        if self._next == "<" and not self._parse_generic_args():
            return None
        return type_

    def _resolve_class_name(self, name: str) -> str:
        if name.startswith("\\"):
            return name
        first = name.partition("\\")[0]
        if first not in self._scope.uses and name in self._scope.templates:
            return self._scope.templates[name]
        return self._scope.resolve_class_name(name)
