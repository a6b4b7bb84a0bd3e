"""
phpdoc_typecheck/reflection.py
══════════════════════════════

Read declaration facts straight off the token stream: names, parents,
parameter lists, native return and property types.

Every function takes the token list and the index of the declaring
keyword (or variable) and relies on the bracket and scope markers set by
:func:`phpdoc_typecheck.tokens.tokenize`.  Native type text is returned
exactly as written; the scanner feeds it through the type parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .tokens import NAME_CODES, Token, TokenCode

_TRIVIA = frozenset({
    TokenCode.WHITESPACE, TokenCode.COMMENT,
    TokenCode.DOC_COMMENT_OPEN_TAG, TokenCode.DOC_COMMENT_WHITESPACE,
    TokenCode.DOC_COMMENT_STAR, TokenCode.DOC_COMMENT_TAG,
    TokenCode.DOC_COMMENT_STRING, TokenCode.DOC_COMMENT_CLOSE_TAG,
})

_TYPE_CODES = NAME_CODES | frozenset({
    TokenCode.ARRAY, TokenCode.CALLABLE, TokenCode.NULL, TokenCode.TRUE,
    TokenCode.FALSE, TokenCode.SELF, TokenCode.PARENT, TokenCode.QUESTION,
    TokenCode.BITWISE_OR, TokenCode.BITWISE_AND,
    TokenCode.OPEN_PARENTHESIS, TokenCode.CLOSE_PARENTHESIS,
})

_PARAMETER_MODIFIERS = frozenset({
    TokenCode.PUBLIC, TokenCode.PROTECTED, TokenCode.PRIVATE, TokenCode.READONLY,
})


@dataclass(frozen=True)
class ParameterInfo:
    """
    Attributes
    ----------
    name              : variable name including ``$``
    content           : the parameter as written, less attributes and
                        promotion modifiers
    type_hint         : native type text, ``""`` when absent
    pass_by_reference : declared with ``&``
    variadic          : declared with ``...``
    default           : default value text, ``None`` when absent
    ptr               : index of the variable token
    """
    name: str
    content: str
    type_hint: str
    pass_by_reference: bool
    variadic: bool
    default: Optional[str]
    ptr: int


def next_significant(tokens: Sequence[Token], ptr: int) -> Optional[int]:
    """Index of the first non-trivia token at or after *ptr*."""
    while ptr < len(tokens):
        if tokens[ptr].code not in _TRIVIA:
            return ptr
        ptr += 1
    return None


def _text(tokens: Sequence[Token], start: int, end: int) -> str:
    """Source text of ``tokens[start:end]`` without comments, stripped."""
    return "".join(
        token.content for token in tokens[start:end]
        if token.code not in _TRIVIA or token.code is TokenCode.WHITESPACE
    ).strip()


def _skip_group(tokens: Sequence[Token], ptr: int) -> int:
    """Index just past the bracket group opening at *ptr*, else ``ptr + 1``."""
    token = tokens[ptr]
    for closer in (token.parenthesis_closer, token.bracket_closer, token.attribute_closer):
        if closer is not None and closer > ptr:
            return closer + 1
    if token.code is TokenCode.OPEN_CURLY_BRACKET and token.scope_closer is not None:
        return token.scope_closer + 1
    return ptr + 1


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — NAMES AND PARENTS
# ═════════════════════════════════════════════════════════════════════════

def declaration_name(tokens: Sequence[Token], ptr: int) -> Optional[str]:
    """Name declared by the keyword at *ptr*; ``None`` if anonymous."""
    if tokens[ptr].code in (TokenCode.CLOSURE, TokenCode.FN, TokenCode.ANON_CLASS):
        return None
    index = next_significant(tokens, ptr + 1)
    if index is not None and tokens[index].code is TokenCode.BITWISE_AND:
        index = next_significant(tokens, index + 1)
    if index is None or tokens[index].code is not TokenCode.STRING:
        return None
    return tokens[index].content


def _names_after(tokens: Sequence[Token], ptr: int, keyword: TokenCode) -> List[str]:
    end = tokens[ptr].scope_opener
    if end is None:
        end = len(tokens)
    index = ptr + 1
    names: List[str] = []
    collecting = False
    while index < end:
        code = tokens[index].code
        if code is keyword:
            collecting = True
        elif code in (TokenCode.EXTENDS, TokenCode.IMPLEMENTS):
            collecting = False
        elif collecting and code in NAME_CODES:
            names.append(tokens[index].content)
        index = _skip_group(tokens, index)
    return names


def extended_class_names(tokens: Sequence[Token], ptr: int) -> List[str]:
    """Names after ``extends``: one for a class, several for an interface."""
    return _names_after(tokens, ptr, TokenCode.EXTENDS)


def implemented_interface_names(tokens: Sequence[Token], ptr: int) -> List[str]:
    return _names_after(tokens, ptr, TokenCode.IMPLEMENTS)


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — FUNCTION SIGNATURES
# ═════════════════════════════════════════════════════════════════════════

def _parameter(tokens: Sequence[Token], start: int, end: int) -> Optional[ParameterInfo]:
    index = next_significant(tokens, start)
    while index is not None and index < end:
        code = tokens[index].code
        if code is TokenCode.ATTRIBUTE:
            index = next_significant(tokens, _skip_group(tokens, index))
        elif code in _PARAMETER_MODIFIERS:
            index = next_significant(tokens, index + 1)
        else:
            break
    if index is None or index >= end:
        return None

    first = index
    by_reference = variadic = False
    type_end = None
    variable = None
    default = None
    while index < end:
        code = tokens[index].code
        if code is TokenCode.VARIABLE and variable is None:
            variable = index
            if type_end is None:
                type_end = index
        elif code is TokenCode.BITWISE_AND and variable is None and (
            tokens[next_significant(tokens, index + 1) or index].code
            in (TokenCode.VARIABLE, TokenCode.ELLIPSIS)
        ):
            by_reference = True
            if type_end is None:
                type_end = index
        elif code is TokenCode.ELLIPSIS and variable is None:
            variadic = True
            if type_end is None:
                type_end = index
        elif code is TokenCode.EQUAL and variable is not None:
            default = _text(tokens, index + 1, end)
            break
        index = _skip_group(tokens, index)

    if variable is None:
        return None
    return ParameterInfo(
        name=tokens[variable].content,
        content=_text(tokens, first, end),
        type_hint=_text(tokens, first, type_end),
        pass_by_reference=by_reference,
        variadic=variadic,
        default=default,
        ptr=variable,
    )


def method_parameters(tokens: Sequence[Token], ptr: int) -> List[ParameterInfo]:
    """Parameters of the function, closure or arrow function at *ptr*."""
    opener = tokens[ptr].parenthesis_opener
    closer = tokens[ptr].parenthesis_closer
    if opener is None or closer is None:
        return []
    params: List[ParameterInfo] = []
    start = index = opener + 1
    while index <= closer:
        if index == closer or tokens[index].code is TokenCode.COMMA:
            param = _parameter(tokens, start, index)
            if param is not None:
                params.append(param)
            start = index + 1
            index += 1
        else:
            index = _skip_group(tokens, index)
    return params


def method_return_type(tokens: Sequence[Token], ptr: int) -> Optional[str]:
    """Native return type text, or ``None`` when undeclared."""
    closer = tokens[ptr].parenthesis_closer
    if closer is None:
        return None
    index = next_significant(tokens, closer + 1)
    if index is not None and tokens[index].code is TokenCode.USE:
        # Closure imports.
        index = next_significant(tokens, index + 1)
        if index is not None:
            index = next_significant(tokens, _skip_group(tokens, index))
    if index is None or tokens[index].code is not TokenCode.COLON:
        return None
    start = index + 1
    index = start
    while index < len(tokens) and tokens[index].code not in (
        TokenCode.OPEN_CURLY_BRACKET, TokenCode.SEMICOLON, TokenCode.DOUBLE_ARROW,
    ):
        index += 1
    return _text(tokens, start, index) or None


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — PROPERTIES AND CONSTANTS
# ═════════════════════════════════════════════════════════════════════════

def member_property_type(tokens: Sequence[Token], ptr: int) -> Optional[str]:
    """Native type written before the property variable at *ptr*."""
    start = ptr
    index = ptr - 1
    while index >= 0:
        code = tokens[index].code
        if code in _TYPE_CODES:
            start = index
        elif code not in _TRIVIA:
            break
        index -= 1
    return _text(tokens, start, ptr) or None


def constant_type(tokens: Sequence[Token], ptr: int) -> Optional[str]:
    """Native type of the ``const`` at *ptr*: ``const int FOO = 1``."""
    index = ptr + 1
    names = []
    while index < len(tokens) and tokens[index].code not in (
        TokenCode.EQUAL, TokenCode.SEMICOLON,
    ):
        if tokens[index].code not in _TRIVIA:
            names.append(index)
        index += 1
    if len(names) < 2:
        return None
    return _text(tokens, names[0], names[-1])
