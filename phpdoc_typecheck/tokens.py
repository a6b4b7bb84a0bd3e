"""
phpdoc_typecheck/tokens.py
══════════════════════════

A PHP tokenizer producing the token stream the declaration scanner walks.

The stream is lossless: joining every token's ``content`` gives back the
source, which is how fixes are written out.  Documentation comments are
split into their parts the way PHP_CodeSniffer splits them:

  /**                       DOC_COMMENT_OPEN_TAG
   * Summary.               DOC_COMMENT_STAR, DOC_COMMENT_STRING
   * @param int $x Count.   DOC_COMMENT_TAG, DOC_COMMENT_STRING
   */                       DOC_COMMENT_CLOSE_TAG

with every run of blanks and every line break a DOC_COMMENT_WHITESPACE
token of its own.

Bracket pairs are matched in a second pass, and declaration keywords get
markers pointing at their parameter list and body.  A third pass retags
words whose meaning depends on their neighbours (closures, anonymous
classes, ``enum``, member names after ``->`` and ``::``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class TokenCode(Enum):
    # Outside PHP.
    INLINE_HTML = "inline_html"
    OPEN_TAG = "open_tag"
    CLOSE_TAG = "close_tag"
    # Trivia.
    WHITESPACE = "whitespace"
    COMMENT = "comment"
    DOC_COMMENT_OPEN_TAG = "doc_comment_open_tag"
    DOC_COMMENT_WHITESPACE = "doc_comment_whitespace"
    DOC_COMMENT_STAR = "doc_comment_star"
    DOC_COMMENT_TAG = "doc_comment_tag"
    DOC_COMMENT_STRING = "doc_comment_string"
    DOC_COMMENT_CLOSE_TAG = "doc_comment_close_tag"
    # Names and literals.
    VARIABLE = "variable"
    STRING = "string"
    NAME_FULLY_QUALIFIED = "name_fully_qualified"
    NAME_QUALIFIED = "name_qualified"
    NAME_RELATIVE = "name_relative"
    LNUMBER = "lnumber"
    DNUMBER = "dnumber"
    CONSTANT_ENCAPSED_STRING = "constant_encapsed_string"
    HEREDOC = "heredoc"
    # Keywords the scanner cares about.
    NAMESPACE = "namespace"
    USE = "use"
    ABSTRACT = "abstract"
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"
    STATIC = "static"
    READONLY = "readonly"
    FINAL = "final"
    CLASS = "class"
    INTERFACE = "interface"
    TRAIT = "trait"
    ENUM = "enum"
    FUNCTION = "function"
    CLOSURE = "closure"
    FN = "fn"
    VAR = "var"
    CONST = "const"
    DECLARE = "declare"
    EXTENDS = "extends"
    IMPLEMENTS = "implements"
    AS = "as"
    NEW = "new"
    ANON_CLASS = "anon_class"
    NULL = "null"
    TRUE = "true"
    FALSE = "false"
    SELF = "self"
    PARENT = "parent"
    ARRAY = "array"
    CALLABLE = "callable"
    KEYWORD = "keyword"
    # Punctuation.
    OPEN_CURLY_BRACKET = "{"
    CLOSE_CURLY_BRACKET = "}"
    OPEN_PARENTHESIS = "("
    CLOSE_PARENTHESIS = ")"
    OPEN_SQUARE_BRACKET = "["
    CLOSE_SQUARE_BRACKET = "]"
    ATTRIBUTE = "#["
    SEMICOLON = ";"
    COMMA = ","
    COLON = ":"
    DOUBLE_COLON = "::"
    NS_SEPARATOR = "\\"
    EQUAL = "="
    DOUBLE_ARROW = "=>"
    ELLIPSIS = "..."
    BITWISE_AND = "&"
    BITWISE_OR = "|"
    QUESTION = "?"
    OBJECT_OPERATOR = "->"
    OPERATOR = "operator"


DOC_COMMENT_CODES = frozenset({
    TokenCode.DOC_COMMENT_OPEN_TAG,
    TokenCode.DOC_COMMENT_WHITESPACE,
    TokenCode.DOC_COMMENT_STAR,
    TokenCode.DOC_COMMENT_TAG,
    TokenCode.DOC_COMMENT_STRING,
    TokenCode.DOC_COMMENT_CLOSE_TAG,
})

NAME_CODES = frozenset({
    TokenCode.STRING,
    TokenCode.NAME_FULLY_QUALIFIED,
    TokenCode.NAME_QUALIFIED,
    TokenCode.NAME_RELATIVE,
})

_KEYWORDS: Dict[str, TokenCode] = {
    "namespace": TokenCode.NAMESPACE,
    "use": TokenCode.USE,
    "abstract": TokenCode.ABSTRACT,
    "public": TokenCode.PUBLIC,
    "protected": TokenCode.PROTECTED,
    "private": TokenCode.PRIVATE,
    "static": TokenCode.STATIC,
    "readonly": TokenCode.READONLY,
    "final": TokenCode.FINAL,
    "class": TokenCode.CLASS,
    "interface": TokenCode.INTERFACE,
    "trait": TokenCode.TRAIT,
    "function": TokenCode.FUNCTION,
    "fn": TokenCode.FN,
    "var": TokenCode.VAR,
    "const": TokenCode.CONST,
    "declare": TokenCode.DECLARE,
    "extends": TokenCode.EXTENDS,
    "implements": TokenCode.IMPLEMENTS,
    "as": TokenCode.AS,
    "new": TokenCode.NEW,
    "null": TokenCode.NULL,
    "true": TokenCode.TRUE,
    "false": TokenCode.FALSE,
    "self": TokenCode.SELF,
    "parent": TokenCode.PARENT,
    "array": TokenCode.ARRAY,
    "callable": TokenCode.CALLABLE,
}

_OTHER_KEYWORDS = frozenset("""
    and break case catch clone continue default die do echo else elseif empty
    enddeclare endfor endforeach endif endswitch endwhile eval exit finally
    for foreach global goto if include include_once instanceof insteadof
    isset list match or print require require_once return switch throw try
    unset while xor yield
""".split())

_PUNCTUATION: Dict[str, TokenCode] = {
    "{": TokenCode.OPEN_CURLY_BRACKET,
    "}": TokenCode.CLOSE_CURLY_BRACKET,
    "(": TokenCode.OPEN_PARENTHESIS,
    ")": TokenCode.CLOSE_PARENTHESIS,
    "[": TokenCode.OPEN_SQUARE_BRACKET,
    "]": TokenCode.CLOSE_SQUARE_BRACKET,
    "#[": TokenCode.ATTRIBUTE,
    ";": TokenCode.SEMICOLON,
    ",": TokenCode.COMMA,
    ":": TokenCode.COLON,
    "::": TokenCode.DOUBLE_COLON,
    "\\": TokenCode.NS_SEPARATOR,
    "=": TokenCode.EQUAL,
    "=>": TokenCode.DOUBLE_ARROW,
    "...": TokenCode.ELLIPSIS,
    "&": TokenCode.BITWISE_AND,
    "|": TokenCode.BITWISE_OR,
    "?": TokenCode.QUESTION,
    "->": TokenCode.OBJECT_OPERATOR,
    "?->": TokenCode.OBJECT_OPERATOR,
}


@dataclass
class Token:
    """One token.  Bracket and scope markers are token indexes."""
    code: TokenCode
    content: str
    line: int
    column: int
    scope_opener: Optional[int] = None
    scope_closer: Optional[int] = None
    parenthesis_opener: Optional[int] = None
    parenthesis_closer: Optional[int] = None
    bracket_opener: Optional[int] = None
    bracket_closer: Optional[int] = None
    attribute_closer: Optional[int] = None
    comment_closer: Optional[int] = None


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — LEXING
# ═════════════════════════════════════════════════════════════════════════

_OPEN_TAG_RE = re.compile(r"<\?php(?:\r\n|\s|$)|<\?=|<\?", re.IGNORECASE)

_IDENT = r"[A-Za-z_\x80-\uffff][A-Za-z0-9_\x80-\uffff]*"

_PHP_RE = re.compile(
    r"""
      (?P<close_tag>\?>(?:\r\n|\r|\n)?)
    | (?P<whitespace>\s+)
    | (?P<doc_comment>/\*\*(?!/)(?:[\s\S]*?\*/|[\s\S]*))
    | (?P<comment>/\*(?:[\s\S]*?\*/|[\s\S]*)|(?://|\#(?!\[))[^\r\n]*)
    | (?P<variable>\$""" + _IDENT + r""")
    | (?P<heredoc><<<[ \t]*(?P<quote>["']?)(?P<label>""" + _IDENT + r""")(?P=quote)
          (?:\r\n|\r|\n)[\s\S]*?^[ \t]*(?P=label)\b)
    | (?P<string>'(?:[^'\\]|\\[\s\S])*'|"(?:[^"\\]|\\[\s\S])*"|`(?:[^`\\]|\\[\s\S])*`)
    | (?P<dnumber>(?:[0-9][0-9_]*\.[0-9_]*|\.[0-9][0-9_]*)(?:[eE][+-]?[0-9]+)?
          |[0-9][0-9_]*[eE][+-]?[0-9]+)
    | (?P<lnumber>0[xX][0-9a-fA-F_]+|0[bB][01_]+|[0-9][0-9_]*)
    | (?P<name>\\?""" + _IDENT + r"""(?:\\""" + _IDENT + r""")*)
    | (?P<punct>\.\.\.|\?->|::|=>|->|\#\[
          |<=>|\*\*=|\?\?=|<<=|>>=|===|!==
          |\+\+|--|\*\*|\?\?|<<|>>|<=|>=|==|!=|<>|&&|\|\|
          |[-+*/%.&|^]=)
    | (?P<single>[\s\S])
    """,
    re.VERBOSE | re.MULTILINE,
)


_WORD_RE = re.compile(_IDENT)
_NEWLINE_RE = re.compile(r"\r\n|\r|\n")
_DOC_BLANK_RE = re.compile(r"[ \t\f\v]+")
_DOC_TAG_RE = re.compile(r"@(?:(?!\*/)[^\s])*")
_DOC_TEXT_RE = re.compile(r"(?:(?!\*/)[^\r\n])+")


def _classify_name(text: str) -> TokenCode:
    if text.startswith("\\"):
        return TokenCode.NAME_FULLY_QUALIFIED
    if text.lower().startswith("namespace\\"):
        return TokenCode.NAME_RELATIVE
    if "\\" in text:
        return TokenCode.NAME_QUALIFIED
    lower = text.lower()
    if lower in _KEYWORDS:
        return _KEYWORDS[lower]
    if lower in _OTHER_KEYWORDS:
        return TokenCode.KEYWORD
    return TokenCode.STRING


def _split_doc_comment(text: str) -> List[Tuple[TokenCode, str]]:
    """Split a ``/** ... */`` comment into its parts."""
    parts: List[Tuple[TokenCode, str]] = [(TokenCode.DOC_COMMENT_OPEN_TAG, "/**")]
    pos = 3
    at_line_start = False
    while pos < len(text):
        if text.startswith("*/", pos):
            parts.append((TokenCode.DOC_COMMENT_CLOSE_TAG, "*/"))
            pos += 2
            break
        match = _NEWLINE_RE.match(text, pos)
        if match:
            parts.append((TokenCode.DOC_COMMENT_WHITESPACE, match.group()))
            pos = match.end()
            at_line_start = True
            continue
        match = _DOC_BLANK_RE.match(text, pos)
        if match:
            parts.append((TokenCode.DOC_COMMENT_WHITESPACE, match.group()))
            pos = match.end()
            continue
        if at_line_start and text[pos] == "*":
            parts.append((TokenCode.DOC_COMMENT_STAR, "*"))
            pos += 1
            at_line_start = False
            continue
        at_line_start = False
        if text[pos] == "@":
            match = _DOC_TAG_RE.match(text, pos)
            parts.append((TokenCode.DOC_COMMENT_TAG, match.group()))
            pos = match.end()
            continue
        match = _DOC_TEXT_RE.match(text, pos)
        body = match.group().rstrip(" \t\f\v")
        parts.append((TokenCode.DOC_COMMENT_STRING, body))
        pos += len(body)
    return parts


def _lex(source: str) -> List[Tuple[TokenCode, str]]:
    pieces: List[Tuple[TokenCode, str]] = []
    pos = 0
    in_php = False
    while pos < len(source):
        if not in_php:
            match = _OPEN_TAG_RE.search(source, pos)
            end = match.start() if match else len(source)
            if end > pos:
                pieces.append((TokenCode.INLINE_HTML, source[pos:end]))
            if match:
                pieces.append((TokenCode.OPEN_TAG, match.group()))
                in_php = True
                pos = match.end()
            else:
                pos = end
            continue

        match = _PHP_RE.match(source, pos)
        kind = match.lastgroup
        text = match.group(kind)
        pos = match.end()

        if kind == "close_tag":
            pieces.append((TokenCode.CLOSE_TAG, text))
            in_php = False
        elif kind == "whitespace":
            pieces.append((TokenCode.WHITESPACE, text))
        elif kind == "doc_comment":
            pieces.extend(_split_doc_comment(text))
        elif kind == "comment":
            pieces.append((TokenCode.COMMENT, text))
        elif kind == "variable":
            pieces.append((TokenCode.VARIABLE, text))
        elif kind == "heredoc":
            pieces.append((TokenCode.HEREDOC, text))
        elif kind == "string":
            pieces.append((TokenCode.CONSTANT_ENCAPSED_STRING, text))
        elif kind == "dnumber":
            pieces.append((TokenCode.DNUMBER, text))
        elif kind == "lnumber":
            pieces.append((TokenCode.LNUMBER, text))
        elif kind == "name":
            pieces.append((_classify_name(text), text))
        else:
            pieces.append((_PUNCTUATION.get(text, TokenCode.OPERATOR), text))
    return pieces


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — STRUCTURE
# ═════════════════════════════════════════════════════════════════════════

_SIGNIFICANT_SKIP = frozenset({
    TokenCode.WHITESPACE, TokenCode.COMMENT, TokenCode.INLINE_HTML,
    TokenCode.OPEN_TAG, TokenCode.CLOSE_TAG,
}) | DOC_COMMENT_CODES

_PAIRS = {
    TokenCode.OPEN_CURLY_BRACKET: TokenCode.CLOSE_CURLY_BRACKET,
    TokenCode.OPEN_PARENTHESIS: TokenCode.CLOSE_PARENTHESIS,
    TokenCode.OPEN_SQUARE_BRACKET: TokenCode.CLOSE_SQUARE_BRACKET,
    TokenCode.ATTRIBUTE: TokenCode.CLOSE_SQUARE_BRACKET,
}

_CLASSISH_CODES = frozenset({
    TokenCode.CLASS, TokenCode.INTERFACE, TokenCode.TRAIT,
    TokenCode.ENUM, TokenCode.ANON_CLASS,
})


def _significant(tokens: List[Token], start: int, step: int) -> Optional[int]:
    index = start
    while 0 <= index < len(tokens):
        if tokens[index].code not in _SIGNIFICANT_SKIP:
            return index
        index += step
    return None


def _retag(tokens: List[Token]) -> None:
    previous: Optional[Token] = None
    for index, token in enumerate(tokens):
        if token.code in _SIGNIFICANT_SKIP:
            continue
        prev_code = previous.code if previous is not None else None
        nxt = _significant(tokens, index + 1, 1)
        next_token = tokens[nxt] if nxt is not None else None

        if prev_code in (TokenCode.OBJECT_OPERATOR, TokenCode.DOUBLE_COLON,
                         TokenCode.FUNCTION):
            # Member and function names may be keywords.
            if _WORD_RE.fullmatch(token.content):
                token.code = TokenCode.STRING
        elif token.code is TokenCode.FUNCTION and next_token is not None:
            after = next_token
            if after.code is TokenCode.BITWISE_AND:
                follow = _significant(tokens, nxt + 1, 1)
                after = tokens[follow] if follow is not None else after
            if after.code is TokenCode.OPEN_PARENTHESIS:
                token.code = TokenCode.CLOSURE
        elif token.code is TokenCode.CLASS and prev_code is TokenCode.NEW:
            token.code = TokenCode.ANON_CLASS
        elif (
            token.code is TokenCode.STRING
            and token.content.lower() == "enum"
            and next_token is not None
            and next_token.code is TokenCode.STRING
        ):
            token.code = TokenCode.ENUM
        previous = token


def _match_brackets(tokens: List[Token]) -> None:
    stack: List[int] = []
    closers = {
        TokenCode.CLOSE_CURLY_BRACKET, TokenCode.CLOSE_PARENTHESIS,
        TokenCode.CLOSE_SQUARE_BRACKET,
    }
    for index, token in enumerate(tokens):
        if token.code in _PAIRS:
            stack.append(index)
        elif token.code in closers:
            # Unbalanced closers are left unmatched.
            depth = len(stack) - 1
            while depth >= 0 and _PAIRS[tokens[stack[depth]].code] is not token.code:
                depth -= 1
            if depth < 0:
                continue
            opener = stack[depth]
            del stack[depth:]
            start = tokens[opener]
            if start.code is TokenCode.OPEN_CURLY_BRACKET:
                start.scope_opener = token.scope_opener = opener
                start.scope_closer = token.scope_closer = index
            elif start.code is TokenCode.OPEN_PARENTHESIS:
                start.parenthesis_opener = token.parenthesis_opener = opener
                start.parenthesis_closer = token.parenthesis_closer = index
            elif start.code is TokenCode.ATTRIBUTE:
                start.attribute_closer = index
                token.bracket_opener = opener
            else:
                start.bracket_opener = token.bracket_opener = opener
                start.bracket_closer = token.bracket_closer = index


def _group_end(tokens: List[Token], index: int) -> int:
    """Index of the last token of the bracket group opening at *index*."""
    token = tokens[index]
    if token.code is TokenCode.OPEN_PARENTHESIS and token.parenthesis_closer is not None:
        return token.parenthesis_closer
    if token.code is TokenCode.OPEN_SQUARE_BRACKET and token.bracket_closer is not None:
        return token.bracket_closer
    if token.code is TokenCode.ATTRIBUTE and token.attribute_closer is not None:
        return token.attribute_closer
    return index


def _find_body(tokens: List[Token], start: int) -> Optional[int]:
    """First ``{`` from *start* at the same depth, or None past a ``;``."""
    index = start
    while index < len(tokens):
        code = tokens[index].code
        if code is TokenCode.OPEN_CURLY_BRACKET:
            return index
        if code in (TokenCode.SEMICOLON, TokenCode.CLOSE_CURLY_BRACKET,
                    TokenCode.DOUBLE_ARROW):
            return None
        index = _group_end(tokens, index) + 1
    return None


def _mark_declarations(tokens: List[Token]) -> None:
    for index, token in enumerate(tokens):
        body_from: Optional[int] = index + 1
        if token.code in (TokenCode.FUNCTION, TokenCode.CLOSURE, TokenCode.FN,
                          TokenCode.ANON_CLASS):
            paren = index + 1
            while paren < len(tokens) and tokens[paren].code is not TokenCode.OPEN_PARENTHESIS:
                if tokens[paren].code in (TokenCode.SEMICOLON, TokenCode.OPEN_CURLY_BRACKET):
                    paren = None
                    break
                paren += 1
            if paren is not None and paren < len(tokens) and tokens[paren].parenthesis_closer is not None:
                token.parenthesis_opener = paren
                token.parenthesis_closer = tokens[paren].parenthesis_closer
                body_from = token.parenthesis_closer + 1
            elif token.code is not TokenCode.ANON_CLASS:
                continue
            if token.code is TokenCode.FN:
                continue
        elif token.code not in _CLASSISH_CODES and token.code is not TokenCode.NAMESPACE:
            continue

        body = _find_body(tokens, body_from)
        if body is not None and tokens[body].scope_closer is not None:
            token.scope_opener = body
            token.scope_closer = tokens[body].scope_closer


def count_line_breaks(text: str) -> int:
    """Count line breaks, taking CRLF, CR and LF alike."""
    return len(_NEWLINE_RE.findall(text))


def tokenize(source: str) -> List[Token]:
    """Tokenize a PHP source file."""
    tokens: List[Token] = []
    line, column = 1, 1
    for code, text in _lex(source):
        tokens.append(Token(code, text, line, column))
        breaks = count_line_breaks(text)
        if breaks:
            line += breaks
            column = len(_NEWLINE_RE.split(text)[-1]) + 1
        else:
            column += len(text)
    _retag(tokens)
    _match_brackets(tokens)
    _mark_declarations(tokens)
    for index, token in enumerate(tokens):
        if token.code is TokenCode.DOC_COMMENT_OPEN_TAG:
            closer = index + 1
            while closer < len(tokens) and tokens[closer].code in DOC_COMMENT_CODES:
                if tokens[closer].code is TokenCode.DOC_COMMENT_CLOSE_TAG:
                    token.comment_closer = closer
                    break
                closer += 1
    return tokens


def untokenize(tokens: List[Token]) -> str:
    return "".join(token.content for token in tokens)
