"""
phpdoc_typecheck/cursor.py
══════════════════════════

A forward cursor over significant tokens, plus the reader that turns a
documentation comment into its tags.

Whitespace, comments (documentation comments included), open and close
tags and inline HTML are never significant.  A declaration finds its
documentation comment by looking back from its first token with
:meth:`TokenCursor.comment_before`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ScanError
from .tokens import DOC_COMMENT_CODES, Token, TokenCode

_log = logging.getLogger(__name__)

_INSIGNIFICANT = frozenset({
    TokenCode.WHITESPACE, TokenCode.COMMENT, TokenCode.OPEN_TAG,
    TokenCode.CLOSE_TAG, TokenCode.INLINE_HTML,
}) | DOC_COMMENT_CODES

_NEWLINES = ("\n", "\r\n", "\r")


@dataclass(frozen=True)
class TagOccurrence:
    """
    One ``@tag`` in a documentation comment.

    ``text`` holds the tag's lines joined with ``"\\n"``: the rest of the
    tag line, then each continuation line.  ``string_ptrs`` has one entry
    per line, the index of that line's DOC_COMMENT_STRING token or
    ``None`` where the line is empty.
    """
    name: str
    text: str
    ptr: int
    string_ptrs: Tuple[Optional[int], ...]


@dataclass
class PendingComment:
    """Tags of the documentation comment attached to a declaration.

    The ``""`` key holds the leading text before the first tag.
    """
    ptr: int
    tags: Dict[str, List[TagOccurrence]] = field(default_factory=dict)

    def get(self, name: str) -> List[TagOccurrence]:
        return self.tags.get(name, [])

    def all_tags(self) -> List[TagOccurrence]:
        """Every tag occurrence, in comment order."""
        found = [tag for name, tags in self.tags.items() if name for tag in tags]
        return sorted(found, key=lambda tag: tag.ptr)


def read_comment(tokens: Sequence[Token], opener: int) -> PendingComment:
    """Collect the tags of the documentation comment opening at *opener*."""
    closer = tokens[opener].comment_closer
    if closer is None:
        raise ScanError("unterminated documentation comment", opener)

    comment = PendingComment(ptr=opener)
    name = ""
    tag_ptr = opener
    lines: List[str] = [""]
    ptrs: List[Optional[int]] = [None]
    line_open = True

    def flush() -> None:
        while len(lines) > 1 and lines[-1] == "":
            lines.pop()
            ptrs.pop()
        while not name and len(lines) > 1 and lines[0] == "":
            del lines[0], ptrs[0]
        if name or any(lines):
            comment.tags.setdefault(name, []).append(
                TagOccurrence(name, "\n".join(lines), tag_ptr, tuple(ptrs))
            )

    for index in range(opener + 1, closer):
        token = tokens[index]
        if token.code is TokenCode.DOC_COMMENT_TAG:
            flush()
            name, tag_ptr = token.content, index
            lines, ptrs = [""], [None]
            line_open = True
        elif token.code is TokenCode.DOC_COMMENT_STRING:
            if not line_open:
                lines.append("")
                ptrs.append(None)
                line_open = True
            lines[-1] = token.content
            ptrs[-1] = index
        elif token.code is TokenCode.DOC_COMMENT_WHITESPACE and token.content in _NEWLINES:
            if not line_open:
                lines.append("")
                ptrs.append(None)
            line_open = False
    flush()

    _log.debug("comment at token %d has tags %s", opener, sorted(comment.tags))
    return comment


class TokenCursor:
    """Walks significant tokens; ``token`` is ``None`` at end of input."""

    def __init__(self, tokens: Sequence[Token], ptr: int = 0) -> None:
        self.tokens = tokens
        self.ptr = ptr
        self._settle()

    # ── position ─────────────────────────────────────────────────────

    @property
    def token(self) -> Optional[Token]:
        if self.ptr < len(self.tokens):
            return self.tokens[self.ptr]
        return None

    @property
    def code(self) -> Optional[TokenCode]:
        token = self.token
        return token.code if token is not None else None

    def _settle(self) -> None:
        while self.ptr < len(self.tokens) and self.tokens[self.ptr].code in _INSIGNIFICANT:
            self.ptr += 1

    def advance(self, expect: Optional[TokenCode] = None) -> Token:
        """Consume the current token and move to the next significant one.

        Raises :class:`ScanError` at end of input, or when the current
        token is not *expect*.
        """
        token = self.token
        if token is None:
            raise ScanError("unexpected end of file", None)
        if expect is not None and token.code is not expect:
            raise ScanError(
                f"expected {expect.value!r}, found {token.content!r}", self.ptr,
            )
        self.ptr += 1
        self._settle()
        return token

    def jump_to(self, ptr: int) -> None:
        self.ptr = ptr
        self._settle()

    def peek(self, offset: int = 1) -> Optional[Token]:
        """The *offset*-th significant token after the current one."""
        index = self.ptr
        while offset > 0:
            index += 1
            while index < len(self.tokens) and self.tokens[index].code in _INSIGNIFICANT:
                index += 1
            offset -= 1
        return self.tokens[index] if index < len(self.tokens) else None

    def previous_significant(self) -> Optional[Token]:
        index = self.ptr - 1
        while index >= 0:
            if self.tokens[index].code not in _INSIGNIFICANT:
                return self.tokens[index]
            index -= 1
        return None

    # ── documentation comments ───────────────────────────────────────

    def comment_before(self, ptr: int) -> Optional[PendingComment]:
        """The documentation comment directly before the token at *ptr*.

        Whitespace, ordinary comments and attributes may sit in between.
        """
        index = ptr - 1
        while index >= 0:
            token = self.tokens[index]
            if token.code in (TokenCode.WHITESPACE, TokenCode.COMMENT):
                index -= 1
            elif (
                token.code is TokenCode.CLOSE_SQUARE_BRACKET
                and token.bracket_opener is not None
                and self.tokens[token.bracket_opener].code is TokenCode.ATTRIBUTE
            ):
                index = token.bracket_opener - 1
            elif token.code is TokenCode.DOC_COMMENT_CLOSE_TAG:
                while self.tokens[index].code is not TokenCode.DOC_COMMENT_OPEN_TAG:
                    index -= 1
                return read_comment(self.tokens, index)
            else:
                return None
        return None
