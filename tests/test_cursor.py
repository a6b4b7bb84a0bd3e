# tests/test_cursor.py
"""
Tests for the significant-token cursor and the documentation comment
reader.
"""

import pytest

from phpdoc_typecheck.cursor import TokenCursor, read_comment
from phpdoc_typecheck.errors import ScanError
from phpdoc_typecheck.tokens import TokenCode, tokenize

DOCUMENTED = """<?php
/**
 * Summary line.
 * @param int $x first
 *     continued
 * @return void
 */
#[Pure]
function f($x) {}
"""


def index_of(tokens, content):
    return next(i for i, t in enumerate(tokens) if t.content == content)


class TestMovement:

    @pytest.fixture
    def cursor(self):
        return TokenCursor(tokenize("<?php /* c */ $a = 1; // end\n"))

    def test_starts_on_first_significant(self, cursor):
        assert cursor.token.content == "$a"

    def test_advance_returns_consumed(self, cursor):
        assert cursor.advance().content == "$a"
        assert cursor.code is TokenCode.EQUAL

    def test_advance_expect(self, cursor):
        cursor.advance(TokenCode.VARIABLE)
        with pytest.raises(ScanError) as excinfo:
            cursor.advance(TokenCode.SEMICOLON)
        assert excinfo.value.ptr == cursor.ptr

    def test_end_of_input(self, cursor):
        for _ in range(4):
            cursor.advance()
        assert cursor.token is None
        assert cursor.code is None
        with pytest.raises(ScanError) as excinfo:
            cursor.advance()
        assert excinfo.value.ptr is None

    def test_peek(self, cursor):
        assert cursor.peek().content == "="
        assert cursor.peek(2).content == "1"
        assert cursor.peek(10) is None

    def test_previous_significant(self, cursor):
        assert cursor.previous_significant() is None
        cursor.advance()
        assert cursor.previous_significant().content == "$a"

    def test_jump_to_settles(self, cursor):
        cursor.advance()
        cursor.jump_to(0)
        assert cursor.token.content == "$a"


class TestCommentBefore:

    def test_through_attribute(self):
        tokens = tokenize(DOCUMENTED)
        comment = TokenCursor(tokens).comment_before(index_of(tokens, "function"))
        assert comment is not None
        assert tokens[comment.ptr].code is TokenCode.DOC_COMMENT_OPEN_TAG

    def test_through_ordinary_comment(self):
        tokens = tokenize("<?php\n/** @return int */\n// note\nfunction f() {}")
        comment = TokenCursor(tokens).comment_before(index_of(tokens, "function"))
        assert [tag.text for tag in comment.get("@return")] == ["int"]

    def test_blocked_by_code(self):
        tokens = tokenize("<?php\n/** @var int */\n$x = 1;\nfunction f() {}")
        assert TokenCursor(tokens).comment_before(index_of(tokens, "function")) is None

    def test_nothing_before(self):
        tokens = tokenize("<?php function f() {}")
        assert TokenCursor(tokens).comment_before(index_of(tokens, "function")) is None


class TestReadComment:

    @pytest.fixture
    def comment(self):
        tokens = tokenize(DOCUMENTED)
        return read_comment(tokens, index_of(tokens, "/**"))

    def test_summary(self, comment):
        assert [tag.text for tag in comment.get("")] == ["Summary line."]

    def test_continuation_lines(self, comment):
        (param,) = comment.get("@param")
        assert param.text == "int $x first\ncontinued"
        assert len(param.string_ptrs) == 2
        assert all(ptr is not None for ptr in param.string_ptrs)

    def test_tag_pointer(self):
        tokens = tokenize(DOCUMENTED)
        comment = read_comment(tokens, index_of(tokens, "/**"))
        (ret,) = comment.get("@return")
        assert tokens[ret.ptr].content == "@return"
        assert tokens[ret.string_ptrs[0]].content == "void"

    def test_missing_tag_is_empty(self, comment):
        assert comment.get("@var") == []

    def test_all_tags_in_order(self, comment):
        assert [tag.name for tag in comment.all_tags()] == ["@param", "@return"]

    def test_tag_without_text(self):
        tokens = tokenize("<?php /** @deprecated */")
        comment = read_comment(tokens, 1)
        (tag,) = comment.get("@deprecated")
        assert tag.text == ""
        assert tag.string_ptrs == (None,)

    def test_repeated_tags_kept(self):
        tokens = tokenize("<?php /**\n * @return int\n * @return string\n */")
        comment = read_comment(tokens, 1)
        assert [tag.text for tag in comment.get("@return")] == ["int", "string"]

    def test_trailing_blank_lines_dropped(self):
        tokens = tokenize("<?php /**\n * @param int $x\n *\n *\n */")
        (param,) = read_comment(tokens, 1).get("@param")
        assert param.text == "int $x"

    def test_unterminated(self):
        tokens = tokenize("<?php /** @var int")
        with pytest.raises(ScanError):
            read_comment(tokens, 1)
