"""
phpdoc_typecheck/scanner.py
═══════════════════════════

The two-pass declaration scanner.

Pipeline
────────

  source ─▶ tokenize ─▶ pass 1 ─▶ artifacts ─▶ TypeLattice ─▶ pass 2 ─▶ sink
                        (walk)    (class        (hierarchy)    (walk +
                                   hierarchy)                  checks)

Both passes walk the token stream the same way.  Pass 1 only records an
:class:`~phpdoc_typecheck.scope.Artifact` per named class, interface,
trait or enum.  Pass 2 attaches each declaration's documentation comment,
parses its tags and native types, and reports into the sink.

Walking is recursive: every braced region is processed by a nested call
with its own :class:`~phpdoc_typecheck.scope.Scope` value and the index
of the token that closes it.  A :class:`ScanError` anywhere inside a
statement is reported once (pass 2), the cursor resynchronises at the
next ``;`` or block, and the walk carries on.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .config import ScanConfig
from .cursor import PendingComment, TagOccurrence, TokenCursor
from .diagnostics import DiagnosticSink, ErrorCode, FileReport, Severity
from .errors import FixError, ScanError
from .reflection import (
    ParameterInfo,
    constant_type,
    declaration_name,
    extended_class_names,
    implemented_interface_names,
    member_property_type,
    method_parameters,
    method_return_type,
)
from .scope import Artifact, Scope, ScopeKind
from .tokens import NAME_CODES, Token, TokenCode, count_line_breaks, tokenize
from .type_lattice import TypeLattice
from .type_parser import DocTypeParser, ParsedType, ParseMode

_log = logging.getLogger(__name__)

_MODIFIERS = frozenset({
    TokenCode.ABSTRACT, TokenCode.FINAL, TokenCode.PUBLIC, TokenCode.PROTECTED,
    TokenCode.PRIVATE, TokenCode.STATIC, TokenCode.READONLY,
})

_CLASSISH = frozenset({
    TokenCode.CLASS, TokenCode.INTERFACE, TokenCode.TRAIT, TokenCode.ENUM,
    TokenCode.ANON_CLASS,
})

_FUNCTIONS = frozenset({TokenCode.FUNCTION, TokenCode.CLOSURE, TokenCode.FN})

_TEMPLATE_TAGS = ("@template", "@template-covariant", "@template-contravariant")
_PROPERTY_TAGS = ("@property", "@property-read", "@property-write")

_MISPLACED_ON_FUNCTION = ("@var",)
_MISPLACED_ON_CLASSISH = ("@param", "@return", "@var")
_MISPLACED_ON_VARIABLE = ("@param", "@return") + _TEMPLATE_TAGS

_NO_RETURN_DOC = ("__construct", "__destruct")


class DeclarationScanner:
    """
    Walks one file's tokens and checks its documentation comments.

    Parameters
    ----------
    tokens:
        Output of :func:`phpdoc_typecheck.tokens.tokenize`.
    sink:
        Where findings and fixes go.
    config:
        Which optional checks run.
    """

    def __init__(
        self,
        tokens: Sequence[Token],
        sink: DiagnosticSink,
        config: Optional[ScanConfig] = None,
    ) -> None:
        self.tokens = tokens
        self.sink = sink
        self.config = config if config is not None else ScanConfig()
        self.artifacts: Dict[str, Artifact] = {}
        self.pass_number = 1
        self.parser = DocTypeParser()
        self.cursor = TokenCursor(tokens)

    # ═════════════════════════════════════════════════════════════════
    #  PART 1 — WALK
    # ═════════════════════════════════════════════════════════════════

    def scan(self) -> None:
        for pass_number in (1, 2):
            self.pass_number = pass_number
            if pass_number == 2:
                self.parser = DocTypeParser(TypeLattice(self.artifacts))
            self.cursor = TokenCursor(self.tokens)
            _log.debug("pass %d over %d tokens", pass_number, len(self.tokens))
            self._process_block(Scope(), None)
        _log.debug("artifacts: %s", sorted(self.artifacts))

    def _process_block(self, scope: Scope, end: Optional[int]) -> None:
        """Process statements until the token at *end*, or end of input."""
        while self.cursor.token is not None:
            start = self.cursor.ptr
            if end is not None and start >= end:
                return
            try:
                scope = self._process_statement(scope)
            except ScanError as exc:
                self._recover(exc, start, end)

    def _recover(self, exc: ScanError, start: int, end: Optional[int]) -> None:
        if self.pass_number == 2:
            ptr = exc.ptr if exc.ptr is not None else len(self.tokens) - 1
            self._report(ErrorCode.PARSE_ERROR, ptr, exc.message)
        _log.info("pass %d: resynchronising after %s", self.pass_number, exc)

        limit = end if end is not None else len(self.tokens)
        index = max(self.cursor.ptr, start + 1)
        while index < limit:
            token = self.tokens[index]
            if token.code is TokenCode.SEMICOLON:
                index += 1
                break
            if token.code is TokenCode.OPEN_CURLY_BRACKET and token.scope_closer is not None:
                index = token.scope_closer + 1
                break
            if token.code is TokenCode.CLOSE_CURLY_BRACKET:
                break
            index += 1
        self.cursor.jump_to(index)

    def _process_statement(self, scope: Scope) -> Scope:
        """Handle the construct at the cursor; return the scope for the next one."""
        token = self.cursor.token
        code = token.code

        if code is TokenCode.OPEN_CURLY_BRACKET:
            closer = self._closer(token.scope_closer)
            self.cursor.advance()
            self._process_block(scope.enter(ScopeKind.OTHER, closer), closer)
            self.cursor.jump_to(closer + 1)
        elif code is TokenCode.CLOSE_CURLY_BRACKET:
            raise ScanError("unmatched '}'", self.cursor.ptr)
        elif code is TokenCode.NAMESPACE:
            return self._process_namespace(scope)
        elif code is TokenCode.USE:
            return self._process_use(scope)
        elif code is TokenCode.DECLARE:
            self.cursor.advance()
            if self.cursor.code is TokenCode.OPEN_PARENTHESIS:
                self.cursor.jump_to(self._closer(self.cursor.token.parenthesis_closer) + 1)
        elif code is TokenCode.ATTRIBUTE:
            self.cursor.jump_to(self._closer(token.attribute_closer) + 1)
        elif (
            code in _MODIFIERS or code in _CLASSISH or code in _FUNCTIONS
            or code in (TokenCode.VAR, TokenCode.CONST)
        ):
            self._process_declaration(scope)
        else:
            self.cursor.advance()
        return scope

    def _closer(self, closer: Optional[int]) -> int:
        if closer is None:
            raise ScanError("unbalanced brackets", self.cursor.ptr)
        return closer

    # ── namespaces and imports ───────────────────────────────────────

    def _process_namespace(self, scope: Scope) -> Scope:
        keyword = self.cursor.advance(TokenCode.NAMESPACE)
        name = ""
        if self.cursor.code in NAME_CODES:
            name = self.cursor.advance().content.lstrip("\\")
        namespace = f"\\{name}" if name else ""
        _log.debug("pass %d: namespace %s", self.pass_number, namespace or "\\")

        if self.cursor.code is TokenCode.SEMICOLON:
            self.cursor.advance()
            return scope.with_namespace(namespace)
        if self.cursor.code is TokenCode.OPEN_CURLY_BRACKET:
            closer = self._closer(keyword.scope_closer)
            inner = scope.enter(ScopeKind.NAMESPACE, closer, namespace=namespace)
            self.cursor.advance()
            self._process_block(inner, closer)
            self.cursor.jump_to(closer + 1)
            return scope
        raise ScanError("malformed namespace declaration", self.cursor.ptr)

    def _process_use(self, scope: Scope) -> Scope:
        if scope.kind is ScopeKind.CLASSISH:
            # Trait use, with an optional adaptation block.
            self.cursor.advance(TokenCode.USE)
            while self.cursor.code not in (TokenCode.SEMICOLON, TokenCode.OPEN_CURLY_BRACKET):
                self.cursor.advance()
            if self.cursor.code is TokenCode.OPEN_CURLY_BRACKET:
                self.cursor.jump_to(self._closer(self.cursor.token.scope_closer) + 1)
            else:
                self.cursor.advance()
            return scope
        if scope.kind not in (ScopeKind.ROOT, ScopeKind.NAMESPACE):
            raise ScanError("unexpected use statement", self.cursor.ptr)

        self.cursor.advance(TokenCode.USE)
        imports_classes = self._skip_use_kind()
        while True:
            first = self.cursor.advance()
            if first.code not in NAME_CODES:
                raise ScanError(f"expected a name to import, found {first.content!r}", self.cursor.ptr)
            prefix = first.content.lstrip("\\")
            if self.cursor.code is TokenCode.NS_SEPARATOR:
                # Group use.
                self.cursor.advance()
                self.cursor.advance(TokenCode.OPEN_CURLY_BRACKET)
                while self.cursor.code is not TokenCode.CLOSE_CURLY_BRACKET:
                    member_classes = self._skip_use_kind()
                    scope = self._import_one(
                        scope, prefix + "\\", imports_classes and member_classes,
                    )
                    if self.cursor.code is TokenCode.COMMA:
                        self.cursor.advance()
                self.cursor.advance()
            else:
                scope = self._bind_import(scope, prefix, imports_classes)
            if self.cursor.code is not TokenCode.COMMA:
                break
            self.cursor.advance()
        self.cursor.advance(TokenCode.SEMICOLON)
        return scope

    def _skip_use_kind(self) -> bool:
        """Step over ``function`` / ``const``; True when importing classes."""
        if self.cursor.code in (TokenCode.FUNCTION, TokenCode.CONST):
            self.cursor.advance()
            return False
        return True

    def _import_one(self, scope: Scope, prefix: str, binds: bool) -> Scope:
        name = self.cursor.advance()
        if name.code not in NAME_CODES:
            raise ScanError(f"expected a name to import, found {name.content!r}", self.cursor.ptr)
        return self._bind_import(scope, prefix + name.content, binds)

    def _bind_import(self, scope: Scope, name: str, binds: bool) -> Scope:
        alias = name.rsplit("\\", 1)[-1]
        if self.cursor.code is TokenCode.AS:
            self.cursor.advance()
            alias = self.cursor.advance().content
        if not binds:
            return scope
        _log.debug("pass %d: use \\%s as %s", self.pass_number, name, alias)
        return scope.with_use(alias, f"\\{name}")

    # ── declarations ─────────────────────────────────────────────────

    def _process_declaration(self, scope: Scope) -> None:
        start = self.cursor.ptr
        while self.cursor.code in _MODIFIERS:
            if self.cursor.code is TokenCode.STATIC:
                following = self.cursor.peek()
                preceding = self.cursor.previous_significant()
                if (following is not None and following.code is TokenCode.DOUBLE_COLON) or (
                    preceding is not None and preceding.code is TokenCode.NEW
                ):
                    # Late static binding, not a modifier.
                    self.cursor.advance()
                    return
            self.cursor.advance()

        code = self.cursor.code
        checked_variable = scope.kind is ScopeKind.CLASSISH or (
            code is TokenCode.CONST and scope.kind in (ScopeKind.ROOT, ScopeKind.NAMESPACE)
        )
        if code not in _CLASSISH and code not in _FUNCTIONS and not checked_variable:
            # A static local or a promoted constructor parameter is left to
            # the statement loop.
            if self.cursor.ptr == start:
                self.cursor.advance()
            return

        comment = self.cursor.comment_before(start) if self.pass_number == 2 else None
        if code in _CLASSISH:
            self._process_classish(scope, comment)
        elif code in _FUNCTIONS:
            self._process_function(scope, comment)
        else:
            self._process_variable(scope, comment)

    def _process_classish(self, scope: Scope, comment: Optional[PendingComment]) -> None:
        ptr = self.cursor.ptr
        keyword = self.cursor.token
        name = declaration_name(self.tokens, ptr)
        class_name = scope.qualify(name) if name else None

        extends = [scope.resolve_class_name(n) for n in extended_class_names(self.tokens, ptr)]
        implements = [
            scope.resolve_class_name(n) for n in implemented_interface_names(self.tokens, ptr)
        ]
        if keyword.code is TokenCode.INTERFACE:
            implements, extends = extends, []
        parent_name = extends[0] if extends else None
        if self.pass_number == 1 and class_name is not None:
            self.artifacts[class_name] = Artifact(parent_name, tuple(implements))
        _log.debug("pass %d: classish %s extends %s implements %s",
                   self.pass_number, class_name or "(anonymous)", parent_name, implements)

        opener = keyword.scope_opener
        closer = self._closer(keyword.scope_closer)
        if keyword.parenthesis_opener is not None and keyword.parenthesis_closer is not None:
            # Constructor arguments of an anonymous class.
            self.cursor.jump_to(keyword.parenthesis_opener + 1)
            self._process_block(scope, keyword.parenthesis_closer)

        inner = scope.enter(
            ScopeKind.CLASSISH, closer, class_name=class_name, parent_name=parent_name,
        )
        if comment is not None:
            inner = self._check_templates(inner, comment)
            self._check_classish(inner, comment)

        self.cursor.jump_to(opener + 1)
        self._process_block(inner, closer)
        self.cursor.jump_to(closer + 1)

    def _process_function(self, scope: Scope, comment: Optional[PendingComment]) -> None:
        ptr = self.cursor.ptr
        keyword = self.cursor.token
        name = declaration_name(self.tokens, ptr)
        _log.debug("pass %d: function %s", self.pass_number, name or "(anonymous)")

        inner = scope.enter(ScopeKind.FUNCTION, keyword.scope_closer)
        if comment is not None:
            inner = self._check_templates(inner, comment)
        if self.pass_number == 2:
            self._check_function(inner, ptr, name, comment)

        if keyword.parenthesis_opener is None or keyword.parenthesis_closer is None:
            raise ScanError("function without a parameter list", ptr)
        params_end = keyword.parenthesis_closer
        self.cursor.jump_to(keyword.parenthesis_opener + 1)
        self._process_block(inner.enter(ScopeKind.PARAMETERS, params_end), params_end)
        self.cursor.jump_to(params_end + 1)

        if self.cursor.code is TokenCode.USE:
            # Closure imports.
            self.cursor.advance()
            group = self.cursor.token
            if group is None or group.code is not TokenCode.OPEN_PARENTHESIS:
                raise ScanError("malformed closure use list", self.cursor.ptr)
            self.cursor.jump_to(self._closer(group.parenthesis_closer) + 1)

        if keyword.code is TokenCode.FN:
            while self.cursor.code is not TokenCode.DOUBLE_ARROW:
                self.cursor.advance()
            self.cursor.advance()
            return
        if keyword.scope_opener is None:
            # Abstract or interface method.
            while self.cursor.code is not TokenCode.SEMICOLON:
                self.cursor.advance()
            self.cursor.advance()
            return

        body_end = self._closer(keyword.scope_closer)
        self.cursor.jump_to(keyword.scope_opener + 1)
        self._process_block(inner.enter(ScopeKind.OTHER, body_end), body_end)
        self.cursor.jump_to(body_end + 1)

    def _process_variable(self, scope: Scope, comment: Optional[PendingComment]) -> None:
        ptr = self.cursor.ptr
        if self.cursor.code is TokenCode.VAR:
            self.cursor.advance()
        is_const = self.cursor.code is TokenCode.CONST
        keyword = self.cursor.ptr

        names: List[str] = []
        first: Optional[int] = None
        in_default = False
        index = self.cursor.ptr
        while True:
            if index >= len(self.tokens) or (
                scope.closer is not None and index >= scope.closer
            ):
                raise ScanError("declaration without a terminating ';'", ptr)
            token = self.tokens[index]
            if token.code is TokenCode.SEMICOLON:
                break
            if token.code is TokenCode.COMMA:
                in_default = False
            elif token.code is TokenCode.EQUAL:
                if is_const and not in_default:
                    previous = self._previous_code_index(index)
                    names.append(self.tokens[previous].content)
                    if first is None:
                        first = previous
                in_default = True
            elif token.code is TokenCode.VARIABLE and not is_const and not in_default:
                names.append(token.content)
                if first is None:
                    first = index
            index = self._skip_group(index)

        _log.debug("pass %d: variable %s", self.pass_number, names)
        if self.pass_number == 2 and first is not None:
            if is_const:
                native = constant_type(self.tokens, keyword)
            else:
                native = member_property_type(self.tokens, first)
            self._check_variable(scope, first, names, comment, native)
        self.cursor.jump_to(index + 1)

    def _previous_code_index(self, index: int) -> int:
        """Index of the last non-trivia token before *index*."""
        index -= 1
        while index > 0 and self.tokens[index].code in (
            TokenCode.WHITESPACE, TokenCode.COMMENT,
        ):
            index -= 1
        return index

    def _skip_group(self, index: int) -> int:
        token = self.tokens[index]
        if token.code is TokenCode.OPEN_CURLY_BRACKET and token.scope_closer is not None:
            return token.scope_closer + 1
        for closer in (token.parenthesis_closer, token.bracket_closer, token.attribute_closer):
            if closer is not None and closer > index:
                return closer + 1
        return index + 1

    # ═════════════════════════════════════════════════════════════════
    #  PART 2 — CHECKS
    # ═════════════════════════════════════════════════════════════════

    def _report(self, error: ErrorCode, ptr: int, *args: object) -> None:
        if error.severity is Severity.ERROR:
            self.sink.report_error(error.template, ptr, error.code, args)
        else:
            self.sink.report_warning(error.template, ptr, error.code, args)

    def _parse(self, scope: Scope, text: str, mode: ParseMode, wide: bool = False) -> ParsedType:
        return self.parser.parse_type_and_var(scope, text, mode, wide)

    def _native(self, scope: Scope, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        return self._parse(scope, text, ParseMode.TYPE, wide=True).type

    def _check_misplaced(self, comment: PendingComment, names: Sequence[str]) -> None:
        for tag in comment.all_tags():
            if tag.name in names:
                self._report(ErrorCode.TAG_MISPLACED, tag.ptr, tag.name)

    def _check_templates(self, scope: Scope, comment: PendingComment) -> Scope:
        """Bind each template in comment order; later ones see earlier ones."""
        tags = sorted(
            (tag for name in _TEMPLATE_TAGS for tag in comment.get(name)),
            key=lambda tag: tag.ptr,
        )
        for tag in tags:
            parsed = self.parser.parse_template(scope, tag.text)
            if parsed.var is None:
                self._report(ErrorCode.TEMPLATE_NAME, tag.ptr)
                continue
            if parsed.type is None:
                self._report(ErrorCode.TEMPLATE_TYPE, tag.ptr)
                scope = scope.with_template(parsed.var, "never")
                continue
            scope = scope.with_template(parsed.var, parsed.type)
            self._check_style(ErrorCode.TEMPLATE_TYPE_STYLE, tag, parsed)
        return scope

    def _check_classish(self, scope: Scope, comment: PendingComment) -> None:
        for name in _PROPERTY_TAGS:
            for tag in comment.get(name):
                parsed = self._parse(scope, tag.text, ParseMode.VAR)
                if parsed.type is None:
                    self._report(ErrorCode.CLASS_PROP_TYPE, tag.ptr)
                else:
                    self._check_style(ErrorCode.CLASS_PROP_TYPE_STYLE, tag, parsed)
                if parsed.var is None:
                    self._report(ErrorCode.CLASS_PROP_NAME, tag.ptr)
        self._check_misplaced(comment, _MISPLACED_ON_CLASSISH)

    def _check_function(
        self,
        scope: Scope,
        ptr: int,
        name: Optional[str],
        comment: Optional[PendingComment],
    ) -> None:
        params = method_parameters(self.tokens, ptr)
        check_docs = self.config.check_has_docs and name is not None
        if comment is None:
            if check_docs:
                self._report(ErrorCode.FUN_DOC_MISSING, ptr)
            return

        self._check_params(scope, ptr, params, comment.get("@param"))
        if check_docs:
            documented = {
                self._parse(scope, tag.text, ParseMode.MODIFIERS).var
                for tag in comment.get("@param")
            }
            for param in params:
                if param.name not in documented:
                    self._report(ErrorCode.FUN_PARAM_MISSING, ptr, param.name)

        native_return = self._native(scope, method_return_type(self.tokens, ptr))
        returns = comment.get("@return")
        if len(returns) > 1:
            self._report(ErrorCode.FUN_RET_MULTIPLE, returns[1].ptr)
        for tag in returns:
            parsed = self._parse(scope, tag.text, ParseMode.TYPE)
            if parsed.type is None:
                self._report(ErrorCode.FUN_RET_TYPE, tag.ptr)
                continue
            if not self.parser.lattice.compare_types(native_return, parsed.type):
                self._report(ErrorCode.FUN_RET_TYPE_MISMATCH, tag.ptr)
            self._check_style(ErrorCode.FUN_RET_TYPE_STYLE, tag, parsed)
        if (
            check_docs
            and not returns
            and name.lower() not in _NO_RETURN_DOC
            and native_return not in ("void", "never")
        ):
            self._report(ErrorCode.FUN_RET_MISSING, ptr)

        self._check_misplaced(comment, _MISPLACED_ON_FUNCTION)

    def _check_params(
        self,
        scope: Scope,
        ptr: int,
        params: List[ParameterInfo],
        tags: List[TagOccurrence],
    ) -> None:
        documented: List[Tuple[int, TagOccurrence, ParsedType]] = []
        for number, tag in enumerate(tags, 1):
            parsed = self._parse(scope, tag.text, ParseMode.MODIFIERS)
            if parsed.type is None:
                self._report(ErrorCode.FUN_PARAM_TYPE, tag.ptr, number)
            else:
                self._check_style(ErrorCode.FUN_PARAM_TYPE_STYLE, tag, parsed, number)
            if parsed.var is None:
                self._report(ErrorCode.FUN_PARAM_NAME, tag.ptr, number)
            documented.append((number, tag, parsed))
        if not documented:
            return

        if len(documented) != len(params):
            self._report(ErrorCode.FUN_PARAM_COUNT, ptr)
            by_name = {param.name: param for param in params}
            pairs = [
                (number, tag, parsed, by_name[parsed.var])
                for number, tag, parsed in documented
                if parsed.var in by_name
            ]
            positional = False
        else:
            pairs = [entry + (param,) for entry, param in zip(documented, params)]
            positional = True

        lattice = self.parser.lattice
        for number, tag, parsed, param in pairs:
            if positional and parsed.var is not None and parsed.var != param.name:
                self._report(ErrorCode.FUN_PARAM_NAME_MISMATCH, tag.ptr, number)
            native = self._parse(scope, param.content, ParseMode.DEFAULT, wide=True)
            if parsed.type is not None and not lattice.compare_types(native.type, parsed.type):
                self._report(ErrorCode.FUN_PARAM_TYPE_MISMATCH, tag.ptr, number)
            if parsed.var is not None and (
                ("..." in parsed.pass_splat) != param.variadic
                or ("&" in parsed.pass_splat and not param.pass_by_reference)
            ):
                self._report(ErrorCode.FUN_PARAM_PASS_SPLAT_MISMATCH, tag.ptr, number)

    def _check_variable(
        self,
        scope: Scope,
        ptr: int,
        names: List[str],
        comment: Optional[PendingComment],
        native_text: Optional[str],
    ) -> None:
        if comment is None:
            if self.config.check_has_docs:
                self._report(ErrorCode.VAR_DOC_MISSING, ptr)
            return

        tags = comment.get("@var")
        if not tags and self.config.check_has_docs:
            self._report(ErrorCode.VAR_MISSING, ptr)
        if len(tags) > 1:
            self._report(ErrorCode.VAR_MULTIPLE, tags[1].ptr)

        native = self._native(scope, native_text)
        for tag in tags:
            parsed = self._parse(scope, tag.text, ParseMode.VAR)
            if parsed.type is None:
                self._report(ErrorCode.VAR_TYPE, tag.ptr)
            else:
                if not self.parser.lattice.compare_types(native, parsed.type):
                    self._report(ErrorCode.VAR_TYPE_MISMATCH, tag.ptr)
                self._check_style(ErrorCode.VAR_TYPE_STYLE, tag, parsed)
            if parsed.var is not None and parsed.var not in names:
                self._report(ErrorCode.VAR_NAME_MISMATCH, tag.ptr)

        self._check_misplaced(comment, _MISPLACED_ON_VARIABLE)

    # ═════════════════════════════════════════════════════════════════
    #  PART 3 — STYLE FIXES
    # ═════════════════════════════════════════════════════════════════

    def _check_style(
        self, error: ErrorCode, tag: TagOccurrence, parsed: ParsedType, *args: object,
    ) -> None:
        if not self.config.check_style or parsed.fixed is None or parsed.type_span is None:
            return
        start, stop = parsed.type_span
        if tag.text[start:stop] == parsed.fixed:
            return
        if not self.sink.report_fixable_warning(error.template, tag.ptr, error.code, args):
            return

        self.sink.begin_changeset()
        try:
            self._replace_type(tag, start, stop, parsed.fixed)
        except FixError as exc:
            self.sink.rollback_changeset()
            _log.warning("fix at token %d abandoned: %s", tag.ptr, exc)
            self._report(ErrorCode.INTERNAL_FIX, tag.ptr, str(exc))
        else:
            self.sink.end_changeset()

    def _replace_type(self, tag: TagOccurrence, start: int, stop: int, fixed: str) -> None:
        """Rewrite the tag lines holding ``text[start:stop]`` as one line."""
        lines = tag.text.split("\n")
        first_line = tag.text.count("\n", 0, start)
        last_line = tag.text.count("\n", 0, stop)
        first_ptr = tag.string_ptrs[first_line]
        last_ptr = tag.string_ptrs[last_line]
        if first_ptr is None or last_ptr is None:
            raise FixError("type does not start and end on tag text")

        physical = "".join(self.tokens[i].content for i in range(first_ptr, last_ptr + 1))
        breaks = count_line_breaks(physical)
        if breaks != last_line - first_line:
            raise FixError(
                f"tag spans {last_line - first_line + 1} line(s) but its tokens hold {breaks + 1}"
            )

        first_offset = sum(len(line) + 1 for line in lines[:first_line])
        last_offset = sum(len(line) + 1 for line in lines[:last_line])
        replacement = (
            lines[first_line][:start - first_offset]
            + fixed
            + lines[last_line][stop - last_offset:]
        )
        self.sink.replace_token_range(first_ptr, last_ptr, replacement)


def check_source(
    source: str,
    file_name: str = "<input>",
    config: Optional[ScanConfig] = None,
) -> FileReport:
    """Tokenize and scan one file's source."""
    config = config if config is not None else ScanConfig()
    tokens = tokenize(source)
    report = FileReport(
        file_name, tokens, fix=config.fix, disabled_codes=config.disabled_codes,
    )
    DeclarationScanner(tokens, report, config).scan()
    return report
