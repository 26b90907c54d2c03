"""
Recursive descent parser for Mod Script.

Converts a token stream into a statement tree rooted at a single Block.
Tokens are pulled lazily from any iterable (usually a Lexer) and buffered
only as far as lookahead requires. There is no error recovery: the first
token that cannot extend the current production raises ParserError.
"""

from collections import deque
from typing import Deque, Dict, Iterable, Iterator, List, Optional, Tuple
from .grammar import Grammar, LATEST_GRAMMAR
from .lexer import Lexer
from .tokens import Token, TokenType, SourceSpan
from .ast import (
    Expression, Literal, Variable, Call, KeywordArgument, BinaryOp, UnaryOp,
    Statement, Block, Assignment, AssignMode, CallStatement, ConditionalBranch,
    IfStatement, WhileStatement, ForStatement, ReturnStatement, Comment,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_expression,
    error_unsupported_construct,
    error_arity_mismatch,
)


class Parser:
    """
    Recursive descent parser for Mod Script.

    Usage:
        parser = Parser(Lexer(source, grammar), grammar)
        script = parser.parse_script()

    Expressions use precedence climbing; every binary operator is
    left-associative:
        Lowest:  or
                 and
                 == != <> < > <= >=
                 + -
                 * / %
        Highest: unary (not -)
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 3,
        TokenType.GT: 3,
        TokenType.LE: 3,
        TokenType.GE: 3,
        TokenType.PLUS: 4,
        TokenType.MINUS: 4,
        TokenType.STAR: 5,
        TokenType.SLASH: 5,
        TokenType.PERCENT: 5,
    }

    def __init__(self, tokens: Iterable[Token], grammar: Grammar = LATEST_GRAMMAR,
                 source: Optional[str] = None):
        self.grammar = grammar
        self.source = source
        self._tokens: Iterator[Token] = iter(tokens)
        self._buffer: Deque[Token] = deque()
        self._previous: Optional[Token] = None
        self._eof: Optional[Token] = None
        # comment text keyed by the offset of the token that follows it
        self._comments: Dict[int, List[Token]] = {}
        self._pending_comments: List[Token] = []
        self._lines: Optional[List[str]] = None

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _fill(self, count: int) -> None:
        """Pull tokens from the stream until `count` are buffered."""
        while len(self._buffer) < count:
            if self._eof is not None:
                self._buffer.append(self._eof)
                continue
            token = next(self._tokens, None)
            if token is None:
                raise RuntimeError("token stream ended without an EOF token")
            if token.type == TokenType.COMMENT:
                self._pending_comments.append(token)
                continue
            if self._pending_comments:
                self._comments[token.span.start.offset] = self._pending_comments
                self._pending_comments = []
            if token.type == TokenType.EOF:
                self._eof = token
            self._buffer.append(token)

    def _current(self) -> Token:
        """Get current token."""
        self._fill(1)
        return self._buffer[0]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        self._fill(offset + 1)
        return self._buffer[offset]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self._buffer.popleft()
        self._previous = token
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, token: Token) -> Optional[str]:
        if self.source is None:
            return None
        if self._lines is None:
            self._lines = self.source.splitlines()
        line = token.span.start.line
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(expected, token.describe(), token.span,
                                     self._source_line(token))

    def _span_from(self, start: Token) -> SourceSpan:
        """Span from the start token to the last consumed token."""
        end = self._previous if self._previous is not None else start
        return SourceSpan(start.span.start, end.span.end)

    def _take_comments(self) -> List[Comment]:
        """Comments that precede the current token, as statements."""
        token = self._current()
        pending = self._comments.pop(token.span.start.offset, [])
        return [Comment(span=c.span, text=c.value) for c in pending]

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_binary_expr(1)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (not, -)."""
        if self._check_any(TokenType.NOT, TokenType.MINUS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        return self._parse_primary_expr()

    def _parse_primary_expr(self) -> Expression:
        """Parse literals, variables, calls and parenthesized expressions."""
        token = self._current()

        if token.type in (TokenType.NUMBER_LITERAL, TokenType.STRING_LITERAL,
                          TokenType.BOOL_LITERAL):
            self._advance()
            return Literal(span=token.span, value=token.value, literal_type=token.type)

        if token.type == TokenType.IDENTIFIER:
            if self._peek(1).type == TokenType.LPAREN:
                return self._parse_call()
            self._advance()
            return Variable(span=token.span, name=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.EOF:
            raise error_unexpected_eof("expression", token.span)
        raise error_invalid_expression(token.describe(), token.span,
                                       self._source_line(token))

    def _parse_call(self) -> Call:
        """Parse `Name(arg, ..., key=value, ...)`."""
        name_token = self._consume(TokenType.IDENTIFIER, "function name")
        args, keyword_args = self._parse_arguments(name_token)
        return Call(
            span=self._span_from(name_token),
            name=name_token.value,
            arguments=tuple(args),
            keyword_arguments=tuple(keyword_args),
        )

    def _parse_arguments(self, name_token: Token) -> Tuple[List[Expression], List[KeywordArgument]]:
        """Parse argument list, returns (positional, keyword)."""
        self._consume(TokenType.LPAREN, "'('")

        args: List[Expression] = []
        keyword_args: List[KeywordArgument] = []

        if not self._check(TokenType.RPAREN):
            self._parse_argument(name_token, args, keyword_args)
            while self._match(TokenType.COMMA):
                self._parse_argument(name_token, args, keyword_args)

        self._consume(TokenType.RPAREN, "',' or ')'")
        return args, keyword_args

    def _parse_argument(self, name_token: Token, args: List[Expression],
                        keyword_args: List[KeywordArgument]) -> None:
        """Parse a single argument (positional or keyword)."""
        start = self._current()
        if start.type == TokenType.IDENTIFIER and self._peek(1).type == TokenType.ASSIGN:
            if not self.grammar.keyword_arguments:
                raise error_unsupported_construct(
                    "keyword argument", self.grammar.version, start.span,
                    self._source_line(start)
                )
            self._advance()  # name
            self._advance()  # '='
            value = self._parse_expression()
            keyword_args.append(KeywordArgument(
                span=self._span_from(start), name=start.value, value=value
            ))
            return

        if keyword_args:
            raise error_arity_mismatch(
                f"positional argument follows keyword argument in call to {name_token.value}()",
                start.span, self._source_line(start)
            )
        args.append(self._parse_expression())

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a statement."""
        token = self._current()

        if token.type == TokenType.IF:
            return self._parse_if_statement()
        if token.type == TokenType.WHILE:
            return self._parse_while_statement()
        if token.type == TokenType.FOR:
            return self._parse_for_statement()
        if token.type == TokenType.BEGIN:
            self._advance()
            body = self._parse_block(TokenType.END)
            self._consume(TokenType.END, "'end'")
            return Block(span=self._span_from(token), statements=body.statements)
        if token.type == TokenType.LET:
            self._advance()
            return self._parse_assignment(token, AssignMode.BIND)
        if token.type == TokenType.SET:
            self._advance()
            return self._parse_assignment(token, AssignMode.UPDATE)
        if token.type == TokenType.RETURN:
            self._advance()
            return ReturnStatement(span=token.span)
        if token.type == TokenType.IDENTIFIER:
            following = self._peek(1).type
            if following == TokenType.ASSIGN:
                return self._parse_assignment(token, AssignMode.BIND)
            if following == TokenType.LPAREN:
                call = self._parse_call()
                return CallStatement(span=call.span, call=call)
            self._advance()
            self._error(f"'=' or '(' after '{token.lexeme}'")

        self._error("statement")

    def _parse_assignment(self, start: Token, mode: AssignMode) -> Assignment:
        name = self._consume(TokenType.IDENTIFIER, "variable name").value
        self._consume(TokenType.ASSIGN, "'='")
        value = self._parse_expression()
        return Assignment(span=self._span_from(start), name=name, value=value, mode=mode)

    def _parse_if_statement(self) -> IfStatement:
        """Parse if / elseif / else / endif."""
        start = self._consume(TokenType.IF, "'if'")
        branches = [self._parse_branch(start)]
        else_branch = None

        while self._check(TokenType.ELSEIF):
            branches.append(self._parse_branch(self._advance()))

        if self._check(TokenType.ELSE):
            else_token = self._advance()
            else_branch = self._parse_block(TokenType.ENDIF)
            else_branch = Block(span=self._span_from(else_token),
                                statements=else_branch.statements)

        self._consume(TokenType.ENDIF, "'endif'")
        return IfStatement(
            span=self._span_from(start),
            branches=tuple(branches),
            else_branch=else_branch,
        )

    def _parse_branch(self, start: Token) -> ConditionalBranch:
        condition = self._parse_expression()
        self._consume(TokenType.THEN, "'then'")
        body = self._parse_block(TokenType.ELSEIF, TokenType.ELSE, TokenType.ENDIF)
        return ConditionalBranch(span=self._span_from(start), condition=condition, body=body)

    def _parse_while_statement(self) -> WhileStatement:
        start = self._advance()
        if not self.grammar.loops:
            raise error_unsupported_construct("while loop", self.grammar.version, start.span,
                                              self._source_line(start))
        condition = self._parse_expression()
        self._consume(TokenType.DO, "'do'")
        body = self._parse_block(TokenType.ENDWHILE)
        self._consume(TokenType.ENDWHILE, "'endwhile'")
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_for_statement(self) -> ForStatement:
        start = self._advance()
        if not self.grammar.loops:
            raise error_unsupported_construct("for loop", self.grammar.version, start.span,
                                              self._source_line(start))
        variable = self._consume(TokenType.IDENTIFIER, "loop variable").value
        self._consume(TokenType.ASSIGN, "'='")
        first = self._parse_expression()
        self._consume(TokenType.TO, "'to'")
        last = self._parse_expression()
        step = None
        if self._match(TokenType.STEP):
            step = self._parse_expression()
        self._consume(TokenType.DO, "'do'")
        body = self._parse_block(TokenType.ENDFOR)
        self._consume(TokenType.ENDFOR, "'endfor'")
        return ForStatement(
            span=self._span_from(start),
            variable=variable,
            start=first,
            stop=last,
            body=body,
            step=step,
        )

    def _parse_block(self, *terminators: TokenType) -> Block:
        """Parse statements until one of the terminator tokens (not consumed)."""
        start = self._current()
        statements: List[Statement] = []

        while True:
            statements.extend(self._take_comments())
            if self._check_any(*terminators):
                break
            if self._is_at_end():
                expected = " or ".join(f"'{t.name.lower()}'" for t in terminators)
                self._error(expected)
            statements.append(self._parse_statement())
            self._match(TokenType.SEMICOLON)

        end = self._previous if self._previous is not None else start
        return Block(span=SourceSpan(start.span.start, end.span.end),
                     statements=tuple(statements))

    def parse_script(self) -> Block:
        """Parse a complete script into its root Block."""
        block = self._parse_block(TokenType.EOF)
        self._consume(TokenType.EOF, "end of input")
        return block


def parse(tokens: Iterable[Token], grammar: Grammar = LATEST_GRAMMAR,
          source: Optional[str] = None) -> Block:
    """
    Convenience function to parse a token stream.

    Args:
        tokens: Tokens from the lexer, ending with EOF
        grammar: Grammar version the script is written against
        source: Optional source text for error messages

    Returns:
        The root Block of the script

    Raises:
        ParserError: If parsing fails
    """
    return Parser(tokens, grammar, source).parse_script()


def parse_source(source: str, grammar: Grammar = LATEST_GRAMMAR,
                 filename: Optional[str] = None) -> Block:
    """Lex and parse script text in one step."""
    return parse(Lexer(source, grammar, filename), grammar, source)
