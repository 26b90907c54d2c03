"""
Lexer for Mod Script.

Converts source text into a stream of tokens for the parser.
Supports:
- Keyword tables selected by grammar version (case-insensitive by default)
- Single-line comments (#)
- Block comments (/* */), nestable
- String literals in single or double quotes with escape sequences
- Integer and float literals (including scientific notation)
- Optional retention of comment text as COMMENT tokens

The token stream is lazy and can only be consumed once.
"""

import math
import string
from typing import List, Optional, Iterator
from .grammar import Grammar, LATEST_GRAMMAR
from .tokens import Token, TokenType, SourceLocation, SourceSpan
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_escape_sequence,
    error_invalid_number_literal,
)

_DIGITS = frozenset(string.digits)
_HEX_DIGITS = frozenset(string.hexdigits)


class Lexer:
    """
    Tokenizer for Mod Script.

    Usage:
        lexer = Lexer(source_code, grammar)
        tokens = lexer.tokenize()

    Or for streaming:
        for token in Lexer(source_code, grammar):
            process(token)

    A lexer instance yields its tokens exactly once; iterating it a second
    time raises RuntimeError.
    """

    def __init__(self, source: str, grammar: Grammar = LATEST_GRAMMAR,
                 filename: Optional[str] = None):
        self.source = source
        self.grammar = grammar
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None
        self._consumed = False

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _skip_whitespace(self) -> None:
        while self._peek() in ' \t\r\n\ufeff' and not self._is_at_end():
            self._advance()

    def _scan_line_comment(self) -> Token:
        """Consume '#' to end of line."""
        start = self._location()
        self._advance()  # consume '#'
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()
        text = self.source[start.offset + 1:self.pos].strip()
        return self._make_token(TokenType.COMMENT, text, start)

    def _scan_block_comment(self) -> Token:
        """Consume /* ... */, allowing nesting."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        depth = 1

        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()

        if depth > 0:
            raise error_unterminated_comment(
                self._span(start),
                self.get_source_line(start.line)
            )
        text = self.source[start.offset + 2:self.pos - 2].strip()
        return self._make_token(TokenType.COMMENT, text, start)

    def _scan_string(self) -> Token:
        """Scan a single-line string literal."""
        start = self._location()
        quote = self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != quote:
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING_LITERAL, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Parse an escape sequence after backslash."""
        esc_start = self._location()
        if self._is_at_end():
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        escape_chars = {
            'n': '\n',
            't': '\t',
            'r': '\r',
            '\\': '\\',
            '"': '"',
            "'": "'",
            '0': '\0',
        }

        if ch in escape_chars:
            return escape_chars[ch]
        if ch in ('x', 'u'):
            width = 2 if ch == 'x' else 4
            hex_chars = ''.join(self._advance() for _ in range(width))
            if not all(c in _HEX_DIGITS for c in hex_chars):
                raise error_invalid_escape_sequence(
                    f"{ch}{hex_chars}", self._span(esc_start),
                    self.get_source_line(esc_start.line)
                )
            return chr(int(hex_chars, 16))
        raise error_invalid_escape_sequence(
            ch, self._span(esc_start), self.get_source_line(esc_start.line)
        )

    def _scan_number(self) -> Token:
        """Scan a numeric literal (int or float)."""
        start = self._location()

        while self._peek() in _DIGITS:
            self._advance()

        is_float = False
        if self._peek() == '.' and self._peek(1) in _DIGITS:
            is_float = True
            self._advance()  # consume '.'
            while self._peek() in _DIGITS:
                self._advance()

        if self._peek() in 'eE':
            is_float = True
            self._advance()
            if self._peek() in '+-':
                self._advance()
            if self._peek() not in _DIGITS:
                lexeme = self.source[start.offset:self.pos]
                raise error_invalid_number_literal(
                    lexeme, self._span(start), self.get_source_line(start.line)
                )
            while self._peek() in _DIGITS:
                self._advance()

        # 12abc is not a number followed by a name
        if self._peek().isalpha() or self._peek() == '_':
            while self._peek().isalnum() or self._peek() == '_':
                self._advance()
            lexeme = self.source[start.offset:self.pos]
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

        lexeme = self.source[start.offset:self.pos]
        value = float(lexeme) if is_float else int(lexeme)
        if is_float and math.isinf(value):
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )
        return self._make_token(TokenType.NUMBER_LITERAL, value, start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        token_type = self.grammar.keyword(lexeme)
        if token_type is None:
            return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)
        if token_type == TokenType.BOOL_LITERAL:
            return self._make_token(token_type, lexeme.lower() == "true", start, lexeme)
        return self._make_token(token_type, lexeme.lower(), start, lexeme)

    def _scan_token(self) -> Optional[Token]:
        """Scan the next token. Returns None for a skipped comment."""
        self._skip_whitespace()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch == '#':
            comment = self._scan_line_comment()
            return comment if self.grammar.retain_comments else None
        if ch == '/' and self._peek(1) == '*':
            comment = self._scan_block_comment()
            return comment if self.grammar.retain_comments else None

        if ch in '"\'':
            return self._scan_string()

        if ch in _DIGITS:
            return self._scan_number()

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        self._advance()

        # Two-character operators
        if ch == '=' and self._match('='):
            return self._make_token(TokenType.EQ, "==", start)
        if ch == '!' and self._match('='):
            return self._make_token(TokenType.NE, "!=", start)
        if ch == '<' and self._match('>'):
            return self._make_token(TokenType.NE, "<>", start)
        if ch == '<' and self._match('='):
            return self._make_token(TokenType.LE, "<=", start)
        if ch == '>' and self._match('='):
            return self._make_token(TokenType.GE, ">=", start)

        single_char_tokens = {
            '+': TokenType.PLUS,
            '-': TokenType.MINUS,
            '*': TokenType.STAR,
            '/': TokenType.SLASH,
            '%': TokenType.PERCENT,
            '<': TokenType.LT,
            '>': TokenType.GT,
            '=': TokenType.ASSIGN,
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            ',': TokenType.COMMA,
            ';': TokenType.SEMICOLON,
        }

        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens, ending with a single EOF token."""
        if self._consumed:
            raise RuntimeError("token stream has already been consumed")
        self._consumed = True
        return self._generate()

    def _generate(self) -> Iterator[Token]:
        while True:
            token = self._scan_token()
            if token is None:
                continue
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, grammar: Grammar = LATEST_GRAMMAR,
             filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        grammar: Grammar version supplying the keyword table
        filename: Optional filename for error messages

    Returns:
        List of tokens

    Raises:
        LexerError: If tokenization fails
    """
    return Lexer(source, grammar, filename).tokenize()
