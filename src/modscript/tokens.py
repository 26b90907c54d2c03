"""
Token types for the Mod Script lexer.

Token categories follow the error code ranges used by the diagnostics:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Binding/signature errors
- E4xx: Runtime errors
- E5xx: Function failures
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    NUMBER_LITERAL = auto()     # 42, 3.14, 1e-3
    STRING_LITERAL = auto()     # "hello", 'Data\\file.esp'
    BOOL_LITERAL = auto()       # true, false

    # --- Identifiers ---
    IDENTIFIER = auto()         # variable and function names

    # --- Keywords ---
    IF = auto()                 # if
    THEN = auto()               # then
    ELSEIF = auto()             # elseif
    ELSE = auto()               # else
    ENDIF = auto()              # endif
    WHILE = auto()              # while (grammar v2)
    DO = auto()                 # do (grammar v2)
    ENDWHILE = auto()           # endwhile (grammar v2)
    FOR = auto()                # for (grammar v2)
    TO = auto()                 # to (grammar v2)
    STEP = auto()               # step (grammar v2)
    ENDFOR = auto()             # endfor (grammar v2)
    BEGIN = auto()              # begin
    END = auto()                # end
    LET = auto()                # let
    SET = auto()                # set
    RETURN = auto()             # return

    # --- Logical operators (keyword based) ---
    AND = auto()                # and
    OR = auto()                 # or
    NOT = auto()                # not

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    EQ = auto()                 # ==
    NE = auto()                 # != or <>
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=

    # --- Assignment ---
    ASSIGN = auto()             # =

    # --- Punctuation ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    COMMA = auto()              # ,
    SEMICOLON = auto()          # ; (optional statement separator)

    # --- Special ---
    COMMENT = auto()            # only emitted when the grammar retains comments
    EOF = auto()                # end of input


class TokenCategory(Enum):
    """Coarse token classification used in diagnostics."""
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    STRING_LITERAL = "string-literal"
    NUMBER_LITERAL = "number-literal"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"
    COMMENT = "comment"
    END_OF_INPUT = "end-of-input"


_KEYWORD_TYPES = frozenset({
    TokenType.IF, TokenType.THEN, TokenType.ELSEIF, TokenType.ELSE,
    TokenType.ENDIF, TokenType.WHILE, TokenType.DO, TokenType.ENDWHILE,
    TokenType.FOR, TokenType.TO, TokenType.STEP, TokenType.ENDFOR,
    TokenType.BEGIN, TokenType.END, TokenType.LET, TokenType.SET,
    TokenType.RETURN, TokenType.BOOL_LITERAL,
})

_OPERATOR_TYPES = frozenset({
    TokenType.AND, TokenType.OR, TokenType.NOT,
    TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
    TokenType.PERCENT, TokenType.EQ, TokenType.NE, TokenType.LT,
    TokenType.GT, TokenType.LE, TokenType.GE, TokenType.ASSIGN,
})


def category_of(token_type: TokenType) -> TokenCategory:
    """Map a token type onto its category."""
    if token_type in _KEYWORD_TYPES:
        return TokenCategory.KEYWORD
    if token_type in _OPERATOR_TYPES:
        return TokenCategory.OPERATOR
    if token_type == TokenType.IDENTIFIER:
        return TokenCategory.IDENTIFIER
    if token_type == TokenType.STRING_LITERAL:
        return TokenCategory.STRING_LITERAL
    if token_type == TokenType.NUMBER_LITERAL:
        return TokenCategory.NUMBER_LITERAL
    if token_type == TokenType.COMMENT:
        return TokenCategory.COMMENT
    if token_type == TokenType.EOF:
        return TokenCategory.END_OF_INPUT
    return TokenCategory.PUNCTUATION


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # The actual value (int, float, str, bool)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def category(self) -> TokenCategory:
        return category_of(self.type)

    def describe(self) -> str:
        """Short human-readable form used in parser errors."""
        if self.type == TokenType.EOF:
            return "end of input"
        return f"{self.category.value} '{self.lexeme}'"

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER_LITERAL, TokenType.STRING_LITERAL,
                         TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name
