"""
Unit tests for the Mod Script lexer.

Tests cover:
- Keywords per grammar version and case folding
- Literals (strings with escapes, numbers)
- Comments, skipped or retained
- Lexical errors and the single-use token stream
"""

import pytest

from modscript import (
    GRAMMAR_V1,
    GRAMMAR_V2,
    Lexer,
    LexerError,
    TokenCategory,
    TokenType,
    tokenize,
)


def types(source, grammar=GRAMMAR_V2):
    return [t.type for t in tokenize(source, grammar)]


# =============================================================================
# Keywords and identifiers
# =============================================================================

class TestKeywords:
    """Test keyword recognition."""

    def test_if_statement_tokens(self):
        """Test a complete if statement."""
        assert types('if x then Copy("a") endif') == [
            TokenType.IF, TokenType.IDENTIFIER, TokenType.THEN,
            TokenType.IDENTIFIER, TokenType.LPAREN, TokenType.STRING_LITERAL,
            TokenType.RPAREN, TokenType.ENDIF, TokenType.EOF,
        ]

    def test_keywords_are_case_insensitive(self):
        """Test that IF, If and if are the same keyword."""
        tokens = tokenize("IF If if EndIf")
        assert [t.type for t in tokens[:4]] == [TokenType.IF] * 3 + [TokenType.ENDIF]
        assert tokens[0].value == "if"
        assert tokens[0].lexeme == "IF"

    def test_identifiers_keep_their_case(self):
        """Test identifier values are not folded."""
        token = tokenize("FileExists")[0]
        assert token.type == TokenType.IDENTIFIER
        assert token.value == "FileExists"

    def test_bool_literals(self):
        """Test true/false lex to bool values."""
        tokens = tokenize("true FALSE")
        assert tokens[0].type == TokenType.BOOL_LITERAL
        assert tokens[0].value is True
        assert tokens[1].value is False

    def test_loop_keywords_in_v2(self):
        """Test loop keywords exist in grammar 2."""
        assert types("while do endwhile for to step endfor")[:-1] == [
            TokenType.WHILE, TokenType.DO, TokenType.ENDWHILE,
            TokenType.FOR, TokenType.TO, TokenType.STEP, TokenType.ENDFOR,
        ]

    def test_loop_keywords_are_identifiers_in_v1(self):
        """Test grammar 1 has no loop keywords."""
        assert types("while for", GRAMMAR_V1) == [
            TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF,
        ]

    def test_logical_operators_are_keywords(self):
        """Test and/or/not."""
        assert types("a and b or not c")[:-1] == [
            TokenType.IDENTIFIER, TokenType.AND, TokenType.IDENTIFIER,
            TokenType.OR, TokenType.NOT, TokenType.IDENTIFIER,
        ]


# =============================================================================
# Operators
# =============================================================================

class TestOperators:
    """Test operator and punctuation tokens."""

    def test_comparison_operators(self):
        assert types("== != <> < > <= >=")[:-1] == [
            TokenType.EQ, TokenType.NE, TokenType.NE, TokenType.LT,
            TokenType.GT, TokenType.LE, TokenType.GE,
        ]

    def test_arithmetic_and_punctuation(self):
        assert types("+ - * / % = ( ) , ;")[:-1] == [
            TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
            TokenType.PERCENT, TokenType.ASSIGN, TokenType.LPAREN,
            TokenType.RPAREN, TokenType.COMMA, TokenType.SEMICOLON,
        ]

    def test_categories(self):
        """Test token categories used in diagnostics."""
        tokens = tokenize('if x "s" 1 + ( # c')
        assert [t.category for t in tokens] == [
            TokenCategory.KEYWORD, TokenCategory.IDENTIFIER,
            TokenCategory.STRING_LITERAL, TokenCategory.NUMBER_LITERAL,
            TokenCategory.OPERATOR, TokenCategory.PUNCTUATION,
            TokenCategory.END_OF_INPUT,
        ]

    def test_describe(self):
        tokens = tokenize("endif")
        assert tokens[0].describe() == "keyword 'endif'"
        assert tokens[1].describe() == "end of input"


# =============================================================================
# Literals
# =============================================================================

class TestLiterals:
    """Test string and number literals."""

    def test_double_and_single_quotes(self):
        tokens = tokenize("\"one\" 'two'")
        assert tokens[0].value == "one"
        assert tokens[1].value == "two"

    def test_escape_sequences(self):
        """Test the full escape set."""
        token = tokenize(r'"a\nb\t\\\"\'\x41B\0"')[0]
        assert token.value == "a\nb\t\\\"'AB\0"

    def test_windows_path(self):
        """Test doubled backslashes in paths."""
        assert tokenize(r'"Data\\readme.txt"')[0].value == "Data\\readme.txt"

    def test_integers_and_floats(self):
        tokens = tokenize("42 3.5 1e3 2.5E-1")
        assert [t.value for t in tokens[:-1]] == [42, 3.5, 1000.0, 0.25]
        assert isinstance(tokens[0].value, int)
        assert isinstance(tokens[2].value, float)

    def test_trailing_dot_is_illegal(self):
        """Test a trailing dot is not part of the number."""
        with pytest.raises(LexerError) as exc:
            tokenize("1.")
        assert exc.value.code == "E001"


# =============================================================================
# Comments
# =============================================================================

class TestComments:
    """Test comment handling."""

    def test_comments_are_skipped(self):
        assert types("# note\nx /* block */ y") == [
            TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF,
        ]

    def test_block_comments_nest(self):
        assert types("/* a /* b */ c */ x") == [TokenType.IDENTIFIER, TokenType.EOF]

    def test_comments_retained(self):
        """Test comment tokens when the grammar keeps them."""
        tokens = tokenize("# header\nx /* inline */", GRAMMAR_V2.with_comments())
        assert [t.type for t in tokens] == [
            TokenType.COMMENT, TokenType.IDENTIFIER, TokenType.COMMENT, TokenType.EOF,
        ]
        assert tokens[0].value == "header"
        assert tokens[2].value == "inline"


# =============================================================================
# Locations
# =============================================================================

class TestLocations:
    """Test source positions."""

    def test_line_and_column(self):
        tokens = tokenize("x = 1\n  Copy()", filename="install.ms")
        copy = tokens[3]
        assert copy.span.start.line == 2
        assert copy.span.start.column == 3
        assert copy.span.start.filename == "install.ms"
        assert str(copy.span.start) == "install.ms:2:3"

    def test_byte_order_mark_is_whitespace(self):
        assert types("\ufeffx") == [TokenType.IDENTIFIER, TokenType.EOF]


# =============================================================================
# Errors
# =============================================================================

class TestLexerErrors:
    """Test lexical error codes."""

    @pytest.mark.parametrize("source, code", [
        ("x @ y", "E001"),
        ('"abc', "E002"),
        ('"abc\ndef"', "E002"),
        ("/* open", "E004"),
        (r'"\q"', "E005"),
        (r'"\xZZ"', "E005"),
        (r'"\x+1"', "E005"),
        (r'"\x 1"', "E005"),
        (r'"\u01_2"', "E005"),
        (r'"\u12"', "E005"),
        ("12abc", "E006"),
        ("1e", "E006"),
        ("1e999", "E006"),
    ])
    def test_error_codes(self, source, code):
        with pytest.raises(LexerError) as exc:
            tokenize(source)
        assert exc.value.code == code

    @pytest.mark.parametrize("source", ["x = ²", "x = ①", "x = 12²", "x = ٣"])
    def test_non_ascii_digits_are_illegal(self, source):
        with pytest.raises(LexerError) as exc:
            tokenize(source)
        assert exc.value.code == "E001"
        assert exc.value.diagnostic.span.start.column == source.index(source[-1]) + 1

    def test_large_float_within_range(self):
        token = tokenize("1e300")[0]
        assert token.value == 1e300

    def test_error_carries_source_line(self):
        with pytest.raises(LexerError) as exc:
            tokenize("x = 1\ny = $")
        diag = exc.value.diagnostic
        assert diag.span.start.line == 2
        assert diag.source_line == "y = $"
        assert "^" in diag.format()


# =============================================================================
# Stream behaviour
# =============================================================================

class TestTokenStream:
    """Test the lazy, single-use token stream."""

    def test_ends_with_single_eof(self):
        tokens = tokenize("")
        assert [t.type for t in tokens] == [TokenType.EOF]

    def test_stream_is_lazy(self):
        """Test tokens before an error are produced before it is raised."""
        stream = iter(Lexer("x @"))
        assert next(stream).type == TokenType.IDENTIFIER
        with pytest.raises(LexerError):
            next(stream)

    def test_stream_cannot_restart(self):
        lexer = Lexer("x")
        assert len(lexer.tokenize()) == 2
        with pytest.raises(RuntimeError):
            list(lexer)
