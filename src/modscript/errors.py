"""
Mod Script exceptions and diagnostics.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Binding/signature errors (unknown function, arity, argument kinds)
- E4xx: Runtime errors
- E5xx: Function failures reported by the host
- W5xx: Warnings recorded during a run
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E101, W501, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        loc = f"{self.span.start}" if self.span is not None else "<script>"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None and self.span is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return data


class DslError(Exception):
    """Base exception for script errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(DslError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(DslError):
    """Error during parsing (E1xx)."""
    pass


class CallSignatureError(DslError):
    """A call does not match the function catalog (E2xx)."""
    pass


class ScriptRuntimeError(DslError):
    """Error while evaluating the script (E4xx)."""
    pass


class FatalFunctionError(DslError):
    """A host function failed and its dialect marks the failure fatal (E5xx)."""
    pass


class ScriptAborted(Exception):
    """The host cancelled the run. Never reported as an error."""

    def __init__(self, reason: str = "cancelled by user"):
        self.reason = reason
        super().__init__(reason)


class CatalogError(Exception):
    """A dialect's function catalog or handler table is inconsistent."""
    pass


class ConfigError(Exception):
    """Invalid interpreter configuration."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with matching quotes on the same line"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated block comment."""
    diag = Diagnostic(
        code="E004",
        message="unterminated block comment (expected closing */)",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\r, \\\", \\', \\\\, \\0, \\x##, \\u####"],
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Invalid number literal."""
    diag = Diagnostic(
        code="E006",
        message=f"invalid number literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParserError(diag)


def error_invalid_expression(found: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Invalid expression."""
    diag = Diagnostic(
        code="E103",
        message=f"expected expression, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unsupported_construct(construct: str, version: int, span: SourceSpan,
                                source_line: str = None) -> ParserError:
    """E104: Construct not available in this grammar version."""
    diag = Diagnostic(
        code="E104",
        message=f"{construct} not supported by grammar version {version}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


# --- Binding/signature error codes ---

def error_arity_mismatch(message: str, span: Optional[SourceSpan],
                         source_line: str = None) -> CallSignatureError:
    """E201: Wrong number or names of arguments."""
    diag = Diagnostic(
        code="E201",
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return CallSignatureError(diag)


def error_argument_kind(function: str, param: str, expected: str, found: str,
                        span: Optional[SourceSpan], source_line: str = None) -> CallSignatureError:
    """E202: Argument of the wrong kind."""
    diag = Diagnostic(
        code="E202",
        message=f"argument '{param}' of {function}() expects {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return CallSignatureError(diag)


def error_unknown_function(name: str, span: Optional[SourceSpan],
                           source_line: str = None) -> CallSignatureError:
    """E203: Call to a function the dialect does not provide."""
    diag = Diagnostic(
        code="E203",
        message=f"unknown function '{name}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return CallSignatureError(diag)


def error_never_assigned(name: str, span: Optional[SourceSpan],
                         source_line: str = None) -> CallSignatureError:
    """E204: Variable is read but never assigned anywhere."""
    diag = Diagnostic(
        code="E204",
        message=f"variable '{name}' is never assigned",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return CallSignatureError(diag)


# --- Runtime error codes ---

def runtime_error(code: str, message: str, span: Optional[SourceSpan],
                  source_line: str = None) -> ScriptRuntimeError:
    """E4xx: Runtime error raised by the interpreter."""
    diag = Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ScriptRuntimeError(diag)


def error_fatal_function(function: str, message: str, span: Optional[SourceSpan],
                         source_line: str = None) -> FatalFunctionError:
    """E501: Fatal host function failure."""
    diag = Diagnostic(
        code="E501",
        message=f"{function}(): {message}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return FatalFunctionError(diag)


class DiagnosticCollector:
    """Collects diagnostics during checking."""

    def __init__(self, max_errors: int = 20):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: DslError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    @property
    def should_stop(self) -> bool:
        """Check if we've hit the max error limit."""
        return self._error_count >= self.max_errors

