"""
Binding checker for Mod Script.

Runs after parsing and before execution. Every call is resolved against the
dialect's function catalog, and every variable read is matched against an
assignment somewhere in the script, so that a script with a static mistake
is rejected before it can touch the target installation.
"""

from dataclasses import dataclass
from typing import List, Optional, Set

from .ast import Assignment, Block, Call, ForStatement, Literal, Variable, walk
from .errors import (
    CallSignatureError, Diagnostic, DiagnosticCollector, ErrorSeverity,
    error_argument_kind, error_never_assigned, error_unknown_function,
)
from .grammar import Grammar, LATEST_GRAMMAR
from .parser import parse_source
from .runtime.catalog import FunctionCatalog
from .tokens import SourceSpan, TokenType

_LITERAL_KINDS = {
    TokenType.STRING_LITERAL: "string",
    TokenType.NUMBER_LITERAL: "number",
    TokenType.BOOL_LITERAL: "bool",
}


@dataclass
class CheckResult:
    """Result of checking a script."""
    diagnostics: List[Diagnostic]
    has_errors: bool
    has_warnings: bool

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ErrorSeverity.ERROR]

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": len(self.errors),
            "warning_count": len(self.diagnostics) - len(self.errors),
        }


class BindingChecker:
    """
    Static checks against a function catalog.

    Validates:
    - Every called function exists in the catalog (E203)
    - Argument count and keyword names match the signature (E201)
    - Literal arguments have the declared kind (E202)
    - Every variable read is assigned somewhere in the script (E204)
    """

    def __init__(self, catalog: FunctionCatalog, case_sensitive: bool = False,
                 source: Optional[str] = None, max_errors: int = 20):
        self.catalog = catalog
        self.case_sensitive = case_sensitive
        self.diagnostics = DiagnosticCollector(max_errors)
        self._lines = source.splitlines() if source is not None else []

    def _key(self, name: str) -> str:
        return name if self.case_sensitive else name.casefold()

    def _source_line(self, span: SourceSpan) -> Optional[str]:
        line = span.start.line
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def check(self, script: Block) -> CheckResult:
        """Check a complete script."""
        assigned: Set[str] = set()
        for node in walk(script):
            if isinstance(node, Assignment):
                assigned.add(self._key(node.name))
            elif isinstance(node, ForStatement):
                assigned.add(self._key(node.variable))

        for node in walk(script):
            if self.diagnostics.should_stop:
                break
            if isinstance(node, Call):
                self._check_call(node)
            elif isinstance(node, Variable) and self._key(node.name) not in assigned:
                self.diagnostics.add_error(error_never_assigned(
                    node.name, node.span, self._source_line(node.span)
                ))

        return CheckResult(
            diagnostics=self.diagnostics.diagnostics,
            has_errors=self.diagnostics.has_errors,
            has_warnings=self.diagnostics.has_warnings,
        )

    def _check_call(self, call: Call) -> None:
        spec = self.catalog.get(call.name)
        if spec is None:
            self.diagnostics.add_error(error_unknown_function(
                call.name, call.span, self._source_line(call.span)
            ))
            return

        try:
            positional, by_keyword = spec.match_arguments(
                len(call.arguments), [kw.name for kw in call.keyword_arguments], call.span
            )
        except CallSignatureError as e:
            e.diagnostic.source_line = self._source_line(call.span)
            self.diagnostics.add_error(e)
            return

        values = list(call.arguments) + [kw.value for kw in call.keyword_arguments]
        for param, expr in zip(positional + by_keyword, values):
            if not isinstance(expr, Literal):
                continue
            found = _LITERAL_KINDS[expr.literal_type]
            if param.kind.value not in ("any", found):
                self.diagnostics.add_error(error_argument_kind(
                    spec.name, param.name, param.kind.value, f"{found} literal",
                    expr.span, self._source_line(expr.span)
                ))


def check(script: Block, catalog: FunctionCatalog, case_sensitive: bool = False,
          source: Optional[str] = None) -> CheckResult:
    """
    Convenience function to check a parsed script.

    Args:
        script: The root Block from the parser
        catalog: Function catalog of the target dialect
        case_sensitive: Whether variable names are case-sensitive
        source: Optional source text for error messages

    Returns:
        CheckResult with diagnostics
    """
    return BindingChecker(catalog, case_sensitive, source).check(script)


def compile_script(source: str, catalog: FunctionCatalog, grammar: Grammar = LATEST_GRAMMAR,
                   case_sensitive: bool = False, filename: Optional[str] = None) -> Block:
    """
    Lex, parse and check a script.

    Raises:
        LexerError: On malformed source text
        ParserError: On a grammar violation
        CallSignatureError: On the first binding error found
    """
    script = parse_source(source, grammar, filename)
    result = check(script, catalog, case_sensitive, source)
    if result.has_errors:
        raise CallSignatureError(result.errors[0])
    return script
