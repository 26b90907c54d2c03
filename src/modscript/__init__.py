"""
Mod Script interpreter.

This module provides:
- Lexer: Tokenizes script source under a grammar version
- Parser: Builds an AST from tokens
- Checker: Validates calls against a dialect's function catalog
- Printer: Formats an AST back into canonical source
- Runtime: Executes scripts, suspending on user prompts
- Dialects: Per-game function catalogs and host functions

Usage:
    from modscript import get_dialect

    source = '''
    if FileExists("readme.txt") then
        Copy("readme.txt", "Data\\\\readme.txt")
    else
        Warn("missing readme")
    endif
    '''
    dialect = get_dialect("stateofdecay")
    script = dialect.compile(source)
    result = dialect.execute(script, source_root="mod", target_root="game")
    if not result.succeeded:
        print(result.error.format())
"""

import logging

from .tokens import (
    Token,
    TokenType,
    TokenCategory,
    SourceLocation,
    SourceSpan,
)

from .grammar import (
    Grammar,
    GRAMMAR_V1,
    GRAMMAR_V2,
    LATEST_GRAMMAR,
    get_grammar,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_source,
)

from .ast import (
    AstNode,
    AstVisitor,
    Expression,
    Literal,
    Variable,
    KeywordArgument,
    Call,
    BinaryOp,
    UnaryOp,
    Statement,
    Block,
    AssignMode,
    Assignment,
    CallStatement,
    ConditionalBranch,
    IfStatement,
    WhileStatement,
    ForStatement,
    ReturnStatement,
    Comment,
    walk,
)

from .printer import (
    ScriptPrinter,
    format_script,
)

from .checker import (
    BindingChecker,
    CheckResult,
    check,
    compile_script,
)

from .errors import (
    Diagnostic,
    ErrorSeverity,
    DslError,
    LexerError,
    ParserError,
    CallSignatureError,
    ScriptRuntimeError,
    FatalFunctionError,
    ScriptAborted,
    CatalogError,
    ConfigError,
)

from .config import (
    InterpreterConfig,
    DEFAULT_CONFIG,
    load_config,
)

from .runtime import (
    ABORT,
    CancellationToken,
    ExecutionResult,
    ExecutionStatus,
    FunctionFailure,
    FunctionProxy,
    Interpreter,
    InterpreterContext,
    PromptKind,
    PromptRequest,
    ScriptRun,
    execute,
)

from .dialects import (
    Dialect,
    get_dialect,
    get_registry,
    register_dialect,
)

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Tokens
    "Token",
    "TokenType",
    "TokenCategory",
    "SourceLocation",
    "SourceSpan",
    # Grammar
    "Grammar",
    "GRAMMAR_V1",
    "GRAMMAR_V2",
    "LATEST_GRAMMAR",
    "get_grammar",
    # Lexer / parser
    "Lexer",
    "tokenize",
    "Parser",
    "parse",
    "parse_source",
    # AST
    "AstNode",
    "AstVisitor",
    "Expression",
    "Literal",
    "Variable",
    "KeywordArgument",
    "Call",
    "BinaryOp",
    "UnaryOp",
    "Statement",
    "Block",
    "AssignMode",
    "Assignment",
    "CallStatement",
    "ConditionalBranch",
    "IfStatement",
    "WhileStatement",
    "ForStatement",
    "ReturnStatement",
    "Comment",
    "walk",
    # Printer
    "ScriptPrinter",
    "format_script",
    # Checker
    "BindingChecker",
    "CheckResult",
    "check",
    "compile_script",
    # Errors
    "Diagnostic",
    "ErrorSeverity",
    "DslError",
    "LexerError",
    "ParserError",
    "CallSignatureError",
    "ScriptRuntimeError",
    "FatalFunctionError",
    "ScriptAborted",
    "CatalogError",
    "ConfigError",
    # Config
    "InterpreterConfig",
    "DEFAULT_CONFIG",
    "load_config",
    # Runtime
    "ABORT",
    "CancellationToken",
    "ExecutionResult",
    "ExecutionStatus",
    "FunctionFailure",
    "FunctionProxy",
    "Interpreter",
    "InterpreterContext",
    "PromptKind",
    "PromptRequest",
    "ScriptRun",
    "execute",
    # Dialects
    "Dialect",
    "get_dialect",
    "get_registry",
    "register_dialect",
]
