"""
Mod Script runtime - tree-walking interpreter and the host boundary.

This module provides:
- Interpreter / ScriptRun: Executes a parsed script, suspending on prompts
- Value: Runtime values and dialect truthiness rules
- InterpreterContext: Variable scopes, directory cursor, warnings
- FunctionCatalog: Declared host functions and their failure modes
- FunctionProxy: Base class for a dialect's host function handlers
"""

from .values import (
    Value,
    ValueKind,
    TruthinessRules,
    DEFAULT_TRUTHINESS,
    VOID,
    bool_val,
    number_val,
    string_val,
    wrap_value,
    format_value,
)

from .catalog import (
    FailureMode,
    ParamKind,
    ParamSpec,
    FunctionSpec,
    FunctionCatalog,
    DialectDefinition,
    parse_dialect_definition,
    load_dialect_definition,
)

from .context import (
    Scope,
    InterpreterContext,
    normalize_path,
)

from .proxy import (
    ABORT,
    CancellationToken,
    FunctionFailure,
    FunctionProxy,
    PromptKind,
    PromptRequest,
)

from .interpreter import (
    Interpreter,
    ScriptRun,
    ExecutionResult,
    ExecutionStatus,
    drive,
    execute,
)

__all__ = [
    # Values
    "Value",
    "ValueKind",
    "TruthinessRules",
    "DEFAULT_TRUTHINESS",
    "VOID",
    "bool_val",
    "number_val",
    "string_val",
    "wrap_value",
    "format_value",
    # Catalog
    "FailureMode",
    "ParamKind",
    "ParamSpec",
    "FunctionSpec",
    "FunctionCatalog",
    "DialectDefinition",
    "parse_dialect_definition",
    "load_dialect_definition",
    # Context
    "Scope",
    "InterpreterContext",
    "normalize_path",
    # Proxy
    "ABORT",
    "CancellationToken",
    "FunctionFailure",
    "FunctionProxy",
    "PromptKind",
    "PromptRequest",
    # Interpreter
    "Interpreter",
    "ScriptRun",
    "ExecutionResult",
    "ExecutionStatus",
    "drive",
    "execute",
]
