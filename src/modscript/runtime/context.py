"""
Execution context for the Mod Script interpreter.

One context is created per run and threaded through every statement. It
owns the variable scopes, the directory cursor used by relative file
operations, and the warnings collected along the way. Dialects subclass it
to carry extra per-run state.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, Iterator, List, Optional
from contextlib import contextmanager

from .values import Value
from ..errors import Diagnostic, ErrorSeverity
from ..tokens import SourceSpan


def normalize_path(path: str, base: PurePosixPath = PurePosixPath()) -> PurePosixPath:
    """
    Resolve a script path against a base directory.

    Backslashes are accepted as separators and a leading separator means
    the root. The result is relative to the root and never climbs above it.

    Raises:
        ValueError: If the path escapes the root or contains a null character
    """
    if "\0" in path:
        raise ValueError(f"path {path!r} contains a null character")
    raw = PurePosixPath(path.replace("\\", "/"))
    if raw.is_absolute():
        raw = raw.relative_to("/")
        base = PurePosixPath()
    parts: List[str] = list(base.parts)
    for part in raw.parts:
        if part == "..":
            if not parts:
                raise ValueError(f"path '{path}' escapes the root directory")
            parts.pop()
        elif part != ".":
            parts.append(part)
    return PurePosixPath(*parts)


@dataclass
class Scope:
    """
    A single scope containing variable bindings.

    Scopes form a chain via the `parent` field for lexical scoping.
    """
    variables: Dict[str, Value] = field(default_factory=dict)
    parent: Optional["Scope"] = None
    name: str = "anonymous"  # For debugging

    def get(self, name: str) -> Optional[Value]:
        """Look up a variable in this scope or parent scopes."""
        if name in self.variables:
            return self.variables[name]
        if self.parent:
            return self.parent.get(name)
        return None

    def set(self, name: str, value: Value) -> None:
        """Set a variable in this scope (shadowing parent if exists)."""
        self.variables[name] = value

    def update(self, name: str, value: Value) -> bool:
        """
        Update an existing variable.

        Searches up the scope chain to find where the variable is defined.
        Returns True if found and updated, False if not found.
        """
        if name in self.variables:
            self.variables[name] = value
            return True
        if self.parent:
            return self.parent.update(name, value)
        return False


@dataclass
class InterpreterContext:
    """
    Mutable per-run state.

    Tracks:
    - Variable scopes (a global scope plus one frame per open block)
    - The current directory inside the mod, relative to its root
    - Warnings recorded by the script and by recoverable failures
    - The number of host function invocations
    """
    case_sensitive: bool = False
    global_scope: Scope = field(default_factory=lambda: Scope(name="global"))
    current_directory: PurePosixPath = field(default_factory=PurePosixPath)
    warnings: List[Diagnostic] = field(default_factory=list)
    invocations: int = 0

    # span of the host call in progress, used for warnings raised by handlers
    call_span: Optional[SourceSpan] = None

    # Source tracking for error messages
    source_lines: List[str] = field(default_factory=list)

    _frames: List[Scope] = field(default_factory=list, repr=False)

    def _key(self, name: str) -> str:
        return name if self.case_sensitive else name.casefold()

    @property
    def current_scope(self) -> Scope:
        return self._frames[-1] if self._frames else self.global_scope

    @property
    def depth(self) -> int:
        """Number of open block frames; 0 at top level."""
        return len(self._frames)

    def get_variable(self, name: str) -> Optional[Value]:
        """Look up a variable in the current scope chain."""
        return self.current_scope.get(self._key(name))

    def bind_variable(self, name: str, value: Value) -> None:
        """Bind a variable in the innermost scope."""
        self.current_scope.set(self._key(name), value)

    def update_variable(self, name: str, value: Value) -> bool:
        """Rebind the nearest existing binding. False if there is none."""
        return self.current_scope.update(self._key(name), value)

    @contextmanager
    def new_scope(self, name: str = "block") -> Iterator[Scope]:
        """
        Context manager that opens a block frame.

        The frame is popped on every exit path, including errors and
        generator close.
        """
        scope = Scope(parent=self.current_scope, name=name)
        self._frames.append(scope)
        try:
            yield scope
        finally:
            self._frames.pop()

    def add_warning(self, message: str, span: Optional[SourceSpan] = None,
                    code: str = "W500") -> Diagnostic:
        """Record a warning diagnostic at `span`, or at the call in progress."""
        if span is None:
            span = self.call_span
        diag = Diagnostic(
            code=code,
            message=message,
            severity=ErrorSeverity.WARNING,
            span=span,
            source_line=self.source_line(span),
        )
        self.warnings.append(diag)
        return diag

    def source_line(self, span: Optional[SourceSpan]) -> Optional[str]:
        """Get a source line for error messages."""
        if span is None:
            return None
        line_num = span.start.line
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    def resolve_path(self, path: str) -> PurePosixPath:
        """Resolve a script path against the current directory."""
        return normalize_path(path, self.current_directory)

    def change_directory(self, path: str) -> PurePosixPath:
        """Move the directory cursor."""
        self.current_directory = self.resolve_path(path)
        return self.current_directory
