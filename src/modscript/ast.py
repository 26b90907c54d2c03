"""
Statement tree node definitions for Mod Script.

The parser builds the tree once; it is frozen afterwards and only read by
the checker, the printer and the interpreter. Source spans are kept on every
node for diagnostics but take no part in equality, so two trees describing
the same program compare equal wherever they came from.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Optional, Tuple, Union, Any, Iterator
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True)
class AstNode(ABC):
    """Base class for all tree nodes."""
    span: SourceSpan = field(compare=False, repr=False)

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for tree visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


def iter_children(node: AstNode) -> Iterator[AstNode]:
    """Yield the direct child nodes of a node in document order."""
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, AstNode):
            yield value
        elif isinstance(value, tuple):
            for item in value:
                if isinstance(item, AstNode):
                    yield item


def walk(node: AstNode) -> Iterator[AstNode]:
    """Depth-first, document-order traversal including the node itself."""
    yield node
    for child in iter_children(node):
        yield from walk(child)


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class Literal(Expression):
    """A literal value (number, string, bool)."""
    value: Union[int, float, str, bool]
    literal_type: TokenType  # NUMBER_LITERAL, STRING_LITERAL, BOOL_LITERAL


@dataclass(frozen=True)
class Variable(Expression):
    """A variable reference."""
    name: str


@dataclass(frozen=True)
class KeywordArgument(AstNode):
    """A named argument in a call (e.g., overwrite=false)."""
    name: str
    value: Expression


@dataclass(frozen=True)
class Call(Expression):
    """A call to a function provided by the dialect's function proxy."""
    name: str
    arguments: Tuple[Expression, ...] = ()
    keyword_arguments: Tuple[KeywordArgument, ...] = ()


@dataclass(frozen=True)
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x and y)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass(frozen=True)
class UnaryOp(Expression):
    """A unary operation (not x, -n)."""
    operator: TokenType
    operand: Expression


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(frozen=True)
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass(frozen=True)
class Block(Statement):
    """A sequence of statements.

    The root of every script is a Block. Nested blocks (branches, loop
    bodies, begin/end) each get their own scope frame at runtime.
    """
    statements: Tuple[Statement, ...] = ()


class AssignMode(Enum):
    """How an assignment binds its name."""
    BIND = "bind"       # x = e / let x = e: innermost scope, shadows outer names
    UPDATE = "update"   # set x = e: rebinds the nearest existing binding


@dataclass(frozen=True)
class Assignment(Statement):
    """A variable assignment."""
    name: str
    value: Expression
    mode: AssignMode = AssignMode.BIND


@dataclass(frozen=True)
class CallStatement(Statement):
    """A call used as a command; its result is discarded."""
    call: Call


@dataclass(frozen=True)
class ConditionalBranch(AstNode):
    """One guarded branch of an if statement (if or elseif)."""
    condition: Expression
    body: Block


@dataclass(frozen=True)
class IfStatement(Statement):
    """An if statement.

    Syntax:
        if condition then
            ...
        elseif condition then
            ...
        else
            ...
        endif
    """
    branches: Tuple[ConditionalBranch, ...]
    else_branch: Optional[Block] = None


@dataclass(frozen=True)
class WhileStatement(Statement):
    """A while loop (while condition do ... endwhile)."""
    condition: Expression
    body: Block


@dataclass(frozen=True)
class ForStatement(Statement):
    """A counted loop (for i = 1 to 10 step 2 do ... endfor)."""
    variable: str
    start: Expression
    stop: Expression
    body: Block
    step: Optional[Expression] = None


@dataclass(frozen=True)
class ReturnStatement(Statement):
    """Ends the script successfully."""
    pass


@dataclass(frozen=True)
class Comment(Statement):
    """A retained comment. Does nothing when executed."""
    text: str

