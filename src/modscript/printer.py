"""
Pretty-printer for Mod Script statement trees.

`format_script` turns a tree back into canonical script text: one statement
per line, four-space indentation, lowercase keywords, and only the
parentheses the operator precedence requires. Parsing the output yields a
tree equal to the input.
"""

from typing import List
from .tokens import TokenType
from .parser import Parser
from .ast import (
    AstVisitor, Expression, Literal, Variable, Call, BinaryOp, UnaryOp,
    Block, Assignment, AssignMode, CallStatement, IfStatement, WhileStatement,
    ForStatement, ReturnStatement, Comment,
)


OPERATOR_TEXT = {
    TokenType.OR: "or",
    TokenType.AND: "and",
    TokenType.NOT: "not",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
}

_UNARY_PRECEDENCE = 6

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\0": "\\0",
}


def quote_string(value: str) -> str:
    """Render a string literal in double quotes with escapes."""
    out = []
    for ch in value:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20:
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _precedence(expr: Expression) -> int:
    if isinstance(expr, BinaryOp):
        return Parser.PRECEDENCE[expr.operator]
    if isinstance(expr, UnaryOp):
        return _UNARY_PRECEDENCE
    return _UNARY_PRECEDENCE + 1


class ScriptPrinter(AstVisitor):
    """Visitor that renders statements into indented lines."""

    def __init__(self, indent: str = "    "):
        self.indent = indent
        self.lines: List[str] = []
        self._depth = 0

    def _emit(self, text: str) -> None:
        self.lines.append(self.indent * self._depth + text)

    def _body(self, block: Block) -> None:
        self._depth += 1
        for statement in block.statements:
            statement.accept(self)
        self._depth -= 1

    # --- statements ---

    def visit_Block(self, node: Block) -> None:
        self._emit("begin")
        self._body(node)
        self._emit("end")

    def visit_Assignment(self, node: Assignment) -> None:
        prefix = "set " if node.mode == AssignMode.UPDATE else ""
        self._emit(f"{prefix}{node.name} = {self.expression(node.value)}")

    def visit_CallStatement(self, node: CallStatement) -> None:
        self._emit(self.expression(node.call))

    def visit_IfStatement(self, node: IfStatement) -> None:
        for index, branch in enumerate(node.branches):
            keyword = "if" if index == 0 else "elseif"
            self._emit(f"{keyword} {self.expression(branch.condition)} then")
            self._body(branch.body)
        if node.else_branch is not None:
            self._emit("else")
            self._body(node.else_branch)
        self._emit("endif")

    def visit_WhileStatement(self, node: WhileStatement) -> None:
        self._emit(f"while {self.expression(node.condition)} do")
        self._body(node.body)
        self._emit("endwhile")

    def visit_ForStatement(self, node: ForStatement) -> None:
        header = (f"for {node.variable} = {self.expression(node.start)}"
                  f" to {self.expression(node.stop)}")
        if node.step is not None:
            header += f" step {self.expression(node.step)}"
        self._emit(header + " do")
        self._body(node.body)
        self._emit("endfor")

    def visit_ReturnStatement(self, node: ReturnStatement) -> None:
        self._emit("return")

    def visit_Comment(self, node: Comment) -> None:
        if "\n" in node.text:
            self._emit(f"/* {node.text} */")
        else:
            self._emit(f"# {node.text}")

    # --- expressions ---

    def expression(self, expr: Expression) -> str:
        """Render an expression with minimal parentheses."""
        if isinstance(expr, Literal):
            if expr.literal_type == TokenType.BOOL_LITERAL:
                return "true" if expr.value else "false"
            if expr.literal_type == TokenType.STRING_LITERAL:
                return quote_string(expr.value)
            return repr(expr.value)
        if isinstance(expr, Variable):
            return expr.name
        if isinstance(expr, Call):
            parts = [self.expression(a) for a in expr.arguments]
            parts.extend(f"{k.name}={self.expression(k.value)}" for k in expr.keyword_arguments)
            return f"{expr.name}({', '.join(parts)})"
        if isinstance(expr, UnaryOp):
            operand = self._wrap(expr.operand, _UNARY_PRECEDENCE)
            if expr.operator == TokenType.NOT:
                return f"not {operand}"
            return f"-{operand}"
        if isinstance(expr, BinaryOp):
            precedence = Parser.PRECEDENCE[expr.operator]
            left = self._wrap(expr.left, precedence)
            # left-associative: an equal-precedence right operand needs parens
            right = self._wrap(expr.right, precedence + 1)
            return f"{left} {OPERATOR_TEXT[expr.operator]} {right}"
        raise TypeError(f"cannot print {type(expr).__name__}")

    def _wrap(self, expr: Expression, minimum: int) -> str:
        text = self.expression(expr)
        if _precedence(expr) < minimum:
            return f"({text})"
        return text


def format_script(script: Block, indent: str = "    ") -> str:
    """Render a parsed script as canonical source text."""
    printer = ScriptPrinter(indent)
    for statement in script.statements:
        statement.accept(printer)
    return "\n".join(printer.lines) + "\n"
