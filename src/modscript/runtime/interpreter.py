"""
Tree-walking interpreter for Mod Script.

Execution is written as a chain of generators. A host call that needs the
user's answer yields a `PromptRequest` all the way up to `ScriptRun`, which
hands it to the caller and later sends the answer back in. Nothing blocks
inside the engine, so one thread can drive many suspended runs.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generator, List, Optional, Union

from .values import (
    Value, ValueKind, TruthinessRules, DEFAULT_TRUTHINESS,
    bool_val, number_val, string_val, wrap_value, format_value,
)
from .catalog import FailureMode, FunctionSpec
from .context import InterpreterContext
from .proxy import ABORT, CancellationToken, FunctionFailure, FunctionProxy, PromptRequest
from ..ast import (
    Statement, Block, Assignment, AssignMode, CallStatement, IfStatement,
    WhileStatement, ForStatement, ReturnStatement, Comment,
    Expression, Literal, Variable, Call, BinaryOp, UnaryOp,
)
from ..config import InterpreterConfig, DEFAULT_CONFIG
from ..errors import (
    Diagnostic, DslError, ScriptAborted,
    runtime_error, error_unknown_function, error_fatal_function,
)
from ..tokens import SourceSpan, TokenType

logger = logging.getLogger(__name__)

# Generator type of every execute/evaluate step: yields prompts, receives answers
Step = Generator[PromptRequest, Any, Any]


class ExecutionStatus(Enum):
    """Terminal status of a run."""
    SUCCESS = "success"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass
class ExecutionResult:
    """Result of running a script."""
    status: ExecutionStatus
    warnings: List[Diagnostic] = field(default_factory=list)
    error: Optional[Diagnostic] = None
    context: Optional[InterpreterContext] = field(default=None, repr=False)
    abort_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == ExecutionStatus.FAILED

    @property
    def aborted(self) -> bool:
        return self.status == ExecutionStatus.ABORTED

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None

    def summary(self) -> str:
        """One-line description for logs and the command line."""
        text = self.status.value
        if self.error is not None:
            text += f" [{self.error.code}] {self.error.message}"
        elif self.abort_reason:
            text += f" ({self.abort_reason})"
        if self.warnings:
            text += f", {len(self.warnings)} warning(s)"
        return text


class _ReturnSignal(Exception):
    """Unwinds the run on a `return` statement."""


class ScriptRun:
    """
    A resumable run of one script.

    Usage:
        run = interpreter.run(script)
        outcome = run.start()
        while isinstance(outcome, PromptRequest):
            outcome = run.resume(ask_user(outcome))
        result = outcome

    `abort()` ends a suspended run with status aborted.
    """

    def __init__(self, interpreter: "Interpreter", script: Block,
                 on_finish: Optional[Callable[[ExecutionResult], None]] = None):
        self.interpreter = interpreter
        self.on_finish = on_finish
        self._steps = interpreter._run(script)
        self._started = False
        self.pending: Optional[PromptRequest] = None
        self.result: Optional[ExecutionResult] = None

    @property
    def finished(self) -> bool:
        return self.result is not None

    def _complete(self, result: ExecutionResult) -> ExecutionResult:
        self.pending = None
        self.result = result
        if self.on_finish is not None:
            self.on_finish(result)
        return result

    def _advance(self, step: Callable[[], PromptRequest]) -> Union[PromptRequest, ExecutionResult]:
        try:
            request = step()
        except StopIteration as stop:
            return self._complete(stop.value)
        self.pending = request
        return request

    def start(self) -> Union[PromptRequest, ExecutionResult]:
        """Run until the first prompt or the end of the script."""
        if self._started:
            raise RuntimeError("run has already been started")
        self._started = True
        return self._advance(lambda: next(self._steps))

    def resume(self, response: Any) -> Union[PromptRequest, ExecutionResult]:
        """Answer the pending prompt and continue. ABORT cancels the run."""
        if self.pending is None:
            raise RuntimeError("run is not waiting for a response")
        return self._advance(lambda: self._steps.send(response))

    def abort(self, reason: str = "cancelled by user") -> ExecutionResult:
        """Cancel the run. A run that already finished keeps its result."""
        if self.result is not None:
            return self.result
        if not self._started:
            self._started = True
            self._steps.close()
            return self._complete(self.interpreter._finish(
                ExecutionStatus.ABORTED, abort_reason=reason
            ))
        return self._advance(lambda: self._steps.throw(ScriptAborted(reason)))

    def fail(self, error: DslError) -> ExecutionResult:
        """End a suspended run as failed with the given error."""
        if self.pending is None:
            raise RuntimeError("run is not waiting for a response")
        return self._advance(lambda: self._steps.throw(error))


class Interpreter:
    """
    Tree-walking interpreter for Mod Script.

    Evaluates nodes by dispatching to type-specific methods. The interpreter
    holds no state of its own beyond the proxy and context it was given.
    """

    def __init__(self, proxy: FunctionProxy, context: InterpreterContext,
                 truthiness: Optional[TruthinessRules] = None,
                 config: Optional[InterpreterConfig] = None,
                 cancel_token: Optional[CancellationToken] = None):
        self.proxy = proxy
        self.context = context
        self.truthiness = truthiness or DEFAULT_TRUTHINESS
        self.config = config or DEFAULT_CONFIG
        self.cancel_token = cancel_token

    def run(self, script: Block,
            on_finish: Optional[Callable[[ExecutionResult], None]] = None) -> ScriptRun:
        """Prepare a resumable run of a parsed script."""
        return ScriptRun(self, script, on_finish)

    def _finish(self, status: ExecutionStatus, error: Optional[Diagnostic] = None,
                abort_reason: Optional[str] = None) -> ExecutionResult:
        result = ExecutionResult(
            status=status,
            warnings=list(self.context.warnings),
            error=error,
            context=self.context,
            abort_reason=abort_reason,
        )
        logger.info("script %s", result.summary())
        return result

    def _run(self, script: Block) -> Step:
        ctx = self.context
        try:
            for stmt in script.statements:
                yield from self._execute_statement(stmt, ctx)
        except _ReturnSignal:
            pass
        except ScriptAborted as e:
            return self._finish(ExecutionStatus.ABORTED, abort_reason=e.reason)
        except DslError as e:
            diag = e.diagnostic
            if diag.source_line is None:
                diag.source_line = ctx.source_line(diag.span)
            return self._finish(ExecutionStatus.FAILED, error=diag)
        return self._finish(ExecutionStatus.SUCCESS)

    def _check_cancelled(self) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()

    def _error(self, code: str, message: str, span: Optional[SourceSpan]) -> DslError:
        return runtime_error(code, message, span, self.context.source_line(span))

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statement(self, stmt: Statement, ctx: InterpreterContext) -> Step:
        """Execute a single statement."""
        self._check_cancelled()
        if isinstance(stmt, Assignment):
            yield from self._execute_assignment(stmt, ctx)
        elif isinstance(stmt, CallStatement):
            yield from self._eval_call(stmt.call, ctx)
        elif isinstance(stmt, IfStatement):
            yield from self._execute_if_statement(stmt, ctx)
        elif isinstance(stmt, WhileStatement):
            yield from self._execute_while(stmt, ctx)
        elif isinstance(stmt, ForStatement):
            yield from self._execute_for(stmt, ctx)
        elif isinstance(stmt, Block):
            yield from self._execute_block(stmt, ctx, "block")
        elif isinstance(stmt, ReturnStatement):
            raise _ReturnSignal()
        elif isinstance(stmt, Comment):
            pass
        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_block(self, block: Block, ctx: InterpreterContext, name: str) -> Step:
        """Execute a block in its own scope frame."""
        with ctx.new_scope(name):
            for stmt in block.statements:
                yield from self._execute_statement(stmt, ctx)

    def _execute_assignment(self, stmt: Assignment, ctx: InterpreterContext) -> Step:
        value = yield from self._evaluate(stmt.value, ctx)
        if stmt.mode == AssignMode.UPDATE:
            if not ctx.update_variable(stmt.name, value):
                raise self._error("E401", f"cannot set undefined variable '{stmt.name}'", stmt.span)
        else:
            ctx.bind_variable(stmt.name, value)

    def _execute_if_statement(self, stmt: IfStatement, ctx: InterpreterContext) -> Step:
        """Run the first branch whose guard holds, else the else branch."""
        for branch in stmt.branches:
            condition = yield from self._evaluate(branch.condition, ctx)
            if self.truthiness.is_truthy(condition):
                yield from self._execute_block(branch.body, ctx, "if-branch")
                return
        if stmt.else_branch is not None:
            yield from self._execute_block(stmt.else_branch, ctx, "else")

    def _count_iteration(self, count: int, span: SourceSpan) -> int:
        count += 1
        if count > self.config.max_loop_iterations:
            raise self._error(
                "E404",
                f"loop exceeded {self.config.max_loop_iterations} iterations",
                span,
            )
        return count

    def _execute_while(self, stmt: WhileStatement, ctx: InterpreterContext) -> Step:
        """Execute a while loop; the guard is re-evaluated every iteration."""
        iterations = 0
        while True:
            self._check_cancelled()
            condition = yield from self._evaluate(stmt.condition, ctx)
            if not self.truthiness.is_truthy(condition):
                break
            iterations = self._count_iteration(iterations, stmt.span)
            yield from self._execute_block(stmt.body, ctx, "while-loop")

    def _execute_for(self, stmt: ForStatement, ctx: InterpreterContext) -> Step:
        """
        Execute a counted loop.

        Bounds and step are evaluated once. The loop variable is bound
        afresh in each iteration's frame, so it is not visible after the
        loop and reassigning it does not change the iteration count.
        """
        first = yield from self._evaluate(stmt.start, ctx)
        last = yield from self._evaluate(stmt.stop, ctx)
        step = number_val(1)
        if stmt.step is not None:
            step = yield from self._evaluate(stmt.step, ctx)
        for label, value in (("start", first), ("end", last), ("step", step)):
            if value.kind != ValueKind.NUMBER:
                raise self._error("E402", f"for loop {label} must be a number, got {value.describe()}",
                                  stmt.span)
        if step.data == 0:
            raise self._error("E407", "for loop step must not be zero", stmt.span)

        current = first.data
        iterations = 0
        while True:
            self._check_cancelled()
            if (step.data > 0 and current > last.data) or (step.data < 0 and current < last.data):
                break
            iterations = self._count_iteration(iterations, stmt.span)
            with ctx.new_scope("for-loop"):
                ctx.bind_variable(stmt.variable, number_val(current))
                for body_stmt in stmt.body.statements:
                    yield from self._execute_statement(body_stmt, ctx)
            current += step.data

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, ctx: InterpreterContext) -> Step:
        """Evaluate an expression to a Value."""
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        if isinstance(expr, Variable):
            return self._eval_variable(expr, ctx)
        if isinstance(expr, BinaryOp):
            return (yield from self._eval_binary_op(expr, ctx))
        if isinstance(expr, UnaryOp):
            return (yield from self._eval_unary_op(expr, ctx))
        if isinstance(expr, Call):
            return (yield from self._eval_call(expr, ctx))
        raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_literal(self, lit: Literal) -> Value:
        if lit.literal_type == TokenType.BOOL_LITERAL:
            return bool_val(lit.value)
        if lit.literal_type == TokenType.STRING_LITERAL:
            return string_val(lit.value)
        return number_val(lit.value)

    def _eval_variable(self, var: Variable, ctx: InterpreterContext) -> Value:
        value = ctx.get_variable(var.name)
        if value is None:
            raise self._error("E401", f"undefined variable '{var.name}'", var.span)
        return value

    def _eval_unary_op(self, op: UnaryOp, ctx: InterpreterContext) -> Step:
        operand = yield from self._evaluate(op.operand, ctx)
        if op.operator == TokenType.NOT:
            return bool_val(not self.truthiness.is_truthy(operand))
        if operand.kind != ValueKind.NUMBER:
            raise self._error("E402", f"cannot negate {operand.describe()}", op.span)
        return number_val(-operand.data)

    def _eval_binary_op(self, op: BinaryOp, ctx: InterpreterContext) -> Step:
        """Evaluate a binary operation."""
        left = yield from self._evaluate(op.left, ctx)

        # Short-circuit for logical operators
        if op.operator == TokenType.AND:
            if not self.truthiness.is_truthy(left):
                return bool_val(False)
            right = yield from self._evaluate(op.right, ctx)
            return bool_val(self.truthiness.is_truthy(right))
        if op.operator == TokenType.OR:
            if self.truthiness.is_truthy(left):
                return bool_val(True)
            right = yield from self._evaluate(op.right, ctx)
            return bool_val(self.truthiness.is_truthy(right))

        right = yield from self._evaluate(op.right, ctx)
        return self.apply_operator(op.operator, left, right, op.span)

    def apply_operator(self, operator: TokenType, left: Value, right: Value,
                       span: Optional[SourceSpan] = None) -> Value:
        """Apply a non-logical binary operator to two values."""
        if operator == TokenType.EQ:
            return bool_val(left.kind == right.kind and left.data == right.data)
        if operator == TokenType.NE:
            return bool_val(not (left.kind == right.kind and left.data == right.data))

        symbol = _SYMBOLS[operator]
        kinds = (left.kind, right.kind)
        if operator == TokenType.PLUS and ValueKind.STRING in kinds and ValueKind.VOID not in kinds:
            return string_val(format_value(left) + format_value(right))
        if ValueKind.VOID in kinds or ValueKind.BOOL in kinds:
            raise self._error("E402", f"unsupported operands for {symbol}: "
                              f"{left.describe()} and {right.describe()}", span)

        if operator == TokenType.PLUS:
            return number_val(left.data + right.data)

        if operator in (TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE):
            if left.kind != right.kind:
                raise self._error("E402", f"cannot compare {left.describe()} with "
                                  f"{right.describe()}", span)
            return bool_val(_COMPARISONS[operator](left.data, right.data))

        if left.kind != ValueKind.NUMBER or right.kind != ValueKind.NUMBER:
            raise self._error("E402", f"unsupported operands for {symbol}: "
                              f"{left.describe()} and {right.describe()}", span)
        if operator == TokenType.MINUS:
            return number_val(left.data - right.data)
        if operator == TokenType.STAR:
            return number_val(left.data * right.data)
        if right.data == 0:
            raise self._error("E403", "division by zero", span)
        if operator == TokenType.SLASH:
            return number_val(left.data / right.data)
        return number_val(left.data % right.data)

    def _eval_call(self, call: Call, ctx: InterpreterContext) -> Step:
        """
        Evaluate a host function call.

        Arguments are evaluated left to right, then bound and checked
        against the catalog before the proxy sees them.
        """
        spec = self.proxy.catalog.get(call.name)
        if spec is None:
            raise error_unknown_function(call.name, call.span, ctx.source_line(call.span))

        args: List[Value] = []
        for arg in call.arguments:
            args.append((yield from self._evaluate(arg, ctx)))
        kwargs = []
        for kw in call.keyword_arguments:
            kwargs.append((kw.name, (yield from self._evaluate(kw.value, ctx))))
        bound = spec.bind(args, kwargs, call.span)

        ctx.invocations += 1
        ctx.call_span = call.span
        try:
            raw = self.proxy.invoke(spec, ctx, bound)
        except FunctionFailure as failure:
            return self._handle_failure(spec, failure, call, ctx)
        finally:
            ctx.call_span = None

        if isinstance(raw, PromptRequest):
            response = yield raw
            if response is ABORT:
                raise ScriptAborted()
            self._check_cancelled()
            try:
                value = raw.accept(response)
            except ValueError as e:
                raise self._error("E405", str(e), call.span) from None
        else:
            value = wrap_value(raw)

        if value is None or value.kind != spec.returns:
            found = "an unsupported value" if value is None else value.describe()
            raise self._error(
                "E406", f"{spec.name}() should return {spec.returns.value}, returned {found}",
                call.span,
            )
        return value

    def _handle_failure(self, spec: FunctionSpec, failure: FunctionFailure, call: Call,
                        ctx: InterpreterContext) -> Value:
        if spec.failure == FailureMode.FATAL:
            logger.error("%s() failed: %s", spec.name, failure.message)
            raise error_fatal_function(spec.name, failure.message, call.span,
                                       ctx.source_line(call.span))
        logger.warning("%s() failed, continuing: %s", spec.name, failure.message)
        ctx.add_warning(f"{spec.name}(): {failure.message}", call.span, code="W501")
        return spec.fallback()


_SYMBOLS = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
}

_COMPARISONS = {
    TokenType.LT: lambda a, b: a < b,
    TokenType.GT: lambda a, b: a > b,
    TokenType.LE: lambda a, b: a <= b,
    TokenType.GE: lambda a, b: a >= b,
}


def drive(run: ScriptRun,
          prompt_handler: Optional[Callable[[PromptRequest], Any]] = None) -> ExecutionResult:
    """
    Start a run and answer its prompts until it finishes.

    `prompt_handler` may return ABORT. A prompt with no handler fails the
    run with E405.
    """
    outcome = run.start()
    while isinstance(outcome, PromptRequest):
        if prompt_handler is None:
            return run.fail(runtime_error(
                "E405", f"{outcome.function}() needs an answer but no prompt handler is set",
                None,
            ))
        outcome = run.resume(prompt_handler(outcome))
    return outcome


def execute(
    script: Block,
    context: InterpreterContext,
    proxy: FunctionProxy,
    *,
    prompt_handler: Optional[Callable[[PromptRequest], Any]] = None,
    truthiness: Optional[TruthinessRules] = None,
    config: Optional[InterpreterConfig] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> ExecutionResult:
    """
    Run a script to completion.

    This is a convenience wrapper around Interpreter.run() and drive().
    """
    run = Interpreter(proxy, context, truthiness, config, cancel_token).run(script)
    return drive(run, prompt_handler)
