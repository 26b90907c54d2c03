"""
Function proxy: the host side of a dialect.

The engine never touches the file system or the user directly. Every side
effect goes through a `FunctionProxy`, whose handler table must cover the
dialect's catalog exactly. Handlers receive the run's context and the bound
arguments as plain Python keyword arguments, and return either a plain value
or a `PromptRequest` when the user has to answer first.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Tuple, Union

from ..errors import CatalogError, ScriptAborted
from .catalog import FunctionCatalog, FunctionSpec
from .values import Value, bool_val, string_val

logger = logging.getLogger(__name__)


class FunctionFailure(Exception):
    """Raised by a handler when its host operation fails."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PromptKind(Enum):
    """Kinds of question a handler can put to the user."""
    CONFIRM = "confirm"     # response: bool
    CHOICE = "choice"       # response: one of the choices
    TEXT = "text"           # response: str


class _AbortResponse:
    """Response that cancels the run instead of answering a prompt."""

    def __repr__(self) -> str:
        return "ABORT"


ABORT = _AbortResponse()


@dataclass(frozen=True)
class PromptRequest:
    """A question the run is waiting on."""
    function: str
    kind: PromptKind
    message: str
    choices: Tuple[str, ...] = ()

    def accept(self, response: Any) -> Value:
        """
        Validate a host response and convert it to the call's value.

        Raises:
            ValueError: If the response does not answer this prompt
        """
        if self.kind == PromptKind.CONFIRM:
            if not isinstance(response, bool):
                raise ValueError(f"{self.function}() expects a yes/no answer, got {response!r}")
            return bool_val(response)
        if not isinstance(response, str):
            raise ValueError(f"{self.function}() expects text, got {response!r}")
        if self.kind == PromptKind.CHOICE and response not in self.choices:
            raise ValueError(
                f"{self.function}() expects one of {list(self.choices)}, got {response!r}"
            )
        return string_val(response)


class CancellationToken:
    """
    Host-side abort signal. Safe to set from any thread.

    The engine checks it at statement boundaries and before loop guards.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason = "cancelled by user"

    def cancel(self, reason: str = "cancelled by user") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScriptAborted(self.reason)


Handler = Callable[..., Union[Any, PromptRequest]]


class FunctionProxy(ABC):
    """
    Base class for a dialect's host functions.

    Subclasses return their handler table from `handlers()`. The table is
    checked against the catalog once, at construction: a missing or an
    extra name raises CatalogError.
    """

    def __init__(self, catalog: FunctionCatalog):
        self.catalog = catalog
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        declared = self.handlers()
        table = {name.casefold(): handler for name, handler in declared.items()}

        expected = {name.casefold(): name for name in catalog.names()}
        missing = sorted(expected[k] for k in expected.keys() - table.keys())
        extra = sorted(name for name in declared if name.casefold() not in expected)
        if missing or extra:
            problems = []
            if missing:
                problems.append(f"no handler for {', '.join(missing)}")
            if extra:
                problems.append(f"handlers not in catalog: {', '.join(extra)}")
            raise CatalogError(f"{type(self).__name__}: {'; '.join(problems)}")
        self._handlers: Dict[str, Handler] = table

    @abstractmethod
    def handlers(self) -> Mapping[str, Handler]:
        """Return the mapping of function name to handler."""

    def invoke(self, spec: FunctionSpec, context, arguments: Mapping[str, Value]):
        """
        Call the handler for a bound call.

        Returns the handler's raw result or a PromptRequest. Handler
        failures propagate as FunctionFailure.
        """
        handler = self._handlers[spec.name.casefold()]
        kwargs = {name: value.data for name, value in arguments.items()}
        self.calls.append((spec.name, kwargs))
        logger.debug("invoke %s(%s)", spec.name,
                     ", ".join(f"{k}={v!r}" for k, v in kwargs.items()))
        return handler(context, **kwargs)

    def call_count(self, name: str) -> int:
        """Number of invocations of one function."""
        folded = name.casefold()
        return sum(1 for called, _ in self.calls if called.casefold() == folded)
