"""
Shared fixtures for the Mod Script tests.

`RecordingProxy` is a stub host: it records every call, returns canned
results, and fails on request, so runtime tests never touch the disk.
"""

import pytest

from modscript.checker import compile_script
from modscript.runtime import (
    FunctionFailure,
    FunctionProxy,
    InterpreterContext,
    PromptKind,
    PromptRequest,
    execute,
    parse_dialect_definition,
)


TEST_DIALECT = {
    "dialect": "test",
    "grammar": 2,
    "truthiness": {"false_strings": ["no"]},
    "functions": {
        "FileExists": {
            "params": [{"name": "path", "kind": "string"}],
            "returns": "bool",
            "on_failure": "recoverable",
        },
        "Copy": {
            "params": [
                {"name": "source", "kind": "string"},
                {"name": "destination", "kind": "string"},
                {"name": "overwrite", "kind": "bool", "default": True},
            ],
            "on_failure": "fatal",
        },
        "Probe": {
            "params": [{"name": "value", "kind": "any"}],
            "returns": "number",
            "on_failure": "recoverable",
        },
        "GetName": {
            "returns": "string",
            "on_failure": "fatal",
        },
        "Confirm": {
            "params": [{"name": "message", "kind": "string"}],
            "returns": "bool",
            "prompt": True,
            "on_failure": "fatal",
        },
        "Choose": {
            "params": [
                {"name": "message", "kind": "string"},
                {"name": "options", "kind": "string"},
            ],
            "returns": "string",
            "prompt": True,
            "on_failure": "fatal",
        },
        "Log": {
            "params": [{"name": "message", "kind": "any"}],
            "on_failure": "fatal",
        },
        "Warn": {
            "params": [{"name": "message", "kind": "any"}],
            "on_failure": "recoverable",
        },
        "Fail": {
            "params": [{"name": "message", "kind": "any"}],
            "on_failure": "fatal",
        },
    },
}

DEFAULT_RESULTS = {
    "FileExists": False,
    "Probe": 1,
    "GetName": "player",
}


class RecordingProxy(FunctionProxy):
    """
    Stub proxy over the test catalog.

    Args:
        catalog: Function catalog to serve
        results: Return value per function name; callables are called with
            the call's keyword arguments
        failures: Names of functions that raise FunctionFailure
    """

    def __init__(self, catalog, results=None, failures=()):
        self.results = dict(DEFAULT_RESULTS)
        self.results.update(results or {})
        self.failures = set(failures)
        super().__init__(catalog)

    def handlers(self):
        return {name: self._handler(name) for name in self.catalog.names()}

    def _handler(self, name):
        def handle(ctx, **kwargs):
            if name in self.failures:
                raise FunctionFailure(f"{name} failed")
            if name == "Warn":
                ctx.add_warning(str(kwargs["message"]))
                return None
            if name == "Confirm":
                return PromptRequest("Confirm", PromptKind.CONFIRM, kwargs["message"])
            if name == "Choose":
                return PromptRequest("Choose", PromptKind.CHOICE, kwargs["message"],
                                     tuple(kwargs["options"].split("|")))
            result = self.results.get(name)
            if callable(result):
                return result(**kwargs)
            return result
        return handle

    def logged(self):
        """Messages passed to Log(), in call order."""
        return [kwargs["message"] for name, kwargs in self.calls if name == "Log"]


@pytest.fixture
def definition():
    """Dialect definition for the stub catalog."""
    return parse_dialect_definition(TEST_DIALECT, "<test>")


@pytest.fixture
def catalog(definition):
    return definition.catalog


@pytest.fixture
def make_proxy(catalog):
    """Factory for RecordingProxy instances over the test catalog."""
    def factory(results=None, failures=()):
        return RecordingProxy(catalog, results, failures)
    return factory


@pytest.fixture
def compile_test(definition):
    """Compile source against the test catalog."""
    def compile_(source):
        return compile_script(source, definition.catalog, definition.grammar)
    return compile_


@pytest.fixture
def run_script(definition, compile_test, make_proxy):
    """
    Compile and run a script against a fresh RecordingProxy.

    Returns (result, proxy).
    """
    def run(source, proxy=None, **kwargs):
        script = compile_test(source)
        proxy = proxy if proxy is not None else make_proxy()
        context = InterpreterContext(source_lines=source.splitlines())
        kwargs.setdefault("truthiness", definition.truthiness)
        result = execute(script, context, proxy, **kwargs)
        return result, proxy
    return run
