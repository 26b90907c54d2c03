"""
Mod Script dialects.

A dialect is three things: a definition (grammar version, truthiness rules
and function catalog, loaded from YAML), a factory for its function proxy,
and a factory for its interpreter context. Adding a game means supplying
those three; the lexer, parser and engine stay untouched.

Usage:
    from modscript.dialects import get_dialect

    dialect = get_dialect("stateofdecay")
    script = dialect.compile(source)
    result = dialect.execute(script, source_root=mod_dir, target_root=game_dir,
                             prompt_handler=ask_user)
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from ..ast import Block
from ..checker import CheckResult, check, compile_script
from ..config import InterpreterConfig
from ..grammar import Grammar
from ..parser import parse_source
from ..runtime.catalog import DialectDefinition, FunctionCatalog, load_dialect_definition
from ..runtime.context import InterpreterContext
from ..runtime.interpreter import ExecutionResult, Interpreter, ScriptRun, drive
from ..runtime.proxy import CancellationToken, FunctionProxy, PromptRequest

logger = logging.getLogger(__name__)

CATALOG_DIR = Path(__file__).parent / "catalogs"

ProxyFactory = Callable[..., FunctionProxy]
ContextFactory = Callable[[], InterpreterContext]
Finalizer = Callable[[FunctionProxy, InterpreterContext, ExecutionResult], None]


def load_bundled_definition(name: str) -> DialectDefinition:
    """Load one of the dialect files shipped with the package."""
    return load_dialect_definition(CATALOG_DIR / f"{name}.yaml")


@dataclass(frozen=True)
class Dialect:
    """
    A dialect: its definition plus the factories that make a run.

    Every run gets a fresh proxy and a fresh context, so runs of the same
    or different dialects never share mutable state.
    """
    definition: DialectDefinition
    proxy_factory: ProxyFactory
    context_factory: ContextFactory = InterpreterContext
    finalize: Optional[Finalizer] = None

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def grammar(self) -> Grammar:
        return self.definition.grammar

    @property
    def catalog(self) -> FunctionCatalog:
        return self.definition.catalog

    def parse(self, source: str, filename: Optional[str] = None,
              retain_comments: bool = False) -> Block:
        """Parse without binding checks."""
        grammar = self.grammar.with_comments() if retain_comments else self.grammar
        return parse_source(source, grammar, filename)

    def check(self, script: Block, source: Optional[str] = None) -> CheckResult:
        """Run the binding checker against this dialect's catalog."""
        return check(script, self.catalog, self.definition.case_sensitive_names, source)

    def compile(self, source: str, filename: Optional[str] = None) -> Block:
        """
        Parse and check a script for this dialect.

        Raises:
            LexerError, ParserError, CallSignatureError
        """
        return compile_script(source, self.catalog, self.grammar,
                              self.definition.case_sensitive_names, filename)

    def new_context(self, source: Optional[str] = None) -> InterpreterContext:
        context = self.context_factory()
        context.case_sensitive = self.definition.case_sensitive_names
        if source is not None:
            context.source_lines = source.splitlines()
        return context

    def start(self, script: Union[str, Block], *,
              source: Optional[str] = None,
              config: Optional[InterpreterConfig] = None,
              cancel_token: Optional[CancellationToken] = None,
              **options: Any) -> ScriptRun:
        """
        Prepare a resumable run. `options` go to the proxy factory.

        A string is compiled first; compile errors propagate before any
        proxy exists. `source` supplies source lines for diagnostics when
        `script` is already parsed.
        """
        if isinstance(script, str):
            source = script
            script = self.compile(source)
        proxy = self.proxy_factory(self.catalog, **options)
        context = self.new_context(source)
        interpreter = Interpreter(proxy, context, self.definition.truthiness,
                                  config, cancel_token)
        logger.debug("starting %s run", self.name)

        on_finish = None
        if self.finalize is not None:
            def on_finish(result: ExecutionResult) -> None:
                self.finalize(proxy, context, result)
        return interpreter.run(script, on_finish)

    def execute(self, script: Union[str, Block], *,
                source: Optional[str] = None,
                prompt_handler: Optional[Callable[[PromptRequest], Any]] = None,
                config: Optional[InterpreterConfig] = None,
                cancel_token: Optional[CancellationToken] = None,
                **options: Any) -> ExecutionResult:
        """Run a script to completion, answering prompts with `prompt_handler`."""
        run = self.start(script, source=source, config=config,
                         cancel_token=cancel_token, **options)
        return drive(run, prompt_handler)


class DialectRegistry:
    """
    Registry of known dialects, looked up by case-insensitive name.
    """

    def __init__(self):
        self._dialects: Dict[str, Dialect] = {}

    def register(self, dialect: Dialect, replace: bool = False) -> None:
        """Register a dialect."""
        key = dialect.name.casefold()
        if key in self._dialects and not replace:
            raise ValueError(f"dialect '{dialect.name}' is already registered")
        self._dialects[key] = dialect

    def get(self, name: str) -> Dialect:
        """Look up a dialect by name."""
        try:
            return self._dialects[name.casefold()]
        except KeyError:
            raise ValueError(
                f"unknown dialect '{name}' (known: {', '.join(self.names())})"
            ) from None

    def names(self) -> List[str]:
        return sorted(d.name for d in self._dialects.values())

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._dialects

    def __iter__(self) -> Iterator[Dialect]:
        return iter(sorted(self._dialects.values(), key=lambda d: d.name))


_registry: Optional[DialectRegistry] = None
_registry_lock = threading.Lock()


def _build_default_registry() -> DialectRegistry:
    from .stateofdecay import create_dialect as create_stateofdecay
    from .monsterhunterworld import create_dialect as create_monsterhunterworld

    registry = DialectRegistry()
    registry.register(create_stateofdecay())
    registry.register(create_monsterhunterworld())
    return registry


def get_registry() -> DialectRegistry:
    """Get the global dialect registry, building the defaults on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = _build_default_registry()
    return _registry


def get_dialect(name: str) -> Dialect:
    """Look up a registered dialect."""
    return get_registry().get(name)


def register_dialect(dialect: Dialect, replace: bool = False) -> None:
    """Add a dialect to the global registry."""
    get_registry().register(dialect, replace)


__all__ = [
    "CATALOG_DIR",
    "Dialect",
    "DialectDefinition",
    "DialectRegistry",
    "get_dialect",
    "get_registry",
    "load_bundled_definition",
    "register_dialect",
]
