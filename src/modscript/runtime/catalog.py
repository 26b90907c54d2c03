"""
Function catalogs for Mod Script dialects.

A catalog is the closed set of host functions a dialect offers. Every entry
declares its parameters, its return kind, whether it prompts the user, and
what happens when it fails. The failure mode is never implicit: a dialect
file that omits `on_failure` for any function is rejected when loaded.

Dialect files are YAML documents:

    dialect: stateofdecay
    grammar: 2
    truthiness:
      false_strings: ["false", "no"]
    functions:
      Copy:
        params:
          - {name: source, kind: string}
          - {name: destination, kind: string}
          - {name: overwrite, kind: bool, default: true}
        returns: void
        on_failure: fatal
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import yaml

from ..errors import CatalogError, error_arity_mismatch, error_argument_kind
from ..grammar import Grammar, get_grammar
from ..tokens import SourceSpan
from .values import Value, ValueKind, TruthinessRules, VOID, bool_val, number_val, string_val, wrap_value

logger = logging.getLogger(__name__)


class FailureMode(Enum):
    """What a failed host call does to the run."""
    FATAL = "fatal"
    RECOVERABLE = "recoverable"


class ParamKind(Enum):
    """Accepted argument kinds."""
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    ANY = "any"

    def accepts(self, kind: ValueKind) -> bool:
        if kind == ValueKind.VOID:
            return False
        if self == ParamKind.ANY:
            return True
        return self.value == kind.value


@dataclass(frozen=True)
class ParamSpec:
    """One declared parameter of a host function."""
    name: str
    kind: ParamKind = ParamKind.ANY
    default: Optional[Value] = None

    @property
    def required(self) -> bool:
        return self.default is None


@dataclass(frozen=True)
class FunctionSpec:
    """Declared signature and failure classification of a host function."""
    name: str
    params: Tuple[ParamSpec, ...] = ()
    returns: ValueKind = ValueKind.VOID
    failure: FailureMode = FailureMode.FATAL
    prompt: bool = False
    doc: str = ""

    @property
    def signature(self) -> str:
        parts = []
        for p in self.params:
            text = f"{p.name}: {p.kind.value}"
            if p.default is not None:
                text += f" = {p.default.data!r}"
            parts.append(text)
        return f"{self.name}({', '.join(parts)}) -> {self.returns.value}"

    def _param(self, keyword: str) -> Optional[ParamSpec]:
        folded = keyword.casefold()
        for p in self.params:
            if p.name.casefold() == folded:
                return p
        return None

    def match_arguments(self, positional_count: int, keywords: Sequence[str],
                        span: Optional[SourceSpan] = None) -> Tuple[List[ParamSpec], List[ParamSpec]]:
        """
        Resolve call arguments to parameters.

        Returns the parameters matched by the positional arguments and by
        the keyword arguments, in order.

        Raises:
            CallSignatureError: E201 on too many arguments, unknown or
                repeated keywords, or missing required parameters
        """
        if positional_count > len(self.params):
            raise error_arity_mismatch(
                f"{self.name}() takes at most {len(self.params)} argument(s), "
                f"got {positional_count}", span
            )

        positional = list(self.params[:positional_count])
        seen = {p.name for p in positional}
        by_keyword: List[ParamSpec] = []
        for keyword in keywords:
            param = self._param(keyword)
            if param is None:
                raise error_arity_mismatch(
                    f"{self.name}() got an unexpected keyword argument '{keyword}'", span
                )
            if param.name in seen:
                raise error_arity_mismatch(
                    f"{self.name}() got multiple values for argument '{param.name}'", span
                )
            seen.add(param.name)
            by_keyword.append(param)

        missing = [p.name for p in self.params if p.required and p.name not in seen]
        if missing:
            raise error_arity_mismatch(
                f"{self.name}() missing required argument(s): {', '.join(missing)}", span
            )
        return positional, by_keyword

    def bind(self, args: Sequence[Value], kwargs: Sequence[Tuple[str, Value]],
             span: Optional[SourceSpan] = None) -> Dict[str, Value]:
        """
        Bind evaluated arguments to parameter names, filling defaults.

        Raises:
            CallSignatureError: E201 for arity problems, E202 for a value of
                the wrong kind
        """
        positional, by_keyword = self.match_arguments(
            len(args), [name for name, _ in kwargs], span
        )
        bound: Dict[str, Value] = {}
        pairs = list(zip(positional, args)) + list(zip(by_keyword, (v for _, v in kwargs)))
        for param, value in pairs:
            if not param.kind.accepts(value.kind):
                raise error_argument_kind(self.name, param.name, param.kind.value,
                                          value.describe(), span)
            bound[param.name] = value

        result: Dict[str, Value] = {}
        for param in self.params:
            result[param.name] = bound.get(param.name, param.default)
        return result

    def fallback(self) -> Value:
        """Value a recoverable failure evaluates to."""
        if self.returns == ValueKind.STRING:
            return string_val("")
        if self.returns == ValueKind.NUMBER:
            return number_val(0)
        if self.returns == ValueKind.BOOL:
            return bool_val(False)
        return VOID


class FunctionCatalog:
    """
    Closed, case-insensitive mapping of function names to specs.
    """

    def __init__(self, specs: Sequence[FunctionSpec] = ()):
        self._functions: Dict[str, FunctionSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: FunctionSpec) -> None:
        key = spec.name.casefold()
        if key in self._functions:
            raise CatalogError(f"duplicate function '{spec.name}' in catalog")
        self._functions[key] = spec

    def get(self, name: str) -> Optional[FunctionSpec]:
        """Look up a function by name."""
        return self._functions.get(name.casefold())

    def names(self) -> List[str]:
        return [spec.name for spec in self._functions.values()]

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._functions

    def __iter__(self) -> Iterator[FunctionSpec]:
        return iter(self._functions.values())

    def __len__(self) -> int:
        return len(self._functions)


@dataclass(frozen=True)
class DialectDefinition:
    """Everything a dialect file declares."""
    name: str
    grammar: Grammar
    catalog: FunctionCatalog = field(compare=False)
    truthiness: TruthinessRules = field(default_factory=TruthinessRules)
    case_sensitive_names: bool = False
    description: str = ""


def _parse_kind(enum_type, value: Any, where: str):
    try:
        return enum_type(str(value).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        raise CatalogError(f"{where}: invalid value {value!r} (expected one of: {allowed})") from None


def _parse_param(func_name: str, data: Any, source: str) -> ParamSpec:
    where = f"{source}: {func_name}"
    if not isinstance(data, dict) or "name" not in data:
        raise CatalogError(f"{where}: each parameter needs a 'name'")
    name = str(data["name"])
    if not name.isidentifier():
        raise CatalogError(f"{where}: parameter name {name!r} is not an identifier")
    kind = _parse_kind(ParamKind, data.get("kind", "any"), f"{where}.{name}")
    default = None
    if "default" in data:
        default = wrap_value(data["default"])
        if default is None or not kind.accepts(default.kind):
            raise CatalogError(f"{where}.{name}: default {data['default']!r} is not a {kind.value}")
    return ParamSpec(name=name, kind=kind, default=default)


def _parse_function(name: str, data: Any, source: str) -> FunctionSpec:
    where = f"{source}: {name}"
    if not isinstance(data, dict):
        raise CatalogError(f"{where}: expected a mapping")
    if "on_failure" not in data:
        raise CatalogError(f"{where}: missing 'on_failure' (fatal or recoverable)")
    params = tuple(_parse_param(name, p, source) for p in data.get("params") or [])
    seen_default = False
    for p in params:
        if p.default is not None:
            seen_default = True
        elif seen_default:
            raise CatalogError(f"{where}: required parameter '{p.name}' follows a defaulted one")
    return FunctionSpec(
        name=name,
        params=params,
        returns=_parse_kind(ValueKind, data.get("returns", "void"), f"{where}.returns"),
        failure=_parse_kind(FailureMode, data["on_failure"], f"{where}.on_failure"),
        prompt=bool(data.get("prompt", False)),
        doc=str(data.get("doc", "")).strip(),
    )


def parse_dialect_definition(data: Any, source: str = "<mapping>") -> DialectDefinition:
    """Build a DialectDefinition from an already-loaded mapping."""
    if not isinstance(data, dict):
        raise CatalogError(f"{source}: expected a mapping at the root")
    for key in ("dialect", "grammar", "functions"):
        if key not in data:
            raise CatalogError(f"{source}: missing required key '{key}'")

    try:
        grammar = get_grammar(int(data["grammar"]))
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{source}: {exc}") from None

    functions = data["functions"]
    if not isinstance(functions, dict) or not functions:
        raise CatalogError(f"{source}: 'functions' must be a non-empty mapping")

    catalog = FunctionCatalog(
        _parse_function(str(name), spec, source) for name, spec in functions.items()
    )
    return DialectDefinition(
        name=str(data["dialect"]),
        grammar=grammar,
        catalog=catalog,
        truthiness=TruthinessRules.from_mapping(data.get("truthiness")),
        case_sensitive_names=bool(data.get("case_sensitive_names", False)),
        description=str(data.get("description", "")).strip(),
    )


def load_dialect_definition(path: Union[str, Path]) -> DialectDefinition:
    """
    Load a dialect definition from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        CatalogError: If the file is malformed or a function lacks an
            explicit failure classification
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise CatalogError(f"{path}: invalid YAML: {exc}") from exc
    definition = parse_dialect_definition(data, str(path))
    logger.debug("loaded dialect %s (%d functions) from %s",
                 definition.name, len(definition.catalog), path)
    return definition
