"""
Grammar versions for Mod Script dialects.

A grammar version fixes the keyword table and the optional language
features a dialect may use. Dialects select a version by number; the
lexer and parser read everything they need from the `Grammar` value.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .tokens import TokenType


_CORE_KEYWORDS: Dict[str, TokenType] = {
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "elseif": TokenType.ELSEIF,
    "else": TokenType.ELSE,
    "endif": TokenType.ENDIF,
    "begin": TokenType.BEGIN,
    "end": TokenType.END,
    "let": TokenType.LET,
    "set": TokenType.SET,
    "return": TokenType.RETURN,
    "and": TokenType.AND,
    "or": TokenType.OR,
    "not": TokenType.NOT,
    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,
}

_LOOP_KEYWORDS: Dict[str, TokenType] = {
    "while": TokenType.WHILE,
    "do": TokenType.DO,
    "endwhile": TokenType.ENDWHILE,
    "for": TokenType.FOR,
    "to": TokenType.TO,
    "step": TokenType.STEP,
    "endfor": TokenType.ENDFOR,
}


@dataclass(frozen=True)
class Grammar:
    """Keyword table and feature flags for one grammar version."""
    version: int
    keywords: Mapping[str, TokenType] = field(default_factory=dict)
    case_insensitive_keywords: bool = True
    loops: bool = False
    keyword_arguments: bool = False
    retain_comments: bool = False

    def keyword(self, lexeme: str) -> Optional[TokenType]:
        """Return the keyword token type for a lexeme, if any."""
        key = lexeme.lower() if self.case_insensitive_keywords else lexeme
        return self.keywords.get(key)

    def with_comments(self) -> "Grammar":
        """Copy of this grammar that keeps comments as tokens."""
        return Grammar(
            version=self.version,
            keywords=self.keywords,
            case_insensitive_keywords=self.case_insensitive_keywords,
            loops=self.loops,
            keyword_arguments=self.keyword_arguments,
            retain_comments=True,
        )


GRAMMAR_V1 = Grammar(
    version=1,
    keywords=MappingProxyType(dict(_CORE_KEYWORDS)),
)

GRAMMAR_V2 = Grammar(
    version=2,
    keywords=MappingProxyType({**_CORE_KEYWORDS, **_LOOP_KEYWORDS}),
    loops=True,
    keyword_arguments=True,
)

GRAMMARS: Mapping[int, Grammar] = MappingProxyType({
    1: GRAMMAR_V1,
    2: GRAMMAR_V2,
})

LATEST_GRAMMAR = GRAMMAR_V2


def get_grammar(version: int) -> Grammar:
    """Look up a grammar by version number."""
    try:
        return GRAMMARS[version]
    except KeyError:
        raise ValueError(
            f"unknown grammar version {version!r} (known: {sorted(GRAMMARS)})"
        ) from None
