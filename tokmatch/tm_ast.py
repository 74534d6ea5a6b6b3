from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Union

# === Quantifiers ===

OP_ONE = "1"
OP_NOT = "!"
OP_OPTIONAL = "?"
OP_STAR = "*"
OP_PLUS = "+"

VALID_OPS = (OP_ONE, OP_NOT, OP_OPTIONAL, OP_STAR, OP_PLUS)


# === Matcher Data Model ===


@dataclass(frozen=True)
class TokenSpec:
    """One position of a pattern: attribute checks plus a quantifier."""

    checks: Tuple[Tuple[int, Any], ...]
    op: str = OP_ONE

    @property
    def is_wildcard(self) -> bool:
        """
        An empty specifier matches any token.
        """
        return not self.checks


@dataclass(frozen=True)
class Pattern:
    """An ordered sequence of token specifiers registered under an entity."""

    entity_id: str
    specs: Tuple[TokenSpec, ...]
    label: Optional[str] = None


Acceptor = Callable[..., Any]
OnMatch = Callable[..., Any]


@dataclass
class Entity:
    """A named group of patterns with shared attributes and extension points."""

    entity_id: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    acceptor: Optional[Acceptor] = None
    on_match: Optional[OnMatch] = None
    patterns: List[Pattern] = field(default_factory=list)


class Match(NamedTuple):
    """A match over token offsets ``[start, end)``."""

    entity_id: str
    label: Optional[str]
    start: int
    end: int

    @property
    def length(self) -> int:
        """
        Number of tokens covered by the match.
        """
        return self.end - self.start


# === Rule File Nodes ===


@dataclass(frozen=True)
class Version:
    """Represents the rule-file version."""

    value: str


@dataclass(frozen=True)
class Import:
    """Represents a word-list import in a rule file."""

    path: str
    alias: str
    flags: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ListRef:
    """Reference to an imported word list, written [[alias]]."""

    alias: str


@dataclass(frozen=True)
class SpecItem:
    """One attribute check inside a bracketed token specifier."""

    attr: str
    op: str  # "=", "!=" or "in"
    value: Union[str, int, bool, Tuple[Any, ...], ListRef]


@dataclass(frozen=True)
class SpecDef:
    """A bracketed token specifier with its quantifier."""

    items: Tuple[SpecItem, ...]
    quant: str = OP_ONE


@dataclass(frozen=True)
class EntityDef:
    """Represents an 'entity' statement."""

    entity_id: str
    attrs: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PatternDef:
    """Represents a pattern statement: ID [as "LABEL"] = spec+."""

    entity_id: str
    specs: Tuple[SpecDef, ...]
    label: Optional[str] = None


@dataclass(frozen=True)
class Root:
    """Represents a parsed rule file."""

    version: Version
    imports: Tuple[Import, ...]
    entities: Tuple[EntityDef, ...]
    patterns: Tuple[PatternDef, ...]
    rules_file_path: Optional[str] = None
