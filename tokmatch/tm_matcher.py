"""
Token pattern matcher.

This module provides the Matcher class: a registry of entities, each owning
one or more token patterns, an optional acceptor and an optional on-match
callback. Patterns are validated and compiled when they are added; a scan
runs every compiled pattern from every start position and reports the
longest match for each (pattern, start) pair.
"""

import logging
from collections import abc
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Set, Tuple

from .tm_ast import (
    OP_NOT,
    OP_ONE,
    OP_OPTIONAL,
    OP_PLUS,
    OP_STAR,
    VALID_OPS,
    Entity,
    Match,
    Pattern,
    TokenSpec,
)
from .tm_attrs import TOKEN_ATTRS, Attr, attr_name, intify_attr, is_flag
from .tm_doc import Doc, Token
from .tm_errors import (
    DuplicateEntityError,
    InvalidMatchError,
    InvalidPatternError,
    UnknownEntityError,
)
from .tm_vocab import Vocab

logger = logging.getLogger(__name__)

IF_EXISTS_MODES = ("update", "ignore", "raise")
OP_KEY = "OP"
SKIPPABLE_OPS = (OP_OPTIONAL, OP_STAR)
COLLECTION_TYPES = (list, tuple, set, frozenset)

TokenTest = Callable[[Token], bool]
Step = Tuple[TokenTest, str]


class CompiledPattern(NamedTuple):
    order: int
    entity_id: str
    label: Optional[str]
    steps: Tuple[Step, ...]


# Module-level helper functions


def make_getter(attr_id: int) -> Callable[[Token], Any]:
    """
    Resolve an attribute id to a token accessor once, at compile time.
    """
    if is_flag(attr_id):
        return lambda tok: tok.lex.check_flag(attr_id)
    if attr_id in TOKEN_ATTRS:
        key = Attr(attr_id).name.lower()
        return lambda tok: tok.annotation(key)
    if attr_id == Attr.LENGTH:
        return lambda tok: tok.lex.length
    name = Attr(attr_id).name.lower()
    return lambda tok: getattr(tok.lex, name)


def make_check(attr_id: int, value: Any) -> TokenTest:
    """Build a single attribute test: predicate, membership or equality."""
    getter = make_getter(attr_id)
    if callable(value):
        return lambda tok: bool(value(getter(tok)))
    if isinstance(value, COLLECTION_TYPES):
        try:
            values = frozenset(value)
        except TypeError as e:
            raise InvalidPatternError(f"Unhashable value in membership set: {e}") from e
        return lambda tok: getter(tok) in values
    return lambda tok: getter(tok) == value


def make_test(checks: Tuple[Tuple[int, Any], ...]) -> TokenTest:
    """Conjunction of all checks of a specifier; an empty specifier matches anything."""
    tests = tuple(make_check(attr_id, value) for attr_id, value in checks)
    if not tests:
        return lambda tok: True
    if len(tests) == 1:
        return tests[0]
    return lambda tok: all(test(tok) for test in tests)


def validate_value(attr_id: int, value: Any, vocab: Vocab):
    """Reject values that can never equal the attribute's type."""
    if callable(value):
        return
    items = value if isinstance(value, COLLECTION_TYPES) else (value,)
    if is_flag(attr_id):
        expected: Tuple[type, ...] = (bool,)
    elif attr_id == Attr.LENGTH:
        expected = (int,)
    else:
        expected = (str,)
    for item in items:
        if not isinstance(item, expected) or (expected == (int,) and isinstance(item, bool)):
            raise InvalidPatternError(
                f"Attribute '{attr_name(attr_id, vocab)}' expects "
                f"{expected[0].__name__} values, got {item!r}"
            )


def closure(steps: Tuple[Step, ...], states: Set[int]) -> Set[int]:
    """Add the states reachable by skipping optional and starred steps."""
    final = len(steps)
    closed = set(states)
    stack = list(states)
    while stack:
        state = stack.pop()
        if state < final and steps[state][1] in SKIPPABLE_OPS and state + 1 not in closed:
            closed.add(state + 1)
            stack.append(state + 1)
    return closed


def advance(steps: Tuple[Step, ...], states: Set[int], token: Token) -> Set[int]:
    """Consume one token in every live thread."""
    final = len(steps)
    next_states = set()
    for state in states:
        if state == final:
            continue
        test, op = steps[state]
        matched = test(token)
        if op == OP_NOT:
            if not matched:
                next_states.add(state + 1)
        elif matched:
            next_states.add(state if op == OP_STAR else state + 1)
    return closure(steps, next_states)


def longest_end(steps: Tuple[Step, ...], tokens: List[Token], start: int) -> Optional[int]:
    """
    Run one pattern from ``start`` and return the furthest accepting end,
    or None if the pattern never completes.
    """
    final = len(steps)
    states = closure(steps, {0})
    best = start if final in states else None
    pos = start
    n_tokens = len(tokens)
    while pos < n_tokens and states - {final}:
        states = advance(steps, states, tokens[pos])
        pos += 1
        if final in states:
            best = pos
    return best


class Matcher:
    """
    Rule-based token matcher.

    Holds a registry of entities and their patterns, compiles patterns as they
    are added, and scans documents for matches. Matches are reported as
    ``(entity_id, label, start, end)`` tuples in order of start offset, then
    pattern registration order. Overlapping matches are all reported.
    """

    def __init__(self, vocab: Optional[Vocab] = None, strict: bool = False):
        self.vocab = vocab if vocab is not None else Vocab()
        self.strict = strict
        self._entities: Dict[str, Entity] = {}
        self._compiled: List[CompiledPattern] = []

    # === Registry ===

    def add_entity(
        self,
        entity_id: str,
        attrs: Optional[Mapping] = None,
        if_exists: str = "update",
        acceptor: Optional[Callable] = None,
        on_match: Optional[Callable] = None,
    ) -> Entity:
        """
        Register an entity, or update an existing one.

        Args:
            entity_id: Unique entity identifier.
            attrs: Arbitrary entity attributes (label, metadata, ...).
            if_exists: "update" overwrites attributes and replaces any acceptor
                or callback given; "ignore" keeps the existing entity; "raise"
                raises DuplicateEntityError.
            acceptor: ``acceptor(doc, entity_id, label, start, end)`` may
                reject (falsy) or rewrite (4-tuple or 4-item list) each raw
                match. A ``None`` field keeps the original value, so a
                rewrite cannot clear an existing label back to None.
            on_match: ``on_match(matcher, doc, i, matches)`` called for each
                accepted match of this entity.

        Returns:
            The registered Entity.
        """
        if not isinstance(entity_id, str) or not entity_id:
            raise InvalidPatternError(f"Entity id must be a non-empty string, got {entity_id!r}")
        if if_exists not in IF_EXISTS_MODES:
            raise ValueError(f"if_exists must be one of {IF_EXISTS_MODES}, got {if_exists!r}")
        if attrs is not None and not isinstance(attrs, Mapping):
            raise TypeError(f"Entity attributes must be a mapping, got {type(attrs).__name__}")
        for name, func in (("acceptor", acceptor), ("on_match", on_match)):
            if func is not None and not callable(func):
                raise TypeError(f"{name} must be callable, got {type(func).__name__}")

        entity = self._entities.get(entity_id)
        if entity is None:
            entity = Entity(
                entity_id=entity_id,
                attrs=dict(attrs or {}),
                acceptor=acceptor,
                on_match=on_match,
            )
            self._entities[entity_id] = entity
            logger.debug("Registered entity %s", entity_id)
            return entity

        if if_exists == "raise":
            raise DuplicateEntityError(entity_id)
        if if_exists == "ignore":
            return entity

        if attrs is not None:
            entity.attrs = dict(attrs)
        if acceptor is not None:
            entity.acceptor = acceptor
        if on_match is not None:
            entity.on_match = on_match
        logger.debug("Updated entity %s", entity_id)
        return entity

    def add_pattern(self, entity_id: str, token_specs: Iterable[Mapping], label: Optional[str] = None) -> Pattern:
        """
        Append a pattern to an entity, creating the entity if needed.

        Each token specifier maps attribute names (or ``Attr`` members, or flag
        handles) to an expected value, a predicate, or a collection of allowed
        values. The optional "op" key sets the quantifier: "!", "?", "*", "+"
        or "1" (the default).

        Raises:
            InvalidPatternError: for malformed specifiers, quantifiers or labels.
            UnknownAttributeError: for attributes or flags that do not exist.
            UnknownEntityError: in strict mode, for entities not yet added.
        """
        if label is not None and not isinstance(label, str):
            raise InvalidPatternError(f"Pattern label must be a string, got {label!r}")
        if isinstance(token_specs, (str, bytes, Mapping)) or not isinstance(token_specs, abc.Iterable):
            raise InvalidPatternError("A pattern must be a sequence of token specifiers")
        specs = tuple(self._parse_spec(spec) for spec in token_specs)
        if not specs:
            raise InvalidPatternError(f"Empty pattern for entity {entity_id!r}")

        if entity_id not in self._entities:
            if self.strict:
                raise UnknownEntityError(entity_id)
            self.add_entity(entity_id)

        pattern = Pattern(entity_id=entity_id, specs=specs, label=label)
        self._entities[entity_id].patterns.append(pattern)
        self._compiled.append(
            CompiledPattern(
                order=len(self._compiled),
                entity_id=entity_id,
                label=label,
                steps=self._compile(specs),
            )
        )
        logger.debug(
            "Added pattern #%s for %s (%s specifiers)", len(self._compiled) - 1, entity_id, len(specs)
        )
        return pattern

    def add_flag(self, predicate: Callable[[str], bool], name: Optional[str] = None) -> int:
        """Register a boolean flag on the shared vocabulary; returns its handle."""
        if name is not None and name.upper() == OP_KEY:
            raise ValueError("'op' is reserved for quantifiers")
        return self.vocab.add_flag(predicate, name=name)

    def has_entity(self, entity_id: str) -> bool:
        return entity_id in self._entities

    def __contains__(self, entity_id: str) -> bool:
        return self.has_entity(entity_id)

    def get_entity(self, entity_id: str) -> Entity:
        try:
            return self._entities[entity_id]
        except KeyError:
            raise UnknownEntityError(entity_id) from None

    @property
    def entities(self) -> List[str]:
        return list(self._entities)

    def __len__(self) -> int:
        return len(self._compiled)

    # === Compilation ===

    def _parse_spec(self, spec: Mapping) -> TokenSpec:
        if not isinstance(spec, Mapping):
            raise InvalidPatternError(f"Token specifier must be a mapping, got {spec!r}")
        op = OP_ONE
        checks = []
        for key, value in spec.items():
            if isinstance(key, str) and key.strip().upper() == OP_KEY:
                if not isinstance(value, str) or value not in VALID_OPS:
                    raise InvalidPatternError(f"Invalid quantifier {value!r}; expected one of {VALID_OPS}")
                op = value
                continue
            attr_id = intify_attr(key, self.vocab)
            validate_value(attr_id, value, self.vocab)
            checks.append((attr_id, value))
        return TokenSpec(checks=tuple(checks), op=op)

    @staticmethod
    def _compile(specs: Tuple[TokenSpec, ...]) -> Tuple[Step, ...]:
        steps: List[Step] = []
        for spec in specs:
            test = make_test(spec.checks)
            if spec.op == OP_PLUS:
                # x+ is x followed by x*
                steps.append((test, OP_ONE))
                steps.append((test, OP_STAR))
            else:
                steps.append((test, spec.op))
        return tuple(steps)

    # === Scanning ===

    def _scan(self, doc: Doc, progress_callback: Optional[Callable[[int, int], None]] = None) -> List[Match]:
        """Raw matches, before acceptors, in (start, registration) order."""
        tokens = list(doc)
        total = len(tokens)
        raw: List[Match] = []
        seen: Set[Match] = set()
        for start in range(total):
            for compiled in self._compiled:
                end = longest_end(compiled.steps, tokens, start)
                if end is None or end == start:
                    continue
                match = Match(compiled.entity_id, compiled.label, start, end)
                if match not in seen:
                    seen.add(match)
                    raw.append(match)
            if progress_callback:
                progress_callback(start + 1, total)
        return raw

    def _accept(self, doc: Doc, match: Match) -> Optional[Match]:
        entity = self._entities[match.entity_id]
        if entity.acceptor is None:
            return match
        result = entity.acceptor(doc, *match)
        if not result:
            return None
        if not isinstance(result, (tuple, list)):
            return match
        if len(result) != 4:
            raise InvalidMatchError(
                f"Acceptor for {match.entity_id!r} returned {len(result)} fields, expected 4"
            )
        adjusted = Match(*(orig if new is None else new for new, orig in zip(result, match)))
        if not 0 <= adjusted.start <= adjusted.end <= len(doc):
            raise InvalidMatchError(
                f"Acceptor for {match.entity_id!r} returned span "
                f"[{adjusted.start}:{adjusted.end}] outside doc of length {len(doc)}"
            )
        return adjusted

    def _dispatch(self, doc: Doc, matches: List[Match]):
        """Invoke on-match callbacks, grouped by entity, each group in list order."""
        groups: Dict[str, List[int]] = {}
        for i, match in enumerate(matches):
            groups.setdefault(match.entity_id, []).append(i)
        for entity_id, indices in groups.items():
            entity = self._entities.get(entity_id)
            if entity is None or entity.on_match is None:
                continue
            for i in indices:
                entity.on_match(self, doc, i, matches)

    def match(self, doc: Doc, progress_callback: Optional[Callable[[int, int], None]] = None) -> List[Match]:
        """
        Scan a document and return accepted matches.

        Args:
            doc: The token sequence to scan.
            progress_callback: Optional ``callback(position, total)`` reported
                after each start position.

        Returns:
            Accepted matches ordered by start offset, then pattern registration
            order. Exceptions from acceptors and callbacks propagate.
        """
        raw = self._scan(doc, progress_callback)
        accepted = []
        seen: Set[Match] = set()
        for match in raw:
            result = self._accept(doc, match)
            # Acceptors can rewrite two raw matches into the same span
            if result is not None and result not in seen:
                seen.add(result)
                accepted.append(result)
        logger.debug("Scan of %s tokens: %s raw, %s accepted", len(doc), len(raw), len(accepted))
        self._dispatch(doc, accepted)
        return accepted

    def __call__(self, doc: Doc) -> List[Match]:
        return self.match(doc)

    def pipe(self, docs: Iterable[Doc]) -> Iterator[Tuple[Doc, List[Match]]]:
        """Match a stream of documents lazily."""
        for doc in docs:
            yield doc, self.match(doc)
