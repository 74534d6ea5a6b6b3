"""
Build a Matcher from a parsed rule file.

Imported word lists are loaded relative to the rule file, entity statements
become ``add_entity`` calls with acceptors and callbacks resolved by name,
and pattern statements become ``add_pattern`` calls in file order.
"""

import logging
import os
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, NamedTuple, Optional, Tuple

from .tm_ast import EntityDef, ListRef, PatternDef, Root, SpecDef
from .tm_callbacks import merge_matches, trim_tokens
from .tm_errors import RuleFileError
from .tm_matcher import Matcher
from .tm_parser import parse_file
from .tm_vocab import Vocab

logger = logging.getLogger(__name__)

BUILTIN_CALLBACKS: Dict[str, Callable] = {"merge": merge_matches}


class WordList(NamedTuple):
    words: FrozenSet[str]
    ignore_case: bool


def load_word_list(path: str, ignore_case: bool = False) -> FrozenSet[str]:
    """
    Load a word list, one entry per line.

    Blank lines and lines starting with '#' are skipped. With ``ignore_case``
    every entry is lowercased.
    """
    words = set()
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                word = line.strip()
                if not word or word.startswith("#"):
                    continue
                if ignore_case:
                    word = word.lower()
                if word in words:
                    logger.warning("Duplicate entry %r in %s", word, path)
                words.add(word)
    except OSError as e:
        raise RuleFileError(f"Failed to load word list {path}: {e}") from e

    logger.debug("Loaded %s entries from %s", len(words), path)
    return frozenset(words)


def _resolve_path(path: str, rules_file_path: Optional[str]) -> str:
    if rules_file_path and not os.path.isabs(path):
        return os.path.join(os.path.dirname(rules_file_path), path)
    return path


def _predicate(op: str, value: Any) -> Callable[[Any], bool]:
    if op == "=":
        return lambda v: v == value
    if op == "!=":
        return lambda v: v != value
    return lambda v: v in value


def _case_folded(words: FrozenSet[str]) -> Callable[[Any], bool]:
    return lambda v: isinstance(v, str) and v.lower() in words


class RuleLoader:
    """Turns a Root into registrations on a Matcher."""

    def __init__(
        self,
        root: Root,
        acceptors: Optional[Mapping[str, Callable]] = None,
        callbacks: Optional[Mapping[str, Callable]] = None,
    ):
        self.root = root
        self.acceptors = dict(acceptors or {})
        self.callbacks = dict(BUILTIN_CALLBACKS)
        self.callbacks.update(callbacks or {})
        self.word_lists: Dict[str, WordList] = {}

    def load(self, matcher: Matcher) -> Matcher:
        for imp in self.root.imports:
            path = _resolve_path(imp.path, self.root.rules_file_path)
            ignore_case = "ignore-case" in imp.flags
            self.word_lists[imp.alias] = WordList(load_word_list(path, ignore_case), ignore_case)

        for entity_def in self.root.entities:
            self._add_entity(matcher, entity_def)
        for pattern_def in self.root.patterns:
            self._add_pattern(matcher, pattern_def)

        logger.info(
            "Loaded %s entities and %s patterns from %s",
            len(matcher.entities),
            len(matcher),
            self.root.rules_file_path or "<string>",
        )
        return matcher

    def _add_entity(self, matcher: Matcher, entity_def: EntityDef):
        attrs = dict(entity_def.attrs)
        acceptor = None
        on_match = None

        acceptor_name = attrs.pop("acceptor", None)
        if acceptor_name is not None:
            acceptor = self._resolve_acceptor(entity_def.entity_id, str(acceptor_name), attrs)
        attrs.pop("trim_list", None)

        callback_name = attrs.pop("on_match", None)
        if callback_name is not None:
            on_match = self.callbacks.get(str(callback_name))
            if on_match is None:
                raise RuleFileError(
                    f"Unknown on_match callback {callback_name!r} for entity {entity_def.entity_id!r}"
                )

        matcher.add_entity(entity_def.entity_id, attrs=attrs, acceptor=acceptor, on_match=on_match)

    def _resolve_acceptor(self, entity_id: str, name: str, attrs: Dict[str, Any]) -> Callable:
        if name in self.acceptors:
            return self.acceptors[name]
        if name == "trim":
            alias = attrs.get("trim_list")
            if alias not in self.word_lists:
                raise RuleFileError(
                    f"Acceptor 'trim' for entity {entity_id!r} needs trim_list naming an imported list"
                )
            word_list = self.word_lists[alias]
            return trim_tokens(word_list.words, attr="lower" if word_list.ignore_case else "text")
        raise RuleFileError(f"Unknown acceptor {name!r} for entity {entity_id!r}")

    def _add_pattern(self, matcher: Matcher, pattern_def: PatternDef):
        specs = [self._spec_dict(spec) for spec in pattern_def.specs]
        matcher.add_pattern(pattern_def.entity_id, specs, label=pattern_def.label)

    def _spec_dict(self, spec: SpecDef) -> Dict[str, Any]:
        grouped: Dict[str, List[Tuple[str, Any]]] = {}
        for item in spec.items:
            if item.attr.upper() == "OP":
                raise RuleFileError("'op' is reserved; write quantifiers as a suffix, e.g. [lower=\"a\"]+")
            grouped.setdefault(item.attr, []).append((item.op, self._item_value(item.op, item.value)))

        result: Dict[str, Any] = {}
        for attr, checks in grouped.items():
            if len(checks) == 1 and checks[0][0] in ("=", "in"):
                result[attr] = checks[0][1]
            else:
                # Several checks on one attribute, or a negation: fold into a predicate
                preds = [v if callable(v) else _predicate(op, v) for op, v in checks]
                result[attr] = lambda v, preds=tuple(preds): all(p(v) for p in preds)
        result["op"] = spec.quant
        return result

    def _item_value(self, op: str, value: Any) -> Any:
        if isinstance(value, ListRef):
            word_list = self.word_lists[value.alias]
            if word_list.ignore_case:
                return _case_folded(word_list.words)
            return word_list.words
        if op == "in":
            return frozenset(value)
        return value


def build_matcher(
    root: Root,
    vocab: Optional[Vocab] = None,
    acceptors: Optional[Mapping[str, Callable]] = None,
    callbacks: Optional[Mapping[str, Callable]] = None,
    strict: bool = False,
) -> Matcher:
    """
    Create a Matcher populated from a parsed rule file.

    Args:
        root: Parsed rule file.
        vocab: Vocabulary to share; named flags referenced by the rules must
            already be registered on it.
        acceptors: Acceptor functions by name, for ``acceptor=NAME``.
        callbacks: On-match callbacks by name, for ``on_match=NAME``
            (``merge`` is built in).
        strict: Passed to the Matcher; patterns then require an entity
            statement for their id.
    """
    matcher = Matcher(vocab, strict=strict)
    return RuleLoader(root, acceptors=acceptors, callbacks=callbacks).load(matcher)


def load_matcher(path, **kwargs) -> Matcher:
    """Parse a rule file and build a Matcher from it."""
    return build_matcher(parse_file(path), **kwargs)
