"""
tokmatch - rule-based token pattern matching.

- tm_attrs: token attribute identifiers
- tm_vocab: lexeme cache and runtime flag registry
- tm_doc: Doc, Token, Span and the regex tokenizer
- tm_ast: patterns, entities, matches and rule-file nodes
- tm_matcher: the Matcher
- tm_callbacks: ready-made acceptors and on-match callbacks
- tm_overlap: opt-in overlap filtering
- tm_parser / tm_transformer / tm_loader: the rule-file language
"""

from .tm_ast import Entity, Match, Pattern, TokenSpec
from .tm_attrs import FLAG_BASE, Attr
from .tm_callbacks import merge_matches, trim_tokens
from .tm_doc import Doc, Span, Token, Tokenizer
from .tm_errors import (
    DuplicateEntityError,
    InvalidMatchError,
    InvalidPatternError,
    MatcherError,
    RuleFileError,
    UnknownAttributeError,
    UnknownEntityError,
)
from .tm_loader import build_matcher, load_matcher
from .tm_matcher import Matcher
from .tm_overlap import filter_overlaps
from .tm_parser import TM_RULES_VERSION, parse_file, parse_string
from .tm_vocab import Lexeme, Vocab

__version__ = "0.1.0"

__all__ = [
    "Attr",
    "Doc",
    "DuplicateEntityError",
    "Entity",
    "FLAG_BASE",
    "InvalidMatchError",
    "InvalidPatternError",
    "Lexeme",
    "Match",
    "Matcher",
    "MatcherError",
    "Pattern",
    "RuleFileError",
    "Span",
    "TM_RULES_VERSION",
    "Token",
    "TokenSpec",
    "Tokenizer",
    "UnknownAttributeError",
    "UnknownEntityError",
    "Vocab",
    "build_matcher",
    "filter_overlaps",
    "load_matcher",
    "merge_matches",
    "parse_file",
    "parse_string",
    "trim_tokens",
]
