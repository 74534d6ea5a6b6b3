"""
Token attribute identifiers.

Boolean lexical flags occupy the low ids, string and integer valued
attributes follow, and flags registered at runtime through
``Vocab.add_flag`` are numbered from ``FLAG_BASE`` upwards.
"""

from enum import IntEnum
from typing import Any, Union

from .tm_errors import UnknownAttributeError


class Attr(IntEnum):
    """Built-in token attributes addressable from a token specifier."""

    # Boolean lexical flags
    IS_ALPHA = 1
    IS_ASCII = 2
    IS_DIGIT = 3
    IS_LOWER = 4
    IS_UPPER = 5
    IS_TITLE = 6
    IS_PUNCT = 7
    IS_SPACE = 8
    IS_BRACKET = 9
    IS_QUOTE = 10
    LIKE_NUM = 11
    LIKE_URL = 12
    LIKE_EMAIL = 13

    # Lexical values
    ORTH = 100
    LOWER = 101
    NORM = 102
    SHAPE = 103
    PREFIX = 104
    SUFFIX = 105
    LENGTH = 106

    # Per-token annotations supplied by the caller
    POS = 200
    TAG = 201
    LEMMA = 202
    DEP = 203
    ENT_TYPE = 204


FLAG_BASE = 1000

BUILTIN_FLAGS = frozenset(a for a in Attr if a < Attr.ORTH)
LEXICAL_ATTRS = frozenset(a for a in Attr if a < Attr.POS)
TOKEN_ATTRS = frozenset(a for a in Attr if a >= Attr.POS)

ATTR_IDS = frozenset(a.value for a in Attr)
ATTR_ALIASES = {"TEXT": Attr.ORTH}

AttrKey = Union[Attr, int, str]


def is_flag(attr_id: int) -> bool:
    """True for boolean attributes: built-in lexical flags and runtime flags."""
    return attr_id in BUILTIN_FLAGS or attr_id >= FLAG_BASE


def intify_attr(key: AttrKey, vocab: Any = None) -> int:
    """
    Resolve an attribute key to its integer id.

    Args:
        key: An ``Attr`` member, an attribute or flag name (case-insensitive),
            or an integer id / flag handle.
        vocab: Vocabulary consulted for flags registered at runtime.

    Returns:
        The attribute id.

    Raises:
        UnknownAttributeError: if the key names nothing known.
    """
    if isinstance(key, Attr):
        return key
    if isinstance(key, bool):
        raise UnknownAttributeError(key)
    if isinstance(key, int):
        if key in ATTR_IDS:
            return Attr(key)
        if vocab is not None and vocab.has_flag(key):
            return key
        raise UnknownAttributeError(key)
    if isinstance(key, str):
        name = key.strip().upper()
        if name in ATTR_ALIASES:
            return ATTR_ALIASES[name]
        if name in Attr.__members__:
            return Attr[name]
        if vocab is not None:
            handle = vocab.flag_by_name(key.strip())
            if handle is not None:
                return handle
    raise UnknownAttributeError(key)


def attr_name(attr_id: int, vocab: Any = None) -> str:
    """Readable name for an attribute id, used in logs and reprs."""
    if attr_id in ATTR_IDS:
        return Attr(attr_id).name.lower()
    if vocab is not None:
        name = vocab.flag_name(attr_id)
        if name:
            return name
    return f"flag_{attr_id}"
