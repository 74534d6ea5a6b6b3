"""
Vocabulary: lexeme cache and runtime flag registry.

A ``Lexeme`` holds the context-free attributes of one string. Lexemes are
computed once per distinct string and shared by every token with that text.
Flags registered with ``Vocab.add_flag`` are evaluated lazily per lexeme and
cached, so a flag check during a scan is a dictionary lookup.
"""

import logging
import re
import unicodedata
from typing import Callable, Dict, Iterator, Optional

from .tm_attrs import FLAG_BASE, Attr

logger = logging.getLogger(__name__)

# Pre-compiled patterns for lexical attributes
RE_URL = re.compile(
    r"^(?:(?:https?|ftp)://|www\.)[^\s/$.?#].[^\s]*$|^[a-z0-9.\-]+\.(?:com|org|net|edu|gov|io)(?:/\S*)?$",
    re.IGNORECASE,
)
RE_EMAIL = re.compile(r"^[\w.+\-]+@[\w\-]+\.[\w.\-]+$")
RE_NUMBER = re.compile(r"^[+\-]?(?:\d+(?:[,.]\d+)*|\d*[.,]\d+|\d+/\d+)$")

NUMBER_WORDS = frozenset(
    (
        "zero one two three four five six seven eight nine ten eleven twelve "
        "thirteen fourteen fifteen sixteen seventeen eighteen nineteen twenty "
        "thirty forty fifty sixty seventy eighty ninety hundred thousand "
        "million billion trillion"
    ).split()
)
BRACKETS = frozenset("()[]{}<>")
QUOTES = frozenset("\"'`‘’“”«»")

FlagGetter = Callable[[str], bool]


def word_shape(text: str) -> str:
    """Orthographic shape: ``Xxxxx``, ``dd``, runs longer than four truncated."""
    shape = []
    last = ""
    run = 0
    for char in text:
        if char.isalpha():
            cls = "X" if char.isupper() else "x"
        elif char.isdigit():
            cls = "d"
        else:
            cls = char
        if cls == last:
            run += 1
        else:
            run = 0
            last = cls
        if run < 4:
            shape.append(cls)
    return "".join(shape)


def is_punct(text: str) -> bool:
    return bool(text) and all(unicodedata.category(c).startswith("P") for c in text)


def like_num(text: str) -> bool:
    if RE_NUMBER.match(text):
        return True
    return text.lower() in NUMBER_WORDS


class Lexeme:
    """Context-free attributes of a single string."""

    __slots__ = ("vocab", "orth", "lower", "norm", "shape", "prefix", "suffix", "_flags")

    def __init__(self, vocab: "Vocab", orth: str):
        self.vocab = vocab
        self.orth = orth
        self.lower = orth.lower()
        self.norm = self.lower
        self.shape = word_shape(orth)
        self.prefix = orth[:1]
        self.suffix = orth[-3:]
        self._flags: Dict[int, bool] = {}

    @property
    def length(self) -> int:
        return len(self.orth)

    def check_flag(self, flag_id: int) -> bool:
        """Evaluate a built-in or registered flag, caching the result."""
        value = self._flags.get(flag_id)
        if value is None:
            value = bool(self.vocab.flag_getter(flag_id)(self.orth))
            self._flags[flag_id] = value
        return value

    def __repr__(self):
        return f"Lexeme({self.orth!r})"


BUILTIN_FLAG_GETTERS: Dict[int, FlagGetter] = {
    Attr.IS_ALPHA: str.isalpha,
    Attr.IS_ASCII: lambda s: all(ord(c) < 128 for c in s),
    Attr.IS_DIGIT: str.isdigit,
    Attr.IS_LOWER: str.islower,
    Attr.IS_UPPER: str.isupper,
    Attr.IS_TITLE: str.istitle,
    Attr.IS_PUNCT: is_punct,
    Attr.IS_SPACE: lambda s: bool(s) and s.isspace(),
    Attr.IS_BRACKET: lambda s: s in BRACKETS,
    Attr.IS_QUOTE: lambda s: bool(s) and all(c in QUOTES for c in s),
    Attr.LIKE_NUM: like_num,
    Attr.LIKE_URL: lambda s: bool(RE_URL.match(s)),
    Attr.LIKE_EMAIL: lambda s: bool(RE_EMAIL.match(s)),
}


class Vocab:
    """
    Shared store of lexemes and boolean flags.

    Flags added at runtime extend the attribute space of every matcher and
    document that uses this vocabulary.
    """

    def __init__(self):
        self._lexemes: Dict[str, Lexeme] = {}
        self._flag_getters: Dict[int, FlagGetter] = dict(BUILTIN_FLAG_GETTERS)
        self._flag_names: Dict[str, int] = {}
        self._next_flag = FLAG_BASE

    def __getitem__(self, orth: str) -> Lexeme:
        lexeme = self._lexemes.get(orth)
        if lexeme is None:
            lexeme = Lexeme(self, orth)
            self._lexemes[orth] = lexeme
        return lexeme

    def __contains__(self, orth: str) -> bool:
        return orth in self._lexemes

    def __len__(self) -> int:
        return len(self._lexemes)

    def __iter__(self) -> Iterator[Lexeme]:
        return iter(self._lexemes.values())

    def add_flag(self, predicate: FlagGetter, name: Optional[str] = None) -> int:
        """
        Register a boolean predicate over token strings.

        Args:
            predicate: Called with a token's text; its truthiness is the flag value.
            name: Optional name, usable in place of the handle in token
                specifiers and rule files.

        Returns:
            The integer handle of the new flag.
        """
        if not callable(predicate):
            raise TypeError(f"Flag predicate must be callable, got {type(predicate).__name__}")
        if name is not None:
            if name.upper() in Attr.__members__ or name.upper() == "TEXT":
                raise ValueError(f"Flag name shadows a built-in attribute: {name!r}")
            if name in self._flag_names:
                raise ValueError(f"Flag name already registered: {name!r}")
        flag_id = self._next_flag
        self._next_flag += 1
        self._flag_getters[flag_id] = predicate
        if name is not None:
            self._flag_names[name] = flag_id
        logger.debug("Registered flag %s (%s)", flag_id, name or "unnamed")
        return flag_id

    def has_flag(self, flag_id: int) -> bool:
        return flag_id in self._flag_getters

    def flag_getter(self, flag_id: int) -> FlagGetter:
        return self._flag_getters[flag_id]

    def flag_by_name(self, name: str) -> Optional[int]:
        return self._flag_names.get(name)

    def flag_name(self, flag_id: int) -> Optional[str]:
        for name, handle in self._flag_names.items():
            if handle == flag_id:
                return name
        return None
