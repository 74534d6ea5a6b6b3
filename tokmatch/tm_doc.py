"""
Token sequences for the matcher.

``Doc`` owns an ordered list of tokens (a lexeme plus per-token annotations
and trailing whitespace). ``Token`` and ``Span`` are views addressed by index;
``Doc.merge`` collapses a contiguous span into one token, which shifts the
index of every later token.
"""

import logging
import re
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

from .tm_attrs import TOKEN_ATTRS, Attr
from .tm_vocab import Lexeme, Vocab

logger = logging.getLogger(__name__)

ANNOTATION_KEYS = tuple(a.name.lower() for a in sorted(TOKEN_ATTRS))

# URLs and e-mail addresses first, then words with inner apostrophes or
# hyphens, then any single non-space character.
RE_TOKEN = re.compile(
    r"(?:https?://|www\.)\S+?(?=[.,;:!?)\]]*(?:\s|$))"
    r"|[\w.+\-]+@[\w\-]+(?:\.[\w\-]+)+"
    r"|\w+(?:['’\-]\w+)*"
    r"|[^\w\s]"
)
RE_LEADING_WS = re.compile(r"^\s+")


class Tokenizer:
    """
    Rule-based tokenizer: word characters, URLs, e-mails and single
    punctuation marks become tokens; whitespace is kept as trailing text.
    """

    def __init__(self, vocab: Vocab):
        self.vocab = vocab

    def __call__(self, text: str) -> "Doc":
        words: List[str] = []
        spaces: List[str] = []
        pos = 0
        leading = RE_LEADING_WS.match(text)
        if leading:
            words.append(leading.group(0))
            spaces.append("")
            pos = leading.end()
        for m in RE_TOKEN.finditer(text, pos):
            # Gaps between matches are whitespace only
            if words and m.start() > pos:
                spaces[-1] = text[pos : m.start()]
            words.append(m.group(0))
            spaces.append("")
            pos = m.end()
        if words and pos < len(text):
            spaces[-1] = text[pos:]
        return Doc(self.vocab, words, spaces)

    def pipe(self, texts: Iterable[str]) -> Iterator["Doc"]:
        for text in texts:
            yield self(text)


def _annotation(key: str) -> property:
    return property(
        lambda self: self.annotation(key),
        lambda self, value: self.set_annotation(key, value),
        doc=f"Caller-supplied '{key}' annotation; empty string when unset.",
    )


class Token:
    """A view of one position in a ``Doc``."""

    __slots__ = ("doc", "i")

    def __init__(self, doc: "Doc", i: int):
        self.doc = doc
        self.i = i

    @property
    def lex(self) -> Lexeme:
        return self.doc._lexemes[self.i]  # pylint: disable=protected-access

    @property
    def text(self) -> str:
        return self.lex.orth

    orth = text

    @property
    def whitespace(self) -> str:
        return self.doc._spaces[self.i]  # pylint: disable=protected-access

    @property
    def text_with_ws(self) -> str:
        return self.text + self.whitespace

    @property
    def idx(self) -> int:
        """Character offset of the token in ``doc.text``."""
        return self.doc._offsets[self.i]  # pylint: disable=protected-access

    @property
    def lower(self) -> str:
        return self.lex.lower

    @property
    def norm(self) -> str:
        return self.lex.norm

    @property
    def shape(self) -> str:
        return self.lex.shape

    @property
    def prefix(self) -> str:
        return self.lex.prefix

    @property
    def suffix(self) -> str:
        return self.lex.suffix

    @property
    def is_alpha(self) -> bool:
        return self.lex.check_flag(Attr.IS_ALPHA)

    @property
    def is_digit(self) -> bool:
        return self.lex.check_flag(Attr.IS_DIGIT)

    @property
    def is_punct(self) -> bool:
        return self.lex.check_flag(Attr.IS_PUNCT)

    @property
    def is_space(self) -> bool:
        return self.lex.check_flag(Attr.IS_SPACE)

    @property
    def is_title(self) -> bool:
        return self.lex.check_flag(Attr.IS_TITLE)

    @property
    def like_num(self) -> bool:
        return self.lex.check_flag(Attr.LIKE_NUM)

    def check_flag(self, flag_id: int) -> bool:
        return self.lex.check_flag(flag_id)

    def annotation(self, key: str) -> str:
        return self.doc._annotations[self.i].get(key, "")  # pylint: disable=protected-access

    def set_annotation(self, key: str, value: str):
        if key not in ANNOTATION_KEYS:
            raise ValueError(f"Unknown token annotation: {key!r}")
        self.doc._annotations[self.i][key] = value  # pylint: disable=protected-access

    pos = _annotation("pos")
    tag = _annotation("tag")
    lemma = _annotation("lemma")
    dep = _annotation("dep")
    ent_type = _annotation("ent_type")

    def __len__(self):
        return len(self.text)

    def __str__(self):
        return self.text

    def __repr__(self):
        return f"Token({self.text!r}, i={self.i})"


class Span:
    """A contiguous slice ``doc[start:end]``."""

    __slots__ = ("doc", "start", "end", "label")

    def __init__(self, doc: "Doc", start: int, end: int, label: Optional[str] = None):
        if not 0 <= start <= end <= len(doc):
            raise IndexError(f"Span [{start}:{end}] out of range for doc of length {len(doc)}")
        self.doc = doc
        self.start = start
        self.end = end
        self.label = label

    def __len__(self):
        return self.end - self.start

    def __iter__(self) -> Iterator[Token]:
        for i in range(self.start, self.end):
            yield self.doc[i]

    def __getitem__(self, i: int) -> Token:
        if i < 0:
            i += len(self)
        if not 0 <= i < len(self):
            raise IndexError(i)
        return self.doc[self.start + i]

    @property
    def text(self) -> str:
        if self.start == self.end:
            return ""
        return "".join(t.text_with_ws for t in self)[: self.end_char - self.start_char]

    @property
    def start_char(self) -> int:
        if self.start == len(self.doc):
            return len(self.doc.text)
        return self.doc[self.start].idx

    @property
    def end_char(self) -> int:
        if self.start == self.end:
            return self.start_char
        last = self.doc[self.end - 1]
        return last.idx + len(last.text)

    def merge(self, **annotations) -> Token:
        return self.doc.merge(self.start, self.end, **annotations)

    def __repr__(self):
        return f"Span({self.text!r}, {self.start}, {self.end})"


class Doc:
    """An ordered, mutable sequence of tokens sharing one ``Vocab``."""

    def __init__(
        self,
        vocab: Vocab,
        words: Sequence[str],
        spaces: Optional[Sequence[Union[bool, str]]] = None,
    ):
        if spaces is None:
            spaces = [True] * len(words)
        if len(spaces) != len(words):
            raise ValueError(f"Got {len(words)} words but {len(spaces)} spaces")
        self.vocab = vocab
        self._lexemes: List[Lexeme] = [vocab[w] for w in words]
        self._spaces: List[str] = [_ws(s) for s in spaces]
        self._annotations: List[Dict[str, str]] = [{} for _ in words]
        self._offsets: List[int] = []
        self._compute_offsets()

    @classmethod
    def from_text(cls, vocab: Vocab, text: str) -> "Doc":
        return Tokenizer(vocab)(text)

    def _compute_offsets(self):
        offsets = []
        pos = 0
        for lex, ws in zip(self._lexemes, self._spaces):
            offsets.append(pos)
            pos += len(lex.orth) + len(ws)
        self._offsets = offsets

    def __len__(self) -> int:
        return len(self._lexemes)

    def __iter__(self) -> Iterator[Token]:
        for i in range(len(self)):
            yield Token(self, i)

    def __getitem__(self, key):
        if isinstance(key, slice):
            start, stop, step = key.indices(len(self))
            if step != 1:
                raise ValueError("Doc slices must be contiguous")
            return Span(self, start, max(start, stop))
        if key < 0:
            key += len(self)
        if not 0 <= key < len(self):
            raise IndexError(f"Token index {key} out of range")
        return Token(self, key)

    @property
    def text(self) -> str:
        return "".join(lex.orth + ws for lex, ws in zip(self._lexemes, self._spaces))

    @property
    def words(self) -> List[str]:
        return [lex.orth for lex in self._lexemes]

    def merge(self, start: int, end: int, **annotations) -> Token:
        """
        Replace ``doc[start:end]`` with a single token.

        The merged token's text is the span text including inner whitespace;
        its trailing whitespace is that of the span's last token. Keyword
        arguments set annotations (``tag``, ``pos``, ``lemma``, ``dep``,
        ``ent_type``) on the new token.

        Every token index at or after ``end`` decreases by ``end - start - 1``.
        """
        if not 0 <= start < end <= len(self):
            raise IndexError(f"Cannot merge [{start}:{end}] in doc of length {len(self)}")
        for key in annotations:
            if key not in ANNOTATION_KEYS:
                raise ValueError(f"Unknown token annotation: {key!r}")
        text = "".join(
            lex.orth + ws
            for lex, ws in zip(self._lexemes[start : end - 1], self._spaces[start : end - 1])
        ) + self._lexemes[end - 1].orth
        trailing = self._spaces[end - 1]
        self._lexemes[start:end] = [self.vocab[text]]
        self._spaces[start:end] = [trailing]
        self._annotations[start:end] = [dict(annotations)]
        self._compute_offsets()
        logger.debug("Merged tokens [%s:%s] into %r", start, end, text)
        return Token(self, start)

    def __repr__(self):
        return f"Doc({self.words!r})"


def _ws(space: Union[bool, str]) -> str:
    if isinstance(space, str):
        return space
    return " " if space else ""
