import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from tokmatch.tm_attrs import FLAG_BASE, Attr, attr_name, intify_attr
from tokmatch.tm_doc import Doc, Tokenizer
from tokmatch.tm_errors import UnknownAttributeError
from tokmatch.tm_vocab import Vocab, like_num, word_shape


@pytest.fixture
def vocab():
    return Vocab()


class TestLexemes:
    @pytest.mark.parametrize(
        "text, shape",
        [("Google", "Xxxxx"), ("1984", "dddd"), ("C3PO", "XdXX"), ("e-mail", "x-xxxx"), ("", "")],
    )
    def test_shape(self, text, shape):
        assert word_shape(text) == shape

    def test_prefix_suffix_length(self, vocab):
        lex = vocab["Running"]
        assert lex.prefix == "R"
        assert lex.suffix == "ing"
        assert lex.lower == "running"
        assert lex.length == 7

    def test_lexemes_are_shared(self, vocab):
        assert vocab["cat"] is vocab["cat"]
        assert "cat" in vocab
        assert len(vocab) == 1

    @pytest.mark.parametrize("text", ["42", "3.14", "-7", "1,000", "1/2", "twelve"])
    def test_like_num(self, text):
        assert like_num(text)

    @pytest.mark.parametrize("text", ["forty-two", "abc", "1.2.x"])
    def test_not_like_num(self, text):
        assert not like_num(text)

    def test_builtin_flags(self, vocab):
        assert vocab["!"].check_flag(Attr.IS_PUNCT)
        assert vocab["..."].check_flag(Attr.IS_PUNCT)
        assert not vocab["a."].check_flag(Attr.IS_PUNCT)
        assert vocab["("].check_flag(Attr.IS_BRACKET)
        assert vocab["https://example.com"].check_flag(Attr.LIKE_URL)
        assert vocab["jane@example.com"].check_flag(Attr.LIKE_EMAIL)
        assert not vocab["jane"].check_flag(Attr.LIKE_EMAIL)


class TestFlagsAndAttrs:
    def test_add_flag_handles_are_sequential(self, vocab):
        first = vocab.add_flag(lambda s: True)
        second = vocab.add_flag(lambda s: False, name="never")
        assert first == FLAG_BASE
        assert second == FLAG_BASE + 1
        assert vocab.flag_by_name("never") == second
        assert vocab.flag_name(second) == "never"

    def test_add_flag_rejects(self, vocab):
        with pytest.raises(TypeError):
            vocab.add_flag("not callable")
        with pytest.raises(ValueError):
            vocab.add_flag(lambda s: True, name="lower")
        vocab.add_flag(lambda s: True, name="dup")
        with pytest.raises(ValueError):
            vocab.add_flag(lambda s: True, name="dup")

    def test_intify_attr(self, vocab):
        flag = vocab.add_flag(lambda s: True, name="always")
        assert intify_attr("lower") == Attr.LOWER
        assert intify_attr("IS_PUNCT") == Attr.IS_PUNCT
        assert intify_attr("text") == Attr.ORTH
        assert intify_attr(Attr.TAG) == Attr.TAG
        assert intify_attr(int(Attr.SHAPE)) == Attr.SHAPE
        assert intify_attr("always", vocab) == flag
        assert intify_attr(flag, vocab) == flag

    @pytest.mark.parametrize("key", ["colour", 999, FLAG_BASE + 5, True, None, 1.5])
    def test_intify_attr_unknown(self, vocab, key):
        with pytest.raises(UnknownAttributeError):
            intify_attr(key, vocab)

    def test_attr_name(self, vocab):
        flag = vocab.add_flag(lambda s: True, name="always")
        assert attr_name(Attr.ENT_TYPE) == "ent_type"
        assert attr_name(flag, vocab) == "always"
        assert attr_name(FLAG_BASE + 50, vocab) == f"flag_{FLAG_BASE + 50}"


class TestTokenizer:
    def test_words_and_round_trip(self, vocab):
        text = "Email jane@example.com, or visit https://example.com."
        doc = Tokenizer(vocab)(text)
        assert doc.words == [
            "Email",
            "jane@example.com",
            ",",
            "or",
            "visit",
            "https://example.com",
            ".",
        ]
        assert doc.text == text

    def test_contractions_and_hyphens_stay_whole(self, vocab):
        doc = Tokenizer(vocab)("I don't like well-known bugs")
        assert doc.words == ["I", "don't", "like", "well-known", "bugs"]

    def test_whitespace_is_preserved(self, vocab):
        text = "  Hello,\n\tworld!  "
        doc = Tokenizer(vocab)(text)
        assert doc.words == ["  ", "Hello", ",", "world", "!"]
        assert doc[0].is_space
        assert doc[2].whitespace == "\n\t"
        assert doc.text == text

    def test_empty_text(self, vocab):
        doc = Tokenizer(vocab)("")
        assert len(doc) == 0
        assert doc.text == ""

    def test_pipe(self, vocab):
        docs = list(Tokenizer(vocab).pipe(["a b", "c"]))
        assert [d.words for d in docs] == [["a", "b"], ["c"]]


class TestDoc:
    def test_default_spaces(self, vocab):
        doc = Doc(vocab, ["Hello", "world"])
        assert doc.text == "Hello world "
        assert doc[1].idx == 6

    def test_explicit_spaces(self, vocab):
        doc = Doc(vocab, ["Hello", ",", "world"], spaces=[False, True, False])
        assert doc.text == "Hello, world"
        assert [t.idx for t in doc] == [0, 5, 7]

    def test_spaces_length_mismatch(self, vocab):
        with pytest.raises(ValueError):
            Doc(vocab, ["a", "b"], spaces=[True])

    def test_indexing(self, vocab):
        doc = Doc(vocab, ["a", "b", "c"])
        assert doc[-1].text == "c"
        with pytest.raises(IndexError):
            doc[3]
        with pytest.raises(ValueError):
            doc[::2]

    def test_span(self, vocab):
        doc = Doc(vocab, "New York is big".split())
        span = doc[1:3]
        assert len(span) == 2
        assert span.text == "York is"
        assert span.start_char == 4
        assert span.end_char == 11
        assert [t.text for t in span] == ["York", "is"]
        assert span[-1].text == "is"

    def test_annotations(self, vocab):
        doc = Doc(vocab, ["Paris"])
        assert doc[0].ent_type == ""
        doc[0].ent_type = "GPE"
        assert doc[0].annotation("ent_type") == "GPE"
        with pytest.raises(ValueError):
            doc[0].set_annotation("colour", "red")

    def test_merge(self, vocab):
        doc = Doc(vocab, "New York is big".split())
        token = doc.merge(0, 2, ent_type="GPE")
        assert token.text == "New York"
        assert token.ent_type == "GPE"
        assert doc.words == ["New York", "is", "big"]
        assert doc[1].idx == 9
        assert doc.text == "New York is big "

    def test_merge_keeps_last_whitespace(self, vocab):
        doc = Doc(vocab, ["a", "b", "."], spaces=[True, False, False])
        doc[0:2].merge()
        assert doc.words == ["a b", "."]
        assert doc.text == "a b."

    def test_merge_errors(self, vocab):
        doc = Doc(vocab, ["a", "b"])
        with pytest.raises(IndexError):
            doc.merge(1, 1)
        with pytest.raises(IndexError):
            doc.merge(0, 3)
        with pytest.raises(ValueError):
            doc.merge(0, 2, colour="red")
        assert doc.words == ["a", "b"]
