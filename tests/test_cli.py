import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import json

import pytest

import highlighter
import tm

RULES = """\
version 1.0
HelloWorld = [lower="hello"] [is_punct=true] [lower="world"]
GoogleNow as "PRODUCT" = [orth="Google"] [orth="Now"]
Now = [orth="Now"]
"""

TEXT = "Hello, world! Google Now is here."


@pytest.fixture
def files(tmp_path):
    rules = tmp_path / "rules.tm"
    rules.write_text(RULES, encoding="utf-8")
    text = tmp_path / "input.txt"
    text.write_text(TEXT, encoding="utf-8")
    return rules, text, tmp_path / "out.jsonl"


def read_lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_json_lines_output(files, capsys):
    rules, text, out = files
    tm.main([str(rules), str(text), "-q", "-o", str(out)])

    results = read_lines(out)
    assert results[0] == {
        "entity": "HelloWorld",
        "label": None,
        "start": 0,
        "end": 3,
        "start_char": 0,
        "end_char": 12,
        "text": "Hello, world",
    }
    assert results[1]["entity"] == "GoogleNow"
    assert results[1]["label"] == "PRODUCT"
    assert (results[1]["start"], results[1]["end"]) == (4, 6)
    assert (results[1]["start_char"], results[1]["end_char"]) == (14, 24)
    assert results[2]["text"] == "Now"
    assert "Found 3 matches across 3 entities" in capsys.readouterr().err


def test_no_overlap_and_pretty_print(files):
    rules, text, out = files
    tm.main([str(rules), str(text), "-q", "--no-overlap", "--pretty-print", "-o", str(out)])
    results = json.loads(out.read_text(encoding="utf-8"))
    assert [r["entity"] for r in results] == ["HelloWorld", "GoogleNow"]


def test_merge_and_stats(files, capsys):
    rules, text, out = files
    tm.main([str(rules), str(text), "-q", "--merge", "--show-stats", "-o", str(out)])
    err = capsys.readouterr().err
    assert "=== Match Statistics ===" in err
    assert "Tokens scanned: 9" in err
    assert '["Hello, world", "!", "Google Now", "is", "here", "."]' in err


def test_stdout_and_progress(files, capsys):
    rules, text, _ = files
    tm.main([str(rules), str(text)])
    captured = capsys.readouterr()
    assert len(captured.out.splitlines()) == 3
    assert "Scanning: 9/9 (100.0%)" in captured.err


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        tm.main(["--version"])
    assert excinfo.value.code == 0
    assert "rules: 1.0" in capsys.readouterr().out


def test_missing_arguments():
    with pytest.raises(SystemExit) as excinfo:
        tm.main([])
    assert excinfo.value.code == 2


class TestHighlighter:
    def test_load_highlights_from_json_lines(self, files):
        rules, text, out = files
        tm.main([str(rules), str(text), "-q", "-o", str(out)])
        highlights = highlighter.load_highlights(out.read_text(encoding="utf-8").splitlines())
        assert [h.entity for h in highlights] == ["HelloWorld", "GoogleNow", "Now"]

    def test_load_highlights_from_array(self):
        content = json.dumps(
            [
                {"start_char": 0, "end_char": 5, "entity": "A", "label": None, "start": 0, "end": 1},
                {"start_char": 0, "end_char": 5, "entity": "A", "label": None, "start": 0, "end": 1},
            ],
            indent=2,
        )
        highlights = highlighter.load_highlights(content.splitlines(keepends=True))
        assert len(highlights) == 1

    def test_highlight_text_escapes_and_drops_nested(self):
        highlights = [
            highlighter.Highlight(0, 5, "Tag", None, 0, 3),
            highlighter.Highlight(1, 4, "Inner", None, 1, 2),
        ]
        html = highlighter.highlight_text("<a&b> rest", highlights)
        assert 'data-entity="Tag"' in html
        assert "Inner" not in html
        assert "&lt;a&amp;b&gt;" in html
        assert html.endswith(" rest")

    def test_generate_html(self):
        html = highlighter.generate_html("line one\nline two", {"A": 2, "B": 1}, show_line_numbers=False)
        assert "A (2)" in html
        assert "B (1)" in html
        assert ".highlight[data-entity='A']" in html
        assert "display: none" in html
