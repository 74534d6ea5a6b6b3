import argparse
import json
from collections import Counter
from dataclasses import dataclass
from html import escape
from pathlib import Path
from typing import Dict, List, Optional

PALETTE = [
    "#5fa8d3",
    "#72b69d",
    "#bfa75c",
    "#c87f7f",
    "#999ca1",
    "#7fcad3",
    "#cb8b8b",
    "#9b9ea1",
    "#88c39d",
    "#c5ae6d",
]


@dataclass
class Highlight:
    start_char: int
    end_char: int
    entity: str
    label: Optional[str]
    start: int
    end: int


def load_highlights(lines: List[str]) -> List[Highlight]:
    """Parse tm.py JSON lines (or one pretty-printed array) into highlights."""
    content = "".join(lines).strip()
    if content.startswith("["):
        records = json.loads(content)
    else:
        records = [json.loads(line) for line in lines if line.strip()]

    highlights = []
    seen = set()
    for r in records:
        key = (r["start_char"], r["end_char"], r["entity"])
        if key in seen or r["end_char"] <= r["start_char"]:
            continue
        seen.add(key)
        highlights.append(
            Highlight(
                start_char=r["start_char"],
                end_char=r["end_char"],
                entity=r["entity"],
                label=r.get("label"),
                start=r["start"],
                end=r["end"],
            )
        )
    return highlights


def drop_overlapping(highlights: List[Highlight]) -> List[Highlight]:
    """HTML spans cannot interleave: keep the longest of overlapping highlights."""
    ordered = sorted(highlights, key=lambda h: (-(h.end_char - h.start_char), h.start_char, h.entity))
    kept: List[Highlight] = []
    for h in ordered:
        if all(h.end_char <= k.start_char or k.end_char <= h.start_char for k in kept):
            kept.append(h)
    return sorted(kept, key=lambda h: h.start_char)


def highlight_text(text: str, highlights: List[Highlight]) -> str:
    result = []
    last = 0
    for h in drop_overlapping(highlights):
        result.append(escape(text[last : h.start_char]))
        raw = escape(text[h.start_char : h.end_char])
        title = f"{h.entity}" + (f" ({h.label})" if h.label else "") + f": tokens {h.start}-{h.end}"
        safe_title = escape(title, quote=True).replace("\n", " ")
        attrs = f'class="highlight" data-entity="{escape(h.entity, quote=True)}" title="{safe_title}"'
        # Split on newlines so every line keeps its own span
        parts = raw.split("\n")
        result.append("\n".join(f'<span {attrs}><span class="inner">{p}</span></span>' for p in parts))
        last = h.end_char
    result.append(escape(text[last:]))
    return "".join(result)


def generate_css_for_entities(entities) -> str:
    css = []
    for i, entity in enumerate(sorted(entities)):
        color = PALETTE[i % len(PALETTE)]
        css.append(f".highlight[data-entity='{entity}'] .inner {{ background-color: {color}; }}")
    return "\n        ".join(css)


def generate_html(highlighted_text: str, entity_counts: Dict[str, int], show_line_numbers: bool = True) -> str:
    lines = highlighted_text.splitlines(keepends=True)
    numbered_text = "".join(
        f"<span class='line'><span class='lineno'>{i:4}</span> {ln}</span>"
        for i, ln in enumerate(lines, start=1)
    )
    entities = sorted(entity_counts)
    toggles = "\n".join(
        f"<label><input type='checkbox' checked style='accent-color: {PALETTE[i % len(PALETTE)]}' "
        f"onchange=\"toggleEntity('{entity}')\"> {entity} ({entity_counts[entity]})</label>"
        for i, entity in enumerate(entities)
    )
    entity_styles = generate_css_for_entities(entities)
    lineno_display = "inline-block" if show_line_numbers else "none"
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset=\"UTF-8\">
    <style>
        body {{ font-family: monospace; background: #121212; color: #e0e0e0; padding: 1em; margin: 0; }}
        .highlight {{ border-bottom: 2px dotted #888; cursor: help; }}
        .line {{ display: block; }}
        .lineno {{ display: {lineno_display}; width: 3em; text-align: right; margin-right: 1em; color: #888; }}
        {entity_styles}
        pre {{ white-space: pre-wrap; word-wrap: break-word; line-height: 1.4; margin-top: 5em; }}
        .controls {{ position: fixed; top: 0; left: 0; right: 0; background: #1e1e1e; padding: 1em; border-bottom: 1px solid #444; }}
        label {{ margin-right: 1em; }}
    </style>
    <script>
    function toggleEntity(entity) {{
        document.querySelectorAll(`[data-entity='${{entity}}'] > .inner`).forEach(el => {{
            el.style.backgroundColor = (el.style.backgroundColor === 'transparent') ? '' : 'transparent';
        }});
    }}
    function toggleLineNumbers() {{
        document.querySelectorAll('.lineno').forEach(el => {{
            el.style.display = (el.style.display === 'none') ? 'inline-block' : 'none';
        }});
    }}
    </script>
</head>
<body>
<div class="controls">
    <strong>Toggle highlights:</strong>
    {toggles}
    <label><input type='checkbox' {'checked' if show_line_numbers else ''} onchange="toggleLineNumbers()"> Show line numbers</label>
</div>
<pre>{numbered_text}</pre>
</body>
</html>
"""


def main():
    parser = argparse.ArgumentParser(
        description="Highlight matches in a text file using the JSON output of tm.py."
    )
    parser.add_argument("text_file", type=Path, help="Path to the input text file")
    parser.add_argument("json_file", type=Path, help="Path to the JSON output of tm.py")
    parser.add_argument("output_file", type=Path, help="Path to save the output HTML file")
    parser.add_argument(
        "--no-line-numbers",
        action="store_true",
        help="Hide line numbers by default in the HTML",
    )
    args = parser.parse_args()

    text = args.text_file.read_text(encoding="utf-8")
    with args.json_file.open(encoding="utf-8") as f:
        highlights = load_highlights(f.readlines())

    highlighted = highlight_text(text, highlights)
    entity_counts = Counter(h.entity for h in highlights)
    html = generate_html(highlighted, entity_counts, show_line_numbers=not args.no_line_numbers)
    args.output_file.write_text(html, encoding="utf-8")
    print(f"HTML file with {len(highlights)} highlights saved to: {args.output_file}")


if __name__ == "__main__":
    main()
