#!/usr/bin/env python3

import argparse
import json
import logging
import sys
import time
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from tokmatch import __version__ as tokmatch_version
from tokmatch.tm_ast import Match
from tokmatch.tm_doc import Doc, Tokenizer
from tokmatch.tm_loader import load_matcher
from tokmatch.tm_overlap import filter_overlaps
from tokmatch.tm_parser import TM_RULES_VERSION

__version__ = "0.1.0"


def show_match_statistics(start_time: float, n_tokens: int, raw_count: int, output_count: int, entity_counts: Dict):
    """Display match statistics."""
    total_time = time.time() - start_time

    sys.stderr.write("=== Match Statistics ===\n")
    sys.stderr.write(f"Total processing time: {total_time:.2f} seconds\n")
    sys.stderr.write(f"Tokens scanned: {n_tokens}\n")
    sys.stderr.write(f"Accepted matches: {raw_count}\n")
    sys.stderr.write(f"Output matches: {output_count}\n")

    if entity_counts:
        sys.stderr.write("\nMatch breakdown by entity:\n")
        for entity_id, count in entity_counts.items():
            sys.stderr.write(f"  {entity_id}: {count}\n")

    sys.stderr.write("========================\n\n")


def match_to_dict(text: str, offsets: Sequence[Tuple[int, int]], match: Match) -> Dict:
    """JSON-ready view of a match, with character offsets into ``text``."""
    if match.start < match.end:
        start_char = offsets[match.start][0]
        end_char = offsets[match.end - 1][1]
    else:
        start_char = end_char = offsets[match.start][0] if match.start < len(offsets) else len(text)
    return {
        "entity": match.entity_id,
        "label": match.label,
        "start": match.start,
        "end": match.end,
        "start_char": start_char,
        "end_char": end_char,
        "text": text[start_char:end_char],
    }


def merge_all(doc: Doc, matches: List[Match]) -> Doc:
    """Merge a non-overlapping subset of matches into single tokens, right to left."""
    for match in sorted(filter_overlaps(matches), key=lambda m: m.start, reverse=True):
        if match.end <= len(doc):
            doc.merge(match.start, match.end, ent_type=match.label or match.entity_id)
    return doc


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(
        description="Run tokmatch rules over a text file and emit matches as JSON lines."
    )
    parser.add_argument("rules_file", nargs="?", help="Path to rule file")
    parser.add_argument("text_file", nargs="?", help="Path to input text file")
    parser.add_argument(
        "--pretty-print",
        action="store_true",
        help="Emit all results in a single pretty-printed JSON array",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress all progress updates",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Require an entity statement before any pattern for that entity",
    )
    parser.add_argument(
        "--no-overlap",
        action="store_true",
        help="Keep only a non-overlapping subset of matches (longest first)",
    )
    parser.add_argument(
        "--merge",
        action="store_true",
        help="Merge matched spans into single tokens and print the result to stderr",
    )
    parser.add_argument(
        "--show-stats",
        action="store_true",
        help="Show match statistics",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write output to this file (UTF-8, LF line endings). If omitted, output goes to stdout.",
    )

    args = parser.parse_args(argv)

    if args.version:
        print("Version information:")
        print(f"  tokmatch: {tokmatch_version}")
        print(f"  tm: {__version__}")
        print(f"  rules: {TM_RULES_VERSION}")
        sys.exit(0)

    if not args.rules_file or not args.text_file:
        parser.error("the following arguments are required: rules_file, text_file")

    start_time = time.time()

    logging.basicConfig(
        level=getattr(logging, args.log_level), format="[%(levelname)s] %(message)s"
    )
    logger = logging.getLogger("tm")

    logger.info("Loading rules from %s", args.rules_file)
    matcher = load_matcher(args.rules_file, strict=args.strict)

    with open(args.text_file, "r", encoding="utf-8") as f:
        text = f.read()
    doc = Tokenizer(matcher.vocab)(text)
    # Callbacks may merge tokens during the scan; keep the original offsets
    offsets = [(t.idx, t.idx + len(t.text)) for t in doc]

    if args.quiet:
        matches = matcher.match(doc)
    else:

        def _status_callback(idx, total):
            pct = (idx / total * 100) if total else 0
            sys.stderr.write(f"\rScanning: {idx}/{total} ({pct:.1f}%)")
            sys.stderr.flush()

        matches = matcher.match(doc, progress_callback=_status_callback)
        sys.stderr.write("\n")

    accepted_count = len(matches)
    if args.no_overlap:
        matches = filter_overlaps(matches)

    output = [match_to_dict(text, offsets, m) for m in matches]
    sys.stderr.write(
        f"Found {len(output)} matches across {len(matcher.entities)} entities\n"
    )

    if args.show_stats:
        show_match_statistics(
            start_time,
            len(offsets),
            accepted_count,
            len(output),
            dict(Counter(m.entity_id for m in matches)),
        )

    if args.merge:
        merged = merge_all(Tokenizer(matcher.vocab)(text), matches)
        sys.stderr.write(json.dumps(merged.words) + "\n")

    # Output results
    if args.output:
        output_stream = open(args.output, "w", encoding="utf-8", newline="\n")
    else:
        output_stream = sys.stdout

    try:
        if args.pretty_print:
            json.dump(output, output_stream, indent=2)
            output_stream.write("\n")
        else:
            for item in output:
                output_stream.write(json.dumps(item))
                output_stream.write("\n")
    finally:
        if args.output and output_stream is not sys.stdout:
            output_stream.close()


if __name__ == "__main__":
    main()
