"""
Opt-in overlap filtering for matcher output.

The matcher reports every match, overlapping or not. Callers that need a
non-overlapping subset (for highlighting, merging or entity assignment) pass
the match list through ``filter_overlaps``.
"""

import logging
from typing import Iterable, List

from .tm_ast import Match

logger = logging.getLogger(__name__)


def priority_key(match: Match):
    """
    Sort key implementing the priority rules, highest priority first:

    1. Match length (longer wins)
    2. Start offset (earlier wins)
    3. Entity id length (shorter wins)
    4. Alphabetical entity id
    """
    return (-match.length, match.start, len(match.entity_id), match.entity_id)


def overlaps(a: Match, b: Match) -> bool:
    return a.start < b.end and b.start < a.end


def filter_overlaps(matches: Iterable[Match]) -> List[Match]:
    """
    Keep a non-overlapping subset of matches.

    Candidates are taken in priority order and kept when they do not overlap
    any match already kept. The result is returned in document order.

    Args:
        matches: Matches from ``Matcher.match``

    Returns:
        Non-overlapping matches sorted by (start, end)
    """
    candidates = sorted(matches, key=priority_key)
    if not candidates:
        return []

    kept: List[Match] = []
    for match in candidates:
        if match.length == 0:
            continue
        if any(overlaps(match, other) for other in kept):
            continue
        kept.append(match)

    kept.sort(key=lambda m: (m.start, m.end))
    logger.info("Overlap filtering: %s -> %s matches", len(candidates), len(kept))
    return kept
