"""
Ready-made acceptors and on-match callbacks.
"""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from .tm_ast import Match
from .tm_doc import ANNOTATION_KEYS, Doc
from .tm_overlap import filter_overlaps

logger = logging.getLogger(__name__)


def merge_matches(matcher, doc: Doc, i: int, matches: List[Match]):
    """
    Merge every match owned by an entity using this callback into one token.

    Merging shifts the offsets of later tokens, so nothing happens until the
    invocation for the last such match in the list. Overlapping spans are
    reduced with ``filter_overlaps`` and merged right to left.

    The merged token's annotations come from the entity attributes named like
    token annotations (``tag``, ``pos``, ``lemma``, ``dep``, ``ent_type``);
    ``ent_type`` falls back to the match label.
    """
    owned = [
        j
        for j, m in enumerate(matches)
        if matcher.has_entity(m.entity_id) and matcher.get_entity(m.entity_id).on_match is merge_matches
    ]
    if not owned or i != owned[-1]:
        return

    chosen = filter_overlaps(matches[j] for j in owned)
    for match in sorted(chosen, key=lambda m: m.start, reverse=True):
        attrs = matcher.get_entity(match.entity_id).attrs
        annotations = {k: str(v) for k, v in attrs.items() if k in ANNOTATION_KEYS}
        if match.label and "ent_type" not in annotations:
            annotations["ent_type"] = match.label
        doc.merge(match.start, match.end, **annotations)
    logger.debug("Merged %s spans", len(chosen))


def trim_tokens(
    words: Iterable[str], attr: str = "lower"
) -> Callable[[Doc, str, Optional[str], int, int], Optional[Tuple]]:
    """
    Build an acceptor that strips leading and trailing tokens whose ``attr``
    value is in ``words`` (e.g. honorifics before a name). A match trimmed to
    nothing is rejected.
    """
    stop = frozenset(words)

    def acceptor(doc: Doc, entity_id: str, label: Optional[str], start: int, end: int):
        while start < end and getattr(doc[start], attr) in stop:
            start += 1
        while end > start and getattr(doc[end - 1], attr) in stop:
            end -= 1
        if start == end:
            return None
        return (entity_id, label, start, end)

    return acceptor
