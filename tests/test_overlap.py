import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tokmatch.tm_ast import Match
from tokmatch.tm_overlap import filter_overlaps, overlaps, priority_key


def test_longest_match_wins():
    matches = [Match("A", None, 0, 2), Match("B", None, 1, 4), Match("C", None, 4, 5)]
    assert filter_overlaps(matches) == [Match("B", None, 1, 4), Match("C", None, 4, 5)]


def test_earlier_start_breaks_length_ties():
    matches = [Match("B", None, 1, 3), Match("A", None, 0, 2)]
    assert filter_overlaps(matches) == [Match("A", None, 0, 2)]


def test_shorter_then_alphabetical_entity_id():
    assert filter_overlaps([Match("Long", None, 0, 2), Match("Tiny", None, 0, 2)]) == [
        Match("Long", None, 0, 2)
    ]
    assert filter_overlaps([Match("Person", None, 0, 2), Match("Org", None, 0, 2)]) == [
        Match("Org", None, 0, 2)
    ]


def test_adjacent_matches_do_not_overlap():
    a, b = Match("A", None, 0, 2), Match("B", None, 2, 3)
    assert not overlaps(a, b)
    assert filter_overlaps([b, a]) == [a, b]


def test_zero_length_and_empty_input():
    assert filter_overlaps([]) == []
    assert filter_overlaps([Match("A", None, 1, 1)]) == []


def test_priority_key_order():
    matches = [Match("A", None, 2, 3), Match("A", None, 0, 3), Match("A", None, 0, 1)]
    assert sorted(matches, key=priority_key)[0] == Match("A", None, 0, 3)
