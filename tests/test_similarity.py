from types import SimpleNamespace

import pytest

from taskboard_engine.similarity import find_duplicates, levenshtein_distance, similarity


def item(task_id, title):
    return SimpleNamespace(id=task_id, title=title)


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("kitten", "sitting", 3),
        ("", "abc", 3),
        ("abc", "", 3),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
        ("gumbo", "gambol", 2),
    ],
)
def test_levenshtein_distance(a, b, expected):
    assert levenshtein_distance(a, b) == expected


def test_similarity_normalizes_case_and_whitespace():
    assert similarity("Buy milk", "  buy MILK ") == 1.0


def test_similarity_self_symmetric_and_empty():
    assert similarity("Email Sam", "Email Sam") == 1.0
    assert similarity("", "") == 1.0
    assert similarity("   ", "") == 1.0
    assert similarity("call mom", "call dad") == similarity("call dad", "call mom")


def test_similarity_uses_longest_length():
    assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)
    assert similarity("abc", "") == 0.0


def test_find_duplicates_skips_self_and_keeps_insertion_order():
    candidate = item("c", "Buy milk")
    existing = [item("a", "buy milk!"), item("c", "Buy milk"), item("b", "Walk dog"), item("d", "buy milk")]
    assert find_duplicates(candidate, existing) == ["a", "d"]


def test_find_duplicates_respects_threshold():
    candidate = item("x", "Plan trip")
    existing = [item("a", "Plan trips to Rome")]
    assert find_duplicates(candidate, existing) == []
    assert find_duplicates(candidate, existing, threshold=0.5) == ["a"]


def test_find_duplicates_accepts_custom_scorer():
    candidate = item("x", "anything")
    existing = [item("a", "else")]
    assert find_duplicates(candidate, existing, scorer=lambda a, b: 1.0) == ["a"]
