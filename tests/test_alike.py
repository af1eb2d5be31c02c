"""Tests for license text similarity."""

from licenseme.alike import is_alike, max_similarity, similarity


def test_identical_texts():
    assert similarity("abc", "abc") == 100.0
    assert is_alike("abc", "abc", 100)


def test_totally_different_texts():
    assert similarity("abc", "xyz") == 0.0
    assert not is_alike("abc", "xyz", 1)


def test_empty_texts_are_alike():
    assert similarity("", "") == 100.0
    assert is_alike("", "", 100)


def test_one_empty_text():
    assert similarity("", "abc") == 0.0


def test_partial_similarity():
    # kitten -> sitting is 3 edits over 7 chars
    assert round(similarity("kitten", "sitting"), 2) == round((1 - 3 / 7) * 100, 2)


def test_symmetric():
    pairs = [("kitten", "sitting"), ("MIT License", "MIT Licence 2024"), ("", "x")]
    for a, b in pairs:
        assert similarity(a, b) == similarity(b, a)
        for threshold in (0, 30, 60, 100):
            assert is_alike(a, b, threshold) == is_alike(b, a, threshold)


def test_insertion_does_not_desync():
    base = "Permission is hereby granted free of charge to any person"
    shifted = "Hey " + base
    assert is_alike(base, shifted, 90)


def test_length_bound():
    assert max_similarity("abcd", "ab") == 50.0
    assert similarity("abcd", "ab") <= max_similarity("abcd", "ab")
    assert not is_alike("a" * 10, "a" * 100, 60)
