"""Tests for the keyword collection."""

from elnpack.state import KeywordsModel


def test_add_many_keeps_order_and_drops_duplicates() -> None:
    keywords = KeywordsModel()

    result = keywords.add_many("microscopy, TEM, microscopy")

    assert keywords.items == ["microscopy", "TEM"]
    assert result.added == ("microscopy", "TEM")
    assert result.duplicates == 1
    assert result.message == "Added 2 keyword(s); skipped 1 duplicate(s)."


def test_add_many_skips_empty_entries_and_existing_keywords() -> None:
    keywords = KeywordsModel(items=["TEM"])

    result = keywords.add_many(" , TEM,,  ")

    assert keywords.items == ["TEM"]
    assert result.added == ()
    assert result.empty == 3
    assert result.duplicates == 1
    assert result.message.startswith("No keywords added")


def test_duplicates_are_case_sensitive() -> None:
    keywords = KeywordsModel(items=["tem"])

    keywords.add_many("TEM")

    assert keywords.items == ["tem", "TEM"]


def test_replace_rejects_empty_and_duplicate_values() -> None:
    keywords = KeywordsModel(items=["alpha", "beta"])

    assert keywords.replace(0, "  ") == "Keyword cannot be empty."
    assert keywords.replace(0, "beta") == "Keyword already exists."
    assert keywords.replace(5, "gamma") is not None
    assert keywords.replace(0, " gamma ") is None
    assert keywords.items == ["gamma", "beta"]


def test_remove_ignores_out_of_range_index() -> None:
    keywords = KeywordsModel(items=["alpha"])

    assert keywords.remove(3) is False
    assert keywords.remove(0) is True
    assert keywords.items == []
