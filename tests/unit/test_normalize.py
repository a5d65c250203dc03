"""Unit tests for tag name normalization."""

import pytest

from polytag.models.tag import Tag
from polytag.services.normalize import clean_name, dedupe_by_name, normalize, parse_tags
from polytag.services.types import InvalidTagError, TagInput


class TestNormalize:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Red", "red"),
            ("  red ", "red"),
            ("Hello   World!", "hello-world"),
            ("machine_learning", "machine-learning"),
            ("C++ / Rust", "c-rust"),
            ("--edge--", "edge"),
            ("Café", "café"),
            ("ＡＢＣ", "abc"),  # fullwidth folds to ASCII under NFKC
            ("Straße", "strasse"),
        ],
    )
    def test_slugifies(self, raw: str, expected: str) -> None:
        assert normalize(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "!!!", "_-_"])
    def test_blank_input_yields_empty_slug(self, raw: str) -> None:
        assert normalize(raw) == ""

    def test_non_string_input_is_stringified(self) -> None:
        assert normalize(2024) == "2024"

    def test_is_stable_across_calls(self) -> None:
        assert normalize("Data Science") == normalize("data  SCIENCE") == "data-science"


class TestCleanName:
    def test_trims_and_collapses_whitespace(self) -> None:
        assert clean_name("  New \t York ") == "New York"


class TestDedupeByName:
    def test_keeps_first_occurrence_of_each_slug(self) -> None:
        result = dedupe_by_name(["Red", "red ", "BLUE"])

        assert [t.slug for t in result] == ["red", "blue"]
        assert [t.name for t in result] == ["Red", "BLUE"]

    def test_preserves_input_order(self) -> None:
        result = dedupe_by_name(["zeta", "alpha", "Zeta", "mid"])

        assert [t.slug for t in result] == ["zeta", "alpha", "mid"]

    def test_skips_blank_names(self) -> None:
        result = dedupe_by_name(["", "  ", "ok", "?!"])

        assert result == [TagInput(name="ok", slug="ok")]

    def test_accepts_mappings_and_tag_like_objects(self) -> None:
        result = dedupe_by_name([{"name": "Python"}, Tag(name="python", slug="python"), "Go"])

        assert [t.slug for t in result] == ["python", "go"]


class TestParseTags:
    def test_none_is_empty(self) -> None:
        assert parse_tags(None) == []

    def test_splits_comma_separated_string(self) -> None:
        result = parse_tags("news, Tech,, NEWS")

        assert [t.name for t in result] == ["news", "Tech"]

    def test_accepts_list(self) -> None:
        assert [t.slug for t in parse_tags(["a b", "A-B", "c"])] == ["a-b", "c"]

    def test_single_tag_like_object(self) -> None:
        assert parse_tags(Tag(name="Solo", slug="solo")) == [TagInput(name="Solo", slug="solo")]

    def test_single_mapping_is_one_tag_record(self) -> None:
        assert [t.slug for t in parse_tags({"name": "Python"})] == ["python"]

    def test_list_of_mappings(self) -> None:
        assert [t.slug for t in parse_tags([{"name": "A"}, {"name": "a"}, {"name": "B"}])] == ["a", "b"]

    def test_strict_rejects_blank_names(self) -> None:
        with pytest.raises(InvalidTagError):
            parse_tags(["ok", "  "], strict=True)

    def test_lenient_skips_blank_names(self) -> None:
        assert [t.slug for t in parse_tags(["ok", "  "])] == ["ok"]
