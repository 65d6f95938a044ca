"""Tests for the keyword tag classifier."""

from session_export.core import TagSet
from session_export.tags import build_tag_set, classify, normalize_custom_tags


class TestClassify:
    def test_bug_keyword_in_preview(self):
        assert "auto/bug-fix" in classify("Fix pnl bug")

    def test_case_insensitive(self):
        assert "auto/bug-fix" in classify("FIX THE BUG")

    def test_matches_across_tables(self):
        tags = classify("Refactor src/app/models.py\ndocker compose up\n")
        assert {"auto/refactor", "auto/python", "auto/docker"} <= tags

    def test_file_extensions(self):
        assert "auto/typescript" in classify("src/components/Button.tsx")
        assert "auto/rust" in classify("src/main.rs")
        assert "auto/r" not in classify("src/main.rs")

    def test_no_match(self):
        assert classify("hello there") == frozenset()
        assert classify("") == frozenset()

    def test_debug_is_not_a_bug(self):
        tags = classify("debug the logging setup")
        assert "auto/debugging" in tags
        assert "auto/bug-fix" not in tags


class TestCustomTags:
    def test_normalized(self):
        assert normalize_custom_tags(["PnL, month end"]) == frozenset({"custom/pnl", "custom/month", "custom/end"})

    def test_prefix_not_duplicated(self):
        assert normalize_custom_tags(["custom/q1"]) == frozenset({"custom/q1"})

    def test_blank(self):
        assert normalize_custom_tags(["", "  "]) == frozenset()


def test_build_tag_set():
    tags = build_tag_set("Fix pnl bug", ["reporting"])
    assert isinstance(tags, TagSet)
    assert tags.all() == ["auto/bug-fix", "custom/reporting"]
    assert len(tags) == 2
