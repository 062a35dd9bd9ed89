"""Tests for fieldnotes.ingestion.canonical — slugs, tags, and dates."""

from __future__ import annotations

import re
import time
from datetime import date, datetime, timedelta, timezone

import pytest

from fieldnotes.ingestion.canonical import (
    SLUG_MAX_LENGTH,
    Tag,
    build_tags,
    canonical_now,
    derive_slug,
    is_canonical_date,
    normalize_tag,
    slugify,
    to_canonical_date,
    truncate_slug,
)

_SLUG_RE = re.compile(r"^[a-z0-9-]+$")


# --- slugify ---


class TestSlugify:
    def test_lowercases_and_hyphenates(self):
        assert slugify("Hello World") == "hello-world"

    def test_collapses_whitespace_and_underscores(self):
        assert slugify("  foo__bar \t baz  ") == "foo-bar-baz"

    def test_strips_symbols(self):
        assert slugify("C++ & Rust: a (quick) tour!") == "c-rust-a-quick-tour"

    def test_collapses_and_trims_hyphens(self):
        assert slugify("--a---b--") == "a-b"

    def test_nfkc_fullwidth(self):
        assert slugify("ＡＢＣ１２３") == "abc123"

    def test_non_latin_only_returns_none(self):
        assert slugify("日本語") is None

    def test_empty_returns_none(self):
        assert slugify("   ") is None


# --- truncate_slug ---


class TestTruncateSlug:
    def test_short_slug_unchanged(self):
        assert truncate_slug("abc-def", 80) == "abc-def"

    def test_cuts_at_last_hyphen(self):
        assert truncate_slug("alpha-beta-gamma", 12) == "alpha-beta"

    def test_hyphen_at_limit_is_boundary(self):
        assert truncate_slug("alpha-beta-gamma", 10) == "alpha-beta"

    def test_hard_cut_without_boundary(self):
        assert truncate_slug("abcdefghij", 4) == "abcd"

    def test_rejects_non_positive_length(self):
        with pytest.raises(ValueError):
            truncate_slug("abc", 0)


# --- derive_slug ---


class TestDeriveSlug:
    def test_appends_hint(self):
        assert derive_slug("Hello", "a1") == "hello-a1"

    def test_distinct_hints_give_distinct_slugs(self):
        assert derive_slug("Hello", "a1") != derive_slug("Hello", "a2")

    def test_hint_not_repeated_when_title_ends_with_it(self):
        assert derive_slug("Release v2", "v2") == "release-v2"

    def test_hint_only_when_title_empty(self):
        assert derive_slug("日本語のタイトル", "abc123") == "abc123"

    def test_title_only_when_hint_empty(self):
        assert derive_slug("My Post", "") == "my-post"

    def test_raises_when_both_empty(self):
        with pytest.raises(ValueError, match="Cannot derive slug"):
            derive_slug("!!!", "???")

    def test_truncates_long_titles_on_word_boundary(self):
        title = " ".join(["word"] * 40)
        slug = derive_slug(title, "deadbeef")
        assert len(slug) <= SLUG_MAX_LENGTH
        assert not slug.endswith("-")
        assert all(part == "word" for part in slug.split("-"))

    def test_deterministic(self):
        assert derive_slug("Some Title", "id-9") == derive_slug("Some Title", "id-9")

    @pytest.mark.parametrize(
        "title,hint",
        [
            ("Hello, World!", "x"),
            ("Ünïcödé — Título", "e7f1"),
            ("a" * 200, "b" * 200),
            ("x " * 100, "https://zenn.dev/user/articles/abc"),
            ("", "https://example.com/p?id=1"),
            ("Déjà vu_in\tspace", "ID_42"),
        ],
    )
    def test_output_shape(self, title, hint):
        slug = derive_slug(title, hint)
        assert slug
        assert _SLUG_RE.match(slug)
        assert len(slug) <= SLUG_MAX_LENGTH


# --- Tags ---


class TestNormalizeTag:
    def test_lowercase_and_hyphenate(self):
        assert normalize_tag("Machine Learning") == "machine-learning"

    def test_strips_diacritics(self):
        assert normalize_tag("Café") == "cafe"

    def test_fullwidth(self):
        assert normalize_tag("ＴｙｐｅＳｃｒｉｐｔ") == "typescript"

    def test_symbols(self):
        assert normalize_tag("C#") == "c"


class TestBuildTags:
    def test_dedupes_by_normalized_form(self):
        tags = build_tags(["Python", "python", "PYTHON "])
        assert tags == (Tag(raw="Python", norm="python"),)

    def test_preserves_insertion_order(self):
        tags = build_tags(["gist", "Shell", "Python"])
        assert [t.norm for t in tags] == ["gist", "shell", "python"]

    def test_drops_empty_norms(self):
        assert build_tags(["", "日本語", "ok"]) == (Tag(raw="ok", norm="ok"),)


# --- Dates ---


class TestToCanonicalDate:
    def test_iso_with_z(self):
        assert to_canonical_date("2023-08-01T12:34:56Z") == "2023-08-01T12:34:56.000Z"

    def test_iso_with_millis(self):
        assert to_canonical_date("2023-08-01T12:34:56.789Z") == "2023-08-01T12:34:56.789Z"

    def test_iso_with_offset_converted_to_utc(self):
        assert to_canonical_date("2024-03-01T09:00:00+09:00") == "2024-03-01T00:00:00.000Z"

    def test_date_only(self):
        assert to_canonical_date("2024-01-01") == "2024-01-01T00:00:00.000Z"

    def test_rfc822(self):
        assert to_canonical_date("Sat, 15 Jun 2025 10:00:00 GMT") == "2025-06-15T10:00:00.000Z"

    def test_rfc822_with_offset(self):
        assert to_canonical_date("Mon, 01 Jan 2024 09:00:00 +0900") == "2024-01-01T00:00:00.000Z"

    def test_epoch_seconds(self):
        assert to_canonical_date(0) == "1970-01-01T00:00:00.000Z"

    def test_aware_datetime(self):
        dt = datetime(2024, 5, 1, 12, tzinfo=timezone(timedelta(hours=2)))
        assert to_canonical_date(dt) == "2024-05-01T10:00:00.000Z"

    def test_naive_datetime_is_utc(self):
        assert to_canonical_date(datetime(2024, 5, 1, 12)) == "2024-05-01T12:00:00.000Z"

    def test_date_object(self):
        assert to_canonical_date(date(2024, 2, 29)) == "2024-02-29T00:00:00.000Z"

    def test_struct_time(self):
        st = time.struct_time((2025, 6, 15, 10, 0, 0, 6, 166, 0))
        assert to_canonical_date(st) == "2025-06-15T10:00:00.000Z"

    @pytest.mark.parametrize("value", [None, "", "not a date", "2024-13-45", True, object()])
    def test_invalid_returns_none(self, value):
        assert to_canonical_date(value) is None

    def test_output_is_canonical(self):
        assert is_canonical_date(to_canonical_date("2023-08-01T12:34:56+00:00"))

    def test_years_before_1000_zero_padded(self):
        value = to_canonical_date("0001-01-01T00:00:00Z")
        assert value == "0001-01-01T00:00:00.000Z"
        assert is_canonical_date(value)


class TestIsCanonicalDate:
    def test_accepts_canonical(self):
        assert is_canonical_date("2024-01-01T00:00:00.000Z")

    @pytest.mark.parametrize(
        "value",
        ["2024-01-01", "2024-01-01T00:00:00Z", "2024-01-01T00:00:00.000+00:00", ""],
    )
    def test_rejects_other_formats(self, value):
        assert not is_canonical_date(value)

    def test_now_is_canonical(self):
        assert is_canonical_date(canonical_now())
