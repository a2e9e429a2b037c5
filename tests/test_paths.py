"""Tests for canonical path helpers."""

import pytest

from dmlang.errors import InvalidAssignKeyError
from dmlang.parsing.paths import quote_segment, split_path


class TestSplitPath:
    """Tests for split_path."""

    def test_root(self):
        assert split_path(".") == ["."]

    def test_identifiers(self):
        assert split_path("a.b-c.d_e") == ["a", "b-c", "d_e"]

    def test_quoted_segments(self):
        assert split_path('a."b.c".d') == ["a", '"b.c"', "d"]
        assert split_path('a."╚(•⌂•)╝"') == ["a", '"╚(•⌂•)╝"']

    def test_escaped_quote(self):
        assert split_path(r'a."x\"y"') == ["a", r'"x\"y"']

    @pytest.mark.parametrize(
        "path",
        [
            "",
            "a.",
            ".a",
            "a..b",
            '"a".b',
            'a.""',
            'a."b',
            r'a."\u0062"',
            "a.b c",
            "a-",
            "1a",
            'a."b"c',
        ],
    )
    def test_invalid(self, path):
        with pytest.raises(InvalidAssignKeyError):
            split_path(path)


class TestQuoteSegment:
    """Tests for quote_segment."""

    def test_plain(self):
        assert quote_segment("b.c") == '"b.c"'

    def test_non_ascii_is_kept(self):
        assert quote_segment("é") == '"é"'

    def test_escapes(self):
        assert quote_segment('a"b') == r'"a\"b"'
        assert quote_segment("tab\t") == r'"tab\t"'
