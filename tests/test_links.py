"""Tests for shareable link derivation."""

import pytest

from boardsync.utils import build_share_link


class TestBuildShareLink:
    """Tests for build_share_link."""

    def test_exact_format(self):
        assert (
            build_share_link("https://app.example", "board-42")
            == "https://app.example/board/board-42?shared=true"
        )

    @pytest.mark.parametrize("origin", ["https://app.example/", "https://app.example//"])
    def test_trailing_slashes_stripped(self, origin):
        assert build_share_link(origin, "b1") == "https://app.example/board/b1?shared=true"

    def test_origin_with_port(self):
        assert (
            build_share_link("http://localhost:8080", "abc")
            == "http://localhost:8080/board/abc?shared=true"
        )
