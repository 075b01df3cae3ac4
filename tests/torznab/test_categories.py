"""Unit tests for CategoryClassifier."""

import pytest

from anibridge.torznab.categories import UNKNOWN_SERIES, CategoryClassifier


@pytest.fixture
def classifier() -> CategoryClassifier:
    return CategoryClassifier()


@pytest.fixture
def slash_classifier() -> CategoryClassifier:
    return CategoryClassifier(slash_titles=True)


class TestDetectCategories:
    """Tests for detect_categories."""

    @pytest.mark.parametrize(
        ("title", "resolution"),
        [
            ("[G][Show][01][2160p]", "5060"),
            ("[G][Show][01][4K]", "5060"),
            ("[G][Show][01][UHD]", "5060"),
            ("[G][Show][01][1080p]", "5040"),
            ("[G][Show][01][720P]", "5040"),
            ("[G][Show][01][WEB-DL]", "5040"),
            ("[G][Show][01][HDTV]", "5040"),
            ("[G][Show][01][480p]", "5030"),
            ("[G][Show][01][SDTV]", "5030"),
        ],
    )
    def test_resolution(
        self, classifier: CategoryClassifier, title: str, resolution: str
    ) -> None:
        """Should map resolution markers to the matching TV subcategory."""
        assert classifier.detect_categories(title) == ["5000", resolution, "5070"]

    def test_uhd_takes_precedence(self, classifier: CategoryClassifier) -> None:
        """Should classify as UHD when UHD and HD markers are both present."""
        title = "[G][Show][01][2160p][WEB-DL]"

        assert classifier.detect_categories(title)[1] == "5060"

    def test_defaults_to_hd(self, classifier: CategoryClassifier) -> None:
        """Should classify titles without a resolution as HD."""
        assert classifier.detect_categories("[G][Show][01]") == ["5000", "5040", "5070"]

    def test_resolution_must_be_a_word(self, classifier: CategoryClassifier) -> None:
        """Should not match resolution markers inside longer tokens."""
        assert classifier.detect_categories("[G][Show][x4kb]")[1] == "5040"

    def test_resolution_next_to_cjk_text(self, classifier: CategoryClassifier) -> None:
        """Should detect a resolution marker directly after CJK characters."""
        assert classifier.detect_categories("[Group][海賊王2160p][MKV]")[1] == "5060"

    def test_full_width_digits_are_not_a_resolution(
        self, classifier: CategoryClassifier
    ) -> None:
        """Should not read full-width digits as a resolution marker."""
        assert classifier.detect_categories("[G][Show][４８０p]")[1] == "5040"


class TestExtractSeriesName:
    """Tests for extract_series_name."""

    def test_bracketed_name(self, classifier: CategoryClassifier) -> None:
        """Should take the second bracket group as the series name."""
        title = "[Skymoon-Raws][One Piece 海賊王][1151][ViuTV][1080p]"

        assert classifier.extract_series_name(title) == "One Piece 海賊王"

    def test_cleans_episode_and_resolution(
        self, classifier: CategoryClassifier
    ) -> None:
        """Should strip episode markers and the resolution from the name."""
        title = "[G][海賊王 第1151話 1080p][MKV]"

        assert classifier.extract_series_name(title) == "海賊王"

    def test_leading_text_fallback(self, classifier: CategoryClassifier) -> None:
        """Should use the first bracket after leading text."""
        assert classifier.extract_series_name("New Show [Group] 01") == "Group"

    def test_unknown(self, classifier: CategoryClassifier) -> None:
        """Should return the unknown marker when nothing matches."""
        assert classifier.extract_series_name("plain title") == UNKNOWN_SERIES

    def test_slash_title_prefers_first_name(
        self, slash_classifier: CategoryClassifier
    ) -> None:
        """Should pick the Chinese name from slash-separated titles."""
        title = "[黒ネズミたち] 海贼王 / One Piece - 1152 (B-Global 3840x2160 HEVC AAC MKV)"

        assert slash_classifier.extract_series_name(title) == "海贼王"

    def test_slash_title_ignored_without_option(
        self, classifier: CategoryClassifier
    ) -> None:
        """Should not apply the slash rule unless enabled."""
        title = "[黒ネズミたち] 海贼王 / One Piece - 1152 (B-Global)"

        assert classifier.extract_series_name(title) == UNKNOWN_SERIES
