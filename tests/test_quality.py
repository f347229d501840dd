"""
Tests for release tagging and scoring.
"""

from rd_autoadd.config import QualityPreferences
from rd_autoadd.quality import (
    AVAILABILITY_BONUS,
    calculate_quality_score,
    meets_resolution_requirement,
    rank_candidates,
    release_tags,
    resolution_from_title,
    score_candidate,
)

from tests.conftest import GB, make_candidate


class TestReleaseTags:
    def test_full_tag_set(self):
        tags = release_tags("Movie.2024.2160p.UHD.BluRay.REMUX.DV.HDR.HEVC")
        assert tags.resolution == "2160p"
        assert tags.dolby_vision
        assert tags.hdr
        assert tags.remux
        assert tags.codec == "x265"

    def test_4k_normalizes_to_2160p(self):
        assert resolution_from_title("Movie.2024.4K.WEB-DL") == "2160p"

    def test_unknown_resolution(self):
        assert resolution_from_title("Movie.2024.WEB-DL") == "unknown"
        # digits glued to the token do not count
        assert resolution_from_title("Movie.12160px") == "unknown"

    def test_hdr10plus(self):
        tags = release_tags("Movie.2160p.HDR10+.x265")
        assert tags.hdr10plus
        assert tags.any_hdr
        assert not tags.dolby_vision

    def test_dv_needs_word_boundary(self):
        assert not release_tags("Movie.1080p.DVDRip").dolby_vision


class TestResolutionRequirement:
    def test_unknown_resolution_fails_any_minimum(self):
        assert not meets_resolution_requirement("Movie.2024.WEB-DL", "480p")

    def test_no_minimum_accepts_everything(self):
        assert meets_resolution_requirement("Movie.2024.WEB-DL", None)

    def test_ordering(self):
        assert meets_resolution_requirement("Movie.2160p", "1080p")
        assert meets_resolution_requirement("Movie.1080p", "1080p")
        assert not meets_resolution_requirement("Movie.720p", "1080p")
        assert meets_resolution_requirement("Movie.4K", "2160p")


class TestCalculateQualityScore:
    def test_bigger_higher_resolution_wins(self):
        a = calculate_quality_score("Movie.2024.1080p.WEB", 8 * GB)
        b = calculate_quality_score("Movie.2024.2160p.WEB", 40 * GB)
        assert a == 8 + 50
        assert b == 40 + 100
        assert b > a

    def test_only_best_hdr_flavour_counts(self):
        assert calculate_quality_score("Movie.2160p.DV.HDR", 0) == 100 + 25
        assert calculate_quality_score("Movie.2160p.HDR10+", 0) == 100 + 20
        assert calculate_quality_score("Movie.2160p.HDR", 0) == 100 + 15

    def test_remux_bonus(self):
        assert calculate_quality_score("Movie.1080p.REMUX", 0) == 50 + 25

    def test_preferred_keywords_and_codecs(self):
        prefs = QualityPreferences(preferred_keywords=("atmos",), preferred_codecs=("x265",))
        # "x265" in the preferences matches the "h.265" spelling too
        assert calculate_quality_score("Movie.1080p.Atmos.H.265", 0, prefs) == 50 + 50 + 30

    def test_preferred_resolution_bonus(self):
        prefs = QualityPreferences(preferred_resolutions=("4k",))
        assert calculate_quality_score("Movie.2160p", 0, prefs) == 100 + 20
        assert calculate_quality_score("Movie.1080p", 0, prefs) == 50

    def test_size_is_monotonic_base(self):
        assert calculate_quality_score("Movie.1080p", 10 * GB) > calculate_quality_score("Movie.1080p", 9 * GB)

    def test_availability_only_for_candidates(self):
        cached = make_candidate("Movie.1080p", 2, available=True)
        assert score_candidate(cached) == 2 + 50 + AVAILABILITY_BONUS


class TestRankCandidates:
    def test_available_outranks_bigger(self):
        big = make_candidate("Movie.2160p.REMUX", 80, n=1)
        cached = make_candidate("Movie.1080p", 4, n=2, available=True)
        ranked = rank_candidates([big, cached])
        assert ranked[0] is cached
        assert cached.score == 4 + 50 + AVAILABILITY_BONUS

    def test_ties_keep_discovery_order(self):
        first = make_candidate("Movie.1080p.WEB", 5, n=1)
        second = make_candidate("Movie.1080p.WEB", 5, n=2)
        third = make_candidate("Movie.1080p.WEB", 5, n=3)
        assert rank_candidates([first, second, third]) == [first, second, third]

    def test_limit(self):
        candidates = [make_candidate(f"Movie.1080p.{n}", n, n=n) for n in range(1, 5)]
        ranked = rank_candidates(candidates, limit=2)
        assert [c.content_hash for c in ranked] == [candidates[3].content_hash, candidates[2].content_hash]
