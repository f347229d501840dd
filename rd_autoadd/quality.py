"""
Quality tagging and scoring.

The same scoring function ranks fresh candidates and prices an item already
held in Real-Debrid (from its filename and size), so selection and upgrade
decisions can never disagree about what "better" means.

Score breakdown:
    size in GB                       (monotonic base)
    resolution  2160p=100 1080p=50 720p=20
    HDR         DV=25 HDR10+=20 HDR=15   (best flavour only)
    remux       25
    preferred keyword   50 each
    preferred codec     30 each
    preferred resolution 20
    instantly available 1000         (candidates only)
"""

import re
from typing import TYPE_CHECKING, List, NamedTuple, Optional, Sequence

from rd_autoadd.models import BYTES_PER_GB, Candidate

if TYPE_CHECKING:
    from rd_autoadd.config import QualityPreferences

RESOLUTION_UNKNOWN = "unknown"

RESOLUTION_PRIORITY = {
    "2160p": 4,
    "4k": 4,
    "1080p": 3,
    "720p": 2,
    "480p": 1,
    "360p": 0,
}

RESOLUTION_BONUS = {"2160p": 100, "1080p": 50, "720p": 20}
DOLBY_VISION_BONUS = 25
HDR10PLUS_BONUS = 20
HDR_BONUS = 15
REMUX_BONUS = 25
PREFERRED_KEYWORD_BONUS = 50
PREFERRED_CODEC_BONUS = 30
PREFERRED_RESOLUTION_BONUS = 20
AVAILABILITY_BONUS = 1000

# Tokens bounded by anything that is not a letter or digit, so "Movie.2160p.x265"
# and "Movie_2160p_" both match while "12160px" does not.
_RESOLUTION_RE = re.compile(r"(?<![a-z0-9])(2160p|4k|1080p|720p|480p|360p)(?![a-z0-9])", re.IGNORECASE)
_DOLBY_VISION_RE = re.compile(r"(?<![a-z0-9])dv(?![a-z0-9])|dovi|dolby.?vision", re.IGNORECASE)
_HDR10PLUS_RE = re.compile(r"hdr10\+|hdr10.?plus", re.IGNORECASE)
_HDR_RE = re.compile(r"hdr", re.IGNORECASE)
_REMUX_RE = re.compile(r"remux", re.IGNORECASE)
_CODECS = (
    ("x265", re.compile(r"x\.?265|h\.?265|hevc", re.IGNORECASE)),
    ("x264", re.compile(r"x\.?264|h\.?264|(?<![a-z0-9])avc(?![a-z0-9])", re.IGNORECASE)),
    ("av1", re.compile(r"(?<![a-z0-9])av1(?![a-z0-9])", re.IGNORECASE)),
)


class ReleaseTags(NamedTuple):
    resolution: str = RESOLUTION_UNKNOWN
    hdr: bool = False
    dolby_vision: bool = False
    hdr10plus: bool = False
    remux: bool = False
    codec: Optional[str] = None

    @property
    def any_hdr(self) -> bool:
        return self.hdr or self.dolby_vision or self.hdr10plus


def normalize_resolution(value: str) -> str:
    value = value.lower()
    return "2160p" if value == "4k" else value


def resolution_from_title(title: str) -> str:
    m = _RESOLUTION_RE.search(title or "")
    return normalize_resolution(m.group(1)) if m else RESOLUTION_UNKNOWN


def release_tags(title: str) -> ReleaseTags:
    """Extract resolution, HDR flavours, remux and codec from a release title."""
    title = title or ""
    codec = None
    for name, pattern in _CODECS:
        if pattern.search(title):
            codec = name
            break
    return ReleaseTags(
        resolution=resolution_from_title(title),
        hdr=bool(_HDR_RE.search(title)),
        dolby_vision=bool(_DOLBY_VISION_RE.search(title)),
        hdr10plus=bool(_HDR10PLUS_RE.search(title)),
        remux=bool(_REMUX_RE.search(title)),
        codec=codec,
    )


def meets_resolution_requirement(title: str, min_resolution: Optional[str]) -> bool:
    if not min_resolution:
        return True
    resolution = resolution_from_title(title)
    if resolution == RESOLUTION_UNKNOWN:
        return False
    return RESOLUTION_PRIORITY[resolution] >= RESOLUTION_PRIORITY.get(min_resolution.lower(), 0)


def matching_keywords(title: str, keywords: Sequence[str]) -> List[str]:
    lower = (title or "").lower()
    return [kw for kw in keywords if kw and kw.lower() in lower]


def matching_codecs(title: str, codecs: Sequence[str]) -> List[str]:
    lower = (title or "").lower()
    found = []
    for codec in codecs:
        codec_lower = codec.lower()
        if not codec_lower:
            continue
        # "x265" in the preferences also accepts the "h.265" spelling
        if codec_lower in lower or codec_lower.replace("x", "h.") in lower:
            found.append(codec)
    return found


def calculate_quality_score(
    title: str,
    size_bytes: int,
    prefs: Optional["QualityPreferences"] = None,
) -> float:
    """Desirability of a release from its title and size. Availability not included."""
    tags = release_tags(title)
    score = (size_bytes or 0) / BYTES_PER_GB

    score += RESOLUTION_BONUS.get(tags.resolution, 0)

    if tags.dolby_vision:
        score += DOLBY_VISION_BONUS
    elif tags.hdr10plus:
        score += HDR10PLUS_BONUS
    elif tags.hdr:
        score += HDR_BONUS

    if tags.remux:
        score += REMUX_BONUS

    if prefs is not None:
        score += PREFERRED_KEYWORD_BONUS * len(matching_keywords(title, prefs.preferred_keywords))
        score += PREFERRED_CODEC_BONUS * len(matching_codecs(title, prefs.preferred_codecs))
        preferred = {normalize_resolution(r) for r in prefs.preferred_resolutions}
        if tags.resolution in preferred:
            score += PREFERRED_RESOLUTION_BONUS

    return score


def score_candidate(candidate: Candidate, prefs: Optional["QualityPreferences"] = None) -> float:
    score = calculate_quality_score(candidate.title, candidate.size_bytes, prefs)
    if candidate.available:
        score += AVAILABILITY_BONUS
    return score


def rank_candidates(
    candidates: List[Candidate],
    prefs: Optional["QualityPreferences"] = None,
    limit: Optional[int] = None,
) -> List[Candidate]:
    """
    Score every candidate in place and return them best first.

    sorted() is stable, so equal scores keep discovery order.
    """
    for candidate in candidates:
        candidate.score = score_candidate(candidate, prefs)
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    return ranked if limit is None else ranked[:limit]
