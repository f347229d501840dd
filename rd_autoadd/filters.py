"""Hard quality requirements applied before scoring."""

import logging
from typing import List, Optional

from rd_autoadd.config import QualityPreferences
from rd_autoadd.models import Candidate
from rd_autoadd.quality import matching_keywords, meets_resolution_requirement, release_tags

log = logging.getLogger(__name__)

DEBUG_LOG_LIMIT = 3


def rejection_reason(candidate: Candidate, prefs: QualityPreferences) -> Optional[str]:
    """
    First rule the candidate fails, or None if it passes.

    Order: excluded keyword, minimum resolution, size bounds, HDR, remux.
    """
    title = candidate.title

    excluded = matching_keywords(title, prefs.exclude_keywords)
    if excluded:
        return f'excluded by keyword "{excluded[0]}"'

    if not meets_resolution_requirement(title, prefs.min_resolution):
        return f"below minimum resolution {prefs.min_resolution}"

    size_gb = candidate.size_gb
    if prefs.min_file_size_gb is not None and size_gb < prefs.min_file_size_gb:
        return f"too small (< {prefs.min_file_size_gb:g} GB)"
    if prefs.max_file_size_gb is not None and size_gb > prefs.max_file_size_gb:
        return f"too large (> {prefs.max_file_size_gb:g} GB)"

    if prefs.require_hdr or prefs.require_remux:
        tags = release_tags(title)
        if prefs.require_hdr and not tags.any_hdr:
            return "no HDR / Dolby Vision"
        if prefs.require_remux and not tags.remux:
            return "not a remux"

    return None


def filter_candidates(candidates: List[Candidate], prefs: QualityPreferences) -> List[Candidate]:
    """Keep candidates that pass every active rule, preserving order."""
    kept = []
    for index, candidate in enumerate(candidates):
        reason = rejection_reason(candidate, prefs)
        if index < DEBUG_LOG_LIMIT:
            log.debug(f'    Checking torrent: "{candidate.title}" ({candidate.size_gb:.2f} GB)')
            log.debug(f"    ✗ {reason}" if reason else "    ✓ Passed quality check")
        if reason is None:
            kept.append(candidate)
    return kept
