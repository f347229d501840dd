"""Fuzzy lookup of a catalog title among the torrents already in Real-Debrid."""

import re
from typing import List, Optional, Sequence

from rd_autoadd.models import CommittedItem, MediaItem

STOP_WORDS = {"the", "a", "an", "of"}
WORDS_TO_MATCH = 2

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def _compact(text: str) -> str:
    return _NON_ALNUM_RE.sub("", (text or "").lower())


def significant_words(title: str) -> List[str]:
    words = [_compact(w) for w in (title or "").lower().split()]
    words = [w for w in words if w]
    significant = [w for w in words if w not in STOP_WORDS]
    # A title made only of stop words ("The One") still needs something to match on
    return significant or words


def matches(item: MediaItem, committed: CommittedItem) -> bool:
    if not item.year:
        return False
    if str(item.year) not in (committed.filename or ""):
        return False
    filename = _compact(committed.filename)
    words = significant_words(item.title)[:WORDS_TO_MATCH]
    return all(word in filename for word in words)


def find_committed_item(item: MediaItem, snapshot: Sequence[CommittedItem]) -> Optional[CommittedItem]:
    """
    First committed torrent whose filename carries the item's first two
    significant title words and its year. Several same-year releases sharing
    leading words can match; the first in snapshot order wins.
    """
    for committed in snapshot:
        if matches(item, committed):
            return committed
    return None
