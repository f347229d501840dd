"""Records passed between the pipeline stages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple

BYTES_PER_GB = 1024 ** 3


class MediaItem(NamedTuple):
    """One title from the catalog. Unit of work for a pipeline pass."""
    external_id: str
    title: str
    year: int
    media_type: str  # "movie" or "show"

    @property
    def log_string(self) -> str:
        return f"{self.title} ({self.year})" if self.year else self.title


class CommittedItem(NamedTuple):
    """A torrent already held by Real-Debrid."""
    commitment_id: str
    filename: str
    size_bytes: int = 0

    @property
    def size_gb(self) -> float:
        return self.size_bytes / BYTES_PER_GB


@dataclass
class Candidate:
    """
    Release candidate for a single title.

    Built by the normalizer, then enriched in place: `available` by the
    availability stage and `score` by the scorer. A Candidate belongs to the
    pipeline pass of exactly one MediaItem.
    """
    title: str
    size_bytes: int
    content_hash: str
    available: bool = False
    score: float = 0.0

    @property
    def size_gb(self) -> float:
        return self.size_bytes / BYTES_PER_GB


class TitleState(Enum):
    SEARCHED = "searched"
    PROBED = "probed"
    FILTERED = "filtered"
    SCORED = "scored"
    DECIDED = "decided"
    ADDED = "added"
    UPGRADED = "upgraded"
    SKIPPED = "skipped"
    FAILED = "failed"


class Action(Enum):
    ADD = "add"
    UPGRADE = "upgrade"
    SKIP = "skip"


class Decision(NamedTuple):
    action: Action
    candidate: Candidate
    candidate_score: float
    existing_score: float = 0.0


@dataclass
class TitleOutcome:
    item: MediaItem
    state: TitleState = TitleState.SEARCHED
    decisions: List[Decision] = field(default_factory=list)
    committed_ids: List[str] = field(default_factory=list)


@dataclass
class RunState:
    """Counters for one run. Only confirmed commitments are counted as added/upgraded."""
    added_count: int = 0
    upgraded_count: int = 0
    processed_titles: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    planned_count: int = 0  # dry-run would-be commitments

    @property
    def commitments(self) -> int:
        return self.added_count + self.upgraded_count + self.planned_count

    def cap_reached(self, max_per_run: int) -> bool:
        return self.commitments >= max_per_run
