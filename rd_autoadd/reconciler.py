"""
Per-title selection and add / upgrade / skip decision.

Lifecycle of one title:
    SEARCHED -> PROBED -> FILTERED -> SCORED -> DECIDED -> ADDED | UPGRADED | SKIPPED | FAILED

A dry run stops at DECIDED: the decision is logged and counted as planned but
no mutating call reaches Real-Debrid.
"""

import logging
import time
from typing import Any, List, Optional, Sequence

from rd_autoadd.config import Limits, QualityPreferences
from rd_autoadd.errors import ProviderError
from rd_autoadd.filters import filter_candidates
from rd_autoadd.http import INITIAL_BACKOFF_SEC, MAX_RETRIES, call_with_backoff, is_rate_limit_or_timeout
from rd_autoadd.logging_setup import log_success
from rd_autoadd.matcher import find_committed_item
from rd_autoadd.models import (
    Action,
    Candidate,
    CommittedItem,
    Decision,
    MediaItem,
    RunState,
    TitleOutcome,
    TitleState,
)
from rd_autoadd.prober import AvailabilityProber
from rd_autoadd.quality import calculate_quality_score, rank_candidates

log = logging.getLogger(__name__)

ADD_DELAY_SEC = 1.5
SELECT_FILES_DELAY_SEC = 0.5


class Reconciler:
    def __init__(
        self,
        cache: Any,
        prober: AvailabilityProber,
        prefs: QualityPreferences,
        limits: Limits,
        dry_run: bool = False,
        max_retries: int = MAX_RETRIES,
        initial_backoff: float = INITIAL_BACKOFF_SEC,
        add_delay: float = ADD_DELAY_SEC,
    ):
        self.cache = cache
        self.prober = prober
        self.prefs = prefs
        self.limits = limits
        self.dry_run = dry_run
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.add_delay = add_delay

    # === Stages ===

    def annotate_availability(self, candidates: List[Candidate]) -> bool:
        """Set Candidate.available. Returns False when the probe was unavailable."""
        hashes = [c.content_hash for c in candidates]
        availability = self.prober.probe(hashes)

        if not availability and hashes:
            log.info("  Availability check unavailable - will try adding torrents directly")
            for candidate in candidates:
                candidate.available = True
            return False

        for candidate in candidates:
            candidate.available = availability.get(candidate.content_hash, False)
        cached = sum(1 for c in candidates if c.available)
        log.info(f"  {cached}/{len(candidates)} torrents are cached")
        return True

    def select(self, candidates: List[Candidate]) -> List[Candidate]:
        return rank_candidates(candidates, self.prefs, limit=self.limits.max_torrents_per_title)

    def decide(self, candidate: Candidate, existing: Optional[CommittedItem]) -> Decision:
        candidate_score = calculate_quality_score(candidate.title, candidate.size_bytes, self.prefs)
        if existing is None:
            return Decision(Action.ADD, candidate, candidate_score)

        existing_score = calculate_quality_score(existing.filename, existing.size_bytes, self.prefs)
        action = Action.UPGRADE if candidate_score > existing_score else Action.SKIP
        return Decision(action, candidate, candidate_score, existing_score)

    # === Cache-service mutations ===

    def commit(self, candidate: Candidate) -> str:
        """
        Add the magnet and select all of its files. Returns the torrent id.

        Only rate limits and timeouts are retried. When file selection fails
        the freshly added torrent is deleted again so it does not sit in the
        account waiting for a selection.
        """
        torrent_id = call_with_backoff(
            self.cache.add_magnet,
            candidate.content_hash,
            what=f"addMagnet {candidate.content_hash[:8]}",
            retries=self.max_retries,
            initial_backoff=self.initial_backoff,
            retry_on=is_rate_limit_or_timeout,
        )
        time.sleep(SELECT_FILES_DELAY_SEC)
        try:
            call_with_backoff(
                self.cache.select_all_files,
                torrent_id,
                what=f"selectFiles {torrent_id}",
                retries=self.max_retries,
                initial_backoff=self.initial_backoff,
                retry_on=is_rate_limit_or_timeout,
            )
        except ProviderError:
            log.warning(f"    File selection failed, removing half-added torrent {torrent_id}")
            self.delete(torrent_id)
            raise
        return torrent_id

    def delete(self, torrent_id: str) -> bool:
        try:
            call_with_backoff(
                self.cache.delete_torrent,
                torrent_id,
                what=f"delete {torrent_id}",
                retries=self.max_retries,
                initial_backoff=self.initial_backoff,
            )
        except ProviderError as e:
            log.warning(f"    Could not delete torrent {torrent_id}: {e}")
            return False
        return True

    def remove(self, existing: CommittedItem) -> bool:
        return self.delete(existing.commitment_id)

    # === Title pass ===

    def process(
        self,
        item: MediaItem,
        candidates: List[Candidate],
        snapshot: Sequence[CommittedItem],
        state: RunState,
    ) -> TitleOutcome:
        outcome = TitleOutcome(item=item)
        if not candidates:
            outcome.state = TitleState.SKIPPED
            state.skipped_count += 1
            return outcome

        existing = find_committed_item(item, snapshot)
        if existing:
            log.info(f"  Already in Real-Debrid: {existing.filename} ({existing.size_gb:.2f} GB)")

        self.annotate_availability(candidates)
        outcome.state = TitleState.PROBED

        filtered = filter_candidates(candidates, self.prefs)
        outcome.state = TitleState.FILTERED
        log.info(f"  {len(filtered)} torrents meet quality criteria")
        if not filtered:
            log.info(f"  No torrents met quality criteria for {item.title}")
            outcome.state = TitleState.SKIPPED
            state.skipped_count += 1
            return outcome

        best = self.select(filtered)
        outcome.state = TitleState.SCORED

        old_deleted = False
        for candidate in best:
            if state.cap_reached(self.limits.max_torrents_per_run):
                log.info("  Reached max torrents per run limit, stopping")
                break

            decision = self.decide(candidate, existing)
            outcome.decisions.append(decision)
            if outcome.state is TitleState.SCORED:
                outcome.state = TitleState.DECIDED

            if decision.action is Action.SKIP:
                log.info(
                    f"  Already have good quality, skipping "
                    f"(new {decision.candidate_score:.1f} <= existing {decision.existing_score:.1f})"
                )
                continue

            upgrading = decision.action is Action.UPGRADE
            verb = "upgrade" if upgrading else "add"
            if self.dry_run:
                log.info(f"  [DRY RUN] Would {verb}: {candidate.title} (score: {candidate.score:.1f})")
                if upgrading:
                    log.info(f"    Old: {existing.filename} ({existing.size_gb:.2f} GB)")
                state.planned_count += 1
                continue

            log.info(f"  {'Upgrading' if upgrading else 'Adding'}: {candidate.title} (score: {candidate.score:.1f})")
            if upgrading:
                log.info(f"    Old: {existing.filename} ({existing.size_gb:.2f} GB)")

            try:
                torrent_id = self.commit(candidate)
            except ProviderError as e:
                log.error(f"  Failed to {verb} {candidate.title}: {e}")
                if outcome.state is TitleState.DECIDED:
                    outcome.state = TitleState.FAILED
                time.sleep(self.add_delay)
                continue

            outcome.committed_ids.append(torrent_id)
            if upgrading:
                # Only now that the new release is safely committed
                if not old_deleted:
                    self.remove(existing)
                    old_deleted = True
                state.upgraded_count += 1
                outcome.state = TitleState.UPGRADED
                log_success(log, "  ✓ Upgraded successfully")
            else:
                state.added_count += 1
                if outcome.state is not TitleState.UPGRADED:
                    outcome.state = TitleState.ADDED
                log_success(log, "  ✓ Added successfully")

            time.sleep(self.add_delay)

        if outcome.state is TitleState.FAILED:
            state.failed_count += 1
        elif outcome.state is TitleState.DECIDED and all(d.action is Action.SKIP for d in outcome.decisions):
            outcome.state = TitleState.SKIPPED
            state.skipped_count += 1
        return outcome
