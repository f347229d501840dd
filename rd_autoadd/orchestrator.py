"""
Run orchestration: catalog -> release index -> reconciler, one title at a time.

Everything runs sequentially on one thread. A failure inside one title is
logged and the run moves on; commitments already made are never rolled back.
"""

import logging
from typing import Any, List, Optional

from rd_autoadd.config import AutoAddConfig, TraktSource
from rd_autoadd.errors import ProviderError
from rd_autoadd.logging_setup import log_success
from rd_autoadd.models import CommittedItem, MediaItem, RunState, TitleOutcome
from rd_autoadd.normalizer import normalize_streams
from rd_autoadd.prober import AvailabilityProber
from rd_autoadd.reconciler import Reconciler

log = logging.getLogger(__name__)


def dedupe_items(items: List[MediaItem]) -> List[MediaItem]:
    """Keep the first occurrence of each external id, preserving catalog order."""
    seen = set()
    unique = []
    for item in items:
        key = (item.external_id, item.media_type)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def gather_catalog(catalog: Any, source: TraktSource) -> List[MediaItem]:
    """Collect titles from every configured Trakt list, in configuration order."""
    if not source.enabled:
        log.info("Trakt source disabled in config")
        return []

    items: List[MediaItem] = []
    for list_type in source.lists:
        if list_type == "watchlist":
            if not source.username:
                log.warning("Trakt watchlist requested but no username configured, skipping")
                continue
            log.info(f"Fetching watchlist for {source.username}...")
            items.extend(catalog.list_watchlist(source.username))
            continue

        for media_type in source.media_types:
            log.info(f"Fetching {list_type} {media_type}s...")
            if list_type == "trending":
                items.extend(catalog.list_trending(media_type, source.max_items_per_list))
            elif list_type == "popular":
                items.extend(catalog.list_popular(media_type, source.max_items_per_list))

    for path in source.custom_lists:
        owner, _, slug = path.partition("/")
        log.info(f"Fetching custom list: {owner}/{slug}...")
        items.extend(catalog.list_by_custom_list(owner, slug))

    unique = dedupe_items(items)
    if len(unique) < len(items):
        log.debug(f"Dropped {len(items) - len(unique)} duplicate catalog entries")
    return unique


class AutoAddRun:
    """One pipeline run over the configured catalog."""

    def __init__(
        self,
        config: AutoAddConfig,
        catalog: Any,
        index: Any,
        cache: Any,
        prober: Optional[AvailabilityProber] = None,
        reconciler: Optional[Reconciler] = None,
    ):
        self.config = config
        self.catalog = catalog
        self.index = index
        self.cache = cache
        self.prober = prober or AvailabilityProber(cache)
        self.reconciler = reconciler or Reconciler(
            cache,
            self.prober,
            config.quality,
            config.limits,
            dry_run=config.dry_run,
        )
        self.state = RunState()

    def load_snapshot(self) -> List[CommittedItem]:
        if not self.config.upgrade_existing:
            return []
        log.info("Fetching existing Real-Debrid torrents for upgrade check...")
        try:
            snapshot = self.cache.list_torrents()
        except ProviderError as e:
            log.error(f"Error fetching RD torrents: {e}")
            return []
        log.info(f"Found {len(snapshot)} existing torrents in RD")
        return snapshot

    def process_item(self, item: MediaItem, snapshot: List[CommittedItem]) -> TitleOutcome:
        log.info(f"Processing: {item.log_string}")
        streams = self.index.search(item.external_id, item.media_type)
        candidates = normalize_streams(streams)
        log.info(f"  Found {len(candidates)} torrents")
        outcome = self.reconciler.process(item, candidates, snapshot, self.state)
        committed = f" ({', '.join(outcome.committed_ids)})" if outcome.committed_ids else ""
        log.info(f"  Result: {outcome.state.value}{committed}")
        return outcome

    def run(self) -> RunState:
        limits = self.config.limits
        log.info("=== Starting Auto-Add Quality Content ===")
        log.info(f"Dry run mode: {self.config.dry_run}")
        log.info(f"Max torrents per run: {limits.max_torrents_per_run}")
        log.info(f"Max torrents per title: {limits.max_torrents_per_title}")

        if not self.config.enabled:
            log.info("Auto-add is disabled in config. Exiting.")
            return self.state

        items = gather_catalog(self.catalog, self.config.trakt)
        log.info(f"Found {len(items)} items to process")
        if not items:
            log.info("No content found to process. Exiting.")
            return self.state

        snapshot = self.load_snapshot()

        for item in items:
            if self.state.cap_reached(limits.max_torrents_per_run):
                log.info("Reached max torrents per run limit. Stopping.")
                break
            self.state.processed_titles += 1
            try:
                self.process_item(item, snapshot)
            except ProviderError as e:
                log.error(f"  Error processing {item.log_string}: {e}")
                self.state.failed_count += 1

        self.log_summary()
        return self.state

    def log_summary(self) -> None:
        s = self.state
        if self.config.dry_run:
            log_success(
                log,
                f"=== Completed (dry run): {s.planned_count} torrents would be added or upgraded, "
                f"{s.skipped_count} skipped ({s.processed_titles} titles processed) ===",
            )
            return
        log_success(
            log,
            f"=== Completed: {s.added_count} added, {s.upgraded_count} upgraded, "
            f"{s.skipped_count} skipped, {s.failed_count} failed "
            f"({s.processed_titles} titles processed) ===",
        )
