"""
Batched instant-availability checks against Real-Debrid.

probe() returns {hash: cached?}. An empty map for a non-empty input means the
check could not be performed at all (endpoint blocked, or every batch
failed): callers must then assume availability instead of assuming nothing
is cached.
"""

import logging
import time
from typing import Any, Dict, List, Sequence

from rd_autoadd.errors import ProviderBlockedError, ProviderError, TransientProviderError
from rd_autoadd.http import INITIAL_BACKOFF_SEC, MAX_RETRIES, call_with_backoff

log = logging.getLogger(__name__)

BATCH_SIZE = 50
BATCH_DELAY_SEC = 1.0


def batched(items: Sequence[str], size: int) -> List[Sequence[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class AvailabilityProber:
    def __init__(
        self,
        service: Any,
        batch_size: int = BATCH_SIZE,
        max_retries: int = MAX_RETRIES,
        initial_backoff: float = INITIAL_BACKOFF_SEC,
        batch_delay: float = BATCH_DELAY_SEC,
    ):
        self.service = service
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.batch_delay = batch_delay
        # Set on the first 403; the endpoint stays off for the rest of the run
        self.blocked = False

    def probe(self, hashes: Sequence[str]) -> Dict[str, bool]:
        if not hashes or self.blocked:
            return {}

        availability: Dict[str, bool] = {}
        batches = batched(list(hashes), self.batch_size)
        for index, batch in enumerate(batches, start=1):
            try:
                result = call_with_backoff(
                    self.service.probe_availability,
                    batch,
                    what=f"availability batch {index}/{len(batches)}",
                    retries=self.max_retries,
                    initial_backoff=self.initial_backoff,
                )
                availability.update(result)
            except ProviderBlockedError as e:
                log.warning(
                    "RD instant availability check blocked (403). "
                    "This can happen with free accounts or API restrictions."
                )
                log.warning(f"Skipping availability check - will try to add torrents directly ({e})")
                self.blocked = True
                return {}
            except TransientProviderError:
                log.error(f"Failed to check batch {index} after {self.max_retries} retries, skipping...")
            except ProviderError as e:
                log.error(f"Availability batch {index} failed: {e}")

            if index < len(batches):
                time.sleep(self.batch_delay)

        return availability
