"""
Tests for batched availability probing.
"""

from unittest.mock import MagicMock, call

from rd_autoadd.errors import ProviderBlockedError, ProviderError, TransientProviderError
from rd_autoadd.prober import AvailabilityProber, batched

from tests.conftest import FakeCache, make_hash


def all_available(hashes):
    return {h: True for h in hashes}


class TestBatched:
    def test_splits_with_short_tail(self):
        assert [len(b) for b in batched(list(range(120)), 50)] == [50, 50, 20]

    def test_empty(self):
        assert batched([], 50) == []


class TestAvailabilityProber:
    def test_batches_of_fifty_with_delay_between(self, no_sleep):
        hashes = [make_hash(n) for n in range(120)]
        cache = FakeCache(cached=hashes[:10])
        result = AvailabilityProber(cache).probe(hashes)

        assert [len(b) for b in cache.probe_calls] == [50, 50, 20]
        assert len(result) == 120
        assert sum(result.values()) == 10
        assert no_sleep.call_args_list == [call(1.0), call(1.0)]

    def test_rate_limited_batch_is_retried_once(self, no_sleep):
        hashes = [make_hash(n) for n in range(120)]
        service = MagicMock()
        service.probe_availability.side_effect = [
            TransientProviderError("rate limited", status=429),
            all_available(hashes[:50]),
            all_available(hashes[50:100]),
            all_available(hashes[100:]),
        ]
        result = AvailabilityProber(service).probe(hashes)

        assert service.probe_availability.call_count == 4
        assert no_sleep.call_args_list == [call(2.0), call(1.0), call(1.0)]
        assert set(result) == set(hashes)

    def test_exhausted_batch_is_skipped(self, no_sleep):
        hashes = [make_hash(n) for n in range(70)]
        service = MagicMock()
        service.probe_availability.side_effect = [
            TransientProviderError("bad gateway", status=502),
            TransientProviderError("bad gateway", status=502),
            TransientProviderError("bad gateway", status=502),
            TransientProviderError("bad gateway", status=502),
            all_available(hashes[50:]),
        ]
        result = AvailabilityProber(service).probe(hashes)

        assert set(result) == set(hashes[50:])
        assert no_sleep.call_args_list == [call(2.0), call(4.0), call(8.0), call(1.0)]

    def test_other_provider_error_skips_batch(self):
        hashes = [make_hash(n) for n in range(60)]
        service = MagicMock()
        service.probe_availability.side_effect = [
            ProviderError("bad request", status=400),
            all_available(hashes[50:]),
        ]
        result = AvailabilityProber(service).probe(hashes)

        assert service.probe_availability.call_count == 2
        assert set(result) == set(hashes[50:])

    def test_blocked_endpoint_degrades_to_empty_map(self):
        hashes = [make_hash(n) for n in range(120)]
        service = MagicMock()
        service.probe_availability.side_effect = ProviderBlockedError("forbidden", status=403)
        prober = AvailabilityProber(service)

        assert prober.probe(hashes) == {}
        assert prober.blocked
        assert service.probe_availability.call_count == 1

        # stays off for the rest of the run
        assert prober.probe(hashes) == {}
        assert service.probe_availability.call_count == 1

    def test_empty_input(self):
        cache = FakeCache()
        assert AvailabilityProber(cache).probe([]) == {}
        assert cache.probe_calls == []
