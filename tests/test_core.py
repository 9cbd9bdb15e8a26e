"""Dedup window, retry/rate-limit policies and helpers."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from sniper.core.dedup import DedupWindow
from sniper.core.helpers import (
    is_valid_pubkey, lamports_to_sol, mask_api_key, percent_change,
    shorten_address, sol_to_lamports,
)
from sniper.core.policies import RateLimiter, RetryPolicy

from builders import MINT


class TestDedupWindow:

    def test_first_sight_then_duplicate(self):
        window = DedupWindow(max_size=10, evict_count=2)
        assert window.check_and_add('a') is True
        assert window.check_and_add('a') is False
        assert window.duplicates == 1
        assert len(window) == 1

    def test_bulk_prefix_eviction_keeps_window_bounded(self):
        window = DedupWindow(max_size=5, evict_count=2)
        for i in range(6):
            window.check_and_add(f's{i}')

        # 6 > 5 -> oldest two dropped
        assert len(window) == 4
        assert 's0' not in window
        assert 's1' not in window
        assert 's5' in window

    def test_never_exceeds_cap(self):
        window = DedupWindow(max_size=100, evict_count=10)
        for i in range(1_000):
            window.check_and_add(str(i))
            assert len(window) <= 100

    def test_evicted_signature_is_accepted_again(self):
        window = DedupWindow(max_size=2, evict_count=1)
        for sig in ('a', 'b', 'c'):
            window.check_and_add(sig)
        assert window.check_and_add('a') is True

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            DedupWindow(max_size=0)


class TestRetryPolicy:

    def test_delay_doubles(self):
        policy = RetryPolicy(max_attempts=5, base_delay=1.5)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.5, 3.0, 6.0]

    def test_returns_first_success(self):
        fn = AsyncMock(side_effect=[RuntimeError('boom'), 'ok'])
        policy = RetryPolicy(max_attempts=3, base_delay=0)

        assert asyncio.run(policy.run(fn, 1, key='v', log=MagicMock())) == 'ok'
        assert fn.await_count == 2
        fn.assert_awaited_with(1, key='v')

    def test_surfaces_last_failure(self):
        fn = AsyncMock(side_effect=[RuntimeError('first'), RuntimeError('second'), RuntimeError('last')])
        policy = RetryPolicy(max_attempts=3, base_delay=0)

        with pytest.raises(RuntimeError, match='last'):
            asyncio.run(policy.run(fn, log=MagicMock()))
        assert fn.await_count == 3

    def test_sleeps_with_backoff_between_attempts(self):
        fn = AsyncMock(side_effect=[RuntimeError('x'), RuntimeError('y'), 'done'])
        policy = RetryPolicy(max_attempts=3, base_delay=2.0)

        with patch('sniper.core.policies.asyncio.sleep', new=AsyncMock()) as sleep:
            asyncio.run(policy.run(fn, log=MagicMock()))

        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0]

    def test_does_not_retry_unlisted_errors(self):
        fn = AsyncMock(side_effect=KeyError('nope'))
        policy = RetryPolicy(max_attempts=3, base_delay=0, retry_on=(RuntimeError,))

        with pytest.raises(KeyError):
            asyncio.run(policy.run(fn))
        assert fn.await_count == 1


class TestRateLimiter:

    def test_allows_up_to_limit_without_waiting(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=lambda: 100.0)

        async def go():
            for _ in range(3):
                await limiter.acquire()

        asyncio.run(go())
        assert limiter.in_window == 3
        assert limiter.waits == 0

    def test_blocks_until_slot_frees(self):
        now = [0.0]
        limiter = RateLimiter(max_requests=1, window_seconds=10, clock=lambda: now[0])

        async def fake_sleep(seconds):
            now[0] += seconds

        async def go():
            await limiter.acquire()
            await limiter.acquire()

        with patch('sniper.core.policies.asyncio.sleep', new=fake_sleep):
            asyncio.run(go())

        assert limiter.waits == 1
        assert now[0] == pytest.approx(10.0)


class TestHelpers:

    def test_sol_lamport_conversion(self):
        assert sol_to_lamports(0.1) == 100_000_000
        assert lamports_to_sol(250_000_000) == 0.25

    def test_pubkey_validation(self):
        assert is_valid_pubkey(MINT)
        assert not is_valid_pubkey('not-a-key')
        assert not is_valid_pubkey('')

    def test_shorten_and_mask(self):
        assert shorten_address(MINT) == 'DezX...B263'
        assert mask_api_key('https://rpc.helius.xyz/?api-key=secret&x=1') == 'https://rpc.helius.xyz/?api-key=***&x=1'

    def test_percent_change(self):
        assert percent_change(2.0, 3.0) == 50.0
        assert percent_change(0, 3.0) == 0.0
