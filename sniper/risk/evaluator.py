"""
Risk Evaluator
==============

Scores a token before any capital is committed.

Flow:
    1. Cached verdict younger than the TTL -> returned, no network call
    2. Otherwise query the security and market providers concurrently
    3. Run the check battery on whatever data came back
    4. passed = no hard risks AND score >= min_score; cache the verdict

Concurrent evaluations of the same mint share one in-flight evaluation.

Usage:
    evaluator = RiskEvaluator(config.security, birdeye, dexscreener)
    verdict = await evaluator.evaluate(mint)
    if verdict.passed:
        ...
"""
import asyncio
import logging
import time
from typing import Callable, Dict, Optional

from sniper.config import AccessListConfig, SecurityConfig
from sniper.core.helpers import shorten_address
from sniper.models import CheckResult, CheckStatus, RiskVerdict
from .checks import run_checks
from .providers import BirdeyeSecurityProvider, DexscreenerMarketProvider

logger = logging.getLogger(__name__)


class RiskEvaluator:

    def __init__(
        self,
        config: SecurityConfig,
        security_provider: BirdeyeSecurityProvider,
        market_provider: DexscreenerMarketProvider,
        whitelist: Optional[AccessListConfig] = None,
        blacklist: Optional[AccessListConfig] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.security_provider = security_provider
        self.market_provider = market_provider
        self.whitelist = whitelist or AccessListConfig()
        self.blacklist = blacklist or AccessListConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock

        self._cache: Dict[str, RiskVerdict] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

        self.evaluations = 0
        self.cache_hits = 0

    @property
    def cache_ttl(self) -> float:
        return self.config.cache_ttl_ms / 1000

    def get_cached(self, mint: str) -> Optional[RiskVerdict]:
        verdict = self._cache.get(mint)
        if verdict is None:
            return None
        if verdict.age(self._clock()) >= self.cache_ttl:
            del self._cache[mint]
            return None
        return verdict

    def clear_cache(self):
        self._cache.clear()
        self.logger.info("Security cache cleared")

    async def evaluate(self, mint: str) -> RiskVerdict:
        cached = self.get_cached(mint)
        if cached is not None:
            self.cache_hits += 1
            return cached

        task = self._inflight.get(mint)
        if task is None:
            task = asyncio.ensure_future(self._evaluate(mint))
            self._inflight[mint] = task
            task.add_done_callback(lambda _t: self._inflight.pop(mint, None))

        # one cancelled caller must not cancel the shared evaluation
        return await asyncio.shield(task)

    async def _evaluate(self, mint: str) -> RiskVerdict:
        started = time.monotonic()
        self.evaluations += 1
        self.logger.info(f"Running security checks on {shorten_address(mint)}")

        try:
            security, market = await asyncio.gather(
                self.security_provider.fetch(mint),
                self.market_provider.fetch(mint),
            )
            outcome = run_checks(security, market, self.config.checks)
        except Exception as e:
            self.logger.error(f"Security check failed for {mint}: {e}")
            return RiskVerdict(
                mint=mint,
                score=0,
                passed=False,
                risks=('Security check failed',),
                checks={'error': CheckResult('error', CheckStatus.FAIL, str(e))},
                timestamp=self._clock(),
            )

        verdict = RiskVerdict(
            mint=mint,
            score=outcome.score,
            passed=not outcome.risks and outcome.score >= self.config.min_score,
            risks=tuple(outcome.risks),
            warnings=tuple(outcome.warnings),
            checks=outcome.results,
            snapshots={'birdeye': security, 'dexscreener': market},
            timestamp=self._clock(),
        )
        self._cache[mint] = verdict

        duration_ms = (time.monotonic() - started) * 1000
        self.logger.info(
            f"SECURITY {'PASS' if verdict.passed else 'FAIL'} {shorten_address(mint)} "
            f"score={verdict.score}/{verdict.max_score} risks={len(verdict.risks)} "
            f"({duration_ms:.0f}ms)"
        )
        for risk in verdict.risks:
            self.logger.warning(f"  risk: {risk}")

        return verdict

    # ------------------------------------------------------------------
    # access lists
    # ------------------------------------------------------------------

    def is_whitelisted(self, mint: str, creator: Optional[str] = None) -> bool:
        return mint in self.whitelist.tokens or bool(creator and creator in self.whitelist.creators)

    def is_blacklisted(self, mint: str, creator: Optional[str] = None) -> bool:
        return mint in self.blacklist.tokens or bool(creator and creator in self.blacklist.creators)

    async def close(self):
        await self.security_provider.close()
        await self.market_provider.close()

    def get_stats(self) -> dict:
        return {
            'evaluations': self.evaluations,
            'cache_hits': self.cache_hits,
            'cached': len(self._cache),
            'in_flight': len(self._inflight),
        }
