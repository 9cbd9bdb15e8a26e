"""
Risk data providers.

- BirdeyeSecurityProvider: token security attributes (authorities,
  transferability, transfer fee)
- DexscreenerMarketProvider: pair / liquidity data

Both are rate limited and never raise: a failure, timeout or missing
API key yields ``None`` so the affected checks degrade to "cannot verify".
The timeout covers the rate-limiter wait as well as the request.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from sniper.core.policies import RateLimiter

logger = logging.getLogger(__name__)


class _HttpProvider:
    """Shared session / limiter / timeout handling."""

    name = "provider"

    def __init__(
        self,
        api_url: str,
        limiter: RateLimiter,
        timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.api_url = api_url.rstrip('/')
        self.limiter = limiter
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._session: Optional[aiohttp.ClientSession] = None
        self.requests = 0
        self.failures = 0

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[Dict[str, Any]]:
        await self.limiter.acquire()
        self.requests += 1

        session = self._get_session()
        async with session.get(f"{self.api_url}{path}", params=params, headers=headers) as resp:
            if resp.status != 200:
                self.logger.warning(f"{self.name} API returned HTTP {resp.status}")
                return None
            return await resp.json(content_type=None)

    async def fetch(self, mint: str) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.wait_for(self._fetch(mint), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.failures += 1
            self.logger.warning(f"{self.name} API timeout for {mint[:8]}...")
            return None
        except (aiohttp.ClientError, ValueError) as e:
            self.failures += 1
            self.logger.warning(f"{self.name} API error: {e}")
            return None

    async def _fetch(self, mint: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class BirdeyeSecurityProvider(_HttpProvider):

    name = "Birdeye"

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        requests_per_minute: int = 10,
        timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(api_url, RateLimiter(requests_per_minute, 60.0), timeout, logger)
        self.api_key = api_key

    async def fetch(self, mint: str) -> Optional[Dict[str, Any]]:
        if not self.api_key:
            self.logger.warning("Birdeye API key not configured")
            return None
        return await super().fetch(mint)

    async def _fetch(self, mint: str) -> Optional[Dict[str, Any]]:
        body = await self._get_json(
            '/defi/token_security',
            params={'address': mint},
            headers={'accept': 'application/json', 'X-API-KEY': self.api_key},
        )
        if not body:
            return None
        return body.get('data') or None


class DexscreenerMarketProvider(_HttpProvider):

    name = "Dexscreener"

    def __init__(
        self,
        api_url: str,
        requests_per_minute: int = 30,
        timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(api_url, RateLimiter(requests_per_minute, 60.0), timeout, logger)

    async def _fetch(self, mint: str) -> Optional[Dict[str, Any]]:
        body = await self._get_json(f'/latest/dex/tokens/{mint}')
        pairs = (body or {}).get('pairs') or []
        if not pairs:
            return None

        # prefer the Solana pair
        for pair in pairs:
            if pair.get('chainId') == 'solana':
                return pair
        return pairs[0]
