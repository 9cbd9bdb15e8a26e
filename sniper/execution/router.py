"""
Jupiter swap API (v1) client.

    GET  {api}/quote  -> route for an exact input amount
    POST {api}/swap   -> base64 serialized VersionedTransaction to sign

Every failure (HTTP, no route, no transaction) raises ``RoutingError`` so
the engine's retry policy can take over.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from sniper.errors import RoutingError

logger = logging.getLogger(__name__)


class JupiterClient:

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.api_url = api_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {'x-api-key': self.api_key} if self.api_key else {}
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        session = self._get_session()
        try:
            async with session.request(method, f"{self.api_url}{path}", **kwargs) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise RoutingError(f"Jupiter {path} HTTP {resp.status}: {text[:200]}")
                return await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise RoutingError(f"Jupiter {path} timeout") from e
        except (aiohttp.ClientError, ValueError) as e:
            raise RoutingError(f"Jupiter {path} error: {e}") from e

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
    ) -> Dict[str, Any]:
        """
        Quote for swapping exactly ``amount`` raw units of ``input_mint``.

        Raises:
            RoutingError: request failed or no route exists
        """
        self.logger.debug(f"Getting quote {input_mint[:8]} -> {output_mint[:8]} amount={amount}")

        quote = await self._request('GET', '/quote', params={
            'inputMint': input_mint,
            'outputMint': output_mint,
            'amount': str(int(amount)),
            'slippageBps': str(int(slippage_bps)),
            'onlyDirectRoutes': 'false',
        })

        if not quote or not quote.get('outAmount'):
            raise RoutingError('Failed to get quote from Jupiter')
        if not quote.get('routePlan'):
            raise RoutingError('No route found')

        self.logger.debug(
            f"Quote received in={quote.get('inAmount')} out={quote.get('outAmount')} "
            f"impact={quote.get('priceImpactPct')}"
        )
        return quote

    async def build_swap(
        self,
        quote: Dict[str, Any],
        user_public_key: str,
        priority_fee_lamports: int,
    ) -> str:
        """
        Build the swap transaction for ``quote``.

        Returns:
            base64 serialized unsigned VersionedTransaction
        """
        body = await self._request('POST', '/swap', json={
            'quoteResponse': quote,
            'userPublicKey': user_public_key,
            'wrapAndUnwrapSol': True,
            'dynamicComputeUnitLimit': True,
            'prioritizationFeeLamports': {
                'priorityLevelWithMaxLamports': {
                    'priorityLevel': 'veryHigh',
                    'maxLamports': int(priority_fee_lamports),
                },
            },
        })

        swap_tx = (body or {}).get('swapTransaction')
        if not swap_tx:
            raise RoutingError('Failed to get swap transaction from Jupiter')
        return swap_tx
