"""
Copy Trade Monitor
==================

Subscribes to the transactions of tracked ("smart money") wallets and
reports their swaps to the listener.

Usage:
    monitor = CopyTradeMonitor(config.copy_trading, config.monitoring,
                               ws_url, listener,
                               extra_wallets=config.env.copy_wallets)
    await monitor.start()
    await monitor.add_wallet("7xKX...")
"""
import logging
import time
from typing import Iterable, List, Optional

from sniper.config import CopyTradingConfig, MonitoringConfig
from sniper.core.dedup import DedupWindow
from sniper.core.helpers import is_valid_pubkey, shorten_address
from sniper.core.policies import RetryPolicy
from sniper.detectors.swap import SwapDetector
from sniper.listeners import CoreListener
from sniper.models import StreamEvent, TradeDirection
from sniper.stream.client import EventStreamClient

logger = logging.getLogger(__name__)

COPY_REQUEST_ID = 2


class CopyTradeMonitor:

    def __init__(
        self,
        config: CopyTradingConfig,
        stream_config: MonitoringConfig,
        ws_url: Optional[str],
        listener: CoreListener,
        extra_wallets: Iterable[str] = (),
        detector: Optional[SwapDetector] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.listener = listener
        self.logger = logger or logging.getLogger(__name__)
        self.detector = detector or SwapDetector()
        self.dedup = DedupWindow(config.dedup_max_size, config.dedup_evict_count)
        self.wallets: List[str] = self._load_wallets(list(config.wallets) + list(extra_wallets))

        self.stream = EventStreamClient(
            name='copy',
            ws_url=ws_url,
            account_include=self.wallets,
            on_event=self.process_event,
            on_fatal=listener.on_fatal_error,
            commitment=stream_config.commitment,
            request_id=COPY_REQUEST_ID,
            ping_interval=stream_config.ping_interval_ms / 1000,
            connect_timeout=stream_config.connect_timeout_ms / 1000,
            reconnect_policy=RetryPolicy(
                max_attempts=stream_config.max_reconnect_attempts,
                base_delay=stream_config.reconnect_delay_ms / 1000,
            ),
            logger=self.logger,
        )

        self.trades_detected = 0
        self.started_at: Optional[float] = None

    def _load_wallets(self, wallets: Iterable[str]) -> List[str]:
        """Validate and de-duplicate, keeping first-seen order."""
        result: List[str] = []
        for wallet in wallets:
            wallet = (wallet or '').strip()
            if not wallet or wallet in result:
                continue
            if not is_valid_pubkey(wallet):
                self.logger.warning(f"Invalid wallet address skipped: {wallet}")
                continue
            result.append(wallet)
        return result

    @property
    def is_running(self) -> bool:
        return self.started_at is not None

    async def start(self):
        if not self.wallets:
            self.logger.warning("No wallets to monitor for copy trading")
            return
        self.logger.info(f"Starting copy trade monitor for {len(self.wallets)} wallet(s)")
        for wallet in self.wallets:
            self.logger.info(f"  Tracking: {shorten_address(wallet)}")
        self.started_at = time.time()
        await self.stream.start()

    async def stop(self):
        await self.stream.stop()
        self.started_at = None
        self.logger.info("Copy trade monitor stopped")

    async def add_wallet(self, address: str) -> bool:
        if not is_valid_pubkey(address):
            self.logger.error(f"Invalid wallet address: {address}")
            return False
        if address in self.wallets:
            self.logger.warning(f"Wallet already tracked: {shorten_address(address)}")
            return False

        self.wallets.append(address)
        self.logger.info(f"Added wallet to copy trading: {shorten_address(address)}")
        await self.stream.resubscribe(self.wallets)
        return True

    async def remove_wallet(self, address: str) -> bool:
        if address not in self.wallets:
            return False

        self.wallets.remove(address)
        self.logger.info(f"Removed wallet from copy trading: {shorten_address(address)}")
        await self.stream.resubscribe(self.wallets)
        return True

    def get_monitored_wallets(self) -> List[str]:
        return list(self.wallets)

    def process_event(self, event: StreamEvent):
        if not self.dedup.check_and_add(event.signature):
            return

        copy_event = self.detector.detect(event, self.wallets)
        if copy_event is None:
            return

        if self.config.copy_buy_only and copy_event.direction != TradeDirection.BUY:
            return

        self.trades_detected += 1
        self.logger.info(
            f"COPY TRADE {copy_event.direction.value} {shorten_address(copy_event.mint)} "
            f"by {shorten_address(copy_event.wallet)} sig={copy_event.signature[:16]}..."
        )
        self.listener.on_copy_trade_detected(copy_event)

    def get_stats(self) -> dict:
        return {
            'running': self.is_running,
            'connected': self.stream.is_connected,
            'wallets': len(self.wallets),
            'trades_detected': self.trades_detected,
            'signatures_seen': len(self.dedup),
            'duplicates': self.dedup.duplicates,
            **self.stream.stats,
        }
