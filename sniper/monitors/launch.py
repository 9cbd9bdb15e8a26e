"""
Launch Monitor
==============

Stream + dedup + launch detector. Every signature is processed at most
once per dedup window; detected launches go to the listener.
"""
import logging
import time
from typing import Optional

from sniper.config import MonitoringConfig
from sniper.core.dedup import DedupWindow
from sniper.core.helpers import shorten_address
from sniper.core.policies import RetryPolicy
from sniper.detectors.launch import LaunchDetector
from sniper.listeners import CoreListener
from sniper.models import StreamEvent
from sniper.stream.client import EventStreamClient

logger = logging.getLogger(__name__)

LAUNCH_REQUEST_ID = 1


class LaunchMonitor:

    def __init__(
        self,
        config: MonitoringConfig,
        ws_url: Optional[str],
        listener: CoreListener,
        detector: Optional[LaunchDetector] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.listener = listener
        self.logger = logger or logging.getLogger(__name__)
        self.detector = detector or LaunchDetector.for_platforms(config.platforms, self.logger)
        self.dedup = DedupWindow(config.dedup_max_size, config.dedup_evict_count)

        self.stream = EventStreamClient(
            name='launch',
            ws_url=ws_url,
            account_include=self.detector.program_ids,
            on_event=self.process_event,
            on_fatal=listener.on_fatal_error,
            commitment=config.commitment,
            request_id=LAUNCH_REQUEST_ID,
            ping_interval=config.ping_interval_ms / 1000,
            connect_timeout=config.connect_timeout_ms / 1000,
            reconnect_policy=RetryPolicy(
                max_attempts=config.max_reconnect_attempts,
                base_delay=config.reconnect_delay_ms / 1000,
            ),
            logger=self.logger,
        )

        self.launches_detected = 0
        self.started_at: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self.started_at is not None

    async def start(self):
        if not self.detector.matchers:
            self.logger.warning("No known platforms configured, launch monitor not started")
            return
        self.logger.info(f"Starting launch monitor: {', '.join(v.value for v in self.detector.venues)}")
        self.started_at = time.time()
        await self.stream.start()

    async def stop(self):
        await self.stream.stop()
        self.started_at = None
        self.logger.info("Launch monitor stopped")

    def process_event(self, event: StreamEvent):
        if not self.dedup.check_and_add(event.signature):
            return

        candidate = self.detector.detect(event)
        if candidate is None:
            return

        self.launches_detected += 1
        self.logger.info(
            f"NEW TOKEN [{candidate.venue.value}] {shorten_address(candidate.mint)} "
            f"creator={shorten_address(candidate.creator or '')} sig={candidate.signature[:16]}..."
        )
        self.listener.on_launch_detected(candidate)

    def get_stats(self) -> dict:
        return {
            'running': self.is_running,
            'connected': self.stream.is_connected,
            'launches_detected': self.launches_detected,
            'signatures_seen': len(self.dedup),
            'duplicates': self.dedup.duplicates,
            'uptime': time.time() - self.started_at if self.started_at else 0.0,
            **self.stream.stats,
        }
