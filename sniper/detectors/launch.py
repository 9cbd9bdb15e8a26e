"""
Launch Detector
===============

Runs the registered venue matchers over a stream event in a fixed order
and returns the first launch found.

Usage:
    detector = LaunchDetector.for_platforms(["pumpfun", "raydium"])
    candidate = detector.detect(event)
"""
import logging
from typing import Iterable, List, Optional, Sequence

from sniper.models import LaunchCandidate, StreamEvent, Venue
from .base import VenueMatcher
from .venues import DEFAULT_MATCHERS

logger = logging.getLogger(__name__)


class LaunchDetector:

    def __init__(self, matchers: Sequence[VenueMatcher]):
        self.matchers: List[VenueMatcher] = list(matchers)

    @classmethod
    def for_platforms(
        cls,
        platforms: Iterable[str],
        log: Optional[logging.Logger] = None,
    ) -> 'LaunchDetector':
        """Build a detector for the configured platform names, keeping registry order."""
        log = log or logger
        wanted = set()
        for name in platforms:
            venue = Venue.from_platform(name)
            if venue is None:
                log.warning(f"Unknown platform '{name}' ignored")
                continue
            wanted.add(venue)

        return cls([m() for m in DEFAULT_MATCHERS if m.venue in wanted])

    @property
    def venues(self) -> List[Venue]:
        return [m.venue for m in self.matchers]

    @property
    def program_ids(self) -> List[str]:
        """Accounts to subscribe to for these venues."""
        return [m.program_id for m in self.matchers]

    def detect(self, event: StreamEvent) -> Optional[LaunchCandidate]:
        for matcher in self.matchers:
            candidate = matcher.detect(event)
            if candidate is not None:
                return candidate
        return None
