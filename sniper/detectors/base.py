"""
Venue Matcher - Abstract interface for per-venue launch detection.

Usage:
    from sniper.detectors import VenueMatcher

    class MyVenueMatcher(VenueMatcher):
        venue = Venue.PUMP_FUN
        program_id = "..."
        log_markers = ("Program log: Instruction: Create",)

        def extract(self, event) -> Optional[LaunchCandidate]:
            ...
"""
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from sniper.models import LaunchCandidate, StreamEvent, Venue


class VenueMatcher(ABC):
    """
    Recognizes launches on one venue.

    Each matcher only knows its own venue's transaction shape, so a new
    venue is added by registering a new matcher, never by editing another.
    """

    venue: Venue
    program_id: str
    log_markers: Tuple[str, ...] = ()

    def __init__(self):
        self.total_matched = 0

    @property
    def name(self) -> str:
        return self.venue.value

    def matches(self, event: StreamEvent) -> bool:
        """Cheap pre-check on the log lines."""
        return event.has_log(*self.log_markers)

    @abstractmethod
    def extract(self, event: StreamEvent) -> Optional[LaunchCandidate]:
        """
        Pull the launch out of a transaction that passed ``matches``.

        Returns:
            LaunchCandidate, or None when the account layout is incomplete
        """
        pass

    def detect(self, event: StreamEvent) -> Optional[LaunchCandidate]:
        if not self.matches(event):
            return None
        candidate = self.extract(event)
        if candidate is not None:
            self.total_matched += 1
        return candidate
