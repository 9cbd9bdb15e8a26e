"""
Core Listener
=============

Observer interface through which the core reports to the orchestrator.
One method per event kind; implementations must return quickly and
schedule any slow work themselves.
"""
from abc import ABC, abstractmethod

from .models import LaunchCandidate, CopyEvent


class CoreListener(ABC):

    @abstractmethod
    def on_launch_detected(self, candidate: LaunchCandidate) -> None:
        """A new asset launch passed dedup and detection."""

    @abstractmethod
    def on_copy_trade_detected(self, event: CopyEvent) -> None:
        """A tracked wallet traded."""

    @abstractmethod
    def on_fatal_error(self, error: Exception) -> None:
        """A component gave up (e.g. reconnection exhausted). Others keep running."""
