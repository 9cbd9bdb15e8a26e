"""
Error Taxonomy
==============

Transient failures are retried where they happen, validation failures are
rejected before any network call, and fatal failures are surfaced to the
orchestrator through ``CoreListener.on_fatal_error``.
"""


class SniperError(Exception):
    """Base class for all bot errors."""


class ConfigError(SniperError):
    """Configuration file missing or invalid."""


class ValidationError(SniperError):
    """Request rejected before any network call (no retry)."""


class WalletError(SniperError):
    """Wallet not initialized or key material invalid."""


class RoutingError(SniperError):
    """Routing service returned no quote, no route, or no swap transaction."""


class TransactionFailedError(SniperError):
    """Transaction was not confirmed or confirmed with an on-chain error."""


class StreamConnectError(SniperError):
    """A single stream connection attempt failed or timed out."""


class ReconnectExhaustedError(SniperError):
    """Stream reconnection attempts exhausted. Fatal for that stream only."""

    def __init__(self, stream: str, attempts: int):
        super().__init__(f"{stream}: max reconnection attempts reached ({attempts})")
        self.stream = stream
        self.attempts = attempts
