"""
Monitors - stream subscriptions feeding the detectors.
"""
from .launch import LaunchMonitor
from .copy import CopyTradeMonitor

__all__ = ['LaunchMonitor', 'CopyTradeMonitor']
