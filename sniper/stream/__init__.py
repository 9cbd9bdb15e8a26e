"""
Transaction stream - websocket subscription with reconnect.
"""
from .client import EventStreamClient

__all__ = ['EventStreamClient']
