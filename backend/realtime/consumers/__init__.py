"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .provider_consumer import ProviderConsumer
from .customer_consumer import CustomerConsumer

__all__ = [
    "BaseConsumer",
    "ProviderConsumer",
    "CustomerConsumer",
]
