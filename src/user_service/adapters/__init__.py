"""
User event publishers.

This package provides the adapter pattern implementation for the message
bus user events are relayed to (NATS, In-Memory).
"""
from .base import AdapterError, DeliveryReport, PublishError, UserEventPublisher
from .nats_adapter import NatsUserEventPublisher
from .memory_adapter import MemoryMessage, MemoryUserEventPublisher

__all__ = [
    "AdapterError",
    "DeliveryReport",
    "PublishError",
    "UserEventPublisher",
    "NatsUserEventPublisher",
    "MemoryMessage",
    "MemoryUserEventPublisher",
]
