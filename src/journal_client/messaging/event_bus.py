"""
Per-channel subscriber registries for connection events
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class EventChannel(str, Enum):
    MESSAGE = "message"     # Parsed inbound envelopes
    STATUS = "status"       # Connection status as a bool


@dataclass(frozen=True)
class Subscription:
    """Handle returned by subscribe; unsubscribing by handle is unambiguous for duplicate callbacks"""
    channel: EventChannel
    id: int


class EventBus:
    """
    Two independent subscriber sets, message and status

    notify() iterates a snapshot, so subscribers may subscribe or unsubscribe
    while being notified. A failing subscriber is logged and skipped.
    """

    def __init__(self):
        self._subscribers: Dict[EventChannel, Dict[int, Callable]] = {
            channel: {} for channel in EventChannel
        }
        self._ids = itertools.count(1)

    def subscribe(self, channel: EventChannel, callback: Callable) -> Subscription:
        subscription = Subscription(channel=EventChannel(channel), id=next(self._ids))
        self._subscribers[subscription.channel][subscription.id] = callback
        logger.debug(f"Added {subscription.channel.value} subscriber {subscription.id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscriber; returns False if it was not registered"""
        return self._subscribers[subscription.channel].pop(subscription.id, None) is not None

    def subscriber_count(self, channel: EventChannel) -> int:
        return len(self._subscribers[EventChannel(channel)])

    def clear(self, channel: Optional[EventChannel] = None) -> None:
        channels = [EventChannel(channel)] if channel else list(EventChannel)
        for ch in channels:
            self._subscribers[ch].clear()

    async def notify(self, channel: EventChannel, payload: Any) -> int:
        """
        Deliver payload to every current subscriber of channel

        Returns:
            Number of subscribers that handled the payload without raising
        """
        channel = EventChannel(channel)
        delivered = 0
        for subscription_id, callback in list(self._subscribers[channel].items()):
            try:
                result = callback(payload)
                if asyncio.iscoroutine(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Error in {channel.value} subscriber {subscription_id}: {e}")
        return delivered
