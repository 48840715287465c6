"""
Registration event hub.

Synchronous, ordered, in-process publication of registration events. Every
subscriber sees the event before the backend commits the registration, so
mutations made through the event's builder are part of the commit.
"""

import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from ..domain.registration import RegistrationEvent

logger = logging.getLogger(__name__)

RegistrationHandler = Callable[[RegistrationEvent], Any]


class RegistrationSubscription:
    """Represents a registration event subscription."""

    def __init__(self, subscription_id: str, handler: RegistrationHandler):
        self.subscription_id = subscription_id
        self.handler = handler
        self.created_at = time.time()
        self.call_count = 0
        self.last_called: Optional[float] = None


class RegistrationEventHub:
    """
    Publishes registration events to subscribers in subscription order.

    Subscribers cannot veto a registration. An exception raised by a
    subscriber propagates to the caller of register() and the registration
    is not committed.
    """

    def __init__(self) -> None:
        self._subscriptions: List[RegistrationSubscription] = []
        self._lock = threading.Lock()
        self._metrics: Dict[str, int] = {
            'events_published': 0,
            'handler_calls': 0,
        }

    def __iadd__(self, handler: RegistrationHandler) -> 'RegistrationEventHub':
        self.subscribe(handler)
        return self

    def subscribe(self, handler: RegistrationHandler) -> str:
        """
        Subscribe a handler to every registration.

        Returns:
            Subscription ID usable with unsubscribe()
        """
        if not callable(handler):
            raise TypeError("Registration handler must be callable")

        subscription = RegistrationSubscription(str(uuid.uuid4()), handler)
        with self._lock:
            self._subscriptions.append(subscription)

        logger.debug(f"Added registration subscription {subscription.subscription_id}")
        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription by ID."""
        with self._lock:
            for i, subscription in enumerate(self._subscriptions):
                if subscription.subscription_id == subscription_id:
                    self._subscriptions.pop(i)
                    logger.debug(f"Removed registration subscription {subscription_id}")
                    return True
        return False

    def publish(self, event: RegistrationEvent) -> None:
        """Deliver an event to every subscriber on the calling thread."""
        with self._lock:
            subscriptions = list(self._subscriptions)
            self._metrics['events_published'] += 1

        for subscription in subscriptions:
            subscription.handler(event)
            subscription.call_count += 1
            subscription.last_called = time.time()

        if subscriptions:
            with self._lock:
                self._metrics['handler_calls'] += len(subscriptions)

    def clear(self) -> None:
        """Remove every subscription."""
        with self._lock:
            self._subscriptions.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def get_metrics(self) -> Dict[str, Any]:
        """Get hub metrics."""
        with self._lock:
            return {
                **self._metrics,
                'subscriptions_count': len(self._subscriptions),
            }
