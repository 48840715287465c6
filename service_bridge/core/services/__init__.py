"""Core services."""

from .registration_events import RegistrationEventHub, RegistrationSubscription

__all__ = [
    "RegistrationEventHub",
    "RegistrationSubscription",
]
