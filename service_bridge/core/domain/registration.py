"""
Registration domain models.

This module defines the service key, lifetime tokens, committed registrations
and the transient event published before a registration is committed.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Union

from ..exceptions import InvalidRegistrationException


class ServiceLifetime(Enum):
    """Service lifetime management options."""
    TRANSIENT = "transient"      # New instance created each time
    SINGLETON = "singleton"      # Single instance shared for the container's lifetime
    PER_THREAD = "per_thread"    # Single instance per calling thread
    PER_REQUEST = "per_request"  # Single instance per externally supplied request scope

    @classmethod
    def parse(cls, value: Union[str, 'ServiceLifetime']) -> 'ServiceLifetime':
        """
        Parse a lifetime from its configuration spelling.

        Accepts enum members, values ("per_thread") and names ("PER_THREAD"),
        ignoring case and treating dashes as underscores.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower().replace('-', '_')
            for member in cls:
                if member.value == normalized:
                    return member
        raise InvalidRegistrationException(f"Unknown service lifetime: {value!r}")


@dataclass(frozen=True)
class ServiceKey:
    """Identity of a registration: the service type and an optional name."""

    service_type: Any
    service_name: Optional[str] = None

    def __str__(self) -> str:
        type_name = getattr(self.service_type, '__qualname__', repr(self.service_type))
        if self.service_name is None:
            return type_name
        return f"{type_name}[{self.service_name}]"


ActivationHook = Callable[[Any], Any]


class RegistrationBuilder:
    """
    Mutable, backend-specific description of a registration being committed.

    Backends subclass this to expose their native registration object.
    Registration event subscribers may append activation hooks: each hook
    receives the fully injected instance and returns either None (keep the
    instance) or a replacement object.
    """

    def __init__(self, service_type: Any, implementation_type: Any,
                 service_name: Optional[str], lifetime: ServiceLifetime) -> None:
        self.service_type = service_type
        self.implementation_type = implementation_type
        self.service_name = service_name
        self.lifetime = lifetime
        self.activation_hooks: List[ActivationHook] = []

    @property
    def key(self) -> ServiceKey:
        return ServiceKey(self.service_type, self.service_name)

    def on_activated(self, hook: ActivationHook) -> 'RegistrationBuilder':
        """Append an activation hook and return the builder for chaining."""
        self.activation_hooks.append(hook)
        return self

    def apply_hooks(self, instance: Any) -> Any:
        for hook in self.activation_hooks:
            replacement = hook(instance)
            if replacement is not None:
                instance = replacement
        return instance


@dataclass(frozen=True)
class ServiceRegistration:
    """A committed registration. Superseded, never mutated, on re-registration."""

    service_type: Any
    implementation_type: Any
    service_name: Optional[str]
    lifetime: ServiceLifetime
    handle: Any = None
    """Backend-specific handle returned by the commit step."""

    implicit: bool = False
    """True when created by resolving an unregistered concrete type."""

    instance: bool = False
    """True for pre-built instances bound through register_instance."""

    registered_at: float = field(default_factory=time.time)

    @property
    def key(self) -> ServiceKey:
        return ServiceKey(self.service_type, self.service_name)


@dataclass(frozen=True)
class RegistrationEvent:
    """
    Published to every subscriber before a registration is committed.

    The event itself is immutable; subscribers alter the registration
    through the mutable backend builder.
    """

    service_type: Any
    implementation_type: Any
    service_name: Optional[str]
    lifetime: ServiceLifetime
    builder: RegistrationBuilder

    @classmethod
    def from_builder(cls, builder: RegistrationBuilder) -> 'RegistrationEvent':
        return cls(
            service_type=builder.service_type,
            implementation_type=builder.implementation_type,
            service_name=builder.service_name,
            lifetime=builder.lifetime,
            builder=builder
        )
