"""
Core module containing the injection engine, domain models and contracts.

Nothing in this layer depends on a particular injection backend.
"""

from .domain.registration import RegistrationEvent, ServiceKey, ServiceLifetime, ServiceRegistration
from .domain.plan import InjectionPlan
from .exceptions import (
    CircularDependencyException,
    ContainerDisposedException,
    InvalidRegistrationException,
    NoSuitableConstructorException,
    ServiceBridgeException,
    ServiceNotRegisteredException,
    ServiceResolutionException,
    TypeLoadException,
)
from .interfaces.backend import IBackendAdapter
from .interfaces.container import IServiceContainer
from .interfaces.hosting import IHostingEnvironment

__all__ = [
    "RegistrationEvent",
    "ServiceKey",
    "ServiceLifetime",
    "ServiceRegistration",
    "InjectionPlan",
    "CircularDependencyException",
    "ContainerDisposedException",
    "InvalidRegistrationException",
    "NoSuitableConstructorException",
    "ServiceBridgeException",
    "ServiceNotRegisteredException",
    "ServiceResolutionException",
    "TypeLoadException",
    "IBackendAdapter",
    "IServiceContainer",
    "IHostingEnvironment",
]
