"""
Service Bridge - a backend-agnostic dependency injection facade.

Application code registers and resolves services through one container
interface while the actual binding is delegated to a pluggable backend.
Constructor, property and method injection are driven by type annotations
and the injection marker.
"""

__version__ = "0.1.0"

# Public API exports
from .core.domain.registration import ServiceKey, ServiceLifetime
from .core.exceptions import (
    CircularDependencyException,
    ContainerDisposedException,
    InvalidRegistrationException,
    NoSuitableConstructorException,
    ServiceBridgeException,
    ServiceNotRegisteredException,
    ServiceResolutionException,
    TypeLoadException,
)
from .core.injection.marker import Injection, constructor, injection, injection_required
from .core.interfaces.container import IServiceContainer
from .application.container import ServiceContainer
from .application.startup import ContainerStartup
from .infrastructure.backends import DependencyInjectorBackend, NativeBackend, create_backend
from .extensions.interception import IInterceptor, Invocation, enable_interception

__all__ = [
    "ServiceKey",
    "ServiceLifetime",
    "CircularDependencyException",
    "ContainerDisposedException",
    "InvalidRegistrationException",
    "NoSuitableConstructorException",
    "ServiceBridgeException",
    "ServiceNotRegisteredException",
    "ServiceResolutionException",
    "TypeLoadException",
    "Injection",
    "constructor",
    "injection",
    "injection_required",
    "IServiceContainer",
    "ServiceContainer",
    "ContainerStartup",
    "DependencyInjectorBackend",
    "NativeBackend",
    "create_backend",
    "IInterceptor",
    "Invocation",
    "enable_interception",
]
