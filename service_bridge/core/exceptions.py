"""
Exception hierarchy for the service container.

Every error raised by the container, the injector builder or a backend
adapter derives from ServiceBridgeException so that callers can catch
container failures without catching unrelated errors.
"""

from typing import Any, Optional


def _type_name(service_type: Any) -> str:
    return getattr(service_type, '__qualname__', None) or repr(service_type)


class ServiceBridgeException(Exception):
    """Base exception for all service container errors."""
    pass


class ContainerDisposedException(ServiceBridgeException):
    """Raised when an operation is invoked on a disposed container."""

    def __init__(self, message: str = "The service container has been disposed") -> None:
        super().__init__(message)


class InvalidRegistrationException(ServiceBridgeException, ValueError):
    """Raised when null or incompatible types are passed to the container."""
    pass


class NoSuitableConstructorException(ServiceBridgeException):
    """Raised when a type exposes no constructor the injector may invoke."""

    def __init__(self, target_type: Any, reason: str = "no public constructor") -> None:
        super().__init__(f"No suitable constructor for {_type_name(target_type)}: {reason}")
        self.target_type = target_type


class TypeLoadException(ServiceBridgeException):
    """Raised when the members of a type cannot be introspected."""

    def __init__(self, target_type: Any, member: Optional[str], cause: BaseException) -> None:
        location = _type_name(target_type)
        if member:
            location = f"{location}.{member}"
        super().__init__(f"Failed to load type information for {location}: {cause}")
        self.target_type = target_type
        self.member = member
        self.cause = cause


class ServiceResolutionException(ServiceBridgeException):
    """
    Raised when an instance cannot be produced for a service key.

    Attributes:
        service_type: The requested service type
        service_name: The requested registration name, None for the default one
    """

    def __init__(self, message: str, service_type: Any = None,
                 service_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.service_type = service_type
        self.service_name = service_name

    def matches(self, service_type: Any, service_name: Optional[str] = None) -> bool:
        """Check whether the error was raised for exactly this service key."""
        return self.service_type is service_type and self.service_name == service_name


class ServiceNotRegisteredException(ServiceResolutionException):
    """Raised when no registration exists for the requested service key."""

    def __init__(self, service_type: Any, service_name: Optional[str] = None) -> None:
        if service_name is None:
            message = f"Service {_type_name(service_type)} is not registered"
        else:
            message = f"Service {_type_name(service_type)} named '{service_name}' is not registered"
        super().__init__(message, service_type, service_name)


class CircularDependencyException(ServiceResolutionException):
    """Raised when circular dependencies are detected."""
    pass
