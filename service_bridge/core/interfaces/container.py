"""
Service container interface.

The uniform, backend-independent surface application code programs against.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Type, TypeVar

from ..domain.registration import ServiceLifetime

T = TypeVar('T')


class IServiceContainer(ABC):
    """Interface for dependency injection containers."""

    @abstractmethod
    def register(self,
                 service_type: Type[T],
                 implementation_type: Optional[Type[T]] = None,
                 service_name: Optional[str] = None,
                 lifetime: ServiceLifetime = ServiceLifetime.TRANSIENT) -> 'IServiceContainer':
        """
        Register a type mapping with the container.

        Args:
            service_type: Interface or base type that will be requested
            implementation_type: Class that will actually be built, defaults to service_type
            service_name: Registration name, None for the default registration
            lifetime: Service lifetime management

        Returns:
            The container, for chaining

        Raises:
            InvalidRegistrationException: If a type is missing or incompatible
            ContainerDisposedException: If the container has been disposed
        """
        pass

    @abstractmethod
    def register_instance(self, service_type: Type[T], instance: T,
                          service_name: Optional[str] = None) -> 'IServiceContainer':
        """
        Register a pre-built instance as a singleton.

        The instance is not run through the injector.
        """
        pass

    @abstractmethod
    def get_instance(self, service_type: Type[T], service_name: Optional[str] = None) -> T:
        """
        Resolve a service instance.

        Unregistered concrete classes are implicitly self-registered on
        first request.

        Raises:
            ServiceNotRegisteredException: If the key is not registered
            ServiceResolutionException: If the service cannot be built
        """
        pass

    @abstractmethod
    def try_get_instance(self, service_type: Type[T], service_name: Optional[str] = None) -> Optional[T]:
        """Resolve a service, returning None if the key is not registered."""
        pass

    @abstractmethod
    def get_all_instances(self, service_type: Type[T]) -> List[T]:
        """Resolve one instance per registration of a service type."""
        pass

    @abstractmethod
    def inject_existing(self, instance: Any) -> Any:
        """Run property and method injection on an already constructed instance."""
        pass

    @abstractmethod
    def is_registered(self, service_type: Any, service_name: Optional[str] = None) -> bool:
        """Check if a service key is registered."""
        pass

    @abstractmethod
    def dispose(self) -> None:
        """Release the backend and caches. Safe to call more than once."""
        pass
