"""
Backend adapter interface.

A backend adapter satisfies the container contract on top of one specific
injection engine. The container never branches on which backend is active.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional

from ..domain.registration import RegistrationBuilder, ServiceLifetime

if TYPE_CHECKING:
    from ..injection.builder import InjectorBuilder
    from .container import IServiceContainer


class IBackendAdapter(ABC):
    """Interface for injection engine adapters."""

    name: str = ""

    @abstractmethod
    def attach(self, container: 'IServiceContainer', injector: 'InjectorBuilder') -> None:
        """
        Bind the adapter to the container that owns it.

        The container is used to resolve dependencies of built instances and
        the injector supplies the shared injection plans.
        """
        pass

    @abstractmethod
    def prepare(self, service_type: Any, implementation_type: Any,
                service_name: Optional[str], lifetime: ServiceLifetime) -> RegistrationBuilder:
        """
        Create the backend registration builder for a type mapping.

        Nothing is bound until commit() is called with the returned builder.
        """
        pass

    @abstractmethod
    def commit(self, builder: RegistrationBuilder) -> Any:
        """
        Bind a prepared registration, superseding any mapping with the same key.

        Returns:
            Backend-specific registration handle
        """
        pass

    def register(self, service_type: Any, implementation_type: Any,
                 service_name: Optional[str], lifetime: ServiceLifetime) -> Any:
        """Prepare and commit a registration in one step."""
        return self.commit(self.prepare(service_type, implementation_type, service_name, lifetime))

    @abstractmethod
    def register_instance(self, service_type: Any, instance: Any,
                          service_name: Optional[str]) -> Any:
        """Bind a pre-built instance."""
        pass

    @abstractmethod
    def resolve(self, service_type: Any, service_name: Optional[str]) -> Any:
        """
        Obtain an instance for a service key.

        Raises:
            ServiceNotRegisteredException: If the key is not bound
        """
        pass

    @abstractmethod
    def resolve_all(self, service_type: Any) -> List[Any]:
        """Obtain one instance per registration of a type, in registration order."""
        pass

    @abstractmethod
    def inject_existing(self, instance: Any) -> None:
        """Populate an existing instance from the backend's resolution."""
        pass

    @abstractmethod
    def dispose(self) -> None:
        """Release every backend-owned resource."""
        pass
