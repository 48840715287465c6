"""
Container startup from configuration.

This module builds a service container from an ApplicationConfig: it selects
the backend, registers the configured services and discovers handler
classes in the configured modules.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from ..core.domain.registration import ServiceKey, ServiceLifetime
from .container import ServiceContainer
from .hosting import ModuleHostingEnvironment, load_type, register_subclasses

if TYPE_CHECKING:
    from ..infrastructure.config.models import ApplicationConfig

logger = logging.getLogger(__name__)


class ContainerStartup:
    """
    Manages container construction and shutdown for an application.

    Usage:
        startup = ContainerStartup(config)
        container = startup.configure()
        ...
        startup.shutdown()
    """

    def __init__(self, config: 'ApplicationConfig') -> None:
        self._config = config
        self._container: Optional[ServiceContainer] = None
        self._configured_keys: List[ServiceKey] = []

    @property
    def container(self) -> Optional[ServiceContainer]:
        return self._container

    @property
    def configured_keys(self) -> List[ServiceKey]:
        """Keys of the services registered from configuration, in order."""
        return list(self._configured_keys)

    def configure(self) -> ServiceContainer:
        """
        Build the container and register everything the configuration names.

        Returns:
            The configured container (the same one on repeated calls)

        Raises:
            TypeLoadException: If a configured type path cannot be loaded
            InvalidRegistrationException: If a registration is rejected
        """
        if self._container is not None:
            return self._container

        from ..infrastructure.backends import create_backend

        container_config = self._config.container
        logger.info(f"Configuring service container with '{container_config.backend}' backend")

        container = ServiceContainer(
            backend=create_backend(container_config.backend),
            implicit_lifetime=container_config.implicit_lifetime
        )
        try:
            self._register_services(container)
            self._discover_services(container)
        except Exception:
            container.dispose()
            raise

        self._container = container
        logger.info(f"Service configuration completed: {len(container.get_registrations())} registrations")
        return container

    def resolve_configured(self) -> List[ServiceKey]:
        """
        Resolve every service registered from configuration once.

        Per-request services are resolved inside a throwaway request scope.

        Returns:
            The keys that were resolved
        """
        container = self.configure()
        with container.begin_request():
            for key in self._configured_keys:
                container.get_instance(key.service_type, key.service_name)
        return self.configured_keys

    def shutdown(self) -> None:
        """Dispose the container."""
        if self._container is None:
            return
        self._container.dispose()
        self._container = None
        logger.info("Service container shut down")

    def _register_services(self, container: ServiceContainer) -> None:
        for entry in self._config.services:
            service_type = load_type(entry.service)
            implementation_type = load_type(entry.implementation) if entry.implementation else None
            container.register(
                service_type,
                implementation_type,
                service_name=entry.name,
                lifetime=ServiceLifetime.parse(entry.lifetime)
            )
            self._configured_keys.append(ServiceKey(service_type, entry.name))

    def _discover_services(self, container: ServiceContainer) -> None:
        for entry in self._config.discovery:
            base_type = load_type(entry.base_type)
            environment = ModuleHostingEnvironment(entry.modules)
            registered = register_subclasses(container, environment, base_type, entry.lifetime)
            self._configured_keys.extend(ServiceKey(service_type) for service_type in registered)
