"""
Service container facade.

This module provides the backend-independent container application code
registers against. Registrations flow through the registration event hub to
the active backend adapter; resolutions are delegated to the backend, which
builds instances through the shared, cached injection plans.
"""

import inspect
import logging
import threading
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from ..core.domain.registration import (
    RegistrationEvent, ServiceKey, ServiceLifetime, ServiceRegistration
)
from ..core.exceptions import (
    CircularDependencyException,
    ContainerDisposedException,
    InvalidRegistrationException,
    ServiceBridgeException,
    ServiceNotRegisteredException,
    ServiceResolutionException,
)
from ..core.injection.builder import InjectorBuilder
from ..core.injection.scanner import is_abstract_type
from ..core.interfaces.backend import IBackendAdapter
from ..core.interfaces.container import IServiceContainer
from ..core.services.registration_events import RegistrationEventHub
from .lifetime import RequestScope

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceContainer(IServiceContainer):
    """
    Dependency injection container facade.

    Supports named registrations, four lifetimes (transient, singleton,
    per-thread, per-request), constructor/property/method injection,
    implicit self-registration of concrete classes and circular dependency
    detection, independently of the backend doing the actual binding.

    Usage:
        with ServiceContainer() as container:
            container.register(IRepository, SqlRepository, lifetime=ServiceLifetime.SINGLETON)
            service = container.get_instance(ReportService)
    """

    def __init__(self,
                 backend: Optional[IBackendAdapter] = None,
                 implicit_lifetime: Union[ServiceLifetime, str] = ServiceLifetime.TRANSIENT,
                 injector: Optional[InjectorBuilder] = None) -> None:
        if backend is None:
            from ..infrastructure.backends.native import NativeBackend
            backend = NativeBackend()

        self._backend = backend
        self._injector = injector or InjectorBuilder()
        self._implicit_lifetime = ServiceLifetime.parse(implicit_lifetime)
        self._registering = RegistrationEventHub()
        self._registrations: Dict[ServiceKey, ServiceRegistration] = {}
        self._extensions: Dict[type, Any] = {}
        self._lock = threading.RLock()
        self._local = threading.local()
        self._disposed = False

        self._backend.attach(self, self._injector)
        self.register_instance(IServiceContainer, self)
        logger.info(f"Service container created with '{backend.name}' backend")

    @property
    def backend(self) -> IBackendAdapter:
        return self._backend

    @property
    def injector(self) -> InjectorBuilder:
        return self._injector

    @property
    def registering(self) -> RegistrationEventHub:
        """Hub publishing an event before every registration is committed."""
        return self._registering

    @property
    def disposed(self) -> bool:
        return self._disposed

    def register(self,
                 service_type: Type[T],
                 implementation_type: Optional[Type[T]] = None,
                 service_name: Optional[str] = None,
                 lifetime: Union[ServiceLifetime, str] = ServiceLifetime.TRANSIENT) -> 'ServiceContainer':
        """Register a type mapping with the container."""
        self._ensure_not_disposed()
        lifetime = ServiceLifetime.parse(lifetime)
        implementation_type = self._validate_mapping(service_type, implementation_type)

        with self._lock:
            self._ensure_not_disposed()
            self._register(service_type, implementation_type, service_name, lifetime)
        return self

    def register_instance(self, service_type: Type[T], instance: T,
                          service_name: Optional[str] = None) -> 'ServiceContainer':
        """Register a specific instance as a singleton."""
        self._ensure_not_disposed()
        self._validate_service_type(service_type)
        if instance is None:
            raise InvalidRegistrationException(
                f"Cannot register None as instance of {service_type.__qualname__}")
        if not self._is_instance(instance, service_type):
            raise InvalidRegistrationException(
                f"{type(instance).__qualname__} instance is not assignable to {service_type.__qualname__}")

        with self._lock:
            self._ensure_not_disposed()
            handle = self._backend.register_instance(service_type, instance, service_name)
            self._commit(ServiceRegistration(
                service_type=service_type,
                implementation_type=type(instance),
                service_name=service_name,
                lifetime=ServiceLifetime.SINGLETON,
                handle=handle,
                instance=True
            ))
        return self

    def get_instance(self, service_type: Type[T], service_name: Optional[str] = None) -> T:
        """Resolve a service instance."""
        self._ensure_not_disposed()
        if service_type is None:
            raise InvalidRegistrationException("service_type must not be None")

        key = ServiceKey(service_type, service_name)
        self._ensure_implicit_registration(key)
        return self._resolve(key)  # type: ignore[no-any-return]

    def try_get_instance(self, service_type: Type[T], service_name: Optional[str] = None) -> Optional[T]:
        """Try to resolve a service instance, returning None if it is not registered."""
        try:
            return self.get_instance(service_type, service_name)
        except ServiceNotRegisteredException as e:
            if e.matches(service_type, service_name):
                return None
            raise

    def get_all_instances(self, service_type: Type[T]) -> List[T]:
        """Resolve one instance per registration of service_type."""
        self._ensure_not_disposed()
        if service_type is None:
            raise InvalidRegistrationException("service_type must not be None")

        try:
            return list(self._backend.resolve_all(service_type))
        except ServiceBridgeException:
            raise
        except Exception as e:
            raise ServiceResolutionException(
                f"Failed to resolve all instances of {service_type.__qualname__}: {e}",
                service_type) from e

    def inject_existing(self, instance: T) -> T:
        """Run an existing object through the container and perform injection on it."""
        self._ensure_not_disposed()
        if instance is None:
            raise InvalidRegistrationException("Cannot inject into None")
        self._backend.inject_existing(instance)
        return instance

    def is_registered(self, service_type: Any, service_name: Optional[str] = None) -> bool:
        """Check if a service key is registered."""
        return ServiceKey(service_type, service_name) in self._registrations

    def get_registrations(self) -> List[ServiceRegistration]:
        """Get the committed registrations in commit order (for debugging)."""
        with self._lock:
            return list(self._registrations.values())

    def begin_request(self) -> RequestScope:
        """
        Create a request scope for per-request services.

        The hosting environment enters the returned scope for the duration
        of a request; leaving it disposes the request's instances.
        """
        self._ensure_not_disposed()
        return RequestScope()

    def add_extension(self, extension: Any) -> Any:
        """
        Add a container extension.

        Accepts an extension instance or class; each extension type is
        initialized once. Returns the active extension instance.
        """
        self._ensure_not_disposed()
        if inspect.isclass(extension):
            extension_type = extension
        else:
            extension_type = type(extension)

        with self._lock:
            existing = self._extensions.get(extension_type)
            if existing is not None:
                return existing
            if inspect.isclass(extension):
                extension = extension()
            extension.initialize(self)
            self._extensions[extension_type] = extension

        logger.debug(f"Added container extension {extension_type.__qualname__}")
        return extension

    def dispose(self) -> None:
        """Dispose the container, releasing the backend and clearing caches."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True

        try:
            self._backend.dispose()
        finally:
            self._injector.clear()
            self._registering.clear()
            with self._lock:
                self._registrations.clear()
                self._extensions.clear()
            logger.info("Service container disposed")

    def __enter__(self) -> 'ServiceContainer':
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.dispose()

    def _register(self, service_type: Any, implementation_type: Any, service_name: Optional[str],
                  lifetime: ServiceLifetime, implicit: bool = False) -> ServiceRegistration:
        builder = self._backend.prepare(service_type, implementation_type, service_name, lifetime)
        self._registering.publish(RegistrationEvent.from_builder(builder))
        handle = self._backend.commit(builder)

        registration = ServiceRegistration(
            service_type=service_type,
            implementation_type=implementation_type,
            service_name=service_name,
            lifetime=lifetime,
            handle=handle,
            implicit=implicit
        )
        self._commit(registration)
        logger.debug(
            f"Registered {registration.key} -> {implementation_type.__qualname__} "
            f"with {lifetime.name} lifetime")
        return registration

    def _commit(self, registration: ServiceRegistration) -> None:
        # a superseded registration moves to the end of the commit order
        self._registrations.pop(registration.key, None)
        self._registrations[registration.key] = registration

    def _ensure_implicit_registration(self, key: ServiceKey) -> None:
        if key in self._registrations or not self._can_self_register(key.service_type):
            return

        with self._lock:
            self._ensure_not_disposed()
            if key in self._registrations:
                return
            logger.debug(f"Implicitly registering {key} with {self._implicit_lifetime.name} lifetime")
            self._register(key.service_type, key.service_type, key.service_name,
                           self._implicit_lifetime, implicit=True)

    def _resolve(self, key: ServiceKey) -> Any:
        stack = self._resolution_stack()
        if key in stack:
            cycle = " -> ".join(str(k) for k in stack + [key])
            raise CircularDependencyException(
                f"Circular dependency detected: {cycle}", key.service_type, key.service_name)

        stack.append(key)
        try:
            return self._backend.resolve(key.service_type, key.service_name)
        except CircularDependencyException:
            raise
        except ServiceResolutionException as e:
            if e.matches(key.service_type, key.service_name):
                raise
            raise ServiceResolutionException(
                f"Failed to resolve {key}: {e}", key.service_type, key.service_name) from e
        except ServiceBridgeException:
            raise
        except Exception as e:
            raise ServiceResolutionException(
                f"Failed to resolve {key}: {e}", key.service_type, key.service_name) from e
        finally:
            stack.pop()

    def _resolution_stack(self) -> List[ServiceKey]:
        stack = getattr(self._local, 'stack', None)
        if stack is None:
            stack = self._local.stack = []
        return stack  # type: ignore[no-any-return]

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise ContainerDisposedException()

    def _validate_service_type(self, service_type: Any) -> None:
        if service_type is None:
            raise InvalidRegistrationException("service_type must not be None")
        if not inspect.isclass(service_type):
            raise InvalidRegistrationException(f"service_type must be a class, got {service_type!r}")

    def _validate_mapping(self, service_type: Any, implementation_type: Any) -> Any:
        self._validate_service_type(service_type)
        if implementation_type is None:
            return service_type
        if not inspect.isclass(implementation_type):
            raise InvalidRegistrationException(
                f"implementation_type must be a class, got {implementation_type!r}")
        try:
            compatible = issubclass(implementation_type, service_type)
        except TypeError:
            # protocols that do not support issubclass() are taken on trust
            compatible = True
        if not compatible:
            raise InvalidRegistrationException(
                f"{implementation_type.__qualname__} is not assignable to {service_type.__qualname__}")
        return implementation_type

    @staticmethod
    def _is_instance(instance: Any, service_type: Any) -> bool:
        try:
            return isinstance(instance, service_type)
        except TypeError:
            return True

    @staticmethod
    def _can_self_register(service_type: Any) -> bool:
        return (inspect.isclass(service_type)
                and not is_abstract_type(service_type)
                and service_type.__module__ != 'builtins')
