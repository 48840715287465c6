"""
Backend adapter for the dependency-injector library.

Registrations become providers on a DynamicContainer. Instances are still
built by the container's injector; dependency-injector supplies the
lifetime primitives.
"""

import itertools
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from dependency_injector import containers, providers

from ...application.lifetime import require_request_scope
from ...core.domain.registration import RegistrationBuilder, ServiceKey, ServiceLifetime
from ...core.exceptions import ServiceNotRegisteredException
from .base import BackendAdapterBase

logger = logging.getLogger(__name__)


class DependencyInjectorRegistrationBuilder(RegistrationBuilder):
    """Registration builder exposing the dependency-injector provider class."""

    def __init__(self, service_type: Any, implementation_type: Any, service_name: Optional[str],
                 lifetime: ServiceLifetime, provider_class: type) -> None:
        super().__init__(service_type, implementation_type, service_name, lifetime)
        self.provider_class = provider_class
        self.provider: Optional[providers.Provider] = None
        """The provider bound on commit."""


class DependencyInjectorBackend(BackendAdapterBase):
    """
    Backend wrapping a dependency_injector DynamicContainer.

    An externally supplied container is used as is and left untouched on
    dispose; a container created by the adapter has its singletons reset.
    """

    name = "dependency_injector"

    def __init__(self, container: Optional[containers.DynamicContainer] = None) -> None:
        self._external_engine = container
        self._bindings: Dict[Any, Dict[Optional[str], providers.Provider]] = {}
        self._bindings_lock = threading.Lock()
        self._counter = itertools.count(1)
        super().__init__()

    def _lifetime_table(self) -> Dict[ServiceLifetime, Any]:
        return {
            ServiceLifetime.TRANSIENT: providers.Factory,
            ServiceLifetime.SINGLETON: providers.ThreadSafeSingleton,
            ServiceLifetime.PER_THREAD: providers.ThreadLocalSingleton,
            # request boundaries come from the active RequestScope
            ServiceLifetime.PER_REQUEST: providers.Factory,
        }

    def _build_engine(self) -> containers.DynamicContainer:
        if self._external_engine is not None:
            return self._external_engine
        return containers.DynamicContainer()

    def _release_engine(self, engine: containers.DynamicContainer) -> None:
        with self._bindings_lock:
            self._bindings.clear()
        if engine is not self._external_engine:
            engine.reset_singletons()

    def prepare(self, service_type: Any, implementation_type: Any,
                service_name: Optional[str], lifetime: ServiceLifetime) -> DependencyInjectorRegistrationBuilder:
        self._ensure_open()
        return DependencyInjectorRegistrationBuilder(
            service_type, implementation_type, service_name, lifetime,
            provider_class=self._policies.map(lifetime)
        )

    def commit(self, builder: RegistrationBuilder) -> providers.Provider:
        engine = self._ensure_engine()
        provider_class = getattr(builder, 'provider_class', None) or self._policies.map(builder.lifetime)

        activate = self._activator(builder)
        if builder.lifetime is ServiceLifetime.PER_REQUEST:
            activate = self._request_scoped(builder.key, activate)

        provider = provider_class(activate)
        if isinstance(builder, DependencyInjectorRegistrationBuilder):
            builder.provider = provider
        self._bind(engine, builder.key, provider)
        return provider

    def register_instance(self, service_type: Any, instance: Any,
                          service_name: Optional[str]) -> providers.Provider:
        engine = self._ensure_engine()
        provider = providers.Object(instance)
        self._bind(engine, ServiceKey(service_type, service_name), provider)
        return provider

    def resolve(self, service_type: Any, service_name: Optional[str]) -> Any:
        self._ensure_engine()
        provider = self._bindings.get(service_type, {}).get(service_name)
        if provider is None:
            raise ServiceNotRegisteredException(service_type, service_name)
        return provider()

    def resolve_all(self, service_type: Any) -> List[Any]:
        self._ensure_engine()
        return [provider() for provider in list(self._bindings.get(service_type, {}).values())]

    def _bind(self, engine: containers.DynamicContainer, key: ServiceKey,
              provider: providers.Provider) -> None:
        attribute = f"service_{next(self._counter)}"
        with self._bindings_lock:
            setattr(engine, attribute, provider)
            by_name = dict(self._bindings.get(key.service_type, {}))
            by_name[key.service_name] = provider
            self._bindings[key.service_type] = by_name
        logger.debug(f"Bound {key} to dependency-injector provider '{attribute}'")

    def _request_scoped(self, key: ServiceKey, activate: Callable[[], Any]) -> Callable[[], Any]:
        scope_key = (key, next(self._counter))

        def scoped() -> Any:
            return require_request_scope(key).get_or_create(scope_key, activate)

        return scoped
