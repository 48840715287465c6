"""
Native in-process backend.

The reference engine: a provider per registration, with one provider class
per lifetime.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from ...application.lifetime import release_instance, require_request_scope
from ...core.domain.registration import RegistrationBuilder, ServiceKey, ServiceLifetime
from ...core.exceptions import ServiceNotRegisteredException
from .base import BackendAdapterBase

logger = logging.getLogger(__name__)


class Provider(ABC):
    """
    Creates and caches instances for one registration.
    """

    def __init__(self, key: ServiceKey, factory: Callable[[], Any]) -> None:
        self.key = key
        self._factory = factory

    @abstractmethod
    def get(self) -> Any:
        """Get or create the instance."""
        pass

    def reset(self) -> None:
        """Drop cached instances."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key})"


class TransientProvider(Provider):
    """New instance every time."""

    def get(self) -> Any:
        return self._factory()


class SingletonProvider(Provider):
    """
    One instance, created lazily on first request and kept until reset.
    """

    def __init__(self, key: ServiceKey, factory: Callable[[], Any]) -> None:
        super().__init__(key, factory)
        self._instance: Any = None
        self._created = False
        self._lock = threading.RLock()

    def get(self) -> Any:
        if self._created:
            return self._instance
        with self._lock:
            if not self._created:
                self._instance = self._factory()
                self._created = True
                logger.debug(f"Created singleton: {self.key}")
            return self._instance

    def reset(self) -> None:
        with self._lock:
            instance, created = self._instance, self._created
            self._instance = None
            self._created = False
        if created:
            release_instance(instance)


class ThreadLocalProvider(Provider):
    """One instance per calling thread."""

    def __init__(self, key: ServiceKey, factory: Callable[[], Any]) -> None:
        super().__init__(key, factory)
        self._local = threading.local()

    def get(self) -> Any:
        if not hasattr(self._local, 'instance'):
            self._local.instance = self._factory()
            logger.debug(f"Created per-thread instance: {self.key}")
        return self._local.instance

    def reset(self) -> None:
        self._local = threading.local()


class RequestProvider(Provider):
    """One instance per active request scope."""

    def get(self) -> Any:
        return require_request_scope(self.key).get_or_create((self.key, id(self)), self._factory)


class InstanceProvider(Provider):
    """A pre-built, externally owned instance."""

    def __init__(self, key: ServiceKey, instance: Any) -> None:
        super().__init__(key, lambda: instance)
        self._instance = instance

    def get(self) -> Any:
        return self._instance


class NativeRegistrationBuilder(RegistrationBuilder):
    """Registration builder exposing the provider class that will be bound."""

    def __init__(self, service_type: Any, implementation_type: Any, service_name: Optional[str],
                 lifetime: ServiceLifetime, provider_class: type) -> None:
        super().__init__(service_type, implementation_type, service_name, lifetime)
        self.provider_class = provider_class


class ProviderRegistry:
    """
    Providers grouped by service type, then by name, in registration order.

    A provider superseded by a re-registration is retired rather than reset,
    so instances it already handed out stay valid until the registry is reset.
    """

    def __init__(self) -> None:
        self._providers: Dict[Any, Dict[Optional[str], Provider]] = {}
        self._retired: List[Provider] = []
        self._lock = threading.Lock()

    def bind(self, provider: Provider) -> None:
        with self._lock:
            by_name = dict(self._providers.get(provider.key.service_type, {}))
            previous = by_name.get(provider.key.service_name)
            if previous is not None:
                self._retired.append(previous)
            by_name[provider.key.service_name] = provider
            self._providers[provider.key.service_type] = by_name

    def lookup(self, service_type: Any, service_name: Optional[str]) -> Optional[Provider]:
        return self._providers.get(service_type, {}).get(service_name)

    def providers_for(self, service_type: Any) -> List[Provider]:
        return list(self._providers.get(service_type, {}).values())

    def reset(self) -> None:
        with self._lock:
            providers = self._retired + [
                p for by_name in self._providers.values() for p in by_name.values()]
            self._providers.clear()
            self._retired = []
        for provider in providers:
            provider.reset()


class NativeBackend(BackendAdapterBase):
    """In-process reference backend."""

    name = "native"

    def _lifetime_table(self) -> Dict[ServiceLifetime, Any]:
        return {
            ServiceLifetime.TRANSIENT: TransientProvider,
            ServiceLifetime.SINGLETON: SingletonProvider,
            ServiceLifetime.PER_THREAD: ThreadLocalProvider,
            ServiceLifetime.PER_REQUEST: RequestProvider,
        }

    def _build_engine(self) -> ProviderRegistry:
        return ProviderRegistry()

    def _release_engine(self, engine: ProviderRegistry) -> None:
        engine.reset()

    def prepare(self, service_type: Any, implementation_type: Any,
                service_name: Optional[str], lifetime: ServiceLifetime) -> NativeRegistrationBuilder:
        self._ensure_open()
        return NativeRegistrationBuilder(
            service_type, implementation_type, service_name, lifetime,
            provider_class=self._policies.map(lifetime)
        )

    def commit(self, builder: RegistrationBuilder) -> Provider:
        engine = self._ensure_engine()
        provider_class = getattr(builder, 'provider_class', None) or self._policies.map(builder.lifetime)
        provider: Provider = provider_class(builder.key, self._activator(builder))
        engine.bind(provider)
        return provider

    def register_instance(self, service_type: Any, instance: Any,
                          service_name: Optional[str]) -> Provider:
        engine = self._ensure_engine()
        provider = InstanceProvider(ServiceKey(service_type, service_name), instance)
        engine.bind(provider)
        return provider

    def resolve(self, service_type: Any, service_name: Optional[str]) -> Any:
        provider = self._ensure_engine().lookup(service_type, service_name)
        if provider is None:
            raise ServiceNotRegisteredException(service_type, service_name)
        return provider.get()

    def resolve_all(self, service_type: Any) -> List[Any]:
        return [provider.get() for provider in self._ensure_engine().providers_for(service_type)]
