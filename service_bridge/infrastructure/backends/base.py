"""
Shared behaviour for backend adapters.

Adapters derive from BackendAdapterBase to get disposal checks, lazily built
engines, activation through the shared injection plans and lifetime mapping.
"""

import logging
import threading
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

from ...application.lifetime import LifetimePolicyMapper
from ...core.domain.registration import RegistrationBuilder, ServiceLifetime
from ...core.exceptions import ContainerDisposedException, InvalidRegistrationException
from ...core.interfaces.backend import IBackendAdapter

if TYPE_CHECKING:
    from ...core.injection.builder import InjectorBuilder
    from ...core.interfaces.container import IServiceContainer

logger = logging.getLogger(__name__)


class BackendAdapterBase(IBackendAdapter):
    """
    Base class for backend adapters.

    Subclasses supply the engine factory, the lifetime policy table and the
    binding/lookup primitives; instances are always built by the container's
    injector so constructor selection and property/method injection behave
    the same on every backend.
    """

    name = "base"

    def __init__(self) -> None:
        self._container: Optional['IServiceContainer'] = None
        self._injector: Optional['InjectorBuilder'] = None
        self._engine: Any = None
        self._engine_lock = threading.Lock()
        self._disposed = False
        self._policies: LifetimePolicyMapper[Any] = LifetimePolicyMapper(self._lifetime_table())

    @property
    def policies(self) -> LifetimePolicyMapper[Any]:
        return self._policies

    @property
    def disposed(self) -> bool:
        return self._disposed

    def attach(self, container: 'IServiceContainer', injector: 'InjectorBuilder') -> None:
        """Bind the adapter to its owning container."""
        if self._container is not None and self._container is not container:
            raise InvalidRegistrationException(
                f"{type(self).__name__} is already attached to another container")
        self._container = container
        self._injector = injector

    def inject_existing(self, instance: Any) -> None:
        """Apply the cached injection plan of the instance's type."""
        self._ensure_open()
        container, injector = self._attached()
        plan = injector.get_or_build_plan(type(instance))
        injector.apply_plan(plan, container, instance)

    def dispose(self) -> None:
        """Dispose the adapter and release its engine. Idempotent."""
        with self._engine_lock:
            if self._disposed:
                return
            self._disposed = True
            engine, self._engine = self._engine, None

        if engine is not None:
            self._release_engine(engine)
        logger.debug(f"{type(self).__name__} disposed")

    @abstractmethod
    def _lifetime_table(self) -> Dict[ServiceLifetime, Any]:
        """Map every lifetime to the engine's scoping primitive."""
        pass

    @abstractmethod
    def _build_engine(self) -> Any:
        """Materialize the underlying injection engine."""
        pass

    @abstractmethod
    def _release_engine(self, engine: Any) -> None:
        """Release resources owned by the engine."""
        pass

    def _ensure_open(self) -> None:
        if self._disposed:
            raise ContainerDisposedException()

    def _ensure_engine(self) -> Any:
        """
        Get the engine, building it on first use.

        The fast path reads the engine without locking; the lock is only
        taken when the engine still has to be built.
        """
        self._ensure_open()
        engine = self._engine
        if engine is None:
            with self._engine_lock:
                self._ensure_open()
                if self._engine is None:
                    self._engine = self._build_engine()
                    logger.debug(f"{type(self).__name__} engine built")
                engine = self._engine
        return engine

    def _attached(self) -> Tuple['IServiceContainer', 'InjectorBuilder']:
        if self._container is None or self._injector is None:
            raise InvalidRegistrationException(
                f"{type(self).__name__} is not attached to a container")
        return self._container, self._injector

    def _activator(self, builder: RegistrationBuilder) -> Callable[[], Any]:
        """
        Create the factory the engine calls to build a new instance.

        Construction and injection run through the cached plan of the
        implementation type, then the builder's activation hooks run.
        """
        container, injector = self._attached()
        implementation_type = builder.implementation_type

        def activate() -> Any:
            plan = injector.get_or_build_plan(implementation_type)
            instance = injector.create_instance(plan, container)
            return builder.apply_hooks(instance)

        return activate
