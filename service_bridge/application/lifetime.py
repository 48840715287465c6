"""
Lifetime policy mapping and request scopes.

Each backend describes how the four abstract lifetimes map onto its own
scoping primitives with a LifetimePolicyMapper. Request boundaries are owned
by the hosting environment, which hands the container an explicit
RequestScope for the duration of each request.
"""

import logging
import threading
import uuid
from contextvars import ContextVar, Token
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

from ..core.domain.registration import ServiceKey, ServiceLifetime
from ..core.exceptions import InvalidRegistrationException, ServiceResolutionException

logger = logging.getLogger(__name__)

P = TypeVar('P')

_current_scope: ContextVar[Optional['RequestScope']] = ContextVar(
    "service_bridge_request_scope", default=None)


class LifetimePolicyMapper(Generic[P]):
    """
    Translates lifetime tokens into backend-native scoping primitives.

    The table must cover every ServiceLifetime so that all backends enforce
    the same observable behaviour.
    """

    def __init__(self, policies: Mapping[ServiceLifetime, P]) -> None:
        missing = [lifetime.name for lifetime in ServiceLifetime if lifetime not in policies]
        if missing:
            raise ValueError(f"Lifetime policy table is missing: {', '.join(missing)}")
        self._policies: Dict[ServiceLifetime, P] = dict(policies)

    def map(self, lifetime: ServiceLifetime) -> P:
        """
        Get the scoping primitive for a lifetime.

        Raises:
            InvalidRegistrationException: If lifetime is not a ServiceLifetime
        """
        if not isinstance(lifetime, ServiceLifetime):
            raise InvalidRegistrationException(f"Unknown service lifetime: {lifetime!r}")
        return self._policies[lifetime]

    def table(self) -> Dict[ServiceLifetime, P]:
        return dict(self._policies)


class RequestScope:
    """
    Explicit handle for one request's lifetime.

    Entering the scope makes it the active scope of the current execution
    context (thread or asyncio task); leaving it closes the scope and
    disposes the instances created inside it.

    Usage:
        with container.begin_request():
            handler = container.get_instance(RequestHandler)
    """

    def __init__(self) -> None:
        self.scope_id = str(uuid.uuid4())
        self._instances: Dict[Any, Any] = {}
        self._lock = threading.RLock()
        self._tokens: List[Token] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get_or_create(self, key: Any, factory: Callable[[], Any]) -> Any:
        """Return the instance cached under key, creating it on first use."""
        with self._lock:
            if self._closed:
                raise ServiceResolutionException(f"Request scope {self.scope_id} is closed")
            if key not in self._instances:
                self._instances[key] = factory()
                logger.debug(f"Created request-scoped instance: {key}")
            return self._instances[key]

    def close(self) -> None:
        """Dispose scoped instances that expose close() or dispose()."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            instances = list(self._instances.values())
            self._instances.clear()

        for instance in instances:
            release_instance(instance)

        logger.debug(f"Request scope {self.scope_id} closed")

    def __enter__(self) -> 'RequestScope':
        self._tokens.append(_current_scope.set(self))
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        _current_scope.reset(self._tokens.pop())
        self.close()


def current_request_scope() -> Optional[RequestScope]:
    """Get the request scope active in the current execution context."""
    return _current_scope.get()


def require_request_scope(key: ServiceKey) -> RequestScope:
    """
    Get the active request scope for a per-request resolution.

    Raises:
        ServiceResolutionException: If no request scope is active
    """
    scope = _current_scope.get()
    if scope is None:
        raise ServiceResolutionException(
            f"No active request scope for per-request service {key}. "
            f"Resolve it inside 'with container.begin_request():'",
            key.service_type, key.service_name)
    return scope


def release_instance(instance: Any) -> None:
    """Call dispose() or close() on an instance owned by a scope, if it has one."""
    release = getattr(instance, 'dispose', None) or getattr(instance, 'close', None)
    if not callable(release):
        return
    try:
        release()
    except (AttributeError, RuntimeError, TypeError) as e:
        logger.warning(f"Error disposing {type(instance).__name__}: {e}")
