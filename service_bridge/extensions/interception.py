"""
Interception extension.

Wraps resolved instances in a proxy that routes calls to their public
methods through a chain of interceptors, for cross-cutting concerns such
as logging, timing or transactions.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from ..core.domain.registration import RegistrationEvent
from ..core.interfaces.container import IServiceContainer

logger = logging.getLogger(__name__)

RegistrationPredicate = Callable[[RegistrationEvent], bool]


class Invocation:
    """
    A single intercepted method call.

    Interceptors inspect or modify args/kwargs and call proceed() to continue
    down the chain; the last proceed() invokes the target method.
    """

    def __init__(self, target: Any, method_name: str, method: Callable[..., Any],
                 args: Tuple[Any, ...], kwargs: Dict[str, Any],
                 interceptors: Sequence['IInterceptor']) -> None:
        self.target = target
        self.method_name = method_name
        self.args = args
        self.kwargs = kwargs
        self._method = method
        self._interceptors = interceptors
        self._index = 0

    def proceed(self) -> Any:
        """Invoke the next interceptor, or the target method after the last one."""
        if self._index < len(self._interceptors):
            interceptor = self._interceptors[self._index]
            self._index += 1
            try:
                return interceptor.intercept(self)
            finally:
                self._index -= 1
        return self._method(*self.args, **self.kwargs)


class IInterceptor(ABC):
    """Interface for method call interceptors."""

    @abstractmethod
    def intercept(self, invocation: Invocation) -> Any:
        """
        Handle an intercepted call.

        Args:
            invocation: The call; invocation.proceed() runs the rest of the chain

        Returns:
            The value returned to the caller
        """
        pass


class InterceptionProxy:
    """
    Proxy routing public method calls on a target through interceptors.

    Attribute reads and writes pass through to the target. isinstance()
    checks see the target's class. Calling the proxy goes through the
    interceptors as '__call__'; the context manager, container and truth
    protocols are forwarded to the target without interception.
    """

    __slots__ = ('_target', '_interceptors')

    def __init__(self, target: Any, interceptors: Sequence[IInterceptor]) -> None:
        object.__setattr__(self, '_target', target)
        object.__setattr__(self, '_interceptors', tuple(interceptors))

    @property  # type: ignore[misc]
    def __class__(self) -> type:
        return type(object.__getattribute__(self, '_target'))

    def __getattr__(self, name: str) -> Any:
        target = object.__getattribute__(self, '_target')
        attr = getattr(target, name)
        if name.startswith('_') or not callable(attr):
            return attr
        return self._intercepted(target, name, attr)

    def _intercepted(self, target: Any, name: str, method: Callable[..., Any]) -> Callable[..., Any]:
        interceptors = object.__getattribute__(self, '_interceptors')

        def intercepted(*args: Any, **kwargs: Any) -> Any:
            invocation = Invocation(target, name, method, args, kwargs, interceptors)
            return invocation.proceed()

        return intercepted

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        target = object.__getattribute__(self, '_target')
        if not callable(target):
            raise TypeError(f"'{type(target).__name__}' object is not callable")
        return self._intercepted(target, '__call__', target)(*args, **kwargs)

    def __enter__(self) -> Any:
        target = object.__getattribute__(self, '_target')
        result = type(target).__enter__(target)
        # keep callers on the proxy when the target returns itself
        return self if result is target else result

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> Any:
        target = object.__getattribute__(self, '_target')
        return type(target).__exit__(target, exc_type, exc_val, exc_tb)

    def __len__(self) -> int:
        return len(object.__getattribute__(self, '_target'))

    def __iter__(self) -> Any:
        return iter(object.__getattribute__(self, '_target'))

    def __contains__(self, item: Any) -> bool:
        return item in object.__getattribute__(self, '_target')

    def __getitem__(self, key: Any) -> Any:
        return object.__getattribute__(self, '_target')[key]

    def __bool__(self) -> bool:
        return bool(object.__getattribute__(self, '_target'))

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(object.__getattribute__(self, '_target'), name, value)

    def __delattr__(self, name: str) -> None:
        delattr(object.__getattribute__(self, '_target'), name)

    def __repr__(self) -> str:
        return f"InterceptionProxy({object.__getattribute__(self, '_target')!r})"


def _not_container(event: RegistrationEvent) -> bool:
    return event.service_type is not IServiceContainer


class InterceptionExtension:
    """
    Container extension that enables interception for new registrations.

    Subscribes to the container's registering hub; every registration that
    passes the predicate gets an activation hook wrapping its instances in
    an InterceptionProxy. Only registrations made after the extension is
    added are affected.
    """

    def __init__(self, *interceptors: IInterceptor,
                 predicate: Optional[RegistrationPredicate] = None) -> None:
        for interceptor in interceptors:
            if not callable(getattr(interceptor, 'intercept', None)):
                raise TypeError(f"{interceptor!r} does not implement intercept()")
        self._interceptors: Tuple[IInterceptor, ...] = tuple(interceptors)
        self._predicate = predicate or _not_container
        self._subscription_id: Optional[str] = None

    @property
    def interceptors(self) -> Tuple[IInterceptor, ...]:
        return self._interceptors

    def initialize(self, container: Any) -> None:
        """Subscribe to the container's registration events."""
        self._subscription_id = container.registering.subscribe(self._on_registering)
        logger.debug(f"Interception enabled with {len(self._interceptors)} interceptors")

    def _on_registering(self, event: RegistrationEvent) -> None:
        if not self._predicate(event):
            return
        event.builder.on_activated(self._wrap)

    def _wrap(self, instance: Any) -> Any:
        return InterceptionProxy(instance, self._interceptors)


def enable_interception(container: Any, *interceptors: IInterceptor,
                        predicate: Optional[RegistrationPredicate] = None) -> Any:
    """
    Enable interception on a container.

    Returns:
        The container, for chaining
    """
    container.add_extension(InterceptionExtension(*interceptors, predicate=predicate))
    return container
