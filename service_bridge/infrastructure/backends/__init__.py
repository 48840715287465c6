"""
Backend adapters.

Each adapter satisfies the container contract on top of one injection engine.
"""

from typing import Any, Dict, Type

from ...core.exceptions import InvalidRegistrationException
from .base import BackendAdapterBase
from .dependency_injector_adapter import DependencyInjectorBackend
from .native import NativeBackend

BACKENDS: Dict[str, Type[BackendAdapterBase]] = {
    NativeBackend.name: NativeBackend,
    DependencyInjectorBackend.name: DependencyInjectorBackend,
}


def create_backend(name: str, **options: Any) -> BackendAdapterBase:
    """
    Instantiate a backend adapter by its configured name.

    Raises:
        InvalidRegistrationException: If no backend has that name
    """
    backend_class = BACKENDS.get(name.strip().lower().replace('-', '_'))
    if backend_class is None:
        raise InvalidRegistrationException(
            f"Unknown backend '{name}', expected one of: {', '.join(sorted(BACKENDS))}")
    return backend_class(**options)


__all__ = [
    "BACKENDS",
    "BackendAdapterBase",
    "DependencyInjectorBackend",
    "NativeBackend",
    "create_backend",
]
