"""Abstract contracts implemented by the container, its backends and hosts."""

from .backend import IBackendAdapter
from .container import IServiceContainer
from .hosting import IHostingEnvironment

__all__ = [
    "IBackendAdapter",
    "IHostingEnvironment",
    "IServiceContainer",
]
