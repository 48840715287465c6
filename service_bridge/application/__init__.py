"""
Application layer: the container facade, lifetime handling and startup glue.
"""

from .container import ServiceContainer
from .hosting import ModuleHostingEnvironment, load_type, register_subclasses
from .lifetime import LifetimePolicyMapper, RequestScope, current_request_scope
from .startup import ContainerStartup

__all__ = [
    "ContainerStartup",
    "LifetimePolicyMapper",
    "ModuleHostingEnvironment",
    "RequestScope",
    "ServiceContainer",
    "current_request_scope",
    "load_type",
    "register_subclasses",
]
