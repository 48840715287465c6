"""Optional container extensions."""

from .interception import (
    IInterceptor, InterceptionExtension, InterceptionProxy, Invocation, enable_interception
)

__all__ = [
    "IInterceptor",
    "InterceptionExtension",
    "InterceptionProxy",
    "Invocation",
    "enable_interception",
]
