"""Domain models for registrations and injection plans."""

from .plan import ConstructorInfo, InjectionPlan, MethodInfo, ParameterInfo, PropertyInfo, ScanResult
from .registration import (
    RegistrationBuilder, RegistrationEvent, ServiceKey, ServiceLifetime, ServiceRegistration
)

__all__ = [
    "ConstructorInfo",
    "InjectionPlan",
    "MethodInfo",
    "ParameterInfo",
    "PropertyInfo",
    "ScanResult",
    "RegistrationBuilder",
    "RegistrationEvent",
    "ServiceKey",
    "ServiceLifetime",
    "ServiceRegistration",
]
