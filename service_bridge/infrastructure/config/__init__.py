"""
Configuration management infrastructure.

This module provides configuration loading and validation for building
service containers from files.
"""

from .loader import ConfigLoader
from .models import (
    ApplicationConfig, ContainerConfig, DiscoveryConfig, LoggingConfig, ServiceConfig
)

__all__ = [
    "ApplicationConfig",
    "ConfigLoader",
    "ContainerConfig",
    "DiscoveryConfig",
    "LoggingConfig",
    "ServiceConfig",
]
