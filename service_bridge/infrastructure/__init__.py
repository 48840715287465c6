"""
Infrastructure layer containing the backend adapters, configuration loading
and logging setup.
"""

from .backends import BACKENDS, create_backend
from .config.loader import ConfigLoader
from .config.models import ApplicationConfig
from .logging.setup import setup_logging

__all__ = [
    "ApplicationConfig",
    "BACKENDS",
    "ConfigLoader",
    "create_backend",
    "setup_logging",
]
