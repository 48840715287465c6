"""
Hosting environment interface.

The hosting environment tells the container which modules make up the
running application so that handler classes can be discovered in them.
"""

from abc import ABC, abstractmethod
from types import ModuleType
from typing import Sequence


class IHostingEnvironment(ABC):
    """Interface for the environment hosting the container."""

    @abstractmethod
    def get_modules(self) -> Sequence[ModuleType]:
        """Get the loaded modules of the application."""
        pass
