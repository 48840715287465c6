"""
Hosting glue.

Discovers handler classes in the application's modules and registers them
with the container, typically with a per-request lifetime.
"""

import importlib
import inspect
import logging
from types import ModuleType
from typing import Any, Iterable, List, Sequence, Union

from ..core.domain.registration import ServiceLifetime
from ..core.exceptions import TypeLoadException
from ..core.injection.scanner import is_abstract_type
from ..core.interfaces.container import IServiceContainer
from ..core.interfaces.hosting import IHostingEnvironment

logger = logging.getLogger(__name__)


def load_type(path: str) -> Any:
    """
    Load a class from a "package.module:QualifiedName" path.

    A plain dotted path ("package.module.ClassName") is also accepted, in
    which case the last component names a module-level class.

    Raises:
        TypeLoadException: If the module cannot be imported or has no such class
    """
    if ':' in path:
        module_name, _, qualname = path.partition(':')
    else:
        module_name, _, qualname = path.rpartition('.')
    if not module_name or not qualname:
        raise TypeLoadException(path, None, ValueError("expected 'module:QualifiedName'"))

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise TypeLoadException(path, None, e) from e

    try:
        for part in qualname.split('.'):
            target = getattr(target, part)
    except AttributeError as e:
        raise TypeLoadException(path, None, e) from e

    if not inspect.isclass(target):
        raise TypeLoadException(path, None, TypeError(f"{path} is not a class"))
    return target


class ModuleHostingEnvironment(IHostingEnvironment):
    """
    Hosting environment backed by a list of importable module names.

    Modules that fail to import are skipped with a warning, so one broken
    module does not prevent the rest of the application from registering.
    """

    def __init__(self, module_names: Iterable[str]) -> None:
        self._module_names = list(module_names)
        self._modules: List[ModuleType] = []
        self._loaded = False

    @property
    def module_names(self) -> List[str]:
        return list(self._module_names)

    def get_modules(self) -> Sequence[ModuleType]:
        if not self._loaded:
            self._modules = self._import_modules()
            self._loaded = True
        return list(self._modules)

    def _import_modules(self) -> List[ModuleType]:
        modules: List[ModuleType] = []
        for name in self._module_names:
            try:
                modules.append(importlib.import_module(name))
            except Exception as e:
                logger.warning(f"Skipping module {name}: {e}")
        return modules


def register_subclasses(container: IServiceContainer,
                        environment: IHostingEnvironment,
                        base_type: type,
                        lifetime: Union[ServiceLifetime, str] = ServiceLifetime.PER_REQUEST) -> List[type]:
    """
    Register every concrete subclass of base_type defined in the environment's modules.

    Each class is registered as itself. Classes are only considered in the
    module that defines them, so re-exports are not registered twice.

    Args:
        container: Container to register with
        environment: Source of the application's modules
        base_type: Base class of the handlers to register (not registered itself)
        lifetime: Lifetime of the registrations

    Returns:
        The registered types in discovery order
    """
    lifetime = ServiceLifetime.parse(lifetime)
    registered: List[type] = []

    for module in environment.get_modules():
        for candidate in _defined_classes(module):
            if candidate is base_type or candidate in registered:
                continue
            if not issubclass(candidate, base_type) or is_abstract_type(candidate):
                continue
            container.register(candidate, lifetime=lifetime)
            registered.append(candidate)

    logger.info(
        f"Registered {len(registered)} {base_type.__qualname__} subclasses "
        f"with {lifetime.name} lifetime")
    return registered


def _defined_classes(module: ModuleType) -> List[type]:
    return [
        member for member in vars(module).values()
        if inspect.isclass(member) and member.__module__ == module.__name__
    ]
