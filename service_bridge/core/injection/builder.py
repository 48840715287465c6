"""
Injector builder.

Compiles a reusable injection plan per concrete type (constructor, then
properties, then methods) and executes plans against any container.
Plans are built once and cached, so introspection cost is paid only on the
first resolution of a type.
"""

import inspect
import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from ..domain.plan import InjectionPlan, ParameterInfo
from ..exceptions import ServiceNotRegisteredException, ServiceResolutionException
from .scanner import MetadataScanner
from .selector import ConstructorSelector

if TYPE_CHECKING:
    from ..interfaces.container import IServiceContainer

logger = logging.getLogger(__name__)

_USE_DEFAULT = object()


class InjectorBuilder:
    """
    Builds, caches and applies injection plans.

    The cache is keyed by concrete type and only cleared explicitly (the
    owning container clears it on disposal).
    """

    def __init__(self, scanner: Optional[MetadataScanner] = None,
                 selector: Optional[ConstructorSelector] = None) -> None:
        self._scanner = scanner or MetadataScanner()
        self._selector = selector or ConstructorSelector()
        self._plans: Dict[Any, InjectionPlan] = {}
        self._lock = threading.Lock()

    @property
    def scanner(self) -> MetadataScanner:
        return self._scanner

    def build_plan(self, target_type: Any) -> InjectionPlan:
        """
        Build a fresh plan for a type without touching the cache.

        Raises:
            TypeLoadException: If the type's members cannot be introspected
            NoSuitableConstructorException: If no constructor can be selected
        """
        scan = self._scanner.scan(target_type, strict=True)
        constructor = self._selector.select(target_type, scan.constructors)
        plan = InjectionPlan(
            target_type=target_type,
            constructor=constructor,
            properties=scan.eligible_properties,
            methods=scan.eligible_methods
        )
        logger.debug(
            f"Built injection plan for {target_type.__qualname__}: "
            f"constructor={constructor.name}, properties={len(plan.properties)}, "
            f"methods={len(plan.methods)}")
        return plan

    def get_or_build_plan(self, target_type: Any) -> InjectionPlan:
        """Return the cached plan for a type, building it on first use."""
        plan = self._plans.get(target_type)
        if plan is not None:
            return plan

        with self._lock:
            plan = self._plans.get(target_type)
            if plan is None:
                plan = self.build_plan(target_type)
                self._plans[target_type] = plan
            return plan

    def is_cached(self, target_type: Any) -> bool:
        return target_type in self._plans

    def clear(self) -> None:
        """Drop every cached plan."""
        with self._lock:
            self._plans.clear()

    def create_instance(self, plan: InjectionPlan, container: 'IServiceContainer') -> Any:
        """
        Construct an instance through the plan's constructor, then inject it.

        Constructor dependencies are resolved before construction; properties
        and methods are populated afterwards, in that order.
        """
        target_type = plan.target_type
        args, kwargs = self._resolve_arguments(target_type, plan.constructor_parameters, container)

        if plan.constructor.is_init:
            instance = target_type(*args, **kwargs)
        else:
            instance = getattr(target_type, plan.constructor.name)(*args, **kwargs)
            if not isinstance(instance, target_type):
                raise ServiceResolutionException(
                    f"Constructor {target_type.__qualname__}.{plan.constructor.name} returned "
                    f"{type(instance).__qualname__} instead of {target_type.__qualname__}",
                    target_type)

        self.apply_plan(plan, container, instance)
        return instance

    def apply_plan(self, plan: InjectionPlan, container: 'IServiceContainer', instance: Any) -> None:
        """
        Populate an already constructed instance.

        Properties are resolved by type only. A property whose type has no
        registration keeps its current value unless it is marked required.
        Each injectable method is then invoked once, in declaration order.
        """
        for prop in plan.properties:
            try:
                value = container.get_instance(prop.service_type)
            except ServiceNotRegisteredException as e:
                if prop.required or not e.matches(prop.service_type):
                    raise
                logger.debug(
                    f"Skipping property {plan.target_type.__qualname__}.{prop.name}: "
                    f"no registration for {getattr(prop.service_type, '__qualname__', prop.service_type)}")
                continue
            setattr(instance, prop.name, value)

        for method in plan.methods:
            args, kwargs = self._resolve_arguments(plan.target_type, method.parameters, container)
            getattr(instance, method.name)(*args, **kwargs)

    def _resolve_arguments(self, owner: Any, parameters: Sequence[ParameterInfo],
                           container: 'IServiceContainer') -> Tuple[List[Any], Dict[str, Any]]:
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for param in parameters:
            value = self._resolve_parameter(owner, param, container)
            if value is _USE_DEFAULT:
                if param.positional_only:
                    args.append(param.default)
                continue
            if param.positional_only:
                args.append(value)
            else:
                kwargs[param.name] = value
        return args, kwargs

    def _resolve_parameter(self, owner: Any, param: ParameterInfo,
                           container: 'IServiceContainer') -> Any:
        service_type = param.service_type

        if not self._is_resolvable(service_type, container):
            if param.has_default:
                return _USE_DEFAULT
            if param.optional:
                return None
            raise ServiceResolutionException(
                f"Cannot resolve parameter '{param.name}' of {owner.__qualname__}: "
                f"{'no type annotation' if service_type is None else f'{service_type!r} is not injectable'}",
                owner)

        try:
            return container.get_instance(service_type)
        except ServiceNotRegisteredException as e:
            if not e.matches(service_type):
                raise
            if param.has_default:
                return _USE_DEFAULT
            if param.optional:
                return None
            raise

    def _is_resolvable(self, service_type: Any, container: 'IServiceContainer') -> bool:
        if service_type is None or service_type is inspect.Parameter.empty:
            return False
        if not inspect.isclass(service_type):
            return container.is_registered(service_type)
        if service_type.__module__ == 'builtins':
            # scalars and collections are only injected when explicitly registered
            return container.is_registered(service_type)
        return True
