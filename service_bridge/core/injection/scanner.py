"""
Metadata scanner.

Enumerates the constructors, properties and methods of a concrete type and
tags the ones eligible for injection. Scanning is pure introspection: nothing
is instantiated and no container is consulted.
"""

import inspect
import logging
import typing
from abc import ABC
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union, get_args, get_origin

from ..domain.plan import (
    INIT_CONSTRUCTOR, ConstructorInfo, MethodInfo, ParameterInfo, PropertyInfo, ScanResult
)
from ..exceptions import TypeLoadException
from .marker import find_marker, get_marker, is_alternate_constructor, split_annotated

logger = logging.getLogger(__name__)

_HINT_ERRORS = (NameError, TypeError, AttributeError, SyntaxError)
_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def unwrap_service_type(hint: Any) -> Tuple[Any, bool]:
    """
    Reduce an annotation to the type the container should resolve.

    Returns the type and whether it was Optional[...].
    """
    hint, _ = split_annotated(hint)
    origin = get_origin(hint)
    if origin is Union or (origin is not None and getattr(origin, '__name__', '') == 'UnionType'):
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            inner, _ = split_annotated(args[0])
            return inner, True
    return hint, False


def is_abstract_type(target_type: Any) -> bool:
    """
    True for interface-like types.

    Covers ABCs with abstract members, typing.Protocol classes and direct ABC
    subclasses that declare no __init__ (marker interfaces).
    """
    if inspect.isabstract(target_type) or getattr(target_type, '_is_protocol', False):
        return True
    return (inspect.isclass(target_type)
            and ABC in target_type.__bases__
            and '__init__' not in vars(target_type))


class MetadataScanner:
    """
    Locates injection candidates on a type.

    In strict mode (the default for a single explicit type) any member whose
    annotations cannot be evaluated raises TypeLoadException. In lenient mode,
    used for batch scans, such members are skipped and reported.
    """

    def scan(self, target_type: Any, strict: bool = True) -> ScanResult:
        """
        Scan one type.

        Args:
            target_type: Concrete class to scan
            strict: Raise on unloadable members instead of skipping them

        Returns:
            All candidates tagged with their eligibility

        Raises:
            TypeLoadException: If a member cannot be introspected in strict mode
        """
        if not inspect.isclass(target_type):
            raise TypeLoadException(target_type, None, TypeError("not a class"))

        skipped: List[str] = []
        constructors = self._scan_constructors(target_type, strict, skipped)
        properties = self._scan_properties(target_type, strict, skipped)
        methods = self._scan_methods(target_type, strict, skipped)

        return ScanResult(
            target_type=target_type,
            constructors=constructors,
            properties=properties,
            methods=methods,
            skipped_members=tuple(skipped)
        )

    def scan_many(self, target_types: Iterable[Any]) -> Dict[Any, ScanResult]:
        """
        Scan a batch of types, degrading instead of aborting.

        Unloadable members are skipped; a type that cannot be scanned at all is
        left out of the result. Both cases are logged as warnings.
        """
        results: Dict[Any, ScanResult] = {}
        for target_type in target_types:
            try:
                result = self.scan(target_type, strict=False)
            except TypeLoadException as e:
                logger.warning(f"Skipping type during batch scan: {e}")
                continue
            if result.skipped_members:
                logger.warning(
                    f"Skipped unloadable members of {target_type.__qualname__}: "
                    f"{', '.join(result.skipped_members)}")
            results[target_type] = result
        return results

    def _scan_constructors(self, target_type: Any, strict: bool,
                           skipped: List[str]) -> Tuple[ConstructorInfo, ...]:
        if is_abstract_type(target_type):
            return ()

        candidates: List[ConstructorInfo] = []

        init = getattr(target_type, INIT_CONSTRUCTOR)
        parameters = self._parameters(target_type, INIT_CONSTRUCTOR, init, strict, skipped)
        if parameters is not None:
            candidates.append(ConstructorInfo(
                name=INIT_CONSTRUCTOR,
                parameters=parameters,
                marked=get_marker(init) is not None
            ))

        for name, member in self._declared_members(target_type):
            if not is_alternate_constructor(member):
                continue
            parameters = self._parameters(target_type, name, member.__func__, strict, skipped)
            if parameters is None:
                continue
            candidates.append(ConstructorInfo(
                name=name,
                parameters=parameters,
                marked=get_marker(member) is not None,
                public=not name.startswith('_')
            ))

        any_marked = any(c.marked for c in candidates)
        return tuple(
            ConstructorInfo(
                name=c.name,
                parameters=c.parameters,
                marked=c.marked,
                public=c.public,
                eligible=c.marked if any_marked else c.public
            )
            for c in candidates
        )

    def _scan_properties(self, target_type: Any, strict: bool,
                         skipped: List[str]) -> Tuple[PropertyInfo, ...]:
        found: Dict[str, PropertyInfo] = {}

        for name, member in self._declared_members(target_type):
            if not isinstance(member, property) or name.startswith('_'):
                continue
            service_type = self._property_type(target_type, name, member, strict, skipped)
            if service_type is _UNLOADABLE:
                continue
            marker = get_marker(member)
            writable = member.fset is not None
            found[name] = PropertyInfo(
                name=name,
                service_type=service_type,
                marked=marker is not None,
                required=bool(marker and marker.required),
                writable=writable,
                eligible=marker is not None and writable and service_type is not None
            )

        hints = self._hints(target_type, target_type, None, strict, skipped, label="<annotations>")
        for name, hint in (hints or {}).items():
            if name.startswith('_') or name in found:
                continue
            if get_origin(hint) is typing.ClassVar:
                continue
            if isinstance(inspect.getattr_static(target_type, name, None), property):
                continue
            marker = find_marker(hint)
            service_type, _ = unwrap_service_type(hint)
            found[name] = PropertyInfo(
                name=name,
                service_type=service_type,
                marked=marker is not None,
                required=bool(marker and marker.required),
                writable=True,
                eligible=marker is not None
            )

        return tuple(found.values())

    def _scan_methods(self, target_type: Any, strict: bool,
                      skipped: List[str]) -> Tuple[MethodInfo, ...]:
        methods: List[MethodInfo] = []
        for name, member in self._declared_members(target_type):
            if name.startswith('_') or not inspect.isfunction(member):
                continue
            marked = get_marker(member) is not None
            if not marked:
                methods.append(MethodInfo(name=name))
                continue
            parameters = self._parameters(target_type, name, member, strict, skipped)
            if parameters is None:
                continue
            methods.append(MethodInfo(name=name, parameters=parameters, marked=True, eligible=True))
        return tuple(methods)

    def _declared_members(self, target_type: Any) -> List[Tuple[str, Any]]:
        """
        Members in declaration order, base classes first.

        An override keeps the position of the member it overrides but reports
        the most derived definition.
        """
        names: Dict[str, None] = {}
        for klass in reversed(target_type.__mro__):
            if klass is object:
                continue
            for name in vars(klass):
                names.setdefault(name, None)
        return [(name, inspect.getattr_static(target_type, name)) for name in names]

    def _parameters(self, target_type: Any, member_name: str, function: Any, strict: bool,
                    skipped: List[str]) -> Optional[Tuple[ParameterInfo, ...]]:
        try:
            signature = inspect.signature(function)
        except (ValueError, TypeError) as e:
            return self._unloadable(target_type, member_name, e, strict, skipped)

        hints = self._hints(target_type, function, member_name, strict, skipped)
        if hints is None:
            return None

        parameters: List[ParameterInfo] = []
        for index, (name, param) in enumerate(signature.parameters.items()):
            if index == 0 and name in ('self', 'cls'):
                continue
            if param.kind in _SKIPPED_KINDS:
                continue
            service_type, optional = None, False
            if name in hints:
                service_type, optional = unwrap_service_type(hints[name])
            parameters.append(ParameterInfo(
                name=name,
                service_type=service_type,
                optional=optional,
                default=param.default,
                kind=param.kind
            ))
        return tuple(parameters)

    def _property_type(self, target_type: Any, name: str, prop: property, strict: bool,
                       skipped: List[str]) -> Any:
        if prop.fset is not None:
            hints = self._hints(target_type, prop.fset, name, strict, skipped)
            if hints is None:
                return _UNLOADABLE
            value_hints = [hint for key, hint in hints.items() if key != 'return']
            if value_hints:
                return unwrap_service_type(value_hints[0])[0]
        if prop.fget is not None:
            hints = self._hints(target_type, prop.fget, name, strict, skipped)
            if hints is None:
                return _UNLOADABLE
            if 'return' in hints:
                return unwrap_service_type(hints['return'])[0]
        return None

    def _hints(self, target_type: Any, obj: Any, member_name: Optional[str], strict: bool,
               skipped: List[str], label: Optional[str] = None) -> Optional[Dict[str, Any]]:
        try:
            return typing.get_type_hints(obj, include_extras=True)
        except _HINT_ERRORS as e:
            return self._unloadable(target_type, label or member_name, e, strict, skipped)

    def _unloadable(self, target_type: Any, member_name: Optional[str], error: BaseException,
                    strict: bool, skipped: List[str]) -> None:
        if strict:
            raise TypeLoadException(target_type, member_name, error) from error
        skipped.append(member_name or target_type.__qualname__)
        logger.debug(f"Skipping unloadable member {member_name} of {target_type.__qualname__}: {error}")
        return None


_UNLOADABLE = object()
