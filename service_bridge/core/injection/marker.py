"""
Injection marker.

A single declarative tag that signals "the injection engine must populate
this". It is applied as a decorator to constructors, properties and methods,
or as typing.Annotated metadata on class-level attribute annotations:

    class ReportService:
        cache: Annotated[ICache, injection]

        @injection
        def __init__(self, repository: IRepository) -> None: ...

        @injection
        @constructor
        def from_settings(cls, settings: Settings) -> 'ReportService': ...

        @injection
        def initialize(self, logger: ILogger) -> None: ...
"""

from typing import Annotated, Any, Optional, Tuple, Union, get_args, get_origin

MARKER_ATTRIBUTE = "__injection__"
CONSTRUCTOR_ATTRIBUTE = "__constructor__"


class Injection:
    """Marker signalling that a member takes part in dependency injection."""

    def __init__(self, required: bool = False) -> None:
        self.required = required

    def __call__(self, target: Any) -> Any:
        if isinstance(target, property):
            # property objects are immutable; tag the accessor functions instead
            for accessor in (target.fget, target.fset):
                if accessor is not None:
                    setattr(accessor, MARKER_ATTRIBUTE, self)
            return target
        function = _unwrap(target)
        if not callable(function):
            raise TypeError(f"@injection cannot be applied to {target!r}")
        setattr(function, MARKER_ATTRIBUTE, self)
        return target

    def __repr__(self) -> str:
        return "injection_required" if self.required else "injection"


injection = Injection()
injection_required = Injection(required=True)


def constructor(function: Any) -> classmethod:
    """
    Declare an alternate constructor.

    The decorated function becomes a classmethod that must return an instance
    of the class. Alternate constructors compete with `__init__` during
    constructor selection.
    """
    setattr(_unwrap(function), CONSTRUCTOR_ATTRIBUTE, True)
    if isinstance(function, classmethod):
        return function
    return classmethod(function)


def _unwrap(target: Any) -> Any:
    if isinstance(target, (classmethod, staticmethod)):
        return target.__func__
    return target


def get_marker(member: Any) -> Optional[Injection]:
    """Return the marker carried by a function, classmethod or property."""
    if isinstance(member, property):
        for accessor in (member.fget, member.fset):
            marker = getattr(accessor, MARKER_ATTRIBUTE, None)
            if isinstance(marker, Injection):
                return marker
        return None
    marker = getattr(_unwrap(member), MARKER_ATTRIBUTE, None)
    return marker if isinstance(marker, Injection) else None


def is_marked(member: Any) -> bool:
    return get_marker(member) is not None


def is_alternate_constructor(member: Any) -> bool:
    return isinstance(member, classmethod) and bool(
        getattr(member.__func__, CONSTRUCTOR_ATTRIBUTE, False))


def split_annotated(hint: Any) -> Tuple[Any, Optional[Injection]]:
    """
    Split Annotated[T, ...] into T and the marker found in its metadata.

    The marker class itself is accepted in place of an instance.
    """
    if get_origin(hint) is not Annotated:
        return hint, None
    inner, *metadata = get_args(hint)
    for item in metadata:
        if isinstance(item, Injection):
            return inner, item
        if item is Injection:
            return inner, injection
    return inner, None


def find_marker(hint: Any) -> Optional[Injection]:
    """
    Return the marker of an annotation.

    Accepts both Annotated[Optional[T], injection] and
    Optional[Annotated[T, injection]].
    """
    _, marker = split_annotated(hint)
    if marker is not None:
        return marker
    origin = get_origin(hint)
    if origin is Union or (origin is not None and getattr(origin, '__name__', '') == 'UnionType'):
        for arg in get_args(hint):
            _, marker = split_annotated(arg)
            if marker is not None:
                return marker
    return None
