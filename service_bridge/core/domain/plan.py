"""
Injection metadata and plan models.

The metadata scanner produces the *Info records below; the injector builder
assembles them into an immutable InjectionPlan cached per concrete type.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Tuple


INIT_CONSTRUCTOR = "__init__"


@dataclass(frozen=True)
class ParameterInfo:
    """A single injectable parameter of a constructor or method."""

    name: str
    service_type: Any = None
    """Annotated type with Annotated/Optional unwrapped, None if unannotated."""

    optional: bool = False
    """True when the annotation was Optional[...]."""

    default: Any = inspect.Parameter.empty
    kind: Any = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def positional_only(self) -> bool:
        return self.kind is inspect.Parameter.POSITIONAL_ONLY


@dataclass(frozen=True)
class ConstructorInfo:
    """`__init__` or an alternate constructor classmethod."""

    name: str
    parameters: Tuple[ParameterInfo, ...] = ()
    marked: bool = False
    public: bool = True
    eligible: bool = False

    @property
    def is_init(self) -> bool:
        return self.name == INIT_CONSTRUCTOR

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)


@dataclass(frozen=True)
class PropertyInfo:
    """A writable property or annotated attribute."""

    name: str
    service_type: Any = None
    marked: bool = False
    required: bool = False
    writable: bool = True
    eligible: bool = False


@dataclass(frozen=True)
class MethodInfo:
    """A public instance method."""

    name: str
    parameters: Tuple[ParameterInfo, ...] = ()
    marked: bool = False
    eligible: bool = False


@dataclass(frozen=True)
class ScanResult:
    """Every injection candidate of a type, tagged with its eligibility."""

    target_type: Any
    constructors: Tuple[ConstructorInfo, ...] = ()
    properties: Tuple[PropertyInfo, ...] = ()
    methods: Tuple[MethodInfo, ...] = ()
    skipped_members: Tuple[str, ...] = ()
    """Members that could not be introspected in a lenient (batch) scan."""

    @property
    def eligible_constructors(self) -> Tuple[ConstructorInfo, ...]:
        return tuple(c for c in self.constructors if c.eligible)

    @property
    def eligible_properties(self) -> Tuple[PropertyInfo, ...]:
        return tuple(p for p in self.properties if p.eligible)

    @property
    def eligible_methods(self) -> Tuple[MethodInfo, ...]:
        return tuple(m for m in self.methods if m.eligible)


@dataclass(frozen=True)
class InjectionPlan:
    """
    Compiled description of how to build and populate one concrete type.

    Holds structural metadata only, never a reference to a container or
    backend, so a plan can be reused with any container.
    """

    target_type: Any
    constructor: ConstructorInfo

    properties: Tuple[PropertyInfo, ...] = field(default_factory=tuple)
    methods: Tuple[MethodInfo, ...] = field(default_factory=tuple)

    @property
    def constructor_parameters(self) -> Tuple[ParameterInfo, ...]:
        return self.constructor.parameters

    def describe(self) -> str:
        """Render the plan as human readable text."""
        def params(parameters: Tuple[ParameterInfo, ...]) -> str:
            return ", ".join(
                f"{p.name}: {getattr(p.service_type, '__qualname__', p.service_type)}"
                for p in parameters
            )

        lines = [f"{self.target_type.__module__}:{self.target_type.__qualname__}"]
        lines.append(f"  constructor {self.constructor.name}({params(self.constructor.parameters)})")
        for prop in self.properties:
            type_name = getattr(prop.service_type, '__qualname__', prop.service_type)
            suffix = " (required)" if prop.required else ""
            lines.append(f"  property {prop.name}: {type_name}{suffix}")
        for method in self.methods:
            lines.append(f"  method {method.name}({params(method.parameters)})")
        return "\n".join(lines)
