"""
Tests for the service container facade.

These tests run against every backend and check that registration,
resolution, injection and disposal behave the same on all of them.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from service_bridge.application.container import ServiceContainer
from service_bridge.core.domain.registration import ServiceKey, ServiceLifetime
from service_bridge.core.exceptions import (
    CircularDependencyException,
    ContainerDisposedException,
    InvalidRegistrationException,
    NoSuitableConstructorException,
    ServiceNotRegisteredException,
    ServiceResolutionException,
    TypeLoadException,
)
from service_bridge.core.interfaces.container import IServiceContainer
from service_bridge.infrastructure.backends import create_backend

from di_components import (
    BrokenAnnotations,
    CycleA,
    FailingConstructor,
    ICache,
    IClock,
    ILogger,
    IMarkerService,
    IRepository,
    ListLogger,
    MarkedConstructor,
    MarkerService,
    MemoryRepository,
    MultiConstructor,
    NeedsScalar,
    NeedsUnregistered,
    OrderedInjection,
    PropertyInjected,
    ReportService,
    RequiredPropertyInjected,
    SetterInjected,
    SlowToBuild,
    SqlRepository,
    Unannotated,
    WithDefaults,
    WrongConstructorResult,
)


class TestRegistration:
    """Test cases for registering services."""

    def test_register_and_resolve_singleton(self, container: ServiceContainer) -> None:
        """Test singleton service registration and resolution."""
        container.register(IRepository, MemoryRepository, lifetime=ServiceLifetime.SINGLETON)

        service1 = container.get_instance(IRepository)
        service2 = container.get_instance(IRepository)

        assert isinstance(service1, MemoryRepository)
        assert service1 is service2

    def test_register_and_resolve_transient(self, container: ServiceContainer) -> None:
        """Test transient service registration and resolution."""
        container.register(IRepository, MemoryRepository, lifetime=ServiceLifetime.TRANSIENT)

        service1 = container.get_instance(IRepository)
        service2 = container.get_instance(IRepository)

        assert isinstance(service1, MemoryRepository)
        assert service1 is not service2

    def test_register_lifetime_by_name(self, container: ServiceContainer) -> None:
        """Test that lifetimes can be given by their configuration spelling."""
        container.register(IRepository, MemoryRepository, lifetime="singleton")

        assert container.get_instance(IRepository) is container.get_instance(IRepository)

    def test_register_self(self, container: ServiceContainer) -> None:
        """Test registering a concrete type as itself."""
        container.register(MemoryRepository, lifetime=ServiceLifetime.SINGLETON)

        assert isinstance(container.get_instance(MemoryRepository), MemoryRepository)
        assert container.is_registered(MemoryRepository)

    def test_register_returns_container(self, container: ServiceContainer) -> None:
        """Test that register() can be chained."""
        result = container.register(IRepository, MemoryRepository).register(ILogger, ListLogger)

        assert result is container
        assert container.is_registered(IRepository)
        assert container.is_registered(ILogger)

    def test_register_none_service_type(self, container: ServiceContainer) -> None:
        """Test that a None service type is rejected."""
        with pytest.raises(InvalidRegistrationException):
            container.register(None)  # type: ignore[arg-type]

    def test_register_incompatible_implementation(self, container: ServiceContainer) -> None:
        """Test that an implementation must be assignable to the service type."""
        with pytest.raises(InvalidRegistrationException):
            container.register(IRepository, ListLogger)  # type: ignore[arg-type]

        assert not container.is_registered(IRepository)

    def test_register_non_class_implementation(self, container: ServiceContainer) -> None:
        """Test that the implementation must be a class."""
        with pytest.raises(InvalidRegistrationException):
            container.register(IRepository, MemoryRepository())  # type: ignore[arg-type]

    def test_invalid_registration_is_value_error(self, container: ServiceContainer) -> None:
        """Test that argument errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            container.register(IRepository, lifetime="forever")

    def test_protocol_service_type_taken_on_trust(self, container: ServiceContainer) -> None:
        """Test that a non-runtime protocol can be used as service type."""

        class Clock:
            def now(self) -> float:
                return 1.0

        container.register(IClock, Clock)

        assert container.get_instance(IClock).now() == 1.0

    def test_register_instance(self, container: ServiceContainer) -> None:
        """Test instance registration."""
        instance = MemoryRepository()
        container.register_instance(IRepository, instance)

        assert container.get_instance(IRepository) is instance
        assert container.get_instance(IRepository) is instance

    def test_register_instance_validation(self, container: ServiceContainer) -> None:
        """Test that None and mismatched instances are rejected."""
        with pytest.raises(InvalidRegistrationException):
            container.register_instance(IRepository, None)
        with pytest.raises(InvalidRegistrationException):
            container.register_instance(IRepository, ListLogger())  # type: ignore[arg-type]

    def test_reregistration_supersedes(self, container: ServiceContainer) -> None:
        """Test that the newest registration for a key wins."""
        container.register(IRepository, MemoryRepository)
        container.register(IRepository, SqlRepository)

        assert isinstance(container.get_instance(IRepository), SqlRepository)
        registrations = [r for r in container.get_registrations() if r.service_type is IRepository]
        assert len(registrations) == 1
        assert registrations[0].implementation_type is SqlRepository

    def test_reregistration_keeps_resolved_singleton(self, container: ServiceContainer) -> None:
        """Test that re-registering a key leaves already resolved singletons alone."""
        container.register(IRepository, MemoryRepository, lifetime=ServiceLifetime.SINGLETON)
        first = container.get_instance(IRepository)
        first.items["a"] = 1

        container.register(IRepository, SqlRepository, lifetime=ServiceLifetime.SINGLETON)
        second = container.get_instance(IRepository)

        assert isinstance(first, MemoryRepository)
        assert first.items == {"a": 1}
        assert isinstance(second, SqlRepository)
        assert second is not first
        assert container.get_instance(IRepository) is second

    def test_registrations_in_commit_order(self, container: ServiceContainer) -> None:
        """Test that get_registrations() reports commit order."""
        container.register(IRepository, MemoryRepository)
        container.register(ILogger, ListLogger)

        keys = [r.key for r in container.get_registrations()]

        assert keys == [
            ServiceKey(IServiceContainer),
            ServiceKey(IRepository),
            ServiceKey(ILogger),
        ]

    def test_container_registers_itself(self, container: ServiceContainer) -> None:
        """Test that the container resolves as IServiceContainer."""
        assert container.get_instance(IServiceContainer) is container


class TestNamedRegistrations:
    """Test cases for named registrations and resolve-all."""

    def test_named_and_default_registrations(self, container: ServiceContainer) -> None:
        """Test that names select between registrations of one service type."""
        container.register(IRepository, MemoryRepository)
        container.register(IRepository, SqlRepository, service_name="sql")

        assert isinstance(container.get_instance(IRepository), MemoryRepository)
        assert isinstance(container.get_instance(IRepository, "sql"), SqlRepository)

    def test_get_all_instances(self, container: ServiceContainer) -> None:
        """Test that resolve-all yields one instance per registration."""
        container.register(IRepository, MemoryRepository)
        container.register(IRepository, SqlRepository, service_name="sql")

        instances = container.get_all_instances(IRepository)

        assert [type(i) for i in instances] == [MemoryRepository, SqlRepository]

    def test_get_all_instances_empty(self, container: ServiceContainer) -> None:
        """Test resolve-all for a type without registrations."""
        assert container.get_all_instances(ICache) == []

    def test_unknown_name(self, container: ServiceContainer) -> None:
        """Test resolving a name that was never registered."""
        container.register(IRepository, MemoryRepository)

        with pytest.raises(ServiceNotRegisteredException) as exc_info:
            container.get_instance(IRepository, "missing")

        assert exc_info.value.matches(IRepository, "missing")


class TestResolution:
    """Test cases for resolving services."""

    def test_constructor_injection(self, container: ServiceContainer) -> None:
        """Test that constructor dependencies are resolved."""
        container.register(IRepository, MemoryRepository, lifetime=ServiceLifetime.SINGLETON)
        container.register(ILogger, ListLogger)

        service = container.get_instance(ReportService)

        assert service.repository is container.get_instance(IRepository)
        assert isinstance(service.logger, ListLogger)

    def test_implicit_registration(self, container: ServiceContainer) -> None:
        """Test that unregistered concrete types are registered on first resolve."""
        assert not container.is_registered(MemoryRepository)

        first = container.get_instance(MemoryRepository)
        second = container.get_instance(MemoryRepository)

        assert container.is_registered(MemoryRepository)
        assert first is not second
        registration = [r for r in container.get_registrations() if r.service_type is MemoryRepository][0]
        assert registration.implicit
        assert registration.lifetime is ServiceLifetime.TRANSIENT

    def test_abstract_type_is_not_registered_implicitly(self, container: ServiceContainer) -> None:
        """Test that interfaces are never self-registered."""
        with pytest.raises(ServiceNotRegisteredException):
            container.get_instance(ILogger)

        assert not container.is_registered(ILogger)

    def test_interface_without_abstract_members(self, container: ServiceContainer) -> None:
        """Test that a marker interface is resolvable only through a registration."""
        with pytest.raises(ServiceNotRegisteredException):
            container.get_instance(IMarkerService)
        assert not container.is_registered(IMarkerService)

        container.register(IMarkerService, MarkerService)

        assert isinstance(container.get_instance(IMarkerService), MarkerService)

    def test_try_get_instance(self, container: ServiceContainer) -> None:
        """Test that try_get_instance() returns None for missing registrations."""
        assert container.try_get_instance(ILogger) is None

        container.register(ILogger, ListLogger)
        assert isinstance(container.try_get_instance(ILogger), ListLogger)

    def test_try_get_instance_reraises_nested_failures(self, container: ServiceContainer) -> None:
        """Test that only the requested key being unregistered yields None."""
        with pytest.raises(ServiceResolutionException):
            container.try_get_instance(NeedsUnregistered)

    def test_missing_constructor_dependency(self, container: ServiceContainer) -> None:
        """Test that a missing constructor dependency is a resolution failure."""
        with pytest.raises(ServiceResolutionException) as exc_info:
            container.get_instance(NeedsUnregistered)

        error = exc_info.value
        assert not isinstance(error, ServiceNotRegisteredException)
        assert error.matches(NeedsUnregistered)
        assert isinstance(error.__cause__, ServiceNotRegisteredException)
        assert error.__cause__.matches(ICache)

    def test_defaults_and_optional_parameters(self, container: ServiceContainer) -> None:
        """Test that unresolvable parameters fall back to their defaults."""
        container.register(ILogger, ListLogger)

        service = container.get_instance(WithDefaults)

        assert isinstance(service.logger, ListLogger)
        assert service.name == "default"
        assert service.cache is None
        assert service.retries == 3

    def test_registered_scalar_is_injected(self, container: ServiceContainer) -> None:
        """Test that builtin types are injected only when registered."""
        with pytest.raises(ServiceResolutionException):
            container.get_instance(NeedsScalar)

        container.register_instance(str, "configured")
        assert container.get_instance(NeedsScalar).name == "configured"

    def test_unannotated_parameter(self, container: ServiceContainer) -> None:
        """Test that an unannotated parameter without default cannot be injected."""
        with pytest.raises(ServiceResolutionException):
            container.get_instance(Unannotated)

    def test_circular_dependency(self, container: ServiceContainer) -> None:
        """Test that cycles are detected instead of recursing forever."""
        with pytest.raises(CircularDependencyException) as exc_info:
            container.get_instance(CycleA)

        assert "CycleA -> CycleB -> CycleA" in str(exc_info.value)

    def test_no_suitable_constructor(self, container: ServiceContainer) -> None:
        """Test that registering an abstract implementation fails on resolve."""
        container.register(ILogger)

        with pytest.raises(NoSuitableConstructorException):
            container.get_instance(ILogger)

    def test_type_load_failure(self, container: ServiceContainer) -> None:
        """Test that an unloadable constructor surfaces as TypeLoadException."""
        with pytest.raises(TypeLoadException):
            container.get_instance(BrokenAnnotations)

    def test_constructor_error_is_wrapped(self, container: ServiceContainer) -> None:
        """Test that errors raised by user constructors become resolution failures."""
        with pytest.raises(ServiceResolutionException) as exc_info:
            container.get_instance(FailingConstructor)

        assert exc_info.value.matches(FailingConstructor)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_alternate_constructor_must_return_instance(self, container: ServiceContainer) -> None:
        """Test that an alternate constructor returning a foreign object fails."""
        with pytest.raises(ServiceResolutionException):
            container.get_instance(WrongConstructorResult)

    def test_resolve_none(self, container: ServiceContainer) -> None:
        """Test that resolving None is an argument error."""
        with pytest.raises(InvalidRegistrationException):
            container.get_instance(None)  # type: ignore[arg-type]


class TestConstructorSelection:
    """Test cases for constructor selection during resolution."""

    @pytest.fixture(autouse=True)
    def register_dependencies(self, container: ServiceContainer) -> None:
        container.register(ILogger, ListLogger)
        container.register(IRepository, MemoryRepository)

    def test_most_parameters_wins(self, container: ServiceContainer) -> None:
        """Test that the longest unmarked constructor is selected."""
        service = container.get_instance(MultiConstructor)

        assert service.source == "with_repository"
        assert isinstance(service.repository, MemoryRepository)

    def test_marked_constructor_wins(self, container: ServiceContainer) -> None:
        """Test that a marked constructor wins over a longer one."""
        service = container.get_instance(MarkedConstructor)

        assert service.source == "create"
        assert service.repository is None


class TestPropertyAndMethodInjection:
    """Test cases for property and method injection."""

    def test_marked_attribute_injected(self, container: ServiceContainer) -> None:
        """Test that marked attributes are populated and others left alone."""
        container.register(ILogger, ListLogger)

        service = container.get_instance(PropertyInjected)

        assert isinstance(service.logger, ListLogger)
        assert service.cache is None
        assert service.unmarked is None

    def test_property_setter_injected(self, container: ServiceContainer) -> None:
        """Test that a marked property setter receives the dependency."""
        container.register(ILogger, ListLogger)

        service = container.get_instance(SetterInjected)

        assert isinstance(service.logger, ListLogger)

    def test_required_property_missing(self, container: ServiceContainer) -> None:
        """Test that a required property without registration fails."""
        with pytest.raises(ServiceResolutionException) as exc_info:
            container.get_instance(RequiredPropertyInjected)

        assert isinstance(exc_info.value.__cause__, ServiceNotRegisteredException)

    def test_injection_order(self, container: ServiceContainer) -> None:
        """Test that constructor, properties and methods run in that order."""
        container.register(ILogger, ListLogger)
        container.register(IRepository, MemoryRepository)

        service = container.get_instance(OrderedInjection)

        assert service.events == ["constructor", "property", "method"]

    def test_inject_existing(self, container: ServiceContainer) -> None:
        """Test that an existing object gets properties and methods, not construction."""
        container.register(ILogger, ListLogger)
        repository = MemoryRepository()
        instance = OrderedInjection(repository)

        result = container.inject_existing(instance)

        assert result is instance
        assert instance.repository is repository
        assert instance.events == ["constructor", "property", "method"]
        assert isinstance(instance.logger, ListLogger)

    def test_inject_existing_none(self, container: ServiceContainer) -> None:
        """Test that injecting into None is an argument error."""
        with pytest.raises(InvalidRegistrationException):
            container.inject_existing(None)

    def test_plans_are_cached(self, container: ServiceContainer) -> None:
        """Test that a plan is built once per type."""
        container.register(ILogger, ListLogger)
        container.register(IRepository, MemoryRepository)

        container.get_instance(ReportService)
        plan = container.injector.get_or_build_plan(ReportService)
        container.get_instance(ReportService)

        assert container.injector.is_cached(ReportService)
        assert container.injector.get_or_build_plan(ReportService) is plan


class TestRegistrationEvents:
    """Test cases for the registering hub of the container."""

    def test_event_published_before_commit(self, container: ServiceContainer) -> None:
        """Test that subscribers see registrations before they are committed."""
        seen = []

        def handler(event):
            seen.append((event.service_type, event.implementation_type, event.lifetime,
                         container.is_registered(event.service_type, event.service_name)))

        container.registering.subscribe(handler)
        container.register(IRepository, MemoryRepository, lifetime=ServiceLifetime.SINGLETON)

        assert seen == [(IRepository, MemoryRepository, ServiceLifetime.SINGLETON, False)]
        assert container.is_registered(IRepository)

    def test_implicit_registration_publishes_event(self, container: ServiceContainer) -> None:
        """Test that implicit registrations flow through the hub too."""
        handler = Mock()
        container.registering.subscribe(handler)

        container.get_instance(MemoryRepository)

        handler.assert_called_once()
        assert handler.call_args[0][0].service_type is MemoryRepository

    def test_activation_hook_from_subscriber(self, container: ServiceContainer) -> None:
        """Test that subscribers can alter the registration through the builder."""
        def handler(event):
            event.builder.on_activated(lambda instance: instance.items.update(seeded=True))

        container.registering.subscribe(handler)
        container.register(IRepository, MemoryRepository)

        assert container.get_instance(IRepository).get("seeded") is True

    def test_subscriber_error_aborts_registration(self, container: ServiceContainer) -> None:
        """Test that a failing subscriber prevents the commit."""
        container.registering.subscribe(Mock(side_effect=RuntimeError("rejected")))

        with pytest.raises(RuntimeError):
            container.register(IRepository, MemoryRepository)

        assert not container.is_registered(IRepository)


class TestConcurrency:
    """Test cases for concurrent use of the container."""

    def test_concurrent_implicit_registration(self, backend_name: str) -> None:
        """Test that racing first resolutions register a type exactly once."""
        SlowToBuild.instances = 0
        container = ServiceContainer(create_backend(backend_name), implicit_lifetime="singleton")
        barrier = threading.Barrier(8)

        def resolve() -> SlowToBuild:
            barrier.wait()
            return container.get_instance(SlowToBuild)

        try:
            with ThreadPoolExecutor(max_workers=8) as executor:
                results = list(executor.map(lambda _: resolve(), range(8)))
        finally:
            registrations = [r for r in container.get_registrations() if r.service_type is SlowToBuild]
            container.dispose()

        assert len(registrations) == 1
        assert all(result is results[0] for result in results)
        assert SlowToBuild.instances == 1

    def test_concurrent_resolution_of_singleton(self, container: ServiceContainer) -> None:
        """Test that a singleton is created once under concurrent resolution."""
        container.register(IRepository, MemoryRepository, lifetime=ServiceLifetime.SINGLETON)

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: container.get_instance(IRepository), range(32)))

        assert all(result is results[0] for result in results)


class TestDisposal:
    """Test cases for container disposal."""

    def test_dispose_is_idempotent(self, container: ServiceContainer) -> None:
        """Test that disposing twice is harmless."""
        container.dispose()
        container.dispose()

        assert container.disposed

    def test_operations_after_dispose(self, container: ServiceContainer) -> None:
        """Test that every operation fails once the container is disposed."""
        container.register(IRepository, MemoryRepository)
        container.dispose()

        with pytest.raises(ContainerDisposedException):
            container.register(ILogger, ListLogger)
        with pytest.raises(ContainerDisposedException):
            container.register_instance(ILogger, ListLogger())
        with pytest.raises(ContainerDisposedException):
            container.get_instance(IRepository)
        with pytest.raises(ContainerDisposedException):
            container.get_all_instances(IRepository)
        with pytest.raises(ContainerDisposedException):
            container.inject_existing(MemoryRepository())

    def test_dispose_clears_plan_cache(self, container: ServiceContainer) -> None:
        """Test that disposal drops the cached plans."""
        container.get_instance(MemoryRepository)
        assert container.injector.is_cached(MemoryRepository)

        container.dispose()

        assert not container.injector.is_cached(MemoryRepository)

    def test_context_manager(self, backend_name: str) -> None:
        """Test that leaving the with-block disposes the container."""
        with ServiceContainer(create_backend(backend_name)) as container:
            container.register(IRepository, MemoryRepository)

        assert container.disposed

    def test_native_singletons_released(self) -> None:
        """Test that the native backend disposes singletons it created."""
        from di_components import Disposable

        container = ServiceContainer()
        container.register(Disposable, lifetime=ServiceLifetime.SINGLETON)
        instance = container.get_instance(Disposable)

        container.dispose()

        assert instance.disposed

    def test_native_superseded_singletons_released(self) -> None:
        """Test that singletons of re-registered keys are released on disposal."""
        from di_components import Disposable

        container = ServiceContainer()
        container.register(Disposable, lifetime=ServiceLifetime.SINGLETON)
        first = container.get_instance(Disposable)
        container.register(Disposable, lifetime=ServiceLifetime.SINGLETON)
        second = container.get_instance(Disposable)

        assert first is not second
        assert not first.disposed

        container.dispose()

        assert first.disposed
        assert second.disposed


class TestExtensions:
    """Test cases for container extensions."""

    def test_add_extension_once_per_type(self, container: ServiceContainer) -> None:
        """Test that an extension type is initialized only once."""

        class Extension:
            def __init__(self) -> None:
                self.initialized_with = []

            def initialize(self, target: ServiceContainer) -> None:
                self.initialized_with.append(target)

        first = container.add_extension(Extension)
        second = container.add_extension(Extension())

        assert first is second
        assert first.initialized_with == [container]
