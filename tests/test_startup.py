"""
Tests for hosting glue and container startup from configuration.
"""

import logging
from types import ModuleType
from typing import List, Sequence

import pytest

from service_bridge.application.container import ServiceContainer
from service_bridge.application.hosting import (
    ModuleHostingEnvironment, load_type, register_subclasses
)
from service_bridge.application.startup import ContainerStartup
from service_bridge.core.domain.registration import ServiceKey, ServiceLifetime
from service_bridge.core.exceptions import ServiceResolutionException, TypeLoadException
from service_bridge.core.interfaces.hosting import IHostingEnvironment
from service_bridge.infrastructure.backends import DependencyInjectorBackend, NativeBackend
from service_bridge.infrastructure.config.models import (
    ApplicationConfig, ContainerConfig, DiscoveryConfig, ServiceConfig
)

import di_components
from di_components import (
    AbstractHandler, IRepository, MemoryRepository, OrdersHandler, RequestHandler, UsersHandler
)


class StaticEnvironment(IHostingEnvironment):
    """Hosting environment over already imported modules."""

    def __init__(self, modules: Sequence[ModuleType]) -> None:
        self._modules = list(modules)

    def get_modules(self) -> Sequence[ModuleType]:
        return self._modules


class TestLoadType:
    """Test cases for load_type()."""

    def test_colon_path(self) -> None:
        assert load_type("di_components:MemoryRepository") is MemoryRepository

    def test_dotted_path(self) -> None:
        assert load_type("di_components.MemoryRepository") is MemoryRepository

    def test_nested_qualname(self) -> None:
        assert load_type("service_bridge.core.domain.registration:ServiceLifetime") is ServiceLifetime

    @pytest.mark.parametrize("path", [
        "missing_module_for_tests:Thing",
        "di_components:Missing",
        "di_components:ILogger.log",
        "NoModule",
    ])
    def test_invalid_paths(self, path: str) -> None:
        with pytest.raises(TypeLoadException):
            load_type(path)


class TestModuleHostingEnvironment:
    """Test cases for ModuleHostingEnvironment."""

    def test_imports_modules(self) -> None:
        environment = ModuleHostingEnvironment(["di_components"])

        assert environment.get_modules() == [di_components]

    def test_skips_broken_modules(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that modules failing to import are skipped with a warning."""
        environment = ModuleHostingEnvironment(["missing_module_for_tests", "di_components"])

        with caplog.at_level(logging.WARNING, logger="service_bridge"):
            modules = environment.get_modules()

        assert modules == [di_components]
        assert "missing_module_for_tests" in caplog.text


class TestRegisterSubclasses:
    """Test cases for register_subclasses()."""

    def test_registers_concrete_subclasses(self, container: ServiceContainer) -> None:
        """Test that only concrete subclasses are registered, base excluded."""
        registered = register_subclasses(container, StaticEnvironment([di_components]), RequestHandler)

        assert registered == [OrdersHandler, UsersHandler]
        assert not container.is_registered(RequestHandler)
        assert not container.is_registered(AbstractHandler)

    def test_default_lifetime_is_per_request(self, container: ServiceContainer) -> None:
        """Test that discovered handlers live for one request."""
        container.register(IRepository, MemoryRepository)
        register_subclasses(container, StaticEnvironment([di_components]), RequestHandler)

        with container.begin_request():
            first = container.get_instance(OrdersHandler)
            assert container.get_instance(OrdersHandler) is first
            assert first.handle() == "orders"

        with pytest.raises(ServiceResolutionException):
            container.get_instance(OrdersHandler)

    def test_explicit_lifetime(self, container: ServiceContainer) -> None:
        registered = register_subclasses(
            container, StaticEnvironment([di_components]), RequestHandler, "singleton")

        lifetimes = {r.service_type: r.lifetime for r in container.get_registrations()}
        assert all(lifetimes[t] is ServiceLifetime.SINGLETON for t in registered)

    def test_duplicate_modules(self, container: ServiceContainer) -> None:
        registered = register_subclasses(
            container, StaticEnvironment([di_components, di_components]), RequestHandler)

        assert registered == [OrdersHandler, UsersHandler]


class TestContainerStartup:
    """Test cases for ContainerStartup."""

    @pytest.fixture
    def config(self) -> ApplicationConfig:
        return ApplicationConfig(
            services=[
                ServiceConfig(service="di_components:IRepository",
                              implementation="di_components:MemoryRepository",
                              lifetime="singleton"),
                ServiceConfig(service="di_components:IRepository",
                              implementation="di_components:SqlRepository",
                              name="sql"),
            ],
            discovery=[
                DiscoveryConfig(base_type="di_components:RequestHandler", modules=["di_components"]),
            ]
        )

    def test_configure(self, config: ApplicationConfig) -> None:
        """Test that configured services and discovered handlers are registered."""
        startup = ContainerStartup(config)
        container = startup.configure()

        try:
            assert isinstance(container.backend, NativeBackend)
            assert container.get_instance(IRepository) is container.get_instance(IRepository)
            assert container.is_registered(IRepository, "sql")
            assert container.is_registered(OrdersHandler)
            assert startup.configure() is container
            assert startup.configured_keys == [
                ServiceKey(IRepository),
                ServiceKey(IRepository, "sql"),
                ServiceKey(OrdersHandler),
                ServiceKey(UsersHandler),
            ]
        finally:
            startup.shutdown()

        assert container.disposed
        assert startup.container is None

    def test_backend_selection(self, config: ApplicationConfig) -> None:
        config.container = ContainerConfig(backend="dependency-injector")
        startup = ContainerStartup(config)

        try:
            assert isinstance(startup.configure().backend, DependencyInjectorBackend)
        finally:
            startup.shutdown()

    def test_resolve_configured(self, config: ApplicationConfig) -> None:
        """Test resolving every configured service, including per-request ones."""
        startup = ContainerStartup(config)

        try:
            keys: List[ServiceKey] = startup.resolve_configured()
        finally:
            startup.shutdown()

        assert len(keys) == 4

    def test_invalid_type_path_disposes_container(self) -> None:
        config = ApplicationConfig(services=[ServiceConfig(service="di_components:Missing")])
        startup = ContainerStartup(config)

        with pytest.raises(TypeLoadException):
            startup.configure()

        assert startup.container is None
