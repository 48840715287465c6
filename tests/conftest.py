"""
Shared fixtures for the test-suite.

Container behaviour tests run once per backend through the parametrized
``container`` fixture.
"""

from typing import Generator

import pytest

from service_bridge.application.container import ServiceContainer
from service_bridge.infrastructure.backends import BACKENDS, create_backend


@pytest.fixture(params=sorted(BACKENDS))
def backend_name(request: pytest.FixtureRequest) -> str:
    """Name of the backend under test."""
    return request.param  # type: ignore[no-any-return]


@pytest.fixture
def container(backend_name: str) -> Generator[ServiceContainer, None, None]:
    """Create a container on the backend under test and dispose it afterwards."""
    container = ServiceContainer(create_backend(backend_name))
    yield container
    container.dispose()
