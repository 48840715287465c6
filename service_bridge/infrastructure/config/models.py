"""
Configuration models and data structures.

This module defines the configuration used to build a service container
from a file: backend selection, logging, explicit service registrations and
discovery of handler classes.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ...core.domain.registration import ServiceLifetime
from ...core.exceptions import InvalidRegistrationException

KNOWN_BACKENDS = ("native", "dependency_injector")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ContainerConfig:
    """Service container configuration."""
    backend: str = "native"
    implicit_lifetime: str = "transient"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_directory: str = "logs"
    max_file_size: str = "10MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False
    use_loguru: bool = True


@dataclass
class ServiceConfig:
    """
    A service registration.

    Types are given as "package.module:QualifiedName" paths.
    """
    service: str = ""
    implementation: Optional[str] = None
    name: Optional[str] = None
    lifetime: str = "transient"


@dataclass
class DiscoveryConfig:
    """Registration of every concrete subclass of base_type found in modules."""
    base_type: str = ""
    modules: List[str] = field(default_factory=list)
    lifetime: str = "per_request"


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    name: str = "Service Bridge"
    version: str = "0.1.0"
    debug: bool = False
    environment: str = "production"

    container: ContainerConfig = field(default_factory=ContainerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    services: List[ServiceConfig] = field(default_factory=list)
    discovery: List[DiscoveryConfig] = field(default_factory=list)

    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_container()
        self._validate_logging()
        self._validate_services()

    def _validate_container(self) -> None:
        backend = self.container.backend.strip().lower().replace('-', '_')
        if backend not in KNOWN_BACKENDS:
            raise ValueError(
                f"Unknown container backend '{self.container.backend}', "
                f"expected one of: {', '.join(KNOWN_BACKENDS)}")
        self._validate_lifetime("Implicit registration lifetime", self.container.implicit_lifetime)

    def _validate_logging(self) -> None:
        if self.logging.level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.logging.level}")
        if self.logging.backup_count < 0:
            raise ValueError(f"Log backup count must not be negative, got {self.logging.backup_count}")

    def _validate_services(self) -> None:
        for index, service in enumerate(self.services):
            if not service.service:
                raise ValueError(f"Service entry {index} has no service type")
            self._validate_lifetime(f"Lifetime of service '{service.service}'", service.lifetime)
        for index, discovery in enumerate(self.discovery):
            if not discovery.base_type:
                raise ValueError(f"Discovery entry {index} has no base type")
            self._validate_lifetime(f"Lifetime of discovery '{discovery.base_type}'", discovery.lifetime)

    @staticmethod
    def _validate_lifetime(label: str, value: str) -> None:
        try:
            ServiceLifetime.parse(value)
        except InvalidRegistrationException:
            raise ValueError(f"{label} is invalid: {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        container_config = ContainerConfig(**data.get('container', {}))
        logging_config = LoggingConfig(**data.get('logging', {}))
        services = [ServiceConfig(**entry) for entry in data.get('services') or []]
        discovery = [DiscoveryConfig(**entry) for entry in data.get('discovery') or []]

        return cls(
            name=data.get('name', 'Service Bridge'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            environment=data.get('environment', 'production'),
            container=container_config,
            logging=logging_config,
            services=services,
            discovery=discovery,
            config_file_path=data.get('config_file_path')
        )
