"""
Command-line interface for Service Bridge.

Provides tooling around the container: printing injection plans, batch
scanning modules for injection metadata, and generating or validating
container configuration files.
"""

import inspect
import sys
from typing import List

import typer

from .application.hosting import ModuleHostingEnvironment, load_type
from .application.startup import ContainerStartup
from .core.exceptions import ServiceBridgeException
from .core.injection.builder import InjectorBuilder
from .core.injection.scanner import MetadataScanner
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig
from .infrastructure.logging.setup import setup_logging

# Create CLI application
cli = typer.Typer(
    name="service-bridge",
    help="Backend-agnostic dependency injection container tooling"
)


@cli.command()
def plan(
    type_path: str = typer.Argument(..., help="Type to inspect as module:QualifiedName")
) -> None:
    """Print the injection plan of a type."""

    try:
        target_type = load_type(type_path)
        injection_plan = InjectorBuilder().build_plan(target_type)
    except ServiceBridgeException as e:
        typer.echo(f"Cannot build injection plan: {e}", err=True)
        sys.exit(1)

    typer.echo(injection_plan.describe())


@cli.command()
def scan(
    modules: List[str] = typer.Argument(..., help="Modules to scan")
) -> None:
    """Scan every class defined in the given modules for injection metadata."""

    environment = ModuleHostingEnvironment(modules)
    loaded = environment.get_modules()
    if not loaded:
        typer.echo("No modules could be imported", err=True)
        sys.exit(1)

    types = [
        member
        for module in loaded
        for member in vars(module).values()
        if inspect.isclass(member) and member.__module__ == module.__name__
    ]
    results = MetadataScanner().scan_many(types)

    for target_type, result in results.items():
        typer.echo(
            f"{target_type.__module__}:{target_type.__qualname__}: "
            f"constructors={len(result.eligible_constructors)} "
            f"properties={len(result.eligible_properties)} "
            f"methods={len(result.eligible_methods)}")
        for member in result.skipped_members:
            typer.echo(f"  skipped {member}")

    typer.echo(f"Scanned {len(results)} types in {len(loaded)} modules")


@cli.command()
def init_config(
    output: str = typer.Option(
        "service_bridge.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""

    config = ApplicationConfig()
    config_loader = ConfigLoader()

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
    except ValueError as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(..., help="Configuration file to validate"),
    resolve: bool = typer.Option(
        False, "--resolve", help="Build the container and resolve every configured service"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log container activity"
    )
) -> None:
    """Validate a configuration file."""

    config_loader = ConfigLoader()

    try:
        config = config_loader.load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)

    if verbose:
        config.logging.level = "DEBUG"
        setup_logging(config.logging)

    typer.echo(f"Configuration file {config_file} is valid")
    typer.echo(f"Application: {config.name} v{config.version}")
    typer.echo(f"Backend: {config.container.backend}")

    if not resolve:
        return

    startup = ContainerStartup(config)
    try:
        keys = startup.resolve_configured()
        typer.echo(f"Resolved {len(keys)} configured services")
    except ServiceBridgeException as e:
        typer.echo(f"Container validation failed: {e}", err=True)
        sys.exit(1)
    finally:
        startup.shutdown()


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
