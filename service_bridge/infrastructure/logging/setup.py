"""
Logging setup and configuration utilities.

Library modules log through the standard library; the application entry point
calls setup_logging() once, which routes those records into loguru sinks
(console and rotating file).
"""

import logging
import sys
from pathlib import Path

from loguru import logger as loguru_logger

from ..config.models import LoggingConfig

PACKAGE_LOGGER = "service_bridge"


class InterceptHandler(logging.Handler):
    """Forwards standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # find the frame that issued the logging call
        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup application logging with the given configuration.

    Args:
        config: Logging configuration
    """
    if config.use_loguru:
        _setup_loguru_logging(config)
    else:
        _setup_standard_logging(config)


def _setup_loguru_logging(config: LoggingConfig) -> None:
    loguru_logger.remove()

    if config.console_enabled:
        loguru_logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                   "<level>{level: <8}</level> | "
                   "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                   "<level>{message}</level>",
            level=config.level.upper(),
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)
        loguru_logger.add(
            log_dir / "service_bridge.log",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                   "{name}:{function}:{line} - {message}",
            level=config.level.upper(),
            rotation=config.max_file_size,
            retention=config.backup_count,
            compression="zip",
            backtrace=True,
            diagnose=False
        )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    _remove_handlers(package_logger)
    package_logger.addHandler(InterceptHandler())
    package_logger.setLevel(_stdlib_level(config.level))
    package_logger.propagate = False


def _setup_standard_logging(config: LoggingConfig) -> None:
    level = _stdlib_level(config.level)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    _remove_handlers(package_logger)
    package_logger.setLevel(level)
    package_logger.propagate = False

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(config.format))
        package_logger.addHandler(console_handler)

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "service_bridge.log", encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(config.format))
        package_logger.addHandler(file_handler)

    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())


def _remove_handlers(target: logging.Logger) -> None:
    for handler in list(target.handlers):
        target.removeHandler(handler)
        handler.close()


def _stdlib_level(level: str) -> int:
    # loguru-only levels map onto their nearest standard level
    aliases = {"TRACE": "DEBUG", "SUCCESS": "INFO"}
    name = level.upper()
    return getattr(logging, aliases.get(name, name), logging.INFO)  # type: ignore[no-any-return]
