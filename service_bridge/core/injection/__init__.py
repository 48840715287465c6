"""Introspection-driven injection: marker, scanner, selector and plan builder."""

from .builder import InjectorBuilder
from .marker import (
    Injection, constructor, find_marker, get_marker, injection, injection_required, is_marked
)
from .scanner import MetadataScanner
from .selector import ConstructorSelector

__all__ = [
    "InjectorBuilder",
    "Injection",
    "constructor",
    "find_marker",
    "get_marker",
    "injection",
    "injection_required",
    "is_marked",
    "MetadataScanner",
    "ConstructorSelector",
]
