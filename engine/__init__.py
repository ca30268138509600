"""Transformation engine for migrating Terraform configuration and state."""

from .diagnostics import Context, Diagnostic, Severity
from .exceptions import MigrationError
from .registry import Registry, build_registry

__all__ = [
    "Context",
    "Diagnostic",
    "MigrationError",
    "Registry",
    "Severity",
    "build_registry",
]
