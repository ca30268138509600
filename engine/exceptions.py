"""Custom exception types for tfmigrate.

This module defines the exception hierarchy for migration errors. Errors
raised inside a single transformation step are caught by that step and
recorded as diagnostics; only the pipeline and CLI surface them to users.

Exception Hierarchy:
    MigrationError (base)
    ├── HclParseError - Configuration text or expression could not be parsed
    ├── ShapeMismatchError - Value has a different shape than a step expects
    ├── RegistryError - Conflicting or invalid rule registration
    ├── StateFileError - State file could not be read or written
    └── SettingsError - Invalid run settings file
"""

from typing import Any, Dict, Optional


class MigrationError(Exception):
    """Base exception for all tfmigrate errors.

    Attributes:
        message: Human-readable error description
        context: Additional contextual information (e.g., resource address, file path)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Initialize MigrationError.

        Args:
            message: Human-readable error description
            context: Optional dict with additional context (addresses, paths, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class HclParseError(MigrationError):
    """Raised when configuration text cannot be parsed.

    Examples:
        - Unbalanced brackets inside an attribute value
        - A tuple or object with an empty element
        - Rendered output rejected by python-hcl2
    """

    pass


class ShapeMismatchError(MigrationError):
    """Raised when a value has an unexpected shape.

    Examples:
        - A condition attribute holding a string or a reference instead of
          a list
    """

    pass


class RegistryError(MigrationError):
    """Raised when rule registration is invalid.

    Examples:
        - Two rules registered for the same source type and versions
        - Registration attempted after the registry was frozen
    """

    pass


class StateFileError(MigrationError):
    """Raised when a state file cannot be read, parsed or written."""

    pass


class SettingsError(MigrationError):
    """Raised when a settings file is missing, malformed or has unknown keys."""

    pass
