"""Diagnostics and per-run transformation context.

Every engine operation returns a best-effort result. Anything the user
should know about (dropped fields, skipped steps, invalid output) is
collected as a Diagnostic on the Context that is threaded through the
pipeline and every migration rule.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(Enum):
    """Diagnostic severity levels."""

    WARNING = "warning"
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single non-fatal finding produced during migration."""

    severity: Severity
    summary: str
    detail: str = ""
    address: str = ""

    def __str__(self) -> str:
        text = f"{self.severity.value.upper()}: {self.summary}"
        if self.address:
            text += f" [{self.address}]"
        if self.detail:
            text += f"\n  {self.detail}"
        return text


@dataclass
class Context:
    """State shared by one migration run.

    Attributes:
        source_version: Schema generation being migrated from (e.g. "v4")
        target_version: Schema generation being migrated to (e.g. "v5")
        filename: File currently being processed, used in diagnostics
        diagnostics: Accumulated warnings and errors
        config_bodies: Parsed configuration bodies keyed by "type.name",
            used by config-aware null normalization of state
        metadata: Free-form values passed from rules to the pipeline
    """

    source_version: str = "v4"
    target_version: str = "v5"
    filename: str = ""
    diagnostics: List[Diagnostic] = field(default_factory=list)
    config_bodies: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def warn(self, summary: str, detail: str = "", address: str = "") -> Diagnostic:
        """Record a warning-level diagnostic and return it."""
        diagnostic = Diagnostic(Severity.WARNING, summary, detail, address)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def error(self, summary: str, detail: str = "", address: str = "") -> Diagnostic:
        """Record an error-level diagnostic and return it."""
        diagnostic = Diagnostic(Severity.ERROR, summary, detail, address)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.diagnostics)

    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    def config_body(self, address: str) -> Optional[Any]:
        """Return the parsed configuration body for a resource address."""
        return self.config_bodies.get(address)
