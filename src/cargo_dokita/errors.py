"""Exception types.

Two families:

- ``DokitaError`` subclasses abort the run before any check executes
  (bad project path, no Cargo.toml, unreadable manifest, bad config file).
- ``DegradedCheckError`` subclasses are raised by collaborators (registry,
  cargo subprocesses) and always converted into a Finding by the check that
  called them, so they never reach the orchestrator.
"""

from typing import Optional

from . import codes
from .models import Finding, Severity


class DokitaError(Exception):
    """Base class for errors that abort an analysis run."""


class UnresolvableProjectPath(DokitaError):
    """The project path does not exist or cannot be canonicalized."""


class NotRustProject(DokitaError):
    """The project directory has no Cargo.toml."""


class ManifestParseError(DokitaError):
    """Cargo.toml could not be read or parsed."""


class ConfigError(DokitaError):
    """The .cargo-dokita.toml file could not be read or is invalid."""


class DegradedCheckError(Exception):
    """A check could not complete; carries the finding that reports it."""

    code: str = ""
    severity: Severity = Severity.WARNING

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file_path = file_path

    def to_finding(self) -> Finding:
        return Finding(
            code=self.code,
            message=self.message,
            severity=self.severity,
            file_path=self.file_path,
        )


class RegistryError(DegradedCheckError):
    """The crates.io lookup for a dependency failed."""

    code = codes.API_FETCH_FAILED


class AuditToolError(DegradedCheckError):
    """cargo-audit could not be run or reported something unusable."""

    def __init__(self, code: str, message: str, file_path: Optional[str] = None):
        super().__init__(message, file_path)
        self.code = code


class MetadataError(Exception):
    """The resolved dependency graph could not be obtained.

    Not turned into a finding: the freshness check is skipped and the reason logged.
    """
