"""Pydantic models for the cargo-dokita project analyzer."""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Severity of a finding.

    Error and Warning are blocking (they fail the run), Note is informational.
    """

    ERROR = "Error"
    WARNING = "Warning"
    NOTE = "Note"

    @property
    def rank(self) -> int:
        """Lower rank = more severe."""
        return _SEVERITY_RANK[self]

    @property
    def is_blocking(self) -> bool:
        return self in (Severity.ERROR, Severity.WARNING)


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.NOTE: 2}


class Finding(BaseModel):
    """A single reported issue."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(description="Stable check code, e.g. 'CODE001'")
    message: str = Field(description="Human-readable description of the issue")
    severity: Severity = Field(description="Error, Warning or Note")
    file_path: Optional[str] = Field(default=None, description="File the finding refers to")
    line_number: Optional[int] = Field(default=None, description="1-indexed line number")

    def with_line(self, line: int) -> "Finding":
        """Return a copy of this finding located at ``line``."""
        return self.model_copy(update={"line_number": line})


# --- Cargo.toml ---


class DetailedDependency(BaseModel):
    """A dependency declared as a table, e.g. ``serde = { version = "1", features = [...] }``."""

    model_config = ConfigDict(extra="allow")

    version: Optional[str] = Field(default=None, description="Version requirement")
    path: Optional[str] = Field(default=None, description="Local path for path dependencies")
    features: Optional[list[str]] = Field(default=None, description="Enabled features")
    workspace: Optional[bool] = Field(default=None, description="Inherited from the workspace")

    @property
    def is_local(self) -> bool:
        return self.path is not None and self.version is None


Dependency = Union[str, DetailedDependency]


def dependency_version(dep: Dependency) -> Optional[str]:
    """Version requirement string of a dependency, if it declares one."""
    if isinstance(dep, str):
        return dep
    return dep.version


def is_local_dependency(dep: Dependency) -> bool:
    return isinstance(dep, DetailedDependency) and dep.is_local


# Fields like ``description.workspace = true`` inherit from the workspace root.
InheritableStr = Union[str, dict[str, Any]]


class Package(BaseModel):
    """The ``[package]`` section."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(description="Crate name")
    version: Optional[InheritableStr] = Field(default=None, description="Crate version")
    edition: Optional[InheritableStr] = Field(default=None, description="Rust edition")
    description: Optional[InheritableStr] = Field(default=None, description="Crate description")
    license: Optional[InheritableStr] = Field(default=None, description="SPDX license expression")
    readme: Optional[Any] = Field(
        default=None, description="Path to the README, or false to disable it"
    )
    repository: Optional[InheritableStr] = Field(default=None, description="Repository URL")


class CargoManifest(BaseModel):
    """Parsed ``Cargo.toml``.

    A manifest without a package section is a virtual (workspace) manifest.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    package: Optional[Package] = Field(default=None, description="The [package] section")
    dependencies: Optional[dict[str, Dependency]] = Field(
        default=None, description="Runtime dependencies"
    )
    dev_dependencies: Optional[dict[str, Dependency]] = Field(
        default=None, alias="dev-dependencies", description="Dev dependencies"
    )
    build_dependencies: Optional[dict[str, Dependency]] = Field(
        default=None, alias="build-dependencies", description="Build dependencies"
    )

    def dependency_tables(self) -> list[tuple[str, dict[str, Dependency]]]:
        """Dependency maps with their role, in runtime/dev/build order."""
        tables = [
            ("runtime", self.dependencies),
            ("dev", self.dev_dependencies),
            ("build", self.build_dependencies),
        ]
        return [(role, deps) for role, deps in tables if deps]


# --- Resolved dependency graph ---


class ResolvedDependency(BaseModel):
    """A direct dependency with the concrete version picked by the resolver."""

    name: str = Field(description="Crate name")
    version: str = Field(description="Resolved version")
    from_registry: bool = Field(
        default=True, description="Whether the crate comes from crates.io"
    )


class DependencyGraph(BaseModel):
    """Direct dependencies of every workspace member."""

    members: dict[str, list[ResolvedDependency]] = Field(
        default_factory=dict, description="Member name -> direct dependencies"
    )


# --- crates.io API ---


class CrateData(BaseModel):
    max_stable_version: Optional[str] = None
    max_version: Optional[str] = None


class CrateVersion(BaseModel):
    num: str
    yanked: bool = False


class CrateResponse(BaseModel):
    """Response body of ``GET /api/v1/crates/{name}``."""

    crate: CrateData
    versions: list[CrateVersion] = Field(default_factory=list)


# --- cargo audit --json ---


class Advisory(BaseModel):
    id: str
    title: str


class AuditPackage(BaseModel):
    name: str
    version: Optional[str] = None


class AuditVersions(BaseModel):
    patched: list[str] = Field(default_factory=list)


class VulnerabilityEntry(BaseModel):
    advisory: Advisory
    package: AuditPackage
    versions: AuditVersions


class VulnerabilityList(BaseModel):
    found: Optional[bool] = None
    count: Optional[int] = None
    entries: list[VulnerabilityEntry] = Field(default_factory=list, alias="list")


class AuditReport(BaseModel):
    """The subset of ``cargo audit --json`` output we rely on."""

    vulnerabilities: VulnerabilityList


# --- Pipeline output ---


class SeverityCounts(BaseModel):
    """Summary counts by severity."""

    error: int = Field(default=0, description="Number of errors")
    warning: int = Field(default=0, description="Number of warnings")
    note: int = Field(default=0, description="Number of notes")


class AnalysisReport(BaseModel):
    """Result of analyzing one project."""

    project_path: str = Field(description="Canonical project root")
    findings: list[Finding] = Field(default_factory=list, description="Filtered findings")
    summary: SeverityCounts = Field(
        default_factory=SeverityCounts, description="Counts by severity"
    )

    @property
    def has_blocking(self) -> bool:
        return any(f.severity.is_blocking for f in self.findings)

    @property
    def exit_code(self) -> int:
        return 1 if self.has_blocking else 0
