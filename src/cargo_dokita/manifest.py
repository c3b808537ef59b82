"""Cargo.toml parsing and manifest checks.

Covers package metadata (description, license, repository, readme), wildcard
dependency versions and the Rust edition.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from . import codes
from .config import Config
from .errors import ManifestParseError
from .models import (
    CargoManifest,
    Finding,
    Package,
    Severity,
    dependency_version,
    is_local_dependency,
)

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "Cargo.toml"

# Update when a new edition is stabilized
LATEST_STABLE_EDITION = "2024"
IMPLICIT_EDITION = "2015"

WILDCARD_VERSION = "*"


def parse_manifest(path_to_cargo_toml: Path) -> CargoManifest:
    """Read and parse a Cargo.toml.

    Raises:
        ManifestParseError: If the file cannot be read, is not valid TOML, or
            does not have the shape of a Cargo manifest.
    """
    try:
        content = path_to_cargo_toml.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestParseError(f"Failed to read Cargo.toml at {path_to_cargo_toml}: {e}") from e

    try:
        data = tomllib.loads(content)
        return CargoManifest.model_validate(data)
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        raise ManifestParseError(f"Failed to parse Cargo.toml at {path_to_cargo_toml}: {e}") from e


def _is_blank(value: Any) -> bool:
    """True for a missing field or an empty string; workspace-inherited tables count as set."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def is_workspace_inherited(value: Any) -> bool:
    """True for ``field.workspace = true``, which takes the value from the workspace root."""
    return isinstance(value, dict) and value.get("workspace") is True


def declares_license(package: Optional[Package]) -> bool:
    """Whether the package declares a license expression or a license file."""
    if package is None:
        return False
    extra = package.model_extra or {}
    return not _is_blank(package.license) or not _is_blank(extra.get("license-file"))


def _metadata_finding(code: str, message: str, severity: Severity) -> Finding:
    return Finding(code=code, message=message, severity=severity, file_path=MANIFEST_FILE_NAME)


def check_missing_metadata(manifest: CargoManifest, config: Config) -> list[Finding]:
    """Check the [package] metadata fields (MD001-MD005)."""
    package = manifest.package
    if package is None:
        return [
            _metadata_finding(
                codes.MISSING_PACKAGE_SECTION,
                "Missing section [package]",
                Severity.ERROR,
            )
        ]

    findings = []

    if config.is_check_enabled(codes.MISSING_DESCRIPTION) and _is_blank(package.description):
        findings.append(
            _metadata_finding(
                codes.MISSING_DESCRIPTION,
                "Missing 'description' in [package] section of Cargo.toml.",
                Severity.WARNING,
            )
        )

    if config.is_check_enabled(codes.MISSING_LICENSE) and not declares_license(package):
        findings.append(
            _metadata_finding(
                codes.MISSING_LICENSE,
                "Missing 'license' (or 'license-file') in [package] section of Cargo.toml.",
                Severity.WARNING,
            )
        )

    if config.is_check_enabled(codes.MISSING_REPOSITORY) and _is_blank(package.repository):
        findings.append(
            _metadata_finding(
                codes.MISSING_REPOSITORY,
                "Missing 'repository' in [package] section of Cargo.toml.",
                Severity.NOTE,
            )
        )

    if config.is_check_enabled(codes.README_FIELD):
        readme = package.readme
        if readme is None:
            findings.append(
                _metadata_finding(
                    codes.README_FIELD,
                    "Missing 'readme' field in [package] section of Cargo.toml. "
                    "Consider adding `readme = \"README.md\"` or `readme = false`.",
                    Severity.NOTE,
                )
            )
        elif not (isinstance(readme, str) or readme is False or is_workspace_inherited(readme)):
            findings.append(
                _metadata_finding(
                    codes.README_FIELD,
                    f"The 'readme' field in Cargo.toml has an unexpected value ('{readme}'). "
                    "Expected a file path string (e.g., \"README.md\") or `false`.",
                    Severity.WARNING,
                )
            )

    return findings


def check_dependency_versions(manifest: CargoManifest, config: Config) -> list[Finding]:
    """Flag wildcard ``"*"`` version requirements (DP001).

    Dependency tables are scanned runtime, dev, build; each in declaration order.
    Path-only dependencies are skipped.
    """
    if not config.is_check_enabled(codes.WILDCARD_VERSION):
        return []

    findings = []
    for role, dependencies in manifest.dependency_tables():
        for name, dep in dependencies.items():
            if is_local_dependency(dep):
                continue
            if dependency_version(dep) == WILDCARD_VERSION:
                findings.append(
                    _metadata_finding(
                        codes.WILDCARD_VERSION,
                        f"Wildcard version \"*\" used for {role} dependency '{name}'. "
                        "Specify a version range.",
                        Severity.WARNING,
                    )
                )
    return findings


def check_rust_edition(manifest: CargoManifest, config: Optional[Config] = None) -> list[Finding]:
    """Compare the declared edition with the latest stable one (ED001, ED002)."""
    config = config or Config()
    package = manifest.package
    if package is None:
        return []

    edition = package.edition
    if edition is None:
        if not config.is_check_enabled(codes.MISSING_EDITION):
            return []
        return [
            _metadata_finding(
                codes.MISSING_EDITION,
                f"Project does not specify a Rust edition (implicitly {IMPLICIT_EDITION}), "
                f"consider specifying and updating to '{LATEST_STABLE_EDITION}'.",
                Severity.NOTE,
            )
        ]

    if not isinstance(edition, str):
        # edition.workspace = true; the workspace root is checked on its own
        return []

    if edition != LATEST_STABLE_EDITION and config.is_check_enabled(codes.OUTDATED_EDITION):
        return [
            _metadata_finding(
                codes.OUTDATED_EDITION,
                f"Project uses Rust edition '{edition}', consider updating to '{LATEST_STABLE_EDITION}'.",
                Severity.NOTE,
            )
        ]
    return []
