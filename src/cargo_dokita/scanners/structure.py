"""Project layout checks: source roots, README, LICENSE, and lint configuration."""

import logging
import re
from pathlib import Path
from typing import Optional

from .. import codes
from ..config import Config
from ..manifest import MANIFEST_FILE_NAME, declares_license, is_workspace_inherited
from ..models import CargoManifest, Finding, Severity

logger = logging.getLogger(__name__)

README_FILE_NAMES = ("readme.md", "readme.rst")

LICENSE_FILE_NAMES = (
    "license",
    "license.txt",
    "license.md",
    "license-mit",
    "license-apache",
    "copying",
    "unlicense",
)

DENY_LINT_REGEX = re.compile(r"#!\[deny\(([^)]+)\)\]")

RECOMMENDED_DENIALS = ("warnings",)


def _root_file_names(project_root: Path) -> set[str]:
    """Lower-cased names of the regular files in the project root."""
    try:
        return {p.name.lower() for p in project_root.iterdir() if p.is_file()}
    except OSError as e:
        logger.warning(f"Could not list {project_root}: {e}")
        return set()


def _readme_disabled_or_present(project_root: Path, readme: object) -> bool:
    if readme is False or is_workspace_inherited(readme):
        return True
    if isinstance(readme, str):
        return (project_root / readme).is_file()
    return False


def check_project_structure(
    project_root: Path,
    manifest: Optional[CargoManifest],
) -> list[Finding]:
    """Check for source roots, a README and a LICENSE file (STRUCT001-STRUCT003).

    Only applies to manifests with a [package] section; virtual workspace roots
    have no sources of their own.
    """
    package = manifest.package if manifest else None
    if package is None:
        return []

    findings = []
    src = project_root / "src"

    has_lib = (src / "lib.rs").is_file() or (src / f"{package.name.replace('-', '_')}.rs").exists()
    has_main = (src / "main.rs").is_file()
    has_bin_dir = (src / "bin").is_dir()

    if not (has_lib or has_main or has_bin_dir):
        findings.append(
            Finding(
                code=codes.NO_SOURCE_ROOT,
                message=(
                    "Project has neither src/lib.rs, src/main.rs, nor src/bin/ directory. "
                    "Is it a virtual workspace or missing source files?"
                ),
                severity=Severity.WARNING,
                file_path=MANIFEST_FILE_NAME,
            )
        )

    root_files = _root_file_names(project_root)

    has_readme = any(name in root_files for name in README_FILE_NAMES)
    if not has_readme and not _readme_disabled_or_present(project_root, package.readme):
        findings.append(
            Finding(
                code=codes.MISSING_README_FILE,
                message="Missing README.md file in project root. Consider adding one.",
                severity=Severity.NOTE,
                file_path="README.md",
            )
        )

    has_license_file = any(name in root_files for name in LICENSE_FILE_NAMES)
    if not has_license_file and not declares_license(package):
        findings.append(
            Finding(
                code=codes.MISSING_LICENSE_FILE,
                message=(
                    "Missing LICENSE file in project root. "
                    "Consider adding one (e.g., LICENSE-MIT or LICENSE-APACHE)."
                ),
                severity=Severity.WARNING,
            )
        )

    return findings


def find_denied_lints(content: str) -> set[str]:
    """Lints named in crate-level ``#![deny(...)]`` attributes."""
    denied = set()
    for match in DENY_LINT_REGEX.finditer(content):
        for lint in match.group(1).split(","):
            lint = lint.strip()
            if lint:
                denied.add(lint)
    return denied


def check_missing_denied_lints(project_root: Path, config: Config) -> list[Finding]:
    """Suggest ``#![deny(warnings)]`` in the crate roots (LINT001)."""
    if not config.is_check_enabled(codes.MISSING_DENY_LINT):
        return []

    findings = []
    for rel in ("src/lib.rs", "src/main.rs"):
        file_path = project_root / rel
        if not file_path.is_file():
            continue
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            # The pattern scanner already reports unreadable files
            logger.debug(f"Skipping lint check for {rel}: {e}")
            continue

        denied = find_denied_lints(content)
        for lint in RECOMMENDED_DENIALS:
            if lint not in denied:
                findings.append(
                    Finding(
                        code=codes.MISSING_DENY_LINT,
                        message=(
                            f"Consider adding `#![deny({lint})]` to the top of "
                            f"{file_path.name} for stricter linting."
                        ),
                        severity=Severity.NOTE,
                        file_path=rel,
                    )
                )
    return findings
