"""Resolved dependency graph and the outdated-dependency check.

The graph comes from ``cargo metadata``; when cargo is not available it is
rebuilt from ``Cargo.lock``.
"""

import json
import logging
import subprocess
import tomllib
from pathlib import Path
from typing import Any, Optional

from . import codes
from .errors import MetadataError, RegistryError
from .manifest import MANIFEST_FILE_NAME
from .models import CargoManifest, DependencyGraph, Finding, ResolvedDependency, Severity
from .registry_client import CratesIoClient
from .versions import parse_version

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = "Cargo.lock"

CRATES_IO_SOURCES = frozenset({
    "registry+https://github.com/rust-lang/crates.io-index",
    "sparse+https://index.crates.io/",
})

METADATA_TIMEOUT = 120


def is_crates_io(source: Optional[str]) -> bool:
    return source in CRATES_IO_SOURCES


def _run_command(cmd: list[str], cwd: Path, timeout: int) -> tuple[Optional[str], Optional[str]]:
    """Run a command and return (stdout, error). On failure stdout is None."""
    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
        if result.returncode != 0:
            return None, result.stderr.strip() or f"Command failed with code {result.returncode}"
        return result.stdout, None
    except FileNotFoundError:
        return None, f"{cmd[0]} not found"
    except subprocess.TimeoutExpired:
        return None, "Command timed out"
    except OSError as e:
        return None, f"Error running command: {e}"


def parse_cargo_metadata(metadata: dict[str, Any]) -> DependencyGraph:
    """Build the direct-dependency graph from ``cargo metadata --format-version 1`` output.

    For each workspace member, every declared dependency is matched to the
    package the resolver picked for it. Declared dependencies that were not
    resolved (inactive optional or target-specific ones) are left out.
    """
    packages = {p["id"]: p for p in metadata.get("packages", [])}
    resolve = metadata.get("resolve") or {}
    nodes = {n["id"]: n for n in resolve.get("nodes", [])}

    graph = DependencyGraph()
    for member_id in metadata.get("workspace_members", []):
        package = packages.get(member_id)
        node = nodes.get(member_id)
        if package is None or node is None:
            continue

        resolved_by_name: dict[str, dict[str, Any]] = {}
        for dep_link in node.get("deps", []):
            dep_package = packages.get(dep_link.get("pkg"))
            if dep_package is not None:
                resolved_by_name[dep_package["name"]] = dep_package

        direct: list[ResolvedDependency] = []
        seen: set[str] = set()
        for declared in package.get("dependencies", []):
            name = declared["name"]
            if name in seen:
                continue
            resolved = resolved_by_name.get(name)
            if resolved is None:
                continue
            seen.add(name)
            direct.append(
                ResolvedDependency(
                    name=name,
                    version=resolved["version"],
                    from_registry=is_crates_io(resolved.get("source")),
                )
            )

        graph.members[package["name"]] = direct

    return graph


def _parse_lock_reference(ref: str) -> tuple[str, Optional[str]]:
    # "serde", "serde 1.0.0" or "serde 1.0.0 (registry+https://...)"
    parts = ref.split()
    return parts[0], (parts[1] if len(parts) >= 2 else None)


def parse_cargo_lock(lock: dict[str, Any], manifest: Optional[CargoManifest] = None) -> DependencyGraph:
    """Build the direct-dependency graph from a parsed ``Cargo.lock``.

    Members are the local (source-less) packages: the manifest's own package,
    or every local package for a virtual manifest.
    """
    packages = [p for p in lock.get("package", []) if isinstance(p, dict)]

    by_name: dict[str, list[dict[str, Any]]] = {}
    for p in packages:
        if isinstance(p.get("name"), str) and isinstance(p.get("version"), str):
            by_name.setdefault(p["name"], []).append(p)

    local = [p for p in packages if not p.get("source") and p.get("name") in by_name]
    if manifest is not None and manifest.package is not None:
        local = [p for p in local if p["name"] == manifest.package.name]

    graph = DependencyGraph()
    for member in local:
        direct: list[ResolvedDependency] = []
        seen: set[str] = set()
        for ref in member.get("dependencies", []):
            if not isinstance(ref, str):
                continue
            name, version = _parse_lock_reference(ref)
            candidates = by_name.get(name, [])
            if version is not None:
                candidates = [c for c in candidates if c["version"] == version]
            if len(candidates) != 1 or name in seen:
                continue
            seen.add(name)
            resolved = candidates[0]
            direct.append(
                ResolvedDependency(
                    name=name,
                    version=resolved["version"],
                    from_registry=is_crates_io(resolved.get("source")),
                )
            )
        graph.members[member["name"]] = direct

    return graph


def load_dependency_graph(
    project_root: Path,
    manifest: Optional[CargoManifest] = None,
) -> DependencyGraph:
    """Resolve the project's direct dependencies.

    Raises:
        MetadataError: If neither ``cargo metadata`` nor ``Cargo.lock`` is usable.
    """
    output, error = _run_command(
        [
            "cargo",
            "metadata",
            "--format-version",
            "1",
            "--manifest-path",
            str(project_root / MANIFEST_FILE_NAME),
        ],
        cwd=project_root,
        timeout=METADATA_TIMEOUT,
    )
    if output is not None:
        try:
            return parse_cargo_metadata(json.loads(output))
        except (ValueError, KeyError, TypeError) as e:
            error = f"could not parse cargo metadata output: {e}"

    logger.info(f"cargo metadata unavailable ({error}); falling back to {LOCK_FILE_NAME}")

    lock_path = project_root / LOCK_FILE_NAME
    if not lock_path.is_file():
        raise MetadataError(f"cargo metadata failed ({error}) and no {LOCK_FILE_NAME} was found")

    try:
        lock = tomllib.loads(lock_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise MetadataError(f"Failed to read {LOCK_FILE_NAME}: {e}") from e

    return parse_cargo_lock(lock, manifest)


async def check_outdated_dependencies(
    graph: DependencyGraph,
    client: CratesIoClient,
) -> list[Finding]:
    """Compare each direct registry dependency with its latest release (DP002).

    Lookups are sequential. A failed lookup yields an API001 warning for that
    dependency and the check moves on; unparseable versions are logged and skipped.
    """
    findings: list[Finding] = []
    latest_cache: dict[str, str | RegistryError] = {}

    for member, dependencies in graph.members.items():
        for dep in dependencies:
            if not dep.from_registry:
                continue

            if dep.name not in latest_cache:
                try:
                    latest_cache[dep.name] = await client.get_latest_version(dep.name)
                except RegistryError as e:
                    logger.warning(f"Could not fetch latest version for {dep.name}: {e}")
                    latest_cache[dep.name] = e

            latest_str = latest_cache[dep.name]
            if isinstance(latest_str, RegistryError):
                findings.append(latest_str.to_finding())
                continue

            current = parse_version(dep.version)
            latest = parse_version(latest_str)
            if current is None or latest is None:
                logger.warning(
                    f"Could not parse versions for {dep.name}: "
                    f"current '{dep.version}', latest '{latest_str}'"
                )
                continue

            if current < latest:
                findings.append(
                    Finding(
                        code=codes.OUTDATED_DEPENDENCY,
                        message=(
                            f"Direct dependency '{dep.name}' of '{member}' is outdated. "
                            f"Current: {current}, Latest: {latest}"
                        ),
                        severity=Severity.NOTE,
                        file_path=MANIFEST_FILE_NAME,
                    )
                )

    return findings
