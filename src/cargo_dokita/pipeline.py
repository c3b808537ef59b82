"""Analysis orchestrator.

Runs the independent checks of one project concurrently, merges what they
report, applies the project configuration and builds the final report.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx

from . import codes
from .audit import check_vulnerabilities
from .config import Config, Settings, load_config_or_default
from .dependencies import check_outdated_dependencies, load_dependency_graph
from .errors import MetadataError, NotRustProject, UnresolvableProjectPath
from .manifest import (
    MANIFEST_FILE_NAME,
    check_dependency_versions,
    check_missing_metadata,
    check_rust_edition,
    parse_manifest,
)
from .models import AnalysisReport, CargoManifest, Finding, Severity, SeverityCounts
from .registry_client import CratesIoClient
from .scanners import (
    check_missing_denied_lints,
    check_project_structure,
    collect_rust_files,
    scan_code_patterns,
)

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    INIT = "init"
    COLLECTING = "collecting"
    SCANNING = "scanning"
    MERGING = "merging"
    FILTERING = "filtering"
    REPORTED = "reported"


_STATE_ORDER = list(PipelineState)


class PipelineRun:
    """Tracks the phase of one analysis run. Phases only move forward."""

    def __init__(self, project_root: Path):
        self.project_root = project_root
        self.state = PipelineState.INIT

    def advance(self, state: PipelineState) -> None:
        if _STATE_ORDER.index(state) <= _STATE_ORDER.index(self.state):
            raise RuntimeError(f"Cannot move pipeline from {self.state.value} to {state.value}")
        logger.debug(f"{self.project_root}: {self.state.value} -> {state.value}")
        self.state = state


def resolve_project_path(project_path: str | Path) -> Path:
    """Canonicalize the project path and make sure it holds a Cargo.toml.

    Raises:
        UnresolvableProjectPath: If the path does not exist or is not a directory.
        NotRustProject: If there is no Cargo.toml in it.
    """
    try:
        root = Path(project_path).expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise UnresolvableProjectPath(f"Could not resolve project path '{project_path}': {e}") from e

    if not root.is_dir():
        raise UnresolvableProjectPath(f"Project path '{project_path}' is not a directory")

    if not (root / MANIFEST_FILE_NAME).is_file():
        raise NotRustProject(f"No {MANIFEST_FILE_NAME} found in '{root}'. Not a Rust project?")

    return root


async def _run_safely(branch_name: str, branch: Callable[[], Awaitable[list[Finding]]]) -> list[Finding]:
    """Run one branch, turning an unexpected crash into a single INT001 warning."""
    try:
        return await branch()
    except Exception as e:
        logger.exception(f"{branch_name} check crashed")
        return [
            Finding(
                code=codes.INTERNAL_CHECK_ERROR,
                message=f"Error running {branch_name} check: {e}",
                severity=Severity.WARNING,
            )
        ]


def validate_manifest(project_root: Path, manifest: CargoManifest, config: Config) -> list[Finding]:
    """All manifest and project-layout checks, in report order."""
    findings = []
    findings.extend(check_missing_metadata(manifest, config))
    findings.extend(check_dependency_versions(manifest, config))
    findings.extend(check_rust_edition(manifest, config))
    findings.extend(check_project_structure(project_root, manifest))
    findings.extend(check_missing_denied_lints(project_root, config))
    return findings


def _freshness_enabled(config: Config) -> bool:
    return config.is_check_enabled(codes.OUTDATED_DEPENDENCY) or config.is_check_enabled(
        codes.API_FETCH_FAILED
    )


async def check_dependencies(
    project_root: Path,
    manifest: CargoManifest,
    config: Config,
    settings: Settings,
    registry_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[Finding]:
    """Registry freshness check followed by the vulnerability audit."""
    findings: list[Finding] = []

    if _freshness_enabled(config):
        try:
            graph = await asyncio.to_thread(load_dependency_graph, project_root, manifest)
        except MetadataError as e:
            logger.warning(f"Skipping outdated dependency check: {e}")
        else:
            async with CratesIoClient(
                base_url=settings.registry_url,
                timeout=settings.http_timeout,
                transport=registry_transport,
            ) as client:
                findings.extend(await check_outdated_dependencies(graph, client))
    else:
        logger.info("Outdated dependency check disabled by configuration")

    findings.extend(await asyncio.to_thread(check_vulnerabilities, project_root))
    return findings


def filter_findings(findings: list[Finding], config: Config) -> list[Finding]:
    """Drop findings whose check is disabled. Always-reported codes are kept."""
    return [
        f
        for f in findings
        if f.code in codes.ALWAYS_REPORTED or config.is_check_enabled(f.code)
    ]


def summarize(findings: list[Finding]) -> SeverityCounts:
    summary = SeverityCounts()
    for finding in findings:
        if finding.severity is Severity.ERROR:
            summary.error += 1
        elif finding.severity is Severity.WARNING:
            summary.warning += 1
        else:
            summary.note += 1
    return summary


async def run_analysis(
    project_path: str | Path,
    config: Optional[Config] = None,
    settings: Optional[Settings] = None,
    registry_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AnalysisReport:
    """Analyze one Cargo project.

    Args:
        project_path: Directory holding the Cargo.toml.
        config: Check configuration. Loaded from ``.cargo-dokita.toml`` when omitted.
        settings: Process settings. Read from the environment when omitted.
        registry_transport: Optional httpx transport for the crates.io client.

    Returns:
        The filtered findings with summary counts.

    Raises:
        DokitaError: If the path, the manifest or the project cannot be used.
    """
    project_root = resolve_project_path(project_path)
    run = PipelineRun(project_root)
    settings = settings or Settings.from_env()

    manifest = parse_manifest(project_root / MANIFEST_FILE_NAME)
    if config is None:
        config = load_config_or_default(project_root)
    if config.disabled_checks:
        logger.info(f"Checks disabled by configuration: {', '.join(sorted(config.disabled_checks))}")

    run.advance(PipelineState.COLLECTING)
    files = await asyncio.to_thread(collect_rust_files, project_root)
    logger.info(f"Collected {len(files)} Rust source files in {project_root}")

    run.advance(PipelineState.SCANNING)

    async def scan_branch() -> list[Finding]:
        return await asyncio.to_thread(
            scan_code_patterns, files, project_root, settings.max_workers
        )

    async def manifest_branch() -> list[Finding]:
        return await asyncio.to_thread(validate_manifest, project_root, manifest, config)

    async def dependency_branch() -> list[Finding]:
        return await check_dependencies(
            project_root, manifest, config, settings, registry_transport
        )

    results = await asyncio.gather(
        _run_safely("code pattern", scan_branch),
        _run_safely("manifest", manifest_branch),
        _run_safely("dependency", dependency_branch),
    )

    run.advance(PipelineState.MERGING)
    merged = [finding for branch_findings in results for finding in branch_findings]

    run.advance(PipelineState.FILTERING)
    findings = filter_findings(merged, config)
    logger.info(f"{len(merged)} findings, {len(findings)} after configuration filtering")

    run.advance(PipelineState.REPORTED)
    return AnalysisReport(
        project_path=str(project_root),
        findings=findings,
        summary=summarize(findings),
    )


def analyze_project(
    project_path: str | Path,
    config: Optional[Config] = None,
    settings: Optional[Settings] = None,
) -> AnalysisReport:
    """Synchronous wrapper around ``run_analysis``."""
    return asyncio.run(run_analysis(project_path, config=config, settings=settings))
