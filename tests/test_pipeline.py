"""Tests for the analysis orchestrator."""

from collections import Counter
from unittest.mock import patch

import httpx
import pytest

from cargo_dokita.config import Config, Settings
from cargo_dokita.errors import ManifestParseError, MetadataError, NotRustProject, UnresolvableProjectPath
from cargo_dokita.models import DependencyGraph, Finding, ResolvedDependency, Severity
from cargo_dokita.pipeline import (
    PipelineRun,
    PipelineState,
    analyze_project,
    filter_findings,
    resolve_project_path,
    run_analysis,
)

from conftest import write_files

SETTINGS = Settings(registry_url="https://crates.test/api/v1/crates", http_timeout=1.0, max_workers=2)


def unreachable_transport() -> httpx.MockTransport:
    def handler(request):
        raise httpx.ConnectError("registry unreachable", request=request)

    return httpx.MockTransport(handler)


def finding(code: str, severity: Severity = Severity.WARNING) -> Finding:
    return Finding(code=code, message=code, severity=severity)


@pytest.fixture
def no_cargo():
    """Pretend cargo metadata and cargo audit are both unavailable."""
    with patch("cargo_dokita.dependencies._run_command", return_value=(None, "cargo not found")), patch(
        "cargo_dokita.audit.subprocess.run", side_effect=FileNotFoundError("cargo")
    ):
        yield


class TestResolveProjectPath:
    """Test environment errors raised before any check runs."""

    def test_missing_path(self, temp_dir):
        """A path that does not exist cannot be resolved."""
        with pytest.raises(UnresolvableProjectPath):
            resolve_project_path(temp_dir / "nope")

    def test_file_instead_of_directory(self, temp_dir):
        """A file is not a project directory."""
        (temp_dir / "file.txt").write_text("")
        with pytest.raises(UnresolvableProjectPath):
            resolve_project_path(temp_dir / "file.txt")

    def test_no_manifest(self, temp_dir):
        """A directory without Cargo.toml is not a Rust project."""
        with pytest.raises(NotRustProject):
            resolve_project_path(temp_dir)

    async def test_unparseable_manifest_aborts(self, temp_dir):
        """A broken Cargo.toml aborts the run."""
        (temp_dir / "Cargo.toml").write_text("[package\n")
        with pytest.raises(ManifestParseError):
            await run_analysis(temp_dir, settings=SETTINGS)


class TestPipelineRun:
    """Test phase tracking."""

    def test_states_only_move_forward(self, temp_dir):
        """Going back to an earlier phase is refused."""
        run = PipelineRun(temp_dir)
        run.advance(PipelineState.COLLECTING)
        run.advance(PipelineState.SCANNING)

        with pytest.raises(RuntimeError):
            run.advance(PipelineState.COLLECTING)
        with pytest.raises(RuntimeError):
            run.advance(PipelineState.SCANNING)


class TestFilterFindings:
    """Test configuration filtering."""

    def test_disabling_a_code_removes_only_that_code(self):
        """Other codes pass through untouched."""
        findings = [finding("MD001"), finding("MD003", Severity.NOTE), finding("CODE001")]
        config = Config.from_toml('[checks]\nenabled = { "MD003" = false }\n')

        assert [f.code for f in filter_findings(findings, config)] == ["MD001", "CODE001"]

    def test_missing_package_always_reported(self):
        """MD005 survives even when disabled."""
        config = Config.from_toml('[checks]\nenabled = { "MD005" = false }\n')
        findings = [finding("MD005", Severity.ERROR)]

        assert filter_findings(findings, config) == findings

    @pytest.mark.parametrize("code", ["STRUCT001", "STRUCT002", "STRUCT003"])
    def test_structure_findings_always_reported(self, code):
        """Project structure findings are not config-gated."""
        config = Config.from_toml(f'[checks]\nenabled = {{ "{code}" = false }}\n')
        findings = [finding(code)]

        assert filter_findings(findings, config) == findings


class TestRunAnalysis:
    """End-to-end runs with cargo and the registry mocked."""

    async def test_healthy_project_without_tools(self, healthy_project, no_cargo):
        """With no cargo available only the audit warning remains."""
        report = await run_analysis(healthy_project, settings=SETTINGS, registry_transport=unreachable_transport())

        assert [f.code for f in report.findings] == ["AUD004"]
        assert report.summary.warning == 1
        assert report.exit_code == 1

    async def test_unreachable_registry_completes_with_warnings(self, healthy_project):
        """Registry failures become API001 warnings, the run still completes."""
        graph = DependencyGraph(
            members={"demo-crate": [ResolvedDependency(name="serde", version="1.0.0"), ResolvedDependency(name="log", version="0.4.0")]}
        )

        with patch("cargo_dokita.pipeline.load_dependency_graph", return_value=graph), patch(
            "cargo_dokita.pipeline.check_vulnerabilities", return_value=[]
        ):
            report = await run_analysis(healthy_project, settings=SETTINGS, registry_transport=unreachable_transport())

        assert [f.code for f in report.findings] == ["API001", "API001"]
        assert all(f.severity is Severity.WARNING for f in report.findings)

    async def test_merges_all_branches(self, temp_dir, no_cargo):
        """Findings from the scan, manifest and dependency branches are merged."""
        write_files(
            temp_dir,
            {
                "Cargo.toml": '[package]\nname = "x"\nedition = "2021"\n\n[dependencies]\nrand = "*"\n',
                "src/lib.rs": "pub mod util;\n",
                "src/util.rs": "pub fn f(v: Option<u8>) -> u8 { v.unwrap() }\n",
            },
        )

        report = await run_analysis(temp_dir, settings=SETTINGS, registry_transport=unreachable_transport())
        codes = Counter(f.code for f in report.findings)

        assert codes["CODE001"] == 1
        assert codes["DP001"] == 1
        assert codes["ED001"] == 1
        assert codes["MD001"] == 1
        assert codes["LINT001"] == 1
        assert codes["AUD004"] == 1
        assert report.summary.error + report.summary.warning + report.summary.note == len(report.findings)

    async def test_project_config_is_applied(self, healthy_project, no_cargo):
        """Codes disabled in .cargo-dokita.toml are dropped from the report."""
        (healthy_project / ".cargo-dokita.toml").write_text('[checks]\nenabled = { "AUD004" = false }\n')

        report = await run_analysis(healthy_project, settings=SETTINGS, registry_transport=unreachable_transport())

        assert report.findings == []
        assert report.exit_code == 0

    async def test_disabled_license_check_still_fails_run(self, healthy_project, no_cargo):
        """A missing LICENSE file is reported even when STRUCT003 is disabled."""
        (healthy_project / "LICENSE").unlink()
        (healthy_project / "Cargo.toml").write_text(
            (healthy_project / "Cargo.toml").read_text().replace('license = "MIT"\n', "")
        )
        (healthy_project / ".cargo-dokita.toml").write_text(
            '[checks]\nenabled = { "STRUCT003" = false, "MD002" = false, "AUD004" = false }\n'
        )

        report = await run_analysis(healthy_project, settings=SETTINGS, registry_transport=unreachable_transport())

        assert [f.code for f in report.findings] == ["STRUCT003"]
        assert report.exit_code == 1

    async def test_disabled_checks_are_logged(self, healthy_project, no_cargo):
        """The codes switched off in configuration are logged once."""
        config = Config.from_toml('[checks]\nenabled = { "MD003" = false, "LINT001" = false }\n')

        with patch("cargo_dokita.pipeline.logger") as mock_logger:
            await run_analysis(healthy_project, config=config, settings=SETTINGS, registry_transport=unreachable_transport())

        messages = [call.args[0] for call in mock_logger.info.call_args_list]
        assert "Checks disabled by configuration: LINT001, MD003" in messages

    async def test_freshness_disabled_skips_graph(self, healthy_project, no_cargo):
        """With DP002 and API001 disabled the graph is never loaded."""
        config = Config.from_toml('[checks]\nenabled = { "DP002" = false, "API001" = false }\n')

        with patch("cargo_dokita.pipeline.load_dependency_graph") as mock_load:
            await run_analysis(healthy_project, config=config, settings=SETTINGS)

        mock_load.assert_not_called()

    async def test_metadata_error_skips_freshness_check(self, healthy_project):
        """Without a dependency graph the freshness check is skipped silently."""
        with patch(
            "cargo_dokita.pipeline.load_dependency_graph", side_effect=MetadataError("no cargo")
        ), patch("cargo_dokita.pipeline.check_vulnerabilities", return_value=[]):
            report = await run_analysis(healthy_project, settings=SETTINGS)

        assert report.findings == []

    async def test_crashing_branch_becomes_internal_error(self, healthy_project, no_cargo):
        """An unexpected exception in one branch does not abort the others."""
        with patch("cargo_dokita.pipeline.scan_code_patterns", side_effect=RuntimeError("boom")):
            report = await run_analysis(healthy_project, settings=SETTINGS, registry_transport=unreachable_transport())

        codes = [f.code for f in report.findings]
        assert "INT001" in codes
        assert "AUD004" in codes

    async def test_repeated_runs_are_idempotent(self, temp_dir, no_cargo):
        """Two runs over the same tree report the same multiset of codes."""
        write_files(
            temp_dir,
            {
                "Cargo.toml": '[package]\nname = "x"\n',
                "src/lib.rs": "// TODO\n",
                "src/a.rs": "fn a() { dbg!(1); }\n",
                "src/b.rs": "fn b() { x.expect(\"y\"); }\n",
            },
        )

        first = await run_analysis(temp_dir, settings=SETTINGS, registry_transport=unreachable_transport())
        second = await run_analysis(temp_dir, settings=SETTINGS, registry_transport=unreachable_transport())

        assert Counter(f.code for f in first.findings) == Counter(f.code for f in second.findings)

    def test_analyze_project_sync_wrapper(self, healthy_project, no_cargo, monkeypatch):
        """analyze_project runs the pipeline to completion."""
        monkeypatch.setenv("DOKITA_HTTP_TIMEOUT", "1")

        report = analyze_project(healthy_project)

        assert report.project_path == str(healthy_project.resolve())
        assert [f.code for f in report.findings] == ["AUD004"]
