"""Security advisories via ``cargo audit``."""

import json
import logging
import subprocess
from pathlib import Path

from pydantic import ValidationError

from . import codes
from .dependencies import LOCK_FILE_NAME
from .errors import AuditToolError
from .models import AuditReport, Finding, Severity

logger = logging.getLogger(__name__)

AUDIT_COMMAND = ["cargo", "audit", "--json", "--quiet"]

AUDIT_TIMEOUT = 300

EXCERPT_LENGTH = 200


def _excerpt(text: str) -> str:
    return text.strip()[:EXCERPT_LENGTH]


def _run_audit(project_root: Path, timeout: int) -> subprocess.CompletedProcess:
    """Run cargo-audit in the project directory.

    Raises:
        AuditToolError: If the tool cannot be started or does not finish in time.
    """
    try:
        return subprocess.run(
            AUDIT_COMMAND,
            cwd=str(project_root),
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise AuditToolError(
            codes.AUDIT_UNAVAILABLE,
            f"Failed to execute cargo-audit. Is it installed and in PATH? (cargo install cargo-audit) Error: {e}",
            LOCK_FILE_NAME,
        ) from e
    except subprocess.TimeoutExpired as e:
        raise AuditToolError(
            codes.AUDIT_FAILED,
            f"cargo-audit execution failed: timed out after {timeout}s",
            LOCK_FILE_NAME,
        ) from e
    except OSError as e:
        raise AuditToolError(
            codes.AUDIT_UNAVAILABLE,
            f"Failed to execute cargo-audit: {e}",
            LOCK_FILE_NAME,
        ) from e


def interpret_audit_output(returncode: int, stdout: str, stderr: str) -> list[Finding]:
    """Turn a finished cargo-audit run into findings.

    cargo-audit exits non-zero when vulnerabilities are found, so the exit code
    alone does not mean failure. A non-zero exit with nothing on stdout does.
    """
    if returncode != 0 and not stdout.strip():
        first_line = stderr.strip().splitlines()[0] if stderr.strip() else f"exit code {returncode}"
        return [
            Finding(
                code=codes.AUDIT_FAILED,
                message=f"cargo-audit execution failed: {first_line[:EXCERPT_LENGTH]}",
                severity=Severity.WARNING,
                file_path=LOCK_FILE_NAME,
            )
        ]

    try:
        report = AuditReport.model_validate(json.loads(stdout))
    except (ValueError, ValidationError) as e:
        if returncode != 0:
            return [
                Finding(
                    code=codes.AUDIT_PARSE_FAILED,
                    message=(
                        f"Failed to parse cargo-audit JSON output: {e}. "
                        f"Output excerpt: {_excerpt(stdout)}"
                    ),
                    severity=Severity.WARNING,
                    file_path=LOCK_FILE_NAME,
                )
            ]
        logger.warning(f"cargo-audit succeeded but its output could not be parsed: {e}")
        return []

    findings = []
    for entry in report.vulnerabilities.entries:
        patched = ", ".join(entry.versions.patched) if entry.versions.patched else "none"
        findings.append(
            Finding(
                code=codes.VULNERABILITY,
                message=(
                    f"Vulnerability found in '{entry.package.name}' ({entry.package.version}): "
                    f"{entry.advisory.title} (ID: {entry.advisory.id}). Patched in: {patched}."
                ),
                severity=Severity.ERROR,
                file_path=LOCK_FILE_NAME,
            )
        )

    if returncode != 0 and not findings:
        findings.append(
            Finding(
                code=codes.AUDIT_INCONSISTENT,
                message=(
                    f"cargo-audit exited with code {returncode} but reported no vulnerabilities. "
                    f"Output excerpt: {_excerpt(stderr or stdout)}"
                ),
                severity=Severity.WARNING,
                file_path=LOCK_FILE_NAME,
            )
        )

    return findings


def check_vulnerabilities(project_root: Path, timeout: int = AUDIT_TIMEOUT) -> list[Finding]:
    """Run cargo-audit and report one SEC001 error per advisory.

    Tool problems become AUD001-AUD004 warnings; nothing is raised.
    """
    try:
        result = _run_audit(project_root, timeout)
    except AuditToolError as e:
        logger.warning(f"cargo-audit unavailable: {e}")
        return [e.to_finding()]

    findings = interpret_audit_output(result.returncode, result.stdout or "", result.stderr or "")
    logger.info(f"cargo-audit finished with exit code {result.returncode}, {len(findings)} findings")
    return findings
