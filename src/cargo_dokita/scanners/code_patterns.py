"""Line-level code pattern scanner.

Detects patterns that are fine in binaries but questionable in library code:
- ``.unwrap()`` calls
- ``.expect(...)`` calls
- ``println!`` / ``dbg!`` debug output
and, in every file, ``// TODO``, ``// FIXME`` and ``// XXX`` comments.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import NamedTuple

from .. import codes
from ..config import DEFAULT_MAX_WORKERS
from ..models import Finding, Severity
from .common import FileContext, classify_file, display_path

logger = logging.getLogger(__name__)


class PatternRule(NamedTuple):
    """A line rule and the finding it produces."""

    code: str
    severity: Severity
    message: str  # formatted with the regex groups
    library_only: bool
    regex: re.Pattern


# Evaluated in this order for every line
CODE_PATTERNS: list[PatternRule] = [
    PatternRule(
        code=codes.UNWRAP_IN_LIBRARY,
        severity=Severity.WARNING,
        message="'.unwrap()' used in library context. Consider using '?' or pattern matching.",
        library_only=True,
        regex=re.compile(r"\.unwrap\(\)"),
    ),
    PatternRule(
        code=codes.EXPECT_IN_LIBRARY,
        severity=Severity.NOTE,
        message=(
            "'.expect()' used in library context. While better than unwrap, "
            "prefer '?' or specific error handling."
        ),
        library_only=True,
        regex=re.compile(r"\.expect\s*\("),
    ),
    PatternRule(
        code=codes.DEBUG_MACRO_IN_LIBRARY,
        severity=Severity.NOTE,
        message="Diagnostic macro ({0}) found in library context. Remove before release.",
        library_only=True,
        regex=re.compile(r"(println!|dbg!)\s*\("),
    ),
    PatternRule(
        code=codes.PENDING_WORK_COMMENT,
        severity=Severity.NOTE,
        message="Found '{0}' comment. Address or create an issue for it.",
        library_only=False,
        regex=re.compile(r"//\s*(TODO|FIXME|XXX)"),
    ),
]


def _split_lines(content: str) -> list[str]:
    # Only \n separates lines; str.splitlines would also split on \f, \x1c, etc.
    return [line.rstrip("\r") for line in content.split("\n")]


def scan_file(file_path: Path, project_root: Path) -> list[Finding]:
    """Scan one file against all rules.

    Findings come out in ascending line order (and rule order within a line).
    A read failure yields a single IO001 warning and no line findings.
    """
    rel = display_path(file_path, project_root)

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {rel}: {e}")
        return [
            Finding(
                code=codes.IO_FILE_READ,
                message=f"Failed to read file {rel}: {e}",
                severity=Severity.WARNING,
                file_path=rel,
            )
        ]

    is_library = classify_file(file_path, project_root) is FileContext.LIBRARY
    rules = [r for r in CODE_PATTERNS if is_library or not r.library_only]

    findings = []
    for line_num, line in enumerate(_split_lines(content), start=1):
        for rule in rules:
            match = rule.regex.search(line)
            if not match:
                continue
            findings.append(
                Finding(
                    code=rule.code,
                    message=rule.message.format(*match.groups()),
                    severity=rule.severity,
                    file_path=rel,
                ).with_line(line_num)
            )

    return findings


def scan_code_patterns(
    files: list[Path],
    project_root: str | Path,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[Finding]:
    """Scan files in parallel on a bounded thread pool.

    Args:
        files: Files to scan, usually from ``collect_rust_files``.
        project_root: Root of the Cargo project.
        max_workers: Size of the thread pool.

    Returns:
        Findings from all files, grouped per file in input order.
    """
    project_root = Path(project_root)
    if not files:
        return []

    findings: list[Finding] = []
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        for file_findings in pool.map(lambda f: scan_file(f, project_root), files):
            findings.extend(file_findings)

    logger.debug(f"Pattern scan of {len(files)} files produced {len(findings)} findings")
    return findings
