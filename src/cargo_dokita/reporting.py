"""Human and JSON renderings of a report."""

import json

from .models import AnalysisReport, Finding

NO_ISSUES_MESSAGE = "No issues found. Your project looks healthy (based on current checks)!"


def format_finding(finding: Finding) -> str:
    line = f"[{finding.severity.value.upper()}] ({finding.code}): {finding.message}"
    if finding.file_path:
        location = finding.file_path
        if finding.line_number is not None:
            location += f":{finding.line_number}"
        line += f" [{location}]"
    return line


def format_human(report: AnalysisReport) -> str:
    """One line per finding, most severe first, then a count."""
    if not report.findings:
        return NO_ISSUES_MESSAGE

    ordered = sorted(report.findings, key=lambda f: f.severity.rank)
    lines = [format_finding(f) for f in ordered]
    count = len(report.findings)
    s = report.summary
    lines.append("")
    lines.append(
        f"Found {count} issue{'s' if count != 1 else ''} "
        f"({s.error} errors, {s.warning} warnings, {s.note} notes)."
    )
    return "\n".join(lines)


def format_json(report: AnalysisReport) -> str:
    """Pretty-printed array of findings; ``[]`` when there are none."""
    return json.dumps(
        [f.model_dump(mode="json") for f in report.findings],
        indent=2,
    )
