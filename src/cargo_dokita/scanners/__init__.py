"""Source tree scanners."""

from .code_patterns import scan_code_patterns
from .common import FileContext, classify_file, collect_rust_files
from .structure import check_missing_denied_lints, check_project_structure

__all__ = [
    "FileContext",
    "classify_file",
    "collect_rust_files",
    "scan_code_patterns",
    "check_project_structure",
    "check_missing_denied_lints",
]
