"""Stable check codes.

Codes are what the ``[checks]`` section of ``.cargo-dokita.toml`` refers to, so
they must never change meaning.
"""

# Pattern scanner
UNWRAP_IN_LIBRARY = "CODE001"
EXPECT_IN_LIBRARY = "CODE002"
DEBUG_MACRO_IN_LIBRARY = "CODE003"
PENDING_WORK_COMMENT = "CODE004"
IO_FILE_READ = "IO001"

# Manifest metadata
MISSING_DESCRIPTION = "MD001"
MISSING_LICENSE = "MD002"
MISSING_REPOSITORY = "MD003"
README_FIELD = "MD004"
MISSING_PACKAGE_SECTION = "MD005"

# Dependencies
WILDCARD_VERSION = "DP001"
OUTDATED_DEPENDENCY = "DP002"
API_FETCH_FAILED = "API001"

# Edition
OUTDATED_EDITION = "ED001"
MISSING_EDITION = "ED002"

# Project structure
NO_SOURCE_ROOT = "STRUCT001"
MISSING_README_FILE = "STRUCT002"
MISSING_LICENSE_FILE = "STRUCT003"

# Lint configuration
MISSING_DENY_LINT = "LINT001"

# cargo audit
VULNERABILITY = "SEC001"
AUDIT_FAILED = "AUD001"
AUDIT_INCONSISTENT = "AUD002"
AUDIT_PARSE_FAILED = "AUD003"
AUDIT_UNAVAILABLE = "AUD004"

# A check crashed unexpectedly
INTERNAL_CHECK_ERROR = "INT001"

# Findings that stay in the report even if their code is disabled: the
# missing [package] section and the project-structure existence checks.
ALWAYS_REPORTED = frozenset({
    MISSING_PACKAGE_SECTION,
    NO_SOURCE_ROOT,
    MISSING_README_FILE,
    MISSING_LICENSE_FILE,
})
