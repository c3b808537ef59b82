"""cargo-dokita: checks a Rust/Cargo project for common issues and best practices."""

__version__ = "0.1.1"

from .config import Config, Settings
from .errors import (
    ConfigError,
    DegradedCheckError,
    DokitaError,
    ManifestParseError,
    NotRustProject,
    UnresolvableProjectPath,
)
from .models import AnalysisReport, Finding, Severity
from .pipeline import analyze_project, run_analysis

__all__ = [
    "__version__",
    "AnalysisReport",
    "Config",
    "ConfigError",
    "DegradedCheckError",
    "DokitaError",
    "Finding",
    "ManifestParseError",
    "NotRustProject",
    "Settings",
    "Severity",
    "UnresolvableProjectPath",
    "analyze_project",
    "run_analysis",
]
