"""Shared utilities for the source scanners: file collection and file classification."""

import os
from enum import Enum
from pathlib import Path


# Project subdirectories that hold Rust sources
SOURCE_ROOTS: tuple[str, ...] = ("src", "tests", "examples", "benches")

RUST_EXTENSION = ".rs"

LIBRARY_ROOT = Path("src") / "lib.rs"
ENTRY_POINT_NAME = "main.rs"
BINARIES_DIR_NAME = "bin"
BUILD_SCRIPT_NAME = "build.rs"


class FileContext(str, Enum):
    """Whether a source file is reusable library code or an application entry point."""

    LIBRARY = "library"
    APPLICATION = "application"


def collect_rust_files(project_root: str | Path) -> list[Path]:
    """Collect ``.rs`` files under the recognized source roots.

    Missing roots are skipped and unreadable directories are ignored; the walk is
    best effort and never raises.

    Args:
        project_root: Root of the Cargo project.

    Returns:
        Sorted, de-duplicated list of file paths.
    """
    project_root = Path(project_root)
    found: set[Path] = set()

    for root_name in SOURCE_ROOTS:
        source_root = project_root / root_name
        if not source_root.is_dir():
            continue

        for root, _dirs, files in os.walk(source_root):
            for file_name in files:
                if not file_name.endswith(RUST_EXTENSION):
                    continue
                file_path = Path(root) / file_name
                try:
                    if file_path.is_file():
                        found.add(file_path)
                except OSError:
                    continue

    return sorted(found)


def classify_file(file_path: str | Path, project_root: str | Path) -> FileContext:
    """Classify a file as library or application context from its path alone.

    Library context is any file under ``src/`` except the library root
    (``src/lib.rs``), program entry points (``main.rs``), anything inside a
    ``bin/`` directory, and any ``build.rs``. Files outside ``src/`` (tests,
    examples, benches) are application context.
    """
    file_path = Path(file_path)
    project_root = Path(project_root)

    try:
        rel = file_path.relative_to(project_root)
    except ValueError:
        return FileContext.APPLICATION

    parts = rel.parts
    # Any build.rs, not only the root build script
    if rel.name == BUILD_SCRIPT_NAME:
        return FileContext.APPLICATION
    if not parts or parts[0] != "src":
        return FileContext.APPLICATION
    if rel == LIBRARY_ROOT:
        return FileContext.APPLICATION
    if rel.name == ENTRY_POINT_NAME:
        return FileContext.APPLICATION
    if BINARIES_DIR_NAME in parts[:-1]:
        return FileContext.APPLICATION
    return FileContext.LIBRARY


def display_path(file_path: Path, project_root: Path) -> str:
    """Project-relative path for reporting, falling back to the absolute path."""
    try:
        return file_path.relative_to(project_root).as_posix()
    except ValueError:
        return str(file_path)
