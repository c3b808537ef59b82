"""Shared fixtures for cargo-dokita tests."""

import tempfile
from pathlib import Path

import pytest

COMPLETE_MANIFEST = """\
[package]
name = "demo-crate"
version = "0.1.0"
edition = "2024"
description = "A demo crate"
license = "MIT"
repository = "https://example.com/demo"
readme = "README.md"

[dependencies]
serde = "1.0"
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative path: content}`` under root, creating directories."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def healthy_project(temp_dir):
    """A library project that passes every manifest and structure check."""
    return write_files(
        temp_dir,
        {
            "Cargo.toml": COMPLETE_MANIFEST,
            "README.md": "# demo\n",
            "LICENSE": "MIT\n",
            "src/lib.rs": "#![deny(warnings)]\n\npub mod util;\n",
            "src/util.rs": "pub fn add(a: i32, b: i32) -> i32 {\n    a + b\n}\n",
        },
    )
