"""Shared fixtures for CLI tests.

Provides a small YAML package index and helpers for writing project
files and installed-package inventories into a temporary directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

INDEX = {
    "packages": {
        "app": {
            "1.0": {"requires": ["web>=1.0", 'legacy; python_version < "3.0"']},
        },
        "web": {
            "1.0": {"requires": ["tls"]},
            "2.0": {"requires": ["tls"], "requires_python": ">=3.12"},
        },
        "tls": {
            "1.0": {"wheel": False},
        },
        "lib": {
            "1.0": None,
            "2.0": None,
        },
        "loop-a": {"1.0": ["loop-b"]},
        "loop-b": {"1.0": ["loop-a"]},
        "nodist": {"1.0": {"wheel": False, "sdist": False}},
        "bad": {"1.0": {"bogus": True}},
    }
}


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def index_file(tmp_path: Path) -> Path:
    """Write the shared package index and return its path."""
    path = tmp_path / "index.yaml"
    path.write_text(yaml.safe_dump(INDEX), encoding="utf-8")
    return path


@pytest.fixture
def project_file(tmp_path: Path, index_file: Path) -> Path:
    """A versolve.yaml pointing at the index with relative paths."""
    path = tmp_path / "versolve.yaml"
    path.write_text(
        "requirements:\n"
        "  - app\n"
        "environment:\n"
        '  python_version: "3.11"\n'
        "index: index.yaml\n"
        "lockfile: versolve.lock\n"
        "cache_dir: cache\n",
        encoding="utf-8",
    )
    return path
