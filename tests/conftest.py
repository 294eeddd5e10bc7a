"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules. Tests that
need a real repository build one under ``tmp_path`` with the ``git``
executable and are skipped when it is not installed.
"""

import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from gitwire.models.entry import Entry

GIT_IDENTITY = [
    "-c",
    "user.name=Wire Test",
    "-c",
    "user.email=wire@example.com",
    "-c",
    "commit.gpgsign=false",
    "-c",
    "tag.gpgsign=false",
    "-c",
    "init.defaultBranch=main",
]


def git(repo: Path, *args: str) -> str:
    """Run git in a repository and return its stdout."""
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def write_files(root: Path, files: dict[str, str]) -> None:
    """Create files with the given content below root."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


@pytest.fixture
def remote_files() -> dict[str, str]:
    """Content of the sample remote repository."""
    return {
        "README.md": "# sample\n",
        "lib/core.py": "VALUE = 1\n",
        "lib/util/helpers.py": "def helper():\n    return 2\n",
        "tools/run.sh": "#!/bin/sh\necho run\n",
        "docs/guide.md": "guide\n",
    }


@pytest.fixture
def remote_repo(tmp_path: Path, remote_files: dict[str, str]) -> Path:
    """A local repository with one commit on main and an annotated tag v1.0."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_path / "remote"
    repo.mkdir()
    git(repo, "init", "--quiet")
    git(repo, "checkout", "-q", "-B", "main")
    write_files(repo, remote_files)
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", "initial")
    git(repo, "tag", "-a", "v1.0", "-m", "release 1.0")
    return repo


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """An empty project directory (not a git work tree)."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def cache_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated cache root, also exported through GIT_WIRE_CACHE_DIR."""
    root = tmp_path / "cache"
    monkeypatch.setenv("GIT_WIRE_CACHE_DIR", str(root))
    return root


@pytest.fixture
def make_entry() -> Callable[..., Entry]:
    """Factory for entries with sensible defaults."""

    def _make(**overrides: Any) -> Entry:
        data: dict[str, Any] = {
            "url": "https://example.com/r.git",
            "revision": "main",
            "sources": ["lib"],
            "destination": "vendor/lib",
        }
        data.update(overrides)
        return Entry.model_validate(data)

    return _make


@pytest.fixture(autouse=True)
def _isolate_git_config(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Keep the user's global git configuration out of the tests."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path_factory.getbasetemp()))
    monkeypatch.delenv("GIT_WORK_TREE", raising=False)


@pytest.fixture
def run_git() -> Callable[..., str]:
    """The git helper, for tests that change the sample repository."""
    return git
