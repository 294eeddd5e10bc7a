"""Unit tests for the content filter."""

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from gitwire.cache.filter import filter_repository_content, normalize_path
from gitwire.core.errors import DestinationError, ErrorKind


def _tree(root: Path) -> dict[str, str]:
    """Relative path to content of every file below root."""
    return {
        path.relative_to(root).as_posix(): path.read_text()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def source(tmp_path: Path) -> Path:
    """A checked-out repository tree with a .git directory."""
    root = tmp_path / "source"
    files = {
        "README.md": "readme",
        "lib/core.py": "core",
        "lib/util/helpers.py": "helpers",
        "tools/run.sh": "run",
        ".git/HEAD": "ref: refs/heads/main",
        "lib/.git/config": "nested",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


class TestNormalizePath:
    """Tests for normalize_path function."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("lib", "lib"),
            ("/lib/util", "lib/util"),
            ("lib//util/", "lib/util"),
            ("./lib/./util", "lib/util"),
            ("lib/../tools", "tools"),
            ("../../lib", "lib"),
            ("/", ""),
            ("", ""),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        """Dots collapse and the result never climbs above the root."""
        assert normalize_path(raw) == expected


class TestFilterRepositoryContent:
    """Tests for filter_repository_content function."""

    def test_directory_contents_land_in_destination(self, source: Path, tmp_path: Path) -> None:
        """A directory source is copied relative to itself."""
        dest = tmp_path / "dest"

        missing = filter_repository_content(source, dest, ["lib"])

        assert missing == []
        assert _tree(dest) == {"core.py": "core", "util/helpers.py": "helpers"}

    def test_file_source_uses_basename(self, source: Path, tmp_path: Path) -> None:
        """A file source lands at the destination under its own name."""
        dest = tmp_path / "dest"

        filter_repository_content(source, dest, ["lib/util/helpers.py", "README.md"])

        assert _tree(dest) == {"helpers.py": "helpers", "README.md": "readme"}

    def test_leading_slash_is_ignored(self, source: Path, tmp_path: Path) -> None:
        """Absolute-looking sources are resolved against the repository root."""
        dest = tmp_path / "dest"

        filter_repository_content(source, dest, ["/tools"])

        assert _tree(dest) == {"run.sh": "run"}

    def test_repository_root_skips_git_dir(self, source: Path, tmp_path: Path) -> None:
        """Copying the whole repository never copies .git."""
        dest = tmp_path / "dest"

        filter_repository_content(source, dest, ["/"])

        tree = _tree(dest)
        assert "README.md" in tree
        assert "lib/core.py" in tree
        assert not any(".git/" in rel or rel.startswith(".git") for rel in tree)

    def test_multiple_sources_merge(self, source: Path, tmp_path: Path) -> None:
        """Several sources merge into one destination."""
        dest = tmp_path / "dest"

        filter_repository_content(source, dest, ["lib", "tools"])

        assert set(_tree(dest)) == {"core.py", "util/helpers.py", "run.sh"}

    def test_missing_path_warns_and_continues(
        self, source: Path, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A missing filter path is skipped, the rest is still copied."""
        dest = tmp_path / "dest"

        with caplog.at_level(logging.WARNING, logger="gitwire.cache.filter"):
            missing = filter_repository_content(source, dest, ["nope", "tools"])

        assert missing == ["nope"]
        assert _tree(dest) == {"run.sh": "run"}
        assert "does not exist in source repository" in caplog.text

    def test_destination_created_even_if_nothing_matches(
        self, source: Path, tmp_path: Path
    ) -> None:
        """The destination exists after filtering."""
        dest = tmp_path / "deep" / "dest"

        missing = filter_repository_content(source, dest, ["nope"])

        assert missing == ["nope"]
        assert dest.is_dir()

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlinks_are_skipped(self, source: Path, tmp_path: Path) -> None:
        """Symlinks inside the tree and as sources are never copied."""
        (source / "lib" / "link.py").symlink_to(source / "README.md")
        (source / "linked").symlink_to(source / "tools")
        dest = tmp_path / "dest"

        missing = filter_repository_content(source, dest, ["lib", "linked"])

        assert missing == ["linked"]
        assert not (dest / "link.py").exists()
        assert not (dest / "run.sh").exists()

    def test_copy_failure_raises_destination_error(self, source: Path, tmp_path: Path) -> None:
        """I/O errors while copying surface as DestinationError."""
        dest = tmp_path / "dest"

        with (
            patch("gitwire.cache.filter.shutil.copy2", side_effect=OSError("disk full")),
            pytest.raises(DestinationError) as exc_info,
        ):
            filter_repository_content(source, dest, ["README.md"])

        assert exc_info.value.kind == ErrorKind.COPY_TO_DESTINATION
