"""Unit tests for interactive entry creation."""

from unittest.mock import patch

import pytest
import typer
from gitwire.core.errors import ConfigError, ErrorKind, WireError
from gitwire.core.prompt import prompt_create_entry


class TestPromptCreateEntry:
    """Tests for prompt_create_entry function."""

    def test_declined(self) -> None:
        with (
            patch("gitwire.core.prompt.typer.confirm", return_value=False),
            patch("gitwire.core.prompt.typer.prompt") as prompt,
        ):
            assert prompt_create_entry() is None

        prompt.assert_not_called()

    def test_answers_form_entry(self) -> None:
        answers = ["https://example.com/r.git", "v1.0", '["lib", "tools"]', "vendor", "lib"]
        with (
            patch("gitwire.core.prompt.typer.confirm", return_value=True),
            patch("gitwire.core.prompt.typer.prompt", side_effect=answers),
        ):
            entry = prompt_create_entry()

        assert entry is not None
        assert entry.url == "https://example.com/r.git"
        assert entry.revision == "v1.0"
        assert entry.sources == ["lib", "tools"]
        assert entry.destination == "vendor"
        assert entry.name == "lib"

    def test_blank_name_is_none(self) -> None:
        answers = ["https://example.com/r.git", "main", "src", "vendor", "  "]
        with (
            patch("gitwire.core.prompt.typer.confirm", return_value=True),
            patch("gitwire.core.prompt.typer.prompt", side_effect=answers),
        ):
            entry = prompt_create_entry()

        assert entry.name is None

    def test_invalid_answers(self) -> None:
        answers = ["https://example.com/r.git", "main", "../etc", "vendor", ""]
        with (
            patch("gitwire.core.prompt.typer.confirm", return_value=True),
            patch("gitwire.core.prompt.typer.prompt", side_effect=answers),
            pytest.raises(ConfigError) as exc_info,
        ):
            prompt_create_entry()

        assert exc_info.value.kind == ErrorKind.CONFIG_SHAPE

    def test_aborted(self) -> None:
        with (
            patch("gitwire.core.prompt.typer.confirm", side_effect=typer.Abort()),
            pytest.raises(WireError) as exc_info,
        ):
            prompt_create_entry()

        assert exc_info.value.kind == ErrorKind.PROMPT
