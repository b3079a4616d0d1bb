"""Tests for the terminal prompter.

Answers are fed through the console's ``input`` so the real
``rich.prompt`` parsing runs.
"""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from skconfigure.prompts import RichPrompter


@pytest.fixture
def terminal(monkeypatch):
    """A quiet console plus the list of answers it will type."""
    out = Console(file=io.StringIO(), width=120)
    answers: list[str] = []
    prompts: list[str] = []

    def _input(prompt="", **kwargs):
        prompts.append(str(prompt))
        return answers.pop(0)

    monkeypatch.setattr(out, "input", _input)
    return out, answers, prompts


class TestSelect:
    """Numbered branch selection."""

    @pytest.mark.parametrize(
        "typed, expected",
        [("", "main"), ("2", "main"), ("1", "develop"), ("develop", "develop")],
    )
    def test_answers(self, terminal, typed: str, expected: str) -> None:
        out, answers, _ = terminal
        answers.append(typed)
        assert RichPrompter(out).select({"main", "develop"}, "main") == expected

    def test_lists_options_and_marks_default(self, terminal) -> None:
        out, answers, _ = terminal
        answers.append("")
        RichPrompter(out).select({"main", "develop"}, "main")
        listing = out.file.getvalue()
        assert "1) develop" in listing
        assert "* 2) main" in listing

    def test_invalid_answer_reasks(self, terminal) -> None:
        out, answers, prompts = terminal
        answers.extend(["nope", "3", "1"])
        assert RichPrompter(out).select({"main", "develop"}, "main") == "develop"
        assert len(prompts) == 3

    def test_no_default_requires_an_answer(self, terminal) -> None:
        out, answers, prompts = terminal
        answers.extend(["", "main"])
        assert RichPrompter(out).select({"main", "develop"}, "") == "main"
        assert len(prompts) == 2

    def test_default_outside_options_is_offered(self, terminal) -> None:
        out, answers, _ = terminal
        answers.append("")
        assert RichPrompter(out).select({"main"}, "feature") == "feature"


class TestConfirm:
    """Yes/no questions."""

    @pytest.mark.parametrize(
        "typed, default, expected",
        [
            ("", True, True),
            ("", False, False),
            ("y", False, True),
            ("n", True, False),
        ],
    )
    def test_answers(self, terminal, typed: str, default: bool, expected: bool) -> None:
        out, answers, _ = terminal
        answers.append(typed)
        assert RichPrompter(out).confirm("Continue?", default=default) is expected


class TestPromptText:
    def test_strips_whitespace(self, terminal) -> None:
        out, answers, _ = terminal
        answers.append("  config/secret.yml  ")
        assert RichPrompter(out).prompt_text("Path:") == "config/secret.yml"
