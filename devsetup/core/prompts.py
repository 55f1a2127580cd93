"""
Interactive prompts.

Phase bodies and the rollback procedure never call ``input()``
directly. They receive a ``Prompter`` so tests can script answers
and force mode can skip confirmations.
"""

from __future__ import annotations

from typing import Callable, Protocol

import click

Confirm = Callable[[str], bool]


class Prompter(Protocol):
    """Source of interactive answers."""

    def ask(self, message: str, hide_input: bool = False, default: str | None = None) -> str:
        ...

    def confirm(self, message: str, default: bool = False) -> bool:
        ...


class ClickPrompter:
    """Prompts on the controlling terminal via click."""

    def ask(self, message: str, hide_input: bool = False, default: str | None = None) -> str:
        return click.prompt(
            message,
            hide_input=hide_input,
            default=default,
            show_default=default is not None,
        )

    def confirm(self, message: str, default: bool = False) -> bool:
        return click.confirm(message, default=default)


class ScriptedPrompter:
    """Replays canned answers in order. Used by tests and non-interactive runs.

    Unanswered ``ask`` calls return the default (or an empty string),
    unanswered ``confirm`` calls return the default.
    """

    def __init__(self, answers: list[str] | None = None, confirms: list[bool] | None = None):
        self._answers = list(answers or [])
        self._confirms = list(confirms or [])
        self.asked: list[str] = []

    def ask(self, message: str, hide_input: bool = False, default: str | None = None) -> str:
        self.asked.append(message)
        if self._answers:
            return self._answers.pop(0)
        return default or ""

    def confirm(self, message: str, default: bool = False) -> bool:
        self.asked.append(message)
        if self._confirms:
            return self._confirms.pop(0)
        return default


def always_yes(message: str) -> bool:
    """Confirmation used by ``rollback --force``."""
    return True
