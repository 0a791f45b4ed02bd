"""
Confirmation ports — yes/no questions asked in the middle of a run.

The repository cache asks before retrying a removal with sudo.
"""

from __future__ import annotations

from typing import Protocol

import click

AFFIRMATIVE = {"", "y"}


class ConfirmationPort(Protocol):
    def confirm(self, question: str) -> bool: ...


def is_affirmative(answer: str) -> bool:
    """Empty input or ``y``/``Y`` means yes."""
    return answer.strip().lower() in AFFIRMATIVE


class TerminalConfirmation:
    """Ask on the terminal and read one line. Waits forever."""

    def confirm(self, question: str) -> bool:
        answer = click.prompt(
            f"{question} [Y/n]",
            default="",
            show_default=False,
            prompt_suffix=" ",
        )
        return is_affirmative(answer)
