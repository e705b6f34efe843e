# src/drive_auth/prompts.py
"""
Operator input.

Every prompt in the credential flows goes through an InputProvider, so the
flows can run against a real terminal (ConsoleInputProvider) or against a
scripted provider in tests. Values that must match a format are collected
with ValidatedPrompt, a small state machine:

    NEEDS_INPUT -> VALIDATING -> VALID
                             \\-> INVALID -> NEEDS_INPUT (retry message shown)
"""

import sys
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol, runtime_checkable

from rich.console import Console
from rich.markup import escape as rich_escape
from rich.prompt import Prompt

from .errors import InvalidInputError, NotInteractiveError

lib_logger = logging.getLogger("drive_auth")


@runtime_checkable
class InputProvider(Protocol):
    def is_interactive(self) -> bool: ...

    def ask(self, message: str, password: bool = False) -> str: ...

    def notify(self, message: str, style: str = "") -> None: ...


class ConsoleInputProvider:
    """InputProvider backed by a rich console on the controlling terminal."""

    def __init__(self, console: Optional[Console] = None, stdin=None):
        self.console = console or Console()
        self._stdin = stdin if stdin is not None else sys.stdin

    def is_interactive(self) -> bool:
        try:
            return bool(self._stdin and self._stdin.isatty())
        except ValueError:
            # closed stream
            return False

    def ask(self, message: str, password: bool = False) -> str:
        try:
            return Prompt.ask(
                rich_escape(message),
                console=self.console,
                password=password,
                default="",
                show_default=False,
            )
        except EOFError as e:
            raise NotInteractiveError(
                "Input stream closed while waiting for an answer."
            ) from e

    def notify(self, message: str, style: str = "") -> None:
        text = rich_escape(message)
        self.console.print(f"[{style}]{text}[/{style}]" if style else text)


class PromptState(Enum):
    NEEDS_INPUT = "needs_input"
    VALIDATING = "validating"
    VALID = "valid"
    INVALID = "invalid"


@dataclass
class ValidatedPrompt:
    """
    Ask for one value until it passes `validator`.

    Attributes:
        label: What is asked for, used in the non-interactive error
        question: Prompt text
        validator: Returns True for an acceptable (stripped) value
        retry_message: Shown after every rejected entry
        allow_blank: Accept an empty answer as VALID (optional prompts)
        remediation: Appended to NotInteractiveError
    """

    label: str
    question: str
    validator: Callable[[str], bool]
    retry_message: str = ""
    allow_blank: bool = False
    remediation: str = ""
    state: PromptState = PromptState.NEEDS_INPUT
    value: str = field(default="", repr=False)
    attempts: int = 0

    def check(self, value: str) -> str:
        """Return `value` if acceptable, else raise InvalidInputError."""
        if not value and self.allow_blank:
            return value
        if not value or not self.validator(value):
            raise InvalidInputError(self.label, value)
        return value

    def submit(self, raw: Optional[str]) -> PromptState:
        self.state = PromptState.VALIDATING
        self.attempts += 1
        self.value = (raw or "").strip()
        try:
            self.check(self.value)
        except InvalidInputError:
            self.state = PromptState.INVALID
        else:
            self.state = PromptState.VALID
        return self.state

    def run(self, prompter: InputProvider, initial_error: str = "") -> str:
        """
        Drive the prompt to VALID and return the value ("" for a skipped
        optional prompt).

        Raises:
            NotInteractiveError: If input is needed and there is no terminal
        """
        if initial_error:
            prompter.notify(initial_error, style="bold red")
        if not prompter.is_interactive():
            raise NotInteractiveError(
                f"{self.label} is required but no terminal is attached.",
                self.remediation,
            )

        while True:
            self.state = PromptState.NEEDS_INPUT
            if self.submit(prompter.ask(self.question)) is PromptState.VALID:
                return self.value
            lib_logger.debug(f"Rejected {self.label} entry (attempt {self.attempts})")
            if self.retry_message:
                prompter.notify(self.retry_message, style="bold red")
