"""Skill base class.

A skill owns one or more slash commands. Callers (the Telegram transport,
the digest scheduler, tests) build a SkillContext and call run(); the
skill doesn't need to know who called it.

Every skill directory must have:
  - handler.py     (a Skill subclass)
"""

import logging
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from tally.dates import ValidationError

log = logging.getLogger(__name__)


@dataclass
class SkillContext:
    """Unified invocation context passed to Skill.run()."""
    trigger: str            # "command" | "digest" | "script"
    user_id: int = 0
    channel_id: int = 0
    command: str = ""       # only set for trigger="command"
    args: dict = field(default_factory=dict)


@dataclass
class SkillResult:
    """Unified result returned by Skill.run().

    - output: text shown to the user
    - success: whether the skill executed without error
    """
    output: str = ""
    success: bool = True


def split_args(text: str) -> list[str]:
    """Split command text like a shell, so "quoted titles" stay one word."""
    try:
        return shlex.split(text)
    except ValueError:
        # unbalanced quote, fall back to plain whitespace split
        return text.split()


class Skill(ABC):
    """Base class for all Tally skills."""

    # Slash commands (without "/") routed to this skill
    commands: list[str] = []

    def __init__(self):
        self._name: str = ""

    @property
    def name(self) -> str:
        if self._name:
            return self._name
        # Infer from class module path
        module = self.__class__.__module__ or ""
        parts = module.split(".")
        # e.g., tally.skills.habit.handler → habit
        if len(parts) >= 3:
            self._name = parts[-2]
        else:
            self._name = self.__class__.__name__.lower()
        return self._name

    def parse_command(self, command: str, text: str) -> dict:
        """Turn the text after a slash command into named args.

        Default: first word is the action, the rest is free text.
        """
        words = split_args(text)
        if not words:
            return {}
        return {"action": words[0].lower(), "text": " ".join(words[1:])}

    @abstractmethod
    async def execute(self, context: SkillContext) -> SkillResult:
        """Execute the skill. Must be implemented by subclasses."""
        ...

    async def run(self, context: SkillContext) -> SkillResult:
        """Unified entry point. Wraps execute() with logging."""
        log.info("Skill %s triggered by %s", self.name, context.trigger)
        try:
            result = await self.execute(context)
            return result
        except ValidationError as e:
            log.info("Skill %s rejected input: %s", self.name, e)
            return SkillResult(output=f"⚠️ {e}", success=False)
        except Exception as e:
            log.error("Skill %s failed: %s", self.name, e, exc_info=True)
            return SkillResult(output=f"Skill error: {e}", success=False)
