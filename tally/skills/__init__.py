"""Skill registry — auto-discovery and management of skills.

Skills are discovered by scanning the skills/ directory for subdirectories
containing handler.py.

Usage:
    import tally.skills as skill_registry
    skill_registry.discover()             # scan and load all skills
    commands = skill_registry.get_commands()
    result = await skill_registry.dispatch("habit", "done Meditate", user_id)
"""

import importlib
import logging
from pathlib import Path

from tally.skills.base import Skill, SkillContext, SkillResult

log = logging.getLogger(__name__)

_SKILLS_DIR = Path(__file__).parent

# Registries
_skills: dict[str, Skill] = {}           # name → skill instance
_command_map: dict[str, str] = {}        # command → skill_name


def discover() -> list[str]:
    """Scan the skills directory and register all valid skills.

    A valid skill has: handler.py with a Skill subclass.
    Returns list of registered skill names.
    """
    registered = []

    for entry in sorted(_SKILLS_DIR.iterdir()):
        if not entry.is_dir():
            continue
        if entry.name.startswith("_"):
            continue

        handler_path = entry / "handler.py"
        if not handler_path.exists():
            continue

        try:
            module = importlib.import_module(f"tally.skills.{entry.name}.handler")
            # Look for a class that subclasses Skill
            skill_cls = None
            for attr_name in dir(module):
                attr = getattr(module, attr_name)
                if (isinstance(attr, type) and issubclass(attr, Skill)
                        and attr is not Skill):
                    skill_cls = attr
                    break

            if skill_cls is None:
                log.warning("No Skill subclass found in %s", entry.name)
                continue

            skill = skill_cls()
            _skills[skill.name] = skill
            for command in skill.commands:
                _command_map[command] = skill.name

            registered.append(skill.name)
            log.info("✅ Registered skill: %s (commands: %s)", skill.name, skill.commands)

        except Exception as e:
            log.error("Failed to load skill %s: %s", entry.name, e, exc_info=True)

    log.info("Skill discovery complete: %d skills registered", len(registered))
    return registered


def get_skill(name: str) -> Skill | None:
    """Get a skill by name."""
    return _skills.get(name)


def get_commands() -> list[str]:
    """All slash commands handled by registered skills."""
    return sorted(_command_map)


async def dispatch(command: str, text: str = "", user_id: int = 0,
                   channel_id: int = 0) -> SkillResult:
    """Dispatch a slash command to the skill that owns it."""
    skill_name = _command_map.get(command)
    if not skill_name:
        return SkillResult(output=f"Unknown command: /{command}", success=False)

    skill = _skills.get(skill_name)
    if not skill:
        return SkillResult(output=f"Skill not found: {skill_name}", success=False)

    context = SkillContext(
        trigger="command",
        user_id=user_id,
        channel_id=channel_id,
        command=command,
        args=skill.parse_command(command, text),
    )

    return await skill.run(context)


def list_skills() -> list[dict]:
    """List all registered skills with metadata."""
    return [
        {"name": s.name, "commands": list(s.commands)}
        for s in _skills.values()
    ]
