"""Dashboard skill — top todos and habit cards in one message."""

from tally.skills.base import Skill, SkillContext, SkillResult
from tally.dashboard import build_dashboard, format_dashboard


class DashboardSkill(Skill):

    commands = ["dashboard"]

    def parse_command(self, command: str, text: str) -> dict:
        return {}

    async def execute(self, context: SkillContext) -> SkillResult:
        dashboard = build_dashboard(context.user_id)
        return SkillResult(output=format_dashboard(dashboard))
