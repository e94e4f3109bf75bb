"""Dashboard — top todos plus one card per habit.

Data is loaded fresh and metrics recomputed on every call.
"""

import logging

from tally.dates import today_string
from tally.metrics import HabitMetrics, compute_habit_metrics

log = logging.getLogger(__name__)


def build_dashboard(user_id: int, today: str | None = None) -> dict:
    """Return {today, todos, habits} for a user."""
    from tally.config import DASHBOARD_TODO_LIMIT
    from tally.db import get_habits, get_top_todos

    today = today or today_string()
    habits = get_habits(user_id)
    return {
        "today": today,
        "todos": get_top_todos(user_id, limit=DASHBOARD_TODO_LIMIT),
        "habits": compute_habit_metrics(habits, today),
    }


def format_change(percent_change: int) -> str:
    return f"+{percent_change}%" if percent_change >= 0 else f"{percent_change}%"


def format_habit_card(m: HabitMetrics) -> str:
    days = "day" if m.streak == 1 else "days"
    return (
        f"{m.title} (#{m.id})\n"
        f"  Current streak: {m.streak} {days}\n"
        f"  Completion: {m.completion_rate}% ({m.completed_count}/{m.total_days})"
        f"  {format_change(m.percent_change)} vs last week"
    )


def format_dashboard(dashboard: dict) -> str:
    lines = [f"📊 Dashboard — {dashboard['today']}", "", "Top to-dos:"]
    if dashboard["todos"]:
        for t in dashboard["todos"]:
            lines.append(f"  ⬜ #{t['id']} {t['content']} ({t['created_at'][:10]})")
    else:
        lines.append("  No active to-dos found.")

    lines.append("")
    if dashboard["habits"]:
        lines.append("Habits:")
        lines.extend(format_habit_card(m) for m in dashboard["habits"])
    else:
        lines.append("No habits yet. Add one with /habit add <title>")
    return "\n".join(lines)
