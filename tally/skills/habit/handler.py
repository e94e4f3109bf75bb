"""Habit skill — add habits, tick them off per day, show streaks."""

import re

from tally.skills.base import Skill, SkillContext, SkillResult, split_args
from tally.dates import today_string, validate_user_date
from tally.metrics import compute_habit_metrics
from tally.dashboard import format_habit_card
from tally.db import (
    create_habit, get_habits, find_habit, rename_habit,
    set_habit_created_date, delete_habit, toggle_completion,
)

_DATE_SHAPED = re.compile(r"\d{4}-\d{1,2}-\d{1,2}")


def _pop_date(words: list[str]) -> tuple[list[str], str]:
    """Split a trailing date-looking word off the argument list."""
    if words and _DATE_SHAPED.fullmatch(words[-1]):
        return words[:-1], words[-1]
    return words, ""


class HabitSkill(Skill):

    commands = ["habit", "habits", "done"]

    def parse_command(self, command: str, text: str) -> dict:
        words = split_args(text)
        if command == "habits":
            words = ["list"] + words
        elif command == "done":
            words = ["done"] + words
        if not words:
            return {"action": "list"}

        action, rest = words[0].lower(), words[1:]
        args: dict = {"action": action}

        if action in ("add", "done", "list"):
            rest, date = _pop_date(rest)
            if date:
                args["date"] = date
            key = "title" if action == "add" else "habit"
            if rest:
                args[key] = " ".join(rest)
        elif action == "rename":
            if rest:
                args["habit"] = rest[0]
                args["title"] = " ".join(rest[1:])
        elif action == "start":
            rest, date = _pop_date(rest)
            args["habit"] = " ".join(rest)
            args["date"] = date
        elif action in ("delete", "remove"):
            args["action"] = "delete"
            args["habit"] = " ".join(rest)
        return args

    async def execute(self, context: SkillContext) -> SkillResult:
        args = context.args
        action = args.get("action", "list")
        uid = context.user_id

        if action == "add":
            title = args.get("title", "")
            if not title:
                return SkillResult(output="Need a habit title.", success=False)
            hid = create_habit(uid, title, args.get("date") or None)
            return SkillResult(output=f"Habit #{hid} added: {title}")

        elif action == "list":
            day = validate_user_date(args["date"]) if args.get("date") else today_string()
            habits = get_habits(uid)
            if not habits:
                return SkillResult(output="No habits yet. Add one with /habit add <title>")
            lines = [
                f"{'✔️' if day in h.completed_dates else '✖️'} #{h.id} {h.title}"
                for h in habits if h.created_date <= day
            ]
            if not lines:
                return SkillResult(output=f"No habits were tracked on {day}.")
            return SkillResult(output=f"Habits for {day}:\n" + "\n".join(lines))

        elif action == "stats":
            metrics = compute_habit_metrics(get_habits(uid), today_string())
            if not metrics:
                return SkillResult(output="No habits yet. Add one with /habit add <title>")
            return SkillResult(output="\n\n".join(format_habit_card(m) for m in metrics))

        # Everything below works on one existing habit
        ref = args.get("habit", "")
        if not ref:
            return SkillResult(output="Which habit? Give its #id or title.", success=False)
        habit = find_habit(uid, ref)
        if not habit:
            return SkillResult(output=f"No habit matching {ref!r}.", success=False)
        hid = int(habit.id)

        if action == "done":
            day = args.get("date") or today_string()
            done = toggle_completion(uid, hid, day)
            if done:
                return SkillResult(output=f"✔️ {habit.title} done on {day}")
            return SkillResult(output=f"✖️ {habit.title} unmarked for {day}")

        elif action == "rename":
            title = args.get("title", "")
            if not title:
                return SkillResult(output="Need the new title.", success=False)
            rename_habit(uid, hid, title)
            return SkillResult(output=f"Habit #{hid} renamed to {title}")

        elif action == "start":
            date = args.get("date", "")
            if not date:
                return SkillResult(output="Need a start date (YYYY-MM-DD).", success=False)
            set_habit_created_date(uid, hid, date)
            return SkillResult(output=f"{habit.title} now tracked since {date}")

        elif action == "delete":
            delete_habit(uid, hid)
            return SkillResult(output=f"Habit #{hid} deleted: {habit.title}")

        return SkillResult(output=f"Unknown action: {action}", success=False)
