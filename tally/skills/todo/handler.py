"""Todo skill — manage a simple todo list via one command."""

from tally.skills.base import Skill, SkillContext, SkillResult, split_args
from tally.db import (
    create_todo, get_todos, get_todo, complete_todo, revert_todo, delete_todo,
    update_todo_detail, move_todo, reorder_todo,
)


class TodoSkill(Skill):

    commands = ["todo", "todos"]

    def parse_command(self, command: str, text: str) -> dict:
        words = split_args(text)
        if command == "todos" or not words:
            return {"action": "list"}
        action, rest = words[0].lower(), words[1:]
        args: dict = {"action": action}
        if action == "add":
            args["task"] = " ".join(rest)
        elif rest:
            args["todo_id"] = rest[0].lstrip("#")
            if action == "detail":
                args["detail"] = " ".join(rest[1:])
            elif action == "move" and len(rest) > 1:
                args["index"] = rest[1]
        return args

    async def execute(self, context: SkillContext) -> SkillResult:
        args = context.args
        action = args.get("action", "list")
        uid = context.user_id

        if action == "add":
            task = args.get("task", "")
            if not task:
                return SkillResult(output="Need a task description.", success=False)
            tid = create_todo(uid, task)
            return SkillResult(output=f"Todo #{tid} added: {task}")

        elif action in ("list", "done-list"):
            done = action == "done-list"
            todos = get_todos(uid, only_done=done)
            if not todos:
                if done:
                    return SkillResult(output="Nothing completed yet.")
                return SkillResult(output="No pending todos. All clear!")
            lines = []
            for t in todos:
                line = f"- {'✅' if t['is_complete'] else '⬜'} #{t['id']} {t['content']}"
                if t["detail"]:
                    line += f"\n    {t['detail']}"
                lines.append(line)
            return SkillResult(output=f"{len(todos)} todos:\n" + "\n".join(lines))

        tid = args.get("todo_id")
        if not tid or not str(tid).isdigit():
            return SkillResult(output="Need todo_id.", success=False)
        tid = int(tid)

        if action == "complete":
            if not complete_todo(uid, tid):
                return SkillResult(output=f"No open todo #{tid}.", success=False)
            return SkillResult(output=f"Todo #{tid} completed!")

        elif action == "revert":
            if not revert_todo(uid, tid):
                return SkillResult(output=f"No completed todo #{tid}.", success=False)
            return SkillResult(output=f"Todo #{tid} is open again.")

        elif action == "delete":
            if not delete_todo(uid, tid):
                return SkillResult(output=f"No todo #{tid}.", success=False)
            return SkillResult(output=f"Todo #{tid} deleted.")

        elif action == "detail":
            if not update_todo_detail(uid, tid, args.get("detail", "")):
                return SkillResult(output=f"No todo #{tid}.", success=False)
            return SkillResult(output=f"Details saved for todo #{tid}.")

        elif action in ("up", "down"):
            if not move_todo(uid, tid, action):
                return SkillResult(output=f"Todo #{tid} can't move {action}.", success=False)
            return SkillResult(output=f"Todo #{tid} moved {action}.")

        elif action == "move":
            index = str(args.get("index", ""))
            if not index.isdigit() or int(index) < 1:
                return SkillResult(output="Need a position (1 = top).", success=False)
            if not reorder_todo(uid, tid, int(index) - 1):
                return SkillResult(output=f"Can't move todo #{tid} to {index}.", success=False)
            return SkillResult(output=f"Todo #{tid} moved to position {index}.")

        elif action == "show":
            todo = get_todo(uid, tid)
            if not todo:
                return SkillResult(output=f"No todo #{tid}.", success=False)
            lines = [f"#{todo['id']} {todo['content']}", f"Created: {todo['created_at'][:16]}"]
            if todo["completed_at"]:
                lines.append(f"Completed: {todo['completed_at'][:16]}")
            if todo["detail"]:
                lines.append(todo["detail"])
            return SkillResult(output="\n".join(lines))

        return SkillResult(output=f"Unknown action: {action}", success=False)
