"""SQLite database layer — persistent storage for habits, completions, todos.

Lightweight schema. Tables are created automatically on first run.
Every query is scoped by user_id; users never see each other's rows.
"""

import sqlite3
import logging
from datetime import datetime

from tally.config import DB_PATH
from tally.dates import ValidationError, local_tz, today_string, validate_user_date
from tally.metrics import Habit

logger = logging.getLogger(__name__)


def _connect() -> sqlite3.Connection:
    """Return a connection with row_factory set."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def _now() -> str:
    tz = local_tz()
    return (datetime.now(tz) if tz else datetime.now().astimezone()).isoformat()


def init_db() -> None:
    """Create tables if they don't exist."""
    conn = _connect()
    conn.executescript("""
        -- Habits (defined by user)
        CREATE TABLE IF NOT EXISTS habits (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id      INTEGER NOT NULL,
            title        TEXT    NOT NULL COLLATE NOCASE,
            created_date TEXT    NOT NULL,
            created_at   TEXT    NOT NULL
        );
        CREATE UNIQUE INDEX IF NOT EXISTS idx_habits_user_title
            ON habits(user_id, title);

        -- One row per (habit, local day) the habit was done
        CREATE TABLE IF NOT EXISTS habit_completions (
            id             INTEGER PRIMARY KEY AUTOINCREMENT,
            habit_id       INTEGER NOT NULL REFERENCES habits(id) ON DELETE CASCADE,
            user_id        INTEGER NOT NULL,
            completed_date TEXT    NOT NULL
        );
        CREATE UNIQUE INDEX IF NOT EXISTS idx_completions_habit_day
            ON habit_completions(habit_id, completed_date);

        -- Todos
        CREATE TABLE IF NOT EXISTS todos (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id      INTEGER NOT NULL,
            content      TEXT    NOT NULL,
            is_complete  INTEGER NOT NULL DEFAULT 0,
            created_at   TEXT    NOT NULL,
            completed_at TEXT,
            detail       TEXT    NOT NULL DEFAULT '',
            position     INTEGER NOT NULL DEFAULT 0
        );
        CREATE INDEX IF NOT EXISTS idx_todos_user
            ON todos(user_id, is_complete, position);
    """)
    conn.close()
    logger.info("Database initialized at %s", DB_PATH)


# ═══════════════════════════════════════════════════════════════════════════
# Habits
# ═══════════════════════════════════════════════════════════════════════════

def create_habit(user_id: int, title: str, created_date: str | None = None) -> int:
    """Create a new habit. Returns habit id.

    created_date defaults to today and may not lie in the future.
    """
    title = title.strip()
    if not title:
        raise ValidationError("Habit title cannot be empty")
    created_date = validate_user_date(created_date) if created_date else today_string()
    conn = _connect()
    try:
        cur = conn.execute(
            "INSERT INTO habits (user_id, title, created_date, created_at) VALUES (?, ?, ?, ?)",
            (user_id, title, created_date, _now()),
        )
        conn.commit()
    except sqlite3.IntegrityError as e:
        raise ValidationError(f"You already track a habit called {title!r}") from e
    finally:
        conn.close()
    return cur.lastrowid


def _habits_from_rows(conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[Habit]:
    if not rows:
        return []
    ids = [r["id"] for r in rows]
    placeholders = ",".join("?" * len(ids))
    completions: dict[int, set[str]] = {hid: set() for hid in ids}
    for c in conn.execute(
        f"SELECT habit_id, completed_date FROM habit_completions WHERE habit_id IN ({placeholders})",
        ids,
    ):
        completions[c["habit_id"]].add(c["completed_date"])
    return [
        Habit(
            id=str(r["id"]),
            title=r["title"],
            created_date=r["created_date"],
            completed_dates=frozenset(completions[r["id"]]),
        )
        for r in rows
    ]


def get_habits(user_id: int) -> list[Habit]:
    """All habits of a user with their completion sets, oldest first."""
    conn = _connect()
    rows = conn.execute(
        "SELECT id, title, created_date FROM habits WHERE user_id = ? ORDER BY created_date, id",
        (user_id,),
    ).fetchall()
    habits = _habits_from_rows(conn, rows)
    conn.close()
    return habits


def get_habit(user_id: int, habit_id: int) -> Habit | None:
    conn = _connect()
    rows = conn.execute(
        "SELECT id, title, created_date FROM habits WHERE user_id = ? AND id = ?",
        (user_id, habit_id),
    ).fetchall()
    habits = _habits_from_rows(conn, rows)
    conn.close()
    return habits[0] if habits else None


def find_habit(user_id: int, ref: str) -> Habit | None:
    """Look a habit up by id ("3" or "#3") or by title, ignoring case."""
    ref = ref.strip()
    key = ref.lstrip("#")
    if key.isdigit():
        habit = get_habit(user_id, int(key))
        if habit:
            return habit
    conn = _connect()
    rows = conn.execute(
        "SELECT id, title, created_date FROM habits WHERE user_id = ? AND title = ?",
        (user_id, ref),
    ).fetchall()
    habits = _habits_from_rows(conn, rows)
    conn.close()
    return habits[0] if habits else None


def rename_habit(user_id: int, habit_id: int, title: str) -> bool:
    title = title.strip()
    if not title:
        raise ValidationError("Habit title cannot be empty")
    conn = _connect()
    try:
        cur = conn.execute(
            "UPDATE habits SET title = ? WHERE id = ? AND user_id = ?",
            (title, habit_id, user_id),
        )
        conn.commit()
    except sqlite3.IntegrityError as e:
        raise ValidationError(f"You already track a habit called {title!r}") from e
    finally:
        conn.close()
    return cur.rowcount > 0


def set_habit_created_date(user_id: int, habit_id: int, created_date: str) -> bool:
    """Move the day tracking began.

    Moving it forward past an existing completion would orphan that
    completion, so that is rejected.
    """
    created_date = validate_user_date(created_date)
    conn = _connect()
    try:
        row = conn.execute(
            "SELECT MIN(completed_date) AS first FROM habit_completions "
            "WHERE habit_id = ? AND user_id = ?",
            (habit_id, user_id),
        ).fetchone()
        if row["first"] and row["first"] < created_date:
            raise ValidationError(
                f"Habit already has a completion on {row['first']}, "
                f"start date cannot be later than that"
            )
        cur = conn.execute(
            "UPDATE habits SET created_date = ? WHERE id = ? AND user_id = ?",
            (created_date, habit_id, user_id),
        )
        conn.commit()
    finally:
        conn.close()
    return cur.rowcount > 0


def delete_habit(user_id: int, habit_id: int) -> bool:
    conn = _connect()
    conn.execute(
        "DELETE FROM habit_completions WHERE habit_id = ? AND user_id = ?",
        (habit_id, user_id),
    )
    cur = conn.execute(
        "DELETE FROM habits WHERE id = ? AND user_id = ?",
        (habit_id, user_id),
    )
    conn.commit()
    conn.close()
    return cur.rowcount > 0


def _check_completion_date(habit: Habit, date_str: str | None) -> str:
    date_str = validate_user_date(date_str) if date_str else today_string()
    if date_str < habit.created_date:
        raise ValidationError(
            f"{habit.title!r} was started on {habit.created_date}, cannot log {date_str}"
        )
    return date_str


def set_completion(user_id: int, habit_id: int, date_str: str | None, done: bool) -> bool | None:
    """Mark a habit done (or not done) on a day. Idempotent.

    Returns the resulting done state, or None for an unknown habit.
    """
    habit = get_habit(user_id, habit_id)
    if not habit:
        return None
    date_str = _check_completion_date(habit, date_str)
    conn = _connect()
    if done:
        conn.execute(
            "INSERT OR IGNORE INTO habit_completions (habit_id, user_id, completed_date) "
            "VALUES (?, ?, ?)",
            (habit_id, user_id, date_str),
        )
    else:
        conn.execute(
            "DELETE FROM habit_completions WHERE habit_id = ? AND user_id = ? AND completed_date = ?",
            (habit_id, user_id, date_str),
        )
    conn.commit()
    conn.close()
    return done


def toggle_completion(user_id: int, habit_id: int, date_str: str | None = None) -> bool | None:
    """Flip the done state of a habit on a day (default today).

    Returns the new state, or None for an unknown habit.
    """
    habit = get_habit(user_id, habit_id)
    if not habit:
        return None
    date_str = _check_completion_date(habit, date_str)
    return set_completion(user_id, habit_id, date_str, date_str not in habit.completed_dates)


# ═══════════════════════════════════════════════════════════════════════════
# Todos
# ═══════════════════════════════════════════════════════════════════════════

def create_todo(user_id: int, content: str) -> int:
    """Add a todo on top of the list. Returns todo id."""
    content = content.strip()
    if not content:
        raise ValidationError("Todo text cannot be empty")
    conn = _connect()
    row = conn.execute(
        "SELECT MIN(position) AS top FROM todos WHERE user_id = ?", (user_id,)
    ).fetchone()
    position = (row["top"] - 1) if row["top"] is not None else 0
    cur = conn.execute(
        "INSERT INTO todos (user_id, content, created_at, position) VALUES (?, ?, ?, ?)",
        (user_id, content, _now(), position),
    )
    conn.commit()
    tid = cur.lastrowid
    conn.close()
    return tid


def get_todos(user_id: int, include_done: bool = False, only_done: bool = False) -> list[dict]:
    """Todos in list order. Active only by default."""
    sql = "SELECT * FROM todos WHERE user_id = ?"
    if only_done:
        sql += " AND is_complete = 1"
    elif not include_done:
        sql += " AND is_complete = 0"
    sql += " ORDER BY position, id DESC"
    conn = _connect()
    rows = conn.execute(sql, (user_id,)).fetchall()
    conn.close()
    return [_todo_dict(r) for r in rows]


def _todo_dict(row: sqlite3.Row) -> dict:
    d = dict(row)
    d["is_complete"] = bool(d["is_complete"])
    return d


def get_todo(user_id: int, todo_id: int) -> dict | None:
    conn = _connect()
    row = conn.execute(
        "SELECT * FROM todos WHERE id = ? AND user_id = ?", (todo_id, user_id)
    ).fetchone()
    conn.close()
    return _todo_dict(row) if row else None


def get_top_todos(user_id: int, limit: int = 5) -> list[dict]:
    """Newest active todos (dashboard card)."""
    conn = _connect()
    rows = conn.execute(
        "SELECT * FROM todos WHERE user_id = ? AND is_complete = 0 "
        "ORDER BY created_at DESC, id DESC LIMIT ?",
        (user_id, limit),
    ).fetchall()
    conn.close()
    return [_todo_dict(r) for r in rows]


def complete_todo(user_id: int, todo_id: int) -> bool:
    conn = _connect()
    cur = conn.execute(
        "UPDATE todos SET is_complete = 1, completed_at = ? "
        "WHERE id = ? AND user_id = ? AND is_complete = 0",
        (_now(), todo_id, user_id),
    )
    conn.commit()
    conn.close()
    return cur.rowcount > 0


def revert_todo(user_id: int, todo_id: int) -> bool:
    conn = _connect()
    cur = conn.execute(
        "UPDATE todos SET is_complete = 0, completed_at = NULL "
        "WHERE id = ? AND user_id = ? AND is_complete = 1",
        (todo_id, user_id),
    )
    conn.commit()
    conn.close()
    return cur.rowcount > 0


def delete_todo(user_id: int, todo_id: int) -> bool:
    conn = _connect()
    cur = conn.execute("DELETE FROM todos WHERE id = ? AND user_id = ?", (todo_id, user_id))
    conn.commit()
    conn.close()
    return cur.rowcount > 0


def update_todo_detail(user_id: int, todo_id: int, detail: str) -> bool:
    conn = _connect()
    cur = conn.execute(
        "UPDATE todos SET detail = ? WHERE id = ? AND user_id = ?",
        (detail.strip(), todo_id, user_id),
    )
    conn.commit()
    conn.close()
    return cur.rowcount > 0


def _save_order(conn: sqlite3.Connection, ordered_ids: list[int]) -> None:
    conn.executemany(
        "UPDATE todos SET position = ? WHERE id = ?",
        [(pos, tid) for pos, tid in enumerate(ordered_ids)],
    )
    conn.commit()


def reorder_todo(user_id: int, todo_id: int, new_index: int) -> bool:
    """Take a todo out of the active list and insert it at new_index.

    Returns False (and changes nothing) when the todo is not active or the
    index is outside the list.
    """
    ids = [t["id"] for t in get_todos(user_id)]
    if todo_id not in ids or not 0 <= new_index < len(ids):
        return False
    ids.remove(todo_id)
    ids.insert(new_index, todo_id)
    conn = _connect()
    _save_order(conn, ids)
    conn.close()
    return True


def move_todo(user_id: int, todo_id: int, direction: str) -> bool:
    """Swap a todo with its neighbour above ("up") or below ("down")."""
    if direction not in ("up", "down"):
        raise ValidationError(f"Unknown direction {direction!r}, use up or down")
    ids = [t["id"] for t in get_todos(user_id)]
    if todo_id not in ids:
        return False
    index = ids.index(todo_id)
    return reorder_todo(user_id, todo_id, index - 1 if direction == "up" else index + 1)


# ═══════════════════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════════════════

def get_user_ids() -> list[int]:
    """Everyone who has at least one habit or todo."""
    conn = _connect()
    rows = conn.execute(
        "SELECT user_id FROM habits UNION SELECT user_id FROM todos ORDER BY user_id"
    ).fetchall()
    conn.close()
    return [r["user_id"] for r in rows]
