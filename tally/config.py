"""Configuration — loads environment variables with sensible defaults.

All tunables live here. Override via .env file or environment variables.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

def _env(key: str, default: str = "") -> str:
    return os.getenv(key, default)

def _env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))

def _env_int_list(key: str) -> list[int]:
    raw = os.getenv(key, "")
    return [int(p) for p in raw.replace(" ", "").split(",") if p]


# ═══════════════════════════════════════════════════════════════════════════
# Transport
# ═══════════════════════════════════════════════════════════════════════════

TELEGRAM_BOT_TOKEN = _env("TELEGRAM_BOT_TOKEN")

# Comma-separated Telegram user ids. Empty = anyone may use the bot;
# every user only ever sees their own habits and todos.
ALLOWED_USER_IDS = _env_int_list("ALLOWED_USER_IDS")

# ═══════════════════════════════════════════════════════════════════════════
# Metrics
# ═══════════════════════════════════════════════════════════════════════════

BASELINE_DAYS = _env_int("BASELINE_DAYS", 7)
DASHBOARD_TODO_LIMIT = _env_int("DASHBOARD_TODO_LIMIT", 5)

# Daily dashboard digest (-1 = disabled, which is the default)
DIGEST_HOUR = _env_int("DIGEST_HOUR", -1)

# ═══════════════════════════════════════════════════════════════════════════
# Database
# ═══════════════════════════════════════════════════════════════════════════

DB_PATH = Path(_env("TALLY_DB_PATH") or (_PROJECT_ROOT / "data" / "tally.db"))

# ═══════════════════════════════════════════════════════════════════════════
# Timezone
# ═══════════════════════════════════════════════════════════════════════════
# Habit days are local calendar days. Leave empty to use the system zone
# of the machine running the bot; set e.g. 8 or -5 to pin a fixed offset.

TIMEZONE_OFFSET_HOURS = _env("TIMEZONE_OFFSET_HOURS")

# ═══════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════

LOG_LEVEL = _env("LOG_LEVEL", "INFO").upper()
