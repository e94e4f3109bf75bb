"""Telegram transport — sends and receives messages via Telegram Bot API.

This is the default transport. Requires TELEGRAM_BOT_TOKEN in .env.
"""

import logging
from telegram import Update
from telegram.ext import (
    Application, CommandHandler, MessageHandler,
    ContextTypes, filters,
)

from tally.transport import Transport, IncomingCommand
from tally.config import TELEGRAM_BOT_TOKEN

log = logging.getLogger(__name__)

TELEGRAM_MAX_LEN = 4096

HELP_TEXT = (
    "Track habits and to-dos.\n\n"
    "Habits:\n"
    "/habit add <title> [YYYY-MM-DD] — start tracking\n"
    "/habit list [YYYY-MM-DD] — what's done on a day\n"
    "/done <habit> [YYYY-MM-DD] — tick / untick a day\n"
    "/habit stats — streaks and completion rates\n"
    "/habit rename <habit> <title>\n"
    "/habit start <habit> <YYYY-MM-DD> — change start date\n"
    "/habit delete <habit>\n\n"
    "To-dos:\n"
    "/todo add <text>\n"
    "/todos — open to-dos\n"
    "/todo done-list — completed to-dos\n"
    "/todo complete|revert|delete|show <id>\n"
    "/todo detail <id> <text>\n"
    "/todo up|down <id>, /todo move <id> <position>\n\n"
    "/dashboard — everything at a glance"
)


def is_allowed(user_id: int) -> bool:
    """Empty ALLOWED_USER_IDS lets everyone in."""
    from tally.config import ALLOWED_USER_IDS
    return not ALLOWED_USER_IDS or user_id in ALLOWED_USER_IDS


def split_message(text: str, limit: int = TELEGRAM_MAX_LEN) -> list[str]:
    return [text[i:i + limit] for i in range(0, len(text), limit)] or [""]


# Command handler callback — set by main.py during initialization
_on_command_callback = None


def set_command_handler(callback) -> None:
    """Register the function that handles incoming commands.

    Signature: async def callback(cmd: IncomingCommand) -> str
    Returns the bot's response text.
    """
    global _on_command_callback
    _on_command_callback = callback


class TelegramTransport(Transport):
    """Telegram Bot API transport."""

    def __init__(self, commands: list[str] | None = None):
        self._app: Application | None = None
        self._commands = commands or []

    @property
    def name(self) -> str:
        return "telegram"

    async def start(self) -> None:
        if not TELEGRAM_BOT_TOKEN:
            log.warning("TELEGRAM_BOT_TOKEN not set, Telegram transport disabled")
            return

        self._app = Application.builder().token(TELEGRAM_BOT_TOKEN).build()

        # Register handlers
        self._app.add_handler(CommandHandler("start", self._cmd_start))
        self._app.add_handler(CommandHandler("help", self._cmd_help))
        for command in self._commands:
            self._app.add_handler(CommandHandler(command, self._handle_command))
        self._app.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_text)
        )

        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling(drop_pending_updates=True)
        log.info("Telegram transport started (commands: %s)", self._commands)

    async def stop(self) -> None:
        if self._app:
            await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
            log.info("Telegram transport stopped")

    async def send_message(self, user_id: int, text: str) -> bool:
        if not self._app:
            log.warning("Telegram not started, cannot send message")
            return False
        try:
            for chunk in split_message(text):
                await self._app.bot.send_message(chat_id=user_id, text=chunk)
        except Exception as e:
            log.error("Failed to send Telegram message: %s", e)
            return False
        return True

    # ── Handlers ──────────────────────────────────────────────

    async def _cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not is_allowed(update.effective_user.id):
            await update.message.reply_text("Sorry, this is a private tracker.")
            return
        await update.message.reply_text(
            "Hi! I keep track of your habits and to-dos.\n"
            "Try /habit add Drink water, then /done Drink water.\n"
            "/help lists every command."
        )

    async def _cmd_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not is_allowed(update.effective_user.id):
            await update.message.reply_text("Sorry, this is a private tracker.")
            return
        await update.message.reply_text(HELP_TEXT)

    async def _handle_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.message.text:
            return

        user_id = update.effective_user.id
        if not is_allowed(user_id):
            await update.message.reply_text("Sorry, this is a private tracker.")
            return

        # "/habit@MyBot add Run" → command "habit", text "add Run"
        head, _, rest = update.message.text.partition(" ")
        command = head.lstrip("/").split("@", 1)[0].lower()

        cmd = IncomingCommand(
            user_id=user_id,
            channel_id=update.effective_chat.id,
            command=command,
            text=rest.strip(),
            transport="telegram",
        )

        if _on_command_callback:
            response = await _on_command_callback(cmd)
            if response:
                await self.send_message(update.effective_chat.id, response)
        else:
            await update.message.reply_text("Still starting up... try again in a moment.")

    async def _handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not is_allowed(update.effective_user.id):
            return
        await update.message.reply_text("I only understand commands. Send /help for the list.")
