"""Tally — main entry point.

Starts all subsystems:
1. Database initialization
2. Skill discovery
3. Transport (Telegram by default)
4. Daily digest scheduler
"""

import asyncio
import logging
from datetime import datetime, timedelta

from tally.config import DIGEST_HOUR, LOG_LEVEL
from tally.dates import local_tz
from tally.db import init_db, get_user_ids
import tally.skills as skill_registry
from tally.dashboard import build_dashboard, format_dashboard
from tally.transport import IncomingCommand
from tally.transport.telegram import TelegramTransport, set_command_handler, is_allowed

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)-5s %(name)s — %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("tally")


def _now() -> datetime:
    tz = local_tz()
    return datetime.now(tz) if tz else datetime.now().astimezone()


async def handle_command(cmd: IncomingCommand) -> str:
    """Central command handler — called by all transports."""
    result = await skill_registry.dispatch(
        cmd.command, cmd.text, user_id=cmd.user_id, channel_id=cmd.channel_id,
    )
    return result.output


def seconds_until(hour: int, now: datetime) -> float:
    """Seconds from now until the next occurrence of hour:00."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if now >= target:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def send_digests(transport) -> int:
    """Send every user their dashboard. Returns number of digests sent."""
    sent = 0
    for user_id in get_user_ids():
        if not is_allowed(user_id):
            continue
        try:
            text = format_dashboard(build_dashboard(user_id))
            if await transport.send_message(user_id, text):
                sent += 1
            else:
                log.warning("Digest for user %d was not delivered", user_id)
        except Exception as e:
            log.error("Digest for user %d failed: %s", user_id, e, exc_info=True)
    return sent


async def digest_scheduler(transport):
    """Send the dashboard to every user at DIGEST_HOUR daily."""
    while True:
        wait_seconds = seconds_until(DIGEST_HOUR, _now())
        log.info("Next digest in %.0f minutes", wait_seconds / 60)
        await asyncio.sleep(wait_seconds)

        log.info("Sending daily digests...")
        try:
            sent = await send_digests(transport)
            log.info("Digests sent: %d", sent)
        except Exception as e:
            log.error("Digest run failed: %s", e, exc_info=True)


async def main():
    """Boot sequence."""
    log.info("=" * 50)
    log.info("Tally starting up...")
    log.info("=" * 50)

    # 1. Database
    init_db()
    log.info("Database ready")

    # 2. Skills
    skills = skill_registry.discover()
    log.info("Skills loaded: %s", skills)

    # 3. Transport
    transport = TelegramTransport(commands=skill_registry.get_commands())
    set_command_handler(handle_command)
    await transport.start()
    log.info("Transport started: %s", transport.name)

    # 4. Background tasks
    if DIGEST_HOUR >= 0:
        asyncio.create_task(digest_scheduler(transport))
        log.info("Daily digest scheduled at %02d:00", DIGEST_HOUR)

    log.info("Tally is running")

    # Keep running
    try:
        while True:
            await asyncio.sleep(3600)
    except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
        log.info("Shutting down...")
        await transport.stop()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
