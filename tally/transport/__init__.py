"""Transport abstraction — base class for message transports.

A transport handles sending and receiving messages. Telegram is the only
one shipped; the abstraction keeps command handling independent of it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

log = logging.getLogger(__name__)


@dataclass
class IncomingCommand:
    """A slash command received from any transport."""
    user_id: int
    channel_id: int
    command: str            # without the leading "/"
    text: str               # everything after the command
    transport: str          # "telegram" | etc.


class Transport(ABC):
    """Abstract base class for message transports.

    Transports are "dumb pipes" — they handle message I/O only.
    Business logic lives in the skills layer.
    """

    @abstractmethod
    async def start(self) -> None:
        """Start the transport (connect, listen for messages)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Gracefully stop the transport."""
        ...

    @abstractmethod
    async def send_message(self, user_id: int, text: str) -> bool:
        """Send a text message to a user. Returns False if delivery failed."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport identifier (e.g., 'telegram')."""
        ...
