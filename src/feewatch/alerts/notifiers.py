# src/feewatch/alerts/notifiers.py
from __future__ import annotations
import structlog
from typing import Protocol

from feewatch.utils.errors import SendError

log = structlog.get_logger("notifier")

class Notifier(Protocol):
    async def notify(self, text: str) -> None:
        """Deliver `text` once. Raise SendError on failure; never retry."""
        ...

class ConsoleNotifier:
    def __init__(self, prefix: str = "[ALERT]"):
        self.prefix = prefix

    async def notify(self, text: str) -> None:
        try:
            print(f"{self.prefix} {text}" if self.prefix else text, flush=True)
        except OSError as e:
            # closed/broken stdout
            raise SendError(f"console write failed: {e}") from e
