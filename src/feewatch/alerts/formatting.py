from __future__ import annotations
from datetime import datetime
from zoneinfo import ZoneInfo

from feewatch.utils.types import AlertEvent, Side

def _fmt_ts(ts_s: float, tz_name: str) -> str:
    tz = ZoneInfo(tz_name)
    return datetime.fromtimestamp(ts_s, tz).strftime("%H:%M:%S %Z")  # e.g., 14:05:00 UTC

def render(evt: AlertEvent) -> str:
    """Default alert text sent to the channel."""
    if evt.side is Side.BELOW:
        return (
            f"⚠️ Bitcoin transaction fees are now at {evt.metric} sat/vB "
            f"(at or below {evt.threshold} sat/vB)!"
        )
    return (
        f"📈 Bitcoin transaction fees rose to {evt.metric} sat/vB "
        f"(above {evt.threshold} sat/vB)."
    )

def render_pretty(evt: AlertEvent, tz_name: str = "UTC") -> str:
    """One-line variant with arrow and timestamp, for console output."""
    arrow = "↓" if evt.side is Side.BELOW else "↑"
    cmp_  = "<=" if evt.side is Side.BELOW else ">"
    return (
        f"[FEES {evt.direction.upper()}] {_fmt_ts(evt.ts, tz_name)} {arrow} "
        f"{evt.metric} sat/vB {cmp_} {evt.threshold}  |  "
        f"was {evt.previous.value}"
    )
