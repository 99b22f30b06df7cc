from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

# ---- metric-level primitives ----

Metric = int  # fee rate in sat/vB, non-negative

@dataclass(slots=True, frozen=True)
class FeeData:
    """
    Decoded /api/v1/fees/recommended payload (all values sat/vB).
    """
    fastest_fee: int
    half_hour_fee: int
    hour_fee: int
    economy_fee: Optional[int] = None
    minimum_fee: Optional[int] = None

# ---- alerting domain ----

class Side(str, Enum):
    UNSET = "unset"
    BELOW = "below"   # metric <= threshold
    ABOVE = "above"   # metric >  threshold

AlertState = Side

@dataclass(slots=True, frozen=True)
class AlertEvent:
    side: Side
    metric: Metric
    threshold: int
    previous: Side
    ts: float  # epoch seconds of the observation

    @property
    def direction(self) -> str:
        return "down" if self.side is Side.BELOW else "up"

@dataclass(slots=True, frozen=True)
class AlerterSnapshot:
    state: Side
    threshold: int
    last_metric: Optional[Metric]
    last_ok_ts: Optional[float]
    ticks: int
    fetch_failures: int
    send_failures: int
    events_emitted: int

# ---- collaborator contracts ----

class MetricSource(Protocol):
    async def fetch(self) -> Metric:
        """Current metric, or raise FetchError."""
        ...
