"""Process configuration, read once from the environment (and .env) at startup."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from feewatch.alerts.alerter import AlerterConfig
from feewatch.ingest.mempool import DEFAULT_API_URL, MempoolConfig
from feewatch.ingest.parser import FEE_FIELDS
from feewatch.notify.discord import DEFAULT_API_BASE, DiscordConfig
from feewatch.utils.errors import ConfigError

NOTIFIERS = ("discord", "console")


@dataclass(slots=True, frozen=True)
class AppConfig:
    alerter: AlerterConfig
    mempool: MempoolConfig
    notifier: str = "discord"
    discord: Optional[DiscordConfig] = None
    startup_ping: bool = False
    log_level: str = "INFO"


def _flag(env: Mapping[str, str], name: str, default: str = "0") -> bool:
    return env.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def _int(env: Mapping[str, str], name: str, default: Optional[int] = None) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        if default is None:
            raise ConfigError(f"{name} is not set")
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _positive(name: str, v: float) -> float:
    # also rejects NaN
    if not v > 0:
        raise ConfigError(f"{name} must be > 0, got {v}")
    return v


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build an AppConfig from `env` (defaults to os.environ). Raises ConfigError."""
    env = os.environ if env is None else env

    threshold = _int(env, "FEE_THRESHOLD", 2)
    if threshold < 0:
        raise ConfigError(f"FEE_THRESHOLD must be >= 0, got {threshold}")
    alerter = AlerterConfig(
        threshold=threshold,
        poll_interval_s=_positive("POLL_INTERVAL_S", _float(env, "POLL_INTERVAL_S", 300.0)),
        fetch_on_start=_flag(env, "FETCH_ON_START"),
    )

    field = env.get("FEE_FIELD", "fastestFee").strip()
    if field not in FEE_FIELDS:
        raise ConfigError(f"FEE_FIELD must be one of {sorted(FEE_FIELDS)}, got {field!r}")
    mempool = MempoolConfig(
        api_url=env.get("MEMPOOL_API_URL", DEFAULT_API_URL).strip() or DEFAULT_API_URL,
        field=field,
        timeout_s=_positive("FETCH_TIMEOUT_S", _float(env, "FETCH_TIMEOUT_S", 10.0)),
    )

    notifier = env.get("NOTIFIER", "discord").strip().lower()
    if notifier not in NOTIFIERS:
        raise ConfigError(f"NOTIFIER must be one of {NOTIFIERS}, got {notifier!r}")

    discord = None
    if notifier == "discord":
        token = env.get("DISCORD_TOKEN", "").strip()
        if not token:
            raise ConfigError("DISCORD_TOKEN is not set")
        discord = DiscordConfig(
            bot_token=token,
            channel_id=_int(env, "CHANNEL_ID"),
            api_base=env.get("DISCORD_API_BASE", DEFAULT_API_BASE).strip().rstrip("/") or DEFAULT_API_BASE,
            timeout_s=_positive("SEND_TIMEOUT_S", _float(env, "SEND_TIMEOUT_S", 8.0)),
        )

    return AppConfig(
        alerter=alerter,
        mempool=mempool,
        notifier=notifier,
        discord=discord,
        startup_ping=_flag(env, "STARTUP_PING"),
        log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
