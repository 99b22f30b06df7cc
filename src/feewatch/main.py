# src/feewatch/main.py
import asyncio
import logging
import signal
import sys
from contextlib import AsyncExitStack

import structlog
from dotenv import load_dotenv

from feewatch.config import AppConfig, load_config
from feewatch.alerts.alerter import ThresholdAlerter
from feewatch.alerts.formatting import render, render_pretty
from feewatch.alerts.notifiers import ConsoleNotifier
from feewatch.ingest.mempool import MempoolFeeSource
from feewatch.notify.discord import DiscordNotifier
from feewatch.utils.errors import ConfigError, SendError

log = structlog.get_logger()


# ---------------------------
# Utilities
# ---------------------------

def setup_logging(level_name: str = "INFO") -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def install_signal_handlers(alerter: ThresholdAlerter) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, alerter.request_stop)
        except (NotImplementedError, RuntimeError):
            # e.g. Windows event loops; KeyboardInterrupt still ends asyncio.run
            pass


async def startup_ping(notifier, cfg: AppConfig):
    try:
        await notifier.notify(
            f"✅ Fee monitor started (threshold {cfg.alerter.threshold} sat/vB, "
            f"every {cfg.alerter.poll_interval_s:g}s)."
        )
    except SendError as e:
        log.warning("startup_ping_failed", err=str(e))


def build_notifier(cfg: AppConfig):
    if cfg.notifier == "console":
        return ConsoleNotifier(prefix=""), render_pretty
    return DiscordNotifier(cfg.discord), render


# ---------------------------
# Main
# ---------------------------

async def run(cfg: AppConfig) -> None:
    source = MempoolFeeSource(cfg.mempool)
    notifier, format_fn = build_notifier(cfg)
    alerter = ThresholdAlerter.from_config(cfg.alerter, format_fn=format_fn)

    # callbacks unwind in reverse order, each one even if an earlier one raised
    async with AsyncExitStack() as stack:
        stack.callback(lambda: log.info("shutdown_complete", **_snapshot_fields(alerter)))
        await source.start()
        stack.push_async_callback(source.stop)
        if isinstance(notifier, DiscordNotifier):
            stack.push_async_callback(notifier.stop)
            await notifier.start()
        if cfg.startup_ping:
            await startup_ping(notifier, cfg)

        install_signal_handlers(alerter)
        stack.push_async_callback(alerter.stop)
        await alerter.start(source, notifier)
        await alerter.wait()


def _snapshot_fields(alerter: ThresholdAlerter) -> dict:
    snap = alerter.snapshot()
    return {
        "state": snap.state.value,
        "ticks": snap.ticks,
        "events": snap.events_emitted,
        "fetch_failures": snap.fetch_failures,
        "send_failures": snap.send_failures,
    }


async def main() -> int:
    load_dotenv()
    try:
        cfg = load_config()
    except ConfigError as e:
        setup_logging()
        log.error("invalid_config", err=str(e))
        return 2
    setup_logging(cfg.log_level)

    try:
        await run(cfg)
    except ConfigError as e:
        log.error("startup_failed", err=str(e))
        return 2
    return 0


def cli() -> None:
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    cli()
