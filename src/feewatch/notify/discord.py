from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
import structlog

from feewatch.utils.errors import ConfigError, SendError

log = structlog.get_logger("discord")

DEFAULT_API_BASE = "https://discord.com/api/v10"

# channel types we can post alerts to: GUILD_TEXT, GUILD_ANNOUNCEMENT
GUILD_MESSAGE_CHANNEL_TYPES = frozenset({0, 5})

# --------- config & client ----------

@dataclass(slots=True)
class DiscordConfig:
    bot_token: str
    channel_id: int
    api_base: str = DEFAULT_API_BASE
    timeout_s: float = 8.0

class DiscordNotifier:
    """
    Posts alert text to a single Discord guild channel over the REST API.

    One attempt per notify(); failures surface as SendError and the caller
    decides what to do (the alerter logs and moves on).
    """
    def __init__(self, cfg: DiscordConfig):
        self.cfg = cfg
        self._session: Optional[aiohttp.ClientSession] = None
        self.bot_name: Optional[str] = None

    async def start(self, verify: bool = True):
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            headers = {
                "Authorization": f"Bot {self.cfg.bot_token}",
                "User-Agent": "DiscordBot (feewatch, 0.1.0)",
            }
            self._session = aiohttp.ClientSession(timeout=timeout, headers=headers)
        if verify:
            await self._whoami()
            await self._verify_channel()

    async def stop(self):
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "DiscordNotifier":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def notify(self, text: str) -> None:
        assert self._session is not None, "start() not called"
        url = f"{self.cfg.api_base}/channels/{self.cfg.channel_id}/messages"
        try:
            async with self._session.post(url, json={"content": text}) as resp:
                if 200 <= resp.status < 300:
                    return
                detail = await _maybe_text(resp)
                raise SendError(
                    f"discord rejected message (status {resp.status})",
                    status=resp.status,
                    body=detail[:300],
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SendError(f"discord network error: {e!s}") from e

    # --------- startup checks ----------

    async def _get_json(self, path: str) -> tuple[int, dict]:
        assert self._session is not None
        try:
            async with self._session.get(f"{self.cfg.api_base}{path}") as resp:
                if resp.status != 200:
                    return resp.status, {}
                return resp.status, await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ConfigError(f"discord unreachable: {e!s}") from e

    async def _whoami(self) -> None:
        status, me = await self._get_json("/users/@me")
        if status == 401:
            raise ConfigError("DISCORD_TOKEN rejected by Discord (401)")
        if status != 200:
            raise ConfigError(f"could not resolve bot user (status {status})")
        self.bot_name = me.get("username")
        log.info("discord_connected", user=self.bot_name)

    async def _verify_channel(self) -> None:
        status, ch = await self._get_json(f"/channels/{self.cfg.channel_id}")
        if status != 200:
            raise ConfigError(f"channel {self.cfg.channel_id} not accessible (status {status})")
        if ch.get("type") not in GUILD_MESSAGE_CHANNEL_TYPES or not ch.get("guild_id"):
            raise ConfigError(f"channel {self.cfg.channel_id} is not a server text channel")
        log.info("discord_channel_ok", channel_id=self.cfg.channel_id, name=ch.get("name"))

async def _maybe_text(resp: aiohttp.ClientResponse) -> str:
    try:
        return await resp.text()
    except Exception:
        return "<no body>"
