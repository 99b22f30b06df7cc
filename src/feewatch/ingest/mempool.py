from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
import structlog

from feewatch.ingest import parser
from feewatch.ingest.parser import FEE_FIELDS
from feewatch.utils.types import FeeData
from feewatch.utils.errors import DecodeError, FetchTimeout, NetworkError

DEFAULT_API_URL = "https://mempool.space/api/v1/fees/recommended"


@dataclass(slots=True)
class MempoolConfig:
    api_url: str = DEFAULT_API_URL
    field: str = "fastestFee"       # which fee is the metric
    timeout_s: float = 10.0         # bounded per-request timeout


class MempoolFeeSource:
    """
    Metric source backed by the mempool.space REST API.

    fetch() returns the configured fee (sat/vB) or raises a FetchError:
      - NetworkError  transport failure or non-200 status
      - FetchTimeout  request exceeded cfg.timeout_s
      - DecodeError   body is not the expected JSON

    Usage:
        async with MempoolFeeSource(MempoolConfig()) as src:
            fee = await src.fetch()
    """

    def __init__(self, cfg: Optional[MempoolConfig] = None):
        self.cfg = cfg or MempoolConfig()
        if self.cfg.field not in FEE_FIELDS:
            raise ValueError(f"unknown fee field {self.cfg.field!r}")
        self._session: Optional[aiohttp.ClientSession] = None
        self._log = structlog.get_logger("mempool")

    # ---------------------------- lifecycle ---------------------------- #

    async def start(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def stop(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "MempoolFeeSource":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ---------------------------- public API ---------------------------- #

    async def fetch(self) -> int:
        fees = await self.fetch_fees()
        return parser.select_metric(fees, self.cfg.field)

    async def fetch_fees(self) -> FeeData:
        if self._session is None:
            await self.start()
        assert self._session is not None
        try:
            async with self._session.get(self.cfg.api_url) as resp:
                if resp.status != 200:
                    raise NetworkError(f"unexpected status {resp.status}", status=resp.status)
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    # json.JSONDecodeError is a ValueError
                    raise DecodeError(f"invalid JSON: {e}") from e
        except asyncio.TimeoutError as e:
            raise FetchTimeout(f"no response within {self.cfg.timeout_s}s") from e
        except aiohttp.ClientError as e:
            raise NetworkError(str(e) or type(e).__name__) from e

        fees = parser.parse_fee_payload(data)
        self._log.debug(
            "fees_fetched",
            fastest=fees.fastest_fee,
            half_hour=fees.half_hour_fee,
            hour=fees.hour_fee,
        )
        return fees
