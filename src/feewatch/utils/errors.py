from __future__ import annotations

from typing import Optional


class FeewatchError(Exception):
    """Base for every error raised by feewatch."""


class ConfigError(FeewatchError):
    """Invalid or missing configuration. Fatal at startup."""


# ---- source side ----

class FetchError(FeewatchError):
    """Metric could not be fetched this tick. The loop skips the tick."""


class NetworkError(FetchError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DecodeError(FetchError):
    pass


class FetchTimeout(FetchError):
    pass


# ---- delivery side ----

class SendError(FeewatchError):
    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body
