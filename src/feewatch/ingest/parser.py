from __future__ import annotations
from typing import Any, Optional
from feewatch.utils.types import FeeData
from feewatch.utils.errors import DecodeError

# JSON key -> FeeData attribute
FEE_FIELDS = {
    "fastestFee": "fastest_fee",
    "halfHourFee": "half_hour_fee",
    "hourFee": "hour_fee",
    "economyFee": "economy_fee",
    "minimumFee": "minimum_fee",
}
REQUIRED = ("fastestFee", "halfHourFee", "hourFee")

def _fee(m: dict, key: str, required: bool) -> Optional[int]:
    v = m.get(key)
    if v is None:
        if required:
            raise DecodeError(f"missing field {key!r}")
        return None
    # bool is an int subclass; never a fee
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise DecodeError(f"field {key!r} is not a number: {v!r}")
    if isinstance(v, float):
        if not v.is_integer():
            raise DecodeError(f"field {key!r} is not an integer: {v!r}")
        v = int(v)
    if v < 0:
        raise DecodeError(f"field {key!r} is negative: {v!r}")
    return v

def parse_fee_payload(m: Any) -> FeeData:
    """
    Decode a mempool.space recommended-fees payload.

    Example:
      {"fastestFee": 3, "halfHourFee": 2, "hourFee": 2,
       "economyFee": 1, "minimumFee": 1}

    fastestFee/halfHourFee/hourFee are required; the rest are optional
    (older deployments omit them). Raises DecodeError on anything else.
    """
    if not isinstance(m, dict):
        raise DecodeError(f"expected JSON object, got {type(m).__name__}")
    return FeeData(
        fastest_fee=_fee(m, "fastestFee", True),
        half_hour_fee=_fee(m, "halfHourFee", True),
        hour_fee=_fee(m, "hourFee", True),
        economy_fee=_fee(m, "economyFee", False),
        minimum_fee=_fee(m, "minimumFee", False),
    )

def select_metric(fees: FeeData, field: str) -> int:
    """Pick the fee named by its JSON key (e.g. "fastestFee")."""
    attr = FEE_FIELDS.get(field)
    if attr is None:
        raise ValueError(f"unknown fee field {field!r}")
    v = getattr(fees, attr)
    if v is None:
        raise DecodeError(f"field {field!r} not present in payload")
    return v
