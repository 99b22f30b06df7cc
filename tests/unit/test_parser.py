import pytest
from feewatch.ingest import parser
from feewatch.utils.errors import DecodeError
from feewatch.utils.types import FeeData

def test_parse_full_payload():
    m = {"fastestFee": 12, "halfHourFee": 9, "hourFee": 7, "economyFee": 3, "minimumFee": 1}
    fees = parser.parse_fee_payload(m)
    assert isinstance(fees, FeeData)
    assert fees.fastest_fee == 12 and fees.hour_fee == 7 and fees.minimum_fee == 1
    assert parser.select_metric(fees, "fastestFee") == 12
    assert parser.select_metric(fees, "economyFee") == 3

def test_parse_minimal_payload_and_integral_floats():
    fees = parser.parse_fee_payload({"fastestFee": 2.0, "halfHourFee": 2, "hourFee": 1})
    assert fees.fastest_fee == 2 and isinstance(fees.fastest_fee, int)
    assert fees.economy_fee is None
    with pytest.raises(DecodeError):
        parser.select_metric(fees, "minimumFee")

@pytest.mark.parametrize("m", [
    [],
    "fees",
    {"halfHourFee": 2, "hourFee": 1},
    {"fastestFee": "3", "halfHourFee": 2, "hourFee": 1},
    {"fastestFee": True, "halfHourFee": 2, "hourFee": 1},
    {"fastestFee": 2.5, "halfHourFee": 2, "hourFee": 1},
    {"fastestFee": -1, "halfHourFee": 2, "hourFee": 1},
    {"fastestFee": 3, "halfHourFee": 2, "hourFee": 1, "economyFee": "x"},
])
def test_parse_rejects_bad_payloads(m):
    with pytest.raises(DecodeError):
        parser.parse_fee_payload(m)

def test_select_unknown_field():
    fees = FeeData(fastest_fee=1, half_hour_fee=1, hour_fee=1)
    with pytest.raises(ValueError):
        parser.select_metric(fees, "slowestFee")
