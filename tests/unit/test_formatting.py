from feewatch.alerts.formatting import render, render_pretty
from feewatch.utils.types import AlertEvent, Side


def _evt(side, metric, prev):
    return AlertEvent(side=side, metric=metric, threshold=2, previous=prev, ts=1700000000.0)


def test_render_down_crossing():
    text = render(_evt(Side.BELOW, 1, Side.ABOVE))
    assert "1 sat/vB" in text
    assert "at or below 2" in text


def test_render_up_crossing():
    text = render(_evt(Side.ABOVE, 9, Side.BELOW))
    assert "9 sat/vB" in text
    assert "above 2" in text


def test_render_pretty():
    text = render_pretty(_evt(Side.ABOVE, 9, Side.BELOW), "UTC")
    assert text.startswith("[FEES UP] 22:13:20 UTC ↑ 9 sat/vB > 2")
    assert text.endswith("was below")
