import pytest

from feewatch.alerts.alerter import AlerterConfig, ThresholdAlerter
from feewatch.utils.types import Side


def _events(threshold, metrics):
    a = ThresholdAlerter(threshold=threshold, poll_interval_s=1.0)
    return [a.observe(m, ts=1700000000.0 + i) for i, m in enumerate(metrics)]


@pytest.mark.parametrize("threshold,metric", [(0, 0), (0, 7), (5, 5), (5, 4), (5, 6), (2, 1000)])
def test_first_sample_is_silent(threshold, metric):
    a = ThresholdAlerter(threshold=threshold, poll_interval_s=1.0)
    assert a.state is Side.UNSET
    assert a.observe(metric) is None
    assert a.state is (Side.BELOW if metric <= threshold else Side.ABOVE)


def test_single_alert_per_crossing():
    evts = _events(5, [3, 8, 9, 12, 6, 7])
    fired = [i for i, e in enumerate(evts) if e is not None]
    assert fired == [1]
    assert evts[1].side is Side.ABOVE
    assert evts[1].previous is Side.BELOW


def test_oscillation_alerts_each_crossing():
    t = 10
    evts = _events(t, [t + 1, t - 1, t + 1])
    assert evts[0] is None
    assert evts[1].side is Side.BELOW and evts[1].metric == t - 1
    assert evts[2].side is Side.ABOVE and evts[2].metric == t + 1


def test_boundary_counts_as_below():
    t = 4
    down = _events(t, [t + 1, t])
    assert down[0] is None
    assert down[1] is not None and down[1].side is Side.BELOW

    up = _events(t, [t, t + 1])
    assert up[0] is None
    assert up[1] is not None and up[1].side is Side.ABOVE


def test_end_to_end_scenario():
    evts = _events(5, [10, 10, 3, 3, 6])
    summary = [(e.side, e.metric) if e else None for e in evts]
    assert summary == [None, None, (Side.BELOW, 3), None, (Side.ABOVE, 6)]


def test_event_carries_threshold_and_timestamp():
    a = ThresholdAlerter(threshold=2, poll_interval_s=1.0)
    a.observe(5, ts=1.0)
    evt = a.observe(1, ts=2.0)
    assert evt.threshold == 2
    assert evt.ts == 2.0
    assert evt.direction == "down"


def test_from_config_and_snapshot():
    a = ThresholdAlerter.from_config(AlerterConfig(threshold=7, poll_interval_s=30.0, fetch_on_start=True))
    assert (a.threshold, a.poll_interval_s, a.fetch_on_start) == (7, 30.0, True)

    snap = a.snapshot()
    assert snap.state is Side.UNSET and snap.last_metric is None

    a.observe(9)
    snap = a.snapshot()
    assert snap.state is Side.ABOVE
    assert snap.last_metric == 9
    # snapshots are copies, not live views
    a.observe(1)
    assert snap.state is Side.ABOVE
