"""Tests for Prometheus metrics definitions."""

from prometheus_client import REGISTRY

from softer.observability.metrics import (
    LIGHTWARD_RESPONSES,
    NEED_CLAIMS,
    ROOM_TRANSITIONS_REJECTED,
)


def _value(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetrics:
    def test_counters_increment_by_label(self) -> None:
        before = _value("softer_need_claims_total", {"outcome": "won"})
        NEED_CLAIMS.labels(outcome="won").inc()
        assert _value("softer_need_claims_total", {"outcome": "won"}) == before + 1

    def test_rejected_transitions_labelled_by_state_and_event(self) -> None:
        labels = {"state": "locked", "event": "message_sent"}
        before = _value("softer_room_transitions_rejected_total", labels)
        ROOM_TRANSITIONS_REJECTED.labels(**labels).inc()
        assert _value("softer_room_transitions_rejected_total", labels) == before + 1

    def test_signal_labels_accept_all_signals(self) -> None:
        for signal in ("speech", "yield", "depart", "horizon"):
            LIGHTWARD_RESPONSES.labels(signal=signal)
