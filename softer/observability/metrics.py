"""Prometheus metrics for Softer.

Room lifecycle transitions, need claims and Lightward responses.
"""

from prometheus_client import Counter, Histogram

ROOM_TRANSITIONS = Counter(
    "softer_room_transitions_total",
    "Room lifecycle transitions applied",
    labelnames=["from_state", "event", "to_state"],
)

ROOM_TRANSITIONS_REJECTED = Counter(
    "softer_room_transitions_rejected_total",
    "Events ignored because the current state does not accept them",
    labelnames=["state", "event"],
)

NEED_CLAIMS = Counter(
    "softer_need_claims_total",
    "Need claim attempts by outcome",
    labelnames=["outcome"],
)

LIGHTWARD_RESPONSES = Counter(
    "softer_lightward_responses_total",
    "Lightward responses by interpreted signal",
    labelnames=["signal"],
)

LIGHTWARD_LATENCY = Histogram(
    "softer_lightward_latency_seconds",
    "Time spent waiting on the Lightward completion service",
    labelnames=["mode"],
    buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0, 80.0),
)

SYNC_NOTIFICATIONS = Counter(
    "softer_sync_notifications_total",
    "Change notifications applied to the local room cache",
    labelnames=["record_type", "change"],
)
