"""
Prometheus metrics for the external control core.
"""
from prometheus_client import Counter, Gauge

CONTROL_MESSAGES = Counter(
    "zonewatch_control_messages_total",
    "Control messages accepted for processing",
    ["type"]  # MODE, RANGE, ZONES, SELECT, REGISTER_VIEWER, ...
)
CONTROL_DROPPED = Counter(
    "zonewatch_control_dropped_total",
    "Control messages dropped before reaching a session",
    ["reason"]  # malformed, unknown_type, unknown_session
)
CONTROL_BROADCASTS = Counter(
    "zonewatch_control_broadcasts_total",
    "Outbound control broadcasts",
    ["kind"]  # state, controllers, select
)
CONTROL_SESSIONS = Gauge(
    "zonewatch_control_sessions",
    "Control sessions currently held in memory"
)
CONTROL_CLIENTS = Gauge(
    "zonewatch_control_clients",
    "Sockets registered to control sessions",
    ["role"]  # viewer, controller
)
