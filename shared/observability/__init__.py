from .setup import setup_observability
from .metrics import (
    order_transitions_total,
    order_transition_noops_total,
    gateway_calls_total,
    gateway_call_duration_seconds,
    notifications_total,
    post_commit_hook_failures_total,
    refunds_in_flight
)
