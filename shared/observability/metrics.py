from prometheus_client import Counter, Histogram, Gauge

# Business Metrics
order_transitions_total = Counter(
    "sweetshop_order_transitions_total",
    "Order status transitions applied",
    ["operation", "to_status"] # Labels: operation='verify_payment', to_status='paid', etc.
)

order_transition_noops_total = Counter(
    "sweetshop_order_transition_noops_total",
    "Conditional updates that matched no row (replays, races)",
    ["operation"]
)

gateway_calls_total = Counter(
    "sweetshop_gateway_calls_total",
    "Payment gateway calls",
    ["operation", "outcome"] # Labels: outcome='success', 'error', 'timeout'
)

gateway_call_duration_seconds = Histogram(
    "sweetshop_gateway_call_duration_seconds",
    "Payment gateway call duration in seconds",
    ["operation"]
)

notifications_total = Counter(
    "sweetshop_notifications_total",
    "Notifications dispatched",
    ["audience", "template", "outcome"]
)

post_commit_hook_failures_total = Counter(
    "sweetshop_post_commit_hook_failures_total",
    "Post-commit hooks that failed and were swallowed",
    ["hook"]
)

refunds_in_flight = Gauge(
    "sweetshop_refunds_in_flight",
    "Refund calls currently awaiting the payment provider"
)
