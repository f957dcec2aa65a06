"""
Prometheus metrics for channel sync, payments, side effects, reminders and database operations.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Metric Types:
    - Counter: Cumulative metrics that only increase (e.g., total API requests)
    - Histogram: Observations bucketed by value (e.g., request latency)

Example:
    >>> from bnb_booking.metrics import sync_duration, records_reconciled
    >>> with sync_duration.labels(channel="smoobu").time():
    ...     result = sync_channel("smoobu")
    ...     records_reconciled.labels(channel="smoobu", outcome="synced").inc(result.synced)
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Channel Sync Metrics
# =============================================================================

sync_total = Counter(
    "bnb_channel_syncs_total",
    "Total number of channel sync runs (success and failure)",
    ["channel", "status"],
)
"""
Counter for channel sync runs.

Labels:
    channel: Channel manager name (beds24, smoobu)
    status: success or failure
"""

sync_duration = Histogram(
    "bnb_channel_sync_duration_seconds",
    "Duration of channel sync runs in seconds",
    ["channel"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, float("inf")),
)

records_reconciled = Counter(
    "bnb_records_reconciled_total",
    "Channel booking records processed by reconciliation",
    ["channel", "outcome"],
)
"""
Counter for reconciled records.

Labels:
    channel: Channel manager name
    outcome: synced, duplicate, unrecognized, invalid, error
"""

# =============================================================================
# Channel API Metrics
# =============================================================================

api_requests = Counter(
    "bnb_channel_api_requests_total",
    "Total channel manager API requests made",
    ["channel", "endpoint", "status_code"],
)

api_latency = Histogram(
    "bnb_channel_api_latency_seconds",
    "Channel manager API request latency in seconds",
    ["channel"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)

token_refreshes = Counter(
    "bnb_token_refreshes_total",
    "Total number of channel token refresh operations",
    ["kind", "status"],
)

# =============================================================================
# Payment and Side-Effect Metrics
# =============================================================================

payment_operations = Counter(
    "bnb_payment_operations_total",
    "Payment gateway operations",
    ["provider", "operation", "status"],
)
"""
Counter for payment gateway calls.

Labels:
    provider: Gateway name (stripe, manual)
    operation: charge, refund, status
    status: success or failure
"""

side_effect_failures = Counter(
    "bnb_side_effect_failures_total",
    "Best-effort side effects that failed after the booking state was committed",
    ["side_effect"],
)

booking_transitions = Counter(
    "bnb_booking_transitions_total",
    "Applied booking state transitions",
    ["event"],
)

# =============================================================================
# Database Metrics
# =============================================================================

db_operations = Counter(
    "bnb_db_operations_total",
    "Total database operations performed",
    ["operation", "table"],
)

# =============================================================================
# Guest Reminder Metrics
# =============================================================================

reminders_sent = Counter(
    "bnb_reminders_sent_total",
    "Stay reminder emails sent to guests",
    ["days_before", "status"],
)
