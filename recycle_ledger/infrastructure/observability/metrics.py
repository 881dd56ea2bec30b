"""Prometheus metrics for monitoring settlements, redemptions and ledger contention"""

from prometheus_client import Counter, Histogram

# Completion metrics
completion_counter = Counter(
    "recycle_completion_total",
    "Appointment completion attempts",
    ["outcome"],  # completed | validation_error | not_found | conflict
)

credits_awarded_counter = Counter(
    "recycle_credits_awarded_total",
    "Credits awarded by completed appointments",
)

# Redemption metrics
claim_counter = Counter(
    "recycle_coupon_claim_total",
    "Coupon claim attempts",
    ["outcome"],  # claimed | insufficient_credits | not_found | conflict
)

credits_spent_counter = Counter(
    "recycle_credits_spent_total",
    "Credits debited by coupon claims",
)

# Ledger metrics
transaction_conflict_counter = Counter(
    "ledger_transaction_conflicts_total",
    "Optimistic ledger transaction conflicts",
    ["transaction"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_completion(outcome: str, credits_awarded: int = 0) -> None:
    """Record completion outcome and credits issued"""
    completion_counter.labels(outcome=outcome).inc()
    if credits_awarded > 0:
        credits_awarded_counter.inc(credits_awarded)


def record_claim(outcome: str, credit_cost: int = 0) -> None:
    """Record coupon claim outcome and credits spent"""
    claim_counter.labels(outcome=outcome).inc()
    if credit_cost > 0:
        credits_spent_counter.inc(credit_cost)
