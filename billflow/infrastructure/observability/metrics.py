"""Prometheus metrics for monitoring autopay settlement, bill promotion and balance drift"""

from prometheus_client import Counter, Histogram
from billflow.domain.models import PromotionSummary, SettlementSummary

# Batch metrics
settlement_counter = Counter(
    "billflow_autopay_settlements_total",
    "Bills processed by the autopay settlement batch",
    ["outcome"],  # settled | failed
)

settlement_failure_step_counter = Counter(
    "billflow_autopay_failures_total",
    "Autopay settlement failures by failing step",
    ["step"],  # insert_transaction | mark_paid | spawn_next | ...
)

promotion_counter = Counter(
    "billflow_pending_promotions_total",
    "Bills promoted from upcoming to pending",
)

batch_duration_histogram = Histogram(
    "billflow_batch_duration_seconds",
    "Wall time of a batch run",
    ["batch"],  # autopay | promotion
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

batch_fetch_failures_counter = Counter(
    "billflow_batch_fetch_failures_total",
    "Batch runs aborted because the due bill set could not be read or updated",
    ["batch"],
)

# Ledger metrics
balance_recompute_counter = Counter(
    "billflow_balance_recomputations_total",
    "Account balances rebuilt from transaction history",
)

balance_drift_counter = Counter(
    "billflow_balance_drift_total",
    "Reconciliations where the cached balance disagreed with the ledger",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_settlement(summary: SettlementSummary) -> None:
    """Record settlement outcomes, breaking failures down by the step that failed"""
    settlement_counter.labels(outcome="settled").inc(summary.processed)
    settlement_counter.labels(outcome="failed").inc(summary.errors)

    for failure in summary.failures:
        settlement_failure_step_counter.labels(step=failure.step).inc()


def record_promotion(summary: PromotionSummary) -> None:
    promotion_counter.inc(summary.updated)
