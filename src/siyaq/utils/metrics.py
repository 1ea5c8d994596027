"""
Prometheus metrics for Siyaq.

Defines custom metrics for the context layer and the model workflows.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# Use standard Prometheus naming conventions: namespace_subsystem_name_unit
NAMESPACE = "siyaq"


# ============================================================================
# Context Window Metrics
# ============================================================================

context_optimizations_total = Counter(
    f"{NAMESPACE}_context_optimizations_total",
    "Context optimizations by outcome",
    ["outcome"],  # "unchanged", "trimmed", "emergency"
)

context_tokens = Histogram(
    f"{NAMESPACE}_context_tokens",
    "Estimated tokens of context plus incoming message before trimming",
    buckets=(250, 500, 1000, 2000, 4000, 6000, 8000, 16000, 32000),
)

summarizer_requests_total = Counter(
    f"{NAMESPACE}_summarizer_requests_total",
    "Summaries obtained for trimmed history",
    ["status"],  # "success", "error", "cache_hit", "fallback"
)

summarizer_duration_seconds = Histogram(
    f"{NAMESPACE}_summarizer_duration_seconds",
    "Summarizer service round-trip time in seconds",
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


# ============================================================================
# Workflow Metrics
# ============================================================================

workflow_requests_total = Counter(
    f"{NAMESPACE}_workflow_requests_total",
    "Orchestrated chat requests by request type and result",
    ["request_type", "result"],  # result: "complete", "partial", "failed"
)

stage_duration_seconds = Histogram(
    f"{NAMESPACE}_stage_duration_seconds",
    "Model stage execution duration in seconds",
    ["stage", "model"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

stage_failures_total = Counter(
    f"{NAMESPACE}_stage_failures_total",
    "Model stage failures",
    ["stage", "model", "reason"],  # reason: "timeout", "configuration", "error"
)

model_tokens_total = Counter(
    f"{NAMESPACE}_model_tokens_total",
    "Tokens consumed by model calls",
    ["model", "type"],  # type values: "prompt", "completion"
)
