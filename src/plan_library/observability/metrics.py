"""Prometheus metrics for plan lookup, execution and learning.

All collectors live on a dedicated registry so that embedding applications
can expose them next to their own metrics without name clashes.
"""

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


REGISTRY = CollectorRegistry()

PLAN_LOOKUPS_TOTAL = Counter(
    "plan_library_plan_lookups_total",
    "Plans resolved for incoming requests, by where they came from.",
    ["source"],
    registry=REGISTRY,
)

PLAN_EXECUTIONS_TOTAL = Counter(
    "plan_library_plan_executions_total",
    "Finished plan executions by terminal status.",
    ["status"],
    registry=REGISTRY,
)

STEP_EXECUTIONS_TOTAL = Counter(
    "plan_library_step_executions_total",
    "Executed plan steps by subagent and outcome.",
    ["subagent", "outcome"],
    registry=REGISTRY,
)

STEP_DURATION_SECONDS = Histogram(
    "plan_library_step_duration_seconds",
    "Wall-clock duration of plan steps.",
    ["subagent"],
    registry=REGISTRY,
)

PATTERN_UPDATES_TOTAL = Counter(
    "plan_library_pattern_updates_total",
    "Pattern statistic updates by outcome.",
    ["outcome"],
    registry=REGISTRY,
)

LLM_TOKEN_USAGE_TOTAL = Counter(
    "plan_library_llm_token_usage_total",
    "Tokens consumed by plan generation, by model.",
    ["model"],
    registry=REGISTRY,
)


def get_metrics_content() -> bytes:
    """Renders every plan-library metric in the Prometheus text format."""
    return generate_latest(REGISTRY)
