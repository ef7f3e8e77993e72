from plan_library.models.plan import CostEstimate, Plan, Step


BASE_TOKENS_PER_STEP = 100
CHARS_PER_TOKEN = 4
TOKENS_PER_MAPPING_INPUT = 200
TOKENS_PER_LIST_ITEM = 50
# USD per one million tokens.
PRICE_PER_MILLION_TOKENS = 0.5


def estimate_step_tokens(step: Step) -> int:
    tokens = BASE_TOKENS_PER_STEP
    for value in step.input.values():
        if isinstance(value, str):
            tokens += len(value) // CHARS_PER_TOKEN
        elif isinstance(value, dict):
            tokens += TOKENS_PER_MAPPING_INPUT
        elif isinstance(value, list):
            tokens += TOKENS_PER_LIST_ITEM * len(value)
    return tokens


def estimate_cost(plan: Plan) -> CostEstimate:
    """Advisory estimate of what running a plan will cost.

    Never used to enforce anything; it only feeds plan summaries.
    """
    total_tokens = sum(estimate_step_tokens(step) for step in plan.steps)
    return CostEstimate(
        total_steps=len(plan.steps),
        estimated_tokens=total_tokens,
        estimated_cost=total_tokens / 1_000_000 * PRICE_PER_MILLION_TOKENS,
    )
