"""Checks applied to model-generated plans before they are stored."""

from plan_library.models.intent import Intent
from plan_library.models.plan import Plan


EXPLICIT_SEARCH_TERMS = ("search", "look up", "google", "browse")


def plan_allowed(intent: Intent, message: str, plan: Plan) -> bool:
    """Whether a generated plan may be used for a request.

    Conversational requests must not trigger web research unless the user
    asked for a search explicitly.
    """
    text = message.lower()
    explicit_search = any(term in text for term in EXPLICIT_SEARCH_TERMS)
    if intent.category.startswith("chat") and not explicit_search:
        return all(step.subagent != "research" for step in plan.steps)
    return True
