"""Built-in plan templates.

These cover the most common intents so that a fresh tenant can run them
without asking the model for a plan first. ``seed_templates`` copies them
into a tenant's plan store.
"""

from typing import Optional

from plan_library.errors import PlanNotFoundError
from plan_library.models.enums import VariableType
from plan_library.models.plan import Plan
from plan_library.observability.logging import event_fields, get_logger
from plan_library.persistence.repository import PlanRepository
from plan_library.planning.builder import PlanBuilder


logger = get_logger(__name__)


def _fix_tests() -> Plan:
    return (
        PlanBuilder("code.fix_tests", "Fix failing tests in a codebase")
        .add_variable(
            "repo_path", VariableType.FILE_PATH, "Path to the repository", required=True
        )
        .add_variable(
            "test_pattern", VariableType.STRING, "Test pattern to run", default="all"
        )
        .add_step("code", "git_status", {"path": "{{repo_path}}"}, timeout=30)
        .add_step(
            "code",
            "run_tests",
            {"path": "{{repo_path}}", "pattern": "{{test_pattern}}"},
            timeout=300,
        )
        .add_step(
            "code",
            "analyze_failures",
            {"path": "{{repo_path}}"},
            depends=[2],
            timeout=120,
        )
        .build()
    )


def _analyze_repository() -> Plan:
    return (
        PlanBuilder("code.analyze", "Analyze a codebase structure and dependencies")
        .add_variable(
            "repo_path", VariableType.FILE_PATH, "Path to analyze", required=True
        )
        .add_step(
            "file", "list", {"path": "{{repo_path}}", "recursive": True}, timeout=60
        )
        .add_step(
            "code",
            "analyze_structure",
            {"path": "{{repo_path}}"},
            depends=[1],
            timeout=180,
        )
        .build()
    )


def _fetch_url() -> Plan:
    return (
        PlanBuilder("research.fetch_url", "Fetch and summarize a URL")
        .add_variable("url", VariableType.STRING, "URL to fetch", required=True)
        .add_step("research", "fetch_url", {"url": "{{url}}"}, timeout=60)
        .add_step(
            "research",
            "summarize",
            {"content": "{{previous_result}}"},
            depends=[1],
            timeout=60,
        )
        .build()
    )


def _search_replace() -> Plan:
    return (
        PlanBuilder("file.search_replace", "Search for text and replace in files")
        .add_variable(
            "path", VariableType.FILE_PATH, "File or directory path", required=True
        )
        .add_variable("search", VariableType.STRING, "Text to search for", required=True)
        .add_variable("replace", VariableType.STRING, "Replacement text", required=True)
        .add_step(
            "file", "search", {"path": "{{path}}", "pattern": "{{search}}"}, timeout=60
        )
        .add_step(
            "file",
            "replace",
            {"path": "{{path}}", "search": "{{search}}", "replace": "{{replace}}"},
            timeout=60,
        )
        .build()
    )


_CATALOGUE = {
    plan.intent: plan
    for plan in (_fix_tests(), _analyze_repository(), _fetch_url(), _search_replace())
}


def get_template(intent: str) -> Optional[Plan]:
    """Returns a private copy of the built-in template for an intent."""
    template = _CATALOGUE.get(intent)
    if template is None:
        return None
    return template.model_copy(deep=True)


def list_templates() -> list[str]:
    return list(_CATALOGUE)


def seed_templates(repository: PlanRepository, tenant_id: str) -> list[Plan]:
    """Stores every built-in template whose intent has no active plan yet.

    Args:
        repository: Plan store to seed.
        tenant_id: Tenant to seed.

    Returns:
        The plans that were stored.
    """
    stored: list[Plan] = []
    for intent in _CATALOGUE:
        try:
            repository.get_by_intent(tenant_id, intent)
            continue
        except PlanNotFoundError:
            pass
        plan = repository.store_plan(tenant_id, get_template(intent))
        logger.info(
            f"Seeded template plan for {intent}",
            extra=event_fields(
                "template.seeded", tenant_id=tenant_id, intent=intent, plan_id=plan.id
            ),
        )
        stored.append(plan)
    return stored
