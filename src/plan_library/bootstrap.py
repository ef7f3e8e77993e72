"""Builds a ready-to-use orchestrator stack from LibrarySettings."""

from typing import Optional

from plan_library.chat.adapter import PlanModel
from plan_library.chat.openai_adapter import OpenAIPlanModel
from plan_library.config import LibrarySettings
from plan_library.execution.engine import EngineConfig, ExecutionEngine
from plan_library.execution.subagents import SubagentRegistry
from plan_library.learning.learner import PatternLearner
from plan_library.orchestration.orchestrator import InteractionHook, Orchestrator
from plan_library.persistence.repository import PlanRepository
from plan_library.persistence.sql_repository import SQLPlanRepository


def build_plan_model(settings: LibrarySettings) -> OpenAIPlanModel:
    return OpenAIPlanModel(model_name=settings.openai_model)


def build_engine(
    repository: PlanRepository,
    registry: SubagentRegistry,
    settings: LibrarySettings,
    learner: Optional[PatternLearner] = None,
) -> ExecutionEngine:
    config = EngineConfig(
        default_step_timeout_seconds=settings.default_step_timeout_seconds
    )
    return ExecutionEngine(repository, registry.dispatch, learner=learner, config=config)


def build_orchestrator(
    registry: SubagentRegistry,
    settings: Optional[LibrarySettings] = None,
    repository: Optional[PlanRepository] = None,
    model: Optional[PlanModel] = None,
    interaction_hook: Optional[InteractionHook] = None,
) -> Orchestrator:
    """Wires repository, learner, engine and orchestrator together.

    Args:
        registry: Subagents that execute plan steps.
        settings: Settings to use. Read from the environment when omitted.
        repository: Plan store. A SQLPlanRepository on
            ``settings.database_url`` is created when omitted.
        model: Model for plan generation. Without one, unknown intents
            raise PlanNotFoundError.
        interaction_hook: Optional callback invoked after each request.

    Returns:
        An orchestrator for ``settings.tenant_id``.
    """
    settings = settings or LibrarySettings.from_env()
    if repository is None:
        repository = SQLPlanRepository(settings.database_url)
    learner = PatternLearner(repository, threshold=settings.reuse_threshold)
    engine = build_engine(repository, registry, settings, learner=learner)
    return Orchestrator(
        settings.tenant_id,
        repository,
        engine,
        model=model,
        learner=learner,
        interaction_hook=interaction_hook,
        registry=registry,
    )
