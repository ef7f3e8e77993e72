"""Request orchestration.

The orchestrator turns a classified request into a response: it finds a
plan for the intent (a proven pattern first, then any stored plan, then a
freshly generated one), instantiates it with the request's variables, runs
it and renders the outcome as a reply.
"""

import json
import re
import threading
import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from plan_library.chat.adapter import PlanModel
from plan_library.errors import (
    PatternNotFoundError,
    PlanGenerationError,
    PlanNotFoundError,
    PlanValidationError,
)
from plan_library.execution.engine import ExecutionEngine
from plan_library.execution.subagents import SubagentRegistry
from plan_library.learning.learner import PatternLearner
from plan_library.learning.stats import is_reusable
from plan_library.models.api import Response, Status
from plan_library.models.enums import ExecutionStatus, LookupSource
from plan_library.models.execution import Execution
from plan_library.models.intent import Intent
from plan_library.models.pattern import Pattern
from plan_library.models.plan import Plan, Step, Variable
from plan_library.observability.logging import event_fields, get_logger
from plan_library.observability.metrics import PLAN_LOOKUPS_TOTAL
from plan_library.orchestration.guardrails import plan_allowed
from plan_library.orchestration.prompts import build_plan_prompt
from plan_library.persistence.locks import KeyedLocks
from plan_library.persistence.repository import PlanRepository
from plan_library.planning.instantiate import instantiate, resolve_variables
from plan_library.planning.validation import validate_plan


logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL)

InteractionHook = Callable[[Intent, str, str, Execution], None]


def strip_code_fence(text: str) -> str:
    """Removes a surrounding markdown code fence, if any."""
    text = text.strip()
    match = _CODE_FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text


def _known(item: Any, model: type[BaseModel]) -> Any:
    if not isinstance(item, dict):
        return item
    return {key: value for key, value in item.items() if key in model.model_fields}


def drop_unknown_fields(payload: Any) -> Any:
    """Strips keys a Plan does not declare from a generated plan payload.

    Models often annotate their answer with extra keys (step names, time
    estimates). Only the plan, its steps and its variables are filtered;
    anything that is not an object is left for validation to reject.
    """
    plan = _known(payload, Plan)
    if not isinstance(plan, dict):
        return plan
    for field, model in (("steps", Step), ("variables", Variable)):
        if isinstance(plan.get(field), list):
            plan[field] = [_known(item, model) for item in plan[field]]
    return plan


def format_response(execution: Execution) -> str:
    """Renders an execution as a reply to the user."""
    if execution.status == ExecutionStatus.FAILED:
        return f"I encountered an error: {execution.error}"

    parts = [
        f"• Step {result.step_id}: {result.data}"
        for result in execution.results
        if result.success and result.data is not None
    ]
    if not parts:
        return "Done!"
    return "Plan completed successfully:\n" + "\n".join(parts)


class Orchestrator:
    """Ties plan lookup, generation, instantiation and execution together.

    Args:
        tenant_id: Tenant every operation is scoped to.
        repository: The plan store.
        engine: Engine that runs instantiated plans.
        model: Model used to generate plans for unknown intents.
        learner: Learner whose threshold decides pattern reuse.
        interaction_hook: Called with the intent, message, reply and
            execution after every processed request.
        registry: Subagents available to plans; used in the generation
            prompt and the status report.
    """

    def __init__(
        self,
        tenant_id: str,
        repository: PlanRepository,
        engine: ExecutionEngine,
        model: Optional[PlanModel] = None,
        learner: Optional[PatternLearner] = None,
        interaction_hook: Optional[InteractionHook] = None,
        registry: Optional[SubagentRegistry] = None,
    ):
        self.tenant_id = tenant_id
        self.repository = repository
        self.engine = engine
        self.model = model
        self.learner = learner
        self.interaction_hook = interaction_hook
        self.registry = registry
        self._plan_locks = KeyedLocks()

    def _is_reusable(self, pattern: Pattern) -> bool:
        if self.learner is not None:
            return self.learner.is_reusable(pattern)
        return is_reusable(pattern)

    def _pattern_for(self, plan: Plan) -> Optional[Pattern]:
        try:
            return self.repository.get_pattern_for_plan(self.tenant_id, plan.id)
        except PatternNotFoundError:
            return None

    def _found(self, source: LookupSource, intent: Intent, plan: Plan) -> None:
        PLAN_LOOKUPS_TOTAL.labels(source=source.value).inc()
        logger.info(
            f"Using {source.value} plan for {intent.key}",
            extra=event_fields(
                "plan.resolved",
                tenant_id=self.tenant_id,
                intent=intent.key,
                plan_id=plan.id,
                source=source.value,
            ),
        )

    def get_or_create_plan(
        self, intent: Intent, message: str
    ) -> tuple[Plan, Optional[Pattern]]:
        """Finds or generates the plan for an intent.

        Concurrent callers for the same intent are serialised, so a plan is
        generated at most once.

        Returns:
            The stored plan and the pattern that will be credited with the
            outcome of running it.

        Raises:
            PlanNotFoundError: No plan is stored and no model is configured.
            PlanGenerationError: The model failed to produce a usable plan.
        """
        with self._plan_locks.lock_for((self.tenant_id, intent.key)):
            try:
                pattern = self.repository.get_best_pattern(self.tenant_id, intent.key)
            except PatternNotFoundError:
                pattern = None
            if pattern is not None and self._is_reusable(pattern):
                try:
                    plan = self.repository.get_by_id(self.tenant_id, pattern.plan_id)
                except PlanNotFoundError:
                    plan = None
                if plan is not None:
                    self._found(LookupSource.PATTERN, intent, plan)
                    return plan, pattern

            try:
                plan = self.repository.get_by_intent(self.tenant_id, intent.key)
            except PlanNotFoundError:
                plan = None
            if plan is not None:
                self._found(LookupSource.INTENT, intent, plan)
                return plan, self._pattern_for(plan)

            plan = self.generate_plan(intent, message)
            self._found(LookupSource.GENERATED, intent, plan)
            return plan, self._pattern_for(plan)

    def _subagent_lines(self) -> str:
        if self.registry is None:
            return ""
        lines = []
        for name in self.registry.names():
            capabilities = sorted(self.registry.get(name).capabilities)
            lines.append(f"- {name}: {', '.join(capabilities)}")
        return "\n".join(lines)

    def generate_plan(self, intent: Intent, message: str) -> Plan:
        """Asks the model for a new plan, validates and stores it.

        Raises:
            PlanNotFoundError: No model is configured.
            PlanGenerationError: The call failed, the answer is not a valid
                plan, or the plan was rejected by the guardrails.
        """
        if self.model is None:
            raise PlanNotFoundError(
                f"no plan found for intent {intent.key} and no model configured"
            )

        prompt = build_plan_prompt(intent.key, message, self._subagent_lines())
        try:
            response = self.model.generate(prompt, want_json=True)
        except Exception as e:
            raise PlanGenerationError(f"model call failed: {e}") from e

        try:
            payload = json.loads(strip_code_fence(response.text))
            plan = Plan.model_validate(drop_unknown_fields(payload))
        except (ValueError, ValidationError) as e:
            raise PlanGenerationError(f"failed to parse plan: {e}") from e

        plan.intent = intent.key
        plan.id = None
        plan.template_id = None
        try:
            validate_plan(plan)
        except PlanValidationError as e:
            raise PlanGenerationError(f"invalid plan generated: {e.detail}") from e

        if not plan_allowed(intent, message, plan):
            logger.warning(
                "Generated plan rejected by guardrails",
                extra=event_fields(
                    "plan.rejected", tenant_id=self.tenant_id, intent=intent.key
                ),
            )
            raise PlanGenerationError("plan rejected by guardrails")

        stored = self.repository.store_plan(self.tenant_id, plan)
        logger.info(
            f"Generated plan for {intent.key} with {len(stored.steps)} steps",
            extra=event_fields(
                "plan.generated",
                tenant_id=self.tenant_id,
                intent=intent.key,
                plan_id=stored.id,
                model=response.model or self.model.name,
                tokens_used=response.tokens_used,
            ),
        )
        return stored

    def process(
        self,
        intent: Intent,
        message: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Response:
        """Handles one classified request end to end.

        Args:
            intent: The classified intent, with extracted variables.
            message: The original user message.
            cancel_event: Set by the caller to abandon the run.

        Returns:
            The reply and the execution record.
        """
        started = time.monotonic()
        plan, pattern = self.get_or_create_plan(intent, message)

        values = resolve_variables(plan, intent.variables)
        instance = instantiate(plan, values)
        execution = self.engine.execute_plan(
            self.tenant_id,
            instance,
            variables=values,
            pattern_id=pattern.id if pattern else None,
            cancel_event=cancel_event,
        )
        reply = format_response(execution)

        if self.interaction_hook is not None:
            try:
                self.interaction_hook(intent, message, reply, execution)
            except Exception:
                logger.exception(
                    "Interaction hook failed",
                    extra=event_fields(
                        "interaction.hook_failed",
                        tenant_id=self.tenant_id,
                        execution_id=execution.id,
                    ),
                )

        return Response(
            intent=intent,
            message=reply,
            execution=execution,
            duration_ms=int((time.monotonic() - started) * 1000),
            tier=intent.tier,
        )

    def format_response(self, execution: Execution) -> str:
        return format_response(execution)

    def get_status(self) -> Status:
        return Status(
            tenant_id=self.tenant_id,
            plans_count=len(self.repository.list_patterns(self.tenant_id)),
            subagents=self.registry.names() if self.registry else [],
            model_available=self.model is not None and self.model.is_available(),
            model_name=self.model.name if self.model else "",
        )
