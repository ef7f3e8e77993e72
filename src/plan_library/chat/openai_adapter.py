"""OpenAI-based implementation of the plan-generation model.

Plans are requested through the Chat Completion API in JSON mode, so the
answer is a single JSON object that parses directly into a Plan.
"""

import os
from typing import Any, Optional

from openai import OpenAI
from openai.types.chat.chat_completion_message_param import (
    ChatCompletionMessageParam,
)

from plan_library.chat.adapter import ModelResponse, PlanModel
from plan_library.observability.logging import event_fields, get_logger
from plan_library.observability.metrics import LLM_TOKEN_USAGE_TOTAL
from plan_library.planning.costs import PRICE_PER_MILLION_TOKENS


logger = get_logger(__name__)


class OpenAIPlanModel(PlanModel):
    """Plan model backed by an OpenAI chat model."""

    def __init__(self, model_name: str = "gpt-4o-mini", client: Optional[Any] = None):
        """Initializes the OpenAI adapter.

        Args:
            model_name: The identifier of the OpenAI model to use.
                Defaults to 'gpt-4o-mini' unless overridden by the
                OPENAI_MODEL environment variable.
            client: Preconfigured client. By default one is built from the
                OPENAI_API_KEY and OPENAI_API_BASE environment variables.
        """
        api_key = os.environ.get("OPENAI_API_KEY")
        base_url = os.environ.get("OPENAI_API_BASE")

        self._configured = client is not None or bool(api_key)
        self.client = client or OpenAI(api_key=api_key or "unset", base_url=base_url)
        self.model_name = os.environ.get("OPENAI_MODEL", model_name)

    @property
    def name(self) -> str:
        return self.model_name

    def is_available(self) -> bool:
        return self._configured

    def generate(self, prompt: str, want_json: bool = False) -> ModelResponse:
        messages: list[ChatCompletionMessageParam] = [
            {"role": "user", "content": prompt}
        ]
        kwargs: dict[str, Any] = {}
        if want_json:
            kwargs["response_format"] = {"type": "json_object"}

        completion = self.client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            **kwargs,
        )

        text = completion.choices[0].message.content or ""
        tokens = 0
        if getattr(completion, "usage", None):
            tokens = completion.usage.total_tokens or 0
            LLM_TOKEN_USAGE_TOTAL.labels(model=self.model_name).inc(tokens)

        logger.debug(
            "Model call finished",
            extra=event_fields(
                "model.generated",
                model=self.model_name,
                tokens_used=tokens,
                want_json=want_json,
            ),
        )
        return ModelResponse(
            text=text,
            tokens_used=tokens,
            cost=tokens / 1_000_000 * PRICE_PER_MILLION_TOKENS,
            model=self.model_name,
        )
