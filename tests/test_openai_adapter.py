import json
from unittest.mock import MagicMock, patch

import pytest

from plan_library.chat.openai_adapter import OpenAIPlanModel
from plan_library.observability.metrics import REGISTRY


def _completion(content, total_tokens=None):
    completion = MagicMock()
    completion.choices = [MagicMock(message=MagicMock(content=content))]
    if total_tokens is None:
        completion.usage = None
    else:
        completion.usage = MagicMock(total_tokens=total_tokens)
    return completion


@pytest.fixture
def adapter(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    with patch("plan_library.chat.openai_adapter.OpenAI"):
        return OpenAIPlanModel()


def test_adapter_initialization(monkeypatch):
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    with patch("plan_library.chat.openai_adapter.OpenAI") as mock_openai:
        adapter = OpenAIPlanModel(model_name="test-model")
    assert adapter.model_name == "test-model"
    assert adapter.name == "test-model"
    assert mock_openai.called


def test_model_env_override(monkeypatch):
    monkeypatch.setenv("OPENAI_MODEL", "gpt-env")
    adapter = OpenAIPlanModel(model_name="test-model", client=MagicMock())
    assert adapter.model_name == "gpt-env"


def test_availability(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with patch("plan_library.chat.openai_adapter.OpenAI"):
        assert not OpenAIPlanModel().is_available()
    assert OpenAIPlanModel(client=MagicMock()).is_available()


def test_generate_json(adapter):
    plan = {"intent": "x.y", "description": "d", "steps": []}
    adapter.client.chat.completions.create.return_value = _completion(json.dumps(plan), 1000)
    before = REGISTRY.get_sample_value(
        "plan_library_llm_token_usage_total", {"model": "gpt-4o-mini"}
    ) or 0.0

    response = adapter.generate("make a plan", want_json=True)

    assert json.loads(response.text) == plan
    assert response.tokens_used == 1000
    assert response.cost == pytest.approx(1000 / 1_000_000 * 0.5)
    assert response.model == "gpt-4o-mini"

    kwargs = adapter.client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["messages"] == [{"role": "user", "content": "make a plan"}]
    assert kwargs["response_format"] == {"type": "json_object"}

    after = REGISTRY.get_sample_value(
        "plan_library_llm_token_usage_total", {"model": "gpt-4o-mini"}
    )
    assert after == before + 1000


def test_generate_text_without_usage(adapter):
    adapter.client.chat.completions.create.return_value = _completion(None)

    response = adapter.generate("hello")

    assert response.text == ""
    assert response.tokens_used == 0
    assert response.cost == 0.0
    assert "response_format" not in adapter.client.chat.completions.create.call_args.kwargs


def test_generate_propagates_errors(adapter):
    adapter.client.chat.completions.create.side_effect = Exception("API Down")
    with pytest.raises(Exception, match="API Down"):
        adapter.generate("hi")
