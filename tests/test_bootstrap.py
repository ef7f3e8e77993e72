import time
from unittest.mock import patch

import pytest

from plan_library.bootstrap import build_engine, build_orchestrator, build_plan_model
from plan_library.config import LibrarySettings
from plan_library.models.intent import Intent
from plan_library.persistence.in_memory import InMemoryPlanRepository
from plan_library.persistence.sql_repository import SQLPlanRepository
from plan_library.planning.templates import get_template


TENANT = "boot-tenant"


def _settings(**env):
    return LibrarySettings.from_env(dict({"PLAN_LIBRARY_TENANT": TENANT}, **env))


def _intent():
    return Intent(category="code", subcategory="fix_tests")


class TestReuseThreshold:
    @pytest.fixture
    def plans(self):
        # An older plan at 80% success and an untried newer one.
        repo = InMemoryPlanRepository()
        proven = repo.store_plan(TENANT, get_template("code.fix_tests"))
        pattern = repo.get_pattern_for_plan(TENANT, proven.id)
        for _ in range(4):
            repo.record_success(TENANT, pattern.id)
        repo.record_failure(TENANT, pattern.id)
        time.sleep(0.002)
        newer = repo.store_plan(TENANT, get_template("code.fix_tests"))
        return repo, proven, newer

    def test_default_threshold_reuses_pattern(self, plans, registry):
        repo, proven, _ = plans
        orchestrator = build_orchestrator(registry, settings=_settings(), repository=repo)
        plan, _ = orchestrator.get_or_create_plan(_intent(), "fix")
        assert orchestrator.learner.threshold == 0.7
        assert plan.id == proven.id

    def test_env_threshold_changes_reuse(self, plans, registry):
        repo, _, newer = plans
        settings = _settings(PLAN_REUSE_THRESHOLD="0.9")
        orchestrator = build_orchestrator(registry, settings=settings, repository=repo)
        plan, _ = orchestrator.get_or_create_plan(_intent(), "fix")
        assert orchestrator.learner.threshold == 0.9
        assert plan.id == newer.id


class TestBuildOrchestrator:
    def test_wires_settings(self, registry):
        settings = _settings(DATABASE_URL="sqlite:///:memory:", DEFAULT_STEP_TIMEOUT="12")
        orchestrator = build_orchestrator(registry, settings=settings)

        assert orchestrator.tenant_id == TENANT
        assert isinstance(orchestrator.repository, SQLPlanRepository)
        assert orchestrator.engine.repository is orchestrator.repository
        assert orchestrator.engine.learner is orchestrator.learner
        assert orchestrator.engine.config.default_step_timeout_seconds == 12.0
        assert orchestrator.registry is registry
        assert orchestrator.model is None

    def test_reads_environment_when_no_settings(self, monkeypatch, registry):
        monkeypatch.setenv("PLAN_LIBRARY_TENANT", "env-tenant")
        monkeypatch.setenv("DEFAULT_STEP_TIMEOUT", "7")
        orchestrator = build_orchestrator(registry, repository=InMemoryPlanRepository())
        assert orchestrator.tenant_id == "env-tenant"
        assert orchestrator.engine.config.default_step_timeout_seconds == 7.0

    def test_build_engine_default_timeout(self, registry):
        engine = build_engine(InMemoryPlanRepository(), registry, LibrarySettings())
        assert engine.config.default_step_timeout_seconds == 300.0
        assert engine.learner is None


class TestBuildPlanModel:
    def test_uses_configured_model(self, monkeypatch):
        monkeypatch.delenv("OPENAI_MODEL", raising=False)
        with patch("plan_library.chat.openai_adapter.OpenAI"):
            model = build_plan_model(LibrarySettings(openai_model="gpt-4o"))
        assert model.name == "gpt-4o"

    def test_default_model(self, monkeypatch):
        monkeypatch.delenv("OPENAI_MODEL", raising=False)
        with patch("plan_library.chat.openai_adapter.OpenAI"):
            model = build_plan_model(LibrarySettings.from_env({}))
        assert model.name == "gpt-4o-mini"
