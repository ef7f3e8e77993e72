from plan_library.persistence.in_memory import InMemoryPlanRepository
from plan_library.planning.templates import get_template, list_templates, seed_templates


TENANT = "t1"


class TestTemplates:
    def test_catalogue(self):
        assert set(list_templates()) == {
            "code.fix_tests",
            "code.analyze",
            "research.fetch_url",
            "file.search_replace",
        }

    def test_unknown_template(self):
        assert get_template("chat.smalltalk") is None

    def test_fix_tests_shape(self):
        plan = get_template("code.fix_tests")
        assert [(s.subagent, s.action) for s in plan.steps] == [
            ("code", "git_status"),
            ("code", "run_tests"),
            ("code", "analyze_failures"),
        ]
        assert [s.timeout for s in plan.steps] == [30, 300, 120]
        assert plan.get_variable("repo_path").required
        assert plan.get_variable("test_pattern").default == "all"

    def test_get_template_returns_copies(self):
        first = get_template("code.analyze")
        first.steps[0].input["path"] = "/mutated"
        assert get_template("code.analyze").steps[0].input["path"] == "{{repo_path}}"


class TestSeedTemplates:
    def test_seed_stores_all_templates_once(self):
        repo = InMemoryPlanRepository()
        stored = seed_templates(repo, TENANT)
        assert {p.intent for p in stored} == set(list_templates())
        assert all(p.id for p in stored)
        assert len(repo.list_patterns(TENANT)) == len(stored)

        assert seed_templates(repo, TENANT) == []
        assert len(repo.list_plans(TENANT)) == len(stored)

    def test_seed_skips_intents_with_plans(self):
        repo = InMemoryPlanRepository()
        repo.store_plan(TENANT, get_template("code.fix_tests"))
        stored = seed_templates(repo, TENANT)
        assert "code.fix_tests" not in {p.intent for p in stored}
        assert len(stored) == len(list_templates()) - 1
