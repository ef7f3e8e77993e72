from plan_library.models.enums import VariableType
from plan_library.planning.builder import PlanBuilder, build_plan


class TestPlanBuilder:
    def test_steps_get_sequential_ids(self):
        plan = (
            PlanBuilder("code.fix_tests", "Fix tests")
            .add_step("code", "git_status")
            .add_step("code", "run_tests", {"path": "{{repo_path}}"}, timeout=300)
            .add_step("code", "analyze_failures", depends=[2])
            .build()
        )
        assert [s.id for s in plan.steps] == [1, 2, 3]
        assert plan.steps[1].timeout == 300
        assert plan.steps[2].depends == [2]
        assert plan.steps[0].timeout == 120
        assert plan.id is None

    def test_add_variable(self):
        plan = (
            PlanBuilder("i", "d")
            .add_variable("repo_path", VariableType.FILE_PATH, "Repo", required=True)
            .add_variable("pattern", default="all")
            .build()
        )
        assert plan.variables[0].type == "file_path"
        assert plan.variables[0].required is True
        assert plan.variables[1].default == "all"

    def test_build_returns_independent_copies(self):
        builder = PlanBuilder("i", "d").add_step("s", "a", {"k": "v"})
        first = builder.build()
        first.steps[0].input["k"] = "changed"
        builder.add_step("s", "b")
        second = builder.build()

        assert second.steps[0].input["k"] == "v"
        assert len(first.steps) == 1
        assert len(second.steps) == 2

    def test_build_does_not_validate(self):
        plan = PlanBuilder("", "").add_step("", "", depends=[5]).build()
        assert plan.steps[0].depends == [5]


class TestBuildPlan:
    def test_build_plan_from_mappings(self):
        plan = build_plan(
            "file.search_replace",
            "Search and replace",
            [
                {"subagent": "file", "action": "search", "input": {"path": "{{path}}"}},
                {"subagent": "file", "action": "replace", "depends": [1]},
            ],
            variables=[{"name": "path", "type": "file_path", "required": True}],
        )
        assert [s.id for s in plan.steps] == [1, 2]
        assert plan.steps[1].depends == [1]
        assert plan.get_variable("path").required
