import pytest

from plan_library.errors import MissingVariableError, PlanValidationError
from plan_library.models.enums import VariableType
from plan_library.planning.builder import PlanBuilder
from plan_library.planning.instantiate import (
    fill_variables,
    find_placeholders,
    instantiate,
    replace_placeholders,
    resolve_variables,
)
from plan_library.planning.templates import get_template


@pytest.fixture
def template():
    plan = (
        PlanBuilder("file.search_replace", "Search and replace")
        .add_variable("path", VariableType.FILE_PATH, required=True)
        .add_variable("search", required=True)
        .add_variable("replace", default="")
        .add_step(
            "file",
            "replace",
            {
                "path": "{{path}}",
                "edits": [{"from": "{{search}}", "to": "{{replace}}"}],
                "message": "replace {{search}} in {{path}}",
                "count": 3,
            },
        )
        .build()
    )
    plan.id = "plan-1"
    return plan


class TestReplacePlaceholders:
    def test_known_names_are_substituted(self):
        assert replace_placeholders("cd {{dir}} && ls", {"dir": "/tmp"}) == "cd /tmp && ls"

    def test_unknown_names_are_left_intact(self):
        assert replace_placeholders("{{a}}-{{b}}", {"a": "1"}) == "1-{{b}}"

    def test_non_word_placeholders_are_ignored(self):
        assert replace_placeholders("{{a-b}} {{ a }}", {"a": "x"}) == "{{a-b}} {{ a }}"

    def test_fill_variables_recurses(self):
        value = {"a": ["{{x}}", {"b": "{{x}}{{x}}"}], "n": 1, "f": None}
        assert fill_variables(value, {"x": "y"}) == {
            "a": ["y", {"b": "yy"}],
            "n": 1,
            "f": None,
        }

    def test_find_placeholders_recurses(self):
        value = {"a": ["{{x}}", {"b": "{{y}} {{z}}"}], "n": 2}
        assert find_placeholders(value) == {"x", "y", "z"}


class TestInstantiate:
    def test_substitutes_nested_values(self, template):
        plan = instantiate(template, {"path": "/src", "search": "foo", "replace": "bar"})
        step_input = plan.steps[0].input
        assert step_input["path"] == "/src"
        assert step_input["edits"] == [{"from": "foo", "to": "bar"}]
        assert step_input["message"] == "replace foo in /src"
        assert step_input["count"] == 3

    def test_identity_is_reset(self, template):
        plan = instantiate(template, {"path": "/src", "search": "foo"})
        assert plan.id is None
        assert plan.created_at is None
        assert plan.template_id == "plan-1"

    def test_template_is_not_modified(self, template):
        instantiate(template, {"path": "/src", "search": "foo"})
        assert template.steps[0].input["path"] == "{{path}}"
        assert template.id == "plan-1"

    def test_is_idempotent(self, template):
        values = {"path": "/src", "search": "foo", "replace": "bar"}
        assert instantiate(template, values) == instantiate(template, values)

    def test_unsupplied_placeholders_stay_literal(self, template):
        plan = instantiate(template, {"path": "/src", "search": "foo"})
        assert plan.steps[0].input["edits"] == [{"from": "foo", "to": "{{replace}}"}]

    def test_missing_required_variable(self, template):
        with pytest.raises(MissingVariableError) as exc_info:
            instantiate(template, {"path": "/src"})
        assert exc_info.value.variable == "search"
        assert exc_info.value.code == "variable.missing"
        assert isinstance(exc_info.value, PlanValidationError)

    def test_instance_of_instance_keeps_source(self, template):
        first = instantiate(template, {"path": "/src", "search": "foo"})
        second = instantiate(first, {"path": "/src", "search": "foo"})
        assert second.template_id == "plan-1"

    def test_fix_tests_template(self):
        template = get_template("code.fix_tests")
        values = resolve_variables(template, {"repo_path": "/tmp/repo"})
        plan = instantiate(template, values)

        assert plan.steps[0].input == {"path": "/tmp/repo"}
        assert plan.steps[1].input == {"path": "/tmp/repo", "pattern": "all"}
        for step in plan.steps:
            assert not find_placeholders(step.input)


class TestResolveVariables:
    def test_supplied_values_override_defaults(self, template):
        values = resolve_variables(template, {"replace": "baz", "extra": "1"})
        assert values == {"replace": "baz", "extra": "1"}

    def test_defaults_are_stringified(self):
        plan = PlanBuilder("i", "d").add_variable("n", VariableType.NUMBER, default=3).build()
        assert resolve_variables(plan) == {"n": "3"}

    def test_non_string_defaults_render_as_json(self):
        plan = (
            PlanBuilder("i", "d")
            .add_variable("dry_run", default=True)
            .add_variable("ratio", VariableType.NUMBER, default=5.0)
            .add_variable("globs", default=["*.py", "*.md"])
            .add_variable("opts", default={"depth": 2})
            .add_variable("name", default="main")
            .build()
        )
        assert resolve_variables(plan) == {
            "dry_run": "true",
            "ratio": "5.0",
            "globs": '["*.py", "*.md"]',
            "opts": '{"depth": 2}',
            "name": "main",
        }

    def test_false_default_is_kept(self):
        plan = PlanBuilder("i", "d").add_variable("force", default=False).build()
        assert resolve_variables(plan) == {"force": "false"}
