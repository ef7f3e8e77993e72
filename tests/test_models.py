import pytest
from pydantic import ValidationError

from plan_library.models.enums import ExecutionStatus, VariableType
from plan_library.models.execution import Execution, StepResult
from plan_library.models.intent import Intent
from plan_library.models.pattern import Pattern
from plan_library.models.plan import Plan, Step, Variable
from plan_library.models.validation import PlanDiagnostic, ValidationReport


class TestModels:
    def test_step_defaults(self):
        step = Step(id=1, subagent="code", action="run_tests")
        assert step.input == {}
        assert step.depends == []
        assert step.timeout == 120

    def test_step_null_collections_become_empty(self):
        step = Step.model_validate(
            {"id": 1, "subagent": "code", "action": "x", "input": None, "depends": None}
        )
        assert step.input == {}
        assert step.depends == []

    def test_step_input_accepts_nested_json(self):
        step = Step(
            id=1,
            subagent="file",
            action="write",
            input={"path": "/a", "opts": {"mode": 644, "tags": ["x", 1.5, True, None]}},
        )
        assert step.input["opts"]["tags"][1] == 1.5

    def test_step_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            Step(id=1, subagent="code", action="x", retries=3)

    def test_variable_type_is_stored_as_value(self):
        variable = Variable(name="repo_path", type=VariableType.FILE_PATH)
        assert variable.type == "file_path"
        assert variable.required is False
        assert variable.default is None

    def test_variable_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            Variable(name="x", type="date")

    def test_plan_helpers(self):
        plan = Plan(
            intent="code.fix_tests",
            description="d",
            steps=[Step(id=1, subagent="code", action="a")],
            variables=[Variable(name="v")],
        )
        assert plan.get_step(1).action == "a"
        assert plan.get_step(2) is None
        assert plan.get_variable("v").name == "v"
        assert plan.get_variable("w") is None

    def test_plan_source_id(self):
        assert Plan(id="p1").source_id == "p1"
        assert Plan(template_id="p0").source_id == "p0"
        assert Plan().source_id is None

    def test_plan_json_round_trip_keeps_steps(self):
        plan = Plan(
            intent="i",
            description="d",
            steps=[Step(id=1, subagent="s", action="a", input={"k": "{{v}}"})],
        )
        restored = Plan.model_validate_json(plan.model_dump_json())
        assert restored == plan

    def test_execution_defaults(self):
        execution = Execution(tenant_id="t")
        assert execution.status == ExecutionStatus.RUNNING
        assert execution.started_at.tzinfo is not None
        assert execution.results == []
        assert not execution.is_terminal

    def test_execution_result_for(self):
        execution = Execution(
            tenant_id="t",
            results=[StepResult(step_id=1, success=True, data="x")],
        )
        assert execution.result_for(1).data == "x"
        assert execution.result_for(2) is None
        assert execution.result_for(0) is None

    def test_execution_status_assignment_is_validated(self):
        execution = Execution(tenant_id="t")
        execution.status = ExecutionStatus.COMPLETED
        assert execution.status == "completed"
        assert execution.is_terminal
        with pytest.raises(ValidationError):
            execution.status = "paused"

    def test_pattern_bounds(self):
        with pytest.raises(ValidationError):
            Pattern(id="p", tenant_id="t", intent="i", plan_id="x", success_rate=1.5)
        with pytest.raises(ValidationError):
            Pattern(id="p", tenant_id="t", intent="i", plan_id="x", usage_count=-1)

    def test_intent_key(self):
        assert Intent(category="code", subcategory="fix_tests").key == "code.fix_tests"
        assert Intent(category="chat").key == "chat"
        assert str(Intent(category="file", subcategory="search")) == "file.search"

    def test_validation_report_warnings(self):
        report = ValidationReport(
            diagnostics=[
                PlanDiagnostic(code="variable.unused", message="m"),
                PlanDiagnostic(code="variable.undeclared", message="m", severity="info"),
            ]
        )
        assert len(report.warnings) == 1
        assert not report.ok
        assert ValidationReport().ok
