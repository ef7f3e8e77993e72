from plan_library.models.plan import Plan
from plan_library.planning.costs import estimate_cost


def format_plan(plan: Plan) -> str:
    """Renders a plan as a human-readable, multi-line summary."""
    lines = [f"Plan: {plan.intent}", f"Description: {plan.description}"]

    if plan.variables:
        lines.append("")
        lines.append("Variables:")
        for variable in plan.variables:
            required = " (required)" if variable.required else ""
            default = (
                f" [default: {variable.default}]"
                if variable.default is not None
                else ""
            )
            lines.append(f"  - {variable.name}: {variable.type}{required}{default}")

    lines.append("")
    lines.append("Steps:")
    for position, step in enumerate(plan.steps, start=1):
        line = f"  {position}. {step.subagent}.{step.action}"
        if step.timeout > 0:
            line += f" (timeout: {step.timeout}s)"
        if step.depends:
            line += f" [depends on: {', '.join(str(d) for d in step.depends)}]"
        lines.append(line)

    estimate = estimate_cost(plan)
    lines.append("")
    lines.append(
        f"Estimated: {estimate.estimated_tokens} tokens, "
        f"${estimate.estimated_cost:.4f}"
    )
    return "\n".join(lines)
