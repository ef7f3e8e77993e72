"""Prompt templates used for plan generation."""

DEFAULT_SUBAGENTS = """- code: For coding tasks (analyze, run_tests, git_op, explain)
- file: For file operations (read, write, search, list, delete)
- research: For web research (web_search, fetch_url, summarize)"""


PLAN_GENERATION_PROMPT = """You are a plan generator for an AI assistant.

Generate a JSON execution plan for the following request:

Intent: {intent}
User Message: {message}

Return ONLY a JSON object with this format:
{{
  "intent": "category.subcategory",
  "description": "Brief description of what the plan does",
  "steps": [
    {{
      "id": 1,
      "subagent": "subagent_name",
      "action": "action_name",
      "input": {{"key": "value"}},
      "depends": [],
      "timeout": 60
    }}
  ],
  "variables": [
    {{
      "name": "var_name",
      "type": "string|file_path|number",
      "description": "What this variable is for",
      "required": true,
      "default": "default_value"
    }}
  ]
}}

Step ids start at 1 and increase by one. A step may only depend on steps
with a lower id. Reference variables in step inputs as {{{{var_name}}}}.

Available subagents:
{subagents}

Respond with ONLY the JSON object."""


def build_plan_prompt(intent: str, message: str, subagents: str = "") -> str:
    """Renders the plan-generation prompt.

    Args:
        intent: Intent key the plan must serve.
        message: The user's message.
        subagents: One line per subagent with its actions. Defaults to the
            standard subagent set.

    Returns:
        The prompt text.
    """
    return PLAN_GENERATION_PROMPT.format(
        intent=intent,
        message=message,
        subagents=subagents or DEFAULT_SUBAGENTS,
    )
