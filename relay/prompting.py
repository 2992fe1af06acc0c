"""
Prompting - Relay Module
Builds the fitness-advice prompt sent to the generation endpoint.
"""

import json
from string import Template
from typing import Any

ANALYSIS_PROMPT = Template(
    """Analyze the following user data and provide actionable fitness advice.
Respond ONLY in JSON with a single key "analysis".

User Data: $user_data
Exercise Data: $exercise_data

Example output:
{
  "analysis": "Your detailed fitness advice here."
}"""
)


def serialize_record(record: Any) -> str:
    """Compact, key-order preserving JSON for embedding in the prompt."""
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False)


def build_prompt(user_data: Any, exercise_data: Any) -> str:
    return ANALYSIS_PROMPT.substitute(
        user_data=serialize_record(user_data),
        exercise_data=serialize_record(exercise_data),
    )
