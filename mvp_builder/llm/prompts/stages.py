"""
Prompts for stage artifact generation.

One system prompt per stage, built deterministically from the stage catalog:
the stage concept, its rubric, the instructions and the exact JSON shape the
model must return. The user prompt carries the founder's input and the
artifacts of the stages this one depends on.

All prompts produce JSON for structured parsing.
"""

import json
import re
from typing import Any, Dict, Mapping

from pydantic import BaseModel

from mvp_builder.stages.catalog import StageDef

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_BRACE_SPAN_RE = re.compile(r"\{[\s\S]*\}")


def get_stage_system_prompt(stage_def: StageDef) -> str:
    """
    Get system prompt for generating a stage artifact.

    Args:
        stage_def: Catalog entry of the stage being generated

    Returns:
        System prompt string for LLM
    """
    rubric = "\n".join(
        f"- {criterion.label}: {criterion.description}"
        for criterion in stage_def.rubric
    )
    output_shape = json.dumps(stage_def.output_spec, indent=2)

    sections = [
        "You are an experienced startup advisor guiding a first-time founder "
        "through building a minimum viable product.",
        f"## Current step: {stage_def.title}\n\n{stage_def.concept}",
    ]
    if stage_def.instructions:
        sections.append(f"## Task\n\n{stage_def.instructions}")
    if rubric:
        sections.append(f"## Quality criteria\n\n{rubric}")
    if stage_def.example_good:
        sections.append(
            f"## Examples\n\nStrong: {stage_def.example_good}\n"
            f"Weak: {stage_def.example_bad}"
        )
    sections.append(
        "## Output format\n\n"
        "Respond with a single JSON object and nothing else, using exactly "
        f"this structure:\n{output_shape}"
    )
    return "\n\n".join(sections)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude={"kind"})
    return value


def get_stage_user_prompt(
    stage_def: StageDef,
    user_input: Mapping[str, Any],
    prior_artifacts: Mapping[str, Any],
) -> str:
    """
    Get user prompt for generating a stage artifact.

    Args:
        stage_def: Catalog entry of the stage being generated
        user_input: The founder's answers keyed by field id
        prior_artifacts: Artifacts of dependency stages keyed by artifact key

    Returns:
        User prompt string for LLM
    """
    parts = []
    if prior_artifacts:
        context = {key: _to_jsonable(value) for key, value in prior_artifacts.items()}
        parts.append(
            "Work from what the founder has established so far:\n"
            f"{json.dumps(context, indent=2, default=str)}"
        )

    answers = {key: value for key, value in user_input.items() if value not in ("", None)}
    if answers:
        parts.append(
            f"Founder input for {stage_def.title}:\n"
            f"{json.dumps(answers, indent=2, default=str)}"
        )
    else:
        parts.append(f"The founder gave no extra input for {stage_def.title}.")

    parts.append("Return the JSON object now.")
    return "\n\n".join(parts)


def parse_stage_response(response_text: str) -> Dict[str, Any]:
    """
    Parse a JSON object out of an LLM response.

    Tries, in order: the whole text, the first fenced code block, then the
    span from the first ``{`` to the last ``}``.

    Args:
        response_text: Raw LLM response, possibly wrapped in markdown

    Returns:
        Parsed JSON object

    Raises:
        ValueError: If no JSON object can be recovered
    """
    text = (response_text or "").strip()
    if not text:
        raise ValueError("Empty LLM response")

    candidates = [text]
    fence = _FENCE_RE.search(text)
    if fence:
        candidates.append(fence.group(1).strip())
    span = _BRACE_SPAN_RE.search(text)
    if span:
        candidates.append(span.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    raise ValueError(f"No JSON object found in LLM response ({len(text)} chars)")
