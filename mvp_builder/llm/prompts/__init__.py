# noqa
from mvp_builder.llm.prompts.stages import (
    get_stage_system_prompt,
    get_stage_user_prompt,
    parse_stage_response,
)
from mvp_builder.llm.prompts.problem_conversation import (
    get_conversation_system_prompt,
    get_conversation_user_prompt,
    get_refinement_system_prompt,
    get_refinement_user_prompt,
    parse_conversation_response,
)

__all__ = [
    "get_stage_system_prompt",
    "get_stage_user_prompt",
    "parse_stage_response",
    "get_conversation_system_prompt",
    "get_conversation_user_prompt",
    "get_refinement_system_prompt",
    "get_refinement_user_prompt",
    "parse_conversation_response",
]
