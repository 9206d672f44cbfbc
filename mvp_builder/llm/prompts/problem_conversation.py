"""
Prompts for the problem-refinement conversation.

The founder answers clarifying questions about their problem one at a time.
After each answer the model either asks the next question or concludes with a
refined problem statement. When the answer limit is reached the conversation
is closed with a plain refinement prompt.
"""

from typing import Any, Dict, Optional, Sequence, Tuple

from mvp_builder.llm.prompts.stages import parse_stage_response


def _format_exchanges(exchanges: Sequence[Tuple[str, str]]) -> str:
    if not exchanges:
        return "(no previous questions)"
    return "\n".join(f"Q: {question}\nA: {answer}" for question, answer in exchanges)


def get_conversation_system_prompt() -> str:
    return """You are helping a founder refine a problem statement through conversation.
Based on the conversation so far, decide whether to ask one more clarifying
question or to provide the final refined problem statement.

Guidelines:
- Ask at most one question at a time, and only if an answer is vague
- When you have enough information, provide the refined problem statement
- The refined problem must incorporate insights from all answers

Respond with a single JSON object:
{"next_question": "Next clarifying question (if more information is needed)",
 "refined_problem": "Final refined problem statement (if ready to conclude)",
 "is_complete": true or false}"""


def get_conversation_user_prompt(
    original_problem: str, exchanges: Sequence[Tuple[str, str]]
) -> str:
    return (
        f'Original problem: "{original_problem}"\n\n'
        f"Conversation history:\n{_format_exchanges(exchanges)}\n\n"
        "Should I ask another question or provide the final refined problem statement?"
    )


def get_refinement_system_prompt() -> str:
    return """You are a business analyst. Based on the original problem statement and
the clarifying questions and answers, write one refined, specific problem
statement that names who struggles, when the pain occurs and what it costs.

Respond with just the refined problem statement, no additional text."""


def get_refinement_user_prompt(
    original_problem: str, exchanges: Sequence[Tuple[str, str]]
) -> str:
    return (
        f'Original problem: "{original_problem}"\n\n'
        f"Conversation history:\n{_format_exchanges(exchanges)}\n\n"
        "Provide the refined problem statement."
    )


def parse_conversation_response(response_text: str) -> Dict[str, Any]:
    """
    Parse the model's next-step decision.

    Returns:
        Dict with next_question (Optional[str]), refined_problem (Optional[str])
        and is_complete (bool). A response that marks itself complete without a
        refined problem is treated as incomplete.

    Raises:
        ValueError: If response is not a JSON object
    """
    data = parse_stage_response(response_text)

    next_question: Optional[str] = data.get("next_question") or data.get("nextQuestion")
    refined: Optional[str] = data.get("refined_problem") or data.get("refinedProblem")
    is_complete = bool(data.get("is_complete", data.get("isComplete", False)))

    if is_complete and not refined:
        is_complete = False
    if not is_complete and not next_question:
        raise ValueError("Conversation response has neither a question nor a refinement")

    return {
        "next_question": next_question if not is_complete else None,
        "refined_problem": refined if is_complete else None,
        "is_complete": is_complete,
    }
