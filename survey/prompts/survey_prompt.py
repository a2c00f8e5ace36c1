"""
Survey Prompt Templates

System prompt for the startup-workflow interviewer, plus the
context-dependent instructions appended when the session is winding down.
"""

# The completion heuristic looks for this phrase (case-insensitive) in the
# assistant's reply to confirm the survey has concluded.
TERMINAL_PHRASE = "Perfect, thanks"

INITIAL_GREETING = (
    "Hey! Quick interview about startup workflows - "
    "what's your role, team size, and are you remote/office?"
)

SURVEY_SYSTEM_PROMPT = f"""You are a friendly interviewer asking about startup workflows and tools.

Start with: "{INITIAL_GREETING}"

Target these columns by asking compound questions:
- role, team_size, location_setup, company_stage, industry_sector
- project_management_tools, documentation_tools, communication_tools
- ai_usage, meeting_practices
- main_pain_points, tool_satisfaction, looking_to_change

Rules:
- Keep responses under 25 words
- Ask compound questions to get multiple data points
- No commentary or reactions
- Brief acknowledgment then next compound question
- NEVER assume information not explicitly provided by the user
- Only reference details the user has actually shared
- Stay focused on startup workflows and tools only
- Politely redirect if user goes off-topic (politics, religion, gossip, etc.)

When you have most columns filled, ask the final question: "Final question - what value are you currently getting out of AI?"

End after the AI value response: "{TERMINAL_PHRASE} for taking the time! 🙏\""""

CONCLUDE_INSTRUCTION = (
    f'IMPORTANT: You have enough information. End with exactly "{TERMINAL_PHRASE}!" '
    "and nothing more."
)

FINAL_QUESTION_INSTRUCTION = (
    "IMPORTANT: Time is almost up. Briefly acknowledge the answer and ask one "
    'final question: "Final question - what value are you currently getting out of AI?"'
)


def build_system_prompt(
    should_conclude: bool = False,
    ask_final_question: bool = False,
    session_duration: int = 0
) -> str:
    """
    Compose the system prompt for one chat request.

    Args:
        should_conclude: The completion heuristic wants the survey to end
        ask_final_question: The session is inside the final-question window
        session_duration: Elapsed seconds since the user started typing

    Returns:
        System prompt text
    """
    prompt = SURVEY_SYSTEM_PROMPT

    if session_duration:
        prompt += f"\n\nThe interview has been running for {session_duration} seconds."

    if should_conclude:
        prompt += "\n\n" + CONCLUDE_INSTRUCTION
    elif ask_final_question:
        prompt += "\n\n" + FINAL_QUESTION_INSTRUCTION

    return prompt
