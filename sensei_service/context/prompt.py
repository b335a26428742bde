"""Prompt assembly for the completion call.

The system part always starts with the agent persona and the user part
always ends with the student's message; everything else sits between them
in a fixed order.
"""

from typing import NamedTuple, Optional

from ..errors import PersonaError
from ..models.agents import AgentProfile

HISTORY_HEADER = "[Conversation so far]"
HISTORY_INSTRUCTIONS = (
    "[Important]\n"
    "- Stay consistent with the conversation above.\n"
    "- Build on what the student already told you and stay close to their situation.\n"
    "- Do not repeat earlier questions or answers; continue the conversation naturally.\n"
    "- Quote earlier parts of the conversation when it makes your advice more concrete."
)
NEW_MESSAGE_HEADER = "[New message]"
LENGTH_HEADER = "[Response length control]"
LENGTH_FOOTER = (
    "[Important]\n"
    "Follow the instruction above and reply at a length that suits the content, "
    "neither too long nor too short."
)

CATEGORY_DIRECTIVES = {
    "career": (
        "Answer the following as career guidance.\n"
        "- Respect the student's goals and dreams while giving realistic advice\n"
        "- Explain concrete schools or occupations in detail\n"
        "- Take the student's aptitude and interests into account\n"
        "- Suggest specific preparation they can start now"
    ),
    "study": (
        "Answer the following as study advice.\n"
        "- Suggest effective study methods and habits\n"
        "- Give concrete advice for overcoming weak subjects\n"
        "- Explain how to stay motivated\n"
        "- Help with time management and planning"
    ),
    "relationships": (
        "Answer the following as advice about relationships.\n"
        "- Handle worries about friends, family and romance\n"
        "- Offer tips on communication\n"
        "- Suggest ways to relieve stress and look after themselves\n"
        "- Understand the other person's feelings and propose constructive solutions"
    ),
}

MODE_DIRECTIVES = {
    "detailed": (
        "[Answer style: detailed]\n"
        "- Explain thoroughly, roughly 800-1500 characters\n"
        "- Give several concrete examples\n"
        "- Walk through steps and processes carefully\n"
        "- Include background and reasons"
    ),
    "quick": (
        "[Answer style: quick]\n"
        "- Answer briefly, roughly 200-400 characters\n"
        "- Focus on the key points\n"
        "- Prefer advice that can be acted on right away"
    ),
    "encouraging": (
        "[Answer style: encouraging]\n"
        "- Answer warmly, roughly 400-700 characters\n"
        "- Empathise with the student's feelings\n"
        "- Use positive, hopeful language and recognise their effort"
    ),
    "normal": (
        "[Answer style: normal]\n"
        "- Answer in a balanced way, roughly 400-800 characters\n"
        "- Give practical advice in friendly, easy-to-follow language\n"
        "- Use concrete examples where they help"
    ),
}

PERSONALITY_SECTIONS = (
    ("core", "Core values and teaching philosophy"),
    ("challenging", "Handling difficult situations"),
    ("practical", "Wording and typical responses"),
    ("language", None),
    ("boundaries", "Expertise and boundaries"),
)


class PromptParts(NamedTuple):
    system_prompt: str
    user_prompt: str


def build_persona(agent: AgentProfile) -> str:
    """Persona text for ``agent``.

    A completed personality questionnaire takes precedence over the basic
    profile fields. Raises PersonaError when the agent has no usable
    persona at all.
    """
    if not agent.display_name.strip():
        raise PersonaError(f"Agent {agent.id} has no display name")

    profile = agent.personality_profile
    if profile and profile.is_complete and profile.answers:
        return _questionnaire_persona(agent)

    if not agent.personality.strip():
        raise PersonaError(f"Agent {agent.id} has no personality description")

    specialties = ", ".join(agent.specialties) or "general counselling"
    return (
        f"Name: {agent.display_name}\n"
        f"Specialties: {specialties}\n"
        f"Personality: {agent.personality}\n"
        f"Greeting: {agent.greeting or 'Hello!'}\n"
        "\n"
        f"You are {agent.display_name}, a teacher with these traits:\n"
        f"- {agent.personality}\n"
        f"- Specialties: {specialties}\n"
        "- Support students warmly and sincerely\n"
        "- Give concrete, practical advice\n"
        "- Explain things from the student's point of view"
    )


def _questionnaire_persona(agent: AgentProfile) -> str:
    answers = agent.personality_profile.answers
    lines = [f"[Teaching philosophy and personality of {agent.display_name}]"]
    for category, title in PERSONALITY_SECTIONS:
        if title:
            lines.append("")
            lines.append(f"## {title}")
        lines.extend(f"- {a.answer}" for a in answers if a.category == category)
    lines.append("")
    lines.append(
        f"As {agent.display_name}, with this personality and these values, give students "
        "warm, concrete and practical advice."
    )
    return "\n".join(lines)


def category_directive(category: Optional[str]) -> Optional[str]:
    return CATEGORY_DIRECTIVES.get(category) if category else None


def mode_directive(mode: Optional[str]) -> Optional[str]:
    return MODE_DIRECTIVES.get(mode) if mode else None


def custom_directive(agent: AgentProfile, category: Optional[str] = None,
                     mode: Optional[str] = None) -> Optional[str]:
    """First custom prompt configured on the agent for this category or mode."""
    customization = agent.response_customization
    if not customization or not customization.enable_customization:
        return None
    for custom in customization.custom_prompts:
        if (custom.category and custom.category == category) or (custom.mode and custom.mode == mode):
            return custom.prompt
    return None


def compose_parts(persona: str, history: Optional[str], length_instruction: str,
                  category_directive: Optional[str], mode_directive: Optional[str],
                  user_message: str, *, custom_directive: Optional[str] = None,
                  message_type: Optional[str] = None,
                  recommended_length: Optional[str] = None) -> PromptParts:
    if not persona or not persona.strip():
        raise PersonaError("Persona is required to compose a prompt")

    system_blocks = [persona.strip()]
    if history:
        system_blocks.append(f"{HISTORY_HEADER}\n{history}")
        system_blocks.append(HISTORY_INSTRUCTIONS)

    length_lines = [LENGTH_HEADER, length_instruction]
    if message_type:
        length_lines.append(f"Message type: {message_type}")
    if recommended_length:
        length_lines.append(f"Recommended length: {recommended_length}")
    system_blocks.append("\n".join(length_lines))
    system_blocks.append(LENGTH_FOOTER)

    prompt = user_message
    if category_directive:
        prompt = f"{category_directive}\n\n{prompt}"
    if mode_directive:
        prompt = f"{mode_directive}\n\n{prompt}"
    if custom_directive:
        prompt = f"{custom_directive}\n\n{prompt}"

    return PromptParts("\n\n".join(system_blocks), prompt)


def compose(persona: str, history: Optional[str], length_instruction: str,
            category_directive: Optional[str], mode_directive: Optional[str],
            user_message: str, **kwargs) -> str:
    """Whole prompt as one string: system part, then user part."""
    parts = compose_parts(persona, history, length_instruction, category_directive,
                          mode_directive, user_message, **kwargs)
    return f"{parts.system_prompt}\n\n{NEW_MESSAGE_HEADER}\n{parts.user_prompt}"
