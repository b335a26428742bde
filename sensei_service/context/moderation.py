from typing import Optional

from ..models.agents import AgentProfile

NG_CATEGORIES = ("politics", "religion", "violence", "discrimination", "crime",
                 "政治", "宗教", "暴力", "差別", "犯罪")


def check_ng_words(message: str, agent: AgentProfile) -> Optional[str]:
    """Refusal text if ``message`` hits one of the agent's NG words or categories."""
    settings = agent.ng_words
    if not settings or not settings.enabled:
        return None

    lowered = message.lower()
    found = next((w for w in settings.words if w and w.lower() in lowered), None)
    if found:
        return settings.custom_message or (
            f"I'm sorry, but I can't answer questions about \"{found}\". "
            "Feel free to ask me about anything else."
        )

    enabled = {c.lower() for c in settings.categories}
    found = next((c for c in NG_CATEGORIES if c in enabled and c in lowered), None)
    if found:
        return settings.custom_message or (
            f"I'm sorry, but I can't discuss topics related to {found}. "
            "Questions about studying, career plans or relationships are always welcome."
        )
    return None


def check_restricted_topics(message: str, agent: AgentProfile) -> Optional[str]:
    customization = agent.response_customization
    if not customization or not customization.enable_customization:
        return None

    lowered = message.lower()
    found = next((t for t in customization.restricted_topics if t and t.lower() in lowered), None)
    if found:
        return (
            f"I'm sorry, but questions about \"{found}\" need specialist knowledge, so I can't answer them. "
            "I'm happy to help with study methods, career plans or relationships."
        )
    return None
