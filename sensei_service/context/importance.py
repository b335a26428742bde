"""Coarse importance scoring used to decide which cached messages survive pruning."""

SHORT_MESSAGE_CHARS = 50
LONG_MESSAGE_CHARS = 200

SENSITIVE_CATEGORIES = frozenset({"career", "relationships", "進路", "人間関係"})

HIGH_IMPORTANCE_KEYWORDS = (
    "future", "worry", "help", "trouble", "anxious", "career", "consult",
    "進路", "将来", "悩み", "困って", "助けて", "相談", "不安", "心配",
)

MEDIUM_IMPORTANCE_KEYWORDS = (
    "study", "exam", "grades", "test", "learning",
    "勉強", "学習", "テスト", "試験", "成績",
)


def classify_importance(text: str, category: str | None = None) -> str:
    """Return ``"low"``, ``"medium"`` or ``"high"``; first matching rule wins."""
    if len(text) < SHORT_MESSAGE_CHARS:
        return "low"
    if len(text) > LONG_MESSAGE_CHARS:
        return "high"
    if category and category.lower() in SENSITIVE_CATEGORIES:
        return "high"

    lowered = text.lower()
    if any(keyword in lowered for keyword in HIGH_IMPORTANCE_KEYWORDS):
        return "high"
    if any(keyword in lowered for keyword in MEDIUM_IMPORTANCE_KEYWORDS):
        return "medium"
    return "medium"
