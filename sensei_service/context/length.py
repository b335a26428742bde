"""Response-length control.

``analyze_response_length`` looks only at the incoming message and picks a
length instruction for the model. ``adjust_for_context`` then corrects that
instruction using the recent exchange pattern from the conversation cache.
"""

import re
from typing import NamedTuple, Optional, Sequence

from ..models.cache import CachedMessage, chronological

EXPLICIT_LENGTH_INSTRUCTIONS = {
    "short": "Reply concisely in 1-2 sentences.",
    "medium": "Reply in 2-4 sentences at a moderate length.",
    "long": "Reply in detail and with care in 4-6 sentences.",
}

GREETING_MARKERS = (
    "thank you", "thanks", "hello", "hi", "good morning", "ok", "okay", "understood", "got it",
    "ありがとう", "こんにちは", "おはよう", "お疲れ", "はい", "わかりました",
)
EXPLANATION_MARKERS = (
    "explain", "why", "how", "method", "teach me", "show me",
    "教えて", "説明", "どうして", "なぜ", "方法", "やり方",
)
SUPPORT_MARKERS = (
    "worried", "anxious", "hard", "difficult", "struggling", "stressed",
    "悩み", "困っている", "不安", "心配", "辛い", "大変",
)
SUPPORT_CATEGORIES = frozenset({"relationships", "career", "人間関係", "進路"})
QUESTION_MARKERS = ("?", "？", "どう", "何")
QUESTION_PREFIXES = (
    "what", "when", "where", "who", "which", "can", "could", "should",
    "is", "are", "do", "does", "いつ", "どこ",
)

SHORT_MESSAGE_CHARS = 20
LONG_MESSAGE_CHARS = 100

LONG_REPLY_CHARS = 200
SHORT_REPLY_CHARS = 50
TERSE_USER_CHARS = 20

BREVITY_NOTE = "Note: your previous replies ran long. Keep this reply concise."
ELABORATE_NOTE = "Note: your previous replies were short. Explain in a little more detail where it helps."
TERSE_USER_NOTE = "Note: the student is replying briefly. Keep your reply concise to match."


class LengthAnalysis(NamedTuple):
    message_type: str
    recommended_length: str
    instruction: str


def _compile(keywords: Sequence[str]) -> re.Pattern:
    # ASCII keywords match whole words ("hi" must not fire on "this"),
    # Japanese has no word boundaries so those match as substrings
    parts = []
    for keyword in keywords:
        escaped = re.escape(keyword)
        if keyword.isascii() and any(c.isalpha() for c in keyword):
            parts.append(rf"\b{escaped}\b")
        else:
            parts.append(escaped)
    return re.compile("|".join(parts), re.IGNORECASE)


_GREETING_RE = _compile(GREETING_MARKERS)
_EXPLANATION_RE = _compile(EXPLANATION_MARKERS)
_SUPPORT_RE = _compile(SUPPORT_MARKERS)
_QUESTION_RE = _compile(QUESTION_MARKERS)
_QUESTION_PREFIX_RE = _compile(QUESTION_PREFIXES)


def analyze_response_length(message: str, category: Optional[str] = None,
                            explicit_length: Optional[str] = None) -> LengthAnalysis:
    """Classify ``message`` and choose a length instruction.

    An explicit ``short``/``medium``/``long`` choice from the user wins over
    any content heuristics. Otherwise the first matching rule applies:
    greeting, explanation request, support request, question, then a
    fallback on the raw message length.
    """
    if explicit_length and explicit_length != "auto" and explicit_length in EXPLICIT_LENGTH_INSTRUCTIONS:
        return LengthAnalysis("general", explicit_length, EXPLICIT_LENGTH_INSTRUCTIONS[explicit_length])

    text = message.strip()

    if _GREETING_RE.search(text):
        return LengthAnalysis("greeting", "short", "Reply warmly and concisely in 1-2 sentences.")

    if _EXPLANATION_RE.search(text):
        return LengthAnalysis(
            "explanation", "long",
            "Explain clearly and in detail in 3-5 sentences. Include a concrete example if relevant.",
        )

    if _SUPPORT_RE.search(text) or (category in SUPPORT_CATEGORIES):
        return LengthAnalysis(
            "support", "medium",
            "Reply warmly and with empathy in 3-4 sentences, including concrete advice.",
        )

    if _QUESTION_RE.search(text) or _QUESTION_PREFIX_RE.match(text):
        return LengthAnalysis("question", "medium", "Answer the question directly in 2-4 sentences.")

    if len(message) < SHORT_MESSAGE_CHARS:
        return LengthAnalysis("general", "short", "Reply appropriately in 2-3 sentences.")
    if len(message) > LONG_MESSAGE_CHARS:
        return LengthAnalysis("general", "long", "Reply in 4-5 sentences with detail suited to the content.")
    return LengthAnalysis("general", "medium", "Reply in 2-4 sentences at an appropriate length.")


def adjust_for_context(base_instruction: str,
                       recent_messages: Optional[Sequence[CachedMessage]] = None) -> str:
    """Append corrections to ``base_instruction`` from the recent exchange.

    The mean length of the last three agent replies yields a brevity or an
    elaboration note; two consecutive terse user messages yield a note to
    match their style. Notes go on their own lines in that order.
    """
    if not recent_messages:
        return base_instruction

    ordered = chronological(recent_messages)
    notes = []

    agent_replies = [m for m in ordered if m.sender == "agent"][-3:]
    if agent_replies:
        mean_length = sum(len(m.text) for m in agent_replies) / len(agent_replies)
        if mean_length > LONG_REPLY_CHARS:
            notes.append(BREVITY_NOTE)
        elif mean_length < SHORT_REPLY_CHARS:
            notes.append(ELABORATE_NOTE)

    user_messages = [m for m in ordered if m.sender == "user"][-2:]
    if len(user_messages) == 2 and all(len(m.text) < TERSE_USER_CHARS for m in user_messages):
        notes.append(TERSE_USER_NOTE)

    return "\n".join([base_instruction, *notes])
