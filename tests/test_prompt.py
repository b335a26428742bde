"""Tests for persona building and prompt composition."""

import pytest

from sensei_service.context.prompt import (
    LENGTH_HEADER,
    HISTORY_HEADER,
    build_persona,
    category_directive,
    compose,
    compose_parts,
    custom_directive,
    mode_directive,
)
from sensei_service.errors import PersonaError
from sensei_service.models.agents import (
    CustomPrompt,
    PersonalityAnswer,
    PersonalityProfile,
    ResponseCustomization,
)

from conftest import make_agent


# ---------------------------------------------------------------------------
# Persona
# ---------------------------------------------------------------------------

def test_basic_persona_uses_profile_fields():
    persona = build_persona(make_agent())
    assert "Ms. Tanaka" in persona
    assert "Calm, patient and encouraging" in persona
    assert "mathematics, career guidance" in persona


def test_questionnaire_persona_when_complete():
    agent = make_agent(personality_profile=PersonalityProfile(
        is_complete=True,
        answers=[
            PersonalityAnswer(question_id="q1", category="core", answer="Every student can grow"),
            PersonalityAnswer(question_id="q2", category="boundaries", answer="I refer medical questions to the nurse"),
        ],
    ))
    persona = build_persona(agent)
    assert "- Every student can grow" in persona
    assert "- I refer medical questions to the nurse" in persona
    assert persona.index("Every student can grow") < persona.index("nurse")


def test_incomplete_questionnaire_falls_back_to_profile():
    agent = make_agent(personality_profile=PersonalityProfile(is_complete=False, answers=[
        PersonalityAnswer(question_id="q1", category="core", answer="unused"),
    ]))
    assert "unused" not in build_persona(agent)


def test_missing_personality_is_hard_failure():
    with pytest.raises(PersonaError):
        build_persona(make_agent(personality="  "))


def test_missing_display_name_is_hard_failure():
    with pytest.raises(PersonaError):
        build_persona(make_agent(display_name=""))


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------

def test_known_and_unknown_directives():
    assert category_directive("career").startswith("Answer the following as career guidance")
    assert category_directive("daily") is None
    assert category_directive(None) is None
    assert mode_directive("quick").startswith("[Answer style: quick]")
    assert mode_directive(None) is None


def test_custom_directive_requires_enabled_customization():
    prompts = [CustomPrompt(mode="quick", prompt="Always end with a question.")]
    disabled = make_agent(response_customization=ResponseCustomization(custom_prompts=prompts))
    enabled = make_agent(response_customization=ResponseCustomization(
        enable_customization=True, custom_prompts=prompts,
    ))
    assert custom_directive(disabled, None, "quick") is None
    assert custom_directive(enabled, None, "quick") == "Always end with a question."
    assert custom_directive(enabled, "career", "normal") is None


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def test_compose_order():
    prompt = compose(
        "PERSONA", "HISTORY", "LENGTH", "CATEGORY", "MODE", "USER MESSAGE",
        custom_directive="CUSTOM",
    )
    order = ["PERSONA", HISTORY_HEADER, "HISTORY", LENGTH_HEADER, "LENGTH",
             "CUSTOM", "MODE", "CATEGORY", "USER MESSAGE"]
    positions = [prompt.index(token) for token in order]
    assert positions == sorted(positions)
    assert prompt.startswith("PERSONA")
    assert prompt.endswith("USER MESSAGE")


def test_compose_without_history_has_no_history_block():
    parts = compose_parts("PERSONA", None, "LENGTH", None, None, "hi")
    assert HISTORY_HEADER not in parts.system_prompt
    assert parts.user_prompt == "hi"


def test_history_block_asks_for_consistency():
    parts = compose_parts("PERSONA", "★ [04/01 18:00] Student: hello", "LENGTH", None, None, "hi")
    assert "consistent" in parts.system_prompt
    assert "Do not repeat" in parts.system_prompt


def test_length_block_lists_analysis():
    parts = compose_parts("PERSONA", None, "Reply in 2-4 sentences.", None, None, "hi",
                          message_type="question", recommended_length="medium")
    assert "Reply in 2-4 sentences.\nMessage type: question\nRecommended length: medium" in parts.system_prompt


def test_mode_prefixed_ahead_of_category():
    parts = compose_parts("PERSONA", None, "LENGTH", "CATEGORY", "MODE", "question")
    assert parts.user_prompt == "MODE\n\nCATEGORY\n\nquestion"


def test_compose_requires_persona():
    with pytest.raises(PersonaError):
        compose_parts("", None, "LENGTH", None, None, "hi")
