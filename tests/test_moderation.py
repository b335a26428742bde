"""Tests for NG-word and restricted-topic checks."""

from sensei_service.context.moderation import check_ng_words, check_restricted_topics
from sensei_service.models.agents import NGWordSettings, ResponseCustomization

from conftest import make_agent


def test_no_settings_never_blocks():
    assert check_ng_words("let's talk about politics", make_agent()) is None
    assert check_restricted_topics("medicine", make_agent()) is None


def test_disabled_ng_words_never_block():
    agent = make_agent(ng_words=NGWordSettings(enabled=False, words=["gossip"]))
    assert check_ng_words("some gossip about my class", agent) is None


def test_ng_word_case_insensitive():
    agent = make_agent(ng_words=NGWordSettings(enabled=True, words=["Gossip"]))
    refusal = check_ng_words("Tell me some GOSSIP about Ken", agent)
    assert refusal is not None
    assert "Gossip" in refusal


def test_ng_category():
    agent = make_agent(ng_words=NGWordSettings(enabled=True, categories=["politics"]))
    assert check_ng_words("What do you think about politics?", agent) is not None
    assert check_ng_words("What do you think about religion?", agent) is None


def test_custom_refusal_message():
    agent = make_agent(ng_words=NGWordSettings(
        enabled=True, words=["gossip"], custom_message="Let's not go there.",
    ))
    assert check_ng_words("gossip please", agent) == "Let's not go there."


def test_restricted_topic_requires_customization():
    topics = ["medication"]
    disabled = make_agent(response_customization=ResponseCustomization(restricted_topics=topics))
    enabled = make_agent(response_customization=ResponseCustomization(
        enable_customization=True, restricted_topics=topics,
    ))
    assert check_restricted_topics("Which medication should I take?", disabled) is None
    refusal = check_restricted_topics("Which Medication should I take?", enabled)
    assert refusal is not None
    assert "medication" in refusal


def test_clean_message_passes():
    agent = make_agent(
        ng_words=NGWordSettings(enabled=True, words=["gossip"], categories=["violence"]),
        response_customization=ResponseCustomization(
            enable_customization=True, restricted_topics=["medication"],
        ),
    )
    message = "How should I prepare for the entrance exam?"
    assert check_ng_words(message, agent) is None
    assert check_restricted_topics(message, agent) is None
