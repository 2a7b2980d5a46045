from dataclasses import replace

import pytest

from shoppy.agents.intent import (
    NO_INTENT,
    SOURCE_ASSISTANT,
    SOURCE_SELECTION,
    SOURCE_USER,
    IntentDetector,
)
from shoppy.agents.lexicon import DEFAULT_LEXICON


@pytest.fixture
def detector():
    return IntentDetector()


@pytest.mark.parametrize("message", [
    "I want 1 burgundy t-shirt",
    "Please ADD TO CART",
    "i need the blue hoodie",
    "Give me the graphic tee",
])
def test_user_direct_intent(detector, message):
    result = detector.detect(message, "")
    assert result.is_cart_intent
    assert result.source_hint == SOURCE_USER


@pytest.mark.parametrize("message", ["the first one please", "Option 2", "I'll go with the classic striped"])
def test_selection_phrases_win_over_direct_phrases(detector, message):
    result = detector.detect(message, "I've added it to your cart")
    assert result.source_hint == SOURCE_SELECTION


@pytest.mark.parametrize("message", [
    "one burgundy tee please",
    "Two BLACK hoodies for the trip",
    "that navy v-neck tee looks nice",
])
def test_color_noun_counts_as_user_intent(detector, message):
    result = detector.detect(message, "Sure!")
    assert result.is_cart_intent
    assert result.source_hint == SOURCE_USER


def test_color_alone_is_not_intent(detector):
    assert not detector.detect("do you have anything in burgundy?", "Let me look.").is_cart_intent


@pytest.mark.parametrize("message", [
    "it arrives on the 21st",
    "is there a number 12?",
    "option 10 looks odd",
])
def test_selection_phrases_need_word_boundaries(detector, message):
    assert detector.detect(message, "") == NO_INTENT


def test_assistant_confirmation_used_when_user_is_silent(detector):
    result = detector.detect("sounds good", "I've added the Burgundy V-Neck Tee to your cart")
    assert result.is_cart_intent
    assert result.source_hint == SOURCE_ASSISTANT
    assert result.matched_phrase == "i've added"


def test_curly_apostrophes_are_folded(detector):
    result = detector.detect("ok", "I’ve added the Navy Hoodie to your cart")
    assert result.source_hint == SOURCE_ASSISTANT


def test_empty_user_message_never_matches(detector):
    assert detector.detect("", "") == NO_INTENT
    assert detector.detect(None, None) == NO_INTENT
    assert detector.detect("   ", "what colour do you like?") == NO_INTENT


def test_no_intent_for_browsing(detector):
    assert not detector.detect("what jackets do you sell?", "We have a few jackets.").is_cart_intent


def test_adding_phrases_never_turns_a_match_off():
    base = IntentDetector()
    extended = IntentDetector(replace(
        DEFAULT_LEXICON,
        direct_intent_phrases=DEFAULT_LEXICON.direct_intent_phrases + ("hook me up with",),
    ))
    samples = [
        ("I want 1 burgundy tee", ""),
        ("hook me up with a hoodie", ""),
        ("hmm", "I've added the tee to your cart"),
        ("what's new?", "Here are some shirts"),
    ]
    for message, reply in samples:
        if base.detect(message, reply).is_cart_intent:
            assert extended.detect(message, reply).is_cart_intent
    assert extended.detect("hook me up with a hoodie", "").is_cart_intent


@pytest.mark.parametrize("message,expected", [
    ("What's in my cart?", True),
    ("how many items do I have", True),
    ("What’s in my CART", True),
    ("show me jackets", False),
])
def test_cart_query(detector, message, expected):
    assert detector.is_cart_query(message) is expected
