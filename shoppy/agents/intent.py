# shoppy/agents/intent.py
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .lexicon import Lexicon, DEFAULT_LEXICON, normalize

logger = logging.getLogger(__name__)

SOURCE_USER = "user"
SOURCE_ASSISTANT = "assistant"
SOURCE_SELECTION = "selection"


@dataclass(frozen=True)
class IntentResult:
    is_cart_intent: bool
    source_hint: Optional[str] = None
    matched_phrase: Optional[str] = None


NO_INTENT = IntentResult(False)


class IntentDetector:
    """
    Decides whether a chat turn asks for something to go into the cart.

    Case-insensitive phrase tests, no scoring. The user message is checked
    first (selection phrases, then direct-intent phrases, then a colour
    followed by a product noun), the assistant reply last. The first check
    that matches wins.
    """

    def __init__(self, lexicon: Lexicon = DEFAULT_LEXICON):
        self.lexicon = lexicon
        nouns = "|".join(re.escape(n) for n in sorted(lexicon.product_nouns, key=len, reverse=True))
        colors = "|".join(re.escape(c) for c in lexicon.colors)
        self._color_noun = re.compile(rf"\b(?:{colors})\s+(?:[\w-]+\s+){{0,2}}?(?:{nouns})s?\b")

    @staticmethod
    def _first_match(text: str, phrases) -> Optional[str]:
        for phrase in phrases:
            if phrase in text:
                return phrase
        return None

    @staticmethod
    def _first_word_match(text: str, phrases) -> Optional[str]:
        # "1st" must not fire inside "21st", nor "option 1" inside "option 10"
        for phrase in phrases:
            if re.search(rf"\b{re.escape(phrase)}\b", text):
                return phrase
        return None

    def detect(self, user_message: Optional[str], assistant_reply: Optional[str]) -> IntentResult:
        user = normalize(user_message).strip()
        reply = normalize(assistant_reply)

        if user:
            hit = self._first_word_match(user, self.lexicon.selection_phrases)
            if hit:
                return IntentResult(True, SOURCE_SELECTION, hit)
            hit = self._first_match(user, self.lexicon.direct_intent_phrases)
            if hit:
                return IntentResult(True, SOURCE_USER, hit)
            m = self._color_noun.search(user)
            if m:
                return IntentResult(True, SOURCE_USER, m.group(0))

        if reply:
            hit = self._first_match(reply, self.lexicon.ai_confirmation_phrases)
            if hit:
                return IntentResult(True, SOURCE_ASSISTANT, hit)

        return NO_INTENT

    def is_cart_query(self, message: Optional[str]) -> bool:
        text = normalize(message)
        return self._first_match(text, self.lexicon.cart_query_keywords) is not None
