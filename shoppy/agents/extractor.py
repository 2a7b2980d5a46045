# shoppy/agents/extractor.py
"""
Pulls a candidate product name (and maybe a price) out of chat text.

`ProductExtractor` walks an ordered list of strategies. Each strategy
declares which text origins it understands ("user", "assistant",
"selection") and returns a `CandidateProduct` or None; the first hit wins.
Prices found here are hints only: reconciliation re-reads the live price.
"""
import logging
import re
from dataclasses import dataclass, asdict
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Union

from .lexicon import Lexicon, DEFAULT_LEXICON, normalize

logger = logging.getLogger(__name__)

ORIGIN_USER = "user"
ORIGIN_ASSISTANT = "assistant"
ORIGIN_SELECTION = "selection"

PRICE_RE = re.compile(r"\$\s?(\d+(?:,\d{3})*(?:\.\d{1,2})?)")
NUMBERED_LINE_RE = re.compile(r"^\s*(\d+)[.)]\s+(.*)$")
BULLET_LINE_RE = re.compile(r"^\s*[-•*]\s+(.*)$")
QUOTED_RE = re.compile(r'"([^"]+)"')


@dataclass
class CandidateProduct:
    name: str
    price: float = 0.0
    origin_text: str = ""
    selection_index: Optional[int] = None


@dataclass
class OptionLine:
    index: int
    name: str
    price: float
    line: str

    def to_dict(self) -> Dict:
        return asdict(self)


def title_case(phrase: str) -> str:
    """"burgundy t-shirt" -> "Burgundy T-Shirt"."""
    return " ".join(
        "-".join(part[:1].upper() + part[1:] for part in word.split("-"))
        for word in phrase.split()
    )


def _clean_name(raw: str) -> str:
    name = raw.replace("**", "").replace("__", "").strip()
    name = re.sub(r"\s+", " ", name)
    return name.strip(" -–:|,.!")


def _parse_price(text: str) -> float:
    m = PRICE_RE.search(text)
    if not m:
        return 0.0
    try:
        return float(m.group(1).replace(",", ""))
    except ValueError:
        return 0.0


def _split_priced_line(body: str):
    """Return (name, price) for 'Name - $19.99 ...' style text."""
    m = PRICE_RE.search(body)
    if not m:
        return None
    name = _clean_name(re.sub(r"[\s\-–:|(]+$", "", body[:m.start()]))
    if not name:
        return None
    return name, _parse_price(body[m.start():])


def parse_option_lines(text: Optional[str]) -> List[OptionLine]:
    """Numbered lines carrying a price, in display order."""
    options: List[OptionLine] = []
    for line in (text or "").splitlines():
        m = NUMBERED_LINE_RE.match(line)
        if not m or "$" not in line:
            continue
        parsed = _split_priced_line(m.group(2))
        if not parsed:
            continue
        name, price = parsed
        options.append(OptionLine(len(options), name, price, line.strip()))
    return options


def coerce_options(options: Optional[Sequence[Union[OptionLine, Dict]]]) -> List[OptionLine]:
    out: List[OptionLine] = []
    for i, opt in enumerate(options or []):
        if isinstance(opt, OptionLine):
            out.append(opt)
        elif isinstance(opt, dict) and opt.get("name"):
            out.append(OptionLine(
                index=int(opt.get("index", i)),
                name=str(opt["name"]),
                price=float(opt.get("price") or 0.0),
                line=str(opt.get("line") or opt["name"]),
            ))
    return out


def extract_color_keywords(text: Optional[str], lexicon: Lexicon = DEFAULT_LEXICON) -> List[str]:
    lowered = normalize(text)
    return [c for c in lexicon.colors if re.search(rf"\b{re.escape(c)}\b", lowered)]


def extract_product_keywords(text: Optional[str], lexicon: Lexicon = DEFAULT_LEXICON) -> List[str]:
    lowered = normalize(text)
    keywords: List[str] = []
    for word in lexicon.category_keywords:
        if re.search(rf"\b{re.escape(word)}s?\b", lowered) and word not in keywords:
            keywords.append(word)
    for quoted in QUOTED_RE.findall(text or ""):
        if quoted not in keywords:
            keywords.append(quoted)
    return keywords


@dataclass(frozen=True)
class Strategy:
    name: str
    origins: FrozenSet[str]
    run: Callable[[str, List[OptionLine]], Optional[CandidateProduct]]


class ProductExtractor:
    def __init__(self, lexicon: Lexicon = DEFAULT_LEXICON):
        self.lexicon = lexicon
        self._compile()
        self.strategies: List[Strategy] = [
            Strategy("intent_color_noun", frozenset({ORIGIN_USER}), self._intent_color_noun),
            Strategy("known_combination", frozenset({ORIGIN_USER}), self._known_combination),
            Strategy("color_noun", frozenset({ORIGIN_USER}), self._color_noun),
            Strategy("assistant_phrasing", frozenset({ORIGIN_ASSISTANT}), self._assistant_phrasing),
            Strategy("priced_line", frozenset({ORIGIN_ASSISTANT}), self._priced_line),
            Strategy("selection", frozenset({ORIGIN_SELECTION, ORIGIN_USER}), self._selection),
        ]

    def _compile(self) -> None:
        lx = self.lexicon
        nouns = "|".join(re.escape(n) for n in sorted(lx.product_nouns, key=len, reverse=True))
        colors = "|".join(re.escape(c) for c in lx.colors)
        styles = "|".join(r"\s+".join(re.escape(w) for w in s.split()) for s in lx.garment_styles)
        noun = rf"(?:{nouns})s?\b"
        name = rf"((?:[A-Za-z][\w'-]*\s+){{0,4}}?{noun})"
        flags = re.IGNORECASE

        self._user_color_noun = re.compile(
            rf"\b(?:i want|i need|i'll take|get me|give me|add)\s+(?:(?:\d+|one|a|an|the)\s+)?"
            rf"({colors})\s+(?:({styles})\s+)?({nouns})s?\b",
            flags,
        )
        self._assistant_patterns = [
            re.compile(
                rf"(?:let's make sure that|make sure that|i'll make sure|i will make sure|make sure)\s+"
                rf"(?:the\s+|a\s+)?{name}\s+(?:is|are|will be|gets|has been)\s+added",
                flags,
            ),
            re.compile(
                rf"(?:i've added|i have added|i added|i'll add|i will add|let me add|let's add)\s+"
                rf"(?:the\s+|a\s+|an\s+|one\s+)?{name}",
                flags,
            ),
            re.compile(rf"\badded\s+(?:the|a|an)\s+{name}", flags),
            re.compile(
                rf"(?:perfect choice|great pick|excellent choice|good choice)\s*(?:with|[:,-])\s*(?:the\s+)?{name}",
                flags,
            ),
            re.compile(rf"\b(?:the|a)\s+{name}\s+(?:is|has been)\s+(?:now\s+)?(?:added|in your cart)", flags),
            re.compile(r"\*\*([^*\n]{2,80})\*\*"),
            re.compile(rf"\b((?:{colors})\s+(?:(?:{styles})\s+)?(?:{nouns}))s?\b", flags),
            re.compile(rf"{name}\s+(?:is|are|will be|has been)\s+added", flags),
        ]
        self._bold_index = 5
        self._bare_index = 6
        self._noun_re = re.compile(rf"\b{noun}", flags)
        self._color_re = re.compile(rf"\b(?:{colors})\b", flags)

    # -- strategies ---------------------------------------------------------

    def _intent_color_noun(self, text: str, options: List[OptionLine]) -> Optional[CandidateProduct]:
        m = self._user_color_noun.search(text)
        if not m:
            return None
        parts = [p for p in m.groups() if p]
        return CandidateProduct(title_case(" ".join(p.lower() for p in parts)), 0.0, m.group(0))

    def _known_combination(self, text: str, options: List[OptionLine]) -> Optional[CandidateProduct]:
        lowered = normalize(text)
        for combo in self.lexicon.known_combinations:
            if combo in lowered:
                return CandidateProduct(title_case(combo), 0.0, combo)
        return None

    def _color_noun(self, text: str, options: List[OptionLine]) -> Optional[CandidateProduct]:
        m = self._assistant_patterns[self._bare_index].search(text)
        if not m:
            return None
        return CandidateProduct(title_case(m.group(1).lower()), 0.0, m.group(0))

    def _assistant_phrasing(self, text: str, options: List[OptionLine]) -> Optional[CandidateProduct]:
        for i, pattern in enumerate(self._assistant_patterns):
            for m in pattern.finditer(text):
                raw = m.group(1)
                if i == self._bold_index and not (self._noun_re.search(raw) or self._color_re.search(raw)):
                    continue
                parsed = _split_priced_line(raw) if "$" in raw else None
                name = parsed[0] if parsed else _clean_name(raw)
                name = re.sub(r"^(?:the|a|an)\s+", "", name, flags=re.IGNORECASE)
                if not name:
                    continue
                if i == self._bare_index:
                    name = title_case(name.lower())
                return CandidateProduct(name, parsed[1] if parsed else 0.0, m.group(0))
        return None

    def _priced_line(self, text: str, options: List[OptionLine]) -> Optional[CandidateProduct]:
        for line in text.splitlines():
            if "$" not in line:
                continue
            m = NUMBERED_LINE_RE.match(line)
            body = m.group(2) if m else None
            if body is None:
                b = BULLET_LINE_RE.match(line)
                body = b.group(1) if b else None
            if body is None:
                continue
            parsed = _split_priced_line(body)
            if parsed:
                return CandidateProduct(parsed[0], parsed[1], line.strip())
        return None

    def _selection(self, text: str, options: List[OptionLine]) -> Optional[CandidateProduct]:
        if not options:
            return None
        index = self.selection_index(text, options)
        if index is None or index >= len(options):
            return None
        opt = options[index]
        return CandidateProduct(opt.name, opt.price, opt.line, selection_index=index + 1)

    # -- public -------------------------------------------------------------

    def selection_index(self, text: str, options: List[OptionLine]) -> Optional[int]:
        lowered = normalize(text)
        for phrase, index in self.lexicon.ordinal_phrases:
            if re.search(rf"\b{re.escape(phrase)}\b", lowered):
                return index
        for opt in options:
            if opt.name and normalize(opt.name) in lowered:
                return opt.index
        for keyword, index in self.lexicon.style_selections:
            if keyword in lowered:
                return index
        return None

    def extract(self, text: Optional[str], origin: str,
                options: Optional[Sequence[Union[OptionLine, Dict]]] = None) -> Optional[CandidateProduct]:
        if not text or not text.strip():
            return None
        text = text.replace("’", "'").replace("‘", "'")
        opts = coerce_options(options)
        for strategy in self.strategies:
            if origin not in strategy.origins:
                continue
            candidate = strategy.run(text, opts)
            if candidate:
                logger.debug("[EXTRACT] %s matched %r (%s)", strategy.name, candidate.name, origin)
                return candidate
        return None
