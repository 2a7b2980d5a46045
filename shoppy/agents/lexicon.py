# shoppy/agents/lexicon.py
"""
Keyword and phrase lists shared by the intent detector, the product
extractor, the storefront query builder and the recommendation lookup.

Everything lives on one frozen `Lexicon` so the detector and the extractor
can never disagree about what a colour or a product noun is. Bump
`version` whenever a list changes.
"""
from dataclasses import dataclass
from typing import Tuple


COLORS = (
    "burgundy", "red", "blue", "green", "black", "white", "yellow", "pink",
    "purple", "orange", "brown", "gray", "grey", "navy", "olive", "beige", "cream",
)

# longest first so "t-shirt" wins over "shirt" in alternations
PRODUCT_NOUNS = (
    "t-shirt", "tshirt", "sweater", "hoodie", "jacket", "shirt", "dress",
    "pants", "jeans", "shoes", "tee",
)

GARMENT_STYLES = ("v-neck", "crew neck")

DIRECT_INTENT_PHRASES = (
    "add to cart", "add this to cart", "put in cart", "add to bag",
    "buy this", "i want this", "i'll take it", "i'll buy",
    "purchase this", "get this", "order this", "i want to buy",
    "add the", "i want the", "give me the", "i'll get the",
    "i want", "i need", "get me", "give me", "i'll take",
)

# phrase -> zero-based position in the last shown option list
ORDINAL_PHRASES: Tuple[Tuple[str, int], ...] = (
    ("first one", 0), ("second one", 1), ("third one", 2),
    ("number 1", 0), ("number 2", 1), ("number 3", 2),
    ("option 1", 0), ("option 2", 1), ("option 3", 2),
    ("1st", 0), ("2nd", 1), ("3rd", 2),
    ("first", 0), ("second", 1), ("third", 2),
)

# user phrases that pick from a previously shown list, matched on word boundaries
SELECTION_PHRASES = (
    "first one", "second one", "third one", "number 1", "number 2", "number 3",
    "1st", "2nd", "3rd", "option 1", "option 2", "option 3",
    "classic striped", "graphic print", "denim button",
)

# style keyword -> zero-based position, used when no option name matches
STYLE_SELECTIONS: Tuple[Tuple[str, int], ...] = (
    ("classic striped", 0), ("striped tee", 0),
    ("graphic print", 1), ("graphic", 1),
    ("denim button", 2), ("denim", 2),
)

AI_CONFIRMATION_PHRASES = (
    "added to cart", "added to your cart", "added one to your cart",
    "i've added", "i added", "added for you", "added it to your cart",
    "successfully added", "added to bag", "added to basket",
    "make sure that", "let's make sure", "let's add", "let me add",
    "i'll add", "i will add", "adding to your cart", "adding to cart",
    "is added to your cart", "is added to cart", "has been added",
    "will be added", "going to add", "about to add",
    "i'll make sure", "i will make sure", "make sure the",
    "perfect choice", "great pick", "excellent choice", "good choice",
)

KNOWN_COMBINATIONS = (
    "burgundy t-shirt", "burgundy tee", "burgundy shirt",
    "red t-shirt", "red tee", "red shirt",
    "blue t-shirt", "blue tee", "blue shirt",
)

CART_QUERY_KEYWORDS = (
    "cart", "bag", "basket",
    "what's in my cart", "what is in my cart", "how many items",
    "cart total", "do i have anything", "my cart", "my bag",
)

STOPWORDS = (
    "the", "and", "for", "with", "like", "want", "need", "looking", "show",
    "find", "could", "would", "something", "budget", "range", "prefer",
    "comfortable", "options", "choices", "recommendations",
)

# storefront query expansion: trigger words -> terms searched together
CATEGORY_EXPANSIONS: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = (
    (("shirt", "t-shirt", "tshirt"), ("shirt", "t-shirt", "tshirt")),
    (("pants", "jeans"), ("pants", "jeans")),
    (("shoes", "sneakers"), ("shoes", "sneakers")),
    (("tops", "blouse"), ("tops", "shirt", "blouse", "t-shirt")),
    (("hoodie", "hoodies", "sweater"), ("hoodie", "hoodies", "sweater")),
    (("polo", "polos"), ("polo", "polos")),
    (("oversized", "loose"), ("oversized", "loose", "relaxed")),
    (("phone", "smartphone"), ("phone", "smartphone", "mobile")),
    (("laptop", "computer", "notebook"), ("laptop", "computer", "notebook")),
)

BROAD_CATEGORIES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("shirt", "tee", "t-shirt"), "title:*shirt* OR title:*tee* OR title:*t-shirt*"),
    (("pants", "jeans"), "title:*pants* OR title:*jeans*"),
)

# nouns recognised when pulling search keywords out of free text
CATEGORY_KEYWORDS = (
    "phone", "laptop", "computer", "tablet", "watch", "headphones", "earbuds",
    "clothes", "clothing", "shirt", "pants", "shoes", "dress", "jacket", "jeans",
    "sweater", "hoodie", "book", "camera", "speaker", "monitor", "bag",
    "backpack", "wallet", "sunglasses", "jewelry", "necklace", "ring",
    "furniture", "chair", "table", "electronics", "gadget", "accessory",
    "accessories", "charger", "cable", "casual", "formal", "trendy", "stylish",
)

RECOMMENDATION_PHRASES = (
    "here are", "here's", "i recommend", "i suggest", "check out",
    "great options", "perfect choice", "you might like", "consider",
    "available", "in stock", "we have", "let me show you", "take a look",
    "browse", "explore",
)

PRODUCT_INDICATORS = (
    "shirt", "tee", "jeans", "dress", "shoes", "jacket", "hoodie", "sweater",
    "pants", "laptop", "phone", "watch", "bag", "headphones", "denim", "leather",
)

GENERAL_INFO_PHRASES = (
    "both are made from", "is made from", "are made from", "known for",
    "gentle on", "throughout the day", "whether you choose",
    "do you have a preference", "which one do you prefer", "really depends",
    "in terms of",
)


@dataclass(frozen=True)
class Lexicon:
    version: str = "3"
    colors: Tuple[str, ...] = COLORS
    product_nouns: Tuple[str, ...] = PRODUCT_NOUNS
    garment_styles: Tuple[str, ...] = GARMENT_STYLES
    direct_intent_phrases: Tuple[str, ...] = DIRECT_INTENT_PHRASES
    ordinal_phrases: Tuple[Tuple[str, int], ...] = ORDINAL_PHRASES
    style_selections: Tuple[Tuple[str, int], ...] = STYLE_SELECTIONS
    ai_confirmation_phrases: Tuple[str, ...] = AI_CONFIRMATION_PHRASES
    known_combinations: Tuple[str, ...] = KNOWN_COMBINATIONS
    cart_query_keywords: Tuple[str, ...] = CART_QUERY_KEYWORDS
    stopwords: Tuple[str, ...] = STOPWORDS
    category_expansions: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = CATEGORY_EXPANSIONS
    broad_categories: Tuple[Tuple[Tuple[str, ...], str], ...] = BROAD_CATEGORIES
    category_keywords: Tuple[str, ...] = CATEGORY_KEYWORDS
    recommendation_phrases: Tuple[str, ...] = RECOMMENDATION_PHRASES
    product_indicators: Tuple[str, ...] = PRODUCT_INDICATORS
    general_info_phrases: Tuple[str, ...] = GENERAL_INFO_PHRASES
    price_tolerance: float = 5.0
    selection_phrases: Tuple[str, ...] = SELECTION_PHRASES


DEFAULT_LEXICON = Lexicon()


def normalize(text: str) -> str:
    """Lower-case and fold curly apostrophes so phrase lists match."""
    return (text or "").replace("’", "'").replace("‘", "'").lower()
