# shoppy/agents/rec_agent.py
import logging
import re
from typing import Dict, List

from shoppy.errors import StorefrontError
from shoppy.shopify import Product, ShopifyClient
from .extractor import extract_product_keywords
from .lexicon import Lexicon, DEFAULT_LEXICON, normalize

logger = logging.getLogger(__name__)

LIST_ITEM_RE = re.compile(r"^\s*(?:\d+\.|[-•])\s*(.+?)\s*[-–]\s*\$(\d+(?:\.\d{1,2})?)")
BOLD_RE = re.compile(r"\*\*([^*\n]+)\*\*")
NUMBERED_LIST_RE = re.compile(r"(?m)^\s*(?:\d+\.|[-•])\s+[A-Za-z]")
PRICE_MENTION_RE = re.compile(r"\$\d+")


def detect_product_recommendation(reply: str, lexicon: Lexicon = DEFAULT_LEXICON) -> bool:
    text = normalize(reply)
    has_product = any(w in text for w in lexicon.product_indicators)
    if not has_product:
        return False
    has_phrase = any(p in text for p in lexicon.recommendation_phrases)
    has_list = bool(NUMBERED_LIST_RE.search(reply or ""))
    has_price = bool(PRICE_MENTION_RE.search(reply or ""))
    has_bold = bool(BOLD_RE.search(reply or ""))
    return has_phrase or has_list or has_price or has_bold


def is_general_information(reply: str, lexicon: Lexicon = DEFAULT_LEXICON) -> bool:
    text = normalize(reply)
    if any(p in text for p in lexicon.general_info_phrases):
        return True
    # comparisons like "both are soft, but it depends on..."
    return "both" in text and "but" in text and ("depends" in text or "prefer" in text)


def extract_recommended_products(reply: str, limit: int = 5) -> List[Dict]:
    """Names the reply lists or bolds, each with a storefront search phrase."""
    found: List[Dict] = []
    for line in (reply or "").splitlines():
        m = LIST_ITEM_RE.match(line)
        if m:
            name = m.group(1).replace("**", "").strip()
            found.append({"name": name, "query": name.lower(), "price": float(m.group(2))})
    for m in BOLD_RE.finditer(reply or ""):
        name = m.group(1).strip()
        if 3 < len(name) < 100:
            found.append({"name": name, "query": name.lower()})

    unique: List[Dict] = []
    seen = set()
    for item in found:
        if item["query"] not in seen:
            seen.add(item["query"])
            unique.append(item)
    return unique[:limit]


async def find_recommended_products(shopify: ShopifyClient, user_message: str, reply: str,
                                    limit: int = 5, lexicon: Lexicon = DEFAULT_LEXICON) -> List[Product]:
    """
    Storefront products for what the assistant just recommended. Lookup
    failures are logged and yield fewer (or no) products.
    """
    if not detect_product_recommendation(reply, lexicon) or is_general_information(reply, lexicon):
        return []

    products: List[Product] = []
    for rec in extract_recommended_products(reply, limit):
        try:
            products.extend(await shopify.search(rec["query"], 3))
        except StorefrontError as e:
            logger.warning("[REC] search for %r failed: %s", rec["name"], e)

    if len(products) < 2:
        keywords = extract_product_keywords(user_message, lexicon)
        keywords += [k for k in extract_product_keywords(reply, lexicon) if k not in keywords]
        if keywords:
            products.extend(await shopify.search_multiple(" ".join(keywords), limit))

    unique: List[Product] = []
    seen = set()
    for p in products:
        if p.id not in seen:
            seen.add(p.id)
            unique.append(p)
    return unique[:limit]
