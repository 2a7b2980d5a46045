# shoppy/shopify.py
"""
Shopify Storefront GraphQL client and the product search adapter.

The storefront search is keyword/substring based and misses a lot, so
`search_multiple` fans one phrase out into several alternative queries
and merges what comes back.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from tenacity.wait import wait_base

from .agents.lexicon import Lexicon, DEFAULT_LEXICON
from .config import (
    SHOPIFY_STORE_NAME,
    SHOPIFY_STOREFRONT_TOKEN,
    SHOPIFY_API_VERSION,
    HTTP_TIMEOUT_SECONDS,
    HTTP_MAX_ATTEMPTS,
)
from .errors import StorefrontError
from .http_client import RetryableStatusError, request_with_retry

logger = logging.getLogger(__name__)

MAX_QUERIES = 8

PRODUCT_FIELDS = """
    id
    title
    handle
    description
    totalInventory
    priceRange { minVariantPrice { amount currencyCode } }
    images(first: 1) { edges { node { url } } }
    variants(first: 3) { edges { node { id title availableForSale price { amount currencyCode } } } }
"""

SEARCH_QUERY = """
query searchProducts($searchText: String!, $limit: Int!) {
  products(first: $limit, query: $searchText) { edges { node { %s } } }
}
""" % PRODUCT_FIELDS

PRODUCT_BY_HANDLE_QUERY = """
query getProduct($handle: String!) {
  product(handle: $handle) { %s }
}
""" % PRODUCT_FIELDS

FEATURED_QUERY = """
query getFeaturedProducts($limit: Int!) {
  products(first: $limit, sortKey: BEST_SELLING) { edges { node { %s } } }
}
""" % PRODUCT_FIELDS


@dataclass
class Product:
    id: str
    title: str
    handle: str
    description: str
    price: float
    currency_code: str
    image_url: Optional[str]
    total_inventory: Optional[int]
    product_url: str
    available_for_sale: bool = True

    @classmethod
    def from_node(cls, node: Dict[str, Any], store_domain: str) -> "Product":
        money = ((node.get("priceRange") or {}).get("minVariantPrice") or {})
        images = ((node.get("images") or {}).get("edges") or [])
        variants = ((node.get("variants") or {}).get("edges") or [])
        try:
            price = float(money.get("amount") or 0)
        except (TypeError, ValueError):
            price = 0.0
        handle = node.get("handle") or ""
        return cls(
            id=node["id"],
            title=node.get("title") or "",
            handle=handle,
            description=node.get("description") or "",
            price=price,
            currency_code=money.get("currencyCode") or "USD",
            image_url=images[0]["node"]["url"] if images else None,
            total_inventory=node.get("totalInventory"),
            product_url=f"https://{store_domain}/products/{handle}",
            available_for_sale=any(v["node"].get("availableForSale", True) for v in variants) if variants else True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "handle": self.handle,
            "description": self.description,
            "price": self.price,
            "currencyCode": self.currency_code,
            "imageUrl": self.image_url,
            "totalInventory": self.total_inventory,
            "productUrl": self.product_url,
            "availableForSale": self.available_for_sale,
        }


# ---------- query building ----------
def _terms(clean: str, lexicon: Lexicon) -> List[str]:
    words = re.findall(r"[a-z0-9][a-z0-9'-]*", clean)
    return [w for w in words if len(w) > 2 and w not in lexicon.stopwords]


def _title_or_tag(terms: List[str]) -> str:
    titles = " OR ".join(f"title:*{t}*" for t in terms)
    tags = " OR ".join(f"tag:{t}" for t in terms)
    return f"({titles}) OR ({tags})"


def build_search_query(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> str:
    """One storefront query: category expansion, else up to 3 significant words."""
    clean = text.strip().lower()
    if not clean:
        return ""
    expanded: List[str] = []
    for triggers, terms in lexicon.category_expansions:
        if any(t in clean for t in triggers):
            expanded.extend(t for t in terms if t not in expanded)
    if expanded:
        return _title_or_tag(expanded)
    meaningful = _terms(clean, lexicon)
    if meaningful:
        return _title_or_tag(meaningful[:3])
    return f"title:*{clean.split()[0]}*"


def build_search_queries(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> List[str]:
    clean = (text or "").strip().lower()
    if not clean:
        return []
    terms = _terms(clean, lexicon)
    queries = [build_search_query(clean, lexicon)]
    queries.extend(f"title:*{t}* OR tag:{t}" for t in terms[:3])

    colors = [c for c in lexicon.colors if c in clean]
    kinds = [k for k in lexicon.product_nouns if k in clean]
    for color in colors:
        for kind in kinds:
            queries.append(f"title:*{color}*{kind}* OR title:*{kind}*{color}*")

    for triggers, query in lexicon.broad_categories:
        if any(t in clean for t in triggers):
            queries.append(query)

    if terms:
        queries.append(f"title:*{terms[0]}*")

    unique: List[str] = []
    for q in queries:
        if q and q not in unique:
            unique.append(q)
    return unique[:MAX_QUERIES]


def format_price(amount: float, currency_code: str) -> str:
    if currency_code == "USD":
        return f"${amount:.2f}"
    return f"{amount:.2f} {currency_code}"


def format_products_for_chat(products: List[Product]) -> str:
    if not products:
        return "Sorry, I couldn't find any products matching your search. Try different keywords."
    lines = [f"I found {len(products)} matching product(s):", ""]
    for i, p in enumerate(products, start=1):
        lines.append(f"{i}. **{p.title}** - {format_price(p.price, p.currency_code)}")
        status = "In stock" if (p.total_inventory or 0) > 0 else "Out of stock"
        lines.append(f"   Status: {status}")
        if p.description:
            lines.append(f"   {p.description[:100]}")
        lines.append(f"   Link: {p.product_url}")
        lines.append("")
    lines.append("Would you like to add any of these to your cart?")
    return "\n".join(lines)


class ShopifyClient:
    def __init__(
        self,
        store_name: str = SHOPIFY_STORE_NAME,
        storefront_token: str = SHOPIFY_STOREFRONT_TOKEN,
        api_version: str = SHOPIFY_API_VERSION,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        max_attempts: int = HTTP_MAX_ATTEMPTS,
        retry_wait: Optional[wait_base] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        lexicon: Lexicon = DEFAULT_LEXICON,
    ):
        self.store_domain = f"{store_name}.myshopify.com"
        self.endpoint = f"https://{self.store_domain}/api/{api_version}/graphql.json"
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait
        self.lexicon = lexicon
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "X-Shopify-Storefront-Access-Token": storefront_token,
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = await request_with_retry(
                self._client, "POST", self.endpoint,
                max_attempts=self.max_attempts, wait=self.retry_wait,
                json={"query": query, "variables": variables},
            )
        except RetryableStatusError as e:
            raise StorefrontError(f"Storefront API unavailable ({e.response.status_code})") from e
        except httpx.HTTPError as e:
            raise StorefrontError(f"Storefront API network error: {e}") from e

        if resp.status_code >= 400:
            raise StorefrontError(f"Storefront API HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            raise StorefrontError("Storefront API returned invalid JSON") from e
        if body.get("errors"):
            raise StorefrontError(f"Storefront GraphQL error: {body['errors']}")
        return body.get("data") or {}

    def _products(self, data: Dict[str, Any]) -> List[Product]:
        edges = ((data.get("products") or {}).get("edges") or [])
        return [Product.from_node(e["node"], self.store_domain) for e in edges]

    async def search(self, query: str, limit: int = 5) -> List[Product]:
        data = await self._graphql(SEARCH_QUERY, {"searchText": query, "limit": max(1, limit)})
        return self._products(data)

    async def search_multiple(self, text: str, limit: int = 5) -> List[Product]:
        """
        Search with every alternative query built from `text`, merging
        unique products (by id) until `limit` is reached. A failing
        sub-query is logged and skipped; no results at all gives [].
        """
        queries = build_search_queries(text, self.lexicon)
        if not queries or limit <= 0:
            return []
        per_query = max(1, math.ceil(limit / len(queries)))
        merged: List[Product] = []
        seen = set()
        for q in queries:
            try:
                found = await self.search(q, per_query)
            except StorefrontError as e:
                logger.warning("[SHOPIFY] sub-query %r failed: %s", q, e)
                continue
            for p in found:
                if p.id not in seen:
                    seen.add(p.id)
                    merged.append(p)
            if len(merged) >= limit:
                break
        logger.info("[SHOPIFY] search_multiple %r -> %d product(s) from %d queries", text, len(merged), len(queries))
        return merged[:limit]

    async def get_product_by_handle(self, handle: str) -> Optional[Product]:
        data = await self._graphql(PRODUCT_BY_HANDLE_QUERY, {"handle": handle})
        node = data.get("product")
        return Product.from_node(node, self.store_domain) if node else None

    async def get_featured_products(self, limit: int = 10) -> List[Product]:
        data = await self._graphql(FEATURED_QUERY, {"limit": max(1, limit)})
        return self._products(data)
