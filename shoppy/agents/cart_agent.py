# shoppy/agents/cart_agent.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shoppy import crud
from shoppy.cache import CartCache
from shoppy.errors import NoMatchingProductError
from shoppy.shopify import Product, ShopifyClient
from .extractor import CandidateProduct, extract_color_keywords, extract_product_keywords
from .lexicon import Lexicon, DEFAULT_LEXICON

logger = logging.getLogger(__name__)

ADD_FAILED_MESSAGE = "Sorry, I couldn't add that item to your cart automatically."


@dataclass
class CartMutationResult:
    success: bool
    action: str
    message: str
    product: Optional[Dict[str, Any]] = None
    cart_count: Optional[int] = None
    cart_total: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "action": self.action, "message": self.message}
        if self.product is not None:
            out["product"] = self.product
        if self.cart_count is not None:
            out["cartCount"] = self.cart_count
        if self.cart_total is not None:
            out["cartTotal"] = self.cart_total
        if self.error:
            out["error"] = self.error
        return out


def failed_mutation(error: str) -> CartMutationResult:
    return CartMutationResult(False, "add_to_cart_failed", ADD_FAILED_MESSAGE, error=error)


def pick_best_match(products: List[Product], price_hint: float, tolerance: float) -> Product:
    """First product, unless a nonzero price hint points at a closer one."""
    if price_hint and price_hint > 0:
        for p in products:
            if abs(p.price - price_hint) <= tolerance:
                return p
    return products[0]


def cart_item_from_product(product: Product, quantity: int = 1) -> Dict[str, Any]:
    return {
        "product_id": product.id,
        "product_name": product.title,
        "description": (product.description or "")[:200],
        "price": product.price,
        "quantity": quantity,
        "image_url": product.image_url,
        "product_url": product.product_url,
    }


async def add_item(db: AsyncSession, cache: Optional[CartCache], user_id: str, item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Upsert one item and recount the cart in a single transaction, then
    drop the user's cached cart aggregates. Re-raises database errors
    after rolling back.
    """
    try:
        row, was_update = await crud.upsert_cart_item(db, user_id, item)
        count, total = await crud.cart_totals(db, user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("[CART] upsert failed for user=%s product=%s", user_id, item.get("product_id"))
        raise
    if cache is not None:
        await cache.invalidate(user_id)
    logger.info("[CART] %s %s for user=%s -> count=%d total=%.2f",
                "merged" if was_update else "inserted", row.product_id, user_id, count, total)
    return {"item": row, "is_update": was_update, "cart_count": count, "cart_total": total}


async def get_cart_summary(db: AsyncSession, user_id: str) -> Dict[str, Any]:
    items = await crud.get_cart_items(db, user_id)
    count, total = await crud.cart_totals(db, user_id)
    return {
        "items": [crud.serialize_cart_item(i) for i in items],
        "total": total,
        "count": count,
    }


class CartReconciler:
    """Matches an extracted candidate to a live storefront product and adds it to the cart."""

    def __init__(self, shopify: ShopifyClient, cache: Optional[CartCache] = None,
                 lexicon: Lexicon = DEFAULT_LEXICON):
        self.shopify = shopify
        self.cache = cache
        self.lexicon = lexicon

    async def find_products(self, candidate: CandidateProduct, original_message: str) -> List[Product]:
        query = (candidate.name or "").strip()
        if not query:
            query = " ".join(extract_product_keywords(original_message, self.lexicon))
        products = await self.shopify.search_multiple(query, 3) if query else []
        if not products:
            colors = extract_color_keywords(candidate.name or original_message, self.lexicon)
            if colors:
                logger.info("[CART] no match for %r, retrying with colours %s", query, colors)
                products = await self.shopify.search_multiple(" ".join(colors), 5)
        if not products:
            raise NoMatchingProductError()
        return products

    async def add_best_match(self, db: AsyncSession, user_id: str, candidate: CandidateProduct,
                             original_message: str) -> CartMutationResult:
        products = await self.find_products(candidate, original_message)
        selected = pick_best_match(products, candidate.price, self.lexicon.price_tolerance)
        logger.info("[CART] candidate %r resolved to %r (%s)", candidate.name, selected.title, selected.id)

        item = cart_item_from_product(selected)
        result = await add_item(db, self.cache, user_id, item)
        return CartMutationResult(
            success=True,
            action="updated_cart" if result["is_update"] else "added_to_cart",
            message=f'Successfully added "{selected.title}" to your cart!',
            product={
                "productId": selected.id,
                "productName": selected.title,
                "description": item["description"],
                "price": selected.price,
                "quantity": 1,
                "imageUrl": selected.image_url,
                "productUrl": selected.product_url,
            },
            cart_count=result["cart_count"],
            cart_total=result["cart_total"],
        )
