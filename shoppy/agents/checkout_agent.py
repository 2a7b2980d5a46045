# shoppy/agents/checkout_agent.py
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shoppy import crud
from shoppy.cache import CartCache
from shoppy.errors import CartEmptyError
from shoppy.models import PurchaseHistory

logger = logging.getLogger(__name__)


def new_order_id() -> str:
    return "ORD-" + uuid.uuid4().hex[:8]


async def process_checkout(db: AsyncSession, user_id: str, cache: Optional[CartCache] = None) -> Dict[str, Any]:
    """
    Move every cart row into purchase history under one order id and empty
    the cart, all in one transaction. No payment is taken.
    """
    items = await crud.get_cart_items(db, user_id)
    if not items:
        raise CartEmptyError()

    order_id = new_order_id()
    total = Decimal("0")
    purchases = []
    try:
        for item in items:
            p = PurchaseHistory(
                user_id=user_id,
                order_id=order_id,
                product_id=item.product_id,
                product_name=item.product_name,
                description=item.description,
                price=item.price,
                quantity=item.quantity,
                total=item.total,
                image_url=item.image_url,
                product_url=item.product_url,
                status="completed",
            )
            db.add(p)
            purchases.append(p)
            total += crud.to_money(item.total)
        await crud.clear_cart(db, user_id, commit=False)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("[CHECKOUT] failed for user=%s", user_id)
        raise

    if cache is not None:
        await cache.invalidate(user_id)
    logger.info("[CHECKOUT] order %s for user=%s: %d item(s), total=%s", order_id, user_id, len(purchases), total)
    return {
        "orderId": order_id,
        "totalAmount": float(total),
        "purchases": [crud.serialize_purchase(p) for p in purchases],
    }
