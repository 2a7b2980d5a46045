# shoppy/cart.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from .agents import cart_agent
from .agents.checkout_agent import process_checkout
from .cache import CartCache
from .db import get_db
from .deps import get_cart_cache, get_current_user
from .models import User
from .rate_limit import cart_limiter
from .responses import success_response
from . import crud

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cart"])

class CartAddIn(BaseModel):
    productId: str = Field(min_length=1)
    productName: str = Field(min_length=1)
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    productUrl: Optional[str] = None

class QuantityIn(BaseModel):
    quantity: int = Field(ge=1)

@router.get("/cart")
async def get_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await cart_agent.get_cart_summary(db, user.user_id))

@router.delete("/cart")
async def clear_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CartCache = Depends(get_cart_cache),
):
    removed = await crud.clear_cart(db, user.user_id)
    await cache.invalidate(user.user_id)
    logger.info("[CART] cleared %d item(s) for user=%s", removed, user.user_id)
    return success_response({"removed": removed}, "Cart cleared")

@router.get("/cart/count")
async def cart_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CartCache = Depends(get_cart_cache),
):
    cached = await cache.get_count(user.user_id)
    if cached is not None:
        return success_response({**cached, "cached": True})
    count, total = await crud.cart_totals(db, user.user_id)
    value = {"count": count, "total": total}
    await cache.set_count(user.user_id, value)
    return success_response(value)

@router.post("/cart/add", dependencies=[Depends(cart_limiter)])
async def add_to_cart(
    payload: CartAddIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CartCache = Depends(get_cart_cache),
):
    item = {
        "product_id": payload.productId,
        "product_name": payload.productName,
        "price": payload.price,
        "quantity": payload.quantity,
        "description": payload.description,
        "image_url": payload.imageUrl,
        "product_url": payload.productUrl,
    }
    result = await cart_agent.add_item(db, cache, user.user_id, item)
    return success_response(
        {
            "item": crud.serialize_cart_item(result["item"]),
            "action": "updated_cart" if result["is_update"] else "added_to_cart",
            "cartCount": result["cart_count"],
            "cartTotal": result["cart_total"],
        },
        "Item added to cart",
    )

@router.put("/cart/{item_id}", dependencies=[Depends(cart_limiter)])
async def update_item(
    item_id: str,
    payload: QuantityIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CartCache = Depends(get_cart_cache),
):
    item = await crud.get_cart_item(db, user.user_id, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Cart item not found")
    item = await crud.update_cart_item_quantity(db, item, payload.quantity)
    await cache.invalidate(user.user_id)
    return success_response({"item": crud.serialize_cart_item(item)}, "Cart item updated")

@router.delete("/cart/{item_id}", dependencies=[Depends(cart_limiter)])
async def remove_item(
    item_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CartCache = Depends(get_cart_cache),
):
    if not await crud.remove_cart_item(db, user.user_id, item_id):
        raise HTTPException(status_code=404, detail="Cart item not found")
    await cache.invalidate(user.user_id)
    return success_response(None, "Item removed from cart")

@router.post("/checkout")
async def checkout(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CartCache = Depends(get_cart_cache),
):
    order = await process_checkout(db, user.user_id, cache)
    return success_response(order, "Order placed successfully")

@router.get("/purchases")
async def purchases(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await crud.get_purchases_for_user(db, user.user_id)
    return success_response({"purchases": [crud.serialize_purchase(p) for p in rows]})
