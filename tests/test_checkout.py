import pytest
import pytest_asyncio
from sqlalchemy import func, select

from shoppy import crud
from shoppy.agents.cart_agent import add_item
from shoppy.agents.checkout_agent import process_checkout
from shoppy.errors import CartEmptyError
from shoppy.models import PurchaseHistory


@pytest_asyncio.fixture
async def user(db_session):
    return await crud.create_user(db_session, "carol@example.com", "carol", "secret123")


async def fill_cart(db, cache, user_id):
    await add_item(db, cache, user_id, {
        "product_id": "gid://shopify/Product/1", "product_name": "Burgundy V-Neck Tee", "price": 19.99, "quantity": 1,
    })
    await add_item(db, cache, user_id, {
        "product_id": "gid://shopify/Product/2", "product_name": "Classic Striped Tee", "price": 25.99, "quantity": 1,
    })


async def test_checkout_moves_cart_into_one_order(db_session, user, cart_cache):
    await fill_cart(db_session, cart_cache, user.user_id)

    order = await process_checkout(db_session, user.user_id, cart_cache)

    assert order["orderId"].startswith("ORD-")
    assert order["totalAmount"] == 45.98
    assert len(order["purchases"]) == 2
    assert {p["orderId"] for p in order["purchases"]} == {order["orderId"]}
    assert await crud.get_cart_items(db_session, user.user_id) == []

    rows = await crud.get_purchases_for_order(db_session, user.user_id, order["orderId"])
    assert sorted(r.product_name for r in rows) == ["Burgundy V-Neck Tee", "Classic Striped Tee"]
    assert all(r.status == "completed" for r in rows)


async def test_checkout_snapshot_keeps_quantities(db_session, user, cart_cache):
    await fill_cart(db_session, cart_cache, user.user_id)
    await add_item(db_session, cart_cache, user.user_id, {
        "product_id": "gid://shopify/Product/1", "product_name": "Burgundy V-Neck Tee", "price": 19.99, "quantity": 2,
    })

    order = await process_checkout(db_session, user.user_id)

    tee = next(p for p in order["purchases"] if p["productId"] == "gid://shopify/Product/1")
    assert tee["quantity"] == 3
    assert tee["total"] == 59.97
    assert order["totalAmount"] == 85.96


async def test_empty_cart_is_rejected(db_session, user):
    with pytest.raises(CartEmptyError):
        await process_checkout(db_session, user.user_id)
    count = (await db_session.execute(select(func.count(PurchaseHistory.id)))).scalar_one()
    assert count == 0


async def test_checkout_invalidates_cache(db_session, user, cart_cache, fake_redis):
    await fill_cart(db_session, cart_cache, user.user_id)
    fake_redis.store[f"cart_count:{user.user_id}"] = '{"count": 2, "total": 45.98}'
    await process_checkout(db_session, user.user_id, cart_cache)
    assert fake_redis.store == {}
