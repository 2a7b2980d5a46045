import pytest
import pytest_asyncio

from shoppy import crud
from shoppy.agents.cart_agent import CartReconciler, failed_mutation, get_cart_summary, pick_best_match
from shoppy.agents.extractor import CandidateProduct
from shoppy.errors import NoMatchingProductError
from shoppy.shopify import Product

from conftest import product_node


@pytest_asyncio.fixture
async def user(db_session):
    return await crud.create_user(db_session, "bob@example.com", "bob", "secret123")


@pytest.fixture
def reconciler(shopify, cart_cache):
    return CartReconciler(shopify, cart_cache)


def make_product(pid, title, price):
    return Product.from_node(product_node(pid, title, price), "test-store.myshopify.com")


def test_pick_best_match_defaults_to_first():
    products = [make_product(1, "A Tee", 10.0), make_product(2, "B Tee", 30.0)]
    assert pick_best_match(products, 0.0, 5.0).title == "A Tee"


def test_pick_best_match_prefers_price_within_tolerance():
    products = [make_product(1, "A Tee", 10.0), make_product(2, "B Tee", 30.0), make_product(3, "C Tee", 33.0)]
    assert pick_best_match(products, 32.0, 5.0).title == "B Tee"
    assert pick_best_match(products, 100.0, 5.0).title == "A Tee"


async def test_scenario_new_item_inserted(db_session, user, storefront, reconciler):
    storefront.catalog = [product_node(1, "Burgundy V-Neck Tee", 19.99), product_node(2, "Classic Striped Tee", 25.99)]
    candidate = CandidateProduct("Burgundy T-Shirt", 0.0)

    result = await reconciler.add_best_match(db_session, user.user_id, candidate, "I want 1 burgundy t-shirt")

    assert result.success
    assert result.action == "added_to_cart"
    assert result.product["productName"] == "Burgundy V-Neck Tee"
    assert result.cart_count == 1
    assert result.cart_total == 19.99
    items = await crud.get_cart_items(db_session, user.user_id)
    assert len(items) == 1
    assert items[0].quantity == 1
    assert crud.money_float(items[0].total) == 19.99


async def test_repeat_add_merges_into_one_row(db_session, user, reconciler):
    candidate = CandidateProduct("Burgundy Tee", 0.0)
    first = await reconciler.add_best_match(db_session, user.user_id, candidate, "burgundy tee")
    second = await reconciler.add_best_match(db_session, user.user_id, candidate, "burgundy tee")

    assert first.action == "added_to_cart"
    assert second.action == "updated_cart"
    items = await crud.get_cart_items(db_session, user.user_id)
    assert len(items) == 1
    assert items[0].quantity == 2
    assert crud.money_float(items[0].total) == 39.98
    assert second.cart_count == 1
    assert second.cart_total == 39.98


async def test_colour_only_retry(db_session, user, storefront, reconciler):
    candidate = CandidateProduct("", 0.0)
    result = await reconciler.add_best_match(db_session, user.user_id, candidate, "something navy please")
    assert result.product["productName"] == "Navy Hoodie"
    assert storefront.queries[0].startswith("(title:*navy*")


async def test_no_matching_product(db_session, user, reconciler):
    with pytest.raises(NoMatchingProductError):
        await reconciler.add_best_match(db_session, user.user_id, CandidateProduct("Purple Kimono"), "purple kimono")
    assert await crud.get_cart_items(db_session, user.user_id) == []


async def test_add_invalidates_cached_aggregates(db_session, user, reconciler, fake_redis):
    fake_redis.store[f"cart_count:{user.user_id}"] = '{"count": 0, "total": 0.0}'
    await reconciler.add_best_match(db_session, user.user_id, CandidateProduct("Navy Hoodie"), "navy hoodie")
    assert f"cart_count:{user.user_id}" not in fake_redis.store


async def test_cart_summary_matches_rows(db_session, user, reconciler):
    await reconciler.add_best_match(db_session, user.user_id, CandidateProduct("Navy Hoodie"), "")
    await reconciler.add_best_match(db_session, user.user_id, CandidateProduct("Classic Striped Tee"), "")
    summary = await get_cart_summary(db_session, user.user_id)
    assert summary["count"] == 2
    assert summary["total"] == round(49.99 + 25.99, 2)
    assert {i["productName"] for i in summary["items"]} == {"Navy Hoodie", "Classic Striped Tee"}


def test_failed_mutation_shape():
    out = failed_mutation("No matching products found in store").to_dict()
    assert out == {
        "success": False,
        "action": "add_to_cart_failed",
        "message": "Sorry, I couldn't add that item to your cart automatically.",
        "error": "No matching products found in store",
    }
