# shoppy/storefront.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from .deps import get_shopify_client
from .errors import NotFoundError, StorefrontError
from .responses import success_response
from .shopify import ShopifyClient, format_products_for_chat

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shopify", tags=["shopify"])

class SearchIn(BaseModel):
    query: str = Field(min_length=1, max_length=200)
    limit: Optional[int] = Field(default=5, ge=1, le=50)

@router.post("/search")
async def search_products(payload: SearchIn, shopify: ShopifyClient = Depends(get_shopify_client)):
    products = await shopify.search_multiple(payload.query.strip(), payload.limit or 5)
    return success_response({
        "products": [p.to_dict() for p in products],
        "count": len(products),
        "formattedResponse": format_products_for_chat(products),
    })

@router.get("/featured")
async def featured_products(
    limit: int = Query(10, ge=1, le=50),
    shopify: ShopifyClient = Depends(get_shopify_client),
):
    try:
        products = await shopify.get_featured_products(limit)
    except StorefrontError as e:
        logger.warning("[SHOPIFY] featured products unavailable: %s", e)
        products = []
    return success_response({"products": [p.to_dict() for p in products], "count": len(products)})

@router.get("/product/{handle}")
async def product_by_handle(handle: str, shopify: ShopifyClient = Depends(get_shopify_client)):
    product = await shopify.get_product_by_handle(handle)
    if product is None:
        raise NotFoundError("Product not found")
    return success_response({"product": product.to_dict()})
