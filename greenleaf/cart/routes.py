from fastapi import APIRouter, Depends, Request

from greenleaf.cart.schemas import CartItemAdd, CartItemUpdate, CartResponse
from greenleaf.cart.store import CartStore
from greenleaf.catalog.store import CatalogStore
from greenleaf.shared.security_config import limiter
from greenleaf.shared.utils import SuccessResponse, get_current_user

router = APIRouter(prefix="/api/cart", tags=["cart"])


def get_cart_store(request: Request) -> CartStore:
    return CartStore(request.app.mongodb, CatalogStore(request.app.mongodb))


@router.get("", response_model=SuccessResponse[CartResponse])
@limiter.limit("60/minute")
async def get_cart(request: Request, user: dict = Depends(get_current_user), carts: CartStore = Depends(get_cart_store)):
    return SuccessResponse(data=CartResponse(**await carts.view(user["sub"])))

@router.post("/items", response_model=SuccessResponse[CartResponse])
async def add_to_cart(item: CartItemAdd, user: dict = Depends(get_current_user), carts: CartStore = Depends(get_cart_store)):
    await carts.add_item(user["sub"], item.product_id, item.quantity)
    return SuccessResponse(data=CartResponse(**await carts.view(user["sub"])), message="Item added to cart")

@router.put("/items/{product_id}", response_model=SuccessResponse[CartResponse])
async def update_cart_item(product_id: str, update: CartItemUpdate, user: dict = Depends(get_current_user), carts: CartStore = Depends(get_cart_store)):
    await carts.set_item_quantity(user["sub"], product_id, update.quantity)
    return SuccessResponse(data=CartResponse(**await carts.view(user["sub"])))

@router.delete("/items/{product_id}", response_model=SuccessResponse[CartResponse])
async def remove_cart_item(product_id: str, user: dict = Depends(get_current_user), carts: CartStore = Depends(get_cart_store)):
    await carts.remove_item(user["sub"], product_id)
    return SuccessResponse(data=CartResponse(**await carts.view(user["sub"])))

@router.delete("", response_model=SuccessResponse[dict])
async def clear_cart(user: dict = Depends(get_current_user), carts: CartStore = Depends(get_cart_store)):
    await carts.clear(user["sub"])
    return SuccessResponse(message="Cart cleared successfully")
