"""
Users API Endpoints
Per-account saved cart and wishlist

Every route requires a bearer token whose user matches the path id.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.core.auth import TokenUser, get_current_user
from app.domain.user import CartItem, User
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()


# Request models
class CartPayload(BaseModel):
    cartItems: Optional[List[CartItem]] = Field(default=None)


class WishlistAdd(BaseModel):
    productId: Optional[str] = None


def _check_owner(user_id: str, user: TokenUser):
    if user_id != user.id:
        raise HTTPException(status_code=403, detail="Access denied")


def _get_user(repo: UserRepository, user_id: str) -> User:
    account = repo.find_by_id(user_id)
    if not account:
        raise HTTPException(status_code=404, detail="User not found")
    return account


@router.get("/{user_id}/cart")
async def get_cart(user_id: str, user: TokenUser = Depends(get_current_user)):
    """Get the saved cart (null when the account never saved one)"""
    _check_owner(user_id, user)
    try:
        account = UserRepository().find_by_id(user_id)
        cart = account.saved_cart if account else None
        return {"cart": [item.to_dict() for item in cart] if cart is not None else None}

    except Exception as e:
        logger.exception(f"Error fetching cart for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch cart")


@router.post("/{user_id}/cart")
async def save_cart(
    user_id: str,
    payload: CartPayload,
    user: TokenUser = Depends(get_current_user)
):
    """
    Replace the saved cart

    The server cart persists after logout so it can be offered again at the next login.
    """
    _check_owner(user_id, user)
    try:
        saved = UserRepository().save_cart(user_id, payload.cartItems or [])

    except Exception as e:
        logger.exception(f"Error saving cart for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save cart")

    if saved is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"cart": [item.to_dict() for item in saved]}


@router.get("/{user_id}/wishlist")
async def get_wishlist(user_id: str, user: TokenUser = Depends(get_current_user)):
    """Get wishlisted product ids"""
    _check_owner(user_id, user)
    account = _get_user(UserRepository(), user_id)
    return {"wishlist": account.wishlist}


@router.post("/{user_id}/wishlist")
async def add_to_wishlist(
    user_id: str,
    payload: WishlistAdd,
    user: TokenUser = Depends(get_current_user)
):
    """Add a product to the wishlist (adding twice is a no-op)"""
    _check_owner(user_id, user)
    if not payload.productId:
        raise HTTPException(status_code=400, detail="Product ID is required")

    repo = UserRepository()
    account = _get_user(repo, user_id)
    wishlist = list(account.wishlist)
    if payload.productId not in wishlist:
        wishlist.append(payload.productId)
        wishlist = repo.set_wishlist(user_id, wishlist)

    return {"message": "Added to wishlist", "wishlist": wishlist}


@router.get("/{user_id}/wishlist/{product_id}")
async def is_in_wishlist(
    user_id: str,
    product_id: str,
    user: TokenUser = Depends(get_current_user)
):
    _check_owner(user_id, user)
    account = _get_user(UserRepository(), user_id)
    return {"inWishlist": product_id in account.wishlist}


@router.delete("/{user_id}/wishlist/{product_id}")
async def remove_from_wishlist(
    user_id: str,
    product_id: str,
    user: TokenUser = Depends(get_current_user)
):
    """Remove a product from the wishlist"""
    _check_owner(user_id, user)

    repo = UserRepository()
    account = _get_user(repo, user_id)
    wishlist = [item for item in account.wishlist if item != product_id]
    if len(wishlist) != len(account.wishlist):
        wishlist = repo.set_wishlist(user_id, wishlist)

    return {"message": "Removed from wishlist", "wishlist": wishlist}
