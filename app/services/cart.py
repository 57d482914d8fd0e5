"""
Cart Service

The cart is a mapping of str(food item id) -> quantity embedded in the
user row. Concurrent updates for the same user are last-write-wins.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models import FoodItem, User

logger = logging.getLogger(__name__)


class CartService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def _save(self, user: User, cart: dict[str, int], commit: bool = True) -> dict[str, int]:
        # Assign a new dict so the JSON column is flagged dirty
        user.cart_data = cart
        if commit:
            await self.db.commit()
        return dict(cart)

    # query
    async def get_cart(self, user_id: int) -> dict[str, int]:
        user = await self._get_user(user_id)
        return dict(user.cart_data or {})

    # commands
    async def add_item(self, user_id: int, item_id: int) -> dict[str, int]:
        """Increment the item's quantity, creating the entry at 1."""
        user = await self._get_user(user_id)

        if not await self.db.get(FoodItem, item_id):
            raise NotFoundError(f"Food item #{item_id} not found")

        cart = dict(user.cart_data or {})
        key = str(item_id)
        cart[key] = cart.get(key, 0) + 1

        logger.debug(f"Cart of user #{user_id}: item {key} -> {cart[key]}")
        return await self._save(user, cart)

    async def remove_item(self, user_id: int, item_id: int) -> dict[str, int]:
        """Decrement the item's quantity; drop the entry at zero. Absent items are a no-op."""
        user = await self._get_user(user_id)

        cart = dict(user.cart_data or {})
        key = str(item_id)
        if key not in cart:
            return cart

        quantity = cart[key] - 1
        if quantity > 0:
            cart[key] = quantity
        else:
            del cart[key]

        logger.debug(f"Cart of user #{user_id}: item {key} -> {max(quantity, 0)}")
        return await self._save(user, cart)

    async def clear_cart(self, user_id: int, commit: bool = True) -> None:
        """Empty the cart. With commit=False the change joins the caller's transaction."""
        user = await self._get_user(user_id)
        await self._save(user, {}, commit=commit)
        logger.info(f"Cart of user #{user_id} cleared")
