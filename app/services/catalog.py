"""
Catalog Service

Food items and their images. Images live on local disk under
UPLOAD_DIRECTORY and are served by the /images static mount.
"""

import logging
import re
import time
from pathlib import Path
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InputValidationError, NotFoundError
from app.models import FoodItem

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def build_image_filename(original_name: str) -> str:
    """
    Build a stored file name: ``<epoch-ms><sanitized original name>``.

    Directory components are dropped from the client-supplied name.
    """
    base = Path(original_name or "").name
    base = _UNSAFE_FILENAME_CHARS.sub("_", base).lstrip(".") or "image"
    return f"{int(time.time() * 1000)}{base}"


class CatalogService:

    def __init__(self, db: AsyncSession, upload_dir: str | Path, max_upload_bytes: Optional[int] = None):
        self.db = db
        self.upload_dir = Path(upload_dir)
        self.max_upload_bytes = max_upload_bytes

    async def list_foods(self) -> list[FoodItem]:
        result = await self.db.execute(select(FoodItem).order_by(FoodItem.id))
        return list(result.scalars().all())

    async def get_food(self, food_id: int) -> FoodItem:
        food = await self.db.get(FoodItem, food_id)
        if not food:
            raise NotFoundError(f"Food item #{food_id} not found")
        return food

    def _store_image(self, filename: str, content: bytes, content_type: Optional[str]) -> str:
        if not content:
            raise InputValidationError("Image file is required")
        if not content_type or not content_type.startswith("image/"):
            raise InputValidationError("Uploaded file must be an image")
        if self.max_upload_bytes and len(content) > self.max_upload_bytes:
            raise InputValidationError("Image file is too large")

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        stored_name = build_image_filename(filename)
        (self.upload_dir / stored_name).write_bytes(content)
        return stored_name

    def _delete_image(self, stored_name: str) -> None:
        path = self.upload_dir / Path(stored_name).name
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning(f"Image {stored_name} already missing from {self.upload_dir}")

    async def add_food(
        self,
        name: str,
        description: str,
        price: float,
        category: str,
        image_filename: str,
        image_content: bytes,
        image_content_type: Optional[str] = None,
    ) -> FoodItem:
        """
        Store the image and create the catalog entry.

        Raises:
            InputValidationError: Missing fields, non-positive price, bad image
        """
        name, description, category = name.strip(), description.strip(), category.strip()
        if not name or not description or not category:
            raise InputValidationError("Name, description and category are required")
        if price <= 0:
            raise InputValidationError("Price must be greater than 0")

        stored_name = self._store_image(image_filename, image_content, image_content_type)

        food = FoodItem(
            name=name,
            description=description,
            price=round(price, 2),
            category=category,
            image=stored_name,
        )
        self.db.add(food)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self._delete_image(stored_name)
            raise
        await self.db.refresh(food)

        logger.info(f"Food item #{food.id} added: {food.name} ({food.price:.2f})")
        return food

    async def remove_food(self, food_id: int) -> None:
        """Delete the catalog entry and its image file."""
        food = await self.get_food(food_id)
        stored_name = food.image

        await self.db.delete(food)
        await self.db.commit()
        self._delete_image(stored_name)

        logger.info(f"Food item #{food_id} removed")
