from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin
from app.core.config import get_settings
from app.database import get_db
from app.models import User
from app.schemas import (
    AckResponse,
    ErrorResponse,
    FoodCreateResponse,
    FoodListResponse,
    FoodRemoveRequest,
    FoodResponse,
)
from app.services.catalog import CatalogService

router = APIRouter(prefix="/food", tags=["food"])


def get_service(db: AsyncSession) -> CatalogService:
    settings = get_settings()
    return CatalogService(db, settings.upload_directory, settings.max_upload_bytes)


@router.get("/list", response_model=FoodListResponse)
async def list_food(db: AsyncSession = Depends(get_db)):
    foods = await get_service(db).list_foods()
    return FoodListResponse(data=[FoodResponse.model_validate(f) for f in foods])


@router.post(
    "/add",
    response_model=FoodCreateResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def add_food(
    name: str = Form(...),
    description: str = Form(...),
    price: float = Form(...),
    category: str = Form(...),
    image: UploadFile = File(...),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    content = await image.read()
    food = await get_service(db).add_food(
        name=name,
        description=description,
        price=price,
        category=category,
        image_filename=image.filename or "",
        image_content=content,
        image_content_type=image.content_type,
    )
    return FoodCreateResponse(message="Food Added", data=FoodResponse.model_validate(food))


@router.post(
    "/remove",
    response_model=AckResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def remove_food(
    payload: FoodRemoveRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await get_service(db).remove_food(payload.id)
    return AckResponse(message="Food Removed")
