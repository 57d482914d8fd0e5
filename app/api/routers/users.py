from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas import ErrorResponse, LoginRequest, RegisterRequest, TokenResponse
from app.services.auth import AuthService

router = APIRouter(tags=["users"])


@router.post(
    "/register",
    response_model=TokenResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)):
    _, token = await AuthService(db).register(payload.email, payload.password, payload.name)
    return TokenResponse(token=token)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    _, token = await AuthService(db).login(payload.email, payload.password)
    return TokenResponse(token=token)
