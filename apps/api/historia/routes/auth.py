"""Authentication routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from historia.routes.dependencies import get_authenticated_principal, get_user_service
from historia.schemas.auth import LoginRequest, Principal, RegisterRequest, TokenCheckResponse, TokenResponse, UserProfile
from historia.schemas.error import AuthenticationError, ErrorResponse, NotFoundError, ValidationError
from historia.services.users import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ValidationError}, 409: {"model": ErrorResponse}},
)
async def register(
    payload: RegisterRequest,
    service: Annotated[UserService, Depends(get_user_service)],
) -> TokenResponse:
    return service.register(payload)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={400: {"model": ValidationError}, 401: {"model": AuthenticationError}},
)
async def login(
    payload: LoginRequest,
    service: Annotated[UserService, Depends(get_user_service)],
) -> TokenResponse:
    return service.login(email=payload.email, password=payload.password)


@router.get(
    "/check-token",
    response_model=TokenCheckResponse,
    responses={401: {"model": AuthenticationError}},
)
async def check_token(
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
) -> TokenCheckResponse:
    return TokenCheckResponse(valid=True, user=principal)


@router.get(
    "/profile",
    response_model=UserProfile,
    responses={401: {"model": AuthenticationError}, 404: {"model": NotFoundError}},
)
async def profile(
    principal: Annotated[Principal, Depends(get_authenticated_principal)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserProfile:
    return service.get_profile(principal.user_id)
