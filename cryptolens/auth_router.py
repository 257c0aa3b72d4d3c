import secrets

from fastapi import APIRouter
from pydantic import BaseModel

from cryptolens.auth import create_access_token
from cryptolens.config import settings
from cryptolens.exceptions import UnauthorizedError

router = APIRouter()


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest) -> TokenResponse:
    valid_user = secrets.compare_digest(data.username.encode(), settings.auth_username.encode())
    valid_password = secrets.compare_digest(data.password.encode(), settings.auth_password.encode())
    if not (valid_user and valid_password):
        raise UnauthorizedError("Invalid credentials")
    return TokenResponse(
        access_token=create_access_token(data.username),
        expires_in=settings.jwt_expire_minutes * 60,
    )
