"""
Authentication API endpoints
- Registration and login (JWT access + refresh tokens)
- Refresh token rotation and logout
- Profile of the signed-in user
"""
from fastapi import APIRouter, Depends, status

from app.core.auth import TokenUser, get_current_user
from app.core.dependencies import get_auth_service
from app.core.rate_limit import auth_rate_limit
from app.domain.user import LoginRequest, RefreshRequest, UserCreate
from app.services.auth_service import AuthService


router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)]
)
def register(data: UserCreate, service: AuthService = Depends(get_auth_service)):
    """Create an account; 409 if the email is already registered"""
    user, tokens = service.register(data)

    return {
        "status": "success",
        "message": "User registered successfully",
        "data": {
            "user": user.to_dict(),
            **tokens.model_dump()
        }
    }


@router.post("/login", dependencies=[Depends(auth_rate_limit)])
def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    user, tokens = service.login(data.email, data.password)

    return {
        "status": "success",
        "message": "Login successful",
        "data": {
            "user": user.to_dict(),
            **tokens.model_dump()
        }
    }


@router.post("/refresh")
def refresh(data: RefreshRequest, service: AuthService = Depends(get_auth_service)):
    """Exchange a refresh token for a new token pair (the old one is revoked)"""
    tokens = service.refresh(data.refresh_token)

    return {
        "status": "success",
        "data": tokens.model_dump()
    }


@router.post("/logout")
def logout(
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    service.logout(user.id)

    return {
        "status": "success",
        "message": "Logout successful"
    }


@router.get("/profile")
def get_profile(
    user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    profile = service.get_profile(user.id)

    return {
        "status": "success",
        "data": profile.to_dict()
    }
