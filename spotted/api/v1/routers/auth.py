import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from spotted.core.config import settings
from spotted.core.database import aget_db
from spotted.core.security import AUTH_COOKIE, create_jwt_token, get_current_user
from spotted.models.user import Profile
from spotted.schemas.User import AuthResponse, CurrentUserResponse, LoginRequest, ProfileOut, SignupRequest
from spotted.services import provisioning

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


def set_auth_cookie(response: JSONResponse, token: str, expires: timedelta):
    """Helper function to set auth cookie with consistent attributes"""
    production = settings.ENVIRONMENT == "production"
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        secure=production,
        samesite="none" if production else "lax",
        domain=None if production else settings.COOKIE_DOMAIN,
        path="/",
        max_age=int(expires.total_seconds())
    )


def _auth_response(message: str, profile: Profile, expires: timedelta, status_code: int = 200) -> JSONResponse:
    token = create_jwt_token({"sub": profile.id}, expires)
    body = AuthResponse(
        message=message,
        access_token=token,
        profile=ProfileOut.model_validate(profile),
    )
    response = JSONResponse(body.model_dump(mode="json"), status_code=status_code)
    set_auth_cookie(response, token, expires)
    return response


@router.post("/signup", status_code=201, response_model=AuthResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def signup(
    request: Request,
    payload: SignupRequest,
    db: AsyncSession = Depends(aget_db)
):
    profile = await provisioning.signup(db, payload.email, payload.password, payload.full_name)
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _auth_response("Account created", profile, expires, status_code=status.HTTP_201_CREATED)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncSession = Depends(aget_db)
):
    account = await provisioning.authenticate(db, payload.email, payload.password)
    if account is None:
        raise HTTPException(status_code=401, detail="Incorrect email or password")

    profile = await provisioning.ensure_profile(db, account)

    if payload.remember:
        expires = timedelta(days=settings.REMEMBER_ME_EXPIRE_DAYS)
    else:
        expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _auth_response("Logged in", profile, expires)


@router.get("/me", response_model=CurrentUserResponse)
async def me(user: Profile = Depends(get_current_user)):
    return CurrentUserResponse(
        authenticated=True,
        user_id=user.id,
        profile=ProfileOut.model_validate(user),
    )


@router.post("/logout")
async def logout():
    response = JSONResponse({"message": "Logged out"})
    response.delete_cookie(AUTH_COOKIE)
    return response
