"""Google OAuth authentication endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from reagent.auth import TOKEN_COOKIE, auth_configured, create_jwt, ensure_user_profile
from reagent.config import settings
from reagent.database import get_db

router = APIRouter(prefix="/auth", tags=["auth"])


def _require_auth():
    if not auth_configured():
        raise HTTPException(status_code=404, detail="Authentication not configured")


def _oauth():
    from authlib.integrations.starlette_client import OAuth

    oauth = OAuth()
    oauth.register(
        name="google",
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_kwargs={"scope": "openid email profile"},
    )
    return oauth


@router.get("/google")
async def google_login(request: Request):
    _require_auth()
    redirect_uri = str(request.url_for("google_callback"))
    return await _oauth().google.authorize_redirect(request, redirect_uri)


@router.get("/callback")
async def google_callback(request: Request, db: AsyncSession = Depends(get_db)):
    _require_auth()
    token = await _oauth().google.authorize_access_token(request)
    userinfo = token.get("userinfo", {})

    email = userinfo.get("email")
    if not email:
        raise HTTPException(status_code=400, detail="Could not get email from Google")

    user, _ = await ensure_user_profile(
        db, email, name=userinfo.get("name", ""), google_id=userinfo.get("sub")
    )

    jwt_token = create_jwt(user.id, user.email)
    response = RedirectResponse(url=f"{settings.site_url.rstrip('/')}/dashboard")
    response.set_cookie(
        TOKEN_COOKIE,
        jwt_token,
        httponly=True,
        samesite="lax",
        max_age=settings.jwt_expire_hours * 3600,
    )
    return response


@router.get("/logout")
async def logout():
    response = RedirectResponse(url=settings.site_url)
    response.delete_cookie(TOKEN_COOKIE)
    return response
