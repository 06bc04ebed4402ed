"""Authentication: Google OAuth + JWT."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import Cookie, Depends, HTTPException, Request
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reagent.config import settings
from reagent.database import get_db
from reagent.logger import logger
from reagent.models import Project, User

TOKEN_COOKIE = "reagent_token"


def create_jwt(user_id: str, email: str) -> str:
    """Create a signed JWT for the given user."""
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expire_hours)
    payload = {"sub": user_id, "email": email, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> dict | None:
    """Decode and verify a JWT. Returns payload or None."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_current_user(
    request: Request,
    reagent_token: str | None = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """FastAPI dependency: returns the logged-in User or None."""
    token = reagent_token
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    if not token:
        return None
    payload = decode_jwt(token)
    if not payload or "sub" not in payload:
        return None
    result = await db.execute(select(User).where(User.id == payload["sub"]))
    return result.scalar_one_or_none()


async def require_user(user: User | None = Depends(get_current_user)) -> User:
    """FastAPI dependency: like get_current_user but answers 401 for anonymous callers."""
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def auth_configured() -> bool:
    """Check if Google OAuth credentials are configured."""
    return bool(settings.google_client_id and settings.google_client_secret)


async def ensure_user_profile(
    db: AsyncSession, email: str, name: str = "", google_id: str | None = None
) -> tuple[User, bool]:
    """Fetch or create the profile for ``email``. Returns ``(user, created)``.

    A freshly created profile gets a draft starter project to try the product.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is not None:
        if google_id and not user.google_id:
            user.google_id = google_id
            await db.commit()
        return user, False

    user = User(email=email, name=name, google_id=google_id)
    db.add(user)
    await db.flush()
    db.add(
        Project(
            user_id=user.id,
            name=settings.free_trial_project_name,
            status="draft",
            package="starter",
        )
    )
    await db.commit()
    await db.refresh(user)
    logger.info(f"Created profile and free trial project for {email}")
    return user, True
