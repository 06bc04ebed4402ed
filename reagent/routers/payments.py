"""Stripe payment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reagent.auth import require_user
from reagent.billing import CHECKOUT_SESSION, PAYMENT_INTENT, start_payment
from reagent.database import get_db
from reagent.models import User
from reagent.schemas import CheckoutRequest

router = APIRouter(prefix="/api", tags=["payments"])


@router.post("/create-checkout-session")
async def create_checkout_session(
    body: CheckoutRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    started = await start_payment(db, user, body.project_id, body.package, CHECKOUT_SESSION)
    return {"url": started.url}


@router.post("/create-payment-intent")
async def create_payment_intent(
    body: CheckoutRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    started = await start_payment(db, user, body.project_id, body.package, PAYMENT_INTENT)
    return {"clientSecret": started.client_secret}
