"""User profile and billing history endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reagent.auth import require_user
from reagent.database import get_db
from reagent.models import BillingLogEntry, User

router = APIRouter(prefix="/me", tags=["user"])


@router.get("")
async def me(user: User = Depends(require_user)):
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "free_trial_used": user.free_trial_used,
        "subscription_status": user.subscription_status,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


@router.get("/billing")
async def billing_history(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(BillingLogEntry)
        .where(BillingLogEntry.user_id == user.id)
        .order_by(BillingLogEntry.created_at.desc())
        .limit(100)
    )
    return [
        {
            "id": e.id,
            "project_id": e.project_id,
            "amount": e.amount,
            "currency": e.currency,
            "package": e.package_type,
            "transaction_type": e.transaction_type,
            "status": e.status,
            "reference": e.stripe_payment_intent_id,
            "created_at": e.created_at.isoformat() if e.created_at else None,
        }
        for e in result.scalars().all()
    ]
