"""Checkout validation and billing bookkeeping shared by both payment flows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reagent import stripe_client
from reagent.config import settings
from reagent.logger import logger
from reagent.models import BillingLogEntry, Project, User
from reagent.projects import count_images
from reagent.tier import get_display_name, get_image_limit, get_price_minor_units

CHECKOUT_SESSION = "checkout_session"
PAYMENT_INTENT = "payment_intent"


@dataclass
class CheckoutQuote:
    project: Project
    package: str
    amount: int  # minor units


@dataclass
class PaymentStarted:
    reference: str
    url: str | None = None
    client_secret: str | None = None


async def authorize_checkout(
    db: AsyncSession, user: User, project_id: str | None, package: str | None
) -> CheckoutQuote:
    """Validate a purchase request and price it. Raises HTTPException on failure."""
    if not project_id or not package:
        raise HTTPException(status_code=400, detail="Missing projectId or package")

    result = await db.execute(
        select(Project).where(
            Project.id == project_id,
            Project.user_id == user.id,
            Project.status == "draft",
        )
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found or not accessible")

    amount = get_price_minor_units(package)
    if amount is None:
        raise HTTPException(status_code=400, detail="Invalid package")

    image_count = await count_images(db, project.id)
    limit = get_image_limit(package)
    if image_count > limit:
        raise HTTPException(
            status_code=400,
            detail=(
                f"The {get_display_name(package)} package allows {limit} images but this "
                f"project has {image_count}. Remove some images or choose a larger package."
            ),
        )

    return CheckoutQuote(project=project, package=package, amount=amount)


async def start_payment(
    db: AsyncSession, user: User, project_id: str | None, package: str | None, flow: str
) -> PaymentStarted:
    """Validate, open a Stripe session or intent, and log the attempt."""
    quote = await authorize_checkout(db, user, project_id, package)
    metadata = {"projectId": quote.project.id, "userId": user.id, "package": quote.package}

    try:
        known_customer = user.stripe_customer_id
        customer_id = stripe_client.ensure_customer(user)
        if customer_id != known_customer:
            await db.commit()
        if flow == CHECKOUT_SESSION:
            reference, url = stripe_client.create_checkout_session(
                customer_id=customer_id,
                project_id=quote.project.id,
                project_name=quote.project.name,
                package=quote.package,
                amount=quote.amount,
                metadata=metadata,
            )
            started = PaymentStarted(reference=reference, url=url)
        else:
            reference, client_secret = stripe_client.create_payment_intent(
                customer_id=customer_id, amount=quote.amount, metadata=metadata
            )
            started = PaymentStarted(reference=reference, client_secret=client_secret)
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Stripe {flow} creation failed for project {quote.project.id}")
        raise HTTPException(status_code=500, detail="Internal server error")

    await record_payment_attempt(db, user, quote, started.reference, flow)
    return started


async def record_payment_attempt(
    db: AsyncSession, user: User, quote: CheckoutQuote, reference: str, flow: str
) -> BillingLogEntry:
    """Append a pending billing row and, if configured, mark the project paid."""
    project = quote.project
    if settings.mark_paid_on_checkout:
        project.status = "paid"
    project.package = quote.package

    entry = BillingLogEntry(
        user_id=user.id,
        project_id=project.id,
        stripe_payment_intent_id=reference,
        amount=quote.amount,
        currency=settings.currency,
        package_type=quote.package,
        transaction_type=flow,
        status="pending",
    )
    db.add(entry)
    project.billing_log = [
        *(project.billing_log or []),
        {
            "reference": reference,
            "amount": quote.amount,
            "currency": settings.currency,
            "package": quote.package,
            "status": "pending",
            "created_at": datetime.now(timezone.utc).isoformat(),
        },
    ]
    await db.commit()
    logger.info(f"Logged {flow} {reference} for project {project.id} ({quote.amount} {settings.currency})")
    return entry
