"""Thin wrappers around the Stripe SDK."""

from __future__ import annotations

from fastapi import HTTPException

from reagent.config import settings
from reagent.models import User


def _stripe_configured() -> bool:
    return bool(settings.stripe_secret_key)


def _get_stripe():
    if not _stripe_configured():
        raise HTTPException(status_code=404, detail="Payments not configured")
    import stripe
    stripe.api_key = settings.stripe_secret_key
    return stripe


def ensure_customer(user: User) -> str:
    """Return the user's Stripe customer id, creating the customer on first use.

    The caller is responsible for committing ``user.stripe_customer_id``.
    """
    if not user.stripe_customer_id:
        stripe = _get_stripe()
        customer = stripe.Customer.create(
            email=user.email, name=user.name or None, metadata={"user_id": user.id}
        )
        user.stripe_customer_id = customer.id
    return user.stripe_customer_id


def create_checkout_session(
    *,
    customer_id: str,
    project_id: str,
    project_name: str,
    package: str,
    amount: int,
    metadata: dict,
) -> tuple[str, str]:
    """Create a one-off Checkout Session. Returns ``(session_id, redirect_url)``."""
    stripe = _get_stripe()
    base_url = settings.site_url.rstrip("/")
    session = stripe.checkout.Session.create(
        customer=customer_id,
        payment_method_types=["card"],
        line_items=[
            {
                "price_data": {
                    "currency": settings.currency,
                    "product_data": {
                        "name": f"{package.capitalize()} Package - {project_name}",
                        "description": f"AI image processing for {package} package",
                    },
                    "unit_amount": amount,
                },
                "quantity": 1,
            }
        ],
        mode="payment",
        success_url=f"{base_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base_url}/payment/{project_id}",
        metadata=metadata,
    )
    return session.id, session.url


def create_payment_intent(*, customer_id: str, amount: int, metadata: dict) -> tuple[str, str]:
    """Create a PaymentIntent for the embedded flow. Returns ``(intent_id, client_secret)``."""
    stripe = _get_stripe()
    intent = stripe.PaymentIntent.create(
        amount=amount,
        currency=settings.currency,
        customer=customer_id,
        metadata=metadata,
    )
    return intent.id, intent.client_secret
