"""Package tiers: image quotas, prices and included features."""

from __future__ import annotations

from fastapi import HTTPException

PACKAGES = ("starter", "pro", "unlimited")

PACKAGE_IMAGE_LIMITS = {"starter": 6, "pro": 30, "unlimited": 30}
DEFAULT_IMAGE_LIMIT = PACKAGE_IMAGE_LIMITS["starter"]

# Whole euros. "unlimited" has no self-serve price.
PACKAGE_PRICES = {"starter": 50, "pro": 250}

PACKAGE_DISPLAY_NAMES = {"starter": "Starter", "pro": "Pro", "unlimited": "Unlimited"}


def get_image_limit(package: str | None) -> int:
    """Return the maximum number of images a project on ``package`` may hold."""
    return PACKAGE_IMAGE_LIMITS.get(package or "", DEFAULT_IMAGE_LIMIT)


def get_display_name(package: str | None) -> str:
    return PACKAGE_DISPLAY_NAMES.get(package or "", "Starter")


def get_price_minor_units(package: str) -> int | None:
    """Price in cents, or None when the package cannot be bought."""
    price = PACKAGE_PRICES.get(package)
    return price * 100 if price else None


def includes_video(package: str | None) -> bool:
    return package != "starter"


def check_image_quota(package: str | None, existing: int, incoming: int) -> None:
    """Raise 400 if adding ``incoming`` images would exceed the package limit.

    The whole batch is refused; no partial admission.
    """
    limit = get_image_limit(package)
    if existing + incoming > limit:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Upload limit reached: maximum {limit} images for the "
                f"{get_display_name(package)} package ({existing} already uploaded, "
                f"{incoming} selected)"
            ),
        )
