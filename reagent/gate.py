"""Single authorization check in front of every processing request."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException

from reagent.config import settings
from reagent.models import Project, ProjectImage
from reagent.tier import includes_video


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class RedirectToPayment:
    url: str


@dataclass(frozen=True)
class Rejected:
    reason: str
    status_code: int = 400


GateDecision = Allowed | RedirectToPayment | Rejected


def payment_url(project_id: str) -> str:
    return f"/payment/{project_id}"


def check_processing_gate(
    project: Project,
    operation: str,
    image: ProjectImage | None = None,
    image_count: int | None = None,
) -> GateDecision:
    """Decide whether ``operation`` may be enqueued for ``project``.

    ``operation`` is one of ``initial_processing``, ``tweak`` or
    ``video_generation``. Hard rejections win over the payment redirect, so a
    request that could never succeed is not bounced to the payment page.
    """
    if operation == "initial_processing" and not image_count:
        return Rejected("No images to process")
    if operation == "tweak":
        if image is None:
            return Rejected("Image not found", status_code=404)
        if image.attempt_number >= settings.max_tweak_attempts:
            return Rejected(f"Maximum of {settings.max_tweak_attempts} attempts reached")
    if operation == "video_generation" and not includes_video(project.package):
        return Rejected("Video generation is not included in the Starter package", status_code=403)

    if project.status == "draft" and project.package != "starter":
        return RedirectToPayment(payment_url(project.id))
    return Allowed()


def enforce(decision: GateDecision) -> None:
    """Turn a non-Allowed decision into the matching HTTP error."""
    if isinstance(decision, Rejected):
        raise HTTPException(status_code=decision.status_code, detail=decision.reason)
    if isinstance(decision, RedirectToPayment):
        raise HTTPException(
            status_code=402,
            detail={"message": "Payment required", "redirect_url": decision.url},
            headers={"Location": decision.url},
        )
