"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    google_id: Mapped[str | None] = mapped_column(String(255), default=None)
    free_trial_used: Mapped[bool] = mapped_column(Boolean, default=False)
    subscription_status: Mapped[str] = mapped_column(String(20), default="inactive")
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(String(500), default=None)
    global_instructions: Mapped[str | None] = mapped_column(Text, default=None)
    package: Mapped[str] = mapped_column(String(20), default="starter")  # starter | pro | unlimited
    # draft | paid | processing | filming | reviewing | completed | failed
    status: Mapped[str] = mapped_column(String(20), default="draft")
    ai_description: Mapped[str | None] = mapped_column(Text, default=None)
    video_url: Mapped[str | None] = mapped_column(String(1000), default=None)
    video_status: Mapped[str] = mapped_column(String(20), default="pending")
    selected_images: Mapped[list] = mapped_column(JSON, default=list)
    processing_progress: Mapped[int] = mapped_column(Integer, default=0)
    billing_log: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class ProjectImage(Base):
    __tablename__ = "project_images"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )
    original_filename: Mapped[str] = mapped_column(String(500))
    processed_url: Mapped[str | None] = mapped_column(String(1000), default=None)
    aspect_ratio: Mapped[float | None] = mapped_column(Float, default=None)
    attempt_number: Mapped[int] = mapped_column(Integer, default=1)
    # pending | processing | completed | failed
    processing_status: Mapped[str] = mapped_column(String(20), default="pending")
    tweak_history: Mapped[list] = mapped_column(JSON, default=list)
    image_metadata: Mapped[dict] = mapped_column(JSON, default=dict)
    ai_prompt_used: Mapped[str | None] = mapped_column(Text, default=None)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ProcessingQueueEntry(Base):
    __tablename__ = "processing_queue"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )
    image_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("project_images.id", ondelete="CASCADE"), default=None
    )
    # initial_processing | tweak | video_generation
    operation_type: Mapped[str] = mapped_column(String(30))
    payload: Mapped[dict] = mapped_column(JSON, default=dict)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class BillingLogEntry(Base):
    __tablename__ = "billing_log"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    project_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )
    amount: Mapped[int] = mapped_column(Integer)  # minor units
    currency: Mapped[str] = mapped_column(String(3), default="eur")
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), default=None)
    package_type: Mapped[str] = mapped_column(String(20))
    transaction_type: Mapped[str] = mapped_column(String(30))  # checkout_session | payment_intent
    status: Mapped[str] = mapped_column(String(20), default="pending")
    meta: Mapped[dict] = mapped_column("metadata", JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
