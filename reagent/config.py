"""Application configuration via environment variables."""

from __future__ import annotations

import secrets
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- Database ---
    database_url: str = "sqlite+aiosqlite:///./data/reagent.db"

    # --- Storage ---
    storage_path: str = "./data/storage"
    storage_bucket: str = "project-images"
    signed_url_expiry_seconds: int = 3600

    # --- Auth ---
    jwt_secret: str = secrets.token_urlsafe(32)
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 72
    google_client_id: str = ""
    google_client_secret: str = ""

    # --- Stripe ---
    stripe_secret_key: str = ""
    currency: str = "eur"
    site_url: str = "http://localhost:3000"
    # Projects are flipped to "paid" when a checkout is created, before any
    # webhook confirms the payment.
    mark_paid_on_checkout: bool = True

    # --- Gemini ---
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"

    # --- Limits ---
    max_image_bytes: int = 10 * 1024 * 1024  # 10 MB
    max_tweak_attempts: int = 5

    # --- UI timers (seconds) ---
    delete_confirm_timeout: float = 3.0
    upload_fade_delay: float = 2.0
    upload_fade_duration: float = 0.5
    realtime_poll_interval: float = 2.0

    # --- Misc ---
    log_level: str = "INFO"
    free_trial_project_name: str = "Free Trial Project"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()

# Ensure storage directory exists
Path(settings.storage_path).mkdir(parents=True, exist_ok=True)
