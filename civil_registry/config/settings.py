"""
Application Settings.

Centralises all configuration through .env / environment variables.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # --- App ---
    env: str = "development"
    debug: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    app_url: str = "http://localhost:3000"

    # --- Database ---
    database_url: str = "sqlite:///civil_registry.db"

    # --- Sessions (bearer JWT) ---
    session_secret: str = "dev-session-secret-not-for-production"
    session_algorithm: str = "HS256"
    session_audience: str = "civil-registry"
    session_ttl_seconds: int = 8 * 3600

    # --- Payments (Stripe) ---
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance_seconds: int = 300
    payment_currency: str = "xof"
    declaration_fee: int = 1000

    # --- File hosting (Cloudinary) ---
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_certificate_folder: str = "birth-certificates"
    cloudinary_documents_folder: str = "documents"

    # --- Uploads ---
    max_upload_bytes: int = 2 * 1024 * 1024
    max_attachment_bytes: int = 5 * 1024 * 1024
    max_final_document_bytes: int = 5 * 1024 * 1024
    allowed_attachment_types: list[str] = ["application/pdf", "image/jpeg", "image/png"]

    # --- Workflow ---
    strict_status_transitions: bool = False

    # --- Response cache ---
    cache_ttl_seconds: float = 300.0
    cache_stale_while_revalidate: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Settings singleton."""
    return Settings()
