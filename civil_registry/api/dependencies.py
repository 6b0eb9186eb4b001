"""
FastAPI dependencies: session scope, caller identity, access guard,
external adapters.

Adapters and the response cache are lazy process-wide singletons,
built from settings on first use. Tests replace them through
`app.dependency_overrides`.
"""

import logging
from typing import Iterator

from fastapi import Depends, Header, Request, UploadFile
from sqlalchemy.orm import Session

from civil_registry.config.settings import get_settings
from civil_registry.core.entities.principal import Principal
from civil_registry.core.entities.workflow import StatusMachine
from civil_registry.core.errors import ValidationError
from civil_registry.core.interfaces.payment_gateway import IPaymentGateway
from civil_registry.core.interfaces.storage_service import IStorageService
from civil_registry.core.use_cases.authorize import authorize, rule_for
from civil_registry.infrastructure.auth.session_tokens import decode_token
from civil_registry.infrastructure.cache.response_cache import ResponseCache
from civil_registry.infrastructure.db.database import get_db
from civil_registry.infrastructure.db.repository import RegistryStore

logger = logging.getLogger(__name__)

# Lazy singletons
_storage = None
_gateway = None
_cache = None


# ── Unit of work ──
def get_session() -> Iterator[Session]:
    """One transaction per HTTP request: commit on success, roll back on any exception."""
    with get_db() as db:
        yield db


def get_store(db: Session = Depends(get_session)) -> RegistryStore:
    return RegistryStore(db)


def get_status_machine() -> StatusMachine:
    return StatusMachine(strict=get_settings().strict_status_transitions)


# ── Identity ──
def get_principal(authorization: str | None = Header(default=None)) -> Principal | None:
    """Caller from an `Authorization: Bearer <token>` header, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return decode_token(token.strip())


def require(resource: str, action: str):
    """Dependency factory enforcing the access rule for (resource, action)."""
    rule_for(resource, action)

    def _guard(principal: Principal | None = Depends(get_principal)) -> Principal:
        return authorize(principal, resource, action)

    _guard.__name__ = f"require_{resource}_{action}"
    return _guard


# ── External collaborators ──
def get_storage() -> IStorageService:
    """File host adapter (Cloudinary)."""
    global _storage
    if _storage is None:
        from civil_registry.infrastructure.storage.cloudinary_storage import CloudinaryStorageService

        settings = get_settings()
        _storage = CloudinaryStorageService(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
        )
        logger.info("Cloudinary storage initialised")
    return _storage


def get_payment_gateway() -> IPaymentGateway:
    """Payment processor adapter (Stripe)."""
    global _gateway
    if _gateway is None:
        from civil_registry.infrastructure.payments.stripe_gateway import StripePaymentGateway

        settings = get_settings()
        _gateway = StripePaymentGateway(
            secret_key=settings.stripe_secret_key,
            app_url=settings.app_url,
            webhook_secret=settings.stripe_webhook_secret,
            webhook_tolerance_seconds=settings.stripe_webhook_tolerance_seconds,
        )
        logger.info("Stripe payment gateway initialised")
    return _gateway


def get_cache() -> ResponseCache:
    global _cache
    if _cache is None:
        settings = get_settings()
        _cache = ResponseCache(
            ttl_seconds=settings.cache_ttl_seconds,
            stale_while_revalidate=settings.cache_stale_while_revalidate,
        )
    return _cache


def cached_view(cache: ResponseCache, namespace: str, build, **signature):
    """
    Serve a read view through the cache.

    `build(store)` runs in its own session so a background refresh never
    touches the request's transaction.
    """
    def loader():
        with get_db() as db:
            return build(RegistryStore(db))

    return cache.get_or_compute(cache.key(namespace, **signature), loader)


# Read views served through the cache; every mutation drops them.
STATS_NAMESPACE = "stats"


def invalidate_views(store: RegistryStore, cache: ResponseCache) -> None:
    """Drop the cached read views once the request's transaction has committed."""
    store.after_commit(lambda: cache.invalidate(f"{STATS_NAMESPACE}:"))


# ── Request bodies ──
async def raw_body(request: Request) -> bytes:
    """Unparsed request body, so handlers doing blocking work can stay sync."""
    return await request.body()


def read_upload(file: UploadFile | None, max_bytes: int) -> tuple[bytes, str, str]:
    """
    Content, filename and MIME type of a multipart upload.

    Reads at most `max_bytes + 1` bytes: enough to tell an oversized file
    apart without loading it whole.
    """
    if file is None:
        raise ValidationError("file", message="Aucun fichier fourni")
    data = file.file.read(max_bytes + 1)
    return data, file.filename or "upload", file.content_type or "application/octet-stream"
