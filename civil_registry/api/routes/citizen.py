"""
Routes under /citizen: self-service for registered citizens.

Submissions, own request list and detail, withdrawal, attachments,
generic upload, dashboard stats and the notification inbox.
"""

import logging

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile

from civil_registry.api.dependencies import (
    cached_view, get_cache, get_storage, get_store, invalidate_views, read_upload, require,
)
from civil_registry.api.schemas.responses import (
    BirthCertificateResponse, BirthDeclarationResponse, DocumentResponse,
    NotificationResponse, UploadResponse, dump, ok,
)
from civil_registry.config.settings import get_settings
from civil_registry.core.entities.principal import Principal
from civil_registry.core.entities.status import RequestStatus, parse_request_status
from civil_registry.core.errors import NotFound
from civil_registry.core.use_cases.attach_file import AttachFileUseCase, UploadPolicy
from civil_registry.core.use_cases.authorize import ensure_owner
from civil_registry.core.use_cases.notifications import (
    ListNotificationsUseCase, MarkNotificationReadUseCase,
)
from civil_registry.core.use_cases.reports import (
    BIRTH_CERTIFICATE, BIRTH_DECLARATION, CitizenRequestListUseCase, CitizenStatsUseCase,
)
from civil_registry.core.use_cases.submit_request import (
    DEFAULT_DOCUMENT_TYPE, SubmitBirthCertificateUseCase, SubmitBirthDeclarationUseCase,
)
from civil_registry.core.use_cases.transition_status import SoftDeleteRequestUseCase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/citizen")


def _own_visible(record, principal: Principal):
    """Owner check; a withdrawn request reads as missing."""
    ensure_owner(record, principal, "Demande non trouvée")
    if parse_request_status(record.status) == RequestStatus.DELETED:
        raise NotFound("Demande non trouvée")
    return record


# ── Submissions ──
@router.post("/birth-declaration")
def create_birth_declaration(
    principal: Principal = Depends(require("birth_declaration", "create")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    cache=Depends(get_cache),
):
    """Declare a birth. Creates the declaration, its documents and the pending fee payment."""
    use_case = SubmitBirthDeclarationUseCase(store, declaration_fee=get_settings().declaration_fee)
    declaration = use_case.execute(principal.user_id, payload or {})
    invalidate_views(store, cache)
    return ok(BirthDeclarationResponse.model_validate(declaration), message="Déclaration de naissance enregistrée")


@router.post("/birth-certificate")
def create_birth_certificate(
    principal: Principal = Depends(require("birth_certificate", "create")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    cache=Depends(get_cache),
):
    """Request a copy of an existing birth record."""
    certificate = SubmitBirthCertificateUseCase(store).execute(principal.user_id, payload or {})
    invalidate_views(store, cache)
    return ok(BirthCertificateResponse.model_validate(certificate), message="Demande d'acte de naissance enregistrée")


# ── Own requests ──
@router.get("/requests")
def list_requests(
    principal: Principal = Depends(require("own_request", "read")),
    store=Depends(get_store),
):
    return ok(CitizenRequestListUseCase(store).execute(principal.user_id))


@router.get("/requests/{request_id}")
def get_request(
    request_id: str,
    principal: Principal = Depends(require("own_request", "read")),
    store=Depends(get_store),
):
    """Detail of one of the caller's requests, declaration or certificate."""
    declaration = store.declarations.get(request_id)
    if declaration is not None:
        _own_visible(declaration, principal)
        data = dump(BirthDeclarationResponse.model_validate(declaration))
        data["requestType"] = BIRTH_DECLARATION
        return ok(data)

    certificate = _own_visible(store.certificates.get(request_id), principal)
    data = dump(BirthCertificateResponse.model_validate(certificate))
    data["requestType"] = BIRTH_CERTIFICATE
    return ok(data)


@router.delete("/requests/{request_id}")
def delete_request(
    request_id: str,
    principal: Principal = Depends(require("own_request", "delete")),
    store=Depends(get_store),
    cache=Depends(get_cache),
):
    SoftDeleteRequestUseCase(store).execute(principal.user_id, request_id)
    invalidate_views(store, cache)
    return ok(message="Demande supprimée")


@router.post("/requests/{request_id}/documents")
def attach_document(
    request_id: str,
    principal: Principal = Depends(require("own_request", "attach")),
    file: UploadFile | None = File(default=None),
    document_type: str | None = Form(default=None, alias="type"),
    store=Depends(get_store),
    storage=Depends(get_storage),
):
    """Attach a PDF/JPEG/PNG (5 MB max) to one of the caller's declarations."""
    declaration = ensure_owner(store.declarations.get(request_id), principal, "Déclaration non trouvée")
    settings = get_settings()
    data, filename, content_type = read_upload(file, settings.max_attachment_bytes)
    policy = UploadPolicy(
        max_bytes=settings.max_attachment_bytes,
        folder=settings.cloudinary_documents_folder,
        allowed_types=tuple(settings.allowed_attachment_types),
    )
    document = AttachFileUseCase(storage, store).execute(
        data, filename, content_type, policy,
        document_type=document_type or DEFAULT_DOCUMENT_TYPE,
        birth_declaration_id=declaration.id,
    )
    return ok(DocumentResponse.model_validate(document), message="Document ajouté")


@router.post("/upload")
def upload_file(
    principal: Principal = Depends(require("upload", "create")),
    file: UploadFile | None = File(default=None),
    storage=Depends(get_storage),
):
    """Host a file (2 MB max) and return its metadata. Nothing is linked yet."""
    settings = get_settings()
    data, filename, content_type = read_upload(file, settings.max_upload_bytes)
    policy = UploadPolicy(max_bytes=settings.max_upload_bytes, folder=settings.cloudinary_documents_folder)
    ref = AttachFileUseCase(storage).upload(data, filename, content_type, policy)
    logger.info(f"Citizen {principal.user_id} uploaded {ref.public_id}")
    return ok(UploadResponse.model_validate(ref))


# ── Dashboard ──
@router.get("/stats")
def get_stats(
    principal: Principal = Depends(require("citizen_stats", "read")),
    cache=Depends(get_cache),
):
    stats = cached_view(
        cache, "stats:citizen",
        lambda store: CitizenStatsUseCase(store).execute(principal.user_id),
        citizen_id=principal.user_id,
    )
    return ok(stats)


# ── Notifications ──
@router.get("/notifications")
def list_notifications(
    principal: Principal = Depends(require("notification", "read")),
    store=Depends(get_store),
):
    notifications = ListNotificationsUseCase(store).execute(principal.user_id)
    return ok([NotificationResponse.model_validate(n) for n in notifications])


@router.patch("/notifications")
def mark_notification_read(
    principal: Principal = Depends(require("notification", "update")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
):
    notification_id = (payload or {}).get("notificationId")
    notification = MarkNotificationReadUseCase(store).execute(principal.user_id, notification_id)
    return ok(NotificationResponse.model_validate(notification))
