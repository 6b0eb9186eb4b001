"""
Routes under /agent: request processing by registry agents.
"""

from fastapi import APIRouter, Body, Depends, File, UploadFile

from civil_registry.api.dependencies import (
    cached_view, get_cache, get_status_machine, get_storage, get_store, invalidate_views, read_upload, require,
)
from civil_registry.api.schemas.responses import (
    BirthCertificateResponse, BirthDeclarationResponse, DocumentResponse, dump, ok,
)
from civil_registry.config.settings import get_settings
from civil_registry.core.entities.principal import Principal
from civil_registry.core.entities.status import RequestStatus
from civil_registry.core.errors import NotFound
from civil_registry.core.use_cases.approve_declaration import ApproveDeclarationUseCase
from civil_registry.core.use_cases.attach_file import AttachFileUseCase, UploadPolicy
from civil_registry.core.use_cases.reports import AgentRequestListUseCase, AgentStatsUseCase
from civil_registry.core.use_cases.transition_status import (
    TransitionCertificateUseCase, TransitionDeclarationUseCase,
)

router = APIRouter(prefix="/agent")

FINAL_DOCUMENT_TYPE = "ACTE_NAISSANCE_FINAL"


@router.get("/requests")
def list_requests(
    principal: Principal = Depends(require("request", "list")),
    store=Depends(get_store),
):
    """Declarations and certificates awaiting or under processing, newest first."""
    return ok(AgentRequestListUseCase(store).execute())


# ── Birth declarations ──
@router.get("/birth-declarations")
def list_birth_declarations(
    principal: Principal = Depends(require("birth_declaration", "read")),
    store=Depends(get_store),
):
    declarations = store.declarations.list_all(exclude=(RequestStatus.DELETED,))
    return ok([BirthDeclarationResponse.model_validate(d) for d in declarations])


@router.get("/birth-declarations/{declaration_id}")
def get_birth_declaration(
    declaration_id: str,
    principal: Principal = Depends(require("birth_declaration", "read")),
    store=Depends(get_store),
):
    declaration = store.declarations.get(declaration_id)
    if declaration is None:
        raise NotFound("Déclaration non trouvée")
    return ok(BirthDeclarationResponse.model_validate(declaration))


@router.patch("/birth-declarations/{declaration_id}")
def update_birth_declaration(
    declaration_id: str,
    principal: Principal = Depends(require("birth_declaration", "transition")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    machine=Depends(get_status_machine),
    cache=Depends(get_cache),
):
    declaration = TransitionDeclarationUseCase(store, machine).execute(
        declaration_id, (payload or {}).get("status"), principal.user_id,
    )
    invalidate_views(store, cache)
    return ok(BirthDeclarationResponse.model_validate(declaration), message="Statut mis à jour")


@router.post("/birth-declarations/{declaration_id}/approve")
def approve_birth_declaration(
    declaration_id: str,
    principal: Principal = Depends(require("birth_declaration", "approve")),
    store=Depends(get_store),
    cache=Depends(get_cache),
):
    """Register the birth: issue the certificate and close the declaration."""
    result = ApproveDeclarationUseCase(store).execute(declaration_id, principal.user_id)
    invalidate_views(store, cache)
    return ok(
        {
            "declaration": dump(BirthDeclarationResponse.model_validate(result.declaration)),
            "birthCertificate": dump(BirthCertificateResponse.model_validate(result.birth_certificate)),
        },
        message="Déclaration approuvée avec succès",
    )


# ── Birth certificates ──
@router.get("/birth-certificates")
def list_birth_certificates(
    principal: Principal = Depends(require("birth_certificate", "read")),
    store=Depends(get_store),
):
    certificates = store.certificates.list_all(exclude=(RequestStatus.DELETED,))
    return ok([BirthCertificateResponse.model_validate(c) for c in certificates])


@router.get("/birth-certificates/{certificate_id}")
def get_birth_certificate(
    certificate_id: str,
    principal: Principal = Depends(require("birth_certificate", "read")),
    store=Depends(get_store),
):
    certificate = store.certificates.get(certificate_id)
    if certificate is None:
        raise NotFound("Demande non trouvée")
    return ok(BirthCertificateResponse.model_validate(certificate))


@router.patch("/birth-certificates/{certificate_id}")
def update_birth_certificate(
    certificate_id: str,
    principal: Principal = Depends(require("birth_certificate", "transition")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    machine=Depends(get_status_machine),
    cache=Depends(get_cache),
):
    payload = payload or {}
    certificate = TransitionCertificateUseCase(store, machine).execute(
        certificate_id, payload.get("status"), principal.user_id, comment=payload.get("comment"),
    )
    invalidate_views(store, cache)
    return ok(BirthCertificateResponse.model_validate(certificate), message="Statut mis à jour")


@router.post("/birth-certificates/{certificate_id}/upload-final-document")
def upload_final_document(
    certificate_id: str,
    principal: Principal = Depends(require("birth_certificate", "upload_final")),
    file: UploadFile | None = File(default=None),
    store=Depends(get_store),
    storage=Depends(get_storage),
):
    """Attach the signed certificate (5 MB max) to a birth certificate request."""
    certificate = store.certificates.get(certificate_id)
    if certificate is None:
        raise NotFound("Demande non trouvée")

    settings = get_settings()
    data, filename, content_type = read_upload(file, settings.max_final_document_bytes)
    policy = UploadPolicy(
        max_bytes=settings.max_final_document_bytes,
        folder=settings.cloudinary_certificate_folder,
    )
    document = AttachFileUseCase(storage, store).execute(
        data, filename, content_type, policy,
        document_type=FINAL_DOCUMENT_TYPE,
        birth_certificate_id=certificate.id,
    )
    return ok(DocumentResponse.model_validate(document), message="Document final téléversé")


# ── Dashboard ──
@router.get("/stats")
def get_stats(
    principal: Principal = Depends(require("agent_stats", "read")),
    cache=Depends(get_cache),
):
    return ok(cached_view(cache, "stats:agent", lambda store: AgentStatsUseCase(store).execute()))
