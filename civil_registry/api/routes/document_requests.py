"""
Routes under /document-requests: generic paid document requests.
"""

from fastapi import APIRouter, Body, Depends

from civil_registry.api.dependencies import get_store, require
from civil_registry.api.schemas.responses import DocumentRequestResponse, ok
from civil_registry.core.entities.principal import Principal
from civil_registry.core.use_cases.authorize import ensure_owner
from civil_registry.core.use_cases.submit_request import CreateDocumentRequestUseCase

router = APIRouter(prefix="/document-requests")


@router.post("")
def create_document_request(
    principal: Principal = Depends(require("document_request", "create")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
):
    request = CreateDocumentRequestUseCase(store).execute(principal.user_id, payload or {})
    return ok(DocumentRequestResponse.model_validate(request), message="Demande de document enregistrée")


@router.get("")
def list_document_requests(
    principal: Principal = Depends(require("document_request", "read")),
    store=Depends(get_store),
):
    requests = store.document_requests.for_citizen(principal.user_id)
    return ok([DocumentRequestResponse.model_validate(r) for r in requests])


@router.get("/{request_id}")
def get_document_request(
    request_id: str,
    principal: Principal = Depends(require("document_request", "read")),
    store=Depends(get_store),
):
    request = ensure_owner(store.document_requests.get(request_id), principal, "Demande non trouvée")
    return ok(DocumentRequestResponse.model_validate(request))
