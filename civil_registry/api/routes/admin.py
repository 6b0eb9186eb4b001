"""
Routes under /admin: accounts, overrides, payments ledger and global stats.
"""

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import Response

from civil_registry.api.dependencies import (
    cached_view, get_cache, get_status_machine, get_store, invalidate_views, require,
)
from civil_registry.api.schemas.responses import (
    AccountResponse, BirthCertificateResponse, BirthDeclarationResponse, dump, ok,
)
from civil_registry.config.settings import get_settings
from civil_registry.core.clock import utcnow
from civil_registry.core.entities.principal import Principal
from civil_registry.core.use_cases.manage_users import CreateUserUseCase, ListUsersUseCase
from civil_registry.core.use_cases.reports import (
    AdminStatsUseCase, ExportPaymentsUseCase, ListPaymentsUseCase,
)
from civil_registry.core.use_cases.transition_status import (
    AdminTransitionRequestUseCase, SetCitizenStatusUseCase, SetUserStatusUseCase,
)

router = APIRouter(prefix="/admin")


# ── Accounts ──
@router.get("/users")
def list_users(
    principal: Principal = Depends(require("user", "list")),
    role: str | None = Query(default=None),
    store=Depends(get_store),
):
    return ok(ListUsersUseCase(store).execute(role))


@router.post("/users")
def create_user(
    principal: Principal = Depends(require("user", "create")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    cache=Depends(get_cache),
):
    _, account = CreateUserUseCase(store).execute(payload or {})
    invalidate_views(store, cache)
    return ok(AccountResponse.model_validate(account), message="Utilisateur créé avec succès")


@router.patch("/users/{user_id}/status")
def set_user_status(
    user_id: str,
    principal: Principal = Depends(require("user", "transition")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    cache=Depends(get_cache),
):
    user = SetUserStatusUseCase(store).execute(user_id, (payload or {}).get("status"))
    invalidate_views(store, cache)
    return ok(AccountResponse.model_validate(user), message="Statut mis à jour")


@router.patch("/citizens/{citizen_id}/status")
def set_citizen_status(
    citizen_id: str,
    principal: Principal = Depends(require("citizen", "transition")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    cache=Depends(get_cache),
):
    citizen = SetCitizenStatusUseCase(store).execute(citizen_id, (payload or {}).get("status"))
    invalidate_views(store, cache)
    return ok(AccountResponse.model_validate(citizen), message="Statut mis à jour")


# ── Request override ──
@router.patch("/requests/{request_id}/status")
def set_request_status(
    request_id: str,
    principal: Principal = Depends(require("request", "transition")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    machine=Depends(get_status_machine),
    cache=Depends(get_cache),
):
    payload = payload or {}
    kind, record = AdminTransitionRequestUseCase(store, machine).execute(
        request_id, payload.get("status"), reject_reason=payload.get("rejectReason"),
    )
    invalidate_views(store, cache)
    schema = BirthDeclarationResponse if kind == "BirthDeclaration" else BirthCertificateResponse
    data = dump(schema.model_validate(record))
    data["documentType"] = kind
    return ok(data, message="Statut mis à jour")


# ── Payments ──
@router.get("/payments")
def list_payments(
    principal: Principal = Depends(require("payment", "list")),
    status: str | None = Query(default=None),
    date_range: str | None = Query(default=None, alias="dateRange"),
    store=Depends(get_store),
):
    return ok(ListPaymentsUseCase(store).execute(status, date_range))


@router.get("/payments/export")
def export_payments(
    principal: Principal = Depends(require("payment", "export")),
    status: str | None = Query(default=None),
    date_range: str | None = Query(default=None, alias="dateRange"),
    store=Depends(get_store),
):
    """CSV download of the filtered ledger."""
    content = ExportPaymentsUseCase(store).execute(status, date_range, currency=get_settings().payment_currency)
    filename = f"paiements-{utcnow().strftime('%Y-%m-%d')}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Dashboard ──
@router.get("/stats")
def get_stats(
    principal: Principal = Depends(require("admin_stats", "read")),
    cache=Depends(get_cache),
):
    return ok(cached_view(cache, "stats:admin", lambda store: AdminStatsUseCase(store).execute()))
