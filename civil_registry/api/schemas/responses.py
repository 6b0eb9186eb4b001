"""
Pydantic schemas: response models for the API.

Field names are snake_case in Python and camelCase on the wire.
Legacy status literals are normalised on read.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from civil_registry.core.entities.status import normalize_payment_status, normalize_request_status


class ApiModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class DocumentResponse(ApiModel):
    id: str
    type: str
    url: str
    public_id: str | None = None
    created_at: datetime | None = None


class PaymentResponse(ApiModel):
    id: str
    amount: float
    status: str
    payment_method: str | None = None
    external_session_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return normalize_payment_status(value)


class CitizenSummary(ApiModel):
    name: str | None = None
    email: str


class BirthDeclarationResponse(ApiModel):
    id: str
    citizen_id: str
    child_first_name: str
    child_last_name: str | None = None
    child_gender: str
    birth_date: date
    birth_time: str | None = None
    birth_place: str
    father_first_name: str | None = None
    father_last_name: str | None = None
    mother_first_name: str | None = None
    mother_last_name: str | None = None
    reception_mode: str
    delivery_address: str | None = None
    status: str
    agent_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    documents: list[DocumentResponse] = []
    payment: PaymentResponse | None = None
    citizen: CitizenSummary | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return normalize_request_status(value)


class BirthCertificateResponse(ApiModel):
    id: str
    citizen_id: str
    full_name: str
    birth_date: date
    birth_place: str
    father_full_name: str | None = None
    mother_full_name: str | None = None
    acte_number: str | None = None
    tracking_number: str
    comment: str | None = None
    status: str
    agent_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    files: list[DocumentResponse] = []
    payment: PaymentResponse | None = None
    citizen: CitizenSummary | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return normalize_request_status(value)


class DocumentRequestResponse(ApiModel):
    id: str
    citizen_id: str
    type: str
    delivery_mode: str | None = None
    delivery_address: str | None = None
    amount: float
    status: str
    created_at: datetime | None = None
    payment: PaymentResponse | None = None


class NotificationResponse(ApiModel):
    id: str
    citizen_id: str
    title: str | None = None
    content: str
    type: str | None = None
    reference_id: str | None = None
    status: str
    created_at: datetime | None = None


class AccountResponse(ApiModel):
    id: str
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str
    role: str
    status: str
    created_at: datetime | None = None


class UploadResponse(ApiModel):
    url: str
    public_id: str
    size_bytes: int
    content_type: str
    folder: str = ""


class CheckoutSessionResponse(ApiModel):
    session_id: str
    url: str | None = None
    payment_id: str


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str


def dump(model: BaseModel | list | Any) -> Any:
    """Wire form of a schema instance (or list of them)."""
    if isinstance(model, BaseModel):
        return model.model_dump(by_alias=True, mode="json")
    if isinstance(model, list):
        return [dump(item) for item in model]
    return model


def ok(data: Any = None, message: str | None = None) -> dict:
    """Success envelope: {success, data?, message?}."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = dump(data)
    if message:
        body["message"] = message
    return body
