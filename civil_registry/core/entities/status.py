"""
Entity: Status vocabularies

Closed sets of lifecycle markers for requests, payments, notifications
and accounts. Pure domain model, no framework or database dependency.

Older rows still carry lowercase French literals ("en_attente", "rejeté"...).
They are readable through the alias tables below and are never written back.
"""

from enum import Enum


class Role(str, Enum):
    CITIZEN = "citizen"
    AGENT = "agent"
    ADMIN = "admin"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    DELETED = "DELETED"          # soft delete marker


class DocumentRequestStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"                # set by payment reconciliation
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class NotificationStatus(str, Enum):
    UNREAD = "UNREAD"
    READ = "READ"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


LEGACY_REQUEST_STATUSES: dict[str, RequestStatus] = {
    "en_attente": RequestStatus.PENDING,
    "approuvé": RequestStatus.COMPLETED,
    "approuve": RequestStatus.COMPLETED,
    "validé": RequestStatus.COMPLETED,
    "valide": RequestStatus.COMPLETED,
    "rejeté": RequestStatus.REJECTED,
    "rejete": RequestStatus.REJECTED,
}

LEGACY_PAYMENT_STATUSES: dict[str, PaymentStatus] = {
    "en_attente": PaymentStatus.PENDING,
    "PAID": PaymentStatus.COMPLETED,
    "paid": PaymentStatus.COMPLETED,
    "échoué": PaymentStatus.FAILED,
    "FAILED": PaymentStatus.FAILED,
}


def parse_request_status(value: str | None) -> RequestStatus | None:
    """Canonical status for `value`, or None when it is not a known literal."""
    if not value:
        return None
    try:
        return RequestStatus(value)
    except ValueError:
        return LEGACY_REQUEST_STATUSES.get(value)


def parse_payment_status(value: str | None) -> PaymentStatus | None:
    if not value:
        return None
    try:
        return PaymentStatus(value)
    except ValueError:
        return LEGACY_PAYMENT_STATUSES.get(value)


def normalize_request_status(value: str) -> str:
    """Read-path helper: legacy literals map to the enum, unknown values pass through."""
    status = parse_request_status(value)
    return status.value if status else value


def normalize_payment_status(value: str) -> str:
    status = parse_payment_status(value)
    return status.value if status else value


def request_status_literals(*statuses: RequestStatus) -> list[str]:
    """Every stored literal that reads as one of `statuses`, legacy aliases included."""
    wanted = set(statuses)
    literals = [status.value for status in statuses]
    literals += [legacy for legacy, status in LEGACY_REQUEST_STATUSES.items() if status in wanted]
    return literals


def payment_status_literals(*statuses: PaymentStatus) -> list[str]:
    wanted = set(statuses)
    literals = [status.value for status in statuses]
    literals += [
        legacy for legacy, status in LEGACY_PAYMENT_STATUSES.items()
        if status in wanted and legacy not in literals
    ]
    return literals
