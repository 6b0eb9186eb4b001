"""
Registry repositories: CRUD + aggregate queries.

Each repository is bound to the Session of the current unit of work;
the caller owns commit/rollback (see `database.get_db`). `RegistryStore`
bundles them so use cases receive a single collaborator.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session, selectinload

from civil_registry.core.entities.status import (
    PaymentStatus, RequestStatus, payment_status_literals, request_status_literals,
)
from civil_registry.infrastructure.db.database import after_commit, after_rollback
from civil_registry.infrastructure.db.models import (
    BirthCertificate, BirthDeclaration, Citizen, Document, DocumentRequest,
    Notification, Payment, User,
)

logger = logging.getLogger(__name__)

HIDDEN_STATUSES = (RequestStatus.REJECTED, RequestStatus.DELETED)


class CitizenRepository:
    """Repository for citizens."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, citizen_id: str) -> Optional[Citizen]:
        return self.db.get(Citizen, citizen_id)

    def get_by_email(self, email: str) -> Optional[Citizen]:
        return self.db.query(Citizen).filter_by(email=email).first()

    def add(self, **fields) -> Citizen:
        citizen = Citizen(**fields)
        self.db.add(citizen)
        self.db.flush()
        logger.info(f"Created citizen {citizen.id}")
        return citizen

    def list_all(self) -> list[Citizen]:
        return self.db.query(Citizen).order_by(desc(Citizen.created_at)).all()

    def count(self, status: str = None, since: datetime = None) -> int:
        query = self.db.query(Citizen)
        if status:
            query = query.filter_by(status=status)
        if since:
            query = query.filter(Citizen.created_at >= since)
        return query.count()


class UserRepository:
    """Repository for staff accounts (agents and admins)."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter_by(email=email).first()

    def add(self, **fields) -> User:
        user = User(**fields)
        self.db.add(user)
        self.db.flush()
        logger.info(f"Created {user.role} {user.id}")
        return user

    def list_all(self, role: str = None) -> list[User]:
        query = self.db.query(User)
        if role:
            query = query.filter_by(role=role)
        return query.order_by(desc(User.created_at)).all()

    def count(self, role: str = None, status: str = None, since: datetime = None) -> int:
        query = self.db.query(User)
        if role:
            query = query.filter_by(role=role)
        if status:
            query = query.filter_by(status=status)
        if since:
            query = query.filter(User.created_at >= since)
        return query.count()


class DeclarationRepository:
    """Repository for birth declarations."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(BirthDeclaration).options(
            selectinload(BirthDeclaration.documents),
            selectinload(BirthDeclaration.payment),
            selectinload(BirthDeclaration.citizen),
        )

    def get(self, declaration_id: str) -> Optional[BirthDeclaration]:
        return self._query().filter(BirthDeclaration.id == declaration_id).first()

    def add(self, documents: list[dict] = (), payment_amount: float = None, **fields) -> BirthDeclaration:
        """Insert a declaration with its nested documents and payment in the current transaction."""
        declaration = BirthDeclaration(**fields)
        for doc in documents:
            declaration.documents.append(Document(type=doc["type"], url=doc["url"], public_id=doc.get("public_id")))
        if payment_amount is not None:
            declaration.payment = Payment(amount=payment_amount, status=PaymentStatus.PENDING.value)
        self.db.add(declaration)
        self.db.flush()
        return declaration

    def list_all(self, exclude: tuple[RequestStatus, ...] = HIDDEN_STATUSES) -> list[BirthDeclaration]:
        query = self._query()
        if exclude:
            query = query.filter(BirthDeclaration.status.notin_(request_status_literals(*exclude)))
        return query.order_by(desc(BirthDeclaration.created_at)).all()

    def for_citizen(self, citizen_id: str) -> list[BirthDeclaration]:
        return (
            self._query()
            .filter(BirthDeclaration.citizen_id == citizen_id)
            .filter(BirthDeclaration.status.notin_(request_status_literals(RequestStatus.DELETED)))
            .order_by(desc(BirthDeclaration.created_at))
            .all()
        )

    def count(self, status: RequestStatus = None) -> int:
        query = self.db.query(BirthDeclaration)
        if status:
            query = query.filter(BirthDeclaration.status.in_(request_status_literals(status)))
        return query.count()


class CertificateRepository:
    """Repository for birth certificate requests."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(BirthCertificate).options(
            selectinload(BirthCertificate.files),
            selectinload(BirthCertificate.payment),
            selectinload(BirthCertificate.citizen),
        )

    def get(self, certificate_id: str) -> Optional[BirthCertificate]:
        return self._query().filter(BirthCertificate.id == certificate_id).first()

    def tracking_number_exists(self, tracking_number: str) -> bool:
        return self.db.query(BirthCertificate.id).filter_by(tracking_number=tracking_number).first() is not None

    def add(self, files: list[dict] = (), **fields) -> BirthCertificate:
        certificate = BirthCertificate(**fields)
        for doc in files:
            certificate.files.append(Document(type=doc["type"], url=doc["url"], public_id=doc.get("public_id")))
        self.db.add(certificate)
        self.db.flush()
        return certificate

    def list_all(self, exclude: tuple[RequestStatus, ...] = HIDDEN_STATUSES) -> list[BirthCertificate]:
        query = self._query()
        if exclude:
            query = query.filter(BirthCertificate.status.notin_(request_status_literals(*exclude)))
        return query.order_by(desc(BirthCertificate.created_at)).all()

    def for_citizen(self, citizen_id: str) -> list[BirthCertificate]:
        return (
            self._query()
            .filter(BirthCertificate.citizen_id == citizen_id)
            .filter(BirthCertificate.status.notin_(request_status_literals(RequestStatus.DELETED)))
            .order_by(desc(BirthCertificate.created_at))
            .all()
        )

    def count(self, status: RequestStatus = None, since: datetime = None) -> int:
        query = self.db.query(BirthCertificate)
        if status:
            query = query.filter(BirthCertificate.status.in_(request_status_literals(status)))
        if since:
            query = query.filter(BirthCertificate.created_at >= since)
        return query.count()

    def recent(self, limit: int = 5) -> list[BirthCertificate]:
        return self._query().order_by(desc(BirthCertificate.created_at)).limit(limit).all()

    def counts_per_day(self, since: datetime) -> dict[str, int]:
        """Certificates created per calendar day since `since` (ISO date -> count)."""
        rows = self.db.query(BirthCertificate.created_at).filter(BirthCertificate.created_at >= since).all()
        per_day = Counter(created_at.date().isoformat() for (created_at,) in rows)
        return dict(sorted(per_day.items()))


class DocumentRepository:
    """Repository for hosted attachments. Rows are append-only."""

    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        type: str,
        url: str,
        public_id: str = None,
        birth_declaration_id: str = None,
        birth_certificate_id: str = None,
    ) -> Document:
        document = Document(
            type=type,
            url=url,
            public_id=public_id,
            birth_declaration_id=birth_declaration_id,
            birth_certificate_id=birth_certificate_id,
        )
        self.db.add(document)
        self.db.flush()
        return document


class DocumentRequestRepository:
    """Repository for generic document requests."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: str) -> Optional[DocumentRequest]:
        return (
            self.db.query(DocumentRequest)
            .options(selectinload(DocumentRequest.payment))
            .filter(DocumentRequest.id == request_id)
            .first()
        )

    def add(self, **fields) -> DocumentRequest:
        request = DocumentRequest(**fields)
        self.db.add(request)
        self.db.flush()
        return request

    def for_citizen(self, citizen_id: str) -> list[DocumentRequest]:
        return (
            self.db.query(DocumentRequest)
            .options(selectinload(DocumentRequest.payment))
            .filter(DocumentRequest.citizen_id == citizen_id)
            .order_by(desc(DocumentRequest.created_at))
            .all()
        )


class PaymentRepository:
    """Repository for payments."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Payment).options(
            selectinload(Payment.birth_declaration).selectinload(BirthDeclaration.citizen),
            selectinload(Payment.birth_certificate).selectinload(BirthCertificate.citizen),
            selectinload(Payment.document_request).selectinload(DocumentRequest.citizen),
        )

    def get_by_session(self, session_id: str) -> Optional[Payment]:
        return self._query().filter(Payment.external_session_id == session_id).first()

    def add(self, **fields) -> Payment:
        payment = Payment(**fields)
        self.db.add(payment)
        self.db.flush()
        return payment

    def list_all(self, status: PaymentStatus = None, since: datetime = None) -> list[Payment]:
        query = self._query()
        if status:
            query = query.filter(Payment.status.in_(payment_status_literals(status)))
        if since:
            query = query.filter(Payment.created_at >= since)
        return query.order_by(desc(Payment.created_at)).all()

    def revenue(self) -> float:
        """Sum of completed payments."""
        total = (
            self.db.query(func.sum(Payment.amount))
            .filter(Payment.status.in_(payment_status_literals(PaymentStatus.COMPLETED)))
            .scalar()
        )
        return round(float(total or 0), 2)


class NotificationRepository:
    """Repository for citizen notifications."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, **fields) -> Notification:
        notification = Notification(**fields)
        self.db.add(notification)
        self.db.flush()
        return notification

    def for_citizen(self, citizen_id: str) -> list[Notification]:
        return (
            self.db.query(Notification)
            .filter_by(citizen_id=citizen_id)
            .order_by(desc(Notification.created_at))
            .all()
        )

    def get_for_citizen(self, notification_id: str, citizen_id: str) -> Optional[Notification]:
        return self.db.query(Notification).filter_by(id=notification_id, citizen_id=citizen_id).first()


class RegistryStore:
    """All repositories of one unit of work, sharing a single Session."""

    def __init__(self, db: Session):
        self.db = db
        self.citizens = CitizenRepository(db)
        self.users = UserRepository(db)
        self.declarations = DeclarationRepository(db)
        self.certificates = CertificateRepository(db)
        self.documents = DocumentRepository(db)
        self.document_requests = DocumentRequestRepository(db)
        self.payments = PaymentRepository(db)
        self.notifications = NotificationRepository(db)

    def flush(self):
        self.db.flush()

    def after_commit(self, callback):
        """Defer `callback` until this unit of work has committed."""
        after_commit(self.db, callback)

    def after_rollback(self, callback):
        after_rollback(self.db, callback)
