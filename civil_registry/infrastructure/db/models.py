"""
Database Models: SQLAlchemy.

Tables:
  - citizens: registered end users
  - users: staff accounts (agents and administrators)
  - birth_declarations / birth_certificates: the two request types
  - document_requests: generic paid document requests
  - documents: hosted attachments, owned by exactly one request
  - payments: one per request
  - notifications: citizen inbox
"""

import uuid

from sqlalchemy import (
    Column, String, Float, DateTime, Date, Text, ForeignKey, CheckConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from civil_registry.core.clock import utcnow
from civil_registry.core.entities.status import (
    AccountStatus, DocumentRequestStatus, NotificationStatus, PaymentStatus,
    RequestStatus, Role,
)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Citizen(Base):
    __tablename__ = "citizens"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=True)
    email = Column(String(254), unique=True, nullable=False, index=True)
    phone = Column(String(40), nullable=True)
    address = Column(Text, nullable=True)
    hashed_password = Column(String(255), nullable=True)
    role = Column(String(20), default=Role.CITIZEN.value, nullable=False)
    status = Column(String(20), default=AccountStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    birth_declarations = relationship("BirthDeclaration", back_populates="citizen")
    birth_certificates = relationship("BirthCertificate", back_populates="citizen")
    notifications = relationship("Notification", back_populates="citizen")

    def __repr__(self):
        return f"<Citizen {self.id} [{self.status}]>"


class User(Base):
    """Staff account. `role` is agent or admin."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    first_name = Column(String(100), default="")
    last_name = Column(String(100), default="")
    name = Column(String(200), nullable=True)
    email = Column(String(254), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, index=True)
    status = Column(String(20), default=AccountStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def display_name(self) -> str:
        if self.first_name or self.last_name:
            return f"{self.first_name or ''} {self.last_name or ''}".strip()
        return self.name or "Sans nom"

    def __repr__(self):
        return f"<User {self.id} {self.role} [{self.status}]>"


class BirthDeclaration(Base):
    __tablename__ = "birth_declarations"

    id = Column(String(36), primary_key=True, default=new_id)
    citizen_id = Column(String(36), ForeignKey("citizens.id"), nullable=False, index=True)
    agent_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    child_first_name = Column(String(100), nullable=False)
    child_last_name = Column(String(100), default="")
    child_gender = Column(String(20), nullable=False)
    birth_date = Column(Date, nullable=False)
    birth_time = Column(String(10), nullable=True)
    birth_place = Column(String(200), nullable=False)
    father_first_name = Column(String(100), default="")
    father_last_name = Column(String(100), default="")
    mother_first_name = Column(String(100), default="")
    mother_last_name = Column(String(100), default="")
    reception_mode = Column(String(50), nullable=False)
    delivery_address = Column(Text, nullable=True)

    status = Column(String(20), default=RequestStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    citizen = relationship("Citizen", back_populates="birth_declarations")
    agent = relationship("User")
    documents = relationship(
        "Document", back_populates="birth_declaration",
        order_by="Document.created_at", cascade="all, delete-orphan",
    )
    payment = relationship(
        "Payment", back_populates="birth_declaration", uselist=False, cascade="all, delete-orphan",
    )

    @property
    def child_name(self) -> str:
        return f"{self.child_first_name} {self.child_last_name or ''}".strip()

    def __repr__(self):
        return f"<BirthDeclaration {self.id} [{self.status}]>"


class BirthCertificate(Base):
    __tablename__ = "birth_certificates"

    id = Column(String(36), primary_key=True, default=new_id)
    citizen_id = Column(String(36), ForeignKey("citizens.id"), nullable=False, index=True)
    agent_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    full_name = Column(String(200), nullable=False)
    birth_date = Column(Date, nullable=False)
    birth_place = Column(String(200), nullable=False)
    father_full_name = Column(String(200), nullable=True)
    mother_full_name = Column(String(200), nullable=True)
    acte_number = Column(String(40), nullable=True)
    tracking_number = Column(String(20), unique=True, nullable=False, index=True)
    comment = Column(Text, nullable=True)

    status = Column(String(20), default=RequestStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    citizen = relationship("Citizen", back_populates="birth_certificates")
    agent = relationship("User")
    files = relationship(
        "Document", back_populates="birth_certificate",
        order_by="Document.created_at", cascade="all, delete-orphan",
    )
    payment = relationship(
        "Payment", back_populates="birth_certificate", uselist=False, cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<BirthCertificate {self.id} {self.tracking_number} [{self.status}]>"


class DocumentRequest(Base):
    """Generic paid request for an administrative document."""
    __tablename__ = "document_requests"

    id = Column(String(36), primary_key=True, default=new_id)
    citizen_id = Column(String(36), ForeignKey("citizens.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    delivery_mode = Column(String(50), nullable=True)
    delivery_address = Column(Text, nullable=True)
    amount = Column(Float, default=0.0)
    status = Column(String(20), default=DocumentRequestStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    citizen = relationship("Citizen")
    payment = relationship(
        "Payment", back_populates="document_request", uselist=False, cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<DocumentRequest {self.id} {self.type} [{self.status}]>"


class Document(Base):
    """Hosted attachment. Append-only; owned by exactly one request."""
    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(
            "(birth_declaration_id IS NULL) <> (birth_certificate_id IS NULL)",
            name="ck_documents_single_owner",
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(String(50), nullable=False)
    url = Column(Text, nullable=False)
    public_id = Column(String(255), nullable=True)
    birth_declaration_id = Column(
        String(36), ForeignKey("birth_declarations.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    birth_certificate_id = Column(
        String(36), ForeignKey("birth_certificates.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    created_at = Column(DateTime, default=utcnow)

    birth_declaration = relationship("BirthDeclaration", back_populates="documents")
    birth_certificate = relationship("BirthCertificate", back_populates="files")

    def __repr__(self):
        return f"<Document {self.id} {self.type}>"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    amount = Column(Float, nullable=False)
    status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True)
    payment_method = Column(String(30), nullable=True)
    external_session_id = Column(String(255), unique=True, nullable=True, index=True)

    birth_declaration_id = Column(String(36), ForeignKey("birth_declarations.id"), unique=True, nullable=True)
    birth_certificate_id = Column(String(36), ForeignKey("birth_certificates.id"), unique=True, nullable=True)
    document_request_id = Column(String(36), ForeignKey("document_requests.id"), unique=True, nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    birth_declaration = relationship("BirthDeclaration", back_populates="payment")
    birth_certificate = relationship("BirthCertificate", back_populates="payment")
    document_request = relationship("DocumentRequest", back_populates="payment")

    @property
    def owner(self):
        return self.birth_declaration or self.birth_certificate or self.document_request

    def __repr__(self):
        return f"<Payment {self.id} {self.amount} [{self.status}]>"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    citizen_id = Column(String(36), ForeignKey("citizens.id"), nullable=False, index=True)
    title = Column(String(200), default="")
    content = Column(Text, nullable=False)
    type = Column(String(50), nullable=True)
    reference_id = Column(String(36), nullable=True)
    status = Column(String(10), default=NotificationStatus.UNREAD.value, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)

    citizen = relationship("Citizen", back_populates="notifications")

    def __repr__(self):
        return f"<Notification {self.id} [{self.status}]>"
