"""
Use Case: Transition Status

Agent and admin status changes on requests and accounts, plus the
citizen soft delete. The requested value is validated against the
status machine before the record is touched; an invalid value leaves
the row exactly as it was.

Concurrent updates of the same row are last-write-wins (no version
column, no conditional update).
"""

import logging

from civil_registry.core.entities.status import AccountStatus, RequestStatus, parse_request_status
from civil_registry.core.entities.workflow import StatusMachine
from civil_registry.core.errors import Forbidden, InvalidStatus, NotFound, ValidationError
from civil_registry.core.use_cases.notifications import Notifier

logger = logging.getLogger(__name__)

DECLARATION_NOTIFICATION = "BIRTH_DECLARATION"
CERTIFICATE_NOTIFICATION = "BIRTH_CERTIFICATE"


class TransitionDeclarationUseCase:
    """
    Use Case: agent moves a birth declaration through its lifecycle.

    `agentId` is stamped only when the declaration enters IN_PROGRESS.
    A declaration that is already COMPLETED or REJECTED is locked.
    """

    def __init__(self, store, machine: StatusMachine):
        self._store = store
        self._machine = machine
        self._notifier = Notifier(store)

    def execute(self, declaration_id: str, requested_status: str | None, agent_id: str):
        if not requested_status:
            raise InvalidStatus(requested_status)
        target = self._machine.parse(requested_status)

        declaration = self._store.declarations.get(declaration_id)
        if declaration is None:
            raise NotFound("Déclaration non trouvée")

        previous = declaration.status
        current = parse_request_status(previous)
        if current is not None and StatusMachine.is_terminal(current):
            raise Forbidden("Cette déclaration a déjà été traitée")
        self._machine.check(declaration.status, target.value)

        declaration.status = target.value
        if target == RequestStatus.IN_PROGRESS:
            declaration.agent_id = agent_id
        self._notifier.status_changed(
            declaration.citizen_id, DECLARATION_NOTIFICATION, declaration.id,
            "déclaration de naissance", target,
        )
        self._store.flush()
        logger.info(f"Declaration {declaration.id}: {previous} -> {target.value} by agent {agent_id}")
        return declaration


class TransitionCertificateUseCase:
    """
    Use Case: agent updates a birth certificate request.

    Every PATCH stamps the acting agent and overwrites the comment
    (cleared when absent).
    """

    def __init__(self, store, machine: StatusMachine):
        self._store = store
        self._machine = machine
        self._notifier = Notifier(store)

    def execute(self, certificate_id: str, requested_status: str | None, agent_id: str, comment: str | None = None):
        if not requested_status:
            raise InvalidStatus(requested_status)
        target = self._machine.parse(requested_status)

        certificate = self._store.certificates.get(certificate_id)
        if certificate is None:
            raise NotFound("Demande non trouvée")
        previous = certificate.status
        self._machine.check(previous, target.value)

        certificate.status = target.value
        certificate.agent_id = agent_id
        certificate.comment = comment or None
        self._notifier.status_changed(
            certificate.citizen_id, CERTIFICATE_NOTIFICATION, certificate.id,
            "demande d'acte de naissance", target,
        )
        self._store.flush()
        logger.info(f"Certificate {certificate.id}: {previous} -> {target.value} by agent {agent_id}")
        return certificate


class AdminTransitionRequestUseCase:
    """
    Use Case: admin override of a request status.

    The id is resolved against declarations first, then certificates.
    A rejected certificate keeps the reject reason as its comment.
    """

    def __init__(self, store, machine: StatusMachine):
        self._store = store
        self._machine = machine

    def execute(self, request_id: str, requested_status: str | None, reject_reason: str | None = None):
        if not requested_status:
            raise InvalidStatus(requested_status)
        target = self._machine.parse(requested_status)

        declaration = self._store.declarations.get(request_id)
        if declaration is not None:
            self._machine.check(declaration.status, target.value)
            declaration.status = target.value
            self._store.flush()
            logger.info(f"Admin set declaration {declaration.id} to {target.value}")
            return "BirthDeclaration", declaration

        certificate = self._store.certificates.get(request_id)
        if certificate is not None:
            self._machine.check(certificate.status, target.value)
            certificate.status = target.value
            certificate.comment = reject_reason if target == RequestStatus.REJECTED else None
            self._store.flush()
            logger.info(f"Admin set certificate {certificate.id} to {target.value}")
            return "BirthCertificate", certificate

        raise NotFound("Document non trouvé")


def _parse_account_status(value: str | None) -> AccountStatus:
    if not value:
        raise ValidationError("status", message="Statut manquant")
    try:
        return AccountStatus(value)
    except ValueError:
        raise InvalidStatus(value) from None


class SetUserStatusUseCase:
    """Use Case: admin activates or deactivates a staff account."""

    def __init__(self, store):
        self._store = store

    def execute(self, user_id: str, requested_status: str | None):
        status = _parse_account_status(requested_status)
        user = self._store.users.get(user_id)
        if user is None:
            raise NotFound("Utilisateur non trouvé")
        user.status = status.value
        self._store.flush()
        logger.info(f"User {user.id} set {status.value}")
        return user


class SetCitizenStatusUseCase:
    """Use Case: admin activates or deactivates a citizen account."""

    def __init__(self, store):
        self._store = store

    def execute(self, citizen_id: str, requested_status: str | None):
        status = _parse_account_status(requested_status)
        citizen = self._store.citizens.get(citizen_id)
        if citizen is None:
            raise NotFound("Citoyen non trouvé")
        citizen.status = status.value
        self._store.flush()
        logger.info(f"Citizen {citizen.id} set {status.value}")
        return citizen


class SoftDeleteRequestUseCase:
    """Use Case: a citizen withdraws one of their own requests (status DELETED)."""

    def __init__(self, store):
        self._store = store

    def execute(self, citizen_id: str, request_id: str):
        record = self._store.declarations.get(request_id) or self._store.certificates.get(request_id)
        if record is None or record.citizen_id != citizen_id:
            raise NotFound("Demande non trouvée")
        if parse_request_status(record.status) == RequestStatus.DELETED:
            raise NotFound("Demande non trouvée")
        record.status = RequestStatus.DELETED.value
        self._store.flush()
        logger.info(f"Request {record.id} soft-deleted by citizen {citizen_id}")
        return record
