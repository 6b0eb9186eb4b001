from __future__ import annotations

import pytest
from conftest import load

from civil_registry.core.entities.status import (
    PaymentStatus, RequestStatus, normalize_payment_status, normalize_request_status,
    parse_request_status, request_status_literals,
)
from civil_registry.core.entities.workflow import StatusMachine
from civil_registry.core.errors import InvalidStatus
from civil_registry.infrastructure.db.database import get_db
from civil_registry.infrastructure.db.models import BirthDeclaration, Payment
from scripts.migrate_status_values import migrate


@pytest.mark.parametrize("legacy, canonical", [
    ("en_attente", "PENDING"),
    ("approuvé", "COMPLETED"),
    ("validé", "COMPLETED"),
    ("rejete", "REJECTED"),
    ("IN_PROGRESS", "IN_PROGRESS"),
    ("unknown", "unknown"),
])
def test_request_status_normalisation(legacy, canonical):
    assert normalize_request_status(legacy) == canonical


@pytest.mark.parametrize("legacy, canonical", [("en_attente", "PENDING"), ("PAID", "COMPLETED")])
def test_payment_status_normalisation(legacy, canonical):
    assert normalize_payment_status(legacy) == canonical


def test_status_literals_include_legacy_aliases():
    literals = request_status_literals(RequestStatus.REJECTED)
    assert set(literals) == {"REJECTED", "rejeté", "rejete"}


class TestStatusMachine:
    def test_permissive_mode_only_checks_membership(self):
        machine = StatusMachine()
        assert machine.check("PENDING", "COMPLETED") == RequestStatus.COMPLETED
        assert machine.check("COMPLETED", "PENDING") == RequestStatus.PENDING

    @pytest.mark.parametrize("current, target, allowed", [
        ("PENDING", "IN_PROGRESS", True),
        ("PENDING", "REJECTED", True),
        ("PENDING", "COMPLETED", False),
        ("IN_PROGRESS", "COMPLETED", True),
        ("COMPLETED", "REJECTED", False),
        ("REJECTED", "PENDING", False),
        ("en_attente", "IN_PROGRESS", True),
    ])
    def test_strict_table(self, current, target, allowed):
        machine = StatusMachine(strict=True)
        assert machine.can_transition(parse_request_status(current), RequestStatus(target)) is allowed

    @pytest.mark.parametrize("value", ["DONE", "DELETED", None, ""])
    def test_unsettable_values(self, value):
        with pytest.raises(InvalidStatus):
            StatusMachine().parse(value)

    def test_terminal_statuses(self):
        assert StatusMachine.is_terminal(RequestStatus.COMPLETED)
        assert StatusMachine.is_terminal(RequestStatus.REJECTED)
        assert not StatusMachine.is_terminal(RequestStatus.IN_PROGRESS)


def _store_legacy(declaration_id):
    with get_db() as db:
        declaration = db.get(BirthDeclaration, declaration_id)
        declaration.status = "en_attente"
        declaration.payment.status = "PAID"


def test_legacy_rows_read_canonically(client, agent_headers, citizen_headers, declaration_id):
    _store_legacy(declaration_id)

    detail = client.get(f"/api/agent/birth-declarations/{declaration_id}", headers=agent_headers).json()["data"]
    stats = client.get("/api/citizen/stats", headers=citizen_headers).json()["data"]

    assert detail["status"] == "PENDING"
    assert detail["payment"]["status"] == "COMPLETED"
    assert stats["pendingRequests"] == 1


def test_legacy_payment_allows_approval(client, agent_headers, declaration_id):
    _store_legacy(declaration_id)

    response = client.post(f"/api/agent/birth-declarations/{declaration_id}/approve", headers=agent_headers)

    assert response.status_code == 200


def test_migration_rewrites_legacy_literals(database, client, declaration_id):
    _store_legacy(declaration_id)

    with get_db() as db:
        dry = migrate(db, dry_run=True)
        db.rollback()
    assert dry["birth_declarations"] == 1
    assert load(BirthDeclaration, declaration_id).status == "en_attente"

    with get_db() as db:
        counts = migrate(db)

    assert counts == {"birth_declarations": 1, "birth_certificates": 0, "document_requests": 0, "payments": 1}
    declaration = load(BirthDeclaration, declaration_id)
    assert declaration.status == "PENDING"
    with get_db() as db:
        assert db.query(Payment).one().status == PaymentStatus.COMPLETED.value
