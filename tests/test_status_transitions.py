from __future__ import annotations

import pytest
from conftest import load

from civil_registry.config.settings import get_settings
from civil_registry.infrastructure.db.database import get_db
from civil_registry.infrastructure.db.models import BirthCertificate, BirthDeclaration, Notification


def _patch_declaration(client, headers, declaration_id, status):
    return client.patch(f"/api/agent/birth-declarations/{declaration_id}", json={"status": status}, headers=headers)


def _notifications(citizen_id):
    with get_db() as db:
        return [(n.type, n.reference_id) for n in db.query(Notification).filter_by(citizen_id=citizen_id)]


def test_permissive_mode_allows_pending_to_completed(client, agent_headers, declaration_id):
    response = _patch_declaration(client, agent_headers, declaration_id, "COMPLETED")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "COMPLETED"
    assert load(BirthDeclaration, declaration_id).status == "COMPLETED"


def test_unknown_status_is_rejected_and_record_untouched(client, agent_headers, declaration_id):
    before = load(BirthDeclaration, declaration_id)

    response = _patch_declaration(client, agent_headers, declaration_id, "DONE")

    assert response.status_code == 400
    after = load(BirthDeclaration, declaration_id)
    assert after.status == "PENDING"
    assert after.updated_at == before.updated_at
    assert after.agent_id is None


@pytest.mark.parametrize("status", [None, "", "DELETED"])
def test_missing_or_reserved_status_is_rejected(client, agent_headers, declaration_id, status):
    response = _patch_declaration(client, agent_headers, declaration_id, status)

    assert response.status_code == 400
    assert load(BirthDeclaration, declaration_id).status == "PENDING"


def test_in_progress_stamps_agent_and_notifies(client, agent_headers, agent_id, citizen_id, declaration_id):
    response = _patch_declaration(client, agent_headers, declaration_id, "IN_PROGRESS")

    assert response.status_code == 200
    assert response.json()["data"]["agentId"] == agent_id
    assert _notifications(citizen_id) == [("BIRTH_DECLARATION", declaration_id)]


def test_legacy_literal_is_stored_canonically(client, agent_headers, declaration_id):
    response = _patch_declaration(client, agent_headers, declaration_id, "rejeté")

    assert response.status_code == 200
    assert load(BirthDeclaration, declaration_id).status == "REJECTED"


def test_processed_declaration_is_locked(client, agent_headers, declaration_id):
    _patch_declaration(client, agent_headers, declaration_id, "REJECTED")

    response = _patch_declaration(client, agent_headers, declaration_id, "IN_PROGRESS")

    assert response.status_code == 403
    assert load(BirthDeclaration, declaration_id).status == "REJECTED"


def test_unknown_declaration(client, agent_headers):
    assert _patch_declaration(client, agent_headers, "missing", "IN_PROGRESS").status_code == 404


class TestStrictMode:
    @pytest.fixture(autouse=True)
    def strict(self, database, monkeypatch):
        monkeypatch.setenv("STRICT_STATUS_TRANSITIONS", "true")
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_pending_cannot_jump_to_completed(self, client, agent_headers, declaration_id):
        response = _patch_declaration(client, agent_headers, declaration_id, "COMPLETED")

        assert response.status_code == 400
        assert load(BirthDeclaration, declaration_id).status == "PENDING"

    def test_table_path_is_allowed(self, client, agent_headers, declaration_id):
        assert _patch_declaration(client, agent_headers, declaration_id, "IN_PROGRESS").status_code == 200
        assert _patch_declaration(client, agent_headers, declaration_id, "COMPLETED").status_code == 200


class TestCertificates:
    def test_reject_with_comment(self, client, agent_headers, agent_id, certificate_id):
        response = client.patch(
            f"/api/agent/birth-certificates/{certificate_id}",
            json={"status": "REJECTED", "comment": "Pièces manquantes"},
            headers=agent_headers,
        )

        assert response.status_code == 200
        stored = load(BirthCertificate, certificate_id)
        assert stored.status == "REJECTED"
        assert stored.comment == "Pièces manquantes"
        assert stored.agent_id == agent_id

    def test_comment_is_cleared_when_absent(self, client, agent_headers, certificate_id):
        response = client.patch(
            f"/api/agent/birth-certificates/{certificate_id}",
            json={"status": "IN_PROGRESS"},
            headers=agent_headers,
        )

        assert response.status_code == 200
        assert load(BirthCertificate, certificate_id).comment is None

    def test_concurrent_updates_are_last_write_wins(self, client, agent_headers, certificate_id):
        for status, comment in (("IN_PROGRESS", "premier"), ("REJECTED", "second")):
            client.patch(
                f"/api/agent/birth-certificates/{certificate_id}",
                json={"status": status, "comment": comment},
                headers=agent_headers,
            )

        stored = load(BirthCertificate, certificate_id)
        assert (stored.status, stored.comment) == ("REJECTED", "second")

    def test_agent_detail_and_list(self, client, agent_headers, certificate_id):
        listing = client.get("/api/agent/birth-certificates", headers=agent_headers).json()["data"]
        assert [c["id"] for c in listing] == [certificate_id]

        detail = client.get(f"/api/agent/birth-certificates/{certificate_id}", headers=agent_headers)
        assert detail.json()["data"]["citizen"]["name"] == "Awa Diop"
        assert client.get("/api/agent/birth-certificates/missing", headers=agent_headers).status_code == 404


class TestAdminOverride:
    def test_reject_certificate_keeps_reason(self, client, admin_headers, certificate_id):
        response = client.patch(
            f"/api/admin/requests/{certificate_id}/status",
            json={"status": "REJECTED", "rejectReason": "Doublon"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["documentType"] == "BirthCertificate"
        stored = load(BirthCertificate, certificate_id)
        assert (stored.status, stored.comment) == ("REJECTED", "Doublon")

    def test_declaration_override(self, client, admin_headers, declaration_id):
        response = client.patch(
            f"/api/admin/requests/{declaration_id}/status",
            json={"status": "IN_PROGRESS"},
            headers=admin_headers,
        )

        assert response.json()["data"]["documentType"] == "BirthDeclaration"
        assert load(BirthDeclaration, declaration_id).status == "IN_PROGRESS"

    def test_invalid_status(self, client, admin_headers, certificate_id):
        response = client.patch(
            f"/api/admin/requests/{certificate_id}/status", json={"status": "ARCHIVED"}, headers=admin_headers,
        )
        assert response.status_code == 400
        assert load(BirthCertificate, certificate_id).status == "PENDING"

    def test_unknown_request(self, client, admin_headers):
        response = client.patch("/api/admin/requests/missing/status", json={"status": "REJECTED"}, headers=admin_headers)
        assert response.status_code == 404
