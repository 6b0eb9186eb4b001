from __future__ import annotations

import pytest
from conftest import load

from civil_registry.infrastructure.db.models import BirthDeclaration


@pytest.fixture
def paid_declaration_id(client, citizen_headers, declaration_id, gateway):
    session_id = client.post(
        "/api/payment/create-session", json={"requestId": declaration_id}, headers=citizen_headers,
    ).json()["data"]["sessionId"]
    gateway.paid.add(session_id)
    client.get("/api/payment/status", params={"session_id": session_id}, headers=citizen_headers)
    return declaration_id


def _approve(client, headers, declaration_id):
    return client.post(f"/api/agent/birth-declarations/{declaration_id}/approve", headers=headers)


class TestApproval:
    def test_unpaid_declaration_cannot_be_approved(self, client, agent_headers, declaration_id):
        response = _approve(client, agent_headers, declaration_id)

        assert response.status_code == 400
        assert response.json()["message"] == "Le paiement n'a pas été effectué"
        assert load(BirthDeclaration, declaration_id).status == "PENDING"

    def test_approval_issues_the_certificate(self, client, agent_headers, agent_id, paid_declaration_id):
        response = _approve(client, agent_headers, paid_declaration_id)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["declaration"]["status"] == "COMPLETED"
        assert data["declaration"]["agentId"] == agent_id
        certificate = data["birthCertificate"]
        assert certificate["status"] == "COMPLETED"
        assert certificate["acteNumber"].startswith("ACTE-")
        assert len(certificate["acteNumber"]) == len("ACTE-") + 8
        assert len(certificate["trackingNumber"]) == 10
        assert certificate["fullName"] == "Mamadou Diop"
        assert certificate["fatherFullName"] == "Ibrahima Diop"
        assert [f["type"] for f in certificate["files"]] == ["CNI_PERE"]
        assert certificate["agentId"] == agent_id

    def test_second_approval_is_refused(self, client, agent_headers, paid_declaration_id):
        _approve(client, agent_headers, paid_declaration_id)

        response = _approve(client, agent_headers, paid_declaration_id)

        assert response.status_code == 400
        assert response.json()["message"] == "Cette déclaration a déjà été traitée"

    def test_unknown_declaration(self, client, agent_headers):
        assert _approve(client, agent_headers, "missing").status_code == 404

    def test_citizen_sees_the_issued_certificate(self, client, agent_headers, citizen_headers, paid_declaration_id):
        _approve(client, agent_headers, paid_declaration_id)

        rows = client.get("/api/citizen/requests", headers=citizen_headers).json()["data"]

        assert sorted(row["type"] for row in rows) == ["birth_certificate", "birth_declaration"]
        assert all(row["status"] == "COMPLETED" for row in rows)


class TestNotifications:
    def test_approval_sends_two_notifications(self, client, agent_headers, citizen_headers, paid_declaration_id):
        _approve(client, agent_headers, paid_declaration_id)

        inbox = client.get("/api/citizen/notifications", headers=citizen_headers).json()["data"]

        assert sorted(n["type"] for n in inbox) == ["BIRTH_CERTIFICATE", "BIRTH_DECLARATION"]
        assert all(n["status"] == "UNREAD" for n in inbox)

    def test_mark_read(self, client, agent_headers, citizen_headers, declaration_id):
        client.patch(
            f"/api/agent/birth-declarations/{declaration_id}", json={"status": "IN_PROGRESS"}, headers=agent_headers,
        )
        notification = client.get("/api/citizen/notifications", headers=citizen_headers).json()["data"][0]

        response = client.patch(
            "/api/citizen/notifications", json={"notificationId": notification["id"]}, headers=citizen_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "READ"
        assert notification["referenceId"] == declaration_id

    def test_notification_id_is_required(self, client, citizen_headers):
        response = client.patch("/api/citizen/notifications", json={}, headers=citizen_headers)

        assert response.status_code == 400

    def test_other_citizens_notification_reads_as_missing(
        self, client, agent_headers, citizen_headers, other_citizen_headers, declaration_id,
    ):
        client.patch(
            f"/api/agent/birth-declarations/{declaration_id}", json={"status": "IN_PROGRESS"}, headers=agent_headers,
        )
        notification = client.get("/api/citizen/notifications", headers=citizen_headers).json()["data"][0]

        response = client.patch(
            "/api/citizen/notifications", json={"notificationId": notification["id"]}, headers=other_citizen_headers,
        )

        assert response.status_code == 404
        assert client.get("/api/citizen/notifications", headers=other_citizen_headers).json()["data"] == []
