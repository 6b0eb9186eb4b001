from __future__ import annotations

import pytest
from conftest import count, load
from sqlalchemy import event

from civil_registry.core.errors import InternalError
from civil_registry.infrastructure.db.models import BirthDeclaration, Document, Payment


def test_birth_declaration_creates_documents_and_pending_fee(client, citizen_headers, declaration_payload):
    response = client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["status"] == "PENDING"
    assert data["childFirstName"] == "Mamadou"
    assert data["childLastName"] == "Diop"
    assert data["fatherFirstName"] == "Ibrahima"
    assert data["receptionMode"] == "delivery"
    assert data["deliveryAddress"] == "12 rue X"
    assert [d["type"] for d in data["documents"]] == ["CNI_PERE"]
    assert data["payment"]["amount"] == 1000
    assert data["payment"]["status"] == "PENDING"
    assert count(Document) == 1
    assert count(Payment) == 1


def test_document_type_defaults_when_omitted(client, citizen_headers, declaration_payload):
    declaration_payload["documents"] = [{"url": "https://files.example.test/scan.png"}]

    response = client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)

    assert response.json()["data"]["documents"][0]["type"] == "DOCUMENT"


def test_missing_field_names_the_first_one_in_declared_order(client, citizen_headers, declaration_payload):
    del declaration_payload["gender"]
    declaration_payload["birthPlace"] = "   "

    response = client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)

    assert response.status_code == 400
    assert "birthPlace" in response.json()["message"]
    assert count(BirthDeclaration) == 0
    assert count(Payment) == 0


def test_malformed_birth_date_is_a_validation_error(client, citizen_headers, declaration_payload):
    declaration_payload["birthDate"] = "12/03/2024"

    response = client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)

    assert response.status_code == 400
    assert "birthDate" in response.json()["message"]
    assert count(BirthDeclaration) == 0


def test_empty_body_is_rejected(client, citizen_headers):
    response = client.post("/api/citizen/birth-declaration", headers=citizen_headers)

    assert response.status_code == 400
    assert "childName" in response.json()["message"]


def test_identical_submissions_create_distinct_records(client, citizen_headers, declaration_payload):
    first = client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)
    second = client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)

    assert first.status_code == second.status_code == 200
    assert first.json()["data"]["id"] != second.json()["data"]["id"]
    assert count(BirthDeclaration) == 2
    assert count(Payment) == 2


def test_birth_certificate_request(client, citizen_headers, certificate_payload):
    certificate_payload["acteNumber"] = "ACTE-1990-0042"

    response = client.post("/api/citizen/birth-certificate", json=certificate_payload, headers=citizen_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "PENDING"
    assert data["comment"] == "Dossier administratif"
    assert data["acteNumber"] == "ACTE-1990-0042"
    assert len(data["trackingNumber"]) == 10
    assert data["files"] == []


def test_certificate_requires_a_reason(client, citizen_headers, certificate_payload):
    del certificate_payload["reason"]

    response = client.post("/api/citizen/birth-certificate", json=certificate_payload, headers=citizen_headers)

    assert response.status_code == 400
    assert "reason" in response.json()["message"]


def test_tracking_numbers_differ(client, citizen_headers, certificate_payload):
    numbers = {
        client.post("/api/citizen/birth-certificate", json=certificate_payload, headers=citizen_headers)
        .json()["data"]["trackingNumber"]
        for _ in range(3)
    }
    assert len(numbers) == 3


def test_citizen_request_list_merges_both_kinds(client, citizen_headers, declaration_id, certificate_id):
    response = client.get("/api/citizen/requests", headers=citizen_headers)

    rows = response.json()["data"]
    assert {row["id"]: row["type"] for row in rows} == {
        declaration_id: "birth_declaration",
        certificate_id: "birth_certificate",
    }
    assert rows[0]["id"] == certificate_id


def test_request_detail(client, citizen_headers, declaration_id):
    response = client.get(f"/api/citizen/requests/{declaration_id}", headers=citizen_headers)

    data = response.json()["data"]
    assert data["requestType"] == "birth_declaration"
    assert data["citizen"]["email"] == "awa.diop@example.sn"


def test_soft_deleted_request_disappears(client, citizen_headers, agent_headers, declaration_id):
    response = client.delete(f"/api/citizen/requests/{declaration_id}", headers=citizen_headers)
    assert response.status_code == 200
    assert load(BirthDeclaration, declaration_id).status == "DELETED"

    assert client.get("/api/citizen/requests", headers=citizen_headers).json()["data"] == []
    assert client.get(f"/api/citizen/requests/{declaration_id}", headers=citizen_headers).status_code == 404
    assert client.get("/api/agent/requests", headers=agent_headers).json()["data"] == []
    assert client.delete(f"/api/citizen/requests/{declaration_id}", headers=citizen_headers).status_code == 404


def test_cannot_delete_someone_elses_request(client, other_citizen_headers, declaration_id):
    response = client.delete(f"/api/citizen/requests/{declaration_id}", headers=other_citizen_headers)

    assert response.status_code == 404
    assert load(BirthDeclaration, declaration_id).status == "PENDING"


class TestDocumentRequests:
    def test_create_list_and_get(self, client, citizen_headers):
        created = client.post(
            "/api/document-requests",
            json={"type": "EXTRAIT_NAISSANCE", "deliveryMode": "pickup", "amount": 500},
            headers=citizen_headers,
        )
        assert created.status_code == 200
        request = created.json()["data"]
        assert request["status"] == "PENDING"
        assert request["amount"] == 500

        listing = client.get("/api/document-requests", headers=citizen_headers).json()["data"]
        assert [r["id"] for r in listing] == [request["id"]]

        detail = client.get(f"/api/document-requests/{request['id']}", headers=citizen_headers)
        assert detail.json()["data"]["deliveryMode"] == "pickup"

    @pytest.mark.parametrize("payload, field", [
        ({"deliveryMode": "pickup"}, "type"),
        ({"type": "EXTRAIT_NAISSANCE"}, "deliveryMode"),
    ])
    def test_required_fields(self, client, citizen_headers, payload, field):
        response = client.post("/api/document-requests", json=payload, headers=citizen_headers)
        assert response.status_code == 400
        assert field in response.json()["message"]

    def test_owner_only(self, client, citizen_headers, other_citizen_headers):
        created = client.post(
            "/api/document-requests",
            json={"type": "EXTRAIT_NAISSANCE", "deliveryMode": "pickup"},
            headers=citizen_headers,
        ).json()["data"]

        response = client.get(f"/api/document-requests/{created['id']}", headers=other_citizen_headers)
        assert response.status_code == 404


class TestDeclarationIsAtomic:
    @pytest.fixture
    def payment_insert_fails(self):
        def refuse(mapper, connection, target):
            raise InternalError()

        event.listen(Payment, "before_insert", refuse)
        yield
        event.remove(Payment, "before_insert", refuse)

    def test_failed_fee_payment_leaves_no_declaration(
        self, client, citizen_headers, declaration_payload, payment_insert_fails,
    ):
        response = client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Erreur interne du serveur"}
        assert count(BirthDeclaration) == 0
        assert count(Document) == 0
        assert count(Payment) == 0

    def test_stats_stay_cached_when_the_write_fails(
        self, client, citizen_headers, declaration_payload, payment_insert_fails, cache,
    ):
        client.get("/api/citizen/stats", headers=citizen_headers)

        client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)

        assert len(cache) == 1
