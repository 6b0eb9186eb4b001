from __future__ import annotations

import hashlib
import hmac
import itertools
import time

import pytest
from fastapi.testclient import TestClient

from civil_registry.api import dependencies
from civil_registry.api.main import app
from civil_registry.config.settings import get_settings
from civil_registry.core.entities.status import AccountStatus, Role
from civil_registry.core.interfaces.payment_gateway import (
    CheckoutSession, CheckoutStatus, IPaymentGateway, PaymentEvent,
)
from civil_registry.core.interfaces.storage_service import IStorageService, StorageRef
from civil_registry.core.security import hash_password
from civil_registry.infrastructure.auth.session_tokens import issue_token
from civil_registry.infrastructure.cache.response_cache import ResponseCache
from civil_registry.infrastructure.db.database import dispose_db, get_db, init_db
from civil_registry.infrastructure.db.repository import RegistryStore


class FakeStorage(IStorageService):
    """Records calls instead of talking to a file host."""

    def __init__(self):
        self.uploads: list[dict] = []
        self.deleted: list[str] = []
        self.deleted_types: list[str] = []
        self.return_url = True
        self._ids = itertools.count(1)

    def upload(self, data, filename, content_type="application/octet-stream", folder=""):
        public_id = f"{folder}/file-{next(self._ids)}"
        self.uploads.append({"filename": filename, "size": len(data), "content_type": content_type, "folder": folder})
        url = f"https://files.example.test/{public_id}" if self.return_url else ""
        resource_type = "image" if content_type.startswith("image/") else "raw"
        return StorageRef(
            url=url, public_id=public_id, size_bytes=len(data), content_type=content_type,
            folder=folder, resource_type=resource_type,
        )

    def delete(self, public_id, resource_type="image"):
        self.deleted.append(public_id)
        self.deleted_types.append(resource_type)


class FakeGateway(IPaymentGateway):
    """Checkout sessions kept in memory. Tests flip `paid` to simulate the payer."""

    def __init__(self):
        self.created: list[dict] = []
        self.retrieved: list[str] = []
        self.paid: set[str] = set()
        self._ids = itertools.count(1)

    def create_checkout_session(self, amount, currency, description, metadata):
        session_id = f"cs_test_{next(self._ids)}"
        self.created.append({
            "session_id": session_id, "amount": amount, "currency": currency,
            "description": description, "metadata": dict(metadata),
        })
        return CheckoutSession(session_id=session_id, url=f"https://checkout.example.test/{session_id}")

    def retrieve_checkout_session(self, session_id):
        self.retrieved.append(session_id)
        return CheckoutStatus(session_id=session_id, paid=session_id in self.paid)

    def parse_event(self, payload, signature):
        raise ValueError("FakeGateway does not receive webhooks")


@pytest.fixture
def database(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'registry.db'}")
    monkeypatch.setenv("SESSION_SECRET", "test-session-secret")
    monkeypatch.setenv("STRICT_STATUS_TRANSITIONS", "false")
    get_settings.cache_clear()
    dispose_db()
    init_db()
    yield
    dispose_db()
    get_settings.cache_clear()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def cache():
    # Background refreshes run inline so tests stay deterministic.
    return ResponseCache(ttl_seconds=60, runner=lambda fn: fn())


@pytest.fixture
def client(database, storage, gateway, cache):
    app.dependency_overrides[dependencies.get_storage] = lambda: storage
    app.dependency_overrides[dependencies.get_payment_gateway] = lambda: gateway
    app.dependency_overrides[dependencies.get_cache] = lambda: cache
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _seed_account(kind: str, email: str, name: str):
    with get_db() as db:
        store = RegistryStore(db)
        if kind == Role.CITIZEN.value:
            account = store.citizens.add(
                name=name, email=email, hashed_password=hash_password("password", rounds=4),
                role=Role.CITIZEN.value, status=AccountStatus.ACTIVE.value,
            )
        else:
            first_name, _, last_name = name.partition(" ")
            account = store.users.add(
                first_name=first_name, last_name=last_name, name=name, email=email,
                hashed_password=hash_password("password", rounds=4), role=kind, status=AccountStatus.ACTIVE.value,
            )
        return account.id


@pytest.fixture
def citizen_id(database):
    return _seed_account(Role.CITIZEN.value, "awa.diop@example.sn", "Awa Diop")


@pytest.fixture
def other_citizen_id(database):
    return _seed_account(Role.CITIZEN.value, "moussa.fall@example.sn", "Moussa Fall")


@pytest.fixture
def agent_id(database):
    return _seed_account(Role.AGENT.value, "agent.ndiaye@mairie.sn", "Fatou Ndiaye")


@pytest.fixture
def admin_id(database):
    return _seed_account(Role.ADMIN.value, "admin@mairie.sn", "Admin Principal")


def bearer(user_id: str, role: Role) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user_id, role)}"}


@pytest.fixture
def citizen_headers(citizen_id):
    return bearer(citizen_id, Role.CITIZEN)


@pytest.fixture
def other_citizen_headers(other_citizen_id):
    return bearer(other_citizen_id, Role.CITIZEN)


@pytest.fixture
def agent_headers(agent_id):
    return bearer(agent_id, Role.AGENT)


@pytest.fixture
def admin_headers(admin_id):
    return bearer(admin_id, Role.ADMIN)


DECLARATION = {
    "childName": "Mamadou Diop",
    "birthDate": "2024-03-12",
    "birthTime": "08:30",
    "birthPlace": "Dakar",
    "gender": "M",
    "fatherName": "Ibrahima Diop",
    "motherName": "Awa Diop",
    "receptionMode": "delivery",
    "deliveryAddress": "12 rue X",
    "documents": [{"type": "CNI_PERE", "url": "https://files.example.test/cni.pdf"}],
}

CERTIFICATE = {
    "fullName": "Awa Diop",
    "birthDate": "1990-06-01",
    "birthPlace": "Thiès",
    "fatherName": "Ousmane Diop",
    "motherName": "Khady Sarr",
    "reason": "Dossier administratif",
}


@pytest.fixture
def declaration_payload():
    return {**DECLARATION, "documents": [dict(d) for d in DECLARATION["documents"]]}


@pytest.fixture
def certificate_payload():
    return dict(CERTIFICATE)


@pytest.fixture
def declaration_id(client, citizen_headers, declaration_payload):
    response = client.post("/api/citizen/birth-declaration", json=declaration_payload, headers=citizen_headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]["id"]


@pytest.fixture
def certificate_id(client, citizen_headers, certificate_payload):
    response = client.post("/api/citizen/birth-certificate", json=certificate_payload, headers=citizen_headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]["id"]


def load(model, record_id):
    """Fresh copy of a row, read in its own transaction."""
    with get_db() as db:
        return db.get(model, record_id)


def count(model) -> int:
    with get_db() as db:
        return db.query(model).count()


def stripe_signature(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """`Stripe-Signature` header value, signed the way the processor signs deliveries."""
    ts = int(timestamp if timestamp is not None else time.time())
    digest = hmac.new(secret.encode("utf-8"), f"{ts}.".encode("utf-8") + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"
