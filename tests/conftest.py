import os

# Pas de Redis en tests: le rate limiting est désactivé au démarrage de l'app
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from unified_checkout.app import app as fastapi_app

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    # raise_server_exceptions=False: les 500 sont rendues par le handler global
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c

# Aucun accès réseau à Supabase pendant les tests
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    client = MagicMock(name="supabase")
    monkeypatch.setattr("unified_checkout.infra.supabase_client.get_service_supabase", lambda: client)
    return client

@pytest.fixture
def cart():
    return {
        "id": "11111111-2222-3333-4444-555555555555",
        "business_id": "biz-1",
        "session_token": "tok-1",
        "status": "active",
    }

@pytest.fixture
def product_items():
    return [
        {
            "id": "ci-1",
            "item_type": "product",
            "product_id": "p-1",
            "quantity": 2,
            "unit_price_cents": 1000,
            "line_total_cents": 2000,
            "title_snapshot": "Mug",
        }
    ]

@pytest.fixture
def booking_draft():
    return {
        "cart_id": "11111111-2222-3333-4444-555555555555",
        "service_id": "svc-1",
        "start_time": "2026-11-02T15:00:00+00:00",
        "end_time": "2026-11-02T16:30:00+00:00",
        "timezone": "America/Chicago",
        "customer_name": "Draft Name",
        "customer_phone": "555-0000",
        "notes": "Window seat",
        "status": "draft",
    }
