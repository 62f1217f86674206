import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.routers import reports


@pytest.fixture
def client():
    reports.report_cache.invalidate()
    with TestClient(app) as test_client:
        yield test_client
    reports.report_cache.invalidate()


@pytest.fixture
def sample_payload():
    return {
        "costs": [
            {"id": "c1", "amount": 100, "category": "software", "date": "2025-01-15", "projectId": "p1"},
            {"id": "c2", "amount": "40.50", "category": "travel", "date": "2024-12-03"},
        ],
        "expenses": [
            {"id": "e1", "amount": 50, "category": "software", "startDate": "2025-01-20", "projectId": "p1"},
        ],
        "budgets": [
            {"id": "b1", "amount": 200, "category": "software", "period": "monthly", "projectId": "p1"},
            {"id": "b2", "amount": 100, "category": "travel", "period": "monthly"},
        ],
    }
