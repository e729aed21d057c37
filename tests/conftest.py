"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from policy_pulse.main import app
from policy_pulse.repositories.memory import (
    InMemoryImpactReportStore,
    InMemoryPolicyDirectory,
    InMemoryUserDirectory,
)


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture
def sample_policies() -> List[Dict[str, Any]]:
    """Two versions of one plan plus a competitor, in the stored record shapes.

    Returns:
        List of raw policy records
    """
    return [
        {
            "id": "basic-v1",
            "name": "Basic Care",
            "version": 1,
            "insuranceCompanyRef": "insurance_companies/acme",
            "beFileName": "basic_v1.pdf",
            "coverageMap": {"metformin": 100, "lisinopril": 100, "atorvastatin": 0},
        },
        {
            "id": "basic-v2",
            "name": "Basic Care",
            "version": 2,
            "insuranceCompanyRef": "insurance_companies/acme",
            "beFileName": "basic_v2.pdf",
            "coverageMap": {
                "metformin": {"type": "percent", "percent": 50},
                "lisinopril": {"type": "covered"},
                "atorvastatin": 0,
            },
        },
        {
            "id": "plus-v1",
            "name": "Plus Care",
            "version": 1,
            "insuranceCompanyRef": "insurance_companies/globex",
            "beFileName": "plus_v1.pdf",
            "coverageMap": [
                {"metformin": 100},
                {"lisinopril": 100},
                {"atorvastatin": {"type": "percent", "percent": 80, "copay": 5}},
            ],
        },
    ]


@pytest.fixture
def sample_users() -> List[Dict[str, Any]]:
    """Patients and one non-patient, including the legacy ``ilnesses`` spelling.

    Returns:
        List of raw user records
    """
    return [
        {
            "id": "u-alice",
            "name": "Alice",
            "email": "alice@example.com",
            "role": "patient",
            "illnesses": [{"name": "diabetes", "medications": ["Metformin"]}],
            "insuredAt": ["policies/basic-v2"],
        },
        {
            "id": "u-bob",
            "name": "Bob",
            "email": "bob@example.com",
            "role": "patient",
            "ilnesses": [{"name": "hypertension", "medications": ["Lisinopril", "  Atorvastatin "]}],
            "insuredAt": ["policies/basic-v1"],
        },
        {
            "id": "u-carol",
            "name": "Dr. Carol",
            "role": "hospital",
            "insuredAt": [],
        },
    ]


@pytest.fixture
def policy_directory(sample_policies) -> InMemoryPolicyDirectory:
    return InMemoryPolicyDirectory(sample_policies)


@pytest.fixture
def user_directory(sample_users) -> InMemoryUserDirectory:
    return InMemoryUserDirectory(sample_users)


@pytest.fixture
def report_store() -> InMemoryImpactReportStore:
    return InMemoryImpactReportStore()
