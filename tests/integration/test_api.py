"""Tests for API endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from policy_pulse.api.dependencies import (
    get_pdf_comparison_service,
    get_policy_directory,
    get_report_store,
    get_user_directory,
)
from policy_pulse.core.exceptions import DocumentExtractionError
from policy_pulse.main import app
from policy_pulse.schemas.document import StructuredDiff, TableDiff, TableSection, UnifiedDiff
from policy_pulse.services.comparison.document_diff_service import structured_diff

PDF_FILES = {
    "oldPdf": ("v1.pdf", b"%PDF-1.4 old", "application/pdf"),
    "newPdf": ("v2.pdf", b"%PDF-1.4 new", "application/pdf"),
}


@pytest.fixture
def seeded(policy_directory, user_directory, report_store):
    """Route the directory dependencies to the shared in-memory fixtures."""
    app.dependency_overrides[get_policy_directory] = lambda: policy_directory
    app.dependency_overrides[get_user_directory] = lambda: user_directory
    app.dependency_overrides[get_report_store] = lambda: report_store
    return report_store


@pytest.fixture
def comparison_service() -> AsyncMock:
    service = AsyncMock()
    app.dependency_overrides[get_pdf_comparison_service] = lambda: service
    return service


class TestHealth:
    def test_health(self, test_client: TestClient) -> None:
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCompareEndpoint:
    """Upload validation, output formats and error mapping for /pdf/compare."""

    def test_json_format_returns_envelope(self, test_client: TestClient, comparison_service: AsyncMock) -> None:
        comparison_service.compare_texts.return_value = structured_diff("a\nb\n", "a\nc\n")

        response = test_client.post("/api/v1/pdf/compare", files=PDF_FILES)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is True
        assert body["data"]["granularity"] == "line"
        assert body["data"]["meta"]["old_filename"] == "v1.pdf"
        assert isinstance(comparison_service.compare_texts.return_value, StructuredDiff)

    def test_unified_format_is_plain_text(self, test_client: TestClient, comparison_service: AsyncMock) -> None:
        comparison_service.compare_unified.return_value = UnifiedDiff(
            patch="--- v1.pdf\n+++ v2.pdf\n", old_length=1, new_length=1
        )

        response = test_client.post("/api/v1/pdf/compare?format=unified&context=5", files=PDF_FILES)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("--- v1.pdf")
        kwargs = comparison_service.compare_unified.call_args.kwargs
        assert kwargs["context"] == 5
        assert kwargs["old_name"] == "v1.pdf"

    def test_inline_format_is_plain_text(self, test_client: TestClient, comparison_service: AsyncMock) -> None:
        comparison_service.compare_inline.return_value = "  same\n- old\n+ new"

        response = test_client.post("/api/v1/pdf/compare?format=inline", files=PDF_FILES)

        assert response.status_code == 200
        assert response.text == "  same\n- old\n+ new"

    def test_oop_table_format(self, test_client: TestClient, comparison_service: AsyncMock) -> None:
        comparison_service.compare_tables.return_value = TableDiff(section=TableSection.OUT_OF_POCKET)

        response = test_client.post("/api/v1/pdf/compare?format=table&section=oop", files=PDF_FILES)

        assert response.status_code == 200
        assert response.json()["data"]["section"] == "oop"
        assert response.json()["data"]["meta"]["section"] == "oop"

    def test_coverage_table_includes_priced_changes(
        self, test_client: TestClient, comparison_service: AsyncMock
    ) -> None:
        comparison_service.compare_coverage_with_prices.return_value = (
            TableDiff(section=TableSection.COVERAGE),
            [],
        )

        response = test_client.post("/api/v1/pdf/compare?format=table", files=PDF_FILES)

        assert response.status_code == 200
        assert response.json()["data"]["priced_changes"] == []

    def test_missing_file_is_bad_request(self, test_client: TestClient, comparison_service: AsyncMock) -> None:
        response = test_client.post("/api/v1/pdf/compare", files={"oldPdf": PDF_FILES["oldPdf"]})

        assert response.status_code == 400

    @pytest.mark.parametrize("query", ["format=xml", "format=table&section=dental"])
    def test_unknown_options_are_bad_request(
        self, test_client: TestClient, comparison_service: AsyncMock, query: str
    ) -> None:
        response = test_client.post(f"/api/v1/pdf/compare?{query}", files=PDF_FILES)

        assert response.status_code == 400
        comparison_service.compare_tables.assert_not_called()

    def test_unreadable_pdf_is_unprocessable(self, test_client: TestClient, comparison_service: AsyncMock) -> None:
        comparison_service.compare_texts.side_effect = DocumentExtractionError("Could not read PDF content")

        response = test_client.post("/api/v1/pdf/compare", files=PDF_FILES)

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "document_unreadable"


class TestImpactEndpoints:
    def test_run_by_id_reports_affected_patients(self, test_client: TestClient, seeded) -> None:
        response = test_client.post(
            "/api/v1/affected-meds/run-by-id",
            json={"oldPolicyId": "basic-v1", "newPolicyId": "basic-v2", "insuredPolicyId": "basic-v2"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["changed_medications"] == ["metformin"]
        assert data["affected_patients"][0]["user_id"] == "u-alice"
        assert data["run_id"]

        impacts = test_client.get("/api/v1/policies/basic-v2/impacts?limit=1")
        assert impacts.status_code == 200
        assert impacts.json()["data"]["reports"][0]["run_id"] == data["run_id"]

    def test_run_by_id_unknown_policy(self, test_client: TestClient, seeded) -> None:
        response = test_client.post(
            "/api/v1/affected-meds/run-by-id",
            json={"oldPolicyId": "basic-v1", "newPolicyId": "missing"},
        )

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "policy_not_found"

    def test_run_by_id_requires_both_ids(self, test_client: TestClient, seeded) -> None:
        response = test_client.post("/api/v1/affected-meds/run-by-id", json={"oldPolicyId": "basic-v1"})

        assert response.status_code == 422

    def test_policy_diff_by_file(self, test_client: TestClient, seeded) -> None:
        response = test_client.post(
            "/api/v1/policies/diff",
            json={"oldFile": "basic_v1.pdf", "newFile": "plus_v1.pdf"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["changed_medications"] == ["atorvastatin"]

    def test_policy_cost(self, test_client: TestClient, seeded) -> None:
        response = test_client.post(
            "/api/v1/policies/plus-v1/cost",
            json={"items": [{"medication": "Atorvastatin", "price": 100}, {"medication": "metformin", "price": 4}]},
        )

        assert response.status_code == 200
        assert response.json()["data"]["total_patient_cost"] == 25.0

    def test_notification_preview_for_patient(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/notifications/preview",
            json={
                "patient": {
                    "user_id": "u-alice",
                    "email": "alice@example.com",
                    "medications_impacted": [
                        {"medication": "metformin", "old": {"type": "covered"}, "next": None},
                    ],
                }
            },
        )

        assert response.status_code == 200
        message = response.json()["data"]["messages"][0]
        assert message["to"] == "alice@example.com"
        assert "metformin: covered → not listed" in message["text"]


class TestRecommendationEndpoints:
    def test_better_options(self, test_client: TestClient, seeded) -> None:
        response = test_client.get("/api/v1/recommendations/u-bob/better?minImprovement=0.1")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["resolved_current_policy_id"] == "basic-v1"
        assert [option["policy"]["id"] for option in data["better_options"]] == ["plus-v1"]

    def test_better_options_unknown_user(self, test_client: TestClient, seeded) -> None:
        response = test_client.get("/api/v1/recommendations/nobody/better")

        assert response.status_code == 404

    def test_better_options_for_non_patient(self, test_client: TestClient, seeded) -> None:
        response = test_client.get("/api/v1/recommendations/u-carol/better")

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "not_a_patient"

    def test_best_by_coverage(self, test_client: TestClient, seeded) -> None:
        response = test_client.post(
            "/api/v1/recommendations/best-by-coverage",
            json={"medications": ["metformin"], "topK": 1},
        )

        assert response.status_code == 200
        assert len(response.json()["data"]["ranking"]) == 1

    def test_best_by_coverage_without_medications(self, test_client: TestClient, seeded) -> None:
        response = test_client.post("/api/v1/recommendations/best-by-coverage", json={})

        assert response.status_code == 400
