"""
Tests for the response envelope and the error-to-status mapping.
"""

from unittest.mock import patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from main import app
from shared.exceptions import NotFoundError, StoreError, ValidationError
from shared.validation import contains_pattern, is_valid_phone, normalize_limit, normalize_page, page_bounds, pagination_meta


class TestEnvelope:

    def test_root_banner(self, client):
        body = client.get("/").json()

        assert body["version"] == "1.0.0"

    def test_success_envelope(self, client):
        body = client.get("/api/katalog").json()

        assert body["success"] is True
        assert body["data"] == []

    def test_request_id_header(self, client):
        response = client.get("/api/katalog")

        assert response.headers["X-Request-ID"]

    def test_schema_errors_are_400(self, client):
        response = client.post("/api/peminjaman", content="not json", headers={"Content-Type": "application/json"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False

    def test_unknown_route_keeps_envelope(self, client):
        response = client.get("/api/unknown")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["success"] is False


class TestErrorMapping:
    """Service exceptions rendered by the shared handlers."""

    @pytest.mark.parametrize("error,expected", [
        (ValidationError("bad input"), status.HTTP_400_BAD_REQUEST),
        (NotFoundError("Loan request", "x"), status.HTTP_404_NOT_FOUND),
        (StoreError("get_loan_request", "connection reset"), status.HTTP_500_INTERNAL_SERVER_ERROR),
    ])
    def test_app_errors(self, client, error, expected):
        with patch("loan_requests.service.LoanRequestService.get", side_effect=error):
            response = client.get("/api/peminjaman/x")

        assert response.status_code == expected
        assert response.json()["success"] is False

    def test_store_error_message_is_generic(self, client):
        with patch("loan_requests.service.LoanRequestService.stats",
                   side_effect=StoreError("loan_request_stats", "database is locked")):
            response = client.get("/api/peminjaman/stats")

        assert response.json()["message"] == "An internal server error occurred"
        assert "locked" not in response.text

    def test_unexpected_error_is_500(self, db_manager):
        from shared.database import get_database

        app.dependency_overrides[get_database] = lambda: db_manager
        try:
            client = TestClient(app, raise_server_exceptions=False)
            with patch("faq.service.FaqService.list_active", side_effect=RuntimeError("kaboom")):
                response = client.get("/api/faq")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["message"] == "An internal server error occurred"


class TestValidationHelpers:

    def test_phone_format(self):
        assert is_valid_phone("+628123456789")
        assert is_valid_phone("62 812 3456 789")
        assert not is_valid_phone("0812345678")
        assert not is_valid_phone("+62-812")
        assert not is_valid_phone(None)
        assert is_valid_phone("12")
        assert is_valid_phone("+123456789012345")
        assert not is_valid_phone("1")
        assert not is_valid_phone("+1234567890123456")

    def test_contains_pattern_escapes_wildcards(self):
        assert contains_pattern("siti") == "%siti%"
        assert contains_pattern("50%_a") == "%50\\%\\_a%"
        assert contains_pattern("a\\b") == "%a\\\\b%"

    def test_pagination_helpers(self):
        assert page_bounds(2, 10) == (10, 20)
        assert pagination_meta(2, 10, 15) == {
            "currentPage": 2, "totalPages": 2, "totalItems": 15, "itemsPerPage": 10
        }
        assert pagination_meta(1, 10, 0)["totalPages"] == 0
        assert normalize_page(0) == 1
        assert normalize_limit(None) == 10
