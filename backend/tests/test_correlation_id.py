"""Tests for correlation ID header on all responses."""

import uuid

from tests.test_utils import CAPTCHA_TOKEN


def test_correlation_id_on_success(client):
    """Test that correlation ID is included on successful responses."""
    response = client.get("/health")
    assert response.status_code == 200
    assert "X-Correlation-ID" in response.headers
    assert len(response.headers["X-Correlation-ID"]) == 8  # 4 bytes as hex


def test_correlation_id_on_404_error(client):
    """Test that correlation ID is included on not-found responses."""
    response = client.post(f"/api/secrets/{uuid.uuid4()}", json={"captchaToken": CAPTCHA_TOKEN})
    assert response.status_code == 404
    assert len(response.headers["X-Correlation-ID"]) == 8


def test_correlation_id_on_validation_error(client):
    """Test that correlation ID is included on request validation errors."""
    response = client.post("/api/secrets", json={"encryptedContent": "nope"})
    assert response.status_code == 400
    assert len(response.headers["X-Correlation-ID"]) == 8


def test_correlation_ids_unique_across_requests(client):
    """Test that each request gets a unique correlation ID."""
    response1 = client.get("/health")
    response2 = client.get("/health")

    corr_id_1 = response1.headers.get("X-Correlation-ID")
    corr_id_2 = response2.headers.get("X-Correlation-ID")

    assert corr_id_1 != corr_id_2, "Correlation IDs should be unique across requests"
