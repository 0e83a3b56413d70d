"""
Unit tests for main FastAPI application.

Tests the root endpoints, health checks, and global exception handlers.
"""

import json

import pytest
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient
from fastapi import Request

from core.exceptions import BookingPersistenceError, SlotUnavailableError
from main import (
    app,
    root,
    health_check,
    booking_error_handler,
    global_exception_handler,
    value_error_handler,
)


class TestRootEndpoints:
    """Test root API endpoints."""

    def test_root_endpoint(self):
        """Test the root endpoint returns correct information."""
        client = TestClient(app)
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Studio Booking Backend API"
        assert data["version"] == "1.0.0"
        assert data["status"] == "running"

    def test_health_endpoint(self):
        """Test the health check endpoint."""
        client = TestClient(app)
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_health_check_function_directly(self):
        """Test the health_check function directly."""
        assert await health_check() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_root_function_directly(self):
        result = await root()
        assert result["status"] == "running"


class TestExceptionHandlers:
    """Test global exception handlers."""

    @pytest.mark.asyncio
    async def test_booking_error_handler(self):
        """Test domain errors keep their code and status."""
        response = await booking_error_handler(Mock(spec=Request), SlotUnavailableError("2025-06-01T10:00:00Z"))

        assert response.status_code == 409
        assert json.loads(response.body) == {
            "detail": "This time slot is already booked",
            "code": "SLOT_UNAVAILABLE",
            "details": {"slot": "2025-06-01T10:00:00Z"},
        }

    @pytest.mark.asyncio
    async def test_booking_error_handler_logs_server_errors(self):
        with patch('main.logger') as mock_logger:
            response = await booking_error_handler(Mock(spec=Request), BookingPersistenceError())

        assert response.status_code == 500
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_global_exception_handler(self):
        """Test handling of unhandled exceptions."""
        with patch('main.logger') as mock_logger:
            response = await global_exception_handler(Mock(spec=Request), RuntimeError("Test error"))

            assert response.status_code == 500
            assert json.loads(response.body) == {"detail": "Internal server error", "type": "internal_error"}
            mock_logger.exception.assert_called_once()

    @pytest.mark.asyncio
    async def test_value_error_handler(self):
        """Test handling of ValueError exceptions."""
        with patch('main.logger') as mock_logger:
            response = await value_error_handler(Mock(spec=Request), ValueError("Invalid input"))

            assert response.status_code == 400
            assert json.loads(response.body) == {"detail": "Invalid input", "type": "validation_error"}
            mock_logger.warning.assert_called_once()

    def test_request_validation_error_is_400(self):
        client = TestClient(app)
        response = client.post("/api/coupons/validate", json={"order_subtotal": "lots"})

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"
