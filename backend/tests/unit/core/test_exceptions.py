"""
Unit Tests for TeamDesk errors
Tests for: status codes, error codes and the rendered error body
"""
import pytest

from teamdesk.core.exceptions import (
    AuthorizationError,
    ConflictError,
    EmailDeliveryError,
    EmailNotConfiguredError,
    ResourceNotFoundError,
    TeamDeskError,
    ValidationError,
    error_response,
)


class TestStatusCodes:

    @pytest.mark.parametrize("error, status_code", [
        (AuthorizationError(), 403),
        (ResourceNotFoundError("Estimation", "e1"), 404),
        (ValidationError("Quantity must be greater than 0", field="quantity"), 400),
        (ConflictError("Estimation is used by 2 proforma(s)"), 409),
        (EmailDeliveryError("a@acme.com", "relay refused"), 502),
        (EmailNotConfiguredError(), 503),
    ])
    def test_each_error_carries_its_status(self, error, status_code):
        assert isinstance(error, TeamDeskError)
        assert error.status_code == status_code


class TestMessages:

    def test_not_found_names_the_resource(self):
        error = ResourceNotFoundError("Stock item", "s-9")

        assert error.message == "Stock item not found"
        assert error.code == "STOCK_ITEM_NOT_FOUND"
        assert error.details == {"resource_type": "Stock item", "resource_id": "s-9"}

    def test_validation_records_the_field(self):
        assert ValidationError("Bad", field="quantity").details == {"field": "quantity"}
        assert ValidationError("Bad").details == {}

    def test_authorization_default_message(self):
        assert AuthorizationError().message == "Access denied"

    def test_error_response_shape(self):
        body = error_response(ConflictError("In use", details={"proformas": 1}))

        assert body == {
            "success": False,
            "error": {"code": "CONFLICT", "message": "In use", "details": {"proformas": 1}},
        }
