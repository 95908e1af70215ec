import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_e164_phone_masked(self):
        result = mask_sensitive_data(None, None, {"event": "sms", "to": "+919876543210"})
        assert "9876543210" not in result["to"]
        assert "***MASKED***" in result["to"]

    def test_phone_inside_message_masked(self):
        result = mask_sensitive_data(
            None, None, {"event": "sms", "error": "gateway rejected +14155550100 (400)"}
        )
        assert "+14155550100" not in result["error"]
        assert result["error"].endswith("(400)")

    def test_password_masked(self):
        result = mask_sensitive_data(None, None, {"event": "test", "data": "password='s3cret123'"})
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        result = mask_sensitive_data(None, None, {"event": "test", "header": "token=abc123xyz"})
        assert "abc123xyz" not in result["header"]

    def test_authorization_header_masked(self):
        result = mask_sensitive_data(
            None, None, {"event": "test", "headers": "Authorization: eyJhbGciOi"}
        )
        assert "eyJhbGciOi" not in result["headers"]

    def test_non_sensitive_data_unchanged(self):
        result = mask_sensitive_data(
            None, None, {"event": "order.created", "order_number": "ORD-20250101-ABCDEF012345"}
        )
        assert result["order_number"] == "ORD-20250101-ABCDEF012345"
        assert result["event"] == "order.created"

    def test_non_string_values_untouched(self):
        result = mask_sensitive_data(None, None, {"event": "x", "count": 3})
        assert result["count"] == 3
