"""
Tests for client error helpers
"""
import httpx

from app.client.errors import ApiError, CsrfError, NetworkError, error_from_response, get_network_error_message


class TestErrors:
    """Test error construction from responses"""

    def test_error_field_is_message(self):
        error = error_from_response(httpx.Response(400, json={"error": "Status is required"}))

        assert isinstance(error, ApiError)
        assert error.message == "Status is required"
        assert error.status_code == 400

    def test_detail_dict_errors_keep_their_message(self):
        body = {"error": "Please verify your email first", "userId": "1", "needsVerification": True}
        error = error_from_response(httpx.Response(403, json=body))

        assert str(error) == "Please verify your email first"

    def test_fallback_message(self):
        error = error_from_response(httpx.Response(500, json=["unexpected"]))
        assert str(error) == "Request failed with status 500"

    def test_network_messages(self):
        assert "check your internet connection" in get_network_error_message(production=True)
        assert "backend server is running" in get_network_error_message(production=False)

    def test_hierarchy(self):
        assert issubclass(NetworkError, ApiError)
        assert issubclass(CsrfError, ApiError)
