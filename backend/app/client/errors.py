"""
Client-side API errors and user-facing network messages
"""
from typing import Optional

import httpx


class ApiError(Exception):
    """A failed API call, carrying the backend's `error` message"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkError(ApiError):
    """The server could not be reached at all"""


class CsrfError(ApiError):
    """The server rejected the CSRF token; a fresh one has been fetched"""


def get_network_error_message(production: bool) -> str:
    """Message shown when the API cannot be reached"""
    if production:
        return "Network error: Unable to connect to server. Please check your internet connection and try again."
    return "Network error: Unable to connect to server. Please make sure the backend server is running."


def error_from_response(response: httpx.Response) -> ApiError:
    """Build an ApiError from a non-2xx response"""
    try:
        data = response.json()
    except ValueError:
        data = None

    message = None
    if isinstance(data, dict):
        message = data.get("error")
    return ApiError(message or f"Request failed with status {response.status_code}", response.status_code)
