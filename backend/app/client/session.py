"""
Authenticated HTTP session for the storefront client

SecureSession attaches the bearer token and CSRF header to every request,
shares one cookie jar (so the server's CSRF secret cookie is sent back) and
transparently refreshes an expired access token once.
"""
import logging
from typing import Any, Callable, Dict, Optional

import httpx

from app.client.csrf import CsrfTokenManager
from app.client.image_url import get_api_url
from app.client.storage import (
    REFRESH_TOKEN_KEY,
    TOKEN_KEY,
    USER_KEY,
    MemoryStore,
)

logger = logging.getLogger(__name__)


class SecureSession:
    """
    HTTP session with token handling

    Args:
        api_url: API base URL (ending in /api)
        store: persistent store for tokens and user (localStorage analogue)
        session_store: per-session store for the CSRF token (sessionStorage analogue)
        http: httpx client; pass one with a MockTransport in tests
        on_token_refreshed: called with the new access token after a refresh
        on_auth_expired: called when the refresh token is no longer accepted
    """

    def __init__(
        self,
        api_url: str = None,
        store: MemoryStore = None,
        session_store: MemoryStore = None,
        http: httpx.Client = None,
        on_token_refreshed: Callable[[str], None] = None,
        on_auth_expired: Callable[[], None] = None
    ):
        self.api_url = (api_url or get_api_url()).rstrip("/")
        self.store = store if store is not None else MemoryStore()
        self.http = http or httpx.Client(timeout=30.0)
        self.csrf = CsrfTokenManager(self.http, self.api_url, session_store)
        self.on_token_refreshed = on_token_refreshed
        self.on_auth_expired = on_auth_expired

    # Token storage

    def get_token(self) -> Optional[str]:
        return self.store.get(TOKEN_KEY)

    def has_token(self) -> bool:
        return self.get_token() is not None

    def get_refresh_token(self) -> Optional[str]:
        return self.store.get(REFRESH_TOKEN_KEY)

    def get_user(self) -> Optional[Dict[str, Any]]:
        return self.store.get(USER_KEY)

    def store_tokens(self, access_token: str, refresh_token: str = None) -> None:
        self.store.set(TOKEN_KEY, access_token)
        if refresh_token:
            self.store.set(REFRESH_TOKEN_KEY, refresh_token)

    def store_user(self, user: Dict[str, Any]) -> None:
        self.store.set(USER_KEY, user)

    def clear_auth_data(self) -> None:
        for key in (TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
            self.store.remove(key)

    # Requests

    def refresh_access_token(self) -> Optional[str]:
        """
        Trade the stored refresh token for a new access token

        Returns:
            The new access token, or None if refreshing is not possible
        """
        refresh_token = self.get_refresh_token()
        if not refresh_token:
            return None

        headers = self.csrf.add_to_headers({"Content-Type": "application/json"})
        try:
            response = self.http.post(
                f"{self.api_url}/auth/refresh-token",
                json={"refreshToken": refresh_token},
                headers=headers,
            )
        except httpx.TransportError as e:
            logger.error(f"Failed to refresh token: {e}")
            return None

        if not response.is_success:
            return None

        data = response.json()
        access_token = data.get("accessToken")
        if not access_token:
            return None

        self.store_tokens(access_token, data.get("refreshToken"))
        return access_token

    def request(self, method: str, url: str, headers: Dict[str, str] = None, **kwargs) -> httpx.Response:
        """
        Send a request with bearer token and CSRF header

        On 401 with a stored token, the access token is refreshed once and the
        request retried; if refreshing fails the stored auth data is cleared
        and on_auth_expired fires. No other retries are made.

        Raises:
            httpx.TransportError: the server could not be reached
            CsrfError: the server rejected the CSRF token
        """
        request_headers = {}
        if "files" not in kwargs:
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})

        token = self.get_token()
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        request_headers = self.csrf.add_to_headers(request_headers)
        response = self.http.request(method, url, headers=request_headers, **kwargs)

        if response.status_code == 401 and token:
            logger.info("Access token expired, attempting to refresh...")
            new_token = self.refresh_access_token()

            if new_token:
                request_headers["Authorization"] = f"Bearer {new_token}"
                response = self.http.request(method, url, headers=request_headers, **kwargs)
                if self.on_token_refreshed:
                    self.on_token_refreshed(new_token)
            else:
                self.clear_auth_data()
                if self.on_auth_expired:
                    self.on_auth_expired()

        self.csrf.validate_response(response)
        return response

    def close(self) -> None:
        self.http.close()
