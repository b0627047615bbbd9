"""
CSRF token management for the storefront client

The server keeps the CSRF secret in an httpOnly cookie and hands out tokens
in the X-CSRF-Token header of GET responses. The token is cached in the
session store and sent back on mutating requests.
"""
import logging
from typing import Dict, Optional

import httpx

from app.client.errors import CsrfError
from app.client.image_url import get_base_url
from app.client.storage import CSRF_TOKEN_KEY, MemoryStore

logger = logging.getLogger(__name__)

CSRF_TOKEN_HEADER = "X-CSRF-Token"


class CsrfTokenManager:
    """
    Caches the CSRF token and keeps it fresh

    Handles:
    - Fetching a token from GET /api/health (falling back to GET /)
    - Attaching the token to request headers
    - Refreshing the token when the server rejects it
    """

    def __init__(self, http: httpx.Client, api_url: str, store: MemoryStore = None):
        self.http = http
        self.base_url = get_base_url(api_url)
        self.store = store if store is not None else MemoryStore()

    def _fetch_from_backend(self) -> Optional[str]:
        """GET a token; both endpoints issue one because the server adds it to every GET"""
        try:
            response = self.http.get(f"{self.base_url}/api/health")
        except httpx.TransportError as health_error:
            try:
                response = self.http.get(f"{self.base_url}/")
            except httpx.TransportError as root_error:
                logger.error(
                    f"Failed to fetch CSRF token from both endpoints: {health_error}, {root_error}"
                )
                return None

        token = response.headers.get(CSRF_TOKEN_HEADER)
        if not token:
            logger.warning(
                f"CSRF token not found in response headers (status {response.status_code}). "
                f"The server must expose {CSRF_TOKEN_HEADER} in Access-Control-Expose-Headers."
            )
        return token

    def get_token(self) -> Optional[str]:
        """Cached token, fetched from the backend when missing"""
        token = self.store.get(CSRF_TOKEN_KEY)
        if not token:
            token = self._fetch_from_backend()
            if token:
                self.store.set(CSRF_TOKEN_KEY, token)
        return token

    def clear(self) -> None:
        self.store.remove(CSRF_TOKEN_KEY)

    def refresh(self) -> Optional[str]:
        self.clear()
        return self.get_token()

    def add_to_headers(self, headers: Dict[str, str] = None) -> Dict[str, str]:
        """
        Return a copy of headers with the CSRF token added

        Never raises: without a token the headers are returned unchanged and
        the server answers 403 if it requires one.
        """
        headers = dict(headers or {})
        token = self.get_token()
        if token:
            headers[CSRF_TOKEN_HEADER] = token
        else:
            logger.error("Failed to fetch CSRF token from backend")
        return headers

    def validate_response(self, response: httpx.Response) -> None:
        """
        Inspect a response for CSRF problems

        Raises:
            CsrfError: the server rejected the token (a new one has been fetched)
        """
        if response.status_code == 403:
            try:
                data = response.json()
            except ValueError:
                data = None

            error = data.get("error") if isinstance(data, dict) else None
            if isinstance(error, str) and ("csrf" in error.lower() or "token" in error.lower()):
                self.refresh()
                raise CsrfError("CSRF token validation failed. Please try again.", 403)

        new_token = response.headers.get(CSRF_TOKEN_HEADER)
        if new_token:
            self.store.set(CSRF_TOKEN_KEY, new_token)
