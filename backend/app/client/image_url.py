"""
API and image URL helpers
"""
import os
from urllib.parse import urlparse

DEFAULT_API_URL = "https://api.tinytalesearth.com/api"
PRODUCTION_HOST = "https://api.tinytalesearth.com"
LOCAL_HOST = "http://localhost:3001"


def get_api_url() -> str:
    """API base URL; STOREFRONT_API_URL overrides the production default"""
    return os.getenv("STOREFRONT_API_URL") or DEFAULT_API_URL


def get_base_url(api_url: str) -> str:
    """Server root: the API URL without its trailing /api"""
    api_url = api_url.rstrip("/")
    if api_url.endswith("/api"):
        return api_url[:-len("/api")]
    return api_url


def is_local_url(url: str) -> bool:
    host = urlparse(url).hostname
    return host in ("localhost", "127.0.0.1")


def get_image_url(url: str, page_is_https: bool = False, api_url: str = None) -> str:
    """
    Resolve an image URL for display

    - Absolute URLs are kept, except http URLs on an https page, which are
      upgraded to avoid mixed content (the local dev server maps to the
      production API host).
    - Relative paths (e.g. /uploads/x.jpg) are joined onto the API server root.
    """
    if not url:
        return ""

    if url.startswith(("http://", "https://")):
        if page_is_https and url.startswith("http://"):
            if url.startswith(LOCAL_HOST):
                return PRODUCTION_HOST + url[len(LOCAL_HOST):]
            return "https://" + url[len("http://"):]
        return url

    base_url = get_base_url(api_url or get_api_url())
    path = url if url.startswith("/") else f"/{url}"
    return f"{base_url}{path}"
