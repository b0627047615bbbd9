"""
Input sanitization helpers

Used server-side for product descriptions and request bodies, and by the
storefront client before rendering user-provided content.
"""
import html
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse

import nh3

ALLOWED_TAGS = {"b", "i", "em", "strong", "a", "p", "br", "ul", "ol", "li"}
ALLOWED_URL_SCHEMES = {"http", "https"}
# Content of these elements is dropped entirely, not just the tags
DROP_CONTENT_TAGS = {"script", "style", "iframe", "object", "embed", "template", "noscript"}
UNSAFE_SCHEMES = ("javascript:", "data:", "vbscript:")


def sanitize_url(url: str) -> str:
    """
    Return the URL if it is an absolute http(s) URL, else an empty string.
    """
    if not url:
        return ""

    url = url.strip()
    lowered = url.lower()
    if any(scheme in lowered for scheme in UNSAFE_SCHEMES):
        return ""

    parsed = urlparse(url)
    if parsed.scheme not in ALLOWED_URL_SCHEMES or not parsed.netloc:
        return ""
    return parsed.geturl()


def _keep_absolute_href(element: str, attribute: str, value: str) -> Optional[str]:
    if attribute == "href":
        return sanitize_url(value) or None
    return value


def sanitize_html(dirty: str, allowed_tags: Iterable[str] = ALLOWED_TAGS) -> str:
    """
    Keep only simple formatting markup.

    Allowed tags: b, i, em, strong, a, p, br, ul, ol, li
    Allowed attributes: href (http/https only), title
    """
    if not dirty:
        return ""
    tags = set(allowed_tags)
    attributes = {"*": {"title"}}
    if "a" in tags:
        attributes["a"] = {"href"}
    return nh3.clean(
        dirty,
        tags=tags,
        clean_content_tags=DROP_CONTENT_TAGS - tags,
        attributes=attributes,
        attribute_filter=_keep_absolute_href,
        url_schemes=ALLOWED_URL_SCHEMES,
        link_rel=None,
        strip_comments=True,
    )


def strip_tags(value: str) -> str:
    if not value:
        return ""
    return html.unescape(sanitize_html(value, allowed_tags=()))


def sanitize_text(value: str) -> str:
    """Remove all markup, then escape & < > " ' / for safe display"""
    text = strip_tags(value)
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
        .replace("/", "&#x2F;")
    )


def sanitize_object(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply sanitize_text to every string value, recursing into dicts and lists"""
    sanitized = {}
    for key, value in data.items():
        if isinstance(value, str):
            sanitized[key] = sanitize_text(value)
        elif isinstance(value, dict):
            sanitized[key] = sanitize_object(value)
        elif isinstance(value, list):
            sanitized[key] = [sanitize_text(item) if isinstance(item, str) else item for item in value]
        else:
            sanitized[key] = value
    return sanitized


def strip_strings(value: Any) -> Any:
    """Trim whitespace from every string in a JSON-like structure"""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dict):
        return {key: strip_strings(item) for key, item in value.items()}
    if isinstance(value, list):
        return [strip_strings(item) for item in value]
    return value
