"""Validation helpers."""

from __future__ import annotations

import re
from urllib.parse import urlparse

_COUNTRY_CODE = re.compile(r"[A-Z]{2}")


def is_valid_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except Exception:
        return False


def is_country_code(value: str) -> bool:
    """Shape check for an ISO 3166-1 alpha-2 code (two upper-case ASCII letters)."""
    return bool(_COUNTRY_CODE.fullmatch(value))


def mask_query_param(url: str, param: str, mask: str = "***") -> str:
    """Replace the value of a query parameter in a URL, for logging."""
    return re.sub(rf"([?&]{re.escape(param)}=)[^&#]*", rf"\g<1>{mask}", url)
