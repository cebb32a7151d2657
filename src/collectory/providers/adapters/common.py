"""Helpers shared by the bundled book adapters."""
import json
import re
from typing import Any

import httpx

from collectory.config import get_settings

_NON_ISBN = re.compile(r"[^0-9Xx]")
_YEAR = re.compile(r"(\d{4})")


def normalize_isbn(value: str | None) -> str | None:
    """Strip separators; None unless 10 or 13 characters remain."""
    if value is None:
        return None
    isbn = _NON_ISBN.sub("", value)
    if len(isbn) in (10, 13):
        return isbn.upper()
    return None


def first_year(value: Any) -> int | None:
    """First four digit year in a free-form date string."""
    if not isinstance(value, str):
        return None
    match = _YEAR.search(value)
    return int(match.group(1)) if match else None


def put_text(out: dict[str, Any], key: str, value: Any) -> None:
    if isinstance(value, str) and value.strip():
        out[key] = value.strip()


def json_envelope(document: dict[str, Any]) -> dict[str, str]:
    """Wrap a normalized document the way the field mapper expects it."""
    return {"json": json.dumps(document, ensure_ascii=False)}


def default_client() -> httpx.Client:
    settings = get_settings()
    timeout = httpx.Timeout(
        connect=5.0,
        read=settings.provider_timeout_s,
        write=5.0,
        pool=5.0,
    )
    return httpx.Client(
        timeout=timeout,
        headers={"User-Agent": settings.provider_user_agent, "Accept": "application/json"},
        follow_redirects=True,
    )
