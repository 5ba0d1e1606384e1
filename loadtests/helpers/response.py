"""Turn SafeStore API error bodies into one-line Locust failure messages.

The API answers with one of three shapes:

- domain errors (400/403/404/409/502): ``{"error": {"field": ["message", ...]}}``
- request validation (422): ``{"detail": [{"loc": [...], "msg": "..."}]}``
- webhook rejection (401): ``{"detail": "Invalid webhook signature"}``
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response

_LIMIT = 300


def _field_messages(errors: dict) -> str:
    parts = []
    for field, messages in errors.items():
        if isinstance(messages, list):
            messages = "; ".join(str(m) for m in messages)
        parts.append(f"{field}: {messages}")
    return " | ".join(parts)


def extract_error_detail(response: Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (getattr(response, "text", "") or "(empty response body)")[:_LIMIT]

    if not isinstance(body, dict):
        return str(body)[:_LIMIT]

    error = body.get("error")
    if isinstance(error, dict):
        return _field_messages(error)[:_LIMIT]

    detail = body.get("detail")
    if isinstance(detail, list):
        return " | ".join(
            f"{'.'.join(str(p) for p in item.get('loc', []))}: {item.get('msg', item)}" for item in detail
        )[:_LIMIT]

    return str(error or detail or body)[:_LIMIT]
