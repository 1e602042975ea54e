"""Error extraction for storefront API responses.

Parses error bodies into readable messages and back into the matching
storefront error. Handles two response shapes:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "...", "type": "..."}]}
- Domain errors (400/401/404/409/503): {"error": {"field": ["msg"]}, "code": "..."}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from storefront.errors import (
    Conflict,
    IdentityRequired,
    InvalidInput,
    InvalidInventory,
    InvalidVariant,
    NotFound,
    StorefrontError,
    TransientFailure,
    WouldRemove,
)

if TYPE_CHECKING:
    from requests import Response

_ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        InvalidInput,
        InvalidInventory,
        InvalidVariant,
        Conflict,
        NotFound,
        IdentityRequired,
        TransientFailure,
    )
}

_ERRORS_BY_STATUS = {
    400: InvalidInput,
    401: IdentityRequired,
    404: NotFound,
    409: Conflict,
    422: InvalidInput,
}


def _body(response: Response):
    try:
        return response.json()
    except ValueError:
        return None


def extract_error_detail(response: Response) -> str:
    """Compact, human-readable message for an API error response."""
    body = _body(response)
    if body is None:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if isinstance(body, dict) and isinstance(body.get("detail"), list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if isinstance(body, dict) and "error" in body:
        error = body["error"]
        if isinstance(error, dict):
            return " | ".join(
                f"{k}: {'; '.join(map(str, v)) if isinstance(v, list) else v}" for k, v in error.items()
            )
        return str(error)

    return str(body)[:300]


def error_for(response: Response) -> StorefrontError:
    """Rebuild the storefront error an API response reports."""
    body = _body(response)
    body = body if isinstance(body, dict) else {}
    code = body.get("code")
    messages = body.get("error") if isinstance(body.get("error"), dict) else {"error": [extract_error_detail(response)]}

    if code == WouldRemove.code:
        return WouldRemove(
            item_id=body.get("item_id"),
            quantity=body.get("quantity"),
            requested=body.get("requested"),
        )

    details = {k: v for k, v in body.items() if k not in ("error", "code")}
    cls = _ERRORS_BY_CODE.get(code)
    if cls is None:
        cls = TransientFailure if response.status_code >= 500 else _ERRORS_BY_STATUS.get(response.status_code, StorefrontError)
    return cls(messages, **details)
