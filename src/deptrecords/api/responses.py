"""Response envelope helpers.

Every endpoint answers ``{success, message?, data?, ...}``.
"""

from typing import Any, Dict, Optional

from fastapi import Request


def ok(data: Any = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def client_ip(request: Request) -> Optional[str]:
    """Best guess at the caller's address, honouring X-Forwarded-For."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
