# salesdesk/utils/response.py

from typing import TypeVar, Generic, Optional, Dict, Any
from pydantic import BaseModel

T = TypeVar("T")


def success_response(
    message: str,
    data: Optional[T] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """``meta`` carries what the call decided (review reason, staged change) next to the resulting view."""
    body = {
        "success": True,
        "message": message,
        "data": data,
    }
    if meta:
        body["meta"] = meta
    return body


class APIResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None
    meta: Optional[Dict[str, Any]] = None
