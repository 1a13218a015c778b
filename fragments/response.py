"""Response envelopes shared by routes and exception handlers."""

from typing import Any, Dict


def create_success_response(data: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Build a success body: {"status": "ok", ...data}.
    """
    return {"status": "ok", **(data or {})}


def create_error_response(code: int, message: str) -> Dict[str, Any]:
    """
    Build an error body: {"status": "error", "error": {"code": ..., "message": ...}}.
    """
    return {
        "status": "error",
        "error": {
            "code": code,
            "message": message,
        },
    }
