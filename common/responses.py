from typing import Any, Dict, Optional


def error_response(message: str, code: str = "error", details: Optional[Any] = None) -> Dict[str, Any]:
    """
    Standard error response envelope. ``code`` names the error category.
    """
    payload: Dict[str, Any] = {"error": code, "message": message}
    if details is not None:
        payload["details"] = details
    return payload
