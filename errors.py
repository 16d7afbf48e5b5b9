"""
Error taxonomy shared by the services.

Services raise these; main.py renders them as {"message", "details"?} with
the matching HTTP status.
"""

from typing import Any, Dict, Optional, Sequence


class ShopError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequest(ShopError):
    """Missing or malformed input, or a business rule violation."""
    status_code = 400


class Unauthenticated(ShopError):
    status_code = 401


class NotFound(ShopError):
    status_code = 404


class InternalError(ShopError):
    """Storage or external utility failure."""
    status_code = 500


def describe_validation_errors(errors: Sequence[Dict[str, Any]]) -> str:
    """Render pydantic error dicts as 'field: message; ...'."""
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return "; ".join(parts)
