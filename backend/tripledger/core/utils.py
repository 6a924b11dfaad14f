"""
Utility functions for the application.
"""
from typing import Any, Dict
from decimal import Decimal


def serialize_details(obj: Any) -> Any:
    """Make error details JSON-safe (pydantic models, Decimals, nested lists)."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {key: serialize_details(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [serialize_details(item) for item in obj]
    return obj


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": message}
    if details:
        response["details"] = serialize_details(details)
    return response
