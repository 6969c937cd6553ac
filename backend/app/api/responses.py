"""Success envelope shared by every router."""

from typing import Any, Dict


def ok(message: str, data: Any = None) -> Dict[str, Any]:
    return {"success": True, "message": message, "data": data}
