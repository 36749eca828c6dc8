from typing import Any


def success_response(data: Any = None, message: str | None = None) -> dict:
    return {"status": "success", "data": data, "message": message}


def error_response(message: str, data: Any = None) -> dict:
    return {"status": "error", "data": data, "message": message}


def notice_response(ok: bool, message: str, data: Any = None) -> dict:
    """Envelope for an action outcome that is shown to the user either way."""
    if ok:
        return success_response(data=data, message=message)
    return error_response(message, data=data)
