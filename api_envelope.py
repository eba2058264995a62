"""
JSON envelope helpers shared by the Flask routes.

Success: {success, message, data, timestamp}
Failure: {success, error: {statusCode, message, timestamp, requestId, ...}, data, timestamp}
"""

from flask import g, jsonify, request

from errors import ApiError, RateLimitError, ValidationError, utc_timestamp
from validation import sanitize_strings


def send_success(data=None, message: str = "Success", status_code: int = 200):
    return jsonify({
        "success": True,
        "message": message,
        "data": data,
        "timestamp": utc_timestamp(),
    }), status_code


def send_error(error: ApiError, include_stack: bool = False):
    body = error.to_dict(include_stack)
    request_id = g.get("request_id")
    if request_id:
        body["requestId"] = request_id

    response = jsonify({
        "success": False,
        "error": body,
        "data": None,
        "timestamp": utc_timestamp(),
    })
    response.status_code = error.status_code
    if isinstance(error, RateLimitError):
        response.headers["Retry-After"] = str(error.retry_after)
    return response


def json_body(sanitize: bool = True) -> dict:
    """Request JSON as a dict, sanitised unless asked otherwise."""
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return sanitize_strings(body) if sanitize else body


def int_arg(name: str, default: int, minimum: int = 1) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return value
