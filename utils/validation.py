from flask import jsonify, request


class ValidationError(ValueError):
    """Bad client input; rendered as 400 {error} by the app-wide handler."""


def json_object() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def text_field(data: dict, name: str) -> str:
    """Stripped string value of ``name``; missing or null reads as empty."""
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip()


def validation_error_response(exc):
    return jsonify(error=str(exc)), 400
