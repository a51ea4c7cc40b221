"""Request payload validation helpers.

Each helper appends to a shared `errors` list instead of raising, so one
request reports every bad field at once; callers finish with `check(errors)`.
Text input is sanitized with bleach (all tags stripped) before length checks.
"""

import re
from datetime import datetime

import bleach

from taskboard.errors import ValidationFailed
from taskboard.services import positioning

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(str(text), tags=[], strip=True).strip()


def text_field(data, field, errors, max_length, required=False, label=None):
    """Sanitized string for `field`, or None when absent and optional."""
    label = label or field.capitalize()
    if field not in data or data[field] is None:
        if required:
            errors.append({"field": field, "message": f"{label} is required"})
        return None
    if not isinstance(data[field], str):
        errors.append({"field": field, "message": f"{label} must be a string"})
        return None
    value = sanitize(data[field])
    if required and not value:
        errors.append({"field": field, "message": f"{label} is required"})
    elif len(value) > max_length:
        errors.append({
            "field": field,
            "message": f"{label} must be at most {max_length} characters",
        })
    return value


def id_field(data, field, errors, required=True):
    value = data.get(field)
    if value is None or value == "":
        if required:
            errors.append({"field": field, "message": f"Valid {field} is required"})
        return None
    if not isinstance(value, str) or len(value) > 36:
        errors.append({"field": field, "message": f"Valid {field} is required"})
        return None
    return value


def position_field(data, field, errors, required=False):
    """A finite float inside the accepted position range."""
    if field not in data or data[field] is None:
        if required:
            errors.append({
                "field": field,
                "message": "Position is required and must be a number",
            })
        return None
    value = data[field]
    if not positioning.is_valid_position(value):
        errors.append({
            "field": field,
            "message": "Position must be a finite number within range",
        })
        return None
    return float(value)


def index_field(data, field, errors):
    if field not in data or data[field] is None:
        return None
    value = data[field]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        errors.append({"field": field, "message": "Index must be a non-negative integer"})
        return None
    return value


def bool_field(data, field, errors):
    if field not in data:
        return None
    value = data[field]
    if not isinstance(value, bool):
        errors.append({"field": field, "message": f"{field} must be true or false"})
        return None
    return value


def datetime_field(data, field, errors):
    """ISO-8601 datetime; explicit null clears the value."""
    if field not in data:
        return None
    value = data[field]
    if value is None:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        errors.append({"field": field, "message": f"{field} must be an ISO-8601 datetime"})
        return None


def id_list_field(data, field, errors):
    """List of ids; duplicates dropped, order kept."""
    if field not in data:
        return None
    value = data[field]
    if value is None:
        return []
    if not isinstance(value, list) or not all(
        isinstance(v, str) and 0 < len(v) <= 36 for v in value
    ):
        errors.append({"field": field, "message": f"{field} must be a list of ids"})
        return None
    return list(dict.fromkeys(value))


def color_field(data, field, errors, required=True):
    value = data.get(field)
    if value is None:
        if required:
            errors.append({"field": field, "message": "Color is required"})
        return None
    if not isinstance(value, str) or not HEX_COLOR.match(value):
        errors.append({"field": field, "message": "Color must be a hex value like #61bd4f"})
        return None
    return value.lower()


def choice_field(data, field, errors, choices, default=None):
    value = data.get(field, default)
    if value not in choices:
        errors.append({
            "field": field,
            "message": f"Invalid {field} '{value}'. Must be one of: {', '.join(choices)}",
        })
        return None
    return value


def check(errors):
    if errors:
        raise ValidationFailed(errors)
