# src/drive_auth/utils/json_fields.py

import json
from typing import Any, Dict, Optional, Union


def parse_json_object(payload: Union[str, bytes, Dict[str, Any], None]) -> Optional[Dict[str, Any]]:
    """Return the payload as a dict, or None if it is not a JSON object."""
    if isinstance(payload, dict):
        return payload
    if not payload:
        return None
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def extract_json_field(
    payload: Union[str, bytes, Dict[str, Any], None], key: str
) -> Optional[str]:
    """
    Extract a top-level field from a token endpoint response as a string.

    Absence is reported as None, never as an empty string: callers use it
    to tell a failed exchange apart from a successful one. An explicit JSON
    null is treated as absent.

    Args:
        payload: Raw response text, bytes, or an already decoded object
        key: Field name, e.g. "access_token"

    Returns:
        The field value converted to str, or None if missing or unparsable
    """
    data = parse_json_object(payload)
    if data is None or data.get(key) is None:
        return None
    value = data[key]
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)
