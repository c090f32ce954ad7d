"""Decoding of JSON-encoded query string parameters."""

import json

from warp_server.domain.errors import ValidationError


def decode_json(name: str, raw: str | None) -> object:
    """Decode a JSON query parameter, or return None if it is absent."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as err:
        raise ValidationError(f"`{name}` must be valid JSON") from err
