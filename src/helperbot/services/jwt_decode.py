from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from ..errors import ValidationError


def _b64url_json(segment: str) -> Any:
    padded = segment + "=" * (-len(segment) % 4)
    raw = base64.urlsafe_b64decode(padded.encode("ascii"))
    return json.loads(raw.decode("utf-8"))


def decode_jwt(token: str) -> dict[str, Any]:
    """Decode header and payload without verifying the signature."""
    parts = (token or "").strip().split(".")
    if len(parts) != 3:
        raise ValidationError("Invalid JWT token")
    try:
        header = _b64url_json(parts[0])
        payload = _b64url_json(parts[1])
    except (binascii.Error, ValueError, UnicodeError):
        # json.JSONDecodeError is a ValueError
        raise ValidationError("Invalid JWT token")
    if not isinstance(header, dict) or not isinstance(payload, dict):
        raise ValidationError("Invalid JWT token")
    return {"header": header, "payload": payload, "message": "JWT decoded successfully"}
