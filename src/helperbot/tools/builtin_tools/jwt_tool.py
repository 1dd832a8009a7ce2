from __future__ import annotations

from typing import Any

from ..base import ParamSpec, ToolDefinition
from ...services.jwt_decode import decode_jwt


class DecodeJwtTool:
    definition = ToolDefinition(
        name="decode_jwt",
        description="Decode a JWT token and show its header and payload (the signature is not verified).",
        parameters={"token": ParamSpec("STRING", "The JWT token to decode", required=True)},
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return decode_jwt(str(args["token"]))
