"""Wire messages: JSON-over-CRLF on the device command connection.

Every command is a single JSON object followed by CRLF:

    {"id":1,"method":"set_power","params":["on","smooth",500]}\r\n

Params are positional tokens that are already valid JSON (strings carry
their quotes) and are joined verbatim, never re-escaped. Replies carry the
same "id" and exactly one of "result" or "error". Devices may also push
notifications ({"method":"props","params":{...}}) with no id at any time.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError, model_validator

from .constants import CRLF, METHOD_NOTIFY_PROPS
from .errors import ProtocolError


# --- Param token helpers ---

def quote(value: str) -> str:
    """Render a string param as a JSON string token."""
    return json.dumps(value)


def token(value: Union[int, str, Enum]) -> str:
    """Render one param: ints bare, strings and enum values quoted."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    return quote(value)


# --- Commands ---

@dataclass
class Command:
    """A single request to the device."""
    id: int
    method: str
    params: list[str] = field(default_factory=list)


def encode_command(cmd: Command) -> bytes:
    """Serialize a command to ASCII bytes + CRLF."""
    text = (
        f'{{"id":{cmd.id},"method":{quote(cmd.method)},'
        f'"params":[{",".join(cmd.params)}]}}'
    )
    return text.encode("ascii") + CRLF


# --- Replies ---

class ResponseError(BaseModel):
    code: int
    message: str


class Response(BaseModel):
    id: int
    result: Optional[list[Any]] = None
    error: Optional[ResponseError] = None

    @model_validator(mode="after")
    def _exactly_one_of_result_or_error(self) -> "Response":
        if (self.result is None) == (self.error is None):
            raise ValueError("reply must carry exactly one of 'result' or 'error'")
        return self


class Notification(BaseModel):
    method: str
    params: dict[str, Any] = {}


def decode_message(line: bytes) -> dict[str, Any]:
    """Deserialize one CRLF-delimited JSON message into a dict."""
    try:
        msg = json.loads(line.decode("utf-8").strip())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Undecodable reply: {e}") from e
    if not isinstance(msg, dict):
        raise ProtocolError(f"Reply is not a JSON object: {msg!r}")
    return msg


def is_notification(msg: dict[str, Any]) -> bool:
    """True for unsolicited property pushes (no id, method "props")."""
    return "id" not in msg and msg.get("method") == METHOD_NOTIFY_PROPS


def parse_notification(msg: dict[str, Any]) -> Notification:
    try:
        return Notification.model_validate(msg)
    except ValidationError as e:
        raise ProtocolError(f"Malformed notification: {e}") from e


def parse_response(msg: dict[str, Any]) -> Response:
    """Validate a decoded message against the reply envelope."""
    try:
        return Response.model_validate(msg)
    except ValidationError as e:
        raise ProtocolError(f"Malformed reply envelope: {e}") from e


def decode_response(line: bytes) -> Response:
    return parse_response(decode_message(line))
