"""
Message envelope for the journal WebSocket protocol

Every frame is a JSON object shaped {"type": str, "data": any}. The server's
CONNECTED and ERROR frames carry a "message" string as well.
"""

import json
import logging
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Envelope types known to the client"""
    # Server to client
    CONNECTED = "CONNECTED"
    ENTRY_SAVED = "ENTRY_SAVED"
    ENTRIES_LIST = "ENTRIES_LIST"
    ERROR = "ERROR"

    # Client to server
    SAVE_ENTRY = "SAVE_ENTRY"
    GET_ENTRIES = "GET_ENTRIES"


class Envelope(BaseModel):
    """A single socket frame; unknown types are kept as plain strings"""
    model_config = ConfigDict(extra="allow")

    type: str
    data: Any = None
    message: Optional[str] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if not v:
            raise ValueError("Envelope type must be a non-empty string")
        return v

    @property
    def message_type(self) -> Optional[MessageType]:
        """The known MessageType, or None for unrecognized types"""
        try:
            return MessageType(self.type)
        except ValueError:
            return None

    def to_frame(self) -> str:
        return self.model_dump_json(exclude_none=True)


def parse_envelope(frame: Union[str, bytes]) -> Optional[Envelope]:
    """Parse a text frame, returning None (and logging) for malformed frames"""
    try:
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8")
        payload = json.loads(frame)
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        return Envelope.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Message validation error: {e}")
    except (ValueError, UnicodeDecodeError) as e:
        logger.error(f"Error parsing WebSocket message: {e}")
    return None


def build_envelope(message_type: Union[MessageType, str], data: Any = None) -> Envelope:
    if isinstance(message_type, MessageType):
        message_type = message_type.value
    return Envelope(type=message_type, data=data)
