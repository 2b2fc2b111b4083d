from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from .constants import (
    HASH_PREFIX,
    HEADER_BEGIN,
    HEADER_END,
    LEN_PREFIX,
    MESSAGE_BEGIN,
    MESSAGE_END,
    SEQUENCE_WIDTH,
)

_CHUNK_RE = re.compile(rf"([0-9]{{{SEQUENCE_WIDTH}}}):(.+)")


class MessageKind(enum.Enum):
    TRANSFER_BEGIN = "transfer_begin"
    HEADER_BEGIN = "header_begin"
    HEADER_FIELD = "header_field"
    HEADER_END = "header_end"
    DATA_CHUNK = "data_chunk"
    TRANSFER_END = "transfer_end"
    UNRECOGNIZED = "unrecognized"


class HeaderField(str, enum.Enum):
    LEN = "LEN"
    HASH = "HASH"


@dataclass(frozen=True, slots=True)
class Chunk:
    sequence: int
    payload: str  # base64, as carried on the wire


@dataclass(frozen=True, slots=True)
class Message:
    kind: MessageKind
    text: str
    field: HeaderField | None = None
    value: str | None = None
    chunk: Chunk | None = None

    @property
    def recognized(self) -> bool:
        return self.kind is not MessageKind.UNRECOGNIZED

    @staticmethod
    def header_field(text: str, field: HeaderField, value: str) -> "Message":
        return Message(kind=MessageKind.HEADER_FIELD, text=text, field=field, value=value)

    @staticmethod
    def data_chunk(text: str, sequence: int, payload: str) -> "Message":
        return Message(
            kind=MessageKind.DATA_CHUNK,
            text=text,
            chunk=Chunk(sequence=sequence, payload=payload),
        )


_MARKERS = {
    MESSAGE_BEGIN: MessageKind.TRANSFER_BEGIN,
    MESSAGE_END: MessageKind.TRANSFER_END,
    HEADER_BEGIN: MessageKind.HEADER_BEGIN,
    HEADER_END: MessageKind.HEADER_END,
}


def classify(text: str) -> Message:
    """Classify one decoded QR payload.

    Total over strings: anything that is not a marker, header field or data
    chunk comes back as UNRECOGNIZED rather than raising.
    """
    if not isinstance(text, str):
        return Message(kind=MessageKind.UNRECOGNIZED, text=repr(text))

    kind = _MARKERS.get(text)
    if kind is not None:
        return Message(kind=kind, text=text)

    if text.startswith(LEN_PREFIX):
        return Message.header_field(text, HeaderField.LEN, text[len(LEN_PREFIX) :])
    if text.startswith(HASH_PREFIX):
        return Message.header_field(text, HeaderField.HASH, text[len(HASH_PREFIX) :])

    m = _CHUNK_RE.fullmatch(text)
    if m:
        return Message.data_chunk(text, int(m.group(1)), m.group(2))

    return Message(kind=MessageKind.UNRECOGNIZED, text=text)
