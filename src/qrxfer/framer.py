from __future__ import annotations

import base64
import logging

from .constants import (
    HASH_PREFIX,
    HEADER_BEGIN,
    HEADER_END,
    LEN_PREFIX,
    MAX_CHUNK_COUNT,
    MAX_SEQUENCE,
    MESSAGE_BEGIN,
    MESSAGE_END,
    SEQUENCE_WIDTH,
)
from .digest import DigestFn, sha1_hex


def chunk_data(data: bytes, chunk_size: int) -> list[str]:
    """Split `data` into spans of at most `chunk_size` bytes, base64 each.

    Spans are cut on byte boundaries, so every chunk decodes on its own.
    An empty buffer yields no chunks at all.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    return [
        base64.b64encode(data[i : i + chunk_size]).decode("ascii")
        for i in range(0, len(data), chunk_size)
    ]


def create_header(chunk_count: int, digest_hex: str) -> list[str]:
    return [
        MESSAGE_BEGIN,
        HEADER_BEGIN,
        f"{LEN_PREFIX}{chunk_count}",
        f"{HASH_PREFIX}{digest_hex}",
        HEADER_END,
    ]


def create_data_message(sequence: int, payload: str) -> str:
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(f"sequence out of range: {sequence}")
    return f"{sequence:0{SEQUENCE_WIDTH}d}:{payload}"


def build_message_sequence(
    data: bytes,
    chunk_size: int,
    digest_fn: DigestFn = sha1_hex,
    repeat: int = 1,
) -> list[str]:
    """Full stream for one transfer, in display order.

    `repeat` emits the data messages that many times between the header
    block and the end marker, so a receiver gets another pass at whatever
    it missed.
    """
    chunks = chunk_data(data, chunk_size)
    if len(chunks) > MAX_CHUNK_COUNT:
        raise ValueError(
            f"{len(data)} bytes at chunk_size={chunk_size} needs {len(chunks)} chunks; "
            f"receivers accept at most {MAX_CHUNK_COUNT}"
        )
    digest = digest_fn(data)
    data_messages = [create_data_message(seq, c) for seq, c in enumerate(chunks)]

    messages = create_header(len(chunks), digest)
    for _ in range(max(1, repeat)):
        messages.extend(data_messages)
    messages.append(MESSAGE_END)

    logging.debug(
        "framed %d bytes into %d chunks (chunk_size=%d repeat=%d digest=%s)",
        len(data),
        len(chunks),
        chunk_size,
        repeat,
        digest,
    )
    return messages
