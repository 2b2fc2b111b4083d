from __future__ import annotations

import base64
import binascii
from typing import Iterable

from .digest import DigestFn, sha1_hex
from .message import Chunk


class ChunkDecodeError(ValueError):
    def __init__(self, sequence: int, reason: str):
        super().__init__(f"chunk {sequence} is not valid base64: {reason}")
        self.sequence = sequence


def reassemble(chunks: Iterable[Chunk]) -> bytes:
    """Decode and concatenate chunks in sequence order.

    Fails on the first payload that is not valid base64; a partial buffer
    is never returned.
    """
    parts: list[bytes] = []
    for chunk in sorted(chunks, key=lambda c: c.sequence):
        try:
            parts.append(base64.b64decode(chunk.payload, validate=True))
        except (binascii.Error, ValueError) as exc:
            raise ChunkDecodeError(chunk.sequence, str(exc)) from exc
    return b"".join(parts)


def verify(data: bytes, expected_digest: str, digest_fn: DigestFn = sha1_hex) -> bool:
    return digest_fn(data).lower() == expected_digest.strip().lower()
