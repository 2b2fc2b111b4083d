from __future__ import annotations

import hashlib
from typing import Callable

DigestFn = Callable[[bytes], str]


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()
