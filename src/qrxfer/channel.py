from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, Optional

NOISE_PAYLOADS = (
    "not a real message",
    "https://example.com/menu",
    "WIFI:S:guest;T:WPA;P:hunter2;;",
    "00000000",
    "LENGTH=12",
    "-----BEGIN XFER MESSAGE",
)


@dataclass(frozen=True, slots=True)
class Impairment:
    """What a camera pointed at a cycling QR display does to the stream.

    Every displayed payload is independently dropped, scanned more than
    once, or accompanied by an unrelated code in view; `shuffle` reorders
    the whole stream.
    """

    loss_rate: float = 0.0
    duplicate_rate: float = 0.0
    noise_rate: float = 0.0
    shuffle: bool = False
    seed: Optional[int] = None

    def deliver(self, messages: Iterable[str]) -> list[str]:
        rng = random.Random(self.seed)
        out: list[str] = []
        for msg in messages:
            if rng.random() < self.noise_rate:
                out.append(rng.choice(NOISE_PAYLOADS))
            if rng.random() < self.loss_rate:
                continue
            out.append(msg)
            if rng.random() < self.duplicate_rate:
                out.append(msg)
        if self.shuffle:
            rng.shuffle(out)
        return out
