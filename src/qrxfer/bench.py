from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass

from .channel import Impairment
from .constants import DEFAULT_CHUNK_SIZE
from .framer import build_message_sequence
from .session import Progress, TransferSession


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    bytes_transferred: int
    messages_displayed: int
    messages_scanned: int
    duration_s: float
    state: str
    verified: bool
    reason: str | None
    total_chunks: int
    received_chunks: int
    missing_chunks: int
    duplicates: int


def run_benchmark(
    *,
    size_bytes: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    repeat: int = 1,
    loss_rate: float = 0.0,
    duplicate_rate: float = 0.0,
    noise_rate: float = 0.0,
    shuffle: bool = False,
    seed: int | None = None,
) -> BenchmarkResult:
    """Push a random payload through an impaired channel into a session.

    The header block and end marker are delivered intact; only the data
    messages between them go through the impairment.
    """
    payload = os.urandom(size_bytes)
    messages = build_message_sequence(payload, chunk_size, repeat=repeat)
    header, data_messages, end = messages[:5], messages[5:-1], messages[-1]

    impair = Impairment(
        loss_rate=loss_rate,
        duplicate_rate=duplicate_rate,
        noise_rate=noise_rate,
        shuffle=shuffle,
        seed=seed,
    )
    scanned = header + impair.deliver(data_messages) + [end]

    session = TransferSession()
    progress_holder: dict[str, Progress] = {}

    def capture_runner():
        for text in scanned:
            progress_holder["p"] = session.feed(text)

    start = time.perf_counter()
    t = threading.Thread(target=capture_runner, daemon=True)
    t.start()
    t.join()
    duration_s = time.perf_counter() - start

    result = session.result()
    progress = progress_holder.get("p") or session.progress()
    if result is not None and result.verified:
        assert result.data == payload

    return BenchmarkResult(
        bytes_transferred=size_bytes,
        messages_displayed=len(messages),
        messages_scanned=len(scanned),
        duration_s=duration_s,
        state=progress.state.value,
        verified=bool(result and result.verified),
        reason=result.reason.value if result is not None and result.reason else None,
        total_chunks=progress.total_chunks,
        received_chunks=progress.received_chunks,
        missing_chunks=len(progress.missing_chunks),
        duplicates=progress.duplicates,
    )
