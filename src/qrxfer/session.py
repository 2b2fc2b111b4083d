from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .constants import MAX_CHUNK_COUNT, SEQUENCE_WIDTH
from .digest import DigestFn, sha1_hex
from .message import Chunk, HeaderField, Message, MessageKind, classify
from .reassembler import ChunkDecodeError, reassemble, verify


class TransferState(enum.Enum):
    IDLE = "idle"
    HEADER_COLLECT = "header_collect"
    TRANSFERRING = "transferring"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureReason(enum.Enum):
    INCOMPLETE_HEADER = "incomplete_header"
    NO_DATA = "no_data"
    DECODE_ERROR = "decode_error"
    DIGEST_MISMATCH = "digest_mismatch"


@dataclass(frozen=True, slots=True)
class Header:
    chunk_count: int
    digest: str


@dataclass(frozen=True, slots=True)
class Progress:
    """Point-in-time view of a session.

    `received_log` is the session's append-only list of stored sequence
    numbers; only its first `received_chunks` entries belong to this
    snapshot. Missing and out-of-range sequences are derived from that
    prefix when read.
    """

    state: TransferState
    total_chunks: int
    received_chunks: int
    current_chunk: int
    is_complete: bool
    digest: Optional[str]
    duplicates: int = 0
    received_log: Sequence[int] = field(default=(), repr=False, compare=False)

    @property
    def received(self) -> frozenset[int]:
        return frozenset(self.received_log[: self.received_chunks])

    @property
    def missing_chunks(self) -> tuple[int, ...]:
        got = self.received
        return tuple(i for i in range(self.total_chunks) if i not in got)

    @property
    def out_of_range_chunks(self) -> tuple[int, ...]:
        if not self.total_chunks:
            return ()
        return tuple(sorted(s for s in self.received if s >= self.total_chunks))


@dataclass(frozen=True, slots=True)
class TransferResult:
    state: TransferState
    data: Optional[bytes]
    verified: bool
    reason: Optional[FailureReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.state is TransferState.COMPLETED and self.verified


def _parse_chunk_count(value: str) -> Optional[int]:
    value = value.strip()
    if not value.isascii() or not value.isdigit() or len(value) > SEQUENCE_WIDTH:
        return None
    n = int(value)
    return n if 0 < n <= MAX_CHUNK_COUNT else None


class TransferSession:
    """Receiver-side state machine for one transfer.

    Feed it every decoded QR payload, in whatever order and multiplicity the
    camera produces them. Failures end in a terminal state with a reason;
    nothing is raised out of `feed`, and a new begin marker always starts
    over.
    """

    def __init__(self, digest_fn: DigestFn = sha1_hex):
        self.digest_fn = digest_fn
        self._lock = threading.Lock()
        self._clear()
        self._state = TransferState.IDLE

    def _clear(self) -> None:
        self._header: Optional[Header] = None
        self._chunk_count: Optional[int] = None
        self._digest: Optional[str] = None
        self._drop_chunks()
        self._duplicates = 0
        self._result: Optional[TransferResult] = None

    def _drop_chunks(self) -> None:
        # fresh objects, never cleared in place: earlier Progress snapshots keep the old log
        self._chunks: dict[int, Chunk] = {}
        self._received_log: list[int] = []
        self._current_chunk = 0

    def reset(self) -> None:
        with self._lock:
            self._clear()
            self._state = TransferState.IDLE

    def feed(self, text: str) -> Progress:
        return self.apply(classify(text))

    def apply(self, message: Message) -> Progress:
        with self._lock:
            self._apply(message)
            return self._progress()

    def complete(self) -> Progress:
        """Finish the transfer as if the end marker had been scanned.

        Only acts while TRANSFERRING; in any other state it is a no-op.
        """
        with self._lock:
            if self._state is TransferState.TRANSFERRING:
                logging.info("transfer completed manually")
                self._finish()
            return self._progress()

    def progress(self) -> Progress:
        with self._lock:
            return self._progress()

    def result(self) -> Optional[TransferResult]:
        """Terminal outcome, or None while the transfer is still pending."""
        with self._lock:
            return self._result

    def snapshot_data(self) -> Optional[bytes]:
        """Reassemble whatever has arrived so far, without verification.

        Returns None when nothing is stored or a stored chunk does not
        decode.
        """
        with self._lock:
            if not self._chunks:
                return None
            try:
                return reassemble(self._chunks.values())
            except ChunkDecodeError as exc:
                logging.warning("cannot snapshot partial data: %s", exc)
                return None

    # -- transitions --

    def _apply(self, msg: Message) -> None:
        kind = msg.kind

        if kind is MessageKind.UNRECOGNIZED:
            return

        if kind is MessageKind.TRANSFER_BEGIN:
            if self._state is not TransferState.IDLE:
                logging.info("begin marker in state %s; restarting transfer", self._state.value)
            self._clear()
            self._state = TransferState.HEADER_COLLECT
            return

        if self._state is TransferState.HEADER_COLLECT:
            self._on_header_collect(msg)
        elif self._state is TransferState.TRANSFERRING:
            self._on_transferring(msg)
        # IDLE, COMPLETED and FAILED wait for a begin marker

    def _on_header_collect(self, msg: Message) -> None:
        kind = msg.kind
        if kind is MessageKind.HEADER_FIELD:
            assert msg.value is not None
            if msg.field is HeaderField.LEN:
                n = _parse_chunk_count(msg.value)
                if n is None:
                    logging.warning("ignoring malformed or oversized LEN value %.40r", msg.value)
                else:
                    self._chunk_count = n
            elif msg.field is HeaderField.HASH:
                digest = msg.value.strip()
                if digest:
                    self._digest = digest
                else:
                    logging.warning("ignoring empty HASH value")
        elif kind is MessageKind.HEADER_END:
            if self._chunk_count is None or self._digest is None:
                self._fail(
                    FailureReason.INCOMPLETE_HEADER,
                    f"header ended without {'LEN' if self._chunk_count is None else 'HASH'}",
                )
                self._drop_chunks()
                return
            self._header = Header(chunk_count=self._chunk_count, digest=self._digest)
            self._state = TransferState.TRANSFERRING
            logging.info(
                "header complete; chunks=%d digest=%s buffered=%d",
                self._header.chunk_count,
                self._header.digest,
                len(self._chunks),
            )
        elif kind is MessageKind.DATA_CHUNK:
            # chunks may be scanned before the header finishes
            self._store_chunk(msg)
        elif kind is MessageKind.TRANSFER_END:
            self._fail(FailureReason.INCOMPLETE_HEADER, "end marker before header was complete")
            self._drop_chunks()

    def _on_transferring(self, msg: Message) -> None:
        if msg.kind is MessageKind.DATA_CHUNK:
            self._store_chunk(msg)
        elif msg.kind is MessageKind.TRANSFER_END:
            self._finish()
        # header fields and delimiters re-scanned from a looping sender are no-ops

    def _store_chunk(self, msg: Message) -> None:
        chunk = msg.chunk
        assert chunk is not None
        if chunk.sequence in self._chunks:
            self._duplicates += 1
            logging.debug("duplicate chunk seq=%d", chunk.sequence)
            return
        self._chunks[chunk.sequence] = chunk
        self._received_log.append(chunk.sequence)
        self._current_chunk = chunk.sequence
        if self._header is not None and chunk.sequence >= self._header.chunk_count:
            logging.warning(
                "chunk seq=%d outside declared range 0..%d",
                chunk.sequence,
                self._header.chunk_count - 1,
            )
        logging.debug("stored chunk seq=%d received=%d", chunk.sequence, len(self._chunks))

    def _finish(self) -> None:
        assert self._header is not None
        if not self._chunks:
            self._fail(FailureReason.NO_DATA, "end marker with no chunks received")
            return

        total = self._header.chunk_count
        in_range = sum(1 for s in self._chunks if s < total)
        if in_range < total:
            logging.warning(
                "finishing with %d of %d chunks missing; attempting reassembly anyway",
                total - in_range,
                total,
            )

        try:
            data = reassemble(self._chunks.values())
        except ChunkDecodeError as exc:
            self._fail(FailureReason.DECODE_ERROR, str(exc))
            return

        if verify(data, self._header.digest, self.digest_fn):
            self._state = TransferState.COMPLETED
            self._result = TransferResult(state=self._state, data=data, verified=True)
            logging.info("transfer complete; %d bytes verified", len(data))
        else:
            actual = self.digest_fn(data)
            self._fail(
                FailureReason.DIGEST_MISMATCH,
                f"digest mismatch: expected {self._header.digest} got {actual}",
                data=data,
            )

    def _fail(self, reason: FailureReason, detail: str, data: Optional[bytes] = None) -> None:
        self._state = TransferState.FAILED
        self._result = TransferResult(
            state=self._state,
            data=data,
            verified=False,
            reason=reason,
            detail=detail,
        )
        logging.warning("transfer failed (%s): %s", reason.value, detail)

    def _progress(self) -> Progress:
        return Progress(
            state=self._state,
            total_chunks=self._header.chunk_count if self._header is not None else 0,
            received_chunks=len(self._received_log),
            current_chunk=self._current_chunk,
            is_complete=self._state is TransferState.COMPLETED,
            digest=self._header.digest if self._header is not None else None,
            duplicates=self._duplicates,
            received_log=self._received_log,
        )
