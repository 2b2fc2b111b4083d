from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from typing import TextIO

from .bench import run_benchmark
from .constants import DEFAULT_CHUNK_SIZE, DEFAULT_FILE_NAME
from .framer import build_message_sequence
from .session import TransferSession


def _emit(args: argparse.Namespace, payload: dict) -> None:
    print(json.dumps(payload, indent=2) if args.json else payload)


def _open_lines(path: str) -> TextIO:
    if path == "-":
        return sys.stdin
    return open(path, "r", encoding="utf-8")


def cmd_send(args: argparse.Namespace) -> int:
    with open(args.file, "rb") as f:
        data = f.read()

    messages = build_message_sequence(data, args.chunk_size, repeat=args.repeat)

    if args.out == "-":
        for m in messages:
            sys.stdout.write(m + "\n")
        return 0

    with open(args.out, "w", encoding="utf-8") as out:
        for m in messages:
            out.write(m + "\n")

    _emit(
        args,
        {
            "role": "sender",
            "bytes": len(data),
            "messages": len(messages),
            "chunk_size": args.chunk_size,
            "out": args.out,
        },
    )
    return 0


def cmd_recv(args: argparse.Namespace) -> int:
    session = TransferSession()
    src = _open_lines(args.scans)
    try:
        for line in src:
            session.feed(line.rstrip("\r\n"))
    finally:
        if src is not sys.stdin:
            src.close()

    if args.complete_at_eof:
        session.complete()

    progress = session.progress()
    result = session.result()

    data = None
    if result is not None and result.data is not None:
        if result.verified or args.keep_unverified:
            data = result.data
    elif result is None and args.keep_unverified:
        data = session.snapshot_data()

    written = None
    if data is not None:
        with open(args.out, "wb") as out:
            out.write(data)
        written = args.out

    payload = {
        "role": "receiver",
        "state": progress.state.value,
        "total_chunks": progress.total_chunks,
        "received_chunks": progress.received_chunks,
        "missing_chunks": list(progress.missing_chunks),
        "duplicates": progress.duplicates,
        "verified": bool(result and result.verified),
        "reason": result.reason.value if result is not None and result.reason else None,
        "detail": result.detail if result is not None else "transfer not finished",
        "out": written,
    }
    _emit(args, payload)
    return 0 if result is not None and result.ok else 1


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(
        size_bytes=args.size_bytes,
        chunk_size=args.chunk_size,
        repeat=args.repeat,
        loss_rate=args.loss_rate,
        duplicate_rate=args.duplicate_rate,
        noise_rate=args.noise_rate,
        shuffle=args.shuffle,
        seed=args.seed,
    )
    payload = {"role": "bench", **dataclasses.asdict(r)}
    _emit(args, payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="qrxfer", description="File transfer over a sequence of QR code payloads.")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--json", action="store_true")

    send = sub.add_parser("send", help="frame a file into QR payloads, one per line")
    add_common(send)
    send.add_argument("--file", required=True)
    send.add_argument("--out", default="-", help="output path for payload lines ('-' for stdout)")
    send.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE)
    send.add_argument("--repeat", type=int, default=1, help="passes over the data messages")
    send.set_defaults(func=cmd_send)

    recv = sub.add_parser("recv", help="reassemble a file from scanned payloads, one per line")
    add_common(recv)
    recv.add_argument("--scans", default="-", help="file of scanned payloads ('-' for stdin)")
    recv.add_argument("--out", default=DEFAULT_FILE_NAME)
    recv.add_argument(
        "--keep-unverified",
        action="store_true",
        help="write the reassembled buffer even when its digest does not match or the transfer never finished",
    )
    recv.add_argument(
        "--complete-at-eof",
        action="store_true",
        help="finish the transfer at end of input even if the end marker was never scanned",
    )
    recv.set_defaults(func=cmd_recv)

    bench = sub.add_parser("bench", help="loopback transfer through a simulated camera channel")
    add_common(bench)
    bench.add_argument("--size-bytes", type=int, default=4096)
    bench.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE)
    bench.add_argument("--repeat", type=int, default=1)
    bench.add_argument("--loss-rate", type=float, default=0.0)
    bench.add_argument("--duplicate-rate", type=float, default=0.0)
    bench.add_argument("--noise-rate", type=float, default=0.0)
    bench.add_argument("--shuffle", action="store_true")
    bench.add_argument("--seed", type=int, default=None)
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
