from __future__ import annotations

from qrxfer.bench import run_benchmark
from qrxfer.channel import NOISE_PAYLOADS, Impairment


def test_impairment_passthrough():
    msgs = [f"m{i}" for i in range(20)]
    assert Impairment().deliver(msgs) == msgs


def test_impairment_is_deterministic_under_seed():
    msgs = [f"m{i}" for i in range(200)]
    imp = Impairment(loss_rate=0.2, duplicate_rate=0.3, noise_rate=0.1, shuffle=True, seed=7)
    assert imp.deliver(msgs) == imp.deliver(msgs)


def test_impairment_full_loss():
    assert Impairment(loss_rate=1.0, seed=1).deliver(["a", "b"]) == []


def test_impairment_noise_only_adds_known_payloads():
    msgs = [f"m{i}" for i in range(50)]
    out = Impairment(noise_rate=1.0, seed=3).deliver(msgs)
    assert len(out) == 100
    assert [m for m in out if m.startswith("m")] == msgs
    assert all(m in NOISE_PAYLOADS for m in out if not m.startswith("m"))


def test_bench_clean_channel():
    r = run_benchmark(size_bytes=1000, chunk_size=30)
    assert r.verified
    assert r.state == "completed"
    assert r.total_chunks == 34
    assert r.missing_chunks == 0


def test_bench_shuffled_noisy_duplicated_channel_still_verifies():
    r = run_benchmark(
        size_bytes=2000,
        chunk_size=50,
        duplicate_rate=0.5,
        noise_rate=0.3,
        shuffle=True,
        seed=42,
    )
    assert r.verified
    assert r.duplicates > 0
    assert r.messages_scanned > r.messages_displayed


def test_bench_lossy_channel_without_repeats_fails_on_digest():
    r = run_benchmark(size_bytes=3000, chunk_size=10, loss_rate=0.5, seed=5)
    assert not r.verified
    assert r.state == "failed"
    assert r.reason == "digest_mismatch"
    assert r.missing_chunks > 0


def test_bench_repeat_passes_fill_gaps():
    r = run_benchmark(size_bytes=300, chunk_size=10, repeat=40, loss_rate=0.5, seed=11)
    assert r.verified
    assert r.missing_chunks == 0


def test_bench_reports_only_after_capture_finishes():
    r = run_benchmark(size_bytes=200_000, chunk_size=30, shuffle=True, seed=2)
    assert r.state == "completed"
    assert r.received_chunks == r.total_chunks == 6667
