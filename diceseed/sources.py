# Copyright (c) 2026 Signer — MIT License

"""Independent random byte providers for mixing.

A provider is any callable that takes a byte count and returns exactly
that many bytes, or raises GenerationFailed. secrets.token_bytes and
os.urandom already satisfy the contract.

Providers (independent classes):
    1. os_csprng       - OS CSPRNG via secrets
    2. os_urandom      - separate OS CSPRNG call
    3. jitter_entropy  - CPU timing jitter + thread scheduling jitter,
                         pooled through SHA-512 and expanded with HKDF
    4. fixed_source    - fixed bytes, for tests and replays

Usage:
    from diceseed.sources import default_sources
    session.mix(default_sources())
"""

import hashlib
import hmac
import os
import secrets
import struct
import threading
import time

from .errors import GenerationFailed

_DOMAIN = b"diceseed-v1"


def os_csprng(n_bytes):
    """OS CSPRNG (CryptGenRandom / getrandom) via the secrets module."""
    return secrets.token_bytes(n_bytes)


def os_urandom(n_bytes):
    """OS CSPRNG via os.urandom (separate syscall path from secrets)."""
    try:
        return os.urandom(n_bytes)
    except NotImplementedError as exc:
        raise GenerationFailed("os.urandom is not available on this platform") from exc


def _hkdf_expand(prk, info, length):
    """HKDF-Expand (RFC 5869) using HMAC-SHA512."""
    if length > 255 * 64:
        raise ValueError(f"HKDF-Expand output is limited to {255 * 64} bytes, got {length}")
    n = (length + 63) // 64  # SHA-512 = 64-byte blocks
    okm = b""
    prev = b""
    for i in range(1, n + 1):
        prev = hmac.new(prk, prev + info + bytes([i]), hashlib.sha512).digest()
        okm += prev
    return okm[:length]


def _cpu_jitter(h, samples=64):
    """Mix instruction timing variance (cache/TLB/branch predictor) into h."""
    for _ in range(samples):
        t1 = time.perf_counter_ns()
        x = 0
        for j in range(100):
            x ^= (x << 3) ^ (j * 7) ^ (x >> 5)
            x &= 0xFFFFFFFFFFFFFFFF
        t2 = time.perf_counter_ns()
        h.update(struct.pack("<QQ", t2 - t1, t2))


def _thread_jitter(h, batches=4, threads_per_batch=8):
    """Mix OS scheduler nondeterminism (context switches, core migration) into h."""
    results = []

    def worker(idx):
        t = time.perf_counter_ns()
        x = 0
        for _ in range(50):
            x = (x + time.perf_counter_ns()) & 0xFFFFFFFF
        t2 = time.perf_counter_ns()
        results.append(struct.pack("<BQQ", idx, t, t2))

    for _batch in range(batches):
        results.clear()
        threads = []
        t0 = time.perf_counter_ns()
        for i in range(threads_per_batch):
            t = threading.Thread(target=worker, args=(i,))
            threads.append(t)
            t.start()
        for t in threads:
            t.join()
        t1 = time.perf_counter_ns()
        h.update(struct.pack("<QQ", t0, t1))
        for r in results:
            h.update(r)


def jitter_entropy(n_bytes):
    """Timing-jitter provider, independent of the OS CSPRNG.

    Conservative estimate: ~1 bit per CPU sample and ~2 bits per thread,
    about 128 bits per call before expansion. Meant as a second source
    next to os_csprng, never as the only one.
    """
    t0 = time.perf_counter()
    h = hashlib.sha512()
    h.update(_DOMAIN + b"-jitter")
    _cpu_jitter(h)
    _thread_jitter(h)
    out = _hkdf_expand(h.digest(), _DOMAIN + b"-jitter-expand", n_bytes)
    print(f"  [jitter] {n_bytes} bytes  ({(time.perf_counter()-t0)*1000:.2f}ms)")
    return out


def fixed_source(data):
    """Provider that always returns `data`.

    Asking for any other length raises GenerationFailed, the same way a
    hardware source would fail on a short read.
    """
    data = bytes(data)

    def provider(n_bytes):
        if n_bytes != len(data):
            raise GenerationFailed(
                f"fixed source holds {len(data)} bytes, {n_bytes} requested"
            )
        return data

    return provider


def default_sources():
    """Two independent providers: the OS CSPRNG and timing jitter."""
    return (os_csprng, jitter_entropy)
