# Copyright (c) 2026 Signer — MIT License

"""Dice sessions: turn physical draws into unbiased seed bytes.

A session collects draws (dice rolls, card draws, any process with a known
number of equally likely outcomes) until it holds enough unbiased bits,
then packs them into the finished entropy bytes.

Bias removal is plain rejection sampling. Only floor(log2(range)) bits are
taken from each draw and any draw at or above 2**bits is thrown away, so a
six-sided die gives 2 bits per accepted roll and rolls of 5 or 6 are
ignored. That wastes some entropy but every accepted bit is exactly uniform.

The finished bytes can then be XOR-mixed with independent random sources.
The result is unpredictable as long as *any* one input is, including the
operator's own rolls being guessable. Mixing is reversible: the unmixed
bytes are kept and revert_mix() returns to them without rolling again.

Usage:
    from diceseed import SessionConfig, EntropyAccumulator, default_sources
    session = EntropyAccumulator(SessionConfig(6, 32))
    session.add(4)                        # one roll of a d6
    session.feed([1, 4, 6, 2, 3])         # several rolls, stops when ready
    session.is_ready                      # True once 256 bits are collected
    session.mix(default_sources())        # XOR with OS CSPRNG + jitter
    session.final_bytes                   # 32 bytes
    session.mnemonic                      # 24 BIP-39 words
    session.self_test_report              # {"frequency": {...}, ...}
    session.revert_mix()                  # back to the dice-only bytes
    session.reset()                       # wipe everything, same config
"""

import hashlib
import hmac
import time

from .errors import (
    AlreadyComplete,
    GenerationFailed,
    InvalidRange,
    NotReady,
    RangeTooSmall,
    TargetBytesTooSmall,
    ValueOutOfRange,
)
from .selftest import run_self_test, unavailable_report
from .words import MNEMONIC_WORDS, encode_mnemonic

# A six-sided die and a 24-word mnemonic
DEFAULT_RANGE = 6
DEFAULT_TARGET_BYTES = 32

# Domain separator for the transcription fingerprint
_FINGERPRINT_DOMAIN = b"diceseed-v1-fingerprint"


def _check_int(name, value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")


def _wipe(buf):
    """Zero a bytearray in place, then empty it."""
    buf[:] = bytes(len(buf))
    del buf[:]


class Draw:
    """One validated draw. Create it with validate()."""

    __slots__ = ("_value",)

    def __init__(self, value):
        self._value = value

    @property
    def value(self):
        return self._value

    def __eq__(self, other):
        return isinstance(other, Draw) and other._value == self._value

    def __hash__(self):
        return hash(("Draw", self._value))

    def __repr__(self):
        return f"Draw({self._value})"


def validate(range_, value):
    """Validate a single draw against a range of equally likely outcomes.

    Draws are 1-based: a d6 roll is 1..6.

    Raises:
        InvalidRange: range_ < 2 (one outcome carries no entropy).
        ValueOutOfRange: value not in [1, range_].
    """
    _check_int("range", range_)
    _check_int("value", value)
    if range_ < 2:
        raise InvalidRange(range_)
    if not 1 <= value <= range_:
        raise ValueOutOfRange(value, range_)
    return Draw(value)


class SessionConfig:
    """Immutable session parameters.

    bits_per_draw = floor(log2(range)). Everything a range holds above the
    largest power of two is discarded: a d6 yields 2 bits per roll, not
    log2(6) = 2.58. Exactness is preferred over squeezing out fractions.
    """

    __slots__ = ("_range", "_target_entropy_bytes", "_bits_per_draw")

    def __init__(self, range_, target_entropy_bytes):
        _check_int("range", range_)
        _check_int("target_entropy_bytes", target_entropy_bytes)
        if range_ < 2:
            raise RangeTooSmall(range_)
        if target_entropy_bytes < 1:
            raise TargetBytesTooSmall(target_entropy_bytes)
        self._range = range_
        self._target_entropy_bytes = target_entropy_bytes
        # exact floor(log2(range)) for any int size
        self._bits_per_draw = range_.bit_length() - 1

    @classmethod
    def default(cls):
        return cls(DEFAULT_RANGE, DEFAULT_TARGET_BYTES)

    @property
    def range(self):
        return self._range

    @property
    def bits_per_draw(self):
        return self._bits_per_draw

    @property
    def cutoff(self):
        """Zero-indexed draws at or above this value are rejected."""
        return 1 << self._bits_per_draw

    @property
    def target_entropy_bytes(self):
        return self._target_entropy_bytes

    @property
    def target_entropy_bits(self):
        return self._target_entropy_bytes * 8

    @property
    def accepted_draws_needed(self):
        return -(-self.target_entropy_bits // self._bits_per_draw)

    @property
    def expected_draws(self):
        """Mean number of raw draws, counting the ones rejection throws away."""
        return self.accepted_draws_needed * self._range / self.cutoff

    @property
    def mnemonic_words(self):
        """Words in the mnemonic for this target length, or None."""
        return MNEMONIC_WORDS.get(self._target_entropy_bytes)

    def __eq__(self, other):
        if not isinstance(other, SessionConfig):
            return NotImplemented
        return (self._range, self._target_entropy_bytes) == (
            other._range, other._target_entropy_bytes)

    def __hash__(self):
        return hash((self._range, self._target_entropy_bytes))

    def __repr__(self):
        return (f"SessionConfig(range={self._range}, "
                f"target_entropy_bytes={self._target_entropy_bytes})")


class _SessionState:
    """Everything an accumulator owns. Swapped in and out as one object."""

    def __init__(self, config):
        self.config = config
        self.raw_sequence = []
        self.accepted_sequence = []
        self.accepted_bit_count = 0
        self.bit_buffer = bytearray()    # one 0/1 value per bit
        self.is_ready = False
        self.entropy_bytes = bytearray()
        self.rng_bytes = []              # one bytearray per mixed source
        self.final_bytes = bytearray()
        self.self_test_report = None
        self.mnemonic = None

    def wipe(self):
        _wipe(self.bit_buffer)
        _wipe(self.entropy_bytes)
        for buf in self.rng_bytes:
            _wipe(buf)
        self.rng_bytes = []
        _wipe(self.final_bytes)
        self.raw_sequence.clear()
        self.accepted_sequence.clear()
        self.accepted_bit_count = 0
        self.is_ready = False
        self.self_test_report = None
        self.mnemonic = None


def _pack_bits(bits):
    """Pack bits into bytes, 8 per byte, first bit of a group = least significant."""
    out = bytearray(len(bits) // 8)
    for i, bit in enumerate(bits):
        out[i // 8] |= bit << (i % 8)
    return out


class EntropyAccumulator:
    """Collects draws until the session's target of unbiased bits is reached.

    Once ready, the finished bytes go to two collaborators: a statistical
    self-test and a mnemonic encoder. Both can be swapped out (tests pass
    stubs); a collaborator that raises only makes its result unavailable.

    Not thread-safe. One writer at a time per session.

    All byte buffers are exclusively owned and handed out as copies. They
    are zeroed on reset(), replace_state_from(), wipe(), when leaving a
    `with` block, and when the object is garbage collected.
    """

    def __init__(self, config, self_test=run_self_test, encoder=encode_mnemonic):
        if not isinstance(config, SessionConfig):
            raise TypeError(f"config must be a SessionConfig, got {type(config).__name__}")
        self._state = _SessionState(config)
        self._self_test = self_test
        self._encoder = encoder

    # ── Context management / zeroization ─────────────────────────

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.wipe()
        return False

    def __del__(self):
        state = getattr(self, "_state", None)
        if state is not None:
            state.wipe()

    def wipe(self):
        """Zero every secret buffer and clear all collected draws."""
        self._state.wipe()

    # ── Read access (copies only) ────────────────────────────────

    @property
    def config(self):
        return self._state.config

    @property
    def is_ready(self):
        return self._state.is_ready

    @property
    def raw_sequence(self):
        """Every draw received, accepted or not."""
        return tuple(self._state.raw_sequence)

    @property
    def accepted_sequence(self):
        """Zero-indexed values of the draws that passed rejection sampling."""
        return tuple(self._state.accepted_sequence)

    @property
    def accepted_bit_count(self):
        """Bits contributed by accepted draws.

        May exceed target_entropy_bits by up to bits_per_draw - 1 when
        bits_per_draw does not divide the target; the extra bits of the
        last draw are dropped from the buffer.
        """
        return self._state.accepted_bit_count

    @property
    def bit_count(self):
        return len(self._state.bit_buffer)

    @property
    def bit_string(self):
        """Collected bits as a "0"/"1" string (an immutable copy, not wiped)."""
        return "".join("1" if b else "0" for b in self._state.bit_buffer)

    @property
    def bits_remaining(self):
        return max(self.config.target_entropy_bits - self._state.accepted_bit_count, 0)

    @property
    def progress(self):
        """Fraction of the target collected, 0.0 to 1.0."""
        return min(self._state.accepted_bit_count / self.config.target_entropy_bits, 1.0)

    @property
    def entropy_bytes(self):
        """Unmixed bytes from the draws alone (empty until ready)."""
        return bytes(self._state.entropy_bytes)

    @property
    def rng_bytes(self):
        """One buffer per source used in the last mix (empty when unmixed)."""
        return tuple(bytes(buf) for buf in self._state.rng_bytes)

    @property
    def final_bytes(self):
        """The output: entropy_bytes XOR every mixed source."""
        return bytes(self._state.final_bytes)

    @property
    def is_mixed(self):
        return bool(self._state.rng_bytes)

    @property
    def self_test_report(self):
        """Self-test results for final_bytes, or None before readiness."""
        report = self._state.self_test_report
        if report is None:
            return None
        return {name: dict(result) for name, result in report.items()}

    @property
    def mnemonic(self):
        """Mnemonic of final_bytes, or None (not ready, odd length, or encoder failure)."""
        return self._state.mnemonic

    def __repr__(self):
        s = self._state
        return (f"<EntropyAccumulator range={s.config.range} "
                f"bits={min(s.accepted_bit_count, s.config.target_entropy_bits)}/"
                f"{s.config.target_entropy_bits} draws={len(s.raw_sequence)} "
                f"ready={s.is_ready} mixed={bool(s.rng_bytes)}>")

    # ── Collection ───────────────────────────────────────────────

    def ingest(self, draw):
        """Add one validated draw.

        Raises:
            AlreadyComplete: the target is already reached.
            ValueOutOfRange: the draw exceeds this session's range.
        """
        s = self._state
        config = s.config
        if s.is_ready:
            raise AlreadyComplete(config.target_entropy_bits)
        value = draw.value
        _check_int("value", value)
        if not 1 <= value <= config.range:
            raise ValueOutOfRange(value, config.range)

        s.raw_sequence.append(value)
        zero_indexed = value - 1
        if zero_indexed >= config.cutoff:
            print(f"  [ingest] draw {value} rejected (only 1..{config.cutoff} are usable)")
            return

        s.accepted_sequence.append(zero_indexed)
        for shift in range(config.bits_per_draw - 1, -1, -1):
            s.bit_buffer.append((zero_indexed >> shift) & 1)
        s.accepted_bit_count += config.bits_per_draw

        if s.accepted_bit_count >= config.target_entropy_bits:
            self._finish()

    def add(self, value):
        """Validate a raw value against this session's range and ingest it."""
        self.ingest(validate(self.config.range, value))

    def feed(self, values):
        """Add values in order until the session is ready.

        Returns the number of values consumed; values after the one that
        completed the session are not touched.
        """
        consumed = 0
        if self._state.is_ready:
            return consumed
        for value in values:
            self.add(value)
            consumed += 1
            if self._state.is_ready:
                break
        return consumed

    def _finish(self):
        t0 = time.perf_counter()
        s = self._state
        target_bits = s.config.target_entropy_bits

        s.is_ready = True
        s.bit_buffer[target_bits:] = bytes(len(s.bit_buffer) - target_bits)
        del s.bit_buffer[target_bits:]
        s.entropy_bytes = _pack_bits(s.bit_buffer)
        s.final_bytes = bytearray(s.entropy_bytes)

        print(f"  [ingest] entropy ready: {target_bits}/{target_bits} bits from "
              f"{len(s.raw_sequence)} draws ({len(s.accepted_sequence)} accepted)  "
              f"({(time.perf_counter()-t0)*1000:.2f}ms)")
        self._run_collaborators()

    # ── Collaborators ────────────────────────────────────────────

    def _run_collaborators(self):
        """Self-test and encode final_bytes. Failures only blank the result."""
        s = self._state
        data = bytes(s.final_bytes)

        try:
            s.self_test_report = self._self_test(data)
        except Exception as exc:
            print(f"  [selftest] unavailable: {type(exc).__name__}: {exc}")
            s.self_test_report = unavailable_report(f"self-test failed: {exc}")

        try:
            s.mnemonic = self._encoder(data)
        except Exception as exc:
            print(f"  [mnemonic] unavailable: {type(exc).__name__}: {exc}")
            s.mnemonic = None

    # ── Mixing ───────────────────────────────────────────────────

    def _require_ready(self):
        s = self._state
        if not s.is_ready:
            raise NotReady(s.config.target_entropy_bits, s.accepted_bit_count)

    def mix(self, sources):
        """XOR the finished entropy with bytes from independent sources.

        Each source is a callable returning exactly target_entropy_bytes
        bytes for that request (secrets.token_bytes, os.urandom, or one of
        diceseed.sources). Use at least two independent sources.

        All-or-nothing: if any source fails, nothing changes.

        Raises:
            NotReady: not enough draws collected yet.
            GenerationFailed: a source raised.
            ValueError: no sources, or a source returned the wrong length.
        """
        self._require_ready()
        sources = list(sources)
        if not sources:
            raise ValueError("mix needs at least one source")

        t0 = time.perf_counter()
        s = self._state
        n_bytes = s.config.target_entropy_bytes
        collected = []
        try:
            for i, source in enumerate(sources):
                try:
                    out = source(n_bytes)
                except GenerationFailed:
                    raise
                except Exception as exc:
                    raise GenerationFailed(f"source {i} failed: {exc}") from exc
                if not isinstance(out, (bytes, bytearray)) or len(out) != n_bytes:
                    size = len(out) if isinstance(out, (bytes, bytearray)) else type(out).__name__
                    raise ValueError(f"source {i} returned {size}, expected {n_bytes} bytes")
                collected.append(bytearray(out))
        except Exception:
            for buf in collected:
                _wipe(buf)
            raise

        final = bytearray(s.entropy_bytes)
        for buf in collected:
            for j in range(n_bytes):
                final[j] ^= buf[j]

        for buf in s.rng_bytes:
            _wipe(buf)
        _wipe(s.final_bytes)
        s.rng_bytes = collected
        s.final_bytes = final

        print(f"  [mix] {n_bytes} bytes mixed with {len(collected)} source(s)  "
              f"({(time.perf_counter()-t0)*1000:.2f}ms)")
        self._run_collaborators()

    def revert_mix(self):
        """Drop all mixed-in source bytes and go back to the dice-only bytes."""
        self._require_ready()
        s = self._state
        for buf in s.rng_bytes:
            _wipe(buf)
        s.rng_bytes = []
        _wipe(s.final_bytes)
        s.final_bytes = bytearray(s.entropy_bytes)
        print("  [mix] reverted to unmixed entropy")
        self._run_collaborators()

    def fingerprint(self):
        """4-char hex checksum of final_bytes, e.g. "A3F1".

        Lets an operator confirm a written-down seed matches without
        reading the seed back aloud.
        """
        self._require_ready()
        key = hmac.new(_FINGERPRINT_DOMAIN, bytes(self._state.final_bytes),
                       hashlib.sha512).digest()
        return key[:2].hex().upper()

    # ── Transplant / reset ───────────────────────────────────────

    def replace_state_from(self, other):
        """Take over another accumulator's whole state (config included).

        The state moves rather than being copied: `other` is left as a
        fresh, empty session of its own config, and no buffer is shared
        between the two. This accumulator's previous buffers are wiped.
        """
        if not isinstance(other, EntropyAccumulator):
            raise TypeError(
                f"can only take state from an EntropyAccumulator, got {type(other).__name__}")
        if other is self:
            return
        incoming = other._state
        other._state = _SessionState(incoming.config)
        self._state.wipe()
        self._state = incoming
        print(f"  [transplant] state replaced: {self!r}")

    def reset(self):
        """Wipe all collected data and start over with the same config."""
        config = self.config
        self.replace_state_from(EntropyAccumulator(config, self._self_test, self._encoder))
        print(f"  [reset] range={config.range} target={config.target_entropy_bytes} bytes")
