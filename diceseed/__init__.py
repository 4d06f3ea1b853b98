# Copyright (c) 2026 Signer — MIT License

"""Dice-to-seed entropy.

Turns draws from any fair physical process (dice, cards, coins) into
uniformly distributed seed bytes:
- rejection sampling removes the bias of ranges that are not a power of two
- accepted draws are packed into a bit buffer until the target is reached
- the result can be XOR-mixed with independent random sources, and the mix
  can be undone without rolling again
- finished bytes are self-tested (NIST SP 800-22 battery) and, for
  16/20/24/28/32-byte targets, encoded as a BIP-39 mnemonic

Usage:
    from diceseed import SessionConfig, EntropyAccumulator, default_sources
    with EntropyAccumulator(SessionConfig(6, 32)) as session:
        while not session.is_ready:
            session.add(int(input("roll: ")))
        session.mix(default_sources())
        print(session.mnemonic, session.fingerprint())
"""

__version__ = "1.0"

from .errors import (
    AlreadyComplete,
    DiceSeedError,
    GenerationFailed,
    InvalidRange,
    NotReady,
    RangeTooSmall,
    TargetBytesTooSmall,
    ValueOutOfRange,
)
from .selftest import check_source, overall_pass, run_self_test, summarize
from .session import (
    DEFAULT_RANGE,
    DEFAULT_TARGET_BYTES,
    Draw,
    EntropyAccumulator,
    SessionConfig,
    validate,
)
from .sources import default_sources, fixed_source, jitter_entropy, os_csprng, os_urandom
from .words import MNEMONIC_WORDS, encode_mnemonic

__all__ = [
    "AlreadyComplete",
    "DEFAULT_RANGE",
    "DEFAULT_TARGET_BYTES",
    "DiceSeedError",
    "Draw",
    "EntropyAccumulator",
    "GenerationFailed",
    "InvalidRange",
    "MNEMONIC_WORDS",
    "NotReady",
    "RangeTooSmall",
    "SessionConfig",
    "TargetBytesTooSmall",
    "ValueOutOfRange",
    "check_source",
    "default_sources",
    "encode_mnemonic",
    "fixed_source",
    "jitter_entropy",
    "os_csprng",
    "os_urandom",
    "overall_pass",
    "run_self_test",
    "summarize",
    "validate",
]
