# Copyright (c) 2026 Signer — MIT License

"""Mnemonic encoding of finished entropy.

Only the BIP-39 entropy sizes produce a mnemonic:
    16 bytes -> 12 words        28 bytes -> 21 words
    20 bytes -> 15 words        32 bytes -> 24 words
    24 bytes -> 18 words

Any other length simply has no mnemonic (None), it is not an error.

Usage:
    from diceseed.words import encode_mnemonic
    phrase = encode_mnemonic(final_bytes)   # "abandon ability ..." or None
"""

from mnemonic import Mnemonic

MNEMONIC_WORDS = {16: 12, 20: 15, 24: 18, 28: 21, 32: 24}

_LANGUAGE = "english"
_encoder = None


def _get_encoder():
    global _encoder
    if _encoder is None:
        _encoder = Mnemonic(_LANGUAGE)
    return _encoder


def word_count(n_bytes):
    """Number of mnemonic words for an entropy length, or None."""
    return MNEMONIC_WORDS.get(n_bytes)


def encode_mnemonic(data):
    """Encode entropy bytes as a BIP-39 phrase, or None for unrecognized lengths."""
    if len(data) not in MNEMONIC_WORDS:
        return None
    return _get_encoder().to_mnemonic(bytes(data))
