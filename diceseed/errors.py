# Copyright (c) 2026 Signer — MIT License

"""Errors raised by dice seed sessions.

Configuration and input problems are ValueErrors, sequencing and RNG
problems are RuntimeErrors, so callers that only know the builtin
exceptions still catch them.
"""


class DiceSeedError(Exception):
    """Base class for every error raised by diceseed."""


class InvalidRange(DiceSeedError, ValueError):
    """A range with fewer than two outcomes carries no entropy."""

    def __init__(self, range_, message=None):
        self.range = range_
        super().__init__(message or f"range must be at least 2, got {range_}")


class RangeTooSmall(InvalidRange):
    """Raised when a session is configured with range < 2."""


class TargetBytesTooSmall(DiceSeedError, ValueError):
    def __init__(self, target_entropy_bytes):
        self.target_entropy_bytes = target_entropy_bytes
        super().__init__(
            f"target_entropy_bytes must be at least 1, got {target_entropy_bytes}"
        )


class ValueOutOfRange(DiceSeedError, ValueError):
    """A draw outside [1, range]."""

    def __init__(self, value, range_):
        self.value = value
        self.range = range_
        super().__init__(f"draw {value} is outside the range 1..{range_}")


class AlreadyComplete(DiceSeedError, RuntimeError):
    def __init__(self, target_entropy_bits):
        self.target_entropy_bits = target_entropy_bits
        super().__init__(
            f"entropy is already complete ({target_entropy_bits} bits); "
            "no more draws are accepted. Reset the session to start over."
        )


class NotReady(DiceSeedError, RuntimeError):
    """Mixing or reverting before enough bits were collected."""

    def __init__(self, required_bits, current_bits):
        self.required_bits = required_bits
        self.current_bits = current_bits
        super().__init__(
            f"entropy is not ready: {current_bits} of {required_bits} bits collected"
        )


class GenerationFailed(DiceSeedError, RuntimeError):
    """An RNG provider could not deliver the requested bytes."""
