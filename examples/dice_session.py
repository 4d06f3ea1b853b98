# Copyright (c) 2026 Signer — MIT License

"""Walk through a complete dice session with simulated rolls.

Rolls a virtual d6 until 32 bytes of entropy are collected, mixes the
result with the OS CSPRNG and timing jitter, shows the self-test report
and mnemonic, then reverts the mix.

The simulated rolls come from random.SystemRandom and exist only to drive
the example; real use feeds physical rolls via session.add().

Usage: python examples/dice_session.py [sides] [bytes]
"""

import os
import random
import sys

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(SCRIPT_DIR)
sys.path.insert(0, PROJECT_DIR)

from diceseed import EntropyAccumulator, SessionConfig, default_sources, summarize


def main(argv):
    sides = int(argv[1]) if len(argv) > 1 else 6
    n_bytes = int(argv[2]) if len(argv) > 2 else 32
    config = SessionConfig(sides, n_bytes)

    print("=" * 60)
    print(f"Die sides:               {config.range}")
    print(f"Target entropy:          {config.target_entropy_bits} bits")
    print(f"Bits per accepted roll:  {config.bits_per_draw}")
    print(f"Usable rolls:            1..{config.cutoff}")
    print(f"Accepted rolls needed:   {config.accepted_draws_needed}")
    print(f"Expected rolls:          {config.expected_draws:.1f}")
    print("=" * 60)

    die = random.SystemRandom()
    with EntropyAccumulator(config) as session:
        while not session.is_ready:
            session.add(die.randint(1, sides))

        print(f"\nRolls: {len(session.raw_sequence)}, "
              f"accepted: {len(session.accepted_sequence)}, "
              f"bits: {session.accepted_bit_count}")
        print(f"Fingerprint (dice only): {session.fingerprint()}")

        session.mix(default_sources())
        print(f"Fingerprint (mixed):     {session.fingerprint()}")
        print()
        print(summarize(session.self_test_report))
        if session.mnemonic:
            print(f"\nMnemonic ({config.mnemonic_words} words):\n  {session.mnemonic}")

        session.revert_mix()
        print(f"\nReverted. Fingerprint:   {session.fingerprint()}")


if __name__ == "__main__":
    main(sys.argv)
