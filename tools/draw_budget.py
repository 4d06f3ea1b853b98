# Copyright (c) 2026 Signer — MIT License

"""Print how many draws common dice and decks need for each seed size.

Rejection sampling throws away draws above the largest power of two, so a
d6 needs noticeably more rolls than its log2(6) bits per roll suggest.

Usage: python tools/draw_budget.py
"""

import math
import os
import sys

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(SCRIPT_DIR)
sys.path.insert(0, PROJECT_DIR)

from diceseed import MNEMONIC_WORDS, SessionConfig

SOURCES = (
    ("coin", 2),
    ("d4", 4),
    ("d6", 6),
    ("d8", 8),
    ("d10", 10),
    ("d12", 12),
    ("d20", 20),
    ("deck (52)", 52),
    ("d100", 100),
)

print("=" * 78)
print("DRAW BUDGET")
print("=" * 78)
print(f"  {'source':<10s} {'bits':>4s} {'usable':>7s} {'waste':>6s}   "
      + "  ".join(f"{n}B/{w}w".rjust(9) for n, w in MNEMONIC_WORDS.items()))

for label, range_ in SOURCES:
    budgets = []
    for n_bytes in MNEMONIC_WORDS:
        config = SessionConfig(range_, n_bytes)
        budgets.append(f"{config.expected_draws:9.1f}")
    config = SessionConfig(range_, 32)
    waste = 1 - config.bits_per_draw / math.log2(range_)
    print(f"  {label:<10s} {config.bits_per_draw:>4d} {'1..' + str(config.cutoff):>7s} "
          f"{waste:>6.1%}   " + "  ".join(budgets))

print("\nColumns show the mean number of draws, rejected draws included.")
