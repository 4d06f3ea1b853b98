# Copyright (c) 2026 Signer — MIT License

"""Statistical self-test for finished entropy.

Runs a battery of NIST SP 800-22 rev 1a tests on a byte buffer:
    1. Frequency (monobit)       5. Cumulative sums (forward + backward)
    2. Block frequency           6. Serial (m=6, both p-values)
    3. Runs                      7. Approximate entropy (m=2)
    4. Longest run of ones       8. Approximate entropy (m=3)

Every test has its own result slot. A buffer too short for a test, or a
test that blows up internally, marks only that slot "unavailable"; the
others still run. Nothing here raises on bad data.

A 32-byte seed is only 256 bits, so a single run is weak evidence either
way. Treat a failure as a prompt to look at the draws, not as proof of bias.

Usage:
    from diceseed.selftest import run_self_test, summarize
    report = run_self_test(data)
    report["runs"]        # {"status": "pass", "pass": True, "p_value": 0.41, ...}
    print(summarize(report))
"""

import math
import time

from scipy.special import gammaincc
from scipy.stats import norm

ALPHA = 0.01              # significance level (NIST default)
BLOCK_FREQUENCY_M = 20    # block length, capped at the sample size
SERIAL_M = 6              # serial test pattern length

TEST_NAMES = (
    "frequency",
    "block_frequency",
    "runs",
    "longest_run_of_ones",
    "cumulative_sums",
    "serial",
    "approximate_entropy_m2",
    "approximate_entropy_m3",
)

# Below these sizes a slot is reported as unavailable
MIN_BITS = {
    "frequency": 8,
    "block_frequency": 8,
    "runs": 8,
    "longest_run_of_ones": 128,
    "cumulative_sums": 8,
    "serial": 2 ** SERIAL_M,
    "approximate_entropy_m2": 2 ** 4,
    "approximate_entropy_m3": 2 ** 5,
}

# Longest-run tables: (min n, block length M, lowest class, class probabilities)
_LONGEST_RUN_TABLES = (
    (750000, 10000, 10, (0.0882, 0.2092, 0.2483, 0.1933, 0.1208, 0.0675, 0.0727)),
    (6272, 128, 4, (0.1174, 0.2430, 0.2493, 0.1752, 0.1027, 0.1124)),
    (128, 8, 1, (0.2148, 0.3672, 0.2305, 0.1875)),
)


def to_bits(data):
    """Expand bytes into a list of bits, most significant bit first."""
    bits = []
    for byte in data:
        for bit_pos in range(7, -1, -1):
            bits.append((byte >> bit_pos) & 1)
    return bits


def frequency_test(bits):
    n = len(bits)
    s = abs(2 * sum(bits) - n) / math.sqrt(n)
    return math.erfc(s / math.sqrt(2))


def block_frequency_test(bits, block_size):
    """Proportion of ones within each M-bit block should be ~1/2."""
    n_blocks = len(bits) // block_size
    chi2 = 0.0
    for b in range(n_blocks):
        pi = sum(bits[b * block_size:(b + 1) * block_size]) / block_size
        chi2 += (pi - 0.5) ** 2
    chi2 *= 4.0 * block_size
    return float(gammaincc(n_blocks / 2.0, chi2 / 2.0))


def runs_test(bits):
    """Number of uninterrupted runs of identical bits.

    If the frequency prerequisite fails (|pi - 1/2| >= 2/sqrt(n)) the
    test is not applicable and the p-value is 0.
    """
    n = len(bits)
    pi = sum(bits) / n
    if pi in (0.0, 1.0) or abs(pi - 0.5) >= 2.0 / math.sqrt(n):
        return 0.0
    runs = 1
    for i in range(1, n):
        if bits[i] != bits[i - 1]:
            runs += 1
    num = abs(runs - 2.0 * n * pi * (1 - pi))
    den = 2.0 * math.sqrt(2.0 * n) * pi * (1 - pi)
    return math.erfc(num / den)


def longest_run_of_ones_test(bits):
    n = len(bits)
    for min_n, block_size, lowest, probs in _LONGEST_RUN_TABLES:
        if n >= min_n:
            break
    else:
        raise ValueError(f"longest run of ones needs at least 128 bits, got {n}")

    k = len(probs) - 1
    n_blocks = n // block_size
    counts = [0] * len(probs)
    for b in range(n_blocks):
        longest = run = 0
        for bit in bits[b * block_size:(b + 1) * block_size]:
            run = run + 1 if bit else 0
            if run > longest:
                longest = run
        counts[min(max(longest - lowest, 0), k)] += 1

    chi2 = 0.0
    for count, p in zip(counts, probs):
        expected = n_blocks * p
        chi2 += (count - expected) ** 2 / expected
    return float(gammaincc(k / 2.0, chi2 / 2.0))


def _trunc_div(a, b):
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def _cusum_p_value(bits):
    n = len(bits)
    s = z = 0
    for bit in bits:
        s += 1 if bit else -1
        if abs(s) > z:
            z = abs(s)
    sqrt_n = math.sqrt(n)
    upper = _trunc_div(_trunc_div(n, z) - 1, 4)

    p = 1.0
    for k in range(_trunc_div(_trunc_div(-n, z) + 1, 4), upper + 1):
        p -= norm.cdf((4 * k + 1) * z / sqrt_n) - norm.cdf((4 * k - 1) * z / sqrt_n)
    for k in range(_trunc_div(_trunc_div(-n, z) - 3, 4), upper + 1):
        p += norm.cdf((4 * k + 3) * z / sqrt_n) - norm.cdf((4 * k + 1) * z / sqrt_n)
    return float(p)


def cumulative_sums_test(bits):
    """Maximal excursion of the random walk. Returns (forward, backward)."""
    return _cusum_p_value(bits), _cusum_p_value(bits[::-1])


def _pattern_counts(bits, m):
    """Counts of every overlapping m-bit pattern, wrapping around the end."""
    mask = (1 << m) - 1
    counts = [0] * (1 << m)
    v = 0
    for i, bit in enumerate(list(bits) + list(bits[:m - 1])):
        v = ((v << 1) | bit) & mask
        if i >= m - 1:
            counts[v] += 1
    return counts


def _psi_squared(bits, m):
    if m <= 0:
        return 0.0
    n = len(bits)
    return (2 ** m / n) * sum(c * c for c in _pattern_counts(bits, m)) - n


def serial_test(bits, m):
    """Frequency of all overlapping m-bit patterns. Returns (p1, p2)."""
    psi_m = _psi_squared(bits, m)
    psi_m1 = _psi_squared(bits, m - 1)
    psi_m2 = _psi_squared(bits, m - 2)
    delta1 = psi_m - psi_m1
    delta2 = psi_m - 2 * psi_m1 + psi_m2
    return (
        float(gammaincc(2 ** (m - 2), delta1 / 2.0)),
        float(gammaincc(2 ** (m - 3), delta2 / 2.0)),
    )


def _phi(bits, m):
    n = len(bits)
    return sum((c / n) * math.log(c / n) for c in _pattern_counts(bits, m) if c)


def approximate_entropy_test(bits, m):
    """Compare frequencies of overlapping m and m+1 bit blocks."""
    n = len(bits)
    ap_en = _phi(bits, m) - _phi(bits, m + 1)
    chi2 = 2.0 * n * (math.log(2) - ap_en)
    return float(gammaincc(2 ** (m - 1), chi2 / 2.0))


_BATTERY = (
    ("frequency", lambda bits: (frequency_test(bits),)),
    ("block_frequency",
     lambda bits: (block_frequency_test(bits, min(BLOCK_FREQUENCY_M, len(bits))),)),
    ("runs", lambda bits: (runs_test(bits),)),
    ("longest_run_of_ones", lambda bits: (longest_run_of_ones_test(bits),)),
    ("cumulative_sums", cumulative_sums_test),
    ("serial", lambda bits: serial_test(bits, SERIAL_M)),
    ("approximate_entropy_m2", lambda bits: (approximate_entropy_test(bits, 2),)),
    ("approximate_entropy_m3", lambda bits: (approximate_entropy_test(bits, 3),)),
)


def _unavailable(detail):
    return {"status": "unavailable", "pass": None, "p_value": None, "detail": detail}


def _verdict(p_values):
    if any(math.isnan(p) for p in p_values):
        return _unavailable("p-value is undefined for this sample")
    passed = all(p >= ALPHA for p in p_values)
    return {
        "status": "pass" if passed else "fail",
        "pass": passed,
        "p_value": min(p_values),
        "p_values": tuple(p_values),
        "detail": ", ".join(f"p={p:.6f}" for p in p_values),
    }


def unavailable_report(reason):
    """A report with every slot unavailable (the battery could not run at all)."""
    return {name: _unavailable(reason) for name in TEST_NAMES}


def run_self_test(data):
    """Run every test on `data` and return {test_name: result}.

    Each result has:
        "status":  "pass", "fail" or "unavailable"
        "pass":    True / False / None
        "p_value": smallest p-value of the test, or None
        "detail":  human-readable note
    """
    t0 = time.perf_counter()
    bits = to_bits(data)
    n = len(bits)

    report = {}
    for name, test in _BATTERY:
        if n < MIN_BITS[name]:
            report[name] = _unavailable(f"needs at least {MIN_BITS[name]} bits, got {n}")
            continue
        try:
            p_values = test(bits)
        except Exception as exc:
            report[name] = _unavailable(f"test aborted: {type(exc).__name__}: {exc}")
            continue
        report[name] = _verdict(p_values)

    counts = {"pass": 0, "fail": 0, "unavailable": 0}
    for result in report.values():
        counts[result["status"]] += 1
    elapsed = (time.perf_counter() - t0) * 1000
    print(f"  [selftest] {n} bits: {counts['pass']} pass, {counts['fail']} fail, "
          f"{counts['unavailable']} unavailable  ({elapsed:.2f}ms)")
    return report


def overall_pass(report):
    """True when no test failed and at least one test actually ran."""
    statuses = [r["status"] for r in report.values()]
    return "fail" not in statuses and "pass" in statuses


def summarize(report):
    """Render a report as a short block of text."""
    lines = [f"Self-test: {'PASS' if overall_pass(report) else 'FAIL'}", ""]
    for name in TEST_NAMES:
        result = report.get(name)
        if result is None:
            continue
        mark = {"pass": "+", "fail": "!"}.get(result["status"], "?")
        lines.append(f"  [{mark}] {name:<24s} {result['status']:<12s} {result['detail']}")
    return "\n".join(lines)


def check_source(provider, sample_size=2048, num_samples=5):
    """Health-check an RNG provider before trusting it for mixing.

    Draws `num_samples` samples of `sample_size` bytes and runs the battery
    on each. A test only counts as failed if more than half of the samples
    fail it (majority voting), which keeps the false-positive rate of five
    1%-level tests far below what a single sample would give.

    Returns:
        dict with "pass" (bool), "tests" ([{test, pass, status}]) and
        "summary" (str).
    """
    samples = [provider(sample_size) for _ in range(num_samples)]
    reports = [run_self_test(data) for data in samples]

    overall = True
    tests = []
    for name in TEST_NAMES:
        ran = [r[name] for r in reports if r[name]["status"] != "unavailable"]
        failed = sum(1 for r in ran if not r["pass"])
        if not ran:
            tests.append({"test": name, "pass": None, "status": "unavailable"})
            continue
        majority_failed = failed > len(ran) / 2
        if majority_failed:
            overall = False
        status = "PASS" if not majority_failed else f"FAIL ({failed}/{len(ran)} samples)"
        tests.append({"test": name, "pass": not majority_failed, "status": status})

    lines = [f"Source check: {'PASS' if overall else 'FAIL'}",
             f"Samples: {num_samples}, Size: {sample_size} bytes each", ""]
    for t in tests:
        mark = {True: "+", False: "!"}.get(t["pass"], "?")
        lines.append(f"  [{mark}] {t['test']:<24s} {t['status']}")
    if not overall:
        lines.append("")
        lines.append("WARNING: Weak randomness detected. Do NOT use this source for mixing.")

    return {"pass": overall, "tests": tests, "summary": "\n".join(lines)}
