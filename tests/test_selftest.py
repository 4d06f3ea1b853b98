import os

import pytest

from diceseed import selftest
from diceseed.selftest import (
    MIN_BITS,
    TEST_NAMES,
    approximate_entropy_test,
    block_frequency_test,
    check_source,
    cumulative_sums_test,
    frequency_test,
    longest_run_of_ones_test,
    overall_pass,
    run_self_test,
    runs_test,
    serial_test,
    summarize,
    to_bits,
    unavailable_report,
)

# Worked examples from NIST SP 800-22 rev 1a, section 2


def _bits(text):
    return [int(c) for c in text]


def test_to_bits_is_msb_first():
    assert to_bits(bytes([1, 32, 64, 128])) == _bits("00000001001000000100000010000000")
    assert to_bits(bytes([243, 198, 200, 29])) == _bits("11110011110001101100100000011101")


def test_frequency_nist_example():
    assert frequency_test(_bits("1011010101")) == pytest.approx(0.527089, abs=1e-6)


def test_block_frequency_nist_example():
    assert block_frequency_test(_bits("0110011010"), 3) == pytest.approx(0.801252, abs=1e-6)


def test_runs_nist_example():
    assert runs_test(_bits("1001101011")) == pytest.approx(0.147232, abs=1e-6)


def test_runs_frequency_prerequisite():
    """A sequence far from half ones is not tested for runs at all: p = 0."""

    assert runs_test(_bits("1111111111111111111111111110")) == 0.0


def test_longest_run_nist_example():
    bits = _bits(
        "11001100000101010110110001001100111000000000001001001101010100010001"
        "001111010110100000001101011111001100111001101101100010110010"
    )
    assert len(bits) == 128
    assert longest_run_of_ones_test(bits) == pytest.approx(0.180609, abs=1e-3)


def test_longest_run_needs_128_bits():
    with pytest.raises(ValueError):
        longest_run_of_ones_test([1, 0] * 60)


def test_cumulative_sums_nist_example():
    forward, backward = cumulative_sums_test(_bits("1011010111"))
    assert forward == pytest.approx(0.4116588, abs=1e-4)
    assert 0.0 <= backward <= 1.0


def test_serial_nist_example():
    p1, p2 = serial_test(_bits("0011011101"), 3)
    assert p1 == pytest.approx(0.808792, abs=1e-6)
    assert p2 == pytest.approx(0.670320, abs=1e-6)


def test_approximate_entropy_nist_example():
    assert approximate_entropy_test(_bits("0100110101"), 3) == pytest.approx(0.261961, abs=1e-3)


def test_report_has_every_slot():
    report = run_self_test(os.urandom(64))
    assert tuple(report) == TEST_NAMES
    for result in report.values():
        assert result["status"] in ("pass", "fail", "unavailable")
        if result["status"] != "unavailable":
            assert -1e-9 <= result["p_value"] <= 1.0 + 1e-9
            assert result["pass"] is (result["status"] == "pass")


def test_short_buffer_marks_slots_unavailable():
    """One byte is enough for frequency but not for longest run or serial."""

    report = run_self_test(bytes(1))
    assert report["frequency"]["status"] == "fail"
    assert report["runs"]["status"] == "fail"
    for name in ("longest_run_of_ones", "serial", "approximate_entropy_m2",
                 "approximate_entropy_m3"):
        assert report[name]["status"] == "unavailable"
        assert report[name]["pass"] is None
        assert report[name]["p_value"] is None
        assert str(MIN_BITS[name]) in report[name]["detail"]


def test_all_zero_seed_fails_every_test():
    report = run_self_test(bytes(32))
    assert {r["status"] for r in report.values()} == {"fail"}
    assert overall_pass(report) is False


def test_empty_buffer_is_all_unavailable():
    report = run_self_test(b"")
    assert {r["status"] for r in report.values()} == {"unavailable"}
    assert overall_pass(report) is False


def test_crashing_test_only_blanks_its_own_slot(monkeypatch):
    def explode(bits):
        raise RuntimeError("internal abort")

    monkeypatch.setattr(selftest, "runs_test", explode)
    report = run_self_test(bytes(32))

    assert report["runs"]["status"] == "unavailable"
    assert "internal abort" in report["runs"]["detail"]
    assert report["frequency"]["status"] == "fail"
    assert report["serial"]["status"] == "fail"


def test_overall_pass_needs_no_failures_and_one_pass():
    ok = {"status": "pass", "pass": True, "p_value": 0.5, "detail": ""}
    bad = {"status": "fail", "pass": False, "p_value": 0.001, "detail": ""}
    na = {"status": "unavailable", "pass": None, "p_value": None, "detail": ""}
    assert overall_pass({"a": ok, "b": na}) is True
    assert overall_pass({"a": ok, "b": bad}) is False
    assert overall_pass({"a": na}) is False


def test_unavailable_report_covers_every_test():
    report = unavailable_report("collaborator crashed")
    assert tuple(report) == TEST_NAMES
    assert all(r["detail"] == "collaborator crashed" for r in report.values())


def test_summarize_lists_every_test():
    text = summarize(run_self_test(bytes(32)))
    assert text.startswith("Self-test: FAIL")
    for name in TEST_NAMES:
        assert name in text
    assert "[!]" in text


def test_check_source_flags_a_stuck_source():
    result = check_source(lambda n: bytes(n), sample_size=64, num_samples=3)
    assert result["pass"] is False
    assert "WARNING" in result["summary"]
    assert {t["test"] for t in result["tests"]} == set(TEST_NAMES)
