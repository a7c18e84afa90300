"""
Tests for finance.utils helpers:

- get_nested for normal and missing paths.
- as_float / as_int conversion and fallbacks.
- half-up rounding used by every proposal figure.
"""

import pytest

from finance.utils import as_bool, as_float, as_int, clamp, get_nested, round2, round_half_up


def test_get_nested_happy_path_and_missing():
    data = {
        "proposal": {
            "financing": {
                "term_months": 36,
            },
        },
    }

    assert get_nested(data, ["proposal", "financing", "term_months"]) == 36
    assert get_nested(data, ["proposal", "missing"], default="x") == "x"
    # Non-dict along the path should trigger default
    assert get_nested({"a": 1}, ["a", "b"], default="y") == "y"


def test_as_float_success_and_failure():
    assert as_float("1.5", default=None) == 1.5
    assert as_float(2, default=None) == 2.0
    assert as_float("not-a-number", default=0.5) == 0.5
    assert as_float(None, default=1.23) == 1.23


def test_as_int_success_and_failure():
    assert as_int("36", default=None) == 36
    assert as_int(12, default=None) == 12
    assert as_int("bad", default=-1) == -1
    assert as_int(None, default=99) == 99


def test_round_half_up_ties_go_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(-2.5) == -2
    assert round_half_up(33.33) == 33
    # built-in round() would give 2 here
    assert round(2.5) == 2


def test_round2_currency_rounding():
    assert round2(277.2) == pytest.approx(277.2)
    assert round2(1.1715) == pytest.approx(1.17)
    assert round2(0.125) == pytest.approx(0.13)
    assert round2(-30000) == pytest.approx(-30000.0)


def test_clamp_bounds():
    assert clamp(-5, 0, 12) == 0
    assert clamp(30, 0, 12) == 12
    assert clamp(6, 0, 12) == 6


def test_as_bool_parses_config_flags():
    assert as_bool(True) is True
    assert as_bool("false") is False
    assert as_bool(" No ") is False
    assert as_bool("sim") is True
    assert as_bool(0) is False
    assert as_bool("maybe", default=True) is True
    assert as_bool(None) is None
