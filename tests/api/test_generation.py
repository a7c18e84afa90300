import pytest

from finance.generation import estimate_annual_generation_kwh, kwp_from_modules, monthly_generation_kwh


def test_kwp_from_module_catalog():
    assert kwp_from_modules(8, 550) == pytest.approx(4.4)
    assert kwp_from_modules(0, 550) == 0.0
    assert kwp_from_modules(-3, 550) == 0.0


def test_annual_generation_estimate():
    assert estimate_annual_generation_kwh(4.4, 125.0) == pytest.approx(6600.0)
    assert estimate_annual_generation_kwh(0, 125.0) == 0.0
    assert estimate_annual_generation_kwh(4.4, -1) == 0.0


def test_monthly_pool():
    assert monthly_generation_kwh(6000) == pytest.approx(500.0)
    assert monthly_generation_kwh(None) == 0.0
