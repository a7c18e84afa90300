"""Payback, IRR and NPV read off a projection table."""

import pytest

from finance.cashflow import project_cash_flow
from finance.contracts import CashFlowRow, EconomicAssumptions
from finance.returns import (
    annual_flows,
    compute_return_metrics,
    irr_bisection,
    npv,
    payback_period,
    present_value,
)


def _rows_from_cumulative(cumulative):
    """Minimal rows whose only meaningful column is the cumulative flow."""
    rows = []
    prev = 0.0
    for year, cum in enumerate(cumulative):
        delta = cum - prev if year else cum
        rows.append(
            CashFlowRow(
                year=year,
                generation_kwh=0.0,
                tariff_rate=0.0,
                gross_savings=0.0,
                wire_fee_cost=0.0,
                net_savings=delta if year else 0.0,
                extra_cost=0.0,
                investment=0.0 if year else cum,
                cumulative_cash_flow=cum,
            )
        )
        prev = cum
    return rows


def test_payback_interpolates_months():
    rows = _rows_from_cumulative([-1000, -400, 200])
    assert payback_period(rows) == (2, 8)


def test_payback_without_previous_deficit_has_zero_months():
    rows = _rows_from_cumulative([0, 100, 200])
    assert payback_period(rows) == (1, 0)


def test_payback_saturates_at_25_years():
    rows = _rows_from_cumulative([-1000] + [-900] * 25)
    assert payback_period(rows) == (25, 0)

    metrics = compute_return_metrics(rows, 1000, 10)
    assert metrics.payback_years == 25
    assert metrics.payback_months == 0
    assert metrics.payback_total_months == 300


def test_payback_total_months():
    rows = _rows_from_cumulative([-1000, -400, 200] + [800] * 23)
    metrics = compute_return_metrics(rows, 1000, 10)
    assert metrics.payback_total_months == 12 + 8


def test_npv_and_present_value():
    assert present_value(0.1, [110]) == pytest.approx(100)
    assert npv(0.1, 100, [110]) == pytest.approx(0, abs=1e-9)
    assert npv(0.0, 100, [50, 50, 50]) == pytest.approx(50)


def test_present_value_clamps_rate_below_minus_one():
    assert present_value(-1.5, [1.0]) == pytest.approx(1.0 / 0.000001)


def test_irr_bisection_finds_root():
    flows = [200.0] * 25
    rate = irr_bisection(1000.0, flows)
    assert abs(npv(rate, 1000.0, flows)) < 0.01
    assert 0.19 < rate < 0.2


def test_irr_without_root_is_floored_at_zero_for_display():
    rows = _rows_from_cumulative([-1000] + [-1000 - 10 * y for y in range(1, 26)])
    metrics = compute_return_metrics(rows, 1000, 10)
    assert metrics.irr_percent == 0.0


def test_metrics_from_projection_are_consistent():
    assumptions = EconomicAssumptions(tariff_inflation_percent=10.0, efficiency_loss_percent_per_year=0.0)
    rows = project_cash_flow(30000.0, assumptions, 0.0, 0, 6000.0, 1.0)
    m = compute_return_metrics(rows, 30000.0, assumptions.discount_rate_percent)

    assert rows[m.payback_years].cumulative_cash_flow >= 0
    assert rows[m.payback_years - 1].cumulative_cash_flow < 0
    assert 0 <= m.payback_months <= 12

    flows = annual_flows(rows)
    assert abs(npv(m.irr_percent / 100.0, 30000.0, flows)) < 0.01
    assert m.npv == pytest.approx(npv(0.10, 30000.0, flows))
    assert m.roi_percent == pytest.approx((sum(flows) - 30000.0) / 30000.0 * 100.0)
    assert m.total_net_savings == pytest.approx(sum(r.net_savings for r in rows[1:]))
