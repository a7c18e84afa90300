"""Investment return metrics for the 25-year proposal projection.

Payback with monthly interpolation, IRR by fixed-iteration bisection and
NPV at the assumed discount rate, all read off a finished cash-flow table.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from finance.contracts import CashFlowRow, ReturnMetrics
from finance.utils import round_half_up

logger = logging.getLogger(__name__)

IRR_LOWER_BOUND = -0.5
IRR_UPPER_BOUND = 5.0
IRR_ITERATIONS = 100
IRR_TOLERANCE = 0.01

PROJECTION_YEARS = 25


# ============================================================================
# PERIODIC NPV / IRR
# ============================================================================


def annual_flows(rows: Sequence[CashFlowRow]) -> List[float]:
    """Net flows of years 1..N (row 0 is the upfront outlay)."""
    return [row.net_savings + row.investment for row in rows[1:]]


def present_value(rate: float, flows: Sequence[float]) -> float:
    """
    Sum of ``flows[i-1] / (1 + rate)^i`` for i = 1..N.

    Rate clamped just above -100 % to avoid division errors.
    """
    r = float(rate)
    if r <= -1.0:
        r = -0.999999
    total = 0.0
    for t, cf in enumerate(flows, start=1):
        total += float(cf) / ((1.0 + r) ** t)
    return total


def npv(rate: float, investment: float, flows: Sequence[float]) -> float:
    """Classic NPV with the investment at t=0 and ``flows`` from t=1."""
    return -float(investment) + present_value(rate, flows)


def irr_bisection(investment: float, flows: Sequence[float]) -> float:
    """
    Rate at which discounted ``flows`` repay ``investment``.

    Search domain: [-0.5, 5.0] (-50 % to 500 %)
    Convergence: |NPV| < 0.01
    Max iterations: 100

    A positive NPV means the rate is still too low, so the lower bound moves
    up; otherwise the upper bound moves down. Without a root in the domain the
    result drifts to the nearer edge and is returned as the best estimate.
    """
    lo, hi = IRR_LOWER_BOUND, IRR_UPPER_BOUND
    mid = (lo + hi) / 2.0

    for _ in range(IRR_ITERATIONS):
        mid = (lo + hi) / 2.0
        value = npv(mid, investment, flows)
        if abs(value) < IRR_TOLERANCE:
            return mid
        if value > 0:
            lo = mid
        else:
            hi = mid

    return mid


# ============================================================================
# PAYBACK
# ============================================================================


def _payback_crossing(rows: Sequence[CashFlowRow]) -> Optional[Tuple[int, int]]:
    for y in range(1, len(rows)):
        current = rows[y].cumulative_cash_flow
        if current < 0:
            continue
        previous = rows[y - 1].cumulative_cash_flow
        delta = current - previous
        if previous >= 0 or delta <= 0:
            return y, 0
        months = round_half_up(abs(previous) / delta * 12)
        return y, months

    return None


def payback_period(rows: Sequence[CashFlowRow]) -> Tuple[int, int]:
    """
    ``(year, months)`` of the first year whose cumulative flow is >= 0.

    Months interpolate linearly between the last negative cumulative value
    and the crossing one. A projection that never pays back saturates at
    ``(25, 0)``.
    """
    crossing = _payback_crossing(rows)
    if crossing is None:
        return PROJECTION_YEARS, 0
    return crossing


# ============================================================================
# PUBLIC ENTRYPOINT
# ============================================================================


def compute_return_metrics(
    rows: Sequence[CashFlowRow],
    investment_price: float,
    discount_rate_percent: float,
) -> ReturnMetrics:
    """
    Derive payback, IRR and NPV from a 26-row projection.

    Parameters
    ----------
    rows:
        Output of ``project_cash_flow`` (year 0..25).
    investment_price:
        Proposal price; the amount IRR and NPV are measured against.
    discount_rate_percent:
        NPV discount rate in percent.

    Returns
    -------
    ReturnMetrics
        ``irr_percent`` is floored at 0 for display. No exception is raised
        when the bisection does not converge.
    """
    flows = annual_flows(rows)
    price = float(investment_price)

    crossing = _payback_crossing(rows)
    if crossing is None:
        payback_years, payback_months = PROJECTION_YEARS, 0
        payback_total_months = PROJECTION_YEARS * 12
    else:
        payback_years, payback_months = crossing
        payback_total_months = (payback_years - 1) * 12 + payback_months

    irr = irr_bisection(price, flows)
    value = npv(float(discount_rate_percent) / 100.0, price, flows)

    total_net_savings = sum(row.net_savings for row in rows[1:])
    roi = (sum(flows) - price) / price * 100.0 if price > 0 else 0.0

    logger.debug(
        "Returns: payback=%dy%dm irr=%.4f npv=%.2f",
        payback_years,
        payback_months,
        irr,
        value,
    )

    return ReturnMetrics(
        payback_years=payback_years,
        payback_months=payback_months,
        irr_percent=max(0.0, irr * 100.0),
        npv=value,
        payback_total_months=payback_total_months,
        total_net_savings=total_net_savings,
        roi_percent=roi,
    )


__all__ = [
    "annual_flows",
    "present_value",
    "npv",
    "irr_bisection",
    "payback_period",
    "compute_return_metrics",
]
