"""25-year savings projection for a solar proposal.

FEATURES:
---------
- Year 0 carries the upfront outlay (full price, or the down payment when the
  system is financed)
- Years 1..25 compound tariff inflation and module efficiency loss
- Simplified flat Fio B wire fee: 15 % of the 28 % wire share of the tariff
- Inverter replacement charged once, as a share of the proposal price
- Financing installments charged while any remain outstanding in the year

Every intermediate figure is rounded to 2 decimals (half-up) before it feeds
the next one, so the series reproduces the proposal document cent for cent.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from analytics.config_schema import RequiredFieldSpec, register_required_fields
from finance.contracts import CashFlowRow, EconomicAssumptions
from finance.utils import clamp, round2

logger = logging.getLogger(__name__)

PROJECTION_YEARS = 25
MONTHS_PER_YEAR = 12

# Fio B approximation: wire component share of the tariff x charged fraction.
# The phased Lei 14.300 schedule is not modelled.
WIRE_SHARE_OF_TARIFF = 0.28
WIRE_FEE_CHARGED_FRACTION = 0.15


def degradation_factor(efficiency_loss_percent_per_year: float, year: int) -> float:
    return (1 - efficiency_loss_percent_per_year / 100.0) ** (year - 1)


def inflation_factor(tariff_inflation_percent: float, year: int) -> float:
    return (1 + tariff_inflation_percent / 100.0) ** (year - 1)


def _outstanding_installments(num_installments: int, year: int) -> int:
    return int(clamp(num_installments - (year - 1) * MONTHS_PER_YEAR, 0, MONTHS_PER_YEAR))


def _initial_row(upfront: float, base_tariff: float) -> CashFlowRow:
    investment = round2(-upfront)
    return CashFlowRow(
        year=0,
        generation_kwh=0.0,
        tariff_rate=float(base_tariff),
        gross_savings=0.0,
        wire_fee_cost=0.0,
        net_savings=0.0,
        extra_cost=0.0,
        investment=investment,
        cumulative_cash_flow=investment,
        financing_cost=0.0,
    )


def project_year(
    year: int,
    previous_cumulative: float,
    investment_price: float,
    assumptions: EconomicAssumptions,
    installment_amount: float,
    num_installments: int,
    base_generation_kwh: float,
    base_tariff: float,
) -> CashFlowRow:
    """Build the row for ``year`` (1-based) from the previous cumulative flow."""
    degradation = degradation_factor(assumptions.efficiency_loss_percent_per_year, year)
    inflation = inflation_factor(assumptions.tariff_inflation_percent, year)

    tariff = round2(base_tariff * inflation)
    generation = round2(base_generation_kwh * degradation)
    gross_savings = round2(generation * tariff)
    wire_fee = round2(generation * tariff * WIRE_SHARE_OF_TARIFF * WIRE_FEE_CHARGED_FRACTION)
    net_savings = round2(gross_savings - wire_fee)

    extra_cost = 0.0
    if assumptions.inverter_replacement_year is not None and year == assumptions.inverter_replacement_year:
        extra_cost = round2(investment_price * assumptions.inverter_replacement_cost_percent / 100.0)

    financing_cost = round2(installment_amount * _outstanding_installments(num_installments, year))
    investment = round2(-(extra_cost + financing_cost))
    cumulative = round2(previous_cumulative + net_savings + investment)

    return CashFlowRow(
        year=year,
        generation_kwh=generation,
        tariff_rate=tariff,
        gross_savings=gross_savings,
        wire_fee_cost=wire_fee,
        net_savings=net_savings,
        extra_cost=extra_cost,
        investment=investment,
        cumulative_cash_flow=cumulative,
        financing_cost=financing_cost,
    )


def project_cash_flow(
    investment_price: float,
    assumptions: EconomicAssumptions,
    installment_amount: float,
    num_installments: int,
    base_generation_kwh: float,
    base_tariff: float,
    down_payment: Optional[float] = None,
) -> List[CashFlowRow]:
    """
    Project the 26-row (year 0..25) cash-flow table.

    Parameters
    ----------
    investment_price:
        Proposal price; also the base of the inverter replacement cost.
    assumptions:
        Tariff inflation, efficiency loss and inverter replacement settings.
    installment_amount, num_installments:
        Pre-computed financing terms; pass ``0, 0`` for a cash purchase.
    base_generation_kwh:
        Year-1 generation (kWh/year).
    base_tariff:
        Year-1 tariff (R$/kWh).
    down_payment:
        Upfront amount when financed. Ignored without installments, where the
        full price is paid at year 0.
    """
    num_installments = max(0, int(num_installments or 0))
    if num_installments > 0:
        upfront = max(0.0, float(down_payment or 0.0))
    else:
        upfront = max(0.0, float(investment_price))

    rows: List[CashFlowRow] = [_initial_row(upfront, base_tariff)]

    for year in range(1, PROJECTION_YEARS + 1):
        row = project_year(
            year,
            rows[-1].cumulative_cash_flow,
            float(investment_price),
            assumptions,
            float(installment_amount),
            num_installments,
            float(base_generation_kwh),
            float(base_tariff),
        )
        logger.debug(
            "Year %d: gen=%.2f kWh tariff=%.2f net=%.2f invest=%.2f cum=%.2f",
            row.year,
            row.generation_kwh,
            row.tariff_rate,
            row.net_savings,
            row.investment,
            row.cumulative_cash_flow,
        )
        rows.append(row)

    return rows


# =============================================================================
# Schema registration
# =============================================================================


def _is_positive_number(value: object) -> bool:
    try:
        return float(value) > 0  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False


def _register_cashflow_fields() -> None:
    specs = [
        RequiredFieldSpec(
            module="cashflow",
            name="investment_price",
            paths=(
                ("proposal", "investment_price"),
                ("proposal", "price"),
                ("proposal", "valor_total"),
            ),
            required=True,
            severity="error",
            description="Proposal price (R$), strictly positive.",
            validator=_is_positive_number,
        ),
        RequiredFieldSpec(
            module="cashflow",
            name="base_tariff",
            paths=(
                ("tariff", "base_rate"),
                ("tariff", "rate_per_kwh"),
                ("tariff", "tarifa_energia"),
            ),
            required=True,
            severity="error",
            description="Year-1 energy tariff (R$/kWh), strictly positive.",
            validator=_is_positive_number,
        ),
        RequiredFieldSpec(
            module="cashflow",
            name="base_generation",
            paths=(
                ("generation", "annual_kwh"),
                ("generation", "kwp"),
                ("generation", "modules", "count"),
            ),
            required=True,
            severity="error",
            description="Annual generation (kWh), array kWp or module count.",
            validator=_is_positive_number,
        ),
        RequiredFieldSpec(
            module="cashflow",
            name="inverter_replacement_year",
            paths=(("assumptions", "inverter_replacement_year"),),
            required=False,
            severity="error",
            description="Projection year (1..25) of the inverter replacement.",
            validator=lambda v: v is None or 1 <= int(v) <= PROJECTION_YEARS,
        ),
    ]
    register_required_fields("cashflow", specs)


_register_cashflow_fields()


__all__ = [
    "PROJECTION_YEARS",
    "WIRE_SHARE_OF_TARIFF",
    "WIRE_FEE_CHARGED_FRACTION",
    "degradation_factor",
    "inflation_factor",
    "project_year",
    "project_cash_flow",
]
