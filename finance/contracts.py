"""Core contracts for the proposal financial engine.

Every record here is immutable: allocation results and cash-flow rows are
recomputed from scratch whenever an input changes, never patched in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


# =============================================================================
# Credit allocation (rateio)
# =============================================================================


@dataclass(frozen=True)
class ConsumptionUnit:
    """A consumption account (UC) that can receive net-metering credits.

    Attributes
    ----------
    cap_kwh:
        Monthly consumption ceiling; the unit never receives more than this.
    is_generator:
        True for the UC where the array injects its energy.
    requested_share_percent:
        Requested slice of the generation pool, 0–100.
    """

    cap_kwh: float
    is_generator: bool = False
    requested_share_percent: float = 0.0
    name: str = ""


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of one credit distribution run."""

    allocated_kwh: Tuple[float, ...]
    effective_percent: Tuple[int, ...]
    unallocated_kwh: float
    iterations: int = 0

    @property
    def total_allocated_kwh(self) -> float:
        return sum(self.allocated_kwh)


# =============================================================================
# Financing and economics
# =============================================================================


FINANCING_KINDS = ("a_vista", "financiamento", "parcelado", "outro")


@dataclass(frozen=True)
class FinancingOption:
    """A payment plan offered with the proposal.

    ``kind`` follows the proposal payment step: ``a_vista`` (cash),
    ``financiamento`` (bank financing, price table), ``parcelado``
    (interest-free installments) or ``outro``.
    """

    principal: float
    down_payment: float = 0.0
    monthly_rate_percent: float = 0.0
    term_months: int = 0
    grace_months: int = 0
    kind: str = "financiamento"
    name: str = ""
    primary: bool = False


@dataclass(frozen=True)
class PaymentQuote:
    """One payment option as presented in the proposal, next to the others."""

    option: FinancingOption
    installment_amount: float
    num_installments: int
    upfront_payment: float
    total_paid: float


@dataclass(frozen=True)
class EconomicAssumptions:
    tariff_inflation_percent: float = 6.5
    efficiency_loss_percent_per_year: float = 0.5
    discount_rate_percent: float = 10.0
    inverter_replacement_year: Optional[int] = 12
    inverter_replacement_cost_percent: float = 15.0


# =============================================================================
# Projection outputs
# =============================================================================


@dataclass(frozen=True)
class CashFlowRow:
    year: int
    generation_kwh: float
    tariff_rate: float
    gross_savings: float
    wire_fee_cost: float
    net_savings: float
    extra_cost: float
    investment: float
    cumulative_cash_flow: float
    financing_cost: float = 0.0

    @property
    def net_flow(self) -> float:
        """Cash movement of the year: savings net of wire fee plus outflows."""
        return self.net_savings + self.investment

    def as_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "generation_kwh": self.generation_kwh,
            "tariff_rate": self.tariff_rate,
            "gross_savings": self.gross_savings,
            "wire_fee_cost": self.wire_fee_cost,
            "net_savings": self.net_savings,
            "extra_cost": self.extra_cost,
            "financing_cost": self.financing_cost,
            "investment": self.investment,
            "cumulative_cash_flow": self.cumulative_cash_flow,
        }


@dataclass(frozen=True)
class ReturnMetrics:
    """Investment-return summary derived from a 26-row projection."""

    payback_years: int
    payback_months: int
    irr_percent: float
    npv: float
    payback_total_months: int = 0
    total_net_savings: float = 0.0
    roi_percent: float = 0.0


__all__ = [
    "ConsumptionUnit",
    "AllocationResult",
    "FINANCING_KINDS",
    "FinancingOption",
    "PaymentQuote",
    "EconomicAssumptions",
    "CashFlowRow",
    "ReturnMetrics",
]
