"""Scenario-level contracts for proposal evaluations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from finance.contracts import (
    AllocationResult,
    CashFlowRow,
    ConsumptionUnit,
    EconomicAssumptions,
    FinancingOption,
    PaymentQuote,
    ReturnMetrics,
)


@dataclass
class CreditAllocationOutcome:
    """Rateio inputs as resolved from the config, with the allocator output."""

    mode: str
    generation_kwh_month: float
    allow_generator_credit: bool
    units: List[ConsumptionUnit]
    result: AllocationResult
    shares_complete: bool = True


@dataclass
class ProposalResult:
    """Complete evaluation of one proposal scenario."""

    scenario_name: str
    config_path: str
    validation_mode: str
    investment_price: float
    base_generation_kwh: float
    base_tariff: float
    assumptions: EconomicAssumptions
    financing: Optional[FinancingOption]
    installment_amount: float
    num_installments: int
    upfront_payment: float
    cash_flow: List[CashFlowRow]
    metrics: ReturnMetrics
    credit_allocation: Optional[CreditAllocationOutcome] = None
    payment_options: List[PaymentQuote] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)


__all__ = [
    "CreditAllocationOutcome",
    "ProposalResult",
]
