"""Installment calculation for proposal payment options.

Price-table (constant installment) amortization plus the dispatch that maps a
payment option kind onto the terms the cash-flow projection needs.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

from analytics.config_schema import RequiredFieldSpec, register_required_fields
from finance.contracts import FINANCING_KINDS, FinancingOption, PaymentQuote

logger = logging.getLogger(__name__)


def _pmt(rate: float, nper: int, pv: float) -> float:
    """Calculate annuity payment (Excel PMT equivalent)."""
    if rate <= 0:
        return pv / nper if nper > 0 else 0.0
    factor = (1 + rate) ** nper
    return pv * (rate * factor) / (factor - 1)


def compute_installment(
    principal: float,
    down_payment: float,
    rate_percent: float,
    term_months: int,
) -> float:
    """
    Constant monthly installment that amortizes ``principal - down_payment``.

    Parameters
    ----------
    principal:
        Financed value (usually the proposal price).
    down_payment:
        Upfront amount subtracted from the principal.
    rate_percent:
        Monthly interest rate in percent (1.5 means 1.5 % a month).
    term_months:
        Number of installments.

    Returns
    -------
    float
        The installment; 0.0 when nothing is left to amortize or the term is
        not positive. A zero rate divides the base evenly.

    Notes
    -----
    Inputs are not validated; negative values are the caller's to clamp.
    """
    base = max(0.0, float(principal) - float(down_payment))
    n = int(term_months)
    if base <= 0 or n <= 0:
        return 0.0
    return _pmt(float(rate_percent) / 100.0, n, base)


def installment_for_option(option: FinancingOption) -> float:
    """Installment for a payment option, dispatching on ``option.kind``."""
    base = max(0.0, option.principal - option.down_payment)
    if base <= 0 or option.term_months <= 0:
        return 0.0
    if option.kind == "a_vista":
        return float(option.principal)
    if option.kind == "parcelado":
        return base / option.term_months
    return compute_installment(
        option.principal,
        option.down_payment,
        option.monthly_rate_percent,
        option.term_months,
    )


def financing_terms_for_option(option: FinancingOption) -> Tuple[float, int, float]:
    """
    Resolve ``(installment_amount, num_installments, upfront_payment)``.

    Cash purchases pay everything at signature and carry no installments.
    Every other kind pays the down payment upfront and ``term_months``
    installments afterwards.
    """
    if option.kind == "a_vista":
        return 0.0, 0, max(0.0, float(option.principal))

    installment = installment_for_option(option)
    if installment <= 0:
        # Nothing financed: the down payment covers the principal.
        return 0.0, 0, max(0.0, float(option.principal))

    if option.grace_months > 0:
        logger.debug(
            "Option %r has %d grace months; installments are not shifted",
            option.name,
            option.grace_months,
        )

    return installment, int(option.term_months), max(0.0, float(option.down_payment))


def quote_payment_option(option: FinancingOption) -> PaymentQuote:
    """Installment, count, upfront and total outlay of one payment option."""
    installment, num_installments, upfront = financing_terms_for_option(option)
    return PaymentQuote(
        option=option,
        installment_amount=installment_for_option(option),
        num_installments=num_installments,
        upfront_payment=upfront,
        total_paid=upfront + installment * num_installments,
    )


def quote_payment_options(options: Sequence[FinancingOption]) -> List[PaymentQuote]:
    """Quote every option of a proposal, in the order they are presented."""
    return [quote_payment_option(opt) for opt in options]


def primary_option(options: Sequence[FinancingOption]) -> Optional[FinancingOption]:
    """The option the projection runs on: first flagged ``primary``, else the first."""
    for opt in options:
        if opt.primary:
            return opt
    return options[0] if options else None


def _is_kind(value: Any) -> bool:
    return value is None or str(value) in FINANCING_KINDS


def _is_term(value: Any) -> bool:
    return value is None or (float(value) >= 0 and float(value) == int(float(value)))


def _is_rate(value: Any) -> bool:
    return value is None or float(value) >= 0


def _is_option_mapping(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and _is_kind(value.get("kind"))
        and _is_term(value.get("term_months"))
        and _is_rate(value.get("monthly_rate_pct"))
    )


def _is_option_list(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, list) and len(value) > 0 and all(_is_option_mapping(v) for v in value)


def _register_amortization_fields() -> None:
    """Register the optional financing block of a proposal scenario."""
    specs = [
        RequiredFieldSpec(
            module="amortization",
            name="financing_kind",
            paths=(("financing", "kind"),),
            required=False,
            severity="error",
            description="Payment option kind: a_vista, financiamento, parcelado or outro.",
            validator=_is_kind,
        ),
        RequiredFieldSpec(
            module="amortization",
            name="term_months",
            paths=(("financing", "term_months"),),
            required=False,
            severity="error",
            description="Number of monthly installments (non-negative integer).",
            validator=_is_term,
        ),
        RequiredFieldSpec(
            module="amortization",
            name="monthly_rate_pct",
            paths=(("financing", "monthly_rate_pct"),),
            required=False,
            severity="error",
            description="Monthly interest rate in percent.",
            validator=_is_rate,
        ),
        RequiredFieldSpec(
            module="amortization",
            name="payment_options",
            paths=(("payment_options",),),
            required=False,
            severity="error",
            description="Non-empty list of payment options with valid kind, term and rate.",
            validator=_is_option_list,
        ),
    ]
    register_required_fields("amortization", specs)


_register_amortization_fields()


__all__ = [
    "compute_installment",
    "installment_for_option",
    "financing_terms_for_option",
    "quote_payment_option",
    "quote_payment_options",
    "primary_option",
]
