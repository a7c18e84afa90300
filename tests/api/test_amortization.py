"""Price-table installments and payment-option dispatch."""

import pytest

from finance.amortization import (
    compute_installment,
    financing_terms_for_option,
    installment_for_option,
    primary_option,
    quote_payment_options,
)
from finance.contracts import FinancingOption


def _price_table(base: float, rate: float, n: int) -> float:
    factor = (1 + rate) ** n
    return base * (rate * factor) / (factor - 1)


def test_installment_matches_price_table_formula():
    value = compute_installment(30000, 0, 1.5, 36)
    assert value == pytest.approx(_price_table(30000, 0.015, 36), rel=1e-12)
    assert 1080 < value < 1090


def test_down_payment_reduces_financed_base():
    value = compute_installment(30000, 10000, 1.5, 36)
    assert value == pytest.approx(_price_table(20000, 0.015, 36), rel=1e-12)


def test_zero_rate_divides_evenly():
    assert compute_installment(12000, 0, 0, 12) == pytest.approx(1000.0)


@pytest.mark.parametrize(
    "principal, down, term",
    [
        (30000, 30000, 36),  # fully paid upfront
        (30000, 40000, 36),  # down payment above principal
        (0, 0, 36),
        (30000, 0, 0),  # no term
        (30000, 0, -3),
    ],
)
def test_degenerate_inputs_return_zero(principal, down, term):
    assert compute_installment(principal, down, 1.5, term) == 0.0


def test_parcelado_ignores_interest():
    opt = FinancingOption(principal=12000, monthly_rate_percent=2.0, term_months=10, kind="parcelado")
    assert installment_for_option(opt) == pytest.approx(1200.0)


def test_financiamento_and_outro_use_price_table():
    for kind in ("financiamento", "outro"):
        opt = FinancingOption(principal=30000, monthly_rate_percent=1.5, term_months=36, kind=kind)
        assert installment_for_option(opt) == pytest.approx(compute_installment(30000, 0, 1.5, 36))


def test_terms_for_cash_purchase():
    opt = FinancingOption(principal=25000, kind="a_vista")
    assert financing_terms_for_option(opt) == (0.0, 0, 25000.0)


def test_terms_for_financed_purchase():
    opt = FinancingOption(
        principal=30000, down_payment=5000, monthly_rate_percent=1.5, term_months=48, grace_months=3
    )
    installment, n, upfront = financing_terms_for_option(opt)
    assert installment == pytest.approx(compute_installment(30000, 5000, 1.5, 48))
    assert n == 48
    assert upfront == 5000.0


def test_terms_when_nothing_is_financed():
    opt = FinancingOption(principal=30000, down_payment=30000, monthly_rate_percent=1.5, term_months=12)
    assert financing_terms_for_option(opt) == (0.0, 0, 30000.0)


def test_quotes_for_each_kind_side_by_side():
    options = [
        FinancingOption(principal=30000, kind="a_vista", term_months=1, name="cash"),
        FinancingOption(principal=30000, monthly_rate_percent=1.5, term_months=36, name="bank"),
        FinancingOption(principal=30000, down_payment=3000, term_months=10, kind="parcelado", name="card"),
    ]
    cash, bank, card = quote_payment_options(options)

    # the cash price is shown as a single installment of the full value
    assert cash.installment_amount == pytest.approx(30000.0)
    assert cash.num_installments == 0
    assert cash.upfront_payment == pytest.approx(30000.0)
    assert cash.total_paid == pytest.approx(30000.0)

    assert bank.installment_amount == pytest.approx(compute_installment(30000, 0, 1.5, 36))
    assert bank.num_installments == 36
    assert bank.total_paid == pytest.approx(36 * bank.installment_amount)
    assert bank.total_paid > 30000

    assert card.installment_amount == pytest.approx(2700.0)
    assert card.upfront_payment == pytest.approx(3000.0)
    assert card.total_paid == pytest.approx(30000.0)

    assert [q.option.name for q in (cash, bank, card)] == ["cash", "bank", "card"]


def test_primary_option_prefers_flagged_one():
    first = FinancingOption(principal=100, kind="a_vista")
    flagged = FinancingOption(principal=100, term_months=12, primary=True)
    assert primary_option([first, flagged]) is flagged
    assert primary_option([first]) is first
    assert primary_option([]) is None
