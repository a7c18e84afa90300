"""Central scenario evaluator for solar proposals."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from analytics.contracts import CreditAllocationOutcome, ProposalResult
from analytics.scenario_loader import load_scenario_config
from analytics.schema_guard import (
    ConfigValidationError,
    collect_config_problems,
    validate_config,
)
from finance.amortization import financing_terms_for_option, primary_option, quote_payment_options
from finance.cashflow import project_cash_flow
from finance.contracts import ConsumptionUnit, EconomicAssumptions, FinancingOption
from finance.credits import allocate_credits, shares_are_complete, shares_total, suggest_shares
from finance.generation import (
    estimate_annual_generation_kwh,
    kwp_from_modules,
    monthly_generation_kwh,
)
from finance.returns import compute_return_metrics
from finance.utils import as_bool, as_float, as_int, get_nested

logger = logging.getLogger(__name__)

VALIDATION_MODES = ("strict", "relaxed")
DEFAULT_SPECIFIC_YIELD_KWH_PER_KWP_MONTH = 120.0


def _first(cfg: Dict[str, Any], *paths: List[str]) -> Any:
    for path in paths:
        val = get_nested(cfg, path, None)
        if val is not None:
            return val
    return None


# -----------------------------------------------------------------------------
# Config readers
# -----------------------------------------------------------------------------


def resolve_investment_price(cfg: Dict[str, Any]) -> float:
    raw = _first(
        cfg,
        ["proposal", "investment_price"],
        ["proposal", "price"],
        ["proposal", "valor_total"],
    )
    return max(0.0, as_float(raw, 0.0) or 0.0)


def resolve_base_tariff(cfg: Dict[str, Any]) -> float:
    raw = _first(
        cfg,
        ["tariff", "base_rate"],
        ["tariff", "rate_per_kwh"],
        ["tariff", "tarifa_energia"],
    )
    return max(0.0, as_float(raw, 0.0) or 0.0)


def resolve_base_generation(cfg: Dict[str, Any]) -> float:
    """
    Year-1 generation (kWh/year).

    Order: generation.annual_kwh, then generation.kwp (or module count x
    module power) times the monthly specific yield.
    """
    gen = cfg.get("generation") or {}

    annual = as_float(gen.get("annual_kwh"))
    if annual is not None:
        return max(0.0, annual)

    kwp = as_float(gen.get("kwp"))
    if kwp is None:
        modules = gen.get("modules") or {}
        kwp = kwp_from_modules(
            as_int(modules.get("count"), 0) or 0,
            as_float(modules.get("power_w"), 0.0) or 0.0,
        )

    specific_yield = as_float(gen.get("specific_yield_kwh_per_kwp_month"))
    if specific_yield is None:
        logger.warning(
            "generation.specific_yield_kwh_per_kwp_month missing; using %.1f",
            DEFAULT_SPECIFIC_YIELD_KWH_PER_KWP_MONTH,
        )
        specific_yield = DEFAULT_SPECIFIC_YIELD_KWH_PER_KWP_MONTH

    return estimate_annual_generation_kwh(kwp, specific_yield)


def resolve_assumptions(cfg: Dict[str, Any]) -> EconomicAssumptions:
    """Economic assumptions with module defaults for absent keys."""
    section = cfg.get("assumptions") or {}
    defaults = EconomicAssumptions()

    replacement_year = section.get("inverter_replacement_year", defaults.inverter_replacement_year)
    assumptions = EconomicAssumptions(
        tariff_inflation_percent=as_float(
            section.get("tariff_inflation_pct"), defaults.tariff_inflation_percent
        ),
        efficiency_loss_percent_per_year=as_float(
            section.get("efficiency_loss_pct_per_year"), defaults.efficiency_loss_percent_per_year
        ),
        discount_rate_percent=as_float(
            section.get("discount_rate_pct"), defaults.discount_rate_percent
        ),
        inverter_replacement_year=as_int(replacement_year),
        inverter_replacement_cost_percent=as_float(
            section.get("inverter_replacement_cost_pct"), defaults.inverter_replacement_cost_percent
        ),
    )

    missing = sorted(
        k
        for k in (
            "tariff_inflation_pct",
            "efficiency_loss_pct_per_year",
            "discount_rate_pct",
            "inverter_replacement_year",
            "inverter_replacement_cost_pct",
        )
        if k not in section
    )
    if missing:
        logger.debug("Assumptions defaulted: %s", ", ".join(missing))

    return assumptions


def _build_option(section: Dict[str, Any], investment_price: float) -> FinancingOption:
    return FinancingOption(
        principal=as_float(section.get("principal"), investment_price) or 0.0,
        down_payment=as_float(section.get("down_payment"), 0.0) or 0.0,
        monthly_rate_percent=as_float(section.get("monthly_rate_pct"), 0.0) or 0.0,
        term_months=as_int(section.get("term_months"), 0) or 0,
        grace_months=as_int(section.get("grace_months"), 0) or 0,
        kind=str(section.get("kind") or "financiamento"),
        name=str(section.get("name") or ""),
        primary=bool(as_bool(section.get("primary"), False)),
    )


def resolve_payment_options(cfg: Dict[str, Any], investment_price: float) -> List[FinancingOption]:
    """
    Every payment option offered with the proposal, in presentation order.

    ``payment_options`` (a list) wins over the single ``financing`` mapping.
    An empty result means a plain cash purchase at the proposal price.
    """
    raw = cfg.get("payment_options")
    if isinstance(raw, list):
        return [_build_option(item, investment_price) for item in raw if isinstance(item, dict)]

    section = cfg.get("financing")
    if isinstance(section, dict) and section:
        return [_build_option(section, investment_price)]
    return []


def resolve_financing(cfg: Dict[str, Any], investment_price: float) -> Optional[FinancingOption]:
    """Payment option the projection runs on; None means a cash purchase."""
    return primary_option(resolve_payment_options(cfg, investment_price))


def _build_units(raw_units: List[Dict[str, Any]], shares: List[float]) -> List[ConsumptionUnit]:
    units: List[ConsumptionUnit] = []
    for idx, (raw, share) in enumerate(zip(raw_units, shares)):
        units.append(
            ConsumptionUnit(
                cap_kwh=max(0.0, as_float(raw.get("cap_kwh"), 0.0) or 0.0),
                is_generator=bool(raw.get("is_generator", False)),
                requested_share_percent=float(share),
                name=str(raw.get("name") or f"UC{idx + 1}"),
            )
        )
    return units


def resolve_credit_allocation(
    cfg: Dict[str, Any],
    annual_generation_kwh: float,
    config_path: str,
    validation_mode: str = "strict",
) -> Optional[CreditAllocationOutcome]:
    """
    Run the rateio described by ``credit_allocation``, if any.

    ``proportional`` mode derives the shares from each unit's cap (its
    monthly consumption); ``manual`` uses ``share_pct`` as given and, like
    the rateio editor, refuses shares that do not total 100 in strict mode.
    """
    section = cfg.get("credit_allocation")
    if not section:
        return None

    units_value = section.get("units")
    if not isinstance(units_value, list):
        units_value = []
    raw_units = [u for u in units_value if isinstance(u, dict)]
    mode = str(section.get("mode") or "proportional")
    allow_generator_credit = bool(as_bool(section.get("allow_generator_credit"), True))

    if mode == "manual":
        shares = [as_float(u.get("share_pct"), 0.0) or 0.0 for u in raw_units]
    else:
        shares = [float(s) for s in suggest_shares([as_float(u.get("cap_kwh"), 0.0) or 0.0 for u in raw_units])]

    complete = shares_are_complete(shares)
    if not complete:
        msg = (
            f"Config '{config_path}': rateio shares total {shares_total(shares):.2f}%, "
            "expected 100%"
        )
        if validation_mode == "strict":
            raise ConfigValidationError(msg)
        logger.warning(msg)

    generation = as_float(section.get("generation_kwh_month"))
    if generation is None:
        generation = monthly_generation_kwh(annual_generation_kwh)

    units = _build_units(raw_units, shares)
    result = allocate_credits(generation, units, allow_generator_credit)

    return CreditAllocationOutcome(
        mode=mode,
        generation_kwh_month=generation,
        allow_generator_credit=allow_generator_credit,
        units=units,
        result=result,
        shares_complete=complete,
    )


# -----------------------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------------------


def _modules_for(config: Dict[str, Any]) -> List[str]:
    modules = ["cashflow", "amortization"]
    if config.get("credit_allocation"):
        modules.append("credits")
    return modules


def evaluate_config(
    config: Dict[str, Any],
    config_path: str = "<in-memory>",
    scenario_name: Optional[str] = None,
    validation_mode: str = "strict",
) -> ProposalResult:
    """Evaluate an already-loaded scenario mapping.

    Parameters
    ----------
    config : Dict[str, Any]
        Scenario mapping (as produced by ``load_scenario_config``).
    config_path : str
        Identifier used in log and error messages.
    scenario_name : Optional[str]
        Override scenario name (default: ``scenario_name`` key or path stem).
    validation_mode : str
        "strict" raises ConfigValidationError on schema problems and
        incomplete manual rateio shares; "relaxed" logs them and carries on.
    """
    if validation_mode not in VALIDATION_MODES:
        raise ValueError(f"validation_mode must be one of {VALIDATION_MODES}, got {validation_mode!r}")

    modules = _modules_for(config)
    if validation_mode == "strict":
        validate_config(config, config_path=config_path, modules=modules)
    else:
        errors, warnings = collect_config_problems(config, modules)
        for problem in errors + warnings:
            logger.warning("Config '%s' (relaxed): %s", config_path, problem)

    price = resolve_investment_price(config)
    base_generation = resolve_base_generation(config)
    base_tariff = resolve_base_tariff(config)
    assumptions = resolve_assumptions(config)
    options = resolve_payment_options(config, price)
    financing = primary_option(options)
    quotes = quote_payment_options(options)

    if financing is None:
        installment, num_installments, upfront = 0.0, 0, price
    else:
        installment, num_installments, upfront = financing_terms_for_option(financing)

    rows = project_cash_flow(
        price,
        assumptions,
        installment,
        num_installments,
        base_generation,
        base_tariff,
        down_payment=upfront,
    )
    metrics = compute_return_metrics(rows, price, assumptions.discount_rate_percent)

    allocation = resolve_credit_allocation(config, base_generation, config_path, validation_mode)

    if scenario_name is None:
        scenario_name = str(config.get("scenario_name") or Path(config_path).stem)

    logger.info(
        "Scenario '%s': price=%.2f payback=%dy%dm IRR=%.2f%% NPV=%.2f",
        scenario_name,
        price,
        metrics.payback_years,
        metrics.payback_months,
        metrics.irr_percent,
        metrics.npv,
    )

    return ProposalResult(
        scenario_name=scenario_name,
        config_path=str(config_path),
        validation_mode=validation_mode,
        investment_price=price,
        base_generation_kwh=base_generation,
        base_tariff=base_tariff,
        assumptions=assumptions,
        financing=financing,
        installment_amount=installment,
        num_installments=num_installments,
        upfront_payment=upfront,
        cash_flow=rows,
        metrics=metrics,
        credit_allocation=allocation,
        payment_options=quotes,
        config=config,
    )


def evaluate_scenario(
    config_path: str,
    scenario_name: Optional[str] = None,
    validation_mode: str = "strict",
) -> ProposalResult:
    """Load a YAML/JSON scenario from disk and evaluate it."""
    path_obj = Path(config_path)
    if not path_obj.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    logger.info("Loading scenario: %s", config_path)
    config = load_scenario_config(path_obj)
    return evaluate_config(
        config,
        config_path=str(config_path),
        scenario_name=scenario_name,
        validation_mode=validation_mode,
    )


def result_as_dict(result: ProposalResult) -> Dict[str, Any]:
    """Flatten a ProposalResult into JSON-friendly primitives."""
    m = result.metrics
    out: Dict[str, Any] = {
        "scenario_name": result.scenario_name,
        "config_path": result.config_path,
        "validation_mode": result.validation_mode,
        "investment_price": result.investment_price,
        "base_generation_kwh": result.base_generation_kwh,
        "base_tariff": result.base_tariff,
        "installment_amount": result.installment_amount,
        "num_installments": result.num_installments,
        "upfront_payment": result.upfront_payment,
        "payback_years": m.payback_years,
        "payback_months": m.payback_months,
        "payback_total_months": m.payback_total_months,
        "irr_percent": m.irr_percent,
        "npv": m.npv,
        "roi_percent": m.roi_percent,
        "total_net_savings": m.total_net_savings,
        "discount_rate_percent": result.assumptions.discount_rate_percent,
        "cash_flow": [row.as_dict() for row in result.cash_flow],
    }

    if result.financing is not None:
        out["financing"] = {
            "kind": result.financing.kind,
            "name": result.financing.name,
            "principal": result.financing.principal,
            "down_payment": result.financing.down_payment,
            "monthly_rate_percent": result.financing.monthly_rate_percent,
            "term_months": result.financing.term_months,
            "grace_months": result.financing.grace_months,
        }

    out["payment_options"] = [
        {
            "name": q.option.name,
            "kind": q.option.kind,
            "primary": q.option is result.financing,
            "principal": q.option.principal,
            "down_payment": q.option.down_payment,
            "monthly_rate_percent": q.option.monthly_rate_percent,
            "term_months": q.option.term_months,
            "installment_amount": q.installment_amount,
            "num_installments": q.num_installments,
            "upfront_payment": q.upfront_payment,
            "total_paid": q.total_paid,
        }
        for q in result.payment_options
    ]

    alloc = result.credit_allocation
    if alloc is not None:
        out["credit_allocation"] = {
            "mode": alloc.mode,
            "generation_kwh_month": alloc.generation_kwh_month,
            "allow_generator_credit": alloc.allow_generator_credit,
            "shares_complete": alloc.shares_complete,
            "unallocated_kwh": alloc.result.unallocated_kwh,
            "iterations": alloc.result.iterations,
            "units": [
                {
                    "name": unit.name,
                    "cap_kwh": unit.cap_kwh,
                    "is_generator": unit.is_generator,
                    "requested_share_percent": unit.requested_share_percent,
                    "allocated_kwh": allocated,
                    "effective_percent": pct,
                }
                for unit, allocated, pct in zip(
                    alloc.units, alloc.result.allocated_kwh, alloc.result.effective_percent
                )
            ],
        }

    return out


def evaluate_scenario_as_dict(
    config_path: str,
    validation_mode: str = "strict",
) -> Dict[str, Any]:
    """Evaluate a scenario file and return the flat dict form."""
    return result_as_dict(evaluate_scenario(config_path=config_path, validation_mode=validation_mode))


__all__ = [
    "VALIDATION_MODES",
    "resolve_investment_price",
    "resolve_base_tariff",
    "resolve_base_generation",
    "resolve_assumptions",
    "resolve_payment_options",
    "resolve_financing",
    "resolve_credit_allocation",
    "evaluate_config",
    "evaluate_scenario",
    "result_as_dict",
    "evaluate_scenario_as_dict",
]
