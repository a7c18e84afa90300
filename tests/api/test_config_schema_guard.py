"""
Unit tests for analytics.config_schema + analytics.schema_guard.

These tests prove that

- the finance modules register their required fields into the global
  registry on import; and
- validate_config() catches missing or invalid fields with a clear error.
"""

from __future__ import annotations

import copy

import pytest

# Import cashflow to trigger its module-level schema registration
from finance import cashflow as cashflow_mod  # noqa: F401

from analytics.config_schema import (
    RequiredFieldSpec,
    build_schema_dataframe,
    get_required_fields,
    register_required_fields,
)
from analytics.schema_guard import (
    ConfigValidationError,
    collect_config_problems,
    validate_config,
)


def test_cashflow_fields_are_registered():
    specs = get_required_fields("cashflow")
    assert specs, "Expected at least one registered spec for cashflow"

    names = {s.name for s in specs}
    assert {"investment_price", "base_tariff", "base_generation"} <= names

    df = build_schema_dataframe()
    assert not df.empty
    assert {"module", "name", "path_candidates"}.issubset(df.columns)
    assert (df["module"] == "cashflow").any()


def test_reregistering_replaces_spec():
    spec = RequiredFieldSpec(module="unit_test", name="x", paths=(("a",),))
    register_required_fields("unit_test", [spec])
    register_required_fields("unit_test", [spec])
    assert len(get_required_fields("unit_test")) == 1


def test_good_config_passes(minimal_config):
    validate_config(minimal_config, config_path="good.yaml", modules=["cashflow", "amortization"])


def test_missing_tariff_is_reported(minimal_config):
    bad_cfg = copy.deepcopy(minimal_config)
    bad_cfg.pop("tariff")

    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(bad_cfg, config_path="bad.yaml", modules=["cashflow"])

    msg = str(excinfo.value)
    assert "base_tariff" in msg
    assert "tariff.base_rate" in msg
    assert "bad.yaml" in msg


def test_alternative_paths_are_accepted(minimal_config):
    cfg = copy.deepcopy(minimal_config)
    cfg["proposal"] = {"valor_total": 25000}
    cfg["tariff"] = {"tarifa_energia": 0.95}
    cfg["generation"] = {"modules": {"count": 10, "power_w": 550}}
    validate_config(cfg, config_path="aliases.yaml", modules=["cashflow"])


def test_non_positive_price_is_invalid(minimal_config):
    cfg = copy.deepcopy(minimal_config)
    cfg["proposal"]["investment_price"] = 0
    errors, _ = collect_config_problems(cfg, ["cashflow"])
    assert any("investment_price" in e for e in errors)


def test_financing_kind_is_checked(minimal_config):
    cfg = copy.deepcopy(minimal_config)
    cfg["financing"] = {"kind": "leasing", "term_months": 12.5, "monthly_rate_pct": -1}
    errors, _ = collect_config_problems(cfg, ["amortization"])
    names = " ".join(errors)
    assert "financing_kind" in names
    assert "term_months" in names
    assert "monthly_rate_pct" in names


def test_credit_units_must_be_a_non_empty_list(minimal_config):
    cfg = copy.deepcopy(minimal_config)
    cfg["credit_allocation"] = {"mode": "sorteio", "units": []}
    errors, _ = collect_config_problems(cfg, ["credits"])
    assert any("credits.units" in e for e in errors)
    assert any("allocation_mode" in e for e in errors)


def test_unknown_module_name_is_ignored(minimal_config):
    assert collect_config_problems(minimal_config, ["does_not_exist"]) == ([], [])


def test_infinite_term_is_reported_not_raised(minimal_config):
    cfg = copy.deepcopy(minimal_config)
    cfg["financing"] = {"term_months": float("inf")}
    errors, _ = collect_config_problems(cfg, ["amortization"])
    assert any("term_months" in e for e in errors)

    with pytest.raises(ConfigValidationError, match="term_months"):
        validate_config(cfg, config_path="inf.yaml", modules=["amortization"])


def test_payment_options_are_checked_per_item(minimal_config):
    cfg = copy.deepcopy(minimal_config)
    cfg["payment_options"] = [{"kind": "a_vista"}, {"kind": "boleto", "term_months": 12}]
    errors, _ = collect_config_problems(cfg, ["amortization"])
    assert any("payment_options" in e for e in errors)

    cfg["payment_options"] = [{"kind": "a_vista"}, {"kind": "parcelado", "term_months": 12}]
    assert collect_config_problems(cfg, ["amortization"]) == ([], [])


def test_generator_credit_flag_must_be_boolean_like(minimal_config):
    cfg = copy.deepcopy(minimal_config)
    cfg["credit_allocation"] = {
        "units": [{"cap_kwh": 100}],
        "allow_generator_credit": "false",
    }
    assert collect_config_problems(cfg, ["credits"]) == ([], [])

    cfg["credit_allocation"]["allow_generator_credit"] = "maybe"
    errors, _ = collect_config_problems(cfg, ["credits"])
    assert any("allow_generator_credit" in e for e in errors)
