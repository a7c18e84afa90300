"""Generation estimate from catalog power ratings.

Only the module power rating feeds the estimate; irradiation and losses are
folded into a single specific yield (kWh per kWp per month) supplied by the
tariff/premise configuration.
"""

from __future__ import annotations

MONTHS_PER_YEAR = 12


def kwp_from_modules(module_count: int, module_power_w: float) -> float:
    """Array nameplate (kWp) from module count and unit power (W)."""
    count = max(0, int(module_count or 0))
    power = max(0.0, float(module_power_w or 0.0))
    return count * power / 1000.0


def estimate_annual_generation_kwh(kwp: float, specific_yield_kwh_per_kwp_month: float) -> float:
    """kWp × monthly specific yield × 12; 0.0 for non-positive inputs."""
    kwp = float(kwp or 0.0)
    specific_yield = float(specific_yield_kwh_per_kwp_month or 0.0)
    if kwp <= 0 or specific_yield <= 0:
        return 0.0
    return kwp * specific_yield * MONTHS_PER_YEAR


def monthly_generation_kwh(annual_kwh: float) -> float:
    return max(0.0, float(annual_kwh or 0.0)) / MONTHS_PER_YEAR


__all__ = [
    "kwp_from_modules",
    "estimate_annual_generation_kwh",
    "monthly_generation_kwh",
]
