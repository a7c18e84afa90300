"""Shared pytest setup: make the repo root importable and expose scenario paths."""

from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

SCENARIO_DIR = REPO_ROOT / "inputs" / "scenarios"


@pytest.fixture
def financed_scenario_path() -> Path:
    return SCENARIO_DIR / "residencial_financiado.yaml"


@pytest.fixture
def cash_scenario_path() -> Path:
    return SCENARIO_DIR / "comercial_a_vista.json"


@pytest.fixture
def minimal_config() -> dict:
    """Smallest config the strict validator accepts."""
    return {
        "scenario_name": "minimal",
        "proposal": {"investment_price": 30000.0},
        "generation": {"annual_kwh": 6000.0},
        "tariff": {"base_rate": 1.10},
    }
