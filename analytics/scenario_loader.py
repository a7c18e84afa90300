"""
Scenario configuration loader for proposal evaluations.

Responsibilities:
- Load YAML / JSON scenario files.
- Perform light structural checks only (top-level mapping, known sections
  are mappings when present).
- Field-level rules live with the finance modules and the schema guard.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

MAPPING_SECTIONS = (
    "proposal",
    "generation",
    "tariff",
    "assumptions",
    "financing",
    "credit_allocation",
)

LIST_SECTIONS = ("payment_options",)


class ScenarioConfigError(ValueError):
    """Configuration-level error for scenario loading."""


def _load_raw_config(path: Path) -> Dict[str, Any]:
    """Load a raw scenario from YAML or JSON; only the top-level shape is checked."""
    if not path.exists():
        raise FileNotFoundError(f"Scenario config not found: {path}")

    suffix = path.suffix.lower()
    with path.open("r", encoding="utf-8") as f:
        if suffix in (".yml", ".yaml"):
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ScenarioConfigError(f"Invalid YAML in {path}: {exc}") from exc
        elif suffix == ".json":
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ScenarioConfigError(f"Invalid JSON in {path}: {exc}") from exc
        else:
            raise ScenarioConfigError(
                f"Unsupported scenario config extension '{suffix}' for {path}"
            )

    if data is None:
        raise ScenarioConfigError(f"Empty configuration in file: {path}")

    if not isinstance(data, dict):
        raise ScenarioConfigError(
            f"Expected a mapping at top level of {path}, "
            f"got {type(data).__name__}"
        )

    return data


def _check_sections(cfg: Dict[str, Any], path: Path) -> None:
    for section in MAPPING_SECTIONS:
        value = cfg.get(section)
        if value is not None and not isinstance(value, dict):
            raise ScenarioConfigError(
                f"Section '{section}' in {path} must be a mapping, "
                f"got {type(value).__name__}"
            )
    for section in LIST_SECTIONS:
        value = cfg.get(section)
        if value is not None and not isinstance(value, list):
            raise ScenarioConfigError(
                f"Section '{section}' in {path} must be a list, "
                f"got {type(value).__name__}"
            )


def _ensure_meta_source(cfg: Dict[str, Any], path: Path) -> None:
    """Attach a 'meta.source_path' breadcrumb, if not already present."""
    meta = cfg.setdefault("meta", {})
    meta.setdefault("source_path", str(path))


def load_scenario_config(path: str | Path) -> Dict[str, Any]:
    """
    Load and lightly normalise a scenario configuration.

    - Loads YAML/JSON and ensures a top-level mapping.
    - Rejects known sections that are not mappings (or lists, for payment_options).
    - Attaches meta.source_path for traceability.
    """
    p = Path(path)
    cfg = _load_raw_config(p)
    _check_sections(cfg, p)
    _ensure_meta_source(cfg, p)
    logger.debug("Loaded scenario config %s (sections: %s)", p, sorted(cfg))
    return cfg


__all__ = [
    "ScenarioConfigError",
    "load_scenario_config",
]
