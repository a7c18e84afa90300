"""
Schema guard for proposal scenario configs.

Sits on top of analytics.config_schema and:
  * lazily imports the finance modules so their registration side-effects
    run; and
  * validates a raw config dict against the registered field specs.

Usage::

    from analytics.schema_guard import validate_config

    validate_config(
        raw_config=config,
        config_path="inputs/scenarios/residencial.yaml",
        modules=["cashflow", "amortization"],
    )
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from analytics.config_schema import RequiredFieldSpec, get_required_fields

logger = logging.getLogger(__name__)

PathSpec = Tuple[str, ...]


class ConfigValidationError(RuntimeError):
    """Raised when a scenario config is missing required fields or has invalid ones."""


# Logical module name -> import path
_MODULE_IMPORTS: Dict[str, str] = {
    "amortization": "finance.amortization",
    "cashflow": "finance.cashflow",
    "credits": "finance.credits",
}


def _ensure_module_registered(name: str) -> None:
    """Import the module behind ``name`` so its specs are registered; unknown names are a no-op."""
    module_path = _MODULE_IMPORTS.get(name)
    if not module_path:
        return
    importlib.import_module(module_path)


def _get_nested(container: Mapping[str, Any], path: PathSpec) -> Any:
    current: Any = container
    for seg in path:
        if not isinstance(current, Mapping) or seg not in current:
            return None
        current = current[seg]
    return current


def _first_resolved_value(raw_config: Mapping[str, Any], paths: Sequence[PathSpec]) -> Any:
    """Try each candidate path in order and return the first non-None value."""
    for path in paths:
        if not path:
            continue
        value = _get_nested(raw_config, path)
        if value is not None:
            return value
    return None


def _check_spec(raw_config: Mapping[str, Any], spec: RequiredFieldSpec) -> bool:
    val = _first_resolved_value(raw_config, spec.paths)

    if spec.required and val is None:
        return False

    if spec.validator is not None:
        try:
            return bool(spec.validator(val))
        except (TypeError, ValueError, OverflowError):
            return False

    return True


def collect_config_problems(
    raw_config: Mapping[str, Any],
    modules: Sequence[str],
) -> Tuple[List[str], List[str]]:
    """
    Check ``raw_config`` against every spec of ``modules``.

    Returns ``(errors, warnings)`` as human-readable labels, one per failing
    field, including the candidate paths that were tried.
    """
    for m in modules:
        _ensure_module_registered(m)

    errors: List[str] = []
    warnings: List[str] = []

    for m in modules:
        for spec in get_required_fields(m):
            if _check_spec(raw_config, spec):
                continue
            path_labels = [".".join(p) for p in spec.paths] or ["<no paths registered>"]
            label = f"{spec.module}.{spec.name} (paths: {', '.join(path_labels)})"
            if str(spec.severity).lower() == "error":
                errors.append(label)
            else:
                warnings.append(label)

    return sorted(errors), sorted(warnings)


def validate_config(
    raw_config: Dict[str, Any],
    config_path: str,
    modules: Sequence[str],
) -> None:
    """
    Validate a raw YAML/JSON scenario against the specs of ``modules``.

    Args:
        raw_config: The configuration dict loaded from YAML/JSON.
        config_path: Identifier used in messages (usually the file path).
        modules: Logical module names, e.g. ["cashflow", "credits"].

    Raises:
        ConfigValidationError: if any error-severity field is missing or invalid.
    """
    errors, warnings = collect_config_problems(raw_config, modules)

    for w in warnings:
        logger.warning("Config '%s': %s", config_path, w)

    if errors:
        details = "; ".join(errors)
        raise ConfigValidationError(
            f"Config '{config_path}' is missing or has invalid required fields: {details}"
        )


__all__ = [
    "ConfigValidationError",
    "collect_config_problems",
    "validate_config",
]
