"""
Required-field registry for proposal scenario configs.

Each finance module declares the config fields it reads at import time;
the schema guard later checks a raw scenario against those declarations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

ValidatorFn = Callable[[Any], bool]
PathSpec = Tuple[str, ...]

SCHEMA_COLUMNS = [
    "module",
    "name",
    "path_candidates",
    "required",
    "severity",
    "description",
]


@dataclass(frozen=True)
class RequiredFieldSpec:
    """
    Canonical description of a scenario field needed by a module.

    Attributes
    ----------
    module:
        Logical owner ("cashflow", "credits", "amortization").
    name:
        Logical key ("investment_price", "units", ...).
    paths:
        Candidate config paths tried in order, e.g.
        ("proposal", "investment_price").
    required:
        True = must be present for the scenario to evaluate.
    severity:
        "error" or "warning"; only errors block evaluation.
    description:
        Human-friendly explanation used in error messages and schema dumps.
    validator:
        Optional predicate returning True when the resolved value is valid.
        It also runs for optional fields, so it must accept None.
    """

    module: str
    name: str
    paths: Sequence[PathSpec]
    required: bool = True
    severity: str = "error"
    description: str = ""
    validator: Optional[ValidatorFn] = field(default=None)


_REGISTRY: Dict[str, List[RequiredFieldSpec]] = {}


def register_required_fields(
    module: str,
    specs: Iterable[RequiredFieldSpec],
) -> None:
    """
    Register field specs for a module.

    Re-registering a spec with the same (module, name) replaces the earlier
    one, so reloading a module does not duplicate its checks.
    """
    current = _REGISTRY.setdefault(module, [])
    for spec in specs:
        current[:] = [s for s in current if s.name != spec.name]
        current.append(spec)


def get_required_fields(module: Optional[str] = None) -> List[RequiredFieldSpec]:
    """Return registered specs, optionally filtered by module name."""
    if module is None:
        out: List[RequiredFieldSpec] = []
        for specs in _REGISTRY.values():
            out.extend(specs)
        return out
    return list(_REGISTRY.get(module, []))


def build_schema_dataframe() -> pd.DataFrame:
    """
    Flatten the registry into a DataFrame for inspection.

    One row per spec with the columns in ``SCHEMA_COLUMNS``; path candidates
    are rendered dot-joined ("proposal.investment_price").
    """
    rows: List[Dict[str, Any]] = []

    for spec in get_required_fields():
        rows.append(
            {
                "module": spec.module,
                "name": spec.name,
                "path_candidates": [".".join(p) for p in spec.paths],
                "required": spec.required,
                "severity": spec.severity,
                "description": spec.description,
            }
        )

    if not rows:
        return pd.DataFrame(columns=SCHEMA_COLUMNS)

    df = pd.DataFrame(rows, columns=SCHEMA_COLUMNS)
    return df.sort_values(["module", "name"]).reset_index(drop=True)


__all__ = [
    "RequiredFieldSpec",
    "register_required_fields",
    "get_required_fields",
    "build_schema_dataframe",
    "SCHEMA_COLUMNS",
    "ValidatorFn",
    "PathSpec",
]
