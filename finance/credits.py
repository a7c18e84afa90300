"""Net-metering credit distribution (rateio de créditos).

Distributes a monthly generation pool across consumption units (UCs) in
proportion to their shares, never exceeding a unit's monthly consumption.
When a proportional slice overshoots a unit's cap, the unit is filled, locked,
and the excess is redistributed among the remaining units on the next pass.

Each pass is a pure step from one immutable ``_AllocationState`` to the next;
``allocate_credits`` folds those steps until the pool is exhausted, every
unlocked share is zero, or the pass limit is hit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from analytics.config_schema import RequiredFieldSpec, register_required_fields
from finance.contracts import AllocationResult, ConsumptionUnit
from finance.utils import as_bool, round_half_up

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 10
POOL_EPSILON_KWH = 0.01


@dataclass(frozen=True)
class _AllocationState:
    allocated: Tuple[float, ...]
    locked: Tuple[bool, ...]
    pool: float


# ============================================================================
# Share preparation
# ============================================================================


def _find_generator(units: Sequence[ConsumptionUnit]) -> Optional[int]:
    for idx, unit in enumerate(units):
        if unit.is_generator:
            return idx
    return None


def effective_shares(
    units: Sequence[ConsumptionUnit],
    allow_generator_credit: bool = True,
    generator_index: Optional[int] = None,
) -> List[float]:
    """
    Shares actually used by the allocator.

    With ``allow_generator_credit`` off, the generator's share is zeroed and
    the others are rescaled to total 100. If the others total 0 they stay 0.
    """
    shares = [max(0.0, float(u.requested_share_percent)) for u in units]
    if allow_generator_credit:
        return shares

    gen_idx = generator_index if generator_index is not None else _find_generator(units)
    if gen_idx is None or not 0 <= gen_idx < len(shares):
        return shares

    shares[gen_idx] = 0.0
    others = sum(shares)
    if others > 0:
        shares = [s / others * 100.0 for s in shares]
    return shares


# ============================================================================
# Redistribution passes
# ============================================================================


def _allocation_step(
    state: _AllocationState,
    shares: Sequence[float],
    caps: Sequence[float],
) -> Optional[_AllocationState]:
    """Run one proportional pass; None when no unlocked unit has a share."""
    active_sum = sum(s for s, locked in zip(shares, state.locked) if not locked)
    if active_sum <= 0:
        return None

    allocated = list(state.allocated)
    locked = list(state.locked)
    carry = 0.0

    for i, share in enumerate(shares):
        if locked[i]:
            continue
        tentative = share / active_sum * state.pool
        remaining = max(0.0, caps[i] - allocated[i])
        if tentative <= remaining:
            allocated[i] += tentative
        else:
            allocated[i] += remaining
            locked[i] = True
            carry += tentative - remaining

    return _AllocationState(tuple(allocated), tuple(locked), carry)


def allocate_credits(
    generation_total: float,
    units: Sequence[ConsumptionUnit],
    allow_generator_credit: bool = True,
    generator_index: Optional[int] = None,
) -> AllocationResult:
    """
    Distribute ``generation_total`` kWh/month across ``units``.

    Parameters
    ----------
    generation_total:
        Monthly generation available for compensation.
    units:
        Ordered consumption units with caps and requested shares. Shares are
        used as given, even when they do not total 100.
    allow_generator_credit:
        When False the generator unit receives nothing and the other shares
        are rescaled to 100.
    generator_index:
        Explicit generator position; defaults to the first unit flagged
        ``is_generator``.

    Returns
    -------
    AllocationResult
        Allocated kWh per unit (never above its cap), rounded effective
        percentages of the total, and the surplus nobody could absorb.
    """
    total = max(0.0, float(generation_total))
    caps = [max(0.0, float(u.cap_kwh)) for u in units]
    shares = effective_shares(units, allow_generator_credit, generator_index)

    state = _AllocationState(
        allocated=tuple(0.0 for _ in units),
        locked=tuple(False for _ in units),
        pool=total,
    )

    iterations = 0
    while iterations < MAX_ITERATIONS and state.pool > POOL_EPSILON_KWH:
        nxt = _allocation_step(state, shares, caps)
        if nxt is None:
            break
        iterations += 1
        logger.debug(
            "Rateio pass %d: pool %.4f -> %.4f kWh, locked=%s",
            iterations,
            state.pool,
            nxt.pool,
            [i for i, flag in enumerate(nxt.locked) if flag],
        )
        state = nxt

    if iterations >= MAX_ITERATIONS and state.pool > POOL_EPSILON_KWH:
        logger.warning(
            "Rateio stopped after %d passes with %.4f kWh still in the pool",
            MAX_ITERATIONS,
            state.pool,
        )

    allocated = state.allocated
    unallocated = max(0.0, total - sum(allocated))

    if total > 0:
        percents = tuple(round_half_up(a / total * 100.0) for a in allocated)
    else:
        percents = tuple(0 for _ in allocated)

    if unallocated > POOL_EPSILON_KWH:
        logger.info(
            "%.2f kWh of %.2f kWh left unallocated (units at capacity)",
            unallocated,
            total,
        )

    return AllocationResult(
        allocated_kwh=allocated,
        effective_percent=percents,
        unallocated_kwh=unallocated,
        iterations=iterations,
    )


# ============================================================================
# Share helpers for the rateio editor
# ============================================================================


def suggest_shares(consumptions: Sequence[float]) -> List[int]:
    """
    Integer shares proportional to each unit's monthly consumption.

    The rounding difference goes to the first unit (the generator) so the
    suggestion always totals exactly 100. With no consumption at all the
    split is equal, remainder again on the first unit.
    """
    n = len(consumptions)
    if n == 0:
        return []

    values = [max(0.0, float(c or 0.0)) for c in consumptions]
    total = sum(values)

    if total == 0:
        equal = round_half_up(100.0 / n)
        return [100 - equal * (n - 1)] + [equal] * (n - 1)

    rounded = [round_half_up(v / total * 100.0) for v in values]
    rounded[0] += 100 - sum(rounded)
    return rounded


def shares_total(shares: Sequence[float]) -> float:
    return float(sum(float(s or 0.0) for s in shares))


def shares_are_complete(shares: Sequence[float], tolerance: float = 1e-9) -> bool:
    """True when manual shares total 100; saving a rateio requires it."""
    return abs(shares_total(shares) - 100.0) <= tolerance


def _is_unit_list(value: object) -> bool:
    return isinstance(value, list) and len(value) > 0 and all(isinstance(u, dict) for u in value)


def _register_credit_fields() -> None:
    """Register the credit allocation block of a proposal scenario."""
    specs = [
        RequiredFieldSpec(
            module="credits",
            name="units",
            paths=(("credit_allocation", "units"),),
            required=True,
            severity="error",
            description="Non-empty list of consumption units (mapping per UC).",
            validator=_is_unit_list,
        ),
        RequiredFieldSpec(
            module="credits",
            name="allocation_mode",
            paths=(("credit_allocation", "mode"),),
            required=False,
            severity="error",
            description="'proportional' (shares from consumption) or 'manual'.",
            validator=lambda v: v is None or str(v) in ("proportional", "manual"),
        ),
        RequiredFieldSpec(
            module="credits",
            name="allow_generator_credit",
            paths=(("credit_allocation", "allow_generator_credit"),),
            required=False,
            severity="error",
            description="Boolean flag (true/false); whether the generator UC receives credits.",
            validator=lambda v: v is None or as_bool(v) is not None,
        ),
    ]
    register_required_fields("credits", specs)


_register_credit_fields()


__all__ = [
    "MAX_ITERATIONS",
    "POOL_EPSILON_KWH",
    "effective_shares",
    "allocate_credits",
    "suggest_shares",
    "shares_total",
    "shares_are_complete",
]
