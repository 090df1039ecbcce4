"""
Allocation Planner

Single purpose: greedy first-fit of a volume across vessels in operator order.
Pure functions only; the same inputs always give the same plan, so a plan can
be rendered as a preview and recomputed at commit time.
"""

import logging
from typing import Any, Iterable, Optional

from ._ordering import sort_containers
from ._reconciliation import unsplit_volume
from .lifecycle import eligible_containers
from .types import AllocationPlan, PlannedAllocation, record_value, round_volume

logger = logging.getLogger(__name__)


def plan_allocation(requested_volume: float, containers: Iterable[Any]) -> AllocationPlan:
    """Fill vessels in natural name order until the requested volume is placed.

    Vessels with no positive capacity are skipped. Whatever cannot be placed
    comes back as ``remainder``; callers must not commit a plan with a remainder.
    """
    requested = round_volume(float(requested_volume or 0.0))
    if requested <= 0:
        return AllocationPlan(requested_volume=max(requested, 0.0))

    remaining = requested
    allocations = []
    for container in sort_containers(containers):
        if remaining <= 0:
            break
        capacity = float(record_value(container, 'capacity_gallons', 'capacity', default=0.0) or 0.0)
        if capacity <= 0:
            continue
        fill_volume = round_volume(min(remaining, capacity))
        if fill_volume > 0:
            allocations.append(
                PlannedAllocation(
                    container_id=record_value(container, 'id'),
                    container_name=str(record_value(container, 'name', default='')),
                    capacity=capacity,
                    volume=fill_volume,
                )
            )
            remaining = round_volume(remaining - fill_volume)

    return AllocationPlan(
        requested_volume=requested,
        allocations=tuple(allocations),
        remainder=max(remaining, 0.0),
    )


def preview_allocation(
    lot: Any,
    lots: Iterable[Any],
    containers: Iterable[Any],
    requested_volume: Optional[float] = None,
) -> AllocationPlan:
    """Plan the lot's unassigned volume (or an explicit part of it) over eligible vessels."""
    lots = list(lots)
    available = unsplit_volume(lot, lots)
    if requested_volume is None:
        volume = available
    else:
        volume = round_volume(float(requested_volume))
        if volume > available:
            raise ValueError(
                f"Requested {volume:g} gallons but only {available:g} gallons of "
                f"'{record_value(lot, 'name', default='lot')}' remain unassigned"
            )

    candidates = eligible_containers(containers, lots)
    plan = plan_allocation(volume, candidates)
    logger.debug(
        "Allocation preview for lot %s: %s gallons over %s eligible vessels, remainder %s",
        record_value(lot, 'id'), volume, len(candidates), plan.remainder,
    )
    return plan
