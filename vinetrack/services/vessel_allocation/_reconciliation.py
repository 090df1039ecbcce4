"""
Volume Reconciliation

Single purpose: derive how much of a lot is still unassigned from its child records.
Nothing here is cached; every call rescans the lots it is given.
"""

from typing import Any, Iterable, List

from .types import record_value, round_volume

ACTIVE_CHILD_STATUSES = frozenset({'aging'})
# Children still holding parent volume; a later split may only draw on the rest
SPLIT_GUARD_STATUSES = frozenset({'aging', 'blending', 'ready_to_bottle'})


def child_lots(lot: Any, all_lots: Iterable[Any], statuses=None) -> List[Any]:
    """Children of ``lot``; restricted to ``statuses`` when given."""
    lot_id = record_value(lot, 'id')
    if lot_id is None:
        return []
    children = [
        candidate for candidate in all_lots
        if record_value(candidate, 'parent_lot_id') == lot_id
    ]
    if statuses is not None:
        children = [child for child in children if record_value(child, 'status') in statuses]
    return children


def remaining_volume(lot: Any, all_lots: Iterable[Any], active_statuses=ACTIVE_CHILD_STATUSES) -> float:
    total = float(record_value(lot, 'volume_gallons', 'volume', default=0.0) or 0.0)
    placed = sum(
        float(record_value(child, 'volume_gallons', 'volume', default=0.0) or 0.0)
        for child in child_lots(lot, all_lots, statuses=active_statuses)
    )
    return round_volume(total - placed)


def is_fully_allocated(lot: Any, all_lots: Iterable[Any]) -> bool:
    return remaining_volume(lot, all_lots) <= 0


def unsplit_volume(lot: Any, all_lots: Iterable[Any]) -> float:
    """Volume a new split may still draw on.

    Wider than ``remaining_volume``: children that have moved on to blending
    or are ready to bottle still hold their share of the parent.
    """
    return remaining_volume(lot, all_lots, active_statuses=SPLIT_GUARD_STATUSES)
