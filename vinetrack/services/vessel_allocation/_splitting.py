"""
Lot Splitting

Single purpose: turn a complete allocation plan into child lots, filled
vessels and audit rows. Each vessel is committed on its own; a failure on
one vessel is recorded and the loop moves on to the next.
"""

import logging
from datetime import date
from typing import Any, List, Optional

from ...models.lot import CHEMISTRY_FIELDS, LINEAGE_FIELDS
from ...utils.timezone_utils import TimezoneUtils
from .lifecycle import ELIGIBLE_CONTAINER_STATUSES, LOT_STATUS_SEQUENCE
from .types import (
    AllocationPlan,
    ContainerOutcome,
    InsufficientCapacityError,
    PlannedAllocation,
    SplitResult,
    record_value,
)

logger = logging.getLogger(__name__)

CHILD_LOT_STATUS = 'aging'
SPLIT_NOTE_HEADER = '--- SPLIT TO VESSELS ---'


def child_lot_name(parent: Any, container_name: str) -> str:
    return f"{record_value(parent, 'name', default='Lot')}-{container_name}"


def child_lot_fields(parent: Any, allocation: PlannedAllocation, container: Any) -> dict:
    """Payload for the child lot that will live in ``container``."""
    fields = {
        'name': child_lot_name(parent, record_value(container, 'name', default=allocation.container_name)),
        'status': CHILD_LOT_STATUS,
        'volume_gallons': allocation.volume,
        'parent_lot_id': record_value(parent, 'id'),
        'container_id': allocation.container_id,
    }
    for field in LINEAGE_FIELDS + CHEMISTRY_FIELDS:
        value = record_value(parent, field)
        if value is not None:
            fields[field] = value
    return fields


def split_note(result: SplitResult, today: date) -> str:
    return (
        f"{SPLIT_NOTE_HEADER}\n"
        f"Date: {today.isoformat()}\n"
        f"Split into {result.containers_used} vessels\n"
        f"Total volume: {result.volume_placed:g} gallons"
    )


def commit_split(
    store,
    context,
    parent: Any,
    plan: AllocationPlan,
    *,
    today: Optional[date] = None,
) -> SplitResult:
    """Create one child lot per planned vessel and mark the parent as aging.

    Raises InsufficientCapacityError before touching the store when the plan
    leaves volume unplaced.
    """
    if not plan.is_complete:
        raise InsufficientCapacityError(plan.remainder)

    parent_id = record_value(parent, 'id')
    result = SplitResult(parent_lot_id=parent_id)
    logger.info(
        "Splitting lot %s into %s vessels for org %s (user %s)",
        parent_id, len(plan.allocations), context.organization_id, context.user_id,
    )

    for allocation in plan.allocations:
        outcome = ContainerOutcome(
            container_id=allocation.container_id,
            container_name=allocation.container_name,
            volume=allocation.volume,
        )
        result.outcomes.append(outcome)
        child = _commit_allocation(store, parent, allocation, outcome)
        if child is not None:
            result.child_lots.append(child)
        if outcome.error:
            logger.warning("Lot %s into %s failed: %s", parent_id, allocation.container_name, outcome.error)
            result.errors.append(f"{allocation.container_name}: {outcome.error}")

    if result.child_lots:
        _mark_parent_split(store, parent, result, today or TimezoneUtils.utc_today())

    if result.errors:
        logger.warning("Lot %s split finished with errors: %s", parent_id, result.summary_message())
    else:
        logger.info("Lot %s split complete: %s", parent_id, result.summary_message())
    return result


def _commit_allocation(store, parent: Any, allocation: PlannedAllocation, outcome: ContainerOutcome):
    lookup = store.get_container(allocation.container_id)
    if not lookup.ok:
        outcome.error = lookup.error
        return None
    container = lookup.data

    # Vessel may have been taken between preview and commit
    if record_value(container, 'status') not in ELIGIBLE_CONTAINER_STATUSES:
        outcome.error = f"vessel is no longer available ({record_value(container, 'status')})"
        return None

    created = store.create_lot(child_lot_fields(parent, allocation, container))
    if not created.ok:
        outcome.error = f"could not create child lot: {created.error}"
        return None
    child = created.data
    outcome.child_lot_id = record_value(child, 'id')

    total_fills = int(record_value(container, 'total_fills', default=0) or 0) + 1
    updated = store.update_container(allocation.container_id, {'status': 'in_use', 'total_fills': total_fills})
    if not updated.ok:
        outcome.error = f"child lot created but vessel update failed: {updated.error}"
        return child

    logged = store.log_lot_assignment(allocation.container_id, outcome.child_lot_id, allocation.volume)
    if not logged.ok:
        outcome.error = f"vessel filled but history entry failed: {logged.error}"
        return child

    outcome.success = True
    return child


def _mark_parent_split(store, parent: Any, result: SplitResult, today: date) -> None:
    block = split_note(result, today)
    existing = record_value(parent, 'notes')
    notes = f"{existing}\n\n{block}" if existing else block
    changes = {'notes': notes}
    # A parent already synced past aging keeps its status on a later split
    if not _is_past_child_status(record_value(parent, 'status')):
        changes['status'] = CHILD_LOT_STATUS
    updated = store.update_lot(result.parent_lot_id, changes)
    if not updated.ok:
        logger.warning("Could not update parent lot %s after split: %s", result.parent_lot_id, updated.error)
        result.errors.append(f"parent lot: {updated.error}")


def _is_past_child_status(status) -> bool:
    if status not in LOT_STATUS_SEQUENCE:
        return False
    return LOT_STATUS_SEQUENCE.index(status) > LOT_STATUS_SEQUENCE.index(CHILD_LOT_STATUS)


__all__: List[str] = ['commit_split', 'child_lot_fields', 'child_lot_name', 'split_note']
