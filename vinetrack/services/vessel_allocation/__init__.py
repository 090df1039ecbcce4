"""
Vessel Allocation Service Package

Handles distribution of a wine lot across physical vessels:
- Natural ordering of vessels by the number in their name
- Greedy first-fit planning with an exact remainder
- Committing a plan as child lots, filled vessels and history rows
- Remaining-volume reconciliation against active child lots
- Lot and vessel status transitions and eligibility

The functions here take plain records and an explicit store/context; they
never read Flask request or app globals.
"""

from ._ordering import container_sort_key, embedded_number, sort_containers
from ._planner import plan_allocation, preview_allocation
from ._reconciliation import (
    ACTIVE_CHILD_STATUSES,
    SPLIT_GUARD_STATUSES,
    child_lots,
    is_fully_allocated,
    remaining_volume,
    unsplit_volume,
)
from ._splitting import commit_split
from .lifecycle import (
    CONTAINER_TRANSITIONS,
    ELIGIBLE_CONTAINER_STATUSES,
    LOT_STATUS_SEQUENCE,
    InvalidTransitionError,
    archive_lot,
    can_transition_container,
    can_transition_lot,
    eligible_containers,
    is_container_eligible,
    next_lot_statuses,
    sync_all_parent_statuses,
    sync_parent_status,
    transition_container,
    transition_lot,
)
from .service import VesselAllocationService
from .types import (
    AllocationPlan,
    ContainerNotFoundError,
    ContainerOutcome,
    InsufficientCapacityError,
    LotNotFoundError,
    PlannedAllocation,
    SplitResult,
    StoreOperationError,
    VesselAllocationError,
)

# Main public interface
__all__ = [
    'container_sort_key',
    'embedded_number',
    'sort_containers',
    'plan_allocation',
    'preview_allocation',
    'ACTIVE_CHILD_STATUSES',
    'child_lots',
    'is_fully_allocated',
    'remaining_volume',
    'SPLIT_GUARD_STATUSES',
    'unsplit_volume',
    'commit_split',
    'CONTAINER_TRANSITIONS',
    'ELIGIBLE_CONTAINER_STATUSES',
    'LOT_STATUS_SEQUENCE',
    'InvalidTransitionError',
    'archive_lot',
    'can_transition_container',
    'can_transition_lot',
    'eligible_containers',
    'is_container_eligible',
    'next_lot_statuses',
    'sync_all_parent_statuses',
    'sync_parent_status',
    'transition_container',
    'transition_lot',
    'VesselAllocationService',
    'AllocationPlan',
    'ContainerNotFoundError',
    'ContainerOutcome',
    'InsufficientCapacityError',
    'LotNotFoundError',
    'PlannedAllocation',
    'SplitResult',
    'StoreOperationError',
    'VesselAllocationError',
]
