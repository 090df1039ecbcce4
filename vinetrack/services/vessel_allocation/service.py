import logging
from typing import Any, List, Optional

from ._planner import preview_allocation
from ._reconciliation import remaining_volume
from ._splitting import commit_split
from .types import (
    AllocationPlan,
    InsufficientCapacityError,
    LotNotFoundError,
    SplitResult,
    StoreOperationError,
)

logger = logging.getLogger(__name__)


class VesselAllocationService:
    """Load a lot and its vessels from the store, then preview or commit a split.

    Every call re-reads lots and vessels; nothing is cached between preview
    and commit.
    """

    def __init__(self, store, context, *, max_containers: Optional[int] = None):
        self.store = store
        self.context = context
        self.max_containers = max_containers

    def remaining(self, lot_id: int) -> float:
        lot, lots, _ = self._load(lot_id, with_containers=False)
        return remaining_volume(lot, lots)

    def preview(self, lot_id: int, requested_volume: Optional[float] = None) -> AllocationPlan:
        lot, lots, containers = self._load(lot_id)
        plan = preview_allocation(lot, lots, containers, requested_volume)
        self._check_container_limit(plan)
        return plan

    def auto_fill(self, lot_id: int, requested_volume: Optional[float] = None) -> SplitResult:
        lot, lots, containers = self._load(lot_id)
        plan = preview_allocation(lot, lots, containers, requested_volume)
        if not plan.is_complete:
            logger.info(
                "Split of lot %s rejected: %s gallons short (org %s)",
                lot_id, plan.remainder, self.context.organization_id,
            )
            raise InsufficientCapacityError(plan.remainder)
        if not plan.allocations:
            raise ValueError(f"Lot '{lot.name}' has no unassigned volume to split")
        self._check_container_limit(plan)
        return commit_split(self.store, self.context, lot, plan)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _load(self, lot_id: int, *, with_containers: bool = True):
        lookup = self.store.get_lot(lot_id)
        if not lookup.ok:
            if lookup.is_missing:
                raise LotNotFoundError(lot_id)
            raise StoreOperationError(lookup.error)
        # Archived children still count against the parent's volume
        lots = self._unwrap(self.store.list_lots(include_archived=True))
        containers: List[Any] = []
        if with_containers:
            containers = self._unwrap(self.store.list_containers())
        return lookup.data, lots, containers

    def _check_container_limit(self, plan: AllocationPlan) -> None:
        if self.max_containers and len(plan.allocations) > self.max_containers:
            raise ValueError(
                f"Split would use {len(plan.allocations)} vessels; "
                f"the limit is {self.max_containers}"
            )

    @staticmethod
    def _unwrap(result):
        if not result.ok:
            raise StoreOperationError(result.error)
        return result.data
