"""
Vessel Allocation Types

Core data structures and errors for the vessel allocation package.
Plans are ephemeral: they are computed on demand and either committed or discarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

# Volumes are normalized to this many decimal places so repeated
# subtraction does not leave float dust in the remainder.
VOLUME_PRECISION = 4


def round_volume(value: float) -> float:
    rounded = round(float(value), VOLUME_PRECISION)
    return 0.0 if rounded == 0 else rounded


def record_value(record: Any, *names: str, default: Any = None) -> Any:
    """Read the first present attribute (or mapping key) from a lot/container record."""
    for name in names:
        if isinstance(record, Mapping):
            if name in record and record[name] is not None:
                return record[name]
        else:
            value = getattr(record, name, None)
            if value is not None:
                return value
    return default


class VesselAllocationError(RuntimeError):
    """Base error for vessel allocation operations."""


class InsufficientCapacityError(VesselAllocationError):
    """Raised before any mutation when eligible vessels cannot hold the volume."""

    def __init__(self, shortfall: float):
        self.shortfall = round_volume(shortfall)
        super().__init__(f"insufficient capacity, need {self.shortfall:g} more gallons")


class LotNotFoundError(VesselAllocationError):
    """Raised when the lot being split cannot be loaded."""

    def __init__(self, lot_id: Any):
        self.lot_id = lot_id
        super().__init__(f"Lot #{lot_id} not found")


@dataclass(frozen=True)
class PlannedAllocation:
    """One (vessel, volume) pair of a plan."""
    container_id: Optional[int]
    container_name: str
    capacity: float
    volume: float

    @property
    def fill_percentage(self) -> float:
        if self.capacity <= 0:
            return 0.0
        return round(self.volume / self.capacity * 100, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            'container_id': self.container_id,
            'container_name': self.container_name,
            'capacity': self.capacity,
            'volume': self.volume,
            'fill_percentage': self.fill_percentage,
        }


@dataclass(frozen=True)
class AllocationPlan:
    """Proposed split of a volume across ordered vessels."""
    requested_volume: float
    allocations: Tuple[PlannedAllocation, ...] = ()
    remainder: float = 0.0

    @property
    def total_allocated(self) -> float:
        return round_volume(sum(item.volume for item in self.allocations))

    @property
    def is_complete(self) -> bool:
        return self.remainder <= 0

    @property
    def container_ids(self) -> List[Optional[int]]:
        return [item.container_id for item in self.allocations]

    def to_dict(self) -> dict[str, Any]:
        return {
            'requested_volume': self.requested_volume,
            'allocations': [item.to_dict() for item in self.allocations],
            'total_allocated': self.total_allocated,
            'remainder': self.remainder,
            'is_complete': self.is_complete,
        }


@dataclass
class ContainerOutcome:
    """Result of committing one planned allocation."""
    container_id: Optional[int]
    container_name: str
    volume: float
    success: bool = False
    child_lot_id: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'container_id': self.container_id,
            'container_name': self.container_name,
            'volume': self.volume,
            'success': self.success,
            'child_lot_id': self.child_lot_id,
            'error': self.error,
        }


@dataclass
class SplitResult:
    """Per-vessel report for one committed split."""
    parent_lot_id: Optional[int]
    outcomes: List[ContainerOutcome] = field(default_factory=list)
    child_lots: List[Any] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def containers_used(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.child_lot_id is not None)

    @property
    def volume_placed(self) -> float:
        return round_volume(sum(o.volume for o in self.outcomes if o.child_lot_id is not None))

    @property
    def success(self) -> bool:
        return not self.errors and self.succeeded == self.attempted

    def summary_message(self) -> str:
        message = f"Filled {self.succeeded} of {self.attempted} containers ({self.volume_placed:g} gallons)"
        if self.errors:
            message += f". Errors: {'; '.join(self.errors)}"
        return message

    def to_dict(self) -> dict[str, Any]:
        return {
            'parent_lot_id': self.parent_lot_id,
            'success': self.success,
            'attempted': self.attempted,
            'succeeded': self.succeeded,
            'volume_placed': self.volume_placed,
            'outcomes': [outcome.to_dict() for outcome in self.outcomes],
            'child_lot_ids': [record_value(lot, 'id') for lot in self.child_lots],
            'errors': list(self.errors),
            'message': self.summary_message(),
        }


class ContainerNotFoundError(VesselAllocationError):
    """Raised when a vessel referenced by an operation cannot be loaded."""

    def __init__(self, container_id: Any):
        self.container_id = container_id
        super().__init__(f"Vessel #{container_id} not found")


class StoreOperationError(VesselAllocationError):
    """Raised when a single, non-batched store write fails."""
