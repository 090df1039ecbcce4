"""Lot and vessel status state machine.

Synopsis:
Declares the legal status transitions for production lots and vessels, the
vessel eligibility rule used by the allocation planner, and the parent-lot
status sync that follows child progression.

Glossary:
- Forward step: moving a lot exactly one stage along LOT_STATUS_SEQUENCE.
- Eligible vessel: empty or sanitized, and not held by an aging lot.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from ...models.container import CONTAINER_STATUSES
from ...models.lot import LOT_STATUSES
from ...utils.timezone_utils import TimezoneUtils
from .types import (
    ContainerNotFoundError,
    LotNotFoundError,
    StoreOperationError,
    VesselAllocationError,
    record_value,
)

logger = logging.getLogger(__name__)

LOT_STATUS_SEQUENCE = LOT_STATUSES

# Extra forward edges beyond the single-step sequence
_LOT_SHORTCUTS: Dict[str, FrozenSet[str]] = {
    'aging': frozenset({'ready_to_bottle'}),
}

CONTAINER_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    'empty': frozenset({'in_use', 'needs_cip', 'sanitized', 'needs_repair'}),
    'in_use': frozenset({'needs_cip', 'sanitized', 'needs_repair', 'cleaning'}),
    'cleaning': frozenset({'sanitized', 'empty', 'needs_cip'}),
    'needs_cip': frozenset({'cleaning', 'sanitized', 'empty'}),
    'sanitized': frozenset({'in_use', 'empty', 'needs_cip'}),
    'needs_repair': frozenset({'empty', 'needs_cip'}),
    'retired': frozenset(),
}

ELIGIBLE_CONTAINER_STATUSES = frozenset({'empty', 'sanitized'})
OCCUPYING_LOT_STATUSES = frozenset({'aging'})


class InvalidTransitionError(VesselAllocationError):
    """Raised when a status change is not a legal edge of the state machine."""

    def __init__(self, kind: str, current: Optional[str], requested: Optional[str]):
        self.kind = kind
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move {kind} from '{current}' to '{requested}'")


# --- Lot transitions ---
# Purpose: Allow staying in place or advancing one stage.
def can_transition_lot(current: Optional[str], requested: Optional[str]) -> bool:
    if current not in LOT_STATUS_SEQUENCE or requested not in LOT_STATUS_SEQUENCE:
        return False
    if current == requested:
        return True
    current_index = LOT_STATUS_SEQUENCE.index(current)
    requested_index = LOT_STATUS_SEQUENCE.index(requested)
    if requested_index == current_index + 1:
        return True
    return requested in _LOT_SHORTCUTS.get(current, frozenset())


def validate_lot_transition(current: Optional[str], requested: Optional[str]) -> str:
    if not can_transition_lot(current, requested):
        raise InvalidTransitionError('lot', current, requested)
    return requested


def next_lot_statuses(current: Optional[str]) -> List[str]:
    return [status for status in LOT_STATUS_SEQUENCE if status != current and can_transition_lot(current, status)]


# --- Vessel transitions ---
# Purpose: Any status may retire; retired never leaves.
def can_transition_container(current: Optional[str], requested: Optional[str]) -> bool:
    if current not in CONTAINER_STATUSES or requested not in CONTAINER_STATUSES:
        return False
    if current == 'retired':
        return False
    if requested == 'retired':
        return True
    return requested in CONTAINER_TRANSITIONS.get(current, frozenset())


def validate_container_transition(current: Optional[str], requested: Optional[str]) -> str:
    if not can_transition_container(current, requested):
        raise InvalidTransitionError('vessel', current, requested)
    return requested


def transition_container(store, container_id: int, requested: str):
    """Move a vessel to ``requested`` through the store and log the change."""
    lookup = store.get_container(container_id)
    if not lookup.ok:
        if lookup.is_missing:
            raise ContainerNotFoundError(container_id)
        raise StoreOperationError(lookup.error)
    container = lookup.data
    current = container.status
    if current == requested:
        return container
    validate_container_transition(current, requested)

    updated = store.update_container(container_id, {'status': requested})
    if not updated.ok:
        raise StoreOperationError(updated.error)
    logged = store.log_status_change(container_id, current, requested)
    if not logged.ok:
        logger.warning("Vessel %s moved to %s but history entry failed: %s", container_id, requested, logged.error)
    return updated.data


def transition_lot(store, lot_id: int, requested: str):
    lookup = store.get_lot(lot_id)
    if not lookup.ok:
        if lookup.is_missing:
            raise LotNotFoundError(lot_id)
        raise StoreOperationError(lookup.error)
    lot = lookup.data
    validate_lot_transition(lot.status, requested)
    if lot.status == requested:
        return lot
    updated = store.update_lot(lot_id, {'status': requested})
    if not updated.ok:
        raise StoreOperationError(updated.error)
    return updated.data


# --- Eligibility ---
# Purpose: Consult both the vessel status and lot assignments.
def occupied_container_ids(lots: Iterable[Any]) -> set:
    # Archived lots have left their vessel
    return {
        record_value(lot, 'container_id')
        for lot in lots
        if record_value(lot, 'container_id') is not None
        and record_value(lot, 'status') in OCCUPYING_LOT_STATUSES
        and record_value(lot, 'archived_at') is None
    }


def is_container_eligible(container: Any, lots: Iterable[Any]) -> bool:
    if record_value(container, 'status') not in ELIGIBLE_CONTAINER_STATUSES:
        return False
    return record_value(container, 'id') not in occupied_container_ids(lots)


def eligible_containers(containers: Iterable[Any], lots: Iterable[Any]) -> List[Any]:
    occupied = occupied_container_ids(lots)
    return [
        container for container in containers
        if record_value(container, 'status') in ELIGIBLE_CONTAINER_STATUSES
        and record_value(container, 'id') not in occupied
    ]


# --- Parent status sync ---
# Purpose: Advance a parent to its most advanced child status, never backwards.
def most_advanced_status(statuses: Iterable[Optional[str]]) -> Optional[str]:
    ranked = [status for status in statuses if status in LOT_STATUS_SEQUENCE]
    if not ranked:
        return None
    return max(ranked, key=LOT_STATUS_SEQUENCE.index)


def sync_parent_status(parent: Any, children: Iterable[Any]) -> Optional[str]:
    """Return the status the parent should advance to, or None when it is current."""
    target = most_advanced_status(record_value(child, 'status') for child in children)
    if target is None:
        return None
    current = record_value(parent, 'status')
    current_rank = LOT_STATUS_SEQUENCE.index(current) if current in LOT_STATUS_SEQUENCE else -1
    if LOT_STATUS_SEQUENCE.index(target) > current_rank:
        return target
    return None


def sync_all_parent_statuses(store, *, today=None) -> Dict[str, Any]:
    """Apply sync_parent_status to every parent lot visible through ``store``."""
    listing = store.list_lots()
    if not listing.ok:
        return {'synced': 0, 'updated': 0, 'errors': [str(listing.error)]}

    lots = listing.data
    by_id = {lot.id: lot for lot in lots}
    parent_ids = sorted({lot.parent_lot_id for lot in lots if lot.parent_lot_id is not None})
    stamp = (today or TimezoneUtils.utc_today()).isoformat()

    synced = 0
    updated = 0
    errors: List[str] = []
    for parent_id in parent_ids:
        parent = by_id.get(parent_id)
        if parent is None:
            # Parent archived or owned elsewhere; nothing to sync
            continue
        children = [lot for lot in lots if lot.parent_lot_id == parent_id]
        target = sync_parent_status(parent, children)
        synced += 1
        if target is None:
            continue
        note = (
            f"--- AUTO-SYNC ---\nDate: {stamp}\n"
            f"Status updated to \"{target}\" to match child lot progression"
        )
        notes = f"{parent.notes}\n\n{note}" if parent.notes else note
        result = store.update_lot(parent_id, {'status': target, 'notes': notes})
        if result.ok:
            updated += 1
        else:
            logger.warning("Parent status sync failed for lot %s: %s", parent_id, result.error)
            errors.append(f"{parent.name}: {result.error}")

    return {'synced': synced, 'updated': updated, 'errors': errors}


# --- Archiving ---
# Purpose: Hide a lot from default listings and release the vessel it held.
def archive_lot(store, lot_id: int):
    lookup = store.get_lot(lot_id)
    if not lookup.ok:
        if lookup.is_missing:
            raise LotNotFoundError(lot_id)
        raise StoreOperationError(lookup.error)
    lot = lookup.data
    if lot.archived_at is not None:
        return lot

    archived = store.archive_lot(lot_id)
    if not archived.ok:
        raise StoreOperationError(archived.error)
    if lot.container_id is not None and lot.status in OCCUPYING_LOT_STATUSES:
        _release_container(store, lot.container_id, lot_id)
    logger.info("Archived lot %s (%s)", lot_id, lot.name)
    return archived.data


def _release_container(store, container_id: int, lot_id: int) -> None:
    removed = store.log_lot_removal(container_id, lot_id, 'Lot archived')
    if not removed.ok:
        logger.warning("Lot %s archived but removal entry for vessel %s failed: %s", lot_id, container_id, removed.error)
    lookup = store.get_container(container_id)
    if not lookup.ok:
        logger.warning("Vessel %s not released after archiving lot %s: %s", container_id, lot_id, lookup.error)
        return
    if not can_transition_container(lookup.data.status, 'needs_cip'):
        return
    current = lookup.data.status
    updated = store.update_container(container_id, {'status': 'needs_cip'})
    if not updated.ok:
        logger.warning("Vessel %s could not be flagged for CIP: %s", container_id, updated.error)
        return
    store.log_status_change(container_id, current, 'needs_cip')
