"""Barrel maintenance schedules and vessel naming repairs.

Synopsis:
Pure schedulers decide which barrels need topping or replacement and how
duplicate vessel names should be renamed. The ``record_*``/``apply_*``/
``bulk_*`` helpers push those decisions through a ``ProductionStore`` one
vessel at a time and report per-vessel results.

Glossary:
- Topping: refilling a barrel's headspace lost to evaporation.
- Duplicate set: two or more vessels of one organization sharing a name.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence

from ..utils.timezone_utils import TimezoneUtils
from .vessel_allocation.lifecycle import can_transition_container
from .vessel_allocation.types import record_value

logger = logging.getLogger(__name__)

DEFAULT_TOPPING_INTERVAL_DAYS = 30
DEFAULT_TOPPING_URGENT_DAYS = 45
DEFAULT_MAX_FILLS = 4
DEFAULT_MAX_AGE_YEARS = 5
DEFAULT_VESSEL_BASE_NAME = 'Barrel'
MAX_BULK_CREATE = 200

_NUMERIC_SUFFIX = re.compile(r"^(.+?)\s+(\d+)$")
_LETTER_SUFFIX = re.compile(r"^(.+?)\s+([A-Za-z])$")
_TRAILING_NUMBER = re.compile(r"\s*\d+\s*$")


@dataclass(frozen=True)
class ToppingDue:
    container: Any
    days_since_topping: Optional[int]
    severity: str  # 'urgent' or 'due_soon'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'container_id': record_value(self.container, 'id'),
            'container_name': record_value(self.container, 'name'),
            'days_since_topping': self.days_since_topping,
            'severity': self.severity,
        }


@dataclass(frozen=True)
class ReplacementDue:
    container: Any
    total_fills: int
    age_years: int
    reasons: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'container_id': record_value(self.container, 'id'),
            'container_name': record_value(self.container, 'name'),
            'total_fills': self.total_fills,
            'age_years': self.age_years,
            'reasons': list(self.reasons),
        }


@dataclass(frozen=True)
class RenamePlan:
    container_id: Optional[int]
    old_name: str
    new_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {'container_id': self.container_id, 'old_name': self.old_name, 'new_name': self.new_name}


@dataclass
class DuplicateResolution:
    duplicate_sets: Dict[str, List[Any]] = field(default_factory=dict)
    renames: List[RenamePlan] = field(default_factory=list)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicate_sets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'duplicate_sets': {
                name: [record_value(member, 'id') for member in members]
                for name, members in self.duplicate_sets.items()
            },
            'renames': [rename.to_dict() for rename in self.renames],
        }


def _is_barrel(container: Any) -> bool:
    return (record_value(container, 'type', default='barrel') or 'barrel') == 'barrel'


# --- Topping ---
# Purpose: In-use barrels whose last topping is older than the interval.
def topping_due(
    containers: Iterable[Any],
    today: Optional[date] = None,
    *,
    interval_days: int = DEFAULT_TOPPING_INTERVAL_DAYS,
    urgent_days: int = DEFAULT_TOPPING_URGENT_DAYS,
) -> List[ToppingDue]:
    today = today or TimezoneUtils.utc_today()
    due: List[ToppingDue] = []
    for container in containers:
        if not _is_barrel(container) or record_value(container, 'status') != 'in_use':
            continue
        last_topped = record_value(container, 'last_topping_date')
        if last_topped is None:
            due.append(ToppingDue(container, None, 'urgent'))
            continue
        days = TimezoneUtils.days_between(last_topped, today)
        if days > interval_days:
            due.append(ToppingDue(container, days, 'urgent' if days > urgent_days else 'due_soon'))

    # Never-topped first, then longest overdue
    due.sort(key=lambda entry: -(entry.days_since_topping if entry.days_since_topping is not None else 10**9))
    return due


# --- Replacement ---
# Purpose: Advisory list of barrels past their fill count or age.
def barrel_age_years(container: Any, today: Optional[date] = None) -> int:
    purchased = record_value(container, 'purchase_date')
    if purchased is None:
        return 0
    days = TimezoneUtils.days_between(purchased, today or TimezoneUtils.utc_today())
    return max(days // 365, 0)


def replacement_due(
    containers: Iterable[Any],
    today: Optional[date] = None,
    *,
    max_fills: int = DEFAULT_MAX_FILLS,
    max_age_years: int = DEFAULT_MAX_AGE_YEARS,
) -> List[ReplacementDue]:
    today = today or TimezoneUtils.utc_today()
    due: List[ReplacementDue] = []
    for container in containers:
        if not _is_barrel(container) or record_value(container, 'status') == 'retired':
            continue
        fills = int(record_value(container, 'total_fills', default=0) or 0)
        age = barrel_age_years(container, today)
        reasons = []
        if fills >= max_fills:
            reasons.append(f"{fills} fills")
        if age >= max_age_years:
            reasons.append(f"{age} years old")
        if reasons:
            due.append(ReplacementDue(container, fills, age, tuple(reasons)))
    return due


# --- Duplicate names ---
# Purpose: Find vessels sharing a name and plan unique renames.
def find_duplicate_names(containers: Iterable[Any]) -> Dict[str, List[Any]]:
    groups: Dict[str, List[Any]] = defaultdict(list)
    for container in containers:
        groups[str(record_value(container, 'name', default=''))].append(container)
    return {
        name: sorted(members, key=lambda member: record_value(member, 'id', default=0))
        for name, members in groups.items()
        if len(members) > 1
    }


def duplicate_base_name(name: str) -> str:
    base = _TRAILING_NUMBER.sub('', name or '').strip()
    return base or DEFAULT_VESSEL_BASE_NAME


def _max_suffix(base: str, names: Iterable[str]) -> int:
    highest = 0
    for name in names:
        match = _NUMERIC_SUFFIX.match(name or '')
        if match and match.group(1) == base:
            highest = max(highest, int(match.group(2)))
    return highest


def plan_duplicate_resolution(containers: Iterable[Any]) -> DuplicateResolution:
    """Keep the lowest-id vessel of each duplicate set and rename the rest.

    Renames take ``"{base} {n}"`` with ``n`` counting up from one past the
    highest number already used with that base.
    """
    containers = list(containers)
    names = [str(record_value(container, 'name', default='')) for container in containers]
    duplicates = find_duplicate_names(containers)
    resolution = DuplicateResolution(duplicate_sets=duplicates)

    next_suffix: Dict[str, int] = {}
    for name in sorted(duplicates):
        base = duplicate_base_name(name)
        if base not in next_suffix:
            next_suffix[base] = _max_suffix(base, names) + 1
        for member in duplicates[name][1:]:
            new_name = f"{base} {next_suffix[base]}"
            next_suffix[base] += 1
            resolution.renames.append(RenamePlan(record_value(member, 'id'), name, new_name))
    return resolution


def apply_duplicate_resolution(store, context, resolution: DuplicateResolution) -> Mapping[str, Any]:
    results: List[MutableMapping[str, Any]] = []
    for rename in resolution.renames:
        updated = store.update_container(rename.container_id, {'name': rename.new_name})
        results.append(
            {
                'container_id': rename.container_id,
                'old_name': rename.old_name,
                'new_name': rename.new_name,
                'success': updated.ok,
                'message': None if updated.ok else updated.error,
            }
        )
        if not updated.ok:
            logger.warning("Rename of vessel %s failed: %s", rename.container_id, updated.error)

    renamed = sum(1 for entry in results if entry['success'])
    logger.info("Resolved duplicate vessel names for org %s: %s renamed", context.organization_id, renamed)
    return {'success': renamed == len(results), 'renamed': renamed, 'results': results}


# --- Unique names for new vessels ---
def _name_pattern(name: str):
    name = (name or '').strip()
    numeric = _NUMERIC_SUFFIX.match(name)
    if numeric:
        return 'numeric', numeric.group(1), int(numeric.group(2))
    letter = _LETTER_SUFFIX.match(name)
    if letter:
        return 'letter', letter.group(1), letter.group(2).upper()
    return 'none', name or DEFAULT_VESSEL_BASE_NAME, None


def _increment_name(kind: str, base: str, suffix, step: int) -> str:
    if kind == 'numeric':
        return f"{base} {suffix + step}"
    if kind == 'letter':
        code = ord(suffix) + step
        return f"{base} {chr(code) if code <= ord('Z') else 'A'}"
    return f"{base} {step + 1}"


def generate_unique_names(base_name: str, count: int, existing: Iterable[str]) -> List[str]:
    """``count`` names continuing the pattern of ``base_name`` that avoid ``existing``."""
    kind, base, suffix = _name_pattern(base_name)
    taken = set(existing)
    names: List[str] = []
    step = 0
    for index in range(count):
        for _ in range(1000):
            candidate = _increment_name(kind, base, suffix, step)
            step += 1
            if candidate not in taken:
                break
        else:
            candidate = f"{base} {TimezoneUtils.utc_now():%Y%m%d%H%M%S}-{index}"
        names.append(candidate)
        taken.add(candidate)
    return names


# --- Store-backed batch actions ---
def _containers_by_id(store, container_ids: Sequence[int]):
    repeated = sorted({container_id for container_id in container_ids if container_ids.count(container_id) > 1})
    if repeated:
        raise ValueError(f"Vessel ids listed more than once: {', '.join(str(i) for i in repeated)}")
    return {container_id: store.get_container(container_id) for container_id in container_ids}


def record_topping(store, context, container_ids: Sequence[int], on_date: Optional[date] = None) -> Mapping[str, Any]:
    """Stamp each barrel as topped on ``on_date`` and log a topping event."""
    on_date = on_date or TimezoneUtils.utc_today()
    results: List[MutableMapping[str, Any]] = []
    for container_id, lookup in _containers_by_id(store, container_ids).items():
        if not lookup.ok:
            results.append({'container_id': container_id, 'success': False, 'message': lookup.error})
            continue
        container = lookup.data
        updated = store.update_container(container_id, {'last_topping_date': on_date})
        if not updated.ok:
            results.append({'container_id': container_id, 'container_name': container.name,
                            'success': False, 'message': updated.error})
            continue

        occupant = store.list_lots(container_id=container_id, status='aging')
        lot_id = occupant.data[0].id if occupant.ok and occupant.data else None
        logged = store.log_topping_event(container_id, lot_id)
        results.append(
            {
                'container_id': container_id,
                'container_name': container.name,
                'success': logged.ok,
                'message': None if logged.ok else f"topped but history entry failed: {logged.error}",
            }
        )

    failures = [entry for entry in results if not entry['success']]
    if failures:
        logger.warning("Topping for org %s finished with %s failures", context.organization_id, len(failures))
    return {'success': not failures, 'topped': len(results) - len(failures), 'results': results}


def record_cip(
    store,
    context,
    container_ids: Sequence[int],
    cip_product: str,
    *,
    on_date: Optional[date] = None,
    cost: Optional[float] = None,
) -> Mapping[str, Any]:
    """Mark vessels sanitized after clean-in-place and log a cip event for each."""
    if not (cip_product or '').strip():
        raise ValueError("cip_product is required")
    on_date = on_date or TimezoneUtils.utc_today()
    results: List[MutableMapping[str, Any]] = []
    for container_id, lookup in _containers_by_id(store, container_ids).items():
        if not lookup.ok:
            results.append({'container_id': container_id, 'success': False, 'message': lookup.error})
            continue
        container = lookup.data
        if container.status != 'sanitized' and not can_transition_container(container.status, 'sanitized'):
            results.append({'container_id': container_id, 'container_name': container.name, 'success': False,
                            'message': f"cannot sanitize a vessel that is {container.status}"})
            continue

        updated = store.update_container(
            container_id,
            {'status': 'sanitized', 'last_cip_date': on_date, 'cip_product': cip_product},
        )
        if not updated.ok:
            results.append({'container_id': container_id, 'container_name': container.name,
                            'success': False, 'message': updated.error})
            continue
        logged = store.log_cip_event(container_id, cip_product, cost)
        results.append(
            {
                'container_id': container_id,
                'container_name': container.name,
                'success': logged.ok,
                'message': None if logged.ok else f"sanitized but history entry failed: {logged.error}",
            }
        )

    failures = [entry for entry in results if not entry['success']]
    if failures:
        logger.warning("CIP for org %s finished with %s failures", context.organization_id, len(failures))
    return {'success': not failures, 'cleaned': len(results) - len(failures), 'results': results}


def bulk_create_containers(
    store,
    context,
    base_name: str,
    count: int,
    fields: Optional[Mapping[str, Any]] = None,
) -> Mapping[str, Any]:
    """Create ``count`` vessels sharing ``fields`` with unique sequential names."""
    if count is None or count < 1 or count > MAX_BULK_CREATE:
        raise ValueError(f"count must be between 1 and {MAX_BULK_CREATE}")
    listing = store.list_containers()
    if not listing.ok:
        return {'success': False, 'error': listing.error, 'results': []}

    names = generate_unique_names(base_name, count, [container.name for container in listing.data])
    results: List[MutableMapping[str, Any]] = []
    created = []
    for name in names:
        payload = dict(fields or {})
        payload['name'] = name
        outcome = store.create_container(payload)
        if outcome.ok:
            created.append(outcome.data)
        results.append({'name': name, 'success': outcome.ok,
                        'container_id': outcome.data.id if outcome.ok else None,
                        'message': None if outcome.ok else outcome.error})

    logger.info("Bulk created %s of %s vessels for org %s", len(created), count, context.organization_id)
    return {'success': len(created) == count, 'created': created, 'results': results}
