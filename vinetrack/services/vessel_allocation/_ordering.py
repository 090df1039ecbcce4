"""
Container Ordering

Single purpose: put vessels in the order operators expect ("Barrel 1" before "Barrel 10").
"""

import re
import sys
from typing import Any, Iterable, List, Tuple

from .types import record_value

_NUMBER_PATTERN = re.compile(r"\d+")

# Names without a number sort after every numbered vessel
UNNUMBERED_SENTINEL = sys.maxsize


def _name_of(container: Any) -> str:
    if isinstance(container, str):
        return container
    return str(record_value(container, 'name', default='') or '')


def embedded_number(name: str):
    """First integer embedded anywhere in the name, or None."""
    match = _NUMBER_PATTERN.search(name or '')
    return int(match.group()) if match else None


def container_sort_key(container: Any) -> Tuple[int, str, int]:
    name = _name_of(container)
    number = embedded_number(name)
    record_id = -1 if isinstance(container, str) else record_value(container, 'id', default=-1)
    return (
        UNNUMBERED_SENTINEL if number is None else number,
        name.casefold(),
        record_id if isinstance(record_id, int) else -1,
    )


def sort_containers(containers: Iterable[Any]) -> List[Any]:
    return sorted(containers, key=container_sort_key)
