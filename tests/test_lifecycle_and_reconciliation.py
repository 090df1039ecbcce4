import pytest

from vinetrack.services.vessel_allocation import (
    InvalidTransitionError,
    LotNotFoundError,
    archive_lot,
    can_transition_container,
    can_transition_lot,
    child_lots,
    is_container_eligible,
    is_fully_allocated,
    remaining_volume,
    sync_parent_status,
    unsplit_volume,
)
from vinetrack.services.vessel_allocation.lifecycle import (
    most_advanced_status,
    next_lot_statuses,
    validate_container_transition,
    validate_lot_transition,
)


PARENT = {'id': 1, 'name': 'Pinot 2024', 'volume_gallons': 150, 'status': 'pressed'}


def test_remaining_after_partial_split():
    lots = [PARENT, {'id': 2, 'parent_lot_id': 1, 'volume_gallons': 100, 'status': 'aging'}]

    assert remaining_volume(PARENT, lots) == 50
    assert is_fully_allocated(PARENT, lots) is False


def test_remaining_after_full_split_is_zero():
    lots = [
        PARENT,
        {'id': 2, 'parent_lot_id': 1, 'volume_gallons': 100, 'status': 'aging'},
        {'id': 3, 'parent_lot_id': 1, 'volume_gallons': 50, 'status': 'aging'},
    ]

    assert remaining_volume(PARENT, lots) == 0
    assert is_fully_allocated(PARENT, lots) is True


def test_only_aging_children_count_against_the_parent():
    lots = [
        PARENT,
        {'id': 2, 'parent_lot_id': 1, 'volume_gallons': 60, 'status': 'aging'},
        {'id': 3, 'parent_lot_id': 1, 'volume_gallons': 60, 'status': 'bottled'},
        {'id': 4, 'parent_lot_id': 99, 'volume_gallons': 60, 'status': 'aging'},
    ]

    assert remaining_volume(PARENT, lots) == 90
    assert [lot['id'] for lot in child_lots(PARENT, lots)] == [2, 3]


def test_split_guard_counts_children_that_moved_on():
    lots = [
        PARENT,
        {'id': 2, 'parent_lot_id': 1, 'volume_gallons': 60, 'status': 'blending'},
        {'id': 3, 'parent_lot_id': 1, 'volume_gallons': 40, 'status': 'ready_to_bottle'},
        {'id': 4, 'parent_lot_id': 1, 'volume_gallons': 30, 'status': 'aging'},
        {'id': 5, 'parent_lot_id': 1, 'volume_gallons': 20, 'status': 'bottled'},
    ]

    assert remaining_volume(PARENT, lots) == 120
    assert unsplit_volume(PARENT, lots) == 20


def test_remaining_has_no_float_dust():
    lots = [PARENT] + [
        {'id': 10 + index, 'parent_lot_id': 1, 'volume_gallons': 0.1, 'status': 'aging'}
        for index in range(3)
    ]

    assert remaining_volume({**PARENT, 'volume_gallons': 0.3}, lots) == 0


@pytest.mark.parametrize('current,requested,allowed', [
    ('pressed', 'pressed', True),
    ('aging', 'aging', True),
    ('pressed', 'aging', True),
    ('aging', 'blending', True),
    ('aging', 'ready_to_bottle', True),
    ('fermenting', 'aging', False),
    ('planning', 'bottled', False),
    ('aging', 'pressed', False),
    ('aging', 'vinegar', False),
])
def test_lot_transitions(current, requested, allowed):
    assert can_transition_lot(current, requested) is allowed


def test_invalid_lot_transition_raises():
    with pytest.raises(InvalidTransitionError, match="from 'harvested' to 'aging'"):
        validate_lot_transition('harvested', 'aging')
    assert validate_lot_transition('blending', 'ready_to_bottle') == 'ready_to_bottle'


def test_next_statuses_from_aging():
    assert next_lot_statuses('aging') == ['blending', 'ready_to_bottle']


@pytest.mark.parametrize('current,requested,allowed', [
    ('empty', 'in_use', True),
    ('in_use', 'needs_cip', True),
    ('in_use', 'sanitized', True),
    ('in_use', 'needs_repair', True),
    ('needs_cip', 'empty', True),
    ('sanitized', 'in_use', True),
    ('needs_repair', 'in_use', False),
    ('in_use', 'empty', False),
    ('needs_cip', 'retired', True),
    ('in_use', 'retired', True),
    ('retired', 'empty', False),
    ('retired', 'retired', False),
])
def test_container_transitions(current, requested, allowed):
    assert can_transition_container(current, requested) is allowed


def test_retired_vessel_cannot_come_back():
    with pytest.raises(InvalidTransitionError):
        validate_container_transition('retired', 'sanitized')


def test_eligibility_needs_status_and_no_aging_occupant():
    barrel = {'id': 3, 'name': 'Barrel 3', 'status': 'sanitized'}

    assert is_container_eligible(barrel, []) is True
    assert is_container_eligible(barrel, [{'id': 8, 'container_id': 3, 'status': 'aging'}]) is False
    # Bottled lots no longer hold the vessel
    assert is_container_eligible(barrel, [{'id': 8, 'container_id': 3, 'status': 'bottled'}]) is True
    assert is_container_eligible(barrel, [{'id': 8, 'container_id': 3, 'status': 'aging', 'archived_at': '2025-01-02'}]) is True
    assert is_container_eligible({**barrel, 'status': 'needs_cip'}, []) is False


def test_parent_follows_most_advanced_child():
    parent = {'id': 1, 'status': 'aging'}
    children = [{'status': 'aging'}, {'status': 'ready_to_bottle'}, {'status': 'blending'}]

    assert most_advanced_status(child['status'] for child in children) == 'ready_to_bottle'
    assert sync_parent_status(parent, children) == 'ready_to_bottle'


def test_parent_never_regresses():
    parent = {'id': 1, 'status': 'blending'}

    assert sync_parent_status(parent, [{'status': 'aging'}]) is None
    assert sync_parent_status(parent, []) is None


def test_archiving_an_aging_lot_flags_its_vessel_for_cleaning(store, make_container, make_lot):
    barrel = make_container('Barrel 2', status='in_use')
    lot = make_lot('Pinot-Barrel 2', volume=60, status='aging', container_id=barrel.id)

    archived = archive_lot(store, lot.id)

    assert archived.archived_at is not None
    assert store.get_container(barrel.id).data.status == 'needs_cip'
    events = [event.event_type for event in store.vessel_history(barrel.id).data]
    assert sorted(events) == ['lot_removed', 'status_change']


def test_archiving_a_lot_without_a_vessel(store, make_lot):
    lot = make_lot('Rose press fraction', volume=20, status='pressed')

    assert archive_lot(store, lot.id).archived_at is not None
    assert archive_lot(store, lot.id).archived_at is not None
    with pytest.raises(LotNotFoundError):
        archive_lot(store, 404)
