from datetime import date

import pytest

from vinetrack.extensions import db
from vinetrack.models import ProductionContainer, VesselHistoryEvent
from vinetrack.services.maintenance import (
    apply_duplicate_resolution,
    barrel_age_years,
    bulk_create_containers,
    duplicate_base_name,
    find_duplicate_names,
    generate_unique_names,
    plan_duplicate_resolution,
    record_cip,
    record_topping,
    replacement_due,
    topping_due,
)

TODAY = date(2025, 2, 15)


def _vessel(id, name, status='in_use', type='barrel', **fields):
    return {'id': id, 'name': name, 'status': status, 'type': type, **fields}


class TestToppingSchedule:
    """Which in-use barrels need topping, and how urgently."""

    def test_severity_and_order(self):
        containers = [
            _vessel(1, 'Barrel 1', last_topping_date=date(2025, 1, 1)),
            _vessel(2, 'Barrel 2'),
            _vessel(3, 'Barrel 3', last_topping_date=date(2024, 12, 1)),
            _vessel(4, 'Barrel 4', last_topping_date=date(2025, 2, 1)),
            _vessel(5, 'Barrel 5', status='empty'),
            _vessel(6, 'Tank 1', type='tank'),
        ]

        due = topping_due(containers, TODAY)

        assert [entry.container['name'] for entry in due] == ['Barrel 2', 'Barrel 3', 'Barrel 1']
        assert [entry.severity for entry in due] == ['urgent', 'urgent', 'due_soon']
        assert [entry.days_since_topping for entry in due] == [None, 76, 45]

    def test_custom_interval(self):
        containers = [_vessel(1, 'Barrel 1', last_topping_date=date(2025, 2, 1))]

        assert topping_due(containers, TODAY) == []
        assert topping_due(containers, TODAY, interval_days=10, urgent_days=12)[0].severity == 'urgent'
        assert topping_due(containers, TODAY, interval_days=10, urgent_days=20)[0].severity == 'due_soon'

    def test_to_dict(self):
        entry = topping_due([_vessel(9, 'Barrel 9')], TODAY)[0]

        assert entry.to_dict() == {
            'container_id': 9,
            'container_name': 'Barrel 9',
            'days_since_topping': None,
            'severity': 'urgent',
        }


class TestReplacementSchedule:

    def test_fills_and_age(self):
        today = date(2025, 6, 1)
        containers = [
            _vessel(1, 'Barrel 1', total_fills=4),
            _vessel(2, 'Barrel 2', purchase_date=date(2019, 5, 1)),
            _vessel(3, 'Barrel 3', status='retired', total_fills=9),
            _vessel(4, 'Barrel 4', total_fills=1, purchase_date=date(2023, 1, 1)),
        ]

        due = replacement_due(containers, today)

        assert [(entry.container['id'], entry.reasons) for entry in due] == [
            (1, ('4 fills',)),
            (2, ('6 years old',)),
        ]

    def test_age_without_purchase_date_is_zero(self):
        assert barrel_age_years(_vessel(1, 'Barrel 1'), TODAY) == 0


class TestDuplicateNames:

    CONTAINERS = [
        {'id': 1, 'name': 'Barrel 1'},
        {'id': 2, 'name': 'Barrel 2'},
        {'id': 3, 'name': 'Barrel 4'},
        {'id': 4, 'name': 'Barrel 4'},
        {'id': 5, 'name': 'Tank'},
        {'id': 6, 'name': 'Tank'},
    ]

    def test_find_duplicates_keeps_id_order(self):
        duplicates = find_duplicate_names(list(reversed(self.CONTAINERS)))

        assert {name: [c['id'] for c in members] for name, members in duplicates.items()} == {
            'Barrel 4': [3, 4],
            'Tank': [5, 6],
        }

    def test_second_barrel_four_becomes_barrel_five(self):
        resolution = plan_duplicate_resolution(self.CONTAINERS)

        assert resolution.has_duplicates
        assert [(r.container_id, r.old_name, r.new_name) for r in resolution.renames] == [
            (4, 'Barrel 4', 'Barrel 5'),
            (6, 'Tank', 'Tank 1'),
        ]

    def test_no_duplicates(self):
        resolution = plan_duplicate_resolution(self.CONTAINERS[:3])

        assert resolution.has_duplicates is False
        assert resolution.renames == []

    def test_base_name(self):
        assert duplicate_base_name('Barrel 12') == 'Barrel'
        assert duplicate_base_name('42') == 'Barrel'


class TestUniqueNames:

    def test_numeric_pattern_skips_taken_names(self):
        assert generate_unique_names('Barrel 5', 3, ['Barrel 5', 'Barrel 6']) == ['Barrel 7', 'Barrel 8', 'Barrel 9']

    def test_letter_pattern(self):
        assert generate_unique_names('Tank A', 2, ['Tank A']) == ['Tank B', 'Tank C']

    def test_plain_name_gets_numbered(self):
        assert generate_unique_names('Puncheon', 2, []) == ['Puncheon 1', 'Puncheon 2']


def test_record_topping_stamps_barrels_and_logs(store, context, make_container, make_lot):
    barrel = make_container('Barrel 1', status='in_use')
    lot = make_lot('Cab-Barrel 1', volume=60, status='aging', container_id=barrel.id)

    outcome = record_topping(store, context, [barrel.id, 999], on_date=date(2025, 3, 1))

    assert outcome['success'] is False
    assert outcome['topped'] == 1
    assert outcome['results'][1] == {'container_id': 999, 'success': False, 'message': 'Vessel #999 not found'}
    assert db.session.get(ProductionContainer, barrel.id).last_topping_date == date(2025, 3, 1)
    event = VesselHistoryEvent.query.filter_by(event_type='topping').one()
    assert event.lot_id == lot.id


def test_record_cip_sanitizes_and_skips_retired(store, context, make_container):
    dirty = make_container('Barrel 1', status='needs_cip')
    retired = make_container('Barrel 2', status='retired')

    outcome = record_cip(store, context, [dirty.id, retired.id], 'Proxycarb', on_date=date(2025, 3, 2), cost=8)

    assert outcome['cleaned'] == 1
    assert outcome['results'][1]['message'] == 'cannot sanitize a vessel that is retired'
    cleaned = db.session.get(ProductionContainer, dirty.id)
    assert (cleaned.status, cleaned.last_cip_date, cleaned.cip_product) == ('sanitized', date(2025, 3, 2), 'Proxycarb')
    assert VesselHistoryEvent.query.filter_by(event_type='cip').one().cost == 8


def test_record_cip_requires_a_product(store, context):
    with pytest.raises(ValueError, match='cip_product is required'):
        record_cip(store, context, [1], '  ')


def test_repeated_vessel_ids_are_rejected_before_any_write(store, context, make_container):
    barrel = make_container('Barrel 1', status='needs_cip')

    with pytest.raises(ValueError, match='listed more than once: ' + str(barrel.id)):
        record_cip(store, context, [barrel.id, barrel.id], 'Proxycarb')
    with pytest.raises(ValueError, match='listed more than once'):
        record_topping(store, context, [barrel.id, 999, barrel.id])

    assert db.session.get(ProductionContainer, barrel.id).status == 'needs_cip'
    assert VesselHistoryEvent.query.count() == 0


def test_bulk_create_continues_existing_numbering(store, context, make_container):
    make_container('Barrel 1')
    make_container('Barrel 2')

    outcome = bulk_create_containers(store, context, 'Barrel 1', 3, {'capacity_gallons': 59})

    assert outcome['success'] is True
    assert [vessel.name for vessel in outcome['created']] == ['Barrel 3', 'Barrel 4', 'Barrel 5']
    assert all(vessel.capacity_gallons == 59 for vessel in outcome['created'])


@pytest.mark.parametrize('count', [0, 201])
def test_bulk_create_count_limits(store, context, count):
    with pytest.raises(ValueError, match='count must be between 1 and 200'):
        bulk_create_containers(store, context, 'Barrel', count)


def test_bulk_create_reports_invalid_fields(store, context):
    outcome = bulk_create_containers(store, context, 'Barrel', 2, {'capacity_gallons': -1})

    assert outcome['success'] is False
    assert outcome['created'] == []
    assert all(entry['message'] for entry in outcome['results'])


def test_apply_duplicate_resolution_renames_in_place(store, context, make_container):
    make_container('Barrel 1')
    first = make_container('Barrel 4')
    second = make_container('Barrel 4')

    resolution = plan_duplicate_resolution(store.list_containers().data)
    outcome = apply_duplicate_resolution(store, context, resolution)

    assert outcome == {
        'success': True,
        'renamed': 1,
        'results': [{
            'container_id': second.id,
            'old_name': 'Barrel 4',
            'new_name': 'Barrel 5',
            'success': True,
            'message': None,
        }],
    }
    assert db.session.get(ProductionContainer, first.id).name == 'Barrel 4'
    assert db.session.get(ProductionContainer, second.id).name == 'Barrel 5'
