from datetime import date

import pytest

from vinetrack.extensions import db
from vinetrack.models import ProductionContainer, ProductionLot, VesselHistoryEvent
from vinetrack.services.production_api import ApiResult, ProductionStore
from vinetrack.services.vessel_allocation import (
    InsufficientCapacityError,
    LotNotFoundError,
    VesselAllocationService,
    commit_split,
    plan_allocation,
    preview_allocation,
    sync_all_parent_statuses,
    transition_lot,
)


class FlakyStore(ProductionStore):
    """Store that fails writes for chosen records."""

    def __init__(self, organization_id, *, fail_container_updates=(), fail_lot_updates=(), **kwargs):
        super().__init__(organization_id, **kwargs)
        self.fail_container_updates = set(fail_container_updates)
        self.fail_lot_updates = set(fail_lot_updates)

    def update_container(self, container_id, patch):
        if container_id in self.fail_container_updates:
            return ApiResult.failed(f"Could not update vessel {container_id}")
        return super().update_container(container_id, patch)

    def update_lot(self, lot_id, patch):
        if lot_id in self.fail_lot_updates:
            return ApiResult.failed(f"Could not update lot {lot_id}")
        return super().update_lot(lot_id, patch)


@pytest.fixture
def syrah(make_lot):
    return make_lot(
        'Syrah 2024',
        volume=245,
        status='pressed',
        varietal='Syrah',
        appellation='Walla Walla',
        vintage=2024,
        block_id=7,
        harvest_date=date(2024, 9, 20),
        press_date=date(2024, 10, 5),
        yeast_strain='D254',
        ph=3.6,
        ta=6.2,
        so2=28.0,
        va=0.4,
        alcohol=14.1,
    )


@pytest.fixture
def barrels(make_container):
    def _make(count):
        return [make_container(f'Barrel {index}', capacity=60) for index in range(1, count + 1)]

    return _make


def _children(parent):
    return ProductionLot.query.filter_by(parent_lot_id=parent.id).order_by(ProductionLot.id).all()


def test_four_barrels_reject_the_split_before_any_write(store, context, syrah, barrels):
    containers = barrels(4)
    service = VesselAllocationService(store, context)

    with pytest.raises(InsufficientCapacityError, match='insufficient capacity, need 5 more gallons') as excinfo:
        service.auto_fill(syrah.id)

    assert excinfo.value.shortfall == 5
    assert _children(syrah) == []
    assert VesselHistoryEvent.query.count() == 0
    assert all(db.session.get(ProductionContainer, c.id).status == 'empty' for c in containers)
    assert db.session.get(ProductionLot, syrah.id).status == 'pressed'


def test_five_barrels_take_the_whole_lot(store, context, syrah, barrels):
    containers = barrels(5)
    service = VesselAllocationService(store, context)

    result = service.auto_fill(syrah.id)

    assert result.success is True
    assert result.summary_message() == 'Filled 5 of 5 containers (245 gallons)'
    children = _children(syrah)
    assert [child.volume_gallons for child in children] == [60, 60, 60, 60, 5]
    assert sum(child.volume_gallons for child in children) == 245
    assert [child.name for child in children] == [f'Syrah 2024-Barrel {n}' for n in range(1, 6)]
    assert [child.container_id for child in children] == [c.id for c in containers]
    assert all(child.status == 'aging' for child in children)

    for container in containers:
        refreshed = db.session.get(ProductionContainer, container.id)
        assert refreshed.status == 'in_use'
        assert refreshed.total_fills == 1

    assert service.remaining(syrah.id) == 0
    events = VesselHistoryEvent.query.filter_by(event_type='lot_assigned').all()
    assert len(events) == 5
    assert {event.performed_by for event in events} == {context.user_id}


def test_children_inherit_lineage_and_chemistry(store, context, syrah, barrels):
    barrels(5)

    VesselAllocationService(store, context).auto_fill(syrah.id)

    child = _children(syrah)[0]
    assert child.varietal == 'Syrah'
    assert child.appellation == 'Walla Walla'
    assert child.vintage == 2024
    assert child.block_id == 7
    assert child.harvest_date == date(2024, 9, 20)
    assert child.press_date == date(2024, 10, 5)
    assert child.yeast_strain == 'D254'
    assert child.chemistry_snapshot() == {'ph': 3.6, 'ta': 6.2, 'so2': 28.0, 'va': 0.4, 'alcohol': 14.1}


def test_parent_moves_to_aging_with_split_note(store, context, syrah, barrels):
    barrels(5)

    commit_split(
        store, context, syrah,
        preview_allocation(syrah, store.list_lots().data, store.list_containers().data),
        today=date(2025, 1, 15),
    )

    parent = db.session.get(ProductionLot, syrah.id)
    assert parent.status == 'aging'
    assert parent.notes.startswith('--- SPLIT TO VESSELS ---')
    assert 'Date: 2025-01-15' in parent.notes
    assert 'Split into 5 vessels' in parent.notes
    assert 'Total volume: 245 gallons' in parent.notes


def test_partial_split_leaves_the_rest_unassigned(store, context, make_lot, barrels):
    lot = make_lot('Grenache', volume=150)
    barrels(3)
    service = VesselAllocationService(store, context)

    service.auto_fill(lot.id, requested_volume=100)

    assert service.remaining(lot.id) == 50
    assert service.preview(lot.id).requested_volume == 50


def test_a_failed_vessel_update_does_not_stop_the_batch(context, syrah, barrels):
    containers = barrels(5)
    flaky = FlakyStore(context.organization_id, performed_by=context.user_id,
                       fail_container_updates={containers[1].id})

    result = VesselAllocationService(flaky, context).auto_fill(syrah.id)

    assert result.attempted == 5
    assert result.succeeded == 4
    assert result.success is False
    failed = result.outcomes[1]
    assert failed.success is False
    assert failed.child_lot_id is not None
    assert 'vessel update failed' in failed.error
    assert result.summary_message().startswith('Filled 4 of 5 containers')
    assert 'Errors: Barrel 2: child lot created but vessel update failed' in result.summary_message()

    assert db.session.get(ProductionContainer, containers[1].id).status == 'empty'
    assert db.session.get(ProductionContainer, containers[2].id).status == 'in_use'
    assert db.session.get(ProductionLot, syrah.id).status == 'aging'


def test_vessel_taken_after_preview_is_skipped(store, context, syrah, barrels, db_session):
    containers = barrels(5)
    plan = preview_allocation(syrah, store.list_lots().data, store.list_containers().data)
    containers[2].status = 'in_use'
    db_session.commit()

    result = commit_split(store, context, syrah, plan)

    assert result.succeeded == 4
    assert result.outcomes[2].error == 'vessel is no longer available (in_use)'
    assert result.outcomes[2].child_lot_id is None
    assert len(result.child_lots) == 4
    assert VesselAllocationService(store, context).remaining(syrah.id) == 60


def test_parent_update_failure_is_reported(context, syrah, barrels):
    barrels(5)
    flaky = FlakyStore(context.organization_id, fail_lot_updates={syrah.id})

    result = VesselAllocationService(flaky, context).auto_fill(syrah.id)

    assert result.succeeded == 5
    assert result.errors == [f'parent lot: Could not update lot {syrah.id}']
    assert db.session.get(ProductionLot, syrah.id).status == 'pressed'


def test_commit_refuses_a_plan_with_remainder(store, context, syrah, barrels):
    plan = plan_allocation(245, [{'id': c.id, 'name': c.name, 'capacity_gallons': 60} for c in barrels(2)])

    with pytest.raises(InsufficientCapacityError, match='need 125 more gallons'):
        commit_split(store, context, syrah, plan)
    assert _children(syrah) == []


def test_missing_or_foreign_lot_is_not_found(store, context, make_lot, db_session):
    from vinetrack.models import Organization

    other_org = Organization(name='Other Cellar', subscription_tier='estate')
    db_session.add(other_org)
    db_session.commit()
    foreign = make_lot('Not ours', volume=50, organization_id=other_org.id)
    service = VesselAllocationService(store, context)

    with pytest.raises(LotNotFoundError):
        service.preview(9999)
    with pytest.raises(LotNotFoundError):
        service.auto_fill(foreign.id)


def test_split_vessel_limit(store, context, syrah, barrels):
    barrels(5)
    service = VesselAllocationService(store, context, max_containers=3)

    with pytest.raises(ValueError, match='the limit is 3'):
        service.auto_fill(syrah.id)
    assert _children(syrah) == []


def test_nothing_left_to_split(store, context, make_lot, barrels):
    lot = make_lot('Empty lot', volume=0)
    barrels(1)

    with pytest.raises(ValueError, match='no unassigned volume'):
        VesselAllocationService(store, context).auto_fill(lot.id)


def test_blending_child_still_holds_its_share_of_the_parent(store, context, syrah, barrels, make_container):
    barrels(5)
    service = VesselAllocationService(store, context)
    service.auto_fill(syrah.id)
    first_child = _children(syrah)[0]
    transition_lot(store, first_child.id, 'blending')
    sync_all_parent_statuses(store)
    make_container('Barrel 6', capacity=60)
    make_container('Barrel 7', capacity=60)

    assert service.remaining(syrah.id) == 60
    with pytest.raises(ValueError, match='no unassigned volume'):
        service.auto_fill(syrah.id)
    with pytest.raises(ValueError, match='only 0 gallons'):
        service.preview(syrah.id, 60)

    assert sum(child.volume_gallons for child in _children(syrah)) == 245
    assert ProductionLot.query.filter_by(name='Syrah 2024-Barrel 6').count() == 0
    assert store.get_lot(syrah.id).data.status == 'blending'


def test_later_split_keeps_an_advanced_parent_status(store, context, make_lot, barrels):
    lot = make_lot('Mourvedre 2024', volume=150, status='pressed')
    barrels(3)
    service = VesselAllocationService(store, context)
    service.auto_fill(lot.id, 100)
    transition_lot(store, _children(lot)[0].id, 'blending')
    sync_all_parent_statuses(store)

    result = service.auto_fill(lot.id)

    assert result.success
    assert [child.volume_gallons for child in _children(lot)] == [60, 40, 50]
    parent = store.get_lot(lot.id).data
    assert parent.status == 'blending'
    assert parent.notes.count('--- SPLIT TO VESSELS ---') == 2
