from flask import current_app, request

from ...services.vessel_allocation import (
    StoreOperationError,
    VesselAllocationService,
    archive_lot,
    child_lots,
    next_lot_statuses,
    remaining_volume,
    sync_all_parent_statuses,
    transition_lot,
)
from ...utils.api_responses import APIResponse
from . import production_api_bp
from ._helpers import current_context, current_store, optional_volume, production_route, query_flag, query_int, request_payload


def _allocation_service() -> VesselAllocationService:
    return VesselAllocationService(
        current_store(),
        current_context(),
        max_containers=current_app.config.get('ALLOCATION_MAX_CONTAINERS'),
    )


def _all_lots():
    # Same lot list the allocation service reconciles against
    listing = current_store().list_lots(include_archived=True)
    if not listing.ok:
        raise StoreOperationError(listing.error)
    return listing.data


@production_api_bp.route('/lots', methods=['GET'])
@production_route
def list_lots():
    """List lots with their unassigned volume"""
    store = current_store()
    listing = store.list_lots(
        status=request.args.get('status'),
        vintage=query_int('vintage'),
        varietal=request.args.get('varietal'),
        include_archived=query_flag('include_archived'),
    )
    if not listing.ok:
        return APIResponse.from_store_result(listing, 'Lots')

    every_lot = _all_lots()
    lots = []
    for lot in listing.data:
        entry = lot.to_dict()
        entry['remaining_volume'] = remaining_volume(lot, every_lot)
        lots.append(entry)
    return APIResponse.success({'lots': lots, 'count': len(lots)})


@production_api_bp.route('/lots', methods=['POST'])
@production_route
def create_lot():
    created = current_store().create_lot(request_payload())
    if not created.ok:
        return APIResponse.from_store_result(created, 'Lot')
    return APIResponse.success(created.data.to_dict(), message='Lot created', status_code=201)


@production_api_bp.route('/lots/<int:lot_id>', methods=['GET'])
@production_route
def get_lot(lot_id):
    lookup = current_store().get_lot(lot_id)
    if not lookup.ok:
        return APIResponse.from_store_result(lookup, 'Lot')

    lot = lookup.data
    every_lot = _all_lots()
    data = lot.to_dict()
    data['remaining_volume'] = remaining_volume(lot, every_lot)
    data['children'] = [child.to_dict() for child in child_lots(lot, every_lot)]
    data['next_statuses'] = next_lot_statuses(lot.status)
    return APIResponse.success(data)


@production_api_bp.route('/lots/<int:lot_id>/status', methods=['PATCH'])
@production_route
def update_lot_status(lot_id):
    status = request_payload().get('status')
    if not status:
        return APIResponse.validation_error({'status': ['is required']})
    lot = transition_lot(current_store(), lot_id, status)
    return APIResponse.success(lot.to_dict(), message=f"Lot moved to {lot.status}")


@production_api_bp.route('/lots/<int:lot_id>/archive', methods=['POST'])
@production_route
def archive(lot_id):
    """Hide the lot from default listings; an aging lot also frees its vessel for cleaning"""
    lot = archive_lot(current_store(), lot_id)
    return APIResponse.success(lot.to_dict(), message=f"Lot '{lot.name}' archived")


@production_api_bp.route('/lots/<int:lot_id>/remaining', methods=['GET'])
@production_route
def lot_remaining(lot_id):
    remaining = _allocation_service().remaining(lot_id)
    lot = current_store().get_lot(lot_id).data
    return APIResponse.success({
        'lot_id': lot_id,
        'volume_gallons': lot.volume,
        'remaining_volume': remaining,
        'fully_allocated': remaining <= 0,
    })


@production_api_bp.route('/lots/<int:lot_id>/split/preview', methods=['POST'])
@production_route
def preview_split(lot_id):
    """Show how the lot would be spread over eligible vessels without saving anything"""
    plan = _allocation_service().preview(lot_id, optional_volume(request_payload()))
    message = 'Plan fits eligible vessels' if plan.is_complete else (
        f"insufficient capacity, need {plan.remainder:g} more gallons"
    )
    return APIResponse.success(plan.to_dict(), message=message)


@production_api_bp.route('/lots/<int:lot_id>/split', methods=['POST'])
@production_route
def commit_split(lot_id):
    """Split the lot into child lots, one per vessel.

    201 when every vessel committed, 207 when some failed, 500 when none did.
    """
    result = _allocation_service().auto_fill(lot_id, optional_volume(request_payload()))
    if not result.child_lots:
        return APIResponse.error(result.summary_message(), errors={'outcomes': result.to_dict()['outcomes']},
                                 status_code=500)
    return APIResponse.success(result.to_dict(), message=result.summary_message(),
                               status_code=201 if result.success else 207)


@production_api_bp.route('/lots/sync-status', methods=['POST'])
@production_route
def sync_parent_statuses():
    report = sync_all_parent_statuses(current_store())
    message = f"Synced {report['synced']} parent lots, updated {report['updated']}"
    return APIResponse.success(report, message=message)
