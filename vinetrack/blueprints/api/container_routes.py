from flask import request

from ...services.maintenance import apply_duplicate_resolution, bulk_create_containers, plan_duplicate_resolution
from ...services.vessel_allocation import eligible_containers, sort_containers, transition_container
from ...utils.api_responses import APIResponse
from ...utils.validation_helpers import coerce_float, coerce_int
from . import production_api_bp
from ._helpers import current_context, current_store, production_route, query_int, request_payload


@production_api_bp.route('/containers', methods=['GET'])
@production_route
def list_containers():
    listing = current_store().list_containers(
        vessel_type=request.args.get('type'),
        status=request.args.get('status'),
    )
    if not listing.ok:
        return APIResponse.from_store_result(listing, 'Vessels')
    containers = [container.to_dict() for container in sort_containers(listing.data)]
    return APIResponse.success({'containers': containers, 'count': len(containers)})


@production_api_bp.route('/containers', methods=['POST'])
@production_route
def create_container():
    created = current_store().create_container(request_payload())
    if not created.ok:
        return APIResponse.from_store_result(created, 'Vessel')
    return APIResponse.success(created.data.to_dict(), message='Vessel created', status_code=201)


@production_api_bp.route('/containers/bulk', methods=['POST'])
@production_route
def bulk_create():
    """Create several vessels named in sequence, e.g. "Barrel 5" through "Barrel 9"."""
    payload = dict(request_payload())
    base_name = payload.pop('name', None) or payload.pop('base_name', None)
    count = coerce_int(payload.pop('count', None), field='count', minimum=1)
    if not base_name or count is None:
        return APIResponse.validation_error({'name': ['is required'], 'count': ['is required']})

    report = bulk_create_containers(current_store(), current_context(), base_name, count, payload)
    data = {
        'created': [container.to_dict() for container in report.get('created', [])],
        'results': report['results'],
    }
    if not report['success'] and not data['created']:
        return APIResponse.error(report.get('error') or 'No vessels created', errors={'results': report['results']},
                                 status_code=422)
    return APIResponse.success(data, message=f"Created {len(data['created'])} of {count} vessels", status_code=201)


@production_api_bp.route('/containers/<int:container_id>/status', methods=['PATCH'])
@production_route
def update_container_status(container_id):
    status = request_payload().get('status')
    if not status:
        return APIResponse.validation_error({'status': ['is required']})
    container = transition_container(current_store(), container_id, status)
    return APIResponse.success(container.to_dict(), message=f"Vessel moved to {container.status}")


@production_api_bp.route('/containers/<int:container_id>/history', methods=['GET'])
@production_route
def container_history(container_id):
    store = current_store()
    lookup = store.get_container(container_id)
    if not lookup.ok:
        return APIResponse.from_store_result(lookup, 'Vessel')
    history = store.vessel_history(
        container_id,
        limit=query_int('limit', default=100, minimum=1),
        event_type=request.args.get('event_type'),
    )
    if not history.ok:
        return APIResponse.from_store_result(history, 'History')
    return APIResponse.success({
        'container': lookup.data.to_dict(),
        'events': [event.to_dict() for event in history.data],
    })


@production_api_bp.route('/containers/<int:container_id>/maintenance', methods=['POST'])
@production_route
def log_maintenance(container_id):
    payload = request_payload()
    maintenance_type = str(payload.get('maintenance_type') or '').strip()
    if not maintenance_type:
        return APIResponse.validation_error({'maintenance_type': ['is required']})
    cost = coerce_float(payload.get('cost'), field='cost', minimum=0.0)

    store = current_store()
    lookup = store.get_container(container_id)
    if not lookup.ok:
        return APIResponse.from_store_result(lookup, 'Vessel')
    logged = store.log_maintenance_event(container_id, maintenance_type, cost=cost, notes=payload.get('notes'))
    if not logged.ok:
        return APIResponse.from_store_result(logged, 'Maintenance event')
    return APIResponse.success(logged.data.to_dict(), message=f"Logged {maintenance_type} for {lookup.data.name}",
                               status_code=201)


@production_api_bp.route('/containers/eligible', methods=['GET'])
@production_route
def list_eligible_containers():
    """Vessels a split could fill right now, in fill order"""
    store = current_store()
    containers = store.list_containers()
    lots = store.list_lots(include_archived=True)
    if not containers.ok:
        return APIResponse.from_store_result(containers, 'Vessels')
    if not lots.ok:
        return APIResponse.from_store_result(lots, 'Lots')
    eligible = sort_containers(eligible_containers(containers.data, lots.data))
    return APIResponse.success({
        'containers': [container.to_dict() for container in eligible],
        'total_capacity': sum(container.capacity for container in eligible),
    })


@production_api_bp.route('/containers/duplicates', methods=['GET'])
@production_route
def list_duplicate_names():
    listing = current_store().list_containers()
    if not listing.ok:
        return APIResponse.from_store_result(listing, 'Vessels')
    return APIResponse.success(plan_duplicate_resolution(listing.data).to_dict())


@production_api_bp.route('/containers/duplicates/resolve', methods=['POST'])
@production_route
def resolve_duplicate_names():
    listing = current_store().list_containers()
    if not listing.ok:
        return APIResponse.from_store_result(listing, 'Vessels')
    resolution = plan_duplicate_resolution(listing.data)
    if not resolution.has_duplicates:
        return APIResponse.success({'renamed': 0, 'results': []}, message='No duplicate vessel names found')
    report = apply_duplicate_resolution(current_store(), current_context(), resolution)
    return APIResponse.success(report, message=f"Renamed {report['renamed']} vessels",
                               status_code=200 if report['success'] else 207)
