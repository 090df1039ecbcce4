from flask import current_app

from ...services.maintenance import record_cip, record_topping, replacement_due, topping_due
from ...utils.api_responses import APIResponse
from ...utils.timezone_utils import TimezoneUtils
from ...utils.validation_helpers import FieldValidationError, clean_string, coerce_float
from . import production_api_bp
from ._helpers import container_ids_from, current_context, current_store, production_route, request_payload


def _barrels():
    return current_store().list_containers(vessel_type='barrel')


def _action_date(payload):
    try:
        return TimezoneUtils.as_date(payload.get('date')) or TimezoneUtils.utc_today()
    except ValueError as exc:
        raise FieldValidationError('date', str(exc)) from None


@production_api_bp.route('/maintenance/topping', methods=['GET'])
@production_route
def topping_schedule():
    listing = _barrels()
    if not listing.ok:
        return APIResponse.from_store_result(listing, 'Vessels')
    due = topping_due(
        listing.data,
        interval_days=current_app.config.get('TOPPING_INTERVAL_DAYS', 30),
        urgent_days=current_app.config.get('TOPPING_URGENT_DAYS', 45),
    )
    return APIResponse.success({
        'barrels': [entry.to_dict() for entry in due],
        'urgent': sum(1 for entry in due if entry.severity == 'urgent'),
        'count': len(due),
    })


@production_api_bp.route('/maintenance/replacement', methods=['GET'])
@production_route
def replacement_schedule():
    listing = _barrels()
    if not listing.ok:
        return APIResponse.from_store_result(listing, 'Vessels')
    due = replacement_due(
        listing.data,
        max_fills=current_app.config.get('BARREL_MAX_FILLS', 4),
        max_age_years=current_app.config.get('BARREL_MAX_AGE_YEARS', 5),
    )
    return APIResponse.success({'barrels': [entry.to_dict() for entry in due], 'count': len(due)})


@production_api_bp.route('/maintenance/topping', methods=['POST'])
@production_route
def record_barrel_topping():
    payload = request_payload()
    report = record_topping(current_store(), current_context(), container_ids_from(payload), _action_date(payload))
    return APIResponse.success(report, message=f"Topped {report['topped']} barrels",
                               status_code=200 if report['success'] else 207)


@production_api_bp.route('/maintenance/cip', methods=['POST'])
@production_route
def record_vessel_cip():
    """Log a clean-in-place for one or more vessels and mark them sanitized"""
    payload = request_payload()
    cip_product = clean_string(payload.get('cip_product'), max_length=128, field='cip_product')
    if not cip_product:
        return APIResponse.validation_error({'cip_product': ['is required']})
    report = record_cip(
        current_store(),
        current_context(),
        container_ids_from(payload),
        cip_product,
        on_date=_action_date(payload),
        cost=coerce_float(payload.get('cost'), field='cost', minimum=0.0),
    )
    return APIResponse.success(report, message=f"Cleaned {report['cleaned']} vessels",
                               status_code=200 if report['success'] else 207)
