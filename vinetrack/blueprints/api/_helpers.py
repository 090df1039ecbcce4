from __future__ import annotations

from functools import wraps

from flask import current_app, g, request
from flask_login import current_user, login_required

from ...services.production_api import ProductionStore
from ...services.production_context import ProductionContext
from ...services.vessel_allocation import (
    ContainerNotFoundError,
    InsufficientCapacityError,
    InvalidTransitionError,
    LotNotFoundError,
    StoreOperationError,
)
from ...utils.api_responses import APIResponse, api_route
from ...utils.validation_helpers import FieldValidationError, coerce_float, coerce_int


def production_route(func):
    """Login, production-module gate and domain error mapping for API views."""
    @wraps(func)
    def handler(*args, **kwargs):
        context = ProductionContext.from_user(current_user)
        context.require_module()
        g.production_context = context
        g.production_store = ProductionStore.for_context(context)
        try:
            return func(*args, **kwargs)
        except InsufficientCapacityError as exc:
            return APIResponse.conflict(str(exc), {'shortfall': exc.shortfall})
        except InvalidTransitionError as exc:
            return APIResponse.conflict(str(exc), {'status': [str(exc)]})
        except (LotNotFoundError, ContainerNotFoundError) as exc:
            return APIResponse.error(str(exc), status_code=404)
        except StoreOperationError as exc:
            current_app.logger.warning("Store failure in %s: %s", func.__name__, exc)
            return APIResponse.error(str(exc), status_code=500)

    return login_required(api_route(handler))


def current_context() -> ProductionContext:
    return g.production_context


def current_store() -> ProductionStore:
    return g.production_store


def request_payload() -> dict:
    return APIResponse.handle_request_content() or {}


def optional_volume(payload) -> float | None:
    value = payload.get('volume', payload.get('volume_gallons'))
    return coerce_float(value, field='volume', minimum=0.0, exclusive_minimum=True)


def container_ids_from(payload) -> list[int]:
    raw = payload.get('container_ids')
    if not isinstance(raw, (list, tuple)) or not raw:
        raise FieldValidationError('container_ids', 'must be a non-empty list')
    ids = [coerce_int(value, field='container_ids', minimum=1) for value in raw]
    if any(container_id is None for container_id in ids):
        raise FieldValidationError('container_ids', 'must contain vessel ids')
    if len(set(ids)) != len(ids):
        raise FieldValidationError('container_ids', 'must not repeat a vessel')
    return ids


def query_int(name: str, default=None, minimum=None):
    value = coerce_int(request.args.get(name), field=name, minimum=minimum)
    return default if value is None else value


def query_flag(name: str) -> bool:
    return (request.args.get(name) or '').strip().lower() in {'1', 'true', 'yes', 'on'}
