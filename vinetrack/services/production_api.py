"""Production data store.

Synopsis:
Thin, organization-scoped wrappers over the SQLAlchemy session for lots,
vessels and vessel history. Every call commits on its own and reports
failure through ``ApiResult`` instead of raising, so a caller looping over
many vessels can keep going after one write fails.

Glossary:
- ApiResult: (data, error) pair returned by every store call.
- Vessel history: append-only audit log; ``lot_assigned`` rows are allocations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import (
    ContainerValidationError,
    LotValidationError,
    ProductionContainer,
    ProductionLot,
    VESSEL_EVENT_TYPES,
    VesselHistoryEvent,
)
from ..utils.timezone_utils import TimezoneUtils

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class ApiResult:
    data: Any = None
    error: Optional[str] = None
    kind: Optional[str] = None  # 'validation', 'missing', 'persistence'
    field_errors: Optional[Dict[str, List[str]]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_missing(self) -> bool:
        return self.kind == 'missing'

    @classmethod
    def success(cls, data: Any = None) -> "ApiResult":
        return cls(data=data)

    @classmethod
    def missing(cls, message: str) -> "ApiResult":
        return cls(error=message, kind='missing')

    @classmethod
    def invalid(cls, message: str, field_errors: Optional[Dict[str, List[str]]] = None) -> "ApiResult":
        return cls(error=message, kind='validation', field_errors=field_errors)

    @classmethod
    def failed(cls, message: str) -> "ApiResult":
        return cls(error=message, kind='persistence')


class ProductionStore:
    """Organization-scoped persistence for production lots and vessels."""

    def __init__(self, organization_id: int, *, performed_by: Optional[int] = None, session=None):
        if not organization_id:
            raise ValueError("Organization context is required for production data access.")
        self.organization_id = organization_id
        self.performed_by = performed_by
        self.session = session or db.session

    @classmethod
    def for_context(cls, context) -> "ProductionStore":
        return cls(context.organization_id, performed_by=context.user_id)

    # ------------------------------------------------------------------
    # Lots
    # ------------------------------------------------------------------
    def list_lots(
        self,
        *,
        status=None,
        vintage: Optional[int] = None,
        varietal: Optional[str] = None,
        container_id: Optional[int] = None,
        include_archived: bool = False,
    ) -> ApiResult:
        try:
            query = ProductionLot.query.filter(ProductionLot.organization_id == self.organization_id)
            if not include_archived:
                query = query.filter(ProductionLot.archived_at.is_(None))
            if vintage is not None:
                query = query.filter(ProductionLot.vintage == vintage)
            if varietal:
                query = query.filter(ProductionLot.varietal == varietal)
            if container_id is not None:
                query = query.filter(ProductionLot.container_id == container_id)
            if status:
                statuses = _split_statuses(status)
                query = query.filter(ProductionLot.status.in_(statuses))
            return ApiResult.success(query.order_by(ProductionLot.created_at.desc(), ProductionLot.id.desc()).all())
        except SQLAlchemyError as exc:
            return self._failure("list lots", exc)

    def get_lot(self, lot_id: int) -> ApiResult:
        try:
            lot = self._scoped_get(ProductionLot, lot_id)
        except SQLAlchemyError as exc:
            return self._failure(f"load lot {lot_id}", exc)
        if lot is None:
            return ApiResult.missing(f"Lot #{lot_id} not found")
        return ApiResult.success(lot)

    def create_lot(self, fields: Mapping[str, Any]) -> ApiResult:
        try:
            cleaned = ProductionLot.clean_fields(fields)
        except LotValidationError as exc:
            return ApiResult.invalid(str(exc), exc.as_errors())

        reference_error = self._check_lot_references(cleaned)
        if reference_error is not None:
            return reference_error

        lot = ProductionLot(organization_id=self.organization_id, **cleaned)
        try:
            self.session.add(lot)
            self.session.commit()
        except SQLAlchemyError as exc:
            return self._failure(f"create lot '{cleaned.get('name')}'", exc)
        logger.info("Created lot %s (%s) for org %s", lot.id, lot.name, self.organization_id)
        return ApiResult.success(lot)

    def update_lot(self, lot_id: int, patch: Mapping[str, Any]) -> ApiResult:
        lookup = self.get_lot(lot_id)
        if not lookup.ok:
            return lookup
        try:
            cleaned = ProductionLot.clean_fields(patch, partial=True)
        except LotValidationError as exc:
            return ApiResult.invalid(str(exc), exc.as_errors())

        reference_error = self._check_lot_references(cleaned)
        if reference_error is not None:
            return reference_error

        lot = lookup.data
        for key, value in cleaned.items():
            setattr(lot, key, value)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            return self._failure(f"update lot {lot_id}", exc)
        return ApiResult.success(lot)

    def archive_lot(self, lot_id: int) -> ApiResult:
        lookup = self.get_lot(lot_id)
        if not lookup.ok:
            return lookup
        lot = lookup.data
        lot.archived_at = TimezoneUtils.utc_now()
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            return self._failure(f"archive lot {lot_id}", exc)
        return ApiResult.success(lot)

    # ------------------------------------------------------------------
    # Vessels
    # ------------------------------------------------------------------
    def list_containers(self, *, vessel_type: Optional[str] = None, status=None) -> ApiResult:
        try:
            query = ProductionContainer.query.filter(
                ProductionContainer.organization_id == self.organization_id
            )
            if vessel_type:
                query = query.filter(ProductionContainer.type == vessel_type)
            if status:
                query = query.filter(ProductionContainer.status.in_(_split_statuses(status)))
            return ApiResult.success(query.order_by(ProductionContainer.name.asc(), ProductionContainer.id.asc()).all())
        except SQLAlchemyError as exc:
            return self._failure("list vessels", exc)

    def get_container(self, container_id: int) -> ApiResult:
        try:
            container = self._scoped_get(ProductionContainer, container_id)
        except SQLAlchemyError as exc:
            return self._failure(f"load vessel {container_id}", exc)
        if container is None:
            return ApiResult.missing(f"Vessel #{container_id} not found")
        return ApiResult.success(container)

    def create_container(self, fields: Mapping[str, Any]) -> ApiResult:
        try:
            cleaned = ProductionContainer.clean_fields(fields)
        except ContainerValidationError as exc:
            return ApiResult.invalid(str(exc), exc.as_errors())

        container = ProductionContainer(organization_id=self.organization_id, **cleaned)
        try:
            self.session.add(container)
            self.session.commit()
        except SQLAlchemyError as exc:
            return self._failure(f"create vessel '{cleaned.get('name')}'", exc)
        logger.info("Created vessel %s (%s) for org %s", container.id, container.name, self.organization_id)
        return ApiResult.success(container)

    def update_container(self, container_id: int, patch: Mapping[str, Any]) -> ApiResult:
        lookup = self.get_container(container_id)
        if not lookup.ok:
            return lookup
        try:
            cleaned = ProductionContainer.clean_fields(patch, partial=True)
        except ContainerValidationError as exc:
            return ApiResult.invalid(str(exc), exc.as_errors())

        container = lookup.data
        for key, value in cleaned.items():
            setattr(container, key, value)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            return self._failure(f"update vessel {container_id}", exc)
        return ApiResult.success(container)

    # ------------------------------------------------------------------
    # Vessel history
    # ------------------------------------------------------------------
    def log_lot_assignment(self, container_id: int, lot_id: int, volume: float) -> ApiResult:
        return self.create_vessel_history_event(
            container_id=container_id,
            event_type='lot_assigned',
            lot_id=lot_id,
            volume_before=0.0,
            volume_after=volume,
            notes='Lot assigned to vessel',
        )

    def log_lot_removal(self, container_id: int, lot_id: int, reason: Optional[str] = None) -> ApiResult:
        return self.create_vessel_history_event(
            container_id=container_id,
            event_type='lot_removed',
            lot_id=lot_id,
            volume_after=0.0,
            notes=reason or 'Lot removed from vessel',
        )

    def log_cip_event(self, container_id: int, cip_product: str, cost: Optional[float] = None) -> ApiResult:
        return self.create_vessel_history_event(
            container_id=container_id,
            event_type='cip',
            cip_product=cip_product,
            cost=cost,
            notes=f"Vessel cleaned with {cip_product}",
        )

    def log_maintenance_event(
        self,
        container_id: int,
        maintenance_type: str,
        cost: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> ApiResult:
        return self.create_vessel_history_event(
            container_id=container_id,
            event_type='repair' if maintenance_type == 'repair' else 'maintenance',
            maintenance_type=maintenance_type,
            cost=cost,
            notes=notes,
        )

    def log_topping_event(self, container_id: int, lot_id: Optional[int] = None) -> ApiResult:
        return self.create_vessel_history_event(
            container_id=container_id,
            event_type='topping',
            lot_id=lot_id,
            notes='Barrel topped',
        )

    def log_status_change(self, container_id: int, old_status: str, new_status: str) -> ApiResult:
        return self.create_vessel_history_event(
            container_id=container_id,
            event_type='status_change',
            notes=f"Status changed from {old_status} to {new_status}",
        )

    def create_vessel_history_event(self, *, container_id: int, event_type: str, **fields) -> ApiResult:
        if event_type not in VESSEL_EVENT_TYPES:
            return ApiResult.invalid(f"Unknown vessel event type '{event_type}'")
        volume_before = fields.get('volume_before')
        volume_after = fields.get('volume_after')
        volume_change = None
        if volume_before is not None and volume_after is not None:
            volume_change = volume_after - volume_before

        event = VesselHistoryEvent(
            organization_id=self.organization_id,
            container_id=container_id,
            event_type=event_type,
            lot_id=fields.get('lot_id'),
            volume_before=volume_before,
            volume_after=volume_after,
            volume_change=volume_change,
            cip_product=fields.get('cip_product'),
            maintenance_type=fields.get('maintenance_type'),
            cost=fields.get('cost'),
            notes=fields.get('notes'),
            performed_by=self.performed_by,
            event_date=fields.get('event_date') or TimezoneUtils.utc_now(),
        )
        try:
            self.session.add(event)
            self.session.commit()
        except SQLAlchemyError as exc:
            return self._failure(f"log {event_type} for vessel {container_id}", exc)
        return ApiResult.success(event)

    def vessel_history(
        self,
        container_id: int,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
        event_type: Optional[str] = None,
    ) -> ApiResult:
        try:
            query = VesselHistoryEvent.query.filter(
                VesselHistoryEvent.organization_id == self.organization_id,
                VesselHistoryEvent.container_id == container_id,
            )
            if event_type:
                query = query.filter(VesselHistoryEvent.event_type == event_type)
            events = (
                query.order_by(VesselHistoryEvent.event_date.desc(), VesselHistoryEvent.id.desc())
                .limit(limit or DEFAULT_HISTORY_LIMIT)
                .all()
            )
            return ApiResult.success(events)
        except SQLAlchemyError as exc:
            return self._failure(f"load history for vessel {container_id}", exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _scoped_get(self, model, record_id):
        if record_id is None:
            return None
        return model.query.filter(
            model.id == record_id,
            model.organization_id == self.organization_id,
        ).first()

    def _check_lot_references(self, cleaned: Mapping[str, Any]) -> Optional[ApiResult]:
        parent_id = cleaned.get('parent_lot_id')
        if parent_id is not None and self._scoped_get(ProductionLot, parent_id) is None:
            return ApiResult.invalid(
                f"Parent lot #{parent_id} not found", {'parent_lot_id': ['unknown lot']}
            )
        container_id = cleaned.get('container_id')
        if container_id is not None and self._scoped_get(ProductionContainer, container_id) is None:
            return ApiResult.invalid(
                f"Vessel #{container_id} not found", {'container_id': ['unknown vessel']}
            )
        return None

    def _failure(self, action: str, exc: Exception) -> ApiResult:
        self.session.rollback()
        logger.warning("Production store failed to %s (org %s): %s", action, self.organization_id, exc)
        return ApiResult.failed(f"Could not {action}")


def _split_statuses(status) -> List[str]:
    if isinstance(status, str):
        return [entry.strip() for entry in status.split(',') if entry.strip()]
    return [str(entry) for entry in status]
